"""目录子项计数：随结构性写入在同一事务内增量维护 item_count。

计数口径：只统计未删除（deleted_at 为空）的直接子项。子项移入回收站时父目录 -1，
恢复到原位置时 +1；彻底删除一个已在回收站的节点不再变更计数。
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import ValidationException
from app.packages.drive.core.logger import logger
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode


class ItemCounter:
    def increment(self, db: Session, parent: Optional[FsNode]) -> None:
        if parent is not None:
            fs_node_crud.adjust_item_count(db, parent, 1)

    def decrement(self, db: Session, parent: Optional[FsNode]) -> None:
        if parent is not None:
            fs_node_crud.adjust_item_count(db, parent, -1)

    def ensure_capacity(self, db: Session, parent: Optional[FsNode]) -> None:
        """新增子项前检查上限；根目录不设上限。"""
        if parent is None:
            return
        limit = get_settings().max_children_per_folder
        if (parent.item_count or 0) >= limit:
            raise ValidationException(
                f"目录 \"{parent.name}\" 的子项数量已达上限 {limit}",
                {"folderId": parent.id, "limit": limit},
            )

    def recount(self, db: Session, folder: FsNode) -> int:
        """按聚合查询重新统计并修正计数（运维修复用），返回修正后的值。"""
        actual = fs_node_crud.count_active_children(db, folder.id)
        if folder.item_count != actual:
            logger.warning(
                "item_count drift on folder %s: stored=%s actual=%s", folder.id, folder.item_count, actual
            )
            fs_node_crud.update_fields(db, folder, {"item_count": actual})
        return actual


item_counter = ItemCounter()
