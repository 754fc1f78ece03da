"""目录树变更：创建、重命名、移动，以及置顶/颜色等轻量属性修改。

每个结构性变更遵循同一流程：持有用户锁 -> 校验 -> 解析同级名称 -> 更新节点自身 ->
级联改写后代路径 -> 调整父目录计数 -> 一次提交。
"""

from __future__ import annotations

import re
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.constants import FOLDER_COLOR_PATTERN
from app.packages.drive.core.enums import DuplicateActionEnum
from app.packages.drive.core.exceptions import ConflictException, ValidationException
from app.packages.drive.core.logger import logger
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode
from app.packages.drive.services.item_counter import item_counter
from app.packages.drive.services.name_resolver import NameResolution, name_resolver, validate_name
from app.packages.drive.services.node_lookup import load_owned_node, load_parent_folder
from app.packages.drive.services.owner_lock import owner_lock_service
from app.packages.drive.services.path_cascade import cascade_paths
from app.packages.drive.services.path_materializer import path_materializer
from app.packages.drive.services.subtree_walker import subtree_walker
from app.packages.drive.services.trash_service import trash_service
from app.packages.drive.services.unit_of_work import run_in_transaction
from app.packages.drive.utils.path_utils import join_path, split_extension


def _validate_color(color: Optional[str]) -> Optional[str]:
    if color is None:
        return None
    if not re.fullmatch(FOLDER_COLOR_PATTERN, color):
        raise ValidationException("颜色格式应为 #RRGGBB", {"color": color})
    return color.upper()


class TreeService:
    # ----------------------------
    # 创建
    # ----------------------------
    def create_folder(
        self,
        db: Session,
        *,
        owner_id: int,
        name: str,
        parent_id: Optional[int] = None,
        color: Optional[str] = None,
        duplicate_action: Optional[DuplicateActionEnum] = DuplicateActionEnum.KEEP_BOTH,
    ) -> FsNode:
        validate_name(name)
        extra = {"is_dir": True, "color": _validate_color(color), "item_count": 0}
        return self._create(
            db, owner_id=owner_id, name=name, parent_id=parent_id, extra=extra, duplicate_action=duplicate_action
        )

    def create_file(
        self,
        db: Session,
        *,
        owner_id: int,
        name: str,
        parent_id: Optional[int] = None,
        size: int = 0,
        storage_key: Optional[str] = None,
        mime_type: Optional[str] = None,
        duplicate_action: Optional[DuplicateActionEnum] = DuplicateActionEnum.KEEP_BOTH,
    ) -> FsNode:
        """登记一个文件节点的元数据；内容本身由外部存储负责上传。"""
        validate_name(name)
        if size is None or size < 0:
            raise ValidationException("文件大小不能为负数", {"size": size})
        extra = {
            "is_dir": False,
            "size_bytes": int(size),
            "storage_key": storage_key,
            "mime_type": mime_type,
        }
        return self._create(
            db, owner_id=owner_id, name=name, parent_id=parent_id, extra=extra, duplicate_action=duplicate_action
        )

    def _create(
        self,
        db: Session,
        *,
        owner_id: int,
        name: str,
        parent_id: Optional[int],
        extra: dict[str, Any],
        duplicate_action: Optional[DuplicateActionEnum],
    ) -> FsNode:
        settings = get_settings()

        def _action() -> FsNode:
            parent = load_parent_folder(db, owner_id=owner_id, parent_id=parent_id)
            depth = parent.depth + 1 if parent is not None else 1
            if depth > settings.max_tree_depth:
                raise ValidationException(
                    f"目录层级不能超过 {settings.max_tree_depth} 层", {"depth": depth}
                )
            resolution = self._resolve_into(
                db, owner_id=owner_id, parent=parent, name=name, exclude_id=None, duplicate_action=duplicate_action
            )
            materialized = path_materializer.materialize(resolution.name, parent)
            fields = dict(extra)
            if not fields.get("is_dir"):
                fields["extension"] = split_extension(resolution.name) or None
            node = fs_node_crud.insert(
                db,
                {
                    "owner_id": owner_id,
                    "parent_id": parent_id,
                    "name": resolution.name,
                    "path": materialized.path,
                    "path_segments": materialized.segments,
                    **fields,
                },
            )
            item_counter.increment(db, parent)
            logger.info(
                "Created %s %s at %s (owner=%s)",
                "folder" if node.is_dir else "file", node.id, node.path, owner_id,
            )
            return node

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"create:{name}")

    # ----------------------------
    # 重命名
    # ----------------------------
    def rename(
        self,
        db: Session,
        *,
        owner_id: int,
        node_id: int,
        new_name: str,
        duplicate_action: Optional[DuplicateActionEnum] = None,
        expect_dir: Optional[bool] = None,
    ) -> FsNode:
        """修改节点名称，并同步改写所有后代的 path 与祖先链中的名称。"""
        validate_name(new_name)

        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id, expect_dir=expect_dir)
            self._ensure_active(node)
            if node.name == new_name:
                return node

            resolution = name_resolver.resolve(
                db,
                name=new_name,
                owner_id=owner_id,
                parent_id=node.parent_id,
                exclude_id=node.id,
                duplicate_action=duplicate_action,
            )
            if resolution.replaced is not None:
                trash_service.move_to_trash(db, resolution.replaced)

            old_path, old_depth = node.path, node.depth
            parent_path = old_path.rsplit("/", 1)[0]
            fields: dict[str, Any] = {"name": resolution.name, "path": join_path(parent_path, resolution.name)}
            if not node.is_dir:
                fields["extension"] = split_extension(resolution.name) or None
            fs_node_crud.update_fields(db, node, fields)
            cascade_paths(db, node, old_path=old_path, old_depth=old_depth)
            logger.info("Renamed node %s: %s -> %s", node.id, old_path, node.path)
            return node

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"rename#{node_id}")

    # ----------------------------
    # 移动
    # ----------------------------
    def move(
        self,
        db: Session,
        *,
        owner_id: int,
        node_id: int,
        new_parent_id: Optional[int],
        duplicate_action: Optional[DuplicateActionEnum] = None,
        expect_dir: Optional[bool] = None,
    ) -> FsNode:
        """把节点连同整棵子树移动到 ``new_parent_id``（``None`` 为根目录）。

        目标是节点自身或其后代时拒绝（409），此时不做任何修改。
        """
        settings = get_settings()

        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id, expect_dir=expect_dir)
            self._ensure_active(node)
            if new_parent_id is not None and new_parent_id == node.id:
                raise ConflictException("不能将文件夹移动到其自身内部", {"id": node.id})
            if new_parent_id == node.parent_id:
                return node

            new_parent = load_parent_folder(db, owner_id=owner_id, parent_id=new_parent_id)
            if new_parent is not None and subtree_walker.is_descendant(db, node, new_parent):
                raise ConflictException(
                    "不能将文件夹移动到其子目录中", {"id": node.id, "parentId": new_parent_id}
                )

            levels = list(subtree_walker.iter_levels(db, node))
            new_depth = new_parent.depth + 1 if new_parent is not None else 1
            if new_depth + len(levels) > settings.max_tree_depth:
                raise ValidationException(
                    f"移动后目录层级将超过 {settings.max_tree_depth} 层",
                    {"depth": new_depth + len(levels)},
                )

            resolution = self._resolve_into(
                db,
                owner_id=owner_id,
                parent=new_parent,
                name=node.name,
                exclude_id=node.id,
                duplicate_action=duplicate_action,
            )
            old_parent = fs_node_crud.find_by_id(db, node.parent_id) if node.parent_id is not None else None
            old_path, old_depth = node.path, node.depth
            materialized = path_materializer.materialize(resolution.name, new_parent)
            fs_node_crud.update_fields(
                db,
                node,
                {
                    "parent_id": new_parent_id,
                    "name": resolution.name,
                    "path": materialized.path,
                    "path_segments": materialized.segments,
                },
            )
            cascade_paths(
                db,
                node,
                old_path=old_path,
                old_depth=old_depth,
                descendants=[child for level in levels for child in level],
            )
            item_counter.decrement(db, old_parent)
            item_counter.increment(db, new_parent)
            logger.info("Moved node %s: %s -> %s", node.id, old_path, node.path)
            return node

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"move#{node_id}")

    # ----------------------------
    # 查询
    # ----------------------------
    def get_node(self, db: Session, *, owner_id: int, node_id: int, expect_dir: Optional[bool] = None) -> FsNode:
        return load_owned_node(db, owner_id=owner_id, node_id=node_id, expect_dir=expect_dir)

    def get_contents(self, db: Session, *, owner_id: int, parent_id: Optional[int] = None) -> tuple[Optional[FsNode], list[FsNode]]:
        """列出目录下未删除的直接子项：文件夹在前，其次按创建时间倒序。"""
        folder = None
        if parent_id is not None:
            folder = load_owned_node(db, owner_id=owner_id, node_id=parent_id, expect_dir=True)
        children = fs_node_crud.find_by_parent(db, owner_id=owner_id, parent_id=parent_id)
        return folder, children

    def list_pinned(self, db: Session, *, owner_id: int) -> list[FsNode]:
        pinned = fs_node_crud.find_pinned(db, owner_id=owner_id)
        flags = trash_service.annotate_deleted_ancestors(db, pinned)
        return [node for node in pinned if not flags[node.id]]

    # ----------------------------
    # 轻量属性
    # ----------------------------
    def set_pinned(
        self,
        db: Session,
        *,
        owner_id: int,
        node_id: int,
        pinned: bool,
        expect_dir: Optional[bool] = None,
    ) -> FsNode:
        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id, expect_dir=expect_dir)
            self._ensure_active(node)
            return fs_node_crud.update_fields(db, node, {"is_pinned": bool(pinned)})

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"pin#{node_id}")

    def set_color(self, db: Session, *, owner_id: int, folder_id: int, color: Optional[str]) -> FsNode:
        color = _validate_color(color)

        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=folder_id, expect_dir=True)
            self._ensure_active(node)
            return fs_node_crud.update_fields(db, node, {"color": color})

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"color#{folder_id}")

    def verify_item_count(self, db: Session, *, owner_id: int, folder_id: int) -> int:
        """按实际子项重新统计目录计数，修正漂移。"""
        def _action() -> int:
            folder = load_owned_node(db, owner_id=owner_id, node_id=folder_id, expect_dir=True)
            return item_counter.recount(db, folder)

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"recount#{folder_id}")

    # ----------------------------
    # 内部
    # ----------------------------
    @staticmethod
    def _ensure_active(node: FsNode) -> None:
        if node.is_deleted:
            raise ConflictException("该项目位于回收站中，请先恢复", {"id": node.id})

    def _resolve_into(
        self,
        db: Session,
        *,
        owner_id: int,
        parent: Optional[FsNode],
        name: str,
        exclude_id: Optional[int],
        duplicate_action: Optional[DuplicateActionEnum],
    ) -> NameResolution:
        """在目标目录中解析名称；replace 会把同名项目移入回收站，腾出的位置不受子项上限限制。"""
        resolution = name_resolver.resolve(
            db,
            name=name,
            owner_id=owner_id,
            parent_id=parent.id if parent is not None else None,
            exclude_id=exclude_id,
            duplicate_action=duplicate_action,
        )
        if resolution.replaced is not None:
            trash_service.move_to_trash(db, resolution.replaced)
        else:
            item_counter.ensure_capacity(db, parent)
        return resolution


tree_service = TreeService()
