"""同级重名处理：保证同一用户、同一父目录下未删除节点的名称唯一。

该检查属于“先查后写”，并发插入时仍可能撞名；数据库上的部分唯一索引作为兜底，
服务层捕获 IntegrityError 后会重新走一遍解析（见 tree_service）。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.constants import RESERVED_NAMES
from app.packages.drive.core.enums import DuplicateActionEnum
from app.packages.drive.core.exceptions import ConflictException, ValidationException
from app.packages.drive.core.logger import logger
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode


@dataclass
class NameResolution:
    name: str
    # duplicate_action=replace 时被顶替的同名节点，由调用方移入回收站
    replaced: Optional[FsNode] = None


def validate_name(name: Optional[str]) -> str:
    """校验名称语法：1~255 个字符、受限字符集、不能全为空白、不能是 "." 或 ".."。"""
    settings = get_settings()
    if name is None or not name.strip():
        raise ValidationException("名称不能为空")
    if len(name) > settings.max_name_length:
        raise ValidationException(f"名称长度不能超过 {settings.max_name_length} 个字符")
    if name in RESERVED_NAMES:
        raise ValidationException("名称不能为 \".\" 或 \"..\"")
    if not re.fullmatch(settings.name_pattern, name):
        raise ValidationException("名称包含非法字符", {"name": name})
    return name


class NameResolver:
    def resolve(
        self,
        db: Session,
        *,
        name: str,
        owner_id: int,
        parent_id: Optional[int],
        exclude_id: Optional[int] = None,
        duplicate_action: Optional[DuplicateActionEnum] = None,
    ) -> NameResolution:
        conflict = fs_node_crud.find_active_sibling(
            db, owner_id=owner_id, parent_id=parent_id, name=name, exclude_id=exclude_id
        )
        if conflict is None:
            return NameResolution(name=name)

        if duplicate_action == DuplicateActionEnum.REPLACE:
            return NameResolution(name=name, replaced=conflict)

        suggestion = self._next_free_name(
            db, name=name, owner_id=owner_id, parent_id=parent_id, exclude_id=exclude_id
        )
        if duplicate_action == DuplicateActionEnum.KEEP_BOTH:
            logger.debug("Name %r taken under parent=%s, resolved to %r", name, parent_id, suggestion)
            return NameResolution(name=suggestion)

        raise ConflictException(
            f"同一目录下已存在名为 \"{name}\" 的项目",
            {"name": name, "conflictId": conflict.id, "suggestedName": suggestion},
        )

    def _next_free_name(
        self,
        db: Session,
        *,
        name: str,
        owner_id: int,
        parent_id: Optional[int],
        exclude_id: Optional[int],
    ) -> str:
        settings = get_settings()
        for n in range(2, settings.name_resolve_max_attempts + 2):
            candidate = self.format_duplicate(name, n)
            taken = fs_node_crud.find_active_sibling(
                db, owner_id=owner_id, parent_id=parent_id, name=candidate, exclude_id=exclude_id
            )
            if taken is None:
                return candidate
        raise ConflictException(
            f"无法为 \"{name}\" 生成不重复的名称，请更换名称后重试",
            {"name": name, "attempts": settings.name_resolve_max_attempts},
        )

    def format_duplicate(self, name: str, n: int) -> str:
        settings = get_settings()
        candidate = settings.duplicate_name_format.format(name=name, n=n)
        overflow = len(candidate) - settings.max_name_length
        if overflow > 0:
            # 追加序号后超长：截断原名而不是序号
            candidate = settings.duplicate_name_format.format(name=name[: len(name) - overflow].rstrip(), n=n)
        return candidate


name_resolver = NameResolver()
