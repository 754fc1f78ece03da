"""节点加载与归属校验：目录树各项操作共用的前置检查。"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.exceptions import ForbiddenException, NotFoundException
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode


def load_owned_node(
    db: Session,
    *,
    owner_id: int,
    node_id: int,
    expect_dir: Optional[bool] = None,
) -> FsNode:
    """按 ID 加载节点（含回收站中的），不存在抛 404，属于他人抛 403。

    ``expect_dir`` 为 True/False 时分别要求节点是目录/文件，类型不符按不存在处理。
    """
    node = fs_node_crud.find_by_id(db, node_id)
    if node is None:
        raise NotFoundException("节点不存在或已被彻底删除", {"id": node_id})
    if node.owner_id != owner_id:
        raise ForbiddenException("无权访问该节点", {"id": node_id})
    if expect_dir is True and not node.is_dir:
        raise NotFoundException("文件夹不存在", {"id": node_id})
    if expect_dir is False and node.is_dir:
        raise NotFoundException("文件不存在", {"id": node_id})
    return node


def load_parent_folder(db: Session, *, owner_id: int, parent_id: Optional[int]) -> Optional[FsNode]:
    """加载目标父目录：必须存在、未删除、是目录且属于当前用户；``None`` 表示根目录。"""
    if parent_id is None:
        return None
    parent = fs_node_crud.find_by_id(db, parent_id)
    if (
        parent is None
        or parent.owner_id != owner_id
        or not parent.is_dir
        or parent.deleted_at is not None
    ):
        raise NotFoundException("父目录不存在", {"parentId": parent_id})
    return parent
