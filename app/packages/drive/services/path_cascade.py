"""后代路径级联：节点改名或移动后，同步改写整棵子树的 path / path_segments。"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.packages.drive.core.logger import logger
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode
from app.packages.drive.services.path_materializer import path_materializer
from app.packages.drive.services.subtree_walker import subtree_walker


def cascade_paths(
    db: Session,
    node: FsNode,
    *,
    old_path: str,
    old_depth: int,
    descendants: Optional[Sequence[FsNode]] = None,
) -> int:
    """``node`` 自身已写入新的 name/path/path_segments 后调用，返回改写的后代数量。"""
    if not node.is_dir:
        return 0
    if descendants is None:
        descendants = subtree_walker.descendants(db, node)
    if not descendants:
        return 0
    patch = path_materializer.descendants_patch(node, old_depth=old_depth)
    modified = fs_node_crud.bulk_update_paths_under_prefix(
        db,
        descendants,
        old_prefix=old_path,
        new_prefix=node.path,
        patch=patch,
    )
    logger.info(
        "Cascaded paths below node %s: %s -> %s (%s/%s descendants updated)",
        node.id, old_path, node.path, modified, len(descendants),
    )
    return modified
