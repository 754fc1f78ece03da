"""子树遍历：以显式队列逐层展开后代，每层一次查询，不使用递归。"""

from __future__ import annotations

import threading
from collections import deque
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.logger import logger
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode


class SubtreeWalker:
    def iter_levels(self, db: Session, root: FsNode, *, cancel: Optional[threading.Event] = None) -> Iterator[list[FsNode]]:
        """从 ``root`` 的直接子项开始逐层产出后代（包含回收站中的节点）。

        每个节点只会出现一次；遇到异常数据形成的环时跳过已访问节点。
        """
        seen: set[int] = {root.id}
        frontier: deque[int] = deque([root.id]) if root.is_dir else deque()
        while frontier:
            if cancel is not None and cancel.is_set():
                return
            parent_ids = list(frontier)
            frontier.clear()
            level: list[FsNode] = []
            for child in fs_node_crud.find_children_of_many(db, parent_ids):
                if child.id in seen:
                    logger.warning("Cycle detected below node %s at node %s, skipped", root.id, child.id)
                    continue
                seen.add(child.id)
                level.append(child)
                if child.is_dir:
                    frontier.append(child.id)
            if level:
                yield level

    def descendants(self, db: Session, root: FsNode) -> list[FsNode]:
        return [node for level in self.iter_levels(db, root) for node in level]

    def height(self, db: Session, root: FsNode) -> int:
        """子树高度：仅有自身时为 0。"""
        return sum(1 for _ in self.iter_levels(db, root))

    def is_descendant(self, db: Session, ancestor: FsNode, candidate: FsNode) -> bool:
        """``candidate`` 是否位于 ``ancestor`` 的子树内。

        先看物化的祖先链；再沿 parent_id 向上确认，避免依赖可能漂移的冗余数据。
        """
        if ancestor.id in candidate.ancestor_ids():
            return True
        visited: set[int] = set()
        current_id = candidate.parent_id
        while current_id is not None and current_id not in visited:
            if current_id == ancestor.id:
                return True
            visited.add(current_id)
            parent = fs_node_crud.find_by_id(db, current_id)
            current_id = parent.parent_id if parent is not None else None
        return False


subtree_walker = SubtreeWalker()
