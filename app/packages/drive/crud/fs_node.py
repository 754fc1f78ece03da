"""FsNode CRUD：目录树引擎依赖的节点持久化原语（按父查询、批量路径更新、批量删除）。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import case, delete, func
from sqlalchemy.orm import Session

from app.packages.drive.crud.base import CRUDBase
from app.packages.drive.models.fs_node import FsNode
from app.packages.drive.utils.path_utils import build_path, replace_prefix


@dataclass
class SegmentsPatch:
    """后代 path_segments 的改写规则：去掉前 ``strip`` 项，换成 ``head``。

    重命名：strip = 被改节点的层级，head = 其祖先链 + 新名称；
    移动：strip 同上，head = 新父目录的祖先链 + 新父目录 + 被移动节点。
    """

    strip: int
    head: list[dict[str, Any]] = field(default_factory=list)

    def apply(self, segments: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        return [dict(seg) for seg in self.head] + [dict(seg) for seg in segments[self.strip:]]


class CRUDFsNode(CRUDBase[FsNode]):
    # ----------------------------
    # 查询
    # ----------------------------
    def find_by_id(self, db: Session, id: int) -> Optional[FsNode]:
        """按 ID 查询，包含已在回收站中的节点。"""
        return self.get(db, id, include_deleted=True)

    def find_by_ids(self, db: Session, ids: Iterable[int]) -> list[FsNode]:
        id_list = list({int(i) for i in ids})
        if not id_list:
            return []
        return self.query(db, include_deleted=True).filter(FsNode.id.in_(id_list)).all()

    def find_by_parent(
        self,
        db: Session,
        *,
        owner_id: int,
        parent_id: Optional[int],
        include_deleted: bool = False,
    ) -> list[FsNode]:
        q = self.query(db, include_deleted=include_deleted).filter(FsNode.owner_id == owner_id)
        q = q.filter(FsNode.parent_id.is_(None) if parent_id is None else FsNode.parent_id == parent_id)
        return q.order_by(FsNode.is_dir.desc(), FsNode.create_time.desc(), FsNode.id.desc()).all()

    def find_children_of_many(self, db: Session, parent_ids: Sequence[int]) -> list[FsNode]:
        """一次查询多个父目录的直接子节点（含回收站中的），供逐层遍历子树使用。"""
        if not parent_ids:
            return []
        return (
            self.query(db, include_deleted=True)
            .filter(FsNode.parent_id.in_(list(parent_ids)))
            .order_by(FsNode.id)
            .all()
        )

    def find_active_sibling(
        self,
        db: Session,
        *,
        owner_id: int,
        parent_id: Optional[int],
        name: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[FsNode]:
        q = (
            self.query(db)
            .filter(FsNode.owner_id == owner_id)
            .filter(FsNode.parent_id.is_(None) if parent_id is None else FsNode.parent_id == parent_id)
            .filter(FsNode.name == name)
        )
        if exclude_id is not None:
            q = q.filter(FsNode.id != exclude_id)
        return q.first()

    def count_active_children(self, db: Session, parent_id: int) -> int:
        return (
            db.query(func.count(FsNode.id))
            .filter(FsNode.parent_id == parent_id)
            .filter(FsNode.deleted_at.is_(None))
            .scalar()
            or 0
        )

    def deleted_ids_among(self, db: Session, ids: Iterable[int]) -> set[int]:
        """返回给定 ID 中处于回收站状态的那部分（单次多 ID 查询）。"""
        id_list = list({int(i) for i in ids})
        if not id_list:
            return set()
        rows = (
            db.query(FsNode.id)
            .filter(FsNode.id.in_(id_list))
            .filter(FsNode.deleted_at.is_not(None))
            .all()
        )
        return {row[0] for row in rows}

    def find_trashed(self, db: Session, *, owner_id: int) -> list[FsNode]:
        return (
            self.query(db, include_deleted=True)
            .filter(FsNode.owner_id == owner_id)
            .filter(FsNode.deleted_at.is_not(None))
            .order_by(FsNode.deleted_at.desc(), FsNode.id.desc())
            .all()
        )

    def find_pinned(self, db: Session, *, owner_id: int) -> list[FsNode]:
        return (
            self.query(db)
            .filter(FsNode.owner_id == owner_id)
            .filter(FsNode.is_pinned.is_(True))
            .order_by(FsNode.is_dir.desc(), FsNode.update_time.desc(), FsNode.id.desc())
            .all()
        )

    # ----------------------------
    # 写入
    # ----------------------------
    def insert(self, db: Session, obj_in: dict[str, Any], *, auto_commit: bool = False) -> FsNode:
        return self.create(db, obj_in, auto_commit=auto_commit)

    def update_fields(self, db: Session, node: FsNode, fields: dict[str, Any], *, auto_commit: bool = False) -> FsNode:
        for key, value in fields.items():
            setattr(node, key, value)
        return self.save(db, node, auto_commit=auto_commit)

    def adjust_item_count(self, db: Session, folder: FsNode, delta: int) -> None:
        """在数据库侧原子地增减计数，递减时不低于 0。"""
        if delta == 0:
            return
        expr = FsNode.item_count + delta
        folder.item_count = case((expr < 0, 0), else_=expr) if delta < 0 else expr
        db.add(folder)
        db.flush()

    def bulk_update_paths_under_prefix(
        self,
        db: Session,
        nodes: Sequence[FsNode],
        *,
        old_prefix: str,
        new_prefix: str,
        patch: SegmentsPatch,
    ) -> int:
        """改写一批后代节点的 path 与 path_segments，返回实际变更的数量。

        ``nodes`` 由调用方按 parent_id 遍历得到，用于限定范围：不同名称净化后可能得到相同的
        path 片段，单靠路径前缀匹配会误伤兄弟子树。path 不以旧前缀开头（历史数据漂移）时，
        直接按新的祖先链重算。
        """
        modified = 0
        for node in nodes:
            segments = patch.apply(node.path_segments or [])
            path = replace_prefix(node.path, old_prefix, new_prefix)
            if path is None:
                path = build_path(segments, node.name)
            if path == node.path and segments == (node.path_segments or []):
                continue
            node.path = path
            node.path_segments = segments
            db.add(node)
            modified += 1
        if modified:
            db.flush()
        return modified

    def delete_one(self, db: Session, node: FsNode) -> None:
        self.hard_delete(db, node)

    def delete_many(self, db: Session, ids: Sequence[int]) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        result = db.execute(
            delete(FsNode).where(FsNode.id.in_(id_list)).execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)


fs_node_crud = CRUDFsNode(FsNode)
