"""统一的文件系统节点模型（文件与目录合并）。

存储规则：
- parent_id：父目录 ID，NULL 表示位于用户根目录；
- path：以 '/' 开头、由祖先与自身的“净化名”拼接而成，例如 "/docs/work"，仅用于展示/导航；
- path_segments：祖先链 [{"id": .., "name": ..}]，从根到直接父目录，不含自身；
- is_dir：目录为 True，文件为 False；
- 对于目录：item_count 为直接子项（未删除）数量；color 有意义；
- 对于文件：size_bytes/extension/mime_type/storage_key 有意义。
"""

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.drive.models.base import Base, OwnedMixin, SoftDeleteMixin, TimestampMixin


class FsNode(OwnedMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "fs_nodes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    # 展示名：保留原始大小写与字符
    name: Mapped[str] = mapped_column(String(255), index=True)
    is_dir: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    path: Mapped[str] = mapped_column(String(4096), index=True)
    path_segments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 目录专属
    color: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    item_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # 文件专属
    size_bytes: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    extension: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    storage_key: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    @property
    def depth(self) -> int:
        """节点所在层级：根目录下的节点为 1。"""
        return len(self.path_segments or []) + 1

    def ancestor_ids(self) -> list[int]:
        return [int(seg["id"]) for seg in (self.path_segments or [])]

    def __repr__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"<FsNode {self.id} {kind} owner={self.owner_id} path={self.path!r}>"


# 同一用户、同一父目录下，未删除节点的名称唯一；根目录的 parent_id 为 NULL，用 0 参与比较。
Index(
    "uq_fs_nodes_active_sibling_name",
    FsNode.owner_id,
    func.coalesce(FsNode.parent_id, 0),
    FsNode.name,
    unique=True,
    sqlite_where=FsNode.deleted_at.is_(None),
    postgresql_where=FsNode.deleted_at.is_(None),
)
Index("ix_fs_nodes_owner_parent", FsNode.owner_id, FsNode.parent_id)
