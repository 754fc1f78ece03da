"""回收站：软删除、恢复、彻底删除与清空。

只有用户直接删除的那个节点会写入 ``deleted_at``；它的后代保持原样，
是否“实际处于回收站”在读取时根据祖先链推导（见 ``has_deleted_ancestor``）。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.enums import DuplicateActionEnum
from app.packages.drive.core.exceptions import CascadeException, ConflictException
from app.packages.drive.core.logger import logger
from app.packages.drive.core.timezone import now as tz_now
from app.packages.drive.crud.fs_node import fs_node_crud
from app.packages.drive.models.fs_node import FsNode
from app.packages.drive.services.content_storage import ContentStorage, build_content_storage
from app.packages.drive.services.item_counter import item_counter
from app.packages.drive.services.name_resolver import name_resolver
from app.packages.drive.services.node_lookup import load_owned_node
from app.packages.drive.services.owner_lock import owner_lock_service
from app.packages.drive.services.path_cascade import cascade_paths
from app.packages.drive.services.path_materializer import path_materializer
from app.packages.drive.services.subtree_walker import subtree_walker
from app.packages.drive.services.unit_of_work import run_in_transaction


@dataclass
class PurgeResult:
    deleted_ids: list[int] = field(default_factory=list)
    folder_count: int = 0
    file_count: int = 0
    release_failures: list[dict[str, Any]] = field(default_factory=list)

    def merge(self, other: "PurgeResult") -> None:
        self.deleted_ids.extend(other.deleted_ids)
        self.folder_count += other.folder_count
        self.file_count += other.file_count
        self.release_failures.extend(other.release_failures)


class TrashService:
    def __init__(self, content_storage: Optional[ContentStorage] = None) -> None:
        self._content_storage = content_storage

    @property
    def content_storage(self) -> ContentStorage:
        if self._content_storage is None:
            self._content_storage = build_content_storage()
        return self._content_storage

    @content_storage.setter
    def content_storage(self, value: Optional[ContentStorage]) -> None:
        self._content_storage = value

    # ----------------------------
    # 状态推导
    # ----------------------------
    def has_deleted_ancestor(self, db: Session, node: FsNode) -> bool:
        return bool(fs_node_crud.deleted_ids_among(db, node.ancestor_ids()))

    def is_effectively_trashed(self, db: Session, node: FsNode) -> bool:
        return node.deleted_at is not None or self.has_deleted_ancestor(db, node)

    def annotate_deleted_ancestors(self, db: Session, nodes: list[FsNode]) -> dict[int, bool]:
        """批量判断一组节点是否有祖先在回收站中：所有祖先 ID 合并为一次查询。"""
        all_ancestors: set[int] = set()
        for node in nodes:
            all_ancestors.update(node.ancestor_ids())
        deleted = fs_node_crud.deleted_ids_among(db, all_ancestors)
        return {node.id: any(aid in deleted for aid in node.ancestor_ids()) for node in nodes}

    def check_deleted_ancestor(self, db: Session, *, owner_id: int, node_id: int) -> bool:
        node = load_owned_node(db, owner_id=owner_id, node_id=node_id)
        return self.has_deleted_ancestor(db, node)

    # ----------------------------
    # 软删除
    # ----------------------------
    def move_to_trash(self, db: Session, node: FsNode) -> FsNode:
        """标记节点进入回收站并扣减父目录计数；不提交，供其他变更在同一事务中复用。"""
        if node.is_deleted:
            raise ConflictException("该项目已在回收站中", {"id": node.id})
        fs_node_crud.update_fields(db, node, {"deleted_at": tz_now()})
        if node.parent_id is not None:
            item_counter.decrement(db, fs_node_crud.find_by_id(db, node.parent_id))
        logger.info("Node %s moved to trash (owner=%s, path=%s)", node.id, node.owner_id, node.path)
        return node

    def soft_delete(self, db: Session, *, owner_id: int, node_id: int) -> FsNode:
        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id)
            return self.move_to_trash(db, node)

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"soft_delete#{node_id}")

    # ----------------------------
    # 恢复
    # ----------------------------
    def restore(self, db: Session, *, owner_id: int, node_id: int, move_to_root: bool = False) -> FsNode:
        """把节点移出回收站。

        原父目录已不存在（或调用方要求）时恢复到根目录并重算整棵子树的路径；
        原位置已有同名项目时自动改名（"X (2)"）。祖先不会被连带恢复。
        """

        def _action() -> FsNode:
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id)
            if not node.is_deleted:
                raise ConflictException("该项目不在回收站中", {"id": node.id})

            parent = fs_node_crud.find_by_id(db, node.parent_id) if node.parent_id is not None else None
            to_root = move_to_root or (
                node.parent_id is not None and (parent is None or parent.owner_id != owner_id)
            )
            target_parent = None if to_root else parent
            target_parent_id = None if to_root else node.parent_id

            resolution = name_resolver.resolve(
                db,
                name=node.name,
                owner_id=owner_id,
                parent_id=target_parent_id,
                exclude_id=node.id,
                duplicate_action=DuplicateActionEnum.KEEP_BOTH,
            )
            item_counter.ensure_capacity(db, target_parent)

            old_path, old_depth = node.path, node.depth
            renamed = resolution.name != node.name
            fields: dict[str, Any] = {"deleted_at": None}
            relocated = target_parent_id != node.parent_id or renamed
            if relocated:
                materialized = path_materializer.materialize(resolution.name, target_parent)
                fields.update(
                    parent_id=target_parent_id,
                    name=resolution.name,
                    path=materialized.path,
                    path_segments=materialized.segments,
                )
            fs_node_crud.update_fields(db, node, fields)
            if relocated:
                cascade_paths(db, node, old_path=old_path, old_depth=old_depth)
            item_counter.increment(db, target_parent)
            logger.info(
                "Node %s restored to %s (owner=%s, renamed=%s)",
                node.id, node.path, owner_id, renamed,
            )
            return node

        with owner_lock_service.hold(owner_id):
            return run_in_transaction(db, _action, what=f"restore#{node_id}")

    # ----------------------------
    # 彻底删除
    # ----------------------------
    def permanent_delete(
        self,
        db: Session,
        *,
        owner_id: int,
        node_id: int,
        cancel: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        """物理删除节点及其整棵子树（无论是否在回收站中），返回删除统计。"""
        with owner_lock_service.hold(owner_id):
            node = load_owned_node(db, owner_id=owner_id, node_id=node_id)
            result = self._purge(db, node, cancel=cancel)
        return self._summary(result)

    def empty_trash(
        self,
        db: Session,
        *,
        owner_id: int,
        cancel: Optional[threading.Event] = None,
    ) -> dict[str, Any]:
        """彻底删除当前用户回收站中的全部内容。

        只对“最外层”的回收站节点执行级联删除：祖先也在回收站中的节点会随祖先一起删除。
        """
        total = PurgeResult()
        with owner_lock_service.hold(owner_id):
            trashed = fs_node_crud.find_trashed(db, owner_id=owner_id)
            trashed_ids = {node.id for node in trashed}
            tops = [
                node
                for node in sorted(trashed, key=lambda n: (n.depth, n.id))
                if not trashed_ids.intersection(node.ancestor_ids())
            ]
            for node in tops:
                try:
                    total.merge(self._purge(db, node, cancel=cancel))
                except CascadeException as exc:
                    progress = dict(exc.data or {})
                    progress["deletedIds"] = total.deleted_ids + list(progress.get("deletedIds") or [])
                    exc.data = progress
                    raise
        logger.info(
            "Trash emptied for owner %s: %s folders, %s files",
            owner_id, total.folder_count, total.file_count,
        )
        return self._summary(total)

    def list_trash(self, db: Session, *, owner_id: int) -> list[tuple[FsNode, bool]]:
        """回收站列表：直接删除的节点，附带其是否还有祖先也在回收站中。"""
        trashed = fs_node_crud.find_trashed(db, owner_id=owner_id)
        flags = self.annotate_deleted_ancestors(db, trashed)
        return [(node, flags[node.id]) for node in trashed]

    def _purge(self, db: Session, root: FsNode, *, cancel: Optional[threading.Event]) -> PurgeResult:
        """自底向上分批删除：每批单独提交，中途失败时已删除的都是叶侧节点，重新执行即可继续。"""
        batch_size = max(int(get_settings().permanent_delete_batch_size or 1), 1)

        levels = list(subtree_walker.iter_levels(db, root, cancel=cancel))
        if cancel is not None and cancel.is_set():
            raise CascadeException("彻底删除已取消", {"deletedIds": [], "remaining": None, "cancelled": True})

        # 提交后 ORM 对象会过期，预先取出删除与释放所需的字段
        ordered = [node for level in reversed(levels) for node in level] + [root]
        entries = [(node.id, node.is_dir, node.storage_key) for node in ordered]
        root_id = root.id
        root_parent_id = root.parent_id if root.deleted_at is None else None

        result = PurgeResult()
        for start in range(0, len(entries), batch_size):
            if cancel is not None and cancel.is_set():
                raise CascadeException(
                    "彻底删除已取消，重新执行可继续删除剩余部分",
                    {"deletedIds": result.deleted_ids, "remaining": len(entries) - start, "cancelled": True},
                )
            batch = entries[start:start + batch_size]
            ids = [entry[0] for entry in batch]
            try:
                if root_id in ids and root_parent_id is not None:
                    item_counter.decrement(db, fs_node_crud.find_by_id(db, root_parent_id))
                fs_node_crud.delete_many(db, ids)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Permanent delete of node %s failed after %s nodes", root_id, start, exc_info=exc)
                raise CascadeException(
                    "彻底删除中途失败，重新执行可继续删除剩余部分",
                    {"deletedIds": result.deleted_ids, "remaining": len(entries) - start, "cancelled": False},
                ) from exc

            result.deleted_ids.extend(ids)
            for node_id, is_dir, storage_key in batch:
                if is_dir:
                    result.folder_count += 1
                    continue
                result.file_count += 1
                if storage_key:
                    self._release(node_id, storage_key, result)

        logger.info(
            "Node %s permanently deleted with %s descendants", root_id, len(result.deleted_ids) - 1,
        )
        return result

    def _release(self, node_id: int, storage_key: str, result: PurgeResult) -> None:
        # 元数据已提交删除：内容释放失败只记录并返回给调用方，由外部清理任务兜底
        try:
            self.content_storage.release(storage_key)
        except Exception as exc:
            logger.warning("Failed to release content %s of node %s", storage_key, node_id, exc_info=True)
            result.release_failures.append({"id": node_id, "storageKey": storage_key, "error": str(exc)})

    @staticmethod
    def _summary(result: PurgeResult) -> dict[str, Any]:
        return {
            "deletedIds": result.deleted_ids,
            "deletedFolderCount": result.folder_count,
            "deletedFileCount": result.file_count,
            "totalDeleted": len(result.deleted_ids),
            "releaseFailures": result.release_failures,
        }


trash_service = TrashService()
