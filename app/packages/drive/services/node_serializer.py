"""节点序列化：把 FsNode 转换为接口返回的 camelCase 字典。"""

from __future__ import annotations

from typing import Any, Optional

from app.packages.drive.core.enums import NodeTypeEnum
from app.packages.drive.core.timezone import format_datetime
from app.packages.drive.models.fs_node import FsNode


def serialize_node(node: FsNode, *, has_deleted_ancestor: Optional[bool] = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": node.id,
        "ownerId": node.owner_id,
        "parentId": node.parent_id,
        "name": node.name,
        "type": (NodeTypeEnum.FOLDER if node.is_dir else NodeTypeEnum.FILE).value,
        "path": node.path,
        "pathSegments": [{"id": int(seg["id"]), "name": seg["name"]} for seg in (node.path_segments or [])],
        "isPinned": bool(node.is_pinned),
        "createdAt": format_datetime(node.create_time),
        "updatedAt": format_datetime(node.update_time),
        "deletedAt": format_datetime(node.deleted_at),
    }
    if node.is_dir:
        data["color"] = node.color
        data["itemCount"] = node.item_count or 0
    else:
        data["size"] = node.size_bytes or 0
        data["extension"] = node.extension
        data["mimeType"] = node.mime_type
        data["storageKey"] = node.storage_key
    if has_deleted_ancestor is not None:
        data["hasDeletedAncestor"] = has_deleted_ancestor
    return data


def serialize_nodes(nodes: list[FsNode]) -> list[dict[str, Any]]:
    return [serialize_node(node) for node in nodes]
