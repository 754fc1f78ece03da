"""回收站路由：软删除、恢复、彻底删除、清空，以及置顶列表。

软删除/恢复/彻底删除对文件和文件夹通用，挂在 ``/nodes`` 下。
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.nodes import (
    DeleteSummaryResponse,
    NodeListResponse,
    NodeResponse,
    RestoreBody,
)
from app.packages.drive.core.dependencies import get_current_owner_id, get_db
from app.packages.drive.core.responses import create_response
from app.packages.drive.services.node_serializer import serialize_node, serialize_nodes
from app.packages.drive.services.trash_service import trash_service
from app.packages.drive.services.tree_service import tree_service

router = APIRouter(tags=["trash"])


@router.delete("/nodes/{node_id}", response_model=NodeResponse)
def soft_delete_node(
    node_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = trash_service.soft_delete(db, owner_id=owner_id, node_id=node_id)
    return create_response("已移入回收站", serialize_node(node))


@router.post("/nodes/{node_id}/restore", response_model=NodeResponse)
def restore_node(
    node_id: int,
    body: Optional[RestoreBody] = Body(default=None),
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    move_to_root = bool(body and body.moveToRoot)
    node = trash_service.restore(db, owner_id=owner_id, node_id=node_id, move_to_root=move_to_root)
    return create_response("恢复成功", serialize_node(node))


@router.delete("/nodes/{node_id}/permanent", response_model=DeleteSummaryResponse)
def permanent_delete_node(
    node_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    summary = trash_service.permanent_delete(db, owner_id=owner_id, node_id=node_id)
    return create_response("彻底删除成功", summary)


@router.get("/trash/contents", response_model=NodeListResponse)
def list_trash(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    entries = trash_service.list_trash(db, owner_id=owner_id)
    items = [serialize_node(node, has_deleted_ancestor=flag) for node, flag in entries]
    return create_response("获取回收站内容成功", {"items": items, "total": len(items)})


@router.delete("/trash/empty", response_model=DeleteSummaryResponse)
def empty_trash(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    summary = trash_service.empty_trash(db, owner_id=owner_id)
    return create_response("回收站已清空", summary)


@router.get("/pins/contents", response_model=NodeListResponse)
def list_pinned(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    nodes = tree_service.list_pinned(db, owner_id=owner_id)
    return create_response("获取置顶列表成功", {"items": serialize_nodes(nodes), "total": len(nodes)})
