"""文件元数据路由：登记、查询、重命名、移动与置顶（内容上传下载不在此处）。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.nodes import FileCreateBody, MoveBody, NodeResponse, PinBody, RenameBody
from app.packages.drive.core.dependencies import get_current_owner_id, get_db
from app.packages.drive.core.responses import create_response
from app.packages.drive.services.node_serializer import serialize_node
from app.packages.drive.services.tree_service import tree_service

router = APIRouter(prefix="/files", tags=["files"])


@router.post("", response_model=NodeResponse)
def create_file(
    body: FileCreateBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.create_file(
        db,
        owner_id=owner_id,
        name=body.name,
        parent_id=body.parentId,
        size=body.size,
        storage_key=body.storageKey,
        mime_type=body.mimeType,
        duplicate_action=body.duplicateAction,
    )
    return create_response("登记文件成功", serialize_node(node))


@router.get("/{file_id}", response_model=NodeResponse)
def get_file(
    file_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.get_node(db, owner_id=owner_id, node_id=file_id, expect_dir=False)
    return create_response("获取文件成功", serialize_node(node))


@router.patch("/{file_id}/rename", response_model=NodeResponse)
def rename_file(
    file_id: int,
    body: RenameBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.rename(
        db,
        owner_id=owner_id,
        node_id=file_id,
        new_name=body.name,
        duplicate_action=body.duplicateAction,
        expect_dir=False,
    )
    return create_response("重命名成功", serialize_node(node))


@router.patch("/{file_id}/move", response_model=NodeResponse)
def move_file(
    file_id: int,
    body: MoveBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.move(
        db,
        owner_id=owner_id,
        node_id=file_id,
        new_parent_id=body.parentId,
        duplicate_action=body.duplicateAction,
        expect_dir=False,
    )
    return create_response("移动成功", serialize_node(node))


@router.patch("/{file_id}/pin", response_model=NodeResponse)
def pin_file(
    file_id: int,
    body: PinBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.set_pinned(db, owner_id=owner_id, node_id=file_id, pinned=body.isPinned, expect_dir=False)
    return create_response("更新置顶状态成功", serialize_node(node))
