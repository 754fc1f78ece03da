"""文件夹路由：创建、浏览、重命名、移动、置顶与颜色。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.nodes import (
    ColorBody,
    FlagResponse,
    FolderCreateBody,
    MoveBody,
    NodeListResponse,
    NodeResponse,
    PinBody,
    RenameBody,
)
from app.packages.drive.core.dependencies import get_current_owner_id, get_db
from app.packages.drive.core.responses import create_response
from app.packages.drive.services.node_serializer import serialize_node, serialize_nodes
from app.packages.drive.services.trash_service import trash_service
from app.packages.drive.services.tree_service import tree_service

router = APIRouter(prefix="/folders", tags=["folders"])


@router.post("", response_model=NodeResponse)
def create_folder(
    body: FolderCreateBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.create_folder(
        db,
        owner_id=owner_id,
        name=body.name,
        parent_id=body.parentId,
        color=body.color,
        duplicate_action=body.duplicateAction,
    )
    return create_response("创建文件夹成功", serialize_node(node))


def _contents(db: Session, owner_id: int, folder_id: int | None) -> dict:
    folder, children = tree_service.get_contents(db, owner_id=owner_id, parent_id=folder_id)
    return create_response(
        "获取目录内容成功",
        {
            "folder": serialize_node(folder) if folder is not None else None,
            "items": serialize_nodes(children),
            "total": len(children),
        },
    )


@router.get("/contents", response_model=NodeListResponse)
def get_root_contents(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    return _contents(db, owner_id, None)


@router.get("/contents/{folder_id}", response_model=NodeListResponse)
def get_folder_contents(
    folder_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    return _contents(db, owner_id, folder_id)


@router.get("/{folder_id}", response_model=NodeResponse)
def get_folder(
    folder_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.get_node(db, owner_id=owner_id, node_id=folder_id, expect_dir=True)
    return create_response("获取文件夹成功", serialize_node(node))


@router.get("/{folder_id}/has-deleted-ancestor", response_model=FlagResponse)
def has_deleted_ancestor(
    folder_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    flag = trash_service.check_deleted_ancestor(db, owner_id=owner_id, node_id=folder_id)
    return create_response("查询成功", {"id": folder_id, "hasDeletedAncestor": flag})


@router.patch("/{folder_id}/rename", response_model=NodeResponse)
def rename_folder(
    folder_id: int,
    body: RenameBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.rename(
        db,
        owner_id=owner_id,
        node_id=folder_id,
        new_name=body.name,
        duplicate_action=body.duplicateAction,
        expect_dir=True,
    )
    return create_response("重命名成功", serialize_node(node))


@router.patch("/{folder_id}/move", response_model=NodeResponse)
def move_folder(
    folder_id: int,
    body: MoveBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.move(
        db,
        owner_id=owner_id,
        node_id=folder_id,
        new_parent_id=body.parentId,
        duplicate_action=body.duplicateAction,
        expect_dir=True,
    )
    return create_response("移动成功", serialize_node(node))


@router.patch("/{folder_id}/pin", response_model=NodeResponse)
def pin_folder(
    folder_id: int,
    body: PinBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.set_pinned(db, owner_id=owner_id, node_id=folder_id, pinned=body.isPinned, expect_dir=True)
    return create_response("更新置顶状态成功", serialize_node(node))


@router.patch("/{folder_id}/color", response_model=NodeResponse)
def color_folder(
    folder_id: int,
    body: ColorBody,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id),
):
    node = tree_service.set_color(db, owner_id=owner_id, folder_id=folder_id, color=body.color)
    return create_response("更新颜色成功", serialize_node(node))
