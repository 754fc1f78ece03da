"""目录树节点：文件夹/文件/回收站 接口的请求与响应模型。"""

from typing import Optional

from pydantic import BaseModel, Field

from app.packages.drive.api.v1.schemas.common import ResponseEnvelope
from app.packages.drive.core.enums import DuplicateActionEnum


class FolderCreateBody(BaseModel):
    name: str = Field(..., min_length=1)
    parentId: Optional[int] = Field(default=None, ge=1)
    color: Optional[str] = None
    # 未指定时自动改名为 "X (2)"
    duplicateAction: Optional[DuplicateActionEnum] = DuplicateActionEnum.KEEP_BOTH


class FileCreateBody(BaseModel):
    name: str = Field(..., min_length=1)
    parentId: Optional[int] = Field(default=None, ge=1)
    size: int = Field(default=0, ge=0)
    storageKey: Optional[str] = Field(default=None, max_length=1024)
    mimeType: Optional[str] = Field(default=None, max_length=255)
    duplicateAction: Optional[DuplicateActionEnum] = DuplicateActionEnum.KEEP_BOTH


class RenameBody(BaseModel):
    name: str = Field(..., min_length=1)
    # 未指定时重名返回 409，并在 data 中给出建议名称
    duplicateAction: Optional[DuplicateActionEnum] = None


class MoveBody(BaseModel):
    parentId: Optional[int] = Field(default=None, ge=1)  # None = 根目录
    duplicateAction: Optional[DuplicateActionEnum] = None


class RestoreBody(BaseModel):
    moveToRoot: bool = False


class PinBody(BaseModel):
    isPinned: bool


class ColorBody(BaseModel):
    color: Optional[str] = None


NodeResponse = ResponseEnvelope[dict]
NodeListResponse = ResponseEnvelope[dict]
DeleteSummaryResponse = ResponseEnvelope[dict]
FlagResponse = ResponseEnvelope[dict]
