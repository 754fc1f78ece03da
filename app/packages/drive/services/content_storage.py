"""文件内容存储：目录树引擎只在彻底删除文件时调用 ``release`` 释放底层对象。

上传、下载、加密压缩等都在外部完成；这里统一封装本地磁盘与 S3 两种后端的删除能力。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import ClientError
from fastapi import status

from app.packages.drive.core.config import Settings, get_settings
from app.packages.drive.core.constants import HTTP_STATUS_BAD_REQUEST
from app.packages.drive.core.exceptions import AppException
from app.packages.drive.core.logger import logger


class ContentStorage:
    """内容存储接口。"""

    def release(self, storage_key: str) -> bool:
        """删除 ``storage_key`` 对应的对象；对象本就不存在时返回 ``False``。"""
        raise NotImplementedError


class NullContentStorage(ContentStorage):
    """不持有任何内容的后端（内容由其他系统回收时使用）。"""

    def release(self, storage_key: str) -> bool:
        logger.debug("Null content storage: skip release of %s", storage_key)
        return False


# ------------------------------------------
# 本地文件系统实现
# ------------------------------------------


class LocalContentStorage(ContentStorage):
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        if not self.root.exists():
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:  # pragma: no cover - 极端情况下可能失败
                raise AppException(f"无法创建本地根目录: {exc}", status.HTTP_500_INTERNAL_SERVER_ERROR) from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        candidate = (self.root / key.strip().lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法存储键: 越权访问", HTTP_STATUS_BAD_REQUEST) from exc
        return candidate

    def release(self, storage_key: str) -> bool:
        target = self._resolve(storage_key)
        if not target.is_file():
            return False
        target.unlink()
        return True


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3ContentStorage(ContentStorage):
    def __init__(
        self,
        *,
        bucket: str,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        prefix: Optional[str] = None,
    ):
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self._client = boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
        )

    # 拼接基于 path_prefix 的对象 key
    def _join_key(self, key: str) -> str:
        rel = key.lstrip("/")
        return f"{self.prefix}/{rel}" if self.prefix else rel

    def release(self, storage_key: str) -> bool:
        key = self._join_key(storage_key)
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise
        self._client.delete_object(Bucket=self.bucket, Key=key)
        return True


def build_content_storage(settings: Optional[Settings] = None) -> ContentStorage:
    settings = settings or get_settings()
    t = (settings.content_storage_type or "").upper()
    if t == "NONE":
        return NullContentStorage()
    if t == "LOCAL":
        return LocalContentStorage(settings.content_local_directory)
    if t == "S3":
        if not settings.content_bucket_name:
            raise AppException("S3 配置不完整：缺少 CONTENT_BUCKET_NAME", HTTP_STATUS_BAD_REQUEST)
        return S3ContentStorage(
            bucket=settings.content_bucket_name,
            region=settings.content_region,
            access_key_id=settings.content_access_key_id,
            secret_access_key=settings.content_secret_access_key,
            endpoint_url=settings.content_endpoint_url,
            prefix=settings.content_path_prefix,
        )
    raise AppException("不支持的内容存储类型", HTTP_STATUS_BAD_REQUEST)
