"""ORM 模型导出。"""

from app.packages.drive.models.base import Base
from app.packages.drive.models.fs_node import FsNode

__all__ = ["Base", "FsNode"]
