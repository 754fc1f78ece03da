"""事务封装：一次目录变更（目标节点 + 后代级联 + 计数）只提交一次。

同级名称的部分唯一索引是并发撞名的兜底：提交时触发 IntegrityError 则回滚，
重新执行整个变更（其中包含名称解析），超过重试上限后返回 409。
"""

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import ConflictException
from app.packages.drive.core.logger import logger

T = TypeVar("T")


def run_in_transaction(db: Session, action: Callable[[], T], *, what: str) -> T:
    limit = max(int(get_settings().unique_retry_limit or 1), 1)
    for attempt in range(1, limit + 1):
        try:
            result = action()
            db.commit()
            return result
        except IntegrityError:
            db.rollback()
            logger.warning("%s hit the sibling-name constraint (attempt %s/%s)", what, attempt, limit)
        except Exception:
            db.rollback()
            raise
    raise ConflictException("同一目录下存在并发的同名操作，请稍后重试", {"operation": what})
