"""业务包元数据定义：主应用只通过该结构与具体业务包交互。"""

from __future__ import annotations

from dataclasses import dataclass
from logging import Logger
from typing import Awaitable, Callable

from fastapi import APIRouter


@dataclass(frozen=True)
class AppPackage:
    name: str
    api_router: APIRouter
    get_settings: Callable[[], object]
    setup_logging: Callable[[], None]
    logger: Logger
    # 启动时建表（含部分唯一索引）
    init_db: Callable[[], None]
    create_response: Callable[..., dict]
    http_exception_handler: Callable[..., Awaitable[object]]
    generic_exception_handler: Callable[..., Awaitable[object]]
