"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from app.packages.drive.db import session as db_session
from app.packages.drive.models.base import Base
from app.packages.drive.models.fs_node import FsNode  # noqa: F401 - ensure table creation

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables (and the partial unique index) if they do not exist."""
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("Database schema ensured for %s", db_session.engine.url.render_as_string(hide_password=True))
