"""Record persistence: Postgres (preferred) or file-based fallback."""

from __future__ import annotations

import logging

from posegen.config import get_settings
from posegen.repository.base import Repository
from posegen.repository.file_store import FileRepository

logger = logging.getLogger(__name__)

_repository: Repository | None = None


def get_repository() -> Repository:
    """Return singleton repository (Postgres if configured, else file-based)."""
    global _repository
    if _repository is not None:
        return _repository
    settings = get_settings()
    if settings.posegen_database_url:
        try:
            from posegen.repository.postgres import PostgresRepository

            _repository = PostgresRepository(settings.posegen_database_url)
            logger.info("Using Postgres repository")
        except Exception as e:
            logger.warning("Postgres repository failed (%s), falling back to file store", e)
            _repository = FileRepository(settings.data_dir)
    else:
        _repository = FileRepository(settings.data_dir)
        logger.info("Using file-based repository (POSEGEN_DATA_DIR/db)")
    return _repository


__all__ = ["FileRepository", "Repository", "get_repository"]
