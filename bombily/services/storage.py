"""Translate storage failures into ``CollaboratorUnavailable``."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from bombily.domain.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while trying to %s", action)
        raise CollaboratorUnavailable(
            "Storage is unavailable, please try again"
        ) from exc
