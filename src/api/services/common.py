"""Helpers shared by the request-scoped services."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import InternalError
from src.db.exceptions import RepositoryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pagination:
    """Page position within a result set."""

    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Turn unexpected store failures into a generic InternalError.

    ``AppError`` subclasses pass through untouched. Callers catch
    ``DuplicateRecordError`` themselves, inside the block, when a unique
    violation has a domain meaning.
    """
    try:
        yield
    except (SQLAlchemyError, RepositoryError) as e:
        logger.exception(f"Failed to {action}")
        raise InternalError(f"Failed to {action}", cause=e) from e
