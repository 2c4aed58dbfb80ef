from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from numscheme.core.exceptions import NoUsageError, StoreUnavailableError
from numscheme.db.session import SessionLocal
from numscheme.models.counter_pattern import SchemeCounterPattern
from numscheme.schemas.counter_pattern import Pattern

logger = logging.getLogger(__name__)


def read_patterns(
    scheme_id: int,
    *,
    session_factory: sessionmaker = SessionLocal,
) -> list[Pattern]:
    """
    Read every prefix/suffix combination the scheme has produced, with the
    next counter value recorded for each.

    The session is scoped to this call and closed on every exit path.
    """
    stmt = (
        select(SchemeCounterPattern)
        .where(SchemeCounterPattern.scheme_id == scheme_id)
        .order_by(SchemeCounterPattern.id)
    )
    try:
        with session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            patterns = [Pattern.model_validate(row) for row in rows]
    except SQLAlchemyError as exc:
        logger.error("pattern_store_unavailable scheme_id=%s error=%s", scheme_id, exc)
        raise StoreUnavailableError(
            f"Usage store query failed for scheme {scheme_id}: {exc}"
        ) from exc

    if not patterns:
        raise NoUsageError(
            f"Scheme {scheme_id} has never issued an identifier; nothing to preserve.",
            scheme_id=scheme_id,
        )

    logger.info("pattern_store_read scheme_id=%s patterns=%s", scheme_id, len(patterns))
    return patterns
