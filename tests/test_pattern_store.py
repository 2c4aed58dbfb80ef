from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from numscheme.core.exceptions import NoUsageError, StoreUnavailableError
from numscheme.models.counter_pattern import SchemeCounterPattern
from numscheme.services.pattern_store import read_patterns


def _seed(db_session):
    db_session.add_all(
        [
            SchemeCounterPattern(scheme_id=10, prefix="AB-", suffix="", next_counter=41, counter_length=4),
            SchemeCounterPattern(scheme_id=10, prefix="CD-", suffix="/X", next_counter=3, counter_length=4),
            SchemeCounterPattern(scheme_id=11, prefix="ZZ-", suffix="", next_counter=9),
        ]
    )
    db_session.commit()


def test_read_patterns_returns_rows_for_scheme_in_insert_order(db_session, session_factory):
    _seed(db_session)

    patterns = read_patterns(10, session_factory=session_factory)

    assert [(p.prefix, p.suffix, p.next_counter, p.counter_length) for p in patterns] == [
        ("AB-", "", 41, 4),
        ("CD-", "/X", 3, 4),
    ]
    assert patterns[1].text == "CD-/X"


def test_read_patterns_without_rows_signals_no_usage(db_session, session_factory):
    _seed(db_session)

    with pytest.raises(NoUsageError) as exc_info:
        read_patterns(99, session_factory=session_factory)
    assert exc_info.value.scheme_id == 99


class _TrackingSession:
    def __init__(self, fail: bool):
        self.fail = fail
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def execute(self, stmt):
        if self.fail:
            raise OperationalError("SELECT", {}, Exception("connection refused"))
        raise AssertionError("unexpected success path")


def test_query_failure_signals_store_unavailable_and_closes_session():
    session = _TrackingSession(fail=True)

    with pytest.raises(StoreUnavailableError):
        read_patterns(10, session_factory=lambda: session)
    assert session.closed is True
