from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Protocol

from numscheme.core.config import settings
from numscheme.core.exceptions import (
    CounterInvariantError,
    PartialIssuanceError,
    PatternMismatchError,
    SchemeMigrationError,
    SchemeServiceError,
)
from numscheme.core.flow_logging import flow_info
from numscheme.schemas.counter_pattern import Pattern
from numscheme.schemas.scheme_fields import AutogeneratedField, Scheme
from numscheme.services.pattern_store import read_patterns
from numscheme.services.scheme_matcher import build_scheme_matcher

logger = logging.getLogger(__name__)


class RegenerationState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DECOMPOSING = "decomposing"
    COUNTING = "counting"
    ISSUING = "issuing"
    DONE = "done"


class IdentifierGenerator(Protocol):
    def generate(self, scheme_id: int, field_values: Sequence[str], count: int) -> list[str]:
        ...


PatternReader = Callable[[int], list[Pattern]]


@dataclass
class PatternOutcome:
    pattern: Pattern
    # planned | issued | up_to_date | skipped | failed
    status: str
    field_values: tuple[str, ...] = ()
    requested: int = 0
    issued: int = 0
    first_identifier: str | None = None
    last_identifier: str | None = None
    reason: str | None = None
    error: SchemeMigrationError | None = None


@dataclass
class RegenerationPlan:
    scheme: Scheme
    planned: list[PatternOutcome] = field(default_factory=list)
    skipped: list[PatternOutcome] = field(default_factory=list)

    @property
    def total_requested(self) -> int:
        return sum(outcome.requested for outcome in self.planned)


@dataclass
class RegenerationReport:
    scheme_id: int
    completed: list[PatternOutcome] = field(default_factory=list)
    skipped: list[PatternOutcome] = field(default_factory=list)
    failed: PatternOutcome | None = None

    @property
    def total_issued(self) -> int:
        issued = sum(outcome.issued for outcome in self.completed)
        if self.failed is not None:
            issued += self.failed.issued
        return issued

    @property
    def halted(self) -> bool:
        return self.failed is not None


def count_to_issue(pattern: Pattern, counter: AutogeneratedField) -> int:
    """Identifiers the new scheme must issue to reach the recorded counter."""
    count = pattern.next_counter - counter.counter_start
    if count < 0:
        raise CounterInvariantError(
            f"Recorded next counter {pattern.next_counter} for '{pattern.text}' is below "
            f"the counter start {counter.counter_start}.",
            next_counter=pattern.next_counter,
            counter_start=counter.counter_start,
        )
    return count


class SchemeRegenerationDriver:
    """
    Replays historical counter usage onto a (re)created scheme.

    Patterns are handled strictly one after another: every generate call
    advances the shared counter of the target scheme, so ordering matters.
    """

    def __init__(
        self,
        generator: IdentifierGenerator,
        *,
        pattern_reader: PatternReader = read_patterns,
        batch_size: int | None = None,
    ) -> None:
        self._generator = generator
        self._pattern_reader = pattern_reader
        self._batch_size = max(1, int(batch_size or settings.ISSUE_BATCH_SIZE))
        self.state = RegenerationState.IDLE

    def fetch(self, source_scheme_id: int) -> list[Pattern]:
        self.state = RegenerationState.FETCHING
        try:
            return self._pattern_reader(source_scheme_id)
        except SchemeMigrationError:
            self.state = RegenerationState.DONE
            raise

    def plan(self, target_scheme: Scheme, patterns: Sequence[Pattern]) -> RegenerationPlan:
        try:
            counter = target_scheme.autogenerated_field()
        except SchemeMigrationError:
            self.state = RegenerationState.DONE
            raise
        matcher = build_scheme_matcher(target_scheme)
        plan = RegenerationPlan(scheme=target_scheme)
        # One counter per field-value tuple on the target scheme.
        planned_by_values: dict[tuple[str, ...], PatternOutcome] = {}

        for pattern in patterns:
            self.state = RegenerationState.DECOMPOSING
            try:
                values = matcher.decompose(pattern.text)
            except PatternMismatchError as exc:
                logger.warning(
                    "pattern_skipped scheme_id=%s prefix=%r suffix=%r reason=%s",
                    target_scheme.id,
                    pattern.prefix,
                    pattern.suffix,
                    exc,
                )
                plan.skipped.append(self._skipped(pattern, exc))
                continue

            self.state = RegenerationState.COUNTING
            try:
                count = count_to_issue(pattern, counter)
            except CounterInvariantError as exc:
                logger.warning(
                    "pattern_skipped scheme_id=%s prefix=%r suffix=%r reason=%s",
                    target_scheme.id,
                    pattern.prefix,
                    pattern.suffix,
                    exc,
                )
                plan.skipped.append(self._skipped(pattern, exc, field_values=values))
                continue

            if pattern.counter_length is not None and pattern.counter_length != counter.counter_length:
                logger.warning(
                    "counter_length_changed scheme_id=%s prefix=%r recorded=%s current=%s",
                    target_scheme.id,
                    pattern.prefix,
                    pattern.counter_length,
                    counter.counter_length,
                )

            key = values
            if target_scheme.case_mode != "none":
                key = tuple(value.casefold() for value in values)
            existing = planned_by_values.get(key)
            if existing is not None:
                self._merge_duplicate(plan, existing, pattern, count)
                continue

            flow_info(
                logger,
                "pattern_planned scheme_id=%s text=%r values=%s count=%s last_counter=%s",
                target_scheme.id,
                pattern.text,
                list(values),
                count,
                counter.format_counter(pattern.next_counter - 1) if count else "-",
                category="patterns",
            )
            outcome = PatternOutcome(
                pattern=pattern,
                status="planned",
                field_values=values,
                requested=count,
            )
            planned_by_values[key] = outcome
            plan.planned.append(outcome)

        return plan

    def issue(self, plan: RegenerationPlan) -> RegenerationReport:
        scheme_id = plan.scheme.id
        report = RegenerationReport(scheme_id=scheme_id, skipped=list(plan.skipped))

        for planned in plan.planned:
            self.state = RegenerationState.ISSUING
            outcome = replace(planned)
            if outcome.requested == 0:
                outcome.status = "up_to_date"
                report.completed.append(outcome)
                continue

            while outcome.issued < outcome.requested:
                batch = min(self._batch_size, outcome.requested - outcome.issued)
                try:
                    identifiers = self._generator.generate(
                        scheme_id, list(outcome.field_values), batch
                    )
                except SchemeServiceError as exc:
                    self._halt(report, outcome, str(exc))
                    raise PartialIssuanceError(
                        f"Generation failed for '{outcome.pattern.text}' after "
                        f"{outcome.issued} of {outcome.requested} identifiers: {exc}",
                        requested=outcome.requested,
                        issued=outcome.issued,
                        report=report,
                    ) from exc

                if identifiers:
                    outcome.first_identifier = outcome.first_identifier or identifiers[0]
                    outcome.last_identifier = identifiers[-1]
                outcome.issued += len(identifiers)

                if len(identifiers) < batch:
                    reason = f"service returned {len(identifiers)} of {batch} requested identifiers"
                    self._halt(report, outcome, reason)
                    raise PartialIssuanceError(
                        f"Partial issuance for '{outcome.pattern.text}': {outcome.issued} of "
                        f"{outcome.requested} identifiers ({reason}).",
                        requested=outcome.requested,
                        issued=outcome.issued,
                        report=report,
                    )
                if len(identifiers) > batch:
                    logger.warning(
                        "issuance_overrun scheme_id=%s text=%r requested=%s returned=%s",
                        scheme_id,
                        outcome.pattern.text,
                        batch,
                        len(identifiers),
                    )

                flow_info(
                    logger,
                    "issuance_batch scheme_id=%s text=%r issued=%s/%s last=%s",
                    scheme_id,
                    outcome.pattern.text,
                    outcome.issued,
                    outcome.requested,
                    outcome.last_identifier,
                    category="issuance",
                )

            outcome.status = "issued"
            report.completed.append(outcome)

        self.state = RegenerationState.DONE
        logger.info(
            "regeneration_done scheme_id=%s issued=%s completed=%s skipped=%s",
            scheme_id,
            report.total_issued,
            len(report.completed),
            len(report.skipped),
        )
        return report

    def run(
        self,
        source_scheme_id: int,
        target_scheme: Scheme,
        patterns: Sequence[Pattern] | None = None,
    ) -> RegenerationReport:
        if patterns is None:
            patterns = self.fetch(source_scheme_id)
        return self.issue(self.plan(target_scheme, patterns))

    def _halt(self, report: RegenerationReport, outcome: PatternOutcome, reason: str) -> None:
        outcome.status = "failed"
        outcome.reason = reason
        report.failed = outcome
        self.state = RegenerationState.DONE
        logger.error(
            "issuance_halted scheme_id=%s text=%r issued=%s requested=%s reason=%s",
            report.scheme_id,
            outcome.pattern.text,
            outcome.issued,
            outcome.requested,
            reason,
        )

    @staticmethod
    def _merge_duplicate(
        plan: RegenerationPlan,
        existing: PatternOutcome,
        pattern: Pattern,
        count: int,
    ) -> None:
        """
        Two recorded patterns decomposing to the same values share one counter
        on the target scheme; only the higher recorded counter is replayed.
        """
        displaced = pattern
        if count > existing.requested:
            displaced = existing.pattern
            existing.pattern = pattern
            existing.requested = count
        logger.warning(
            "pattern_merged scheme_id=%s values=%s kept=%r dropped=%r",
            plan.scheme.id,
            list(existing.field_values),
            existing.pattern.text,
            displaced.text,
        )
        plan.skipped.append(
            PatternOutcome(
                pattern=displaced,
                status="skipped",
                field_values=existing.field_values,
                reason=(
                    f"same field values as '{existing.pattern.text}'; "
                    f"counter continues from next counter {existing.pattern.next_counter}"
                ),
            )
        )

    @staticmethod
    def _skipped(
        pattern: Pattern,
        exc: SchemeMigrationError,
        *,
        field_values: tuple[str, ...] = (),
    ) -> PatternOutcome:
        return PatternOutcome(
            pattern=pattern,
            status="skipped",
            field_values=field_values,
            reason=str(exc),
            error=exc,
        )
