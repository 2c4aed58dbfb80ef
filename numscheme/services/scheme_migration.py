"""
Operator-driven scheme migration.

Sequence: select scheme -> read usage -> delete and recreate the scheme
(checkpoint 1) -> operator edits predefined lists -> replay usage onto the
recreated scheme (checkpoint 2).

Nothing is mutated before checkpoint 1. Once issuance has started there is
no rollback; a declined checkpoint 2 leaves the recreated scheme with fresh
counters.
"""

from __future__ import annotations

import logging
from typing import Protocol

from numscheme.core.exceptions import (
    NoUsageError,
    PartialIssuanceError,
    SchemaError,
    SchemeMigrationError,
)
from numscheme.schemas.counter_pattern import Pattern
from numscheme.schemas.scheme_fields import Scheme
from numscheme.services.scheme_regeneration import (
    RegenerationPlan,
    RegenerationReport,
    SchemeRegenerationDriver,
)
from numscheme.services.scheme_service_client import SchemeServiceClient

logger = logging.getLogger(__name__)


class OperatorConsole(Protocol):
    def choose(self, prompt: str, options: list[str]) -> str | None:
        ...

    def confirm(self, prompt: str) -> bool:
        ...

    def acknowledge(self, prompt: str) -> None:
        ...


class SchemeMigrationService:
    def __init__(
        self,
        registry: SchemeServiceClient,
        driver: SchemeRegenerationDriver,
        console: OperatorConsole,
    ) -> None:
        self.registry = registry
        self.driver = driver
        self.console = console

    def select_scheme(self, scheme_name: str | None = None) -> Scheme | None:
        if scheme_name:
            scheme = self.registry.find_scheme(scheme_name)
            if scheme is None:
                raise SchemaError(f"Numbering scheme '{scheme_name}' was not found.")
            return scheme

        schemes = self.registry.list_schemes()
        if not schemes:
            logger.warning("scheme_selection_empty")
            return None
        by_name = {scheme.name: scheme for scheme in schemes}
        choice = self.console.choose("Select the numbering scheme to migrate", list(by_name))
        return by_name.get(choice) if choice else None

    def recreate_scheme(self, scheme: Scheme) -> Scheme:
        if scheme.is_default:
            self.registry.set_default_scheme(None)
        if scheme.is_in_use:
            logger.warning("scheme_in_use_deleted scheme_id=%s name=%s", scheme.id, scheme.name)
        if scheme.is_active:
            self.registry.deactivate_scheme(scheme.id)
        self.registry.delete_scheme(scheme.id)

        recreated = self.registry.create_scheme(scheme.name, scheme.fields, scheme.case_mode)
        if scheme.is_active:
            recreated = self.registry.activate_scheme(recreated.id)
        if scheme.is_default:
            self.registry.set_default_scheme(recreated.id)
        logger.info(
            "scheme_recreated name=%s old_id=%s new_id=%s",
            scheme.name,
            scheme.id,
            recreated.id,
        )
        return recreated

    def migrate(
        self,
        scheme_name: str | None = None,
        *,
        source_scheme_id: int | None = None,
    ) -> RegenerationReport | None:
        """
        Run the two-checkpoint migration for one scheme.

        `source_scheme_id` reads usage recorded under another scheme id, e.g.
        to resume after an earlier run deleted the scheme but never replayed
        its counters.
        """
        scheme = self.select_scheme(scheme_name)
        if scheme is None:
            return None
        scheme.autogenerated_field()
        source_id = scheme.id if source_scheme_id is None else source_scheme_id

        try:
            patterns = self.driver.fetch(source_id)
        except NoUsageError as exc:
            logger.info("migration_aborted scheme_id=%s reason=%s", source_id, exc)
            return None

        preview = self.driver.plan(scheme, patterns)
        self._log_plan("original", preview)

        if not self.console.confirm(
            f"Delete and recreate numbering scheme '{scheme.name}' "
            f"({len(patterns)} usage pattern(s) recorded)?"
        ):
            logger.info("migration_declined stage=recreate scheme_id=%s", scheme.id)
            return None

        try:
            recreated = self.recreate_scheme(scheme)
        except SchemeMigrationError:
            self._log_unreplayed("recreate_failed", source_id, patterns)
            raise
        self.console.acknowledge(
            f"Apply any predefined list changes to '{recreated.name}' now, then continue."
        )
        target = self.registry.get_scheme(recreated.id)

        plan = self.driver.plan(target, patterns)
        self._log_plan("recreated", plan)
        if not self.console.confirm(
            f"Issue {plan.total_requested} identifier(s) across {len(plan.planned)} "
            f"pattern(s) on '{target.name}' ({len(plan.skipped)} skipped)?"
        ):
            logger.warning(
                "migration_declined stage=issue scheme_id=%s counters_not_restored=true",
                target.id,
            )
            self._log_unreplayed("issue_declined", source_id, patterns)
            return None

        try:
            return self.driver.issue(plan)
        except PartialIssuanceError:
            self._log_unreplayed("issuance_halted", source_id, patterns)
            raise

    @staticmethod
    def _log_unreplayed(stage: str, source_scheme_id: int, patterns: list[Pattern]) -> None:
        # The source scheme is gone at this point; this record is what a rerun
        # with --source-scheme-id needs.
        logger.error(
            "migration_unreplayed stage=%s source_scheme_id=%s patterns=%s",
            stage,
            source_scheme_id,
            [(p.prefix, p.suffix, p.next_counter) for p in patterns],
        )

    @staticmethod
    def _log_plan(label: str, plan: RegenerationPlan) -> None:
        logger.info(
            "migration_plan scheme=%s version=%s planned=%s skipped=%s identifiers=%s",
            plan.scheme.name,
            label,
            len(plan.planned),
            len(plan.skipped),
            plan.total_requested,
        )
