from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from numscheme.services.scheme_regeneration import RegenerationReport


@dataclass(eq=False)
class SchemeMigrationError(Exception):
    message: str

    code: ClassVar[str] = "SCHEME_MIGRATION_FAILED"
    # False => the failure only affects one pattern; the run continues.
    fatal: ClassVar[bool] = True

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(eq=False)
class SchemaError(SchemeMigrationError):
    code: ClassVar[str] = "SCHEMA_INVALID"


@dataclass(eq=False)
class NoUsageError(SchemeMigrationError):
    scheme_id: int | None = None

    code: ClassVar[str] = "SCHEME_NEVER_USED"


@dataclass(eq=False)
class StoreUnavailableError(SchemeMigrationError):
    code: ClassVar[str] = "STORE_UNAVAILABLE"


@dataclass(eq=False)
class SchemeServiceError(SchemeMigrationError):
    status_code: int | None = None

    code: ClassVar[str] = "SCHEME_SERVICE_FAILED"


@dataclass(eq=False)
class PatternMismatchError(SchemeMigrationError):
    text: str = ""

    code: ClassVar[str] = "PATTERN_MISMATCH"
    fatal: ClassVar[bool] = False

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["text"] = self.text
        return detail


@dataclass(eq=False)
class CounterInvariantError(SchemeMigrationError):
    next_counter: int = 0
    counter_start: int = 0

    code: ClassVar[str] = "COUNTER_INVARIANT"
    fatal: ClassVar[bool] = False

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["next_counter"] = self.next_counter
        detail["counter_start"] = self.counter_start
        return detail


@dataclass(eq=False)
class PartialIssuanceError(SchemeMigrationError):
    requested: int = 0
    issued: int = 0
    # Progress already committed by the generation service before the halt.
    report: RegenerationReport | None = None

    code: ClassVar[str] = "PARTIAL_ISSUANCE"

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["requested"] = self.requested
        detail["issued"] = self.issued
        return detail
