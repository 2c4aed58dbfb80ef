from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import sessionmaker

from numscheme.core.exceptions import (
    NoUsageError,
    SchemaError,
    SchemeMigrationError,
    StoreUnavailableError,
)
from numscheme.db.session import get_session_factory
from numscheme.schemas.counter_pattern import (
    PatternOutcomeView,
    PatternView,
    RegenerationPreviewRequest,
    RegenerationPreviewResponse,
)
from numscheme.schemas.scheme_fields import Scheme, parse_fields
from numscheme.services.pattern_store import read_patterns
from numscheme.services.scheme_regeneration import PatternOutcome, SchemeRegenerationDriver

router = APIRouter(
    prefix="/api/v1/schemes",
    tags=["Numbering Schemes"],
)

_STATUS_BY_ERROR: dict[type[SchemeMigrationError], int] = {
    NoUsageError: status.HTTP_404_NOT_FOUND,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    SchemaError: 422,
}


def _raise_migration_error(exc: SchemeMigrationError) -> None:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail=exc.to_detail())


class _NoIssuance:
    def generate(self, scheme_id, field_values, count):
        raise RuntimeError("Preview never issues identifiers.")


def _to_outcome_view(outcome: PatternOutcome) -> PatternOutcomeView:
    return PatternOutcomeView(
        prefix=outcome.pattern.prefix,
        suffix=outcome.pattern.suffix,
        next_counter=outcome.pattern.next_counter,
        status=outcome.status,
        field_values=list(outcome.field_values),
        requested=outcome.requested,
        issued=outcome.issued,
        reason=outcome.reason,
    )


@router.get("/{scheme_id}/patterns", response_model=list[PatternView])
def list_scheme_patterns(
    scheme_id: int,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Historical prefix/suffix combinations with their next counter."""
    try:
        patterns = read_patterns(scheme_id, session_factory=session_factory)
    except SchemeMigrationError as exc:
        _raise_migration_error(exc)
    return [PatternView(**pattern.model_dump()) for pattern in patterns]


@router.post("/{scheme_id}/regeneration-preview", response_model=RegenerationPreviewResponse)
def preview_regeneration(
    scheme_id: int,
    payload: RegenerationPreviewRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Dry run: decompose and count every recorded pattern against the given
    field layout. Nothing is issued.
    """
    driver = SchemeRegenerationDriver(
        _NoIssuance(),
        pattern_reader=lambda sid: read_patterns(sid, session_factory=session_factory),
    )
    try:
        scheme = Scheme(
            id=scheme_id,
            name=f"preview-{scheme_id}",
            fields=parse_fields(payload.fields),
            case_mode=payload.case_mode,
        )
        plan = driver.plan(scheme, driver.fetch(scheme_id))
    except SchemeMigrationError as exc:
        _raise_migration_error(exc)

    return RegenerationPreviewResponse(
        scheme_id=scheme_id,
        total_requested=plan.total_requested,
        planned=[_to_outcome_view(outcome) for outcome in plan.planned],
        skipped=[_to_outcome_view(outcome) for outcome in plan.skipped],
    )
