from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from numscheme.core.exceptions import SchemaError

# Accepts both the service's camelCase payloads and snake_case keyword input.
_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


class _FieldBase(BaseModel):
    model_config = _MODEL_CONFIG


class FixedTextField(_FieldBase):
    kind: Literal["FixedText"] = "FixedText"
    literal_value: str = ""


class DelimiterField(_FieldBase):
    kind: Literal["Delimiter"] = "Delimiter"
    literal_value: str = ""


class WorkgroupLabelField(_FieldBase):
    kind: Literal["WorkgroupLabel"] = "WorkgroupLabel"
    literal_value: str = ""


class FreeTextField(_FieldBase):
    kind: Literal["FreeText"] = "FreeText"
    min_length: int = Field(default=1, ge=0)
    max_length: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> FreeTextField:
        if self.max_length < self.min_length:
            raise ValueError(
                f"max_length ({self.max_length}) must be >= min_length ({self.min_length})."
            )
        return self


class PredefinedListField(_FieldBase):
    kind: Literal["PredefinedList"] = "PredefinedList"
    allowed_codes: tuple[str, ...] = Field(min_length=1)

    @field_validator("allowed_codes")
    @classmethod
    def validate_codes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        seen: set[str] = set()
        codes: list[str] = []
        for code in value:
            if not code:
                raise ValueError("allowed_codes must not contain empty codes.")
            if code in seen:
                continue
            seen.add(code)
            codes.append(code)
        return tuple(codes)


class AutogeneratedField(_FieldBase):
    kind: Literal["Autogenerated"] = "Autogenerated"
    counter_start: int = Field(default=1, ge=0)
    counter_length: int = Field(default=1, ge=1)
    zero_padded: bool = True

    def format_counter(self, value: int) -> str:
        if self.zero_padded:
            return str(value).zfill(self.counter_length)
        return str(value)


SchemeField = Annotated[
    Union[
        FixedTextField,
        FreeTextField,
        PredefinedListField,
        DelimiterField,
        WorkgroupLabelField,
        AutogeneratedField,
    ],
    Field(discriminator="kind"),
]

LITERAL_FIELD_TYPES = (FixedTextField, DelimiterField, WorkgroupLabelField)
# Fields whose value is supplied by the operator when an identifier is generated.
INPUT_FIELD_TYPES = (FreeTextField, PredefinedListField)

_FIELDS_ADAPTER: TypeAdapter[tuple[SchemeField, ...]] = TypeAdapter(tuple[SchemeField, ...])


class Scheme(BaseModel):
    model_config = _MODEL_CONFIG

    id: int
    name: str
    fields: tuple[SchemeField, ...] = ()
    is_active: bool = False
    is_default: bool = False
    is_in_use: bool = False
    case_mode: Literal["none", "upper", "lower"] = "none"

    @field_validator("case_mode", mode="before")
    @classmethod
    def normalize_case_mode(cls, value: Any) -> str:
        return str(value or "none").strip().lower()

    def autogenerated_field(self) -> AutogeneratedField:
        counters = [f for f in self.fields if isinstance(f, AutogeneratedField)]
        if len(counters) != 1:
            raise SchemaError(
                f"Scheme '{self.name}' must have exactly one Autogenerated field, "
                f"found {len(counters)}."
            )
        return counters[0]

    def input_fields(self) -> tuple[FreeTextField | PredefinedListField, ...]:
        return tuple(f for f in self.fields if isinstance(f, INPUT_FIELD_TYPES))


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(token) for token in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    if exc.error_count() > 3:
        parts.append(f"... {exc.error_count() - 3} more")
    return "; ".join(parts)


def parse_fields(raw: Any) -> tuple[SchemeField, ...]:
    """Parse raw field definitions, keeping their declared order."""
    try:
        return _FIELDS_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise SchemaError(f"Invalid field definitions: {_describe(exc)}") from exc


def parse_scheme(raw: Any) -> Scheme:
    try:
        return Scheme.model_validate(raw)
    except ValidationError as exc:
        raise SchemaError(f"Invalid scheme payload: {_describe(exc)}") from exc
