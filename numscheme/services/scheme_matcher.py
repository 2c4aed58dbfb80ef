"""
Structural matcher that splits a historical prefix+suffix string back into
the operator-supplied field values that produced it.

A field list is first lowered into an ordered list of matcher units, then
compiled once into an anchored regular expression. Counter fields are not
part of the stored prefix/suffix text, so they produce no unit.

Predefined-list disambiguation: codes are tried longest first, with the
declared order breaking ties. When a longer code cannot complete a
whole-string match, backtracking falls through to the shorter codes, so a
decomposition is found whenever one exists; when several exist, earlier
fields win the longest code that still lets the rest of the text match.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from numscheme.core.exceptions import PatternMismatchError
from numscheme.schemas.scheme_fields import (
    AutogeneratedField,
    FreeTextField,
    LITERAL_FIELD_TYPES,
    PredefinedListField,
    Scheme,
    SchemeField,
)

_ALPHANUMERIC = "A-Za-z0-9"


@dataclass(frozen=True)
class LiteralUnit:
    text: str

    captures = False

    def to_regex(self) -> str:
        return re.escape(self.text)


@dataclass(frozen=True)
class BoundedCaptureUnit:
    min_length: int
    max_length: int
    charset: str = _ALPHANUMERIC

    captures = True

    def to_regex(self) -> str:
        return f"([{self.charset}]{{{self.min_length},{self.max_length}}})"

    def canonical(self, value: str, *, case_insensitive: bool) -> str:
        return value


@dataclass(frozen=True)
class AlternationCaptureUnit:
    choices: tuple[str, ...]

    captures = True

    def ordered_choices(self) -> list[str]:
        # sorted() is stable, so equal-length codes keep their declared order.
        return sorted(self.choices, key=len, reverse=True)

    def to_regex(self) -> str:
        return "(" + "|".join(re.escape(code) for code in self.ordered_choices()) + ")"

    def canonical(self, value: str, *, case_insensitive: bool) -> str:
        if not case_insensitive or value in self.choices:
            return value
        folded = value.casefold()
        for code in self.choices:
            if code.casefold() == folded:
                return code
        return value


MatcherUnit = LiteralUnit | BoundedCaptureUnit | AlternationCaptureUnit


def lower_field(item: SchemeField) -> MatcherUnit | None:
    if isinstance(item, AutogeneratedField):
        return None
    if isinstance(item, LITERAL_FIELD_TYPES):
        return LiteralUnit(item.literal_value) if item.literal_value else None
    if isinstance(item, FreeTextField):
        return BoundedCaptureUnit(item.min_length, item.max_length)
    if isinstance(item, PredefinedListField):
        return AlternationCaptureUnit(item.allowed_codes)
    raise TypeError(f"Unsupported field type: {type(item).__name__}")


@dataclass
class Matcher:
    units: tuple[MatcherUnit, ...]
    case_insensitive: bool = False
    compiled: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        flags = re.IGNORECASE | re.ASCII if self.case_insensitive else 0
        self.compiled = re.compile("".join(unit.to_regex() for unit in self.units), flags)

    @property
    def pattern(self) -> str:
        return self.compiled.pattern

    @property
    def capture_count(self) -> int:
        return self.compiled.groups

    def decompose(self, text: str) -> tuple[str, ...]:
        match = self.compiled.fullmatch(text)
        if match is None:
            raise PatternMismatchError(
                f"'{text}' does not match the scheme fields ({self.pattern}).",
                text=text,
            )
        capturing = [unit for unit in self.units if unit.captures]
        return tuple(
            unit.canonical(value, case_insensitive=self.case_insensitive)
            for unit, value in zip(capturing, match.groups())
        )


def build_matcher(
    fields: Iterable[SchemeField],
    *,
    case_insensitive: bool = False,
) -> Matcher:
    units = tuple(unit for unit in (lower_field(item) for item in fields) if unit is not None)
    return Matcher(units=units, case_insensitive=case_insensitive)


def build_scheme_matcher(scheme: Scheme) -> Matcher:
    # Upper/lower case modes rewrite issued text, so stored patterns may not
    # share the case of the field definitions.
    return build_matcher(scheme.fields, case_insensitive=scheme.case_mode != "none")

