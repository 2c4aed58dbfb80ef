from __future__ import annotations

import pytest

from numscheme.core.exceptions import SchemaError
from numscheme.schemas.scheme_fields import (
    AutogeneratedField,
    DelimiterField,
    FixedTextField,
    FreeTextField,
    PredefinedListField,
    Scheme,
    WorkgroupLabelField,
    parse_fields,
    parse_scheme,
)


def test_parse_fields_keeps_declared_order_and_accepts_camel_case():
    fields = parse_fields(
        [
            {"kind": "FixedText", "literalValue": "DOC"},
            {"kind": "Delimiter", "literal_value": "-"},
            {"kind": "PredefinedList", "allowedCodes": ["MEC", "ELE"]},
            {"kind": "FreeText", "minLength": 2, "maxLength": 4},
            {"kind": "WorkgroupLabel", "literalValue": "WG1"},
            {"kind": "Autogenerated", "counterStart": 1, "counterLength": 5, "zeroPadded": True},
        ]
    )

    assert [type(item) for item in fields] == [
        FixedTextField,
        DelimiterField,
        PredefinedListField,
        FreeTextField,
        WorkgroupLabelField,
        AutogeneratedField,
    ]
    assert fields[0].literal_value == "DOC"
    assert fields[2].allowed_codes == ("MEC", "ELE")
    assert (fields[3].min_length, fields[3].max_length) == (2, 4)
    assert fields[5].counter_length == 5


def test_parse_fields_rejects_unknown_kind():
    with pytest.raises(SchemaError):
        parse_fields([{"kind": "Barcode"}])


def test_free_text_bounds_must_be_ordered():
    with pytest.raises(SchemaError) as exc_info:
        parse_fields([{"kind": "FreeText", "minLength": 5, "maxLength": 2}])
    assert "max_length" in str(exc_info.value)


def test_predefined_list_drops_duplicates_and_requires_codes():
    (field,) = parse_fields([{"kind": "PredefinedList", "allowedCodes": ["A", "B", "A"]}])
    assert field.allowed_codes == ("A", "B")

    with pytest.raises(SchemaError):
        parse_fields([{"kind": "PredefinedList", "allowedCodes": []}])


def test_autogenerated_field_lookup_requires_exactly_one():
    counter = AutogeneratedField(counter_start=1, counter_length=4)
    scheme = Scheme(id=1, name="Drawings", fields=(FreeTextField(min_length=2, max_length=2), counter))
    assert scheme.autogenerated_field() == counter

    with pytest.raises(SchemaError):
        Scheme(id=2, name="NoCounter", fields=(FreeTextField(),)).autogenerated_field()

    with pytest.raises(SchemaError):
        Scheme(id=3, name="TwoCounters", fields=(counter, counter)).autogenerated_field()


def test_parse_scheme_reads_identity_flags_and_input_fields():
    scheme = parse_scheme(
        {
            "id": 42,
            "name": "Parts",
            "isActive": True,
            "isDefault": True,
            "isInUse": True,
            "caseMode": "UPPER",
            "fields": [
                {"kind": "PredefinedList", "allowedCodes": ["A"]},
                {"kind": "Delimiter", "literalValue": "-"},
                {"kind": "Autogenerated"},
            ],
        }
    )

    assert scheme.id == 42
    assert scheme.is_active and scheme.is_default and scheme.is_in_use
    assert scheme.case_mode == "upper"
    assert [type(item) for item in scheme.input_fields()] == [PredefinedListField]


def test_counter_formatting_respects_zero_padding():
    assert AutogeneratedField(counter_length=4).format_counter(7) == "0007"
    assert AutogeneratedField(counter_length=4, zero_padded=False).format_counter(7) == "7"
