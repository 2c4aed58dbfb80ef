from __future__ import annotations

import json

import pytest
import requests

from numscheme.core.exceptions import SchemaError, SchemeServiceError
from numscheme.schemas.scheme_fields import AutogeneratedField, DelimiterField
from numscheme.services.scheme_service_client import SchemeServiceClient

_SCHEME = {
    "id": 7,
    "name": "Drawings",
    "isActive": True,
    "fields": [
        {"kind": "FreeText", "minLength": 2, "maxLength": 2},
        {"kind": "Delimiter", "literalValue": "-"},
        {"kind": "Autogenerated", "counterStart": 1, "counterLength": 4},
    ],
}


def _response(status_code: int, body=None, *, raw: str | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    return response


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[dict] = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def test_list_schemes_parses_payload_and_sends_bearer_token():
    session = FakeSession(_response(200, [_SCHEME]))
    client = SchemeServiceClient("http://pdm.local/api/", token="secret", session=session)

    schemes = client.list_schemes()

    assert [s.name for s in schemes] == ["Drawings"]
    assert schemes[0].autogenerated_field().counter_length == 4
    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "http://pdm.local/api/schemes"
    assert sent["headers"]["Authorization"] == "Bearer secret"


def test_find_scheme_is_case_insensitive():
    session = FakeSession(_response(200, {"schemes": [_SCHEME]}), _response(200, [_SCHEME]))
    client = SchemeServiceClient("http://pdm.local", token="", session=session)

    assert client.find_scheme(" drawings ").id == 7
    assert client.find_scheme("Parts") is None
    assert "Authorization" not in session.requests[0]["headers"]


def test_generate_posts_values_and_count():
    session = FakeSession(_response(200, {"identifiers": ["AB-0001", "AB-0002"]}))
    client = SchemeServiceClient("http://pdm.local", session=session)

    assert client.generate(7, ("AB",), 2) == ["AB-0001", "AB-0002"]
    sent = session.requests[0]
    assert sent["url"] == "http://pdm.local/schemes/7/generate"
    assert sent["json"] == {"field_values": ["AB"], "count": 2}


def test_create_scheme_sends_camel_case_fields():
    session = FakeSession(_response(201, {**_SCHEME, "id": 8}))
    client = SchemeServiceClient("http://pdm.local", session=session)

    created = client.create_scheme(
        "Drawings",
        (DelimiterField(literal_value="-"), AutogeneratedField(counter_length=4)),
        "upper",
    )

    assert created.id == 8
    payload = session.requests[0]["json"]
    assert payload["caseMode"] == "upper"
    assert payload["fields"][0] == {"kind": "Delimiter", "literalValue": "-"}
    assert payload["fields"][1]["counterLength"] == 4


def test_delete_and_default_accept_empty_responses():
    session = FakeSession(_response(204), _response(200))
    client = SchemeServiceClient("http://pdm.local", session=session)

    client.delete_scheme(7)
    client.set_default_scheme(None)

    assert session.requests[0]["method"] == "DELETE"
    assert session.requests[1]["json"] == {"scheme_id": None}


def test_activate_and_deactivate_post_to_scheme_actions():
    inactive = {**_SCHEME, "isActive": False}
    session = FakeSession(_response(200, inactive), _response(200, _SCHEME))
    client = SchemeServiceClient("http://pdm.local", session=session)

    assert client.deactivate_scheme(7).is_active is False
    assert client.activate_scheme(7).is_active is True
    assert [(r["method"], r["url"]) for r in session.requests] == [
        ("POST", "http://pdm.local/schemes/7/deactivate"),
        ("POST", "http://pdm.local/schemes/7/activate"),
    ]


def test_http_error_becomes_service_error():
    session = FakeSession(_response(503, {"error": "maintenance"}))
    client = SchemeServiceClient("http://pdm.local", session=session)

    with pytest.raises(SchemeServiceError) as exc_info:
        client.get_scheme(7)
    assert exc_info.value.status_code == 503


def test_transport_error_and_invalid_json_become_service_errors():
    session = FakeSession(
        requests.ConnectionError("refused"),
        _response(200, raw="<html>"),
        _response(200, {"unexpected": True}),
    )
    client = SchemeServiceClient("http://pdm.local", session=session)

    with pytest.raises(SchemeServiceError):
        client.list_schemes()
    with pytest.raises(SchemeServiceError):
        client.list_schemes()
    with pytest.raises(SchemeServiceError):
        client.generate(7, ["AB"], 1)


def test_malformed_scheme_payload_is_schema_error():
    session = FakeSession(_response(200, {"id": 7, "name": "X", "fields": [{"kind": "Nope"}]}))
    client = SchemeServiceClient("http://pdm.local", session=session)

    with pytest.raises(SchemaError):
        client.get_scheme(7)


def test_context_manager_closes_session():
    session = FakeSession()
    with SchemeServiceClient("http://pdm.local", session=session):
        pass
    assert session.closed is True
