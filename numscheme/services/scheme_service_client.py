from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests

from numscheme.core.config import settings
from numscheme.core.exceptions import SchemeServiceError
from numscheme.schemas.scheme_fields import Scheme, SchemeField, parse_scheme

logger = logging.getLogger(__name__)


class SchemeServiceClient:
    """
    Scheme registry and identifier generation calls against the remote
    numbering service. One `requests.Session` per client; close it with
    `close()` or use the client as a context manager.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = (base_url or settings.SCHEME_SERVICE_URL).rstrip("/")
        self._token = settings.SCHEME_SERVICE_TOKEN if token is None else token
        self._timeout_seconds = float(timeout_seconds or settings.SCHEME_SERVICE_TIMEOUT_SECONDS)
        self._session = session or requests.Session()

    def __enter__(self) -> SchemeServiceClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, path: str, *, payload: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SchemeServiceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise SchemeServiceError(
                f"{method} {path} failed with HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SchemeServiceError(f"{method} {path} returned invalid JSON.") from exc

    def _scheme_from(self, body: Any, *, path: str) -> Scheme:
        if not isinstance(body, dict):
            raise SchemeServiceError(f"{path} returned a non-object scheme payload.")
        return parse_scheme(body)

    def list_schemes(self) -> list[Scheme]:
        body = self._request("GET", "/schemes")
        if isinstance(body, dict):
            body = body.get("schemes")
        if not isinstance(body, list):
            raise SchemeServiceError("/schemes returned a non-list payload.")
        return [self._scheme_from(item, path="/schemes") for item in body]

    def get_scheme(self, scheme_id: int) -> Scheme:
        path = f"/schemes/{scheme_id}"
        return self._scheme_from(self._request("GET", path), path=path)

    def find_scheme(self, name: str) -> Scheme | None:
        wanted = (name or "").strip().casefold()
        for scheme in self.list_schemes():
            if scheme.name.strip().casefold() == wanted:
                return scheme
        return None

    def create_scheme(
        self,
        name: str,
        fields: Sequence[SchemeField],
        case_mode: str = "none",
    ) -> Scheme:
        payload = {
            "name": name,
            "caseMode": case_mode,
            "fields": [item.model_dump(by_alias=True) for item in fields],
        }
        body = self._request("POST", "/schemes", payload=payload)
        logger.info("scheme_created name=%s", name)
        return self._scheme_from(body, path="/schemes")

    def activate_scheme(self, scheme_id: int) -> Scheme:
        path = f"/schemes/{scheme_id}/activate"
        return self._scheme_from(self._request("POST", path), path=path)

    def deactivate_scheme(self, scheme_id: int) -> Scheme:
        path = f"/schemes/{scheme_id}/deactivate"
        return self._scheme_from(self._request("POST", path), path=path)

    def delete_scheme(self, scheme_id: int) -> None:
        self._request("DELETE", f"/schemes/{scheme_id}")
        logger.info("scheme_deleted scheme_id=%s", scheme_id)

    def set_default_scheme(self, scheme_id: int | None) -> None:
        self._request("PUT", "/schemes/default", payload={"scheme_id": scheme_id})

    def generate(
        self,
        scheme_id: int,
        field_values: Sequence[str],
        count: int,
    ) -> list[str]:
        path = f"/schemes/{scheme_id}/generate"
        body = self._request(
            "POST",
            path,
            payload={"field_values": list(field_values), "count": int(count)},
        )
        identifiers = body.get("identifiers") if isinstance(body, dict) else None
        if not isinstance(identifiers, list):
            raise SchemeServiceError(f"{path} response missing 'identifiers' list.")
        return [str(identifier) for identifier in identifiers]
