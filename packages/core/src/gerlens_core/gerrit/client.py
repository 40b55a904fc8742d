"""Thin Gerrit REST client.

Only the endpoints the review pipeline needs. Every call goes through the
authenticated ``/a/`` prefix and returns plain decoded JSON (dicts/lists);
shaping that data into models is the snapshot builder's job.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from urllib.parse import quote

import httpx

from gerlens_core.errors import GerritApiError

logger = logging.getLogger(__name__)

# Gerrit prefixes every JSON response with this to defeat XSSI.
_XSSI_PREFIX = ")]}'"

_DEFAULT_TIMEOUT = 30.0


def _strip_xssi_prefix(text: str) -> str:
    if text.startswith(_XSSI_PREFIX):
        text = text[len(_XSSI_PREFIX) :]
    return text.lstrip("\n")


def _quote(value: str) -> str:
    return quote(str(value), safe="")


class GerritClient:
    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.host = host.rstrip("/")
        self._http = httpx.Client(
            base_url=f"{self.host}/a",
            auth=httpx.BasicAuth(username, password),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GerritApiError(f"Request failed - network or authentication error: {e}") from e
        if response.is_error:
            raise GerritApiError(response.text.strip() or response.reason_phrase, status=response.status_code)
        return response

    def _request_json(self, method: str, url: str, **kwargs):
        response = self._send(method, url, **kwargs)
        body = _strip_xssi_prefix(response.text)
        if not body.strip():
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise GerritApiError("Failed to parse response - invalid JSON format") from e

    def _request_base64(self, url: str) -> str:
        # Content and patch endpoints return base64 text, not prefixed JSON.
        response = self._send("GET", url)
        try:
            return base64.b64decode(response.text).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            raise GerritApiError("Failed to decode base64 response") from e

    # ------------------------------------------------------------------ #
    # Change data                                                          #
    # ------------------------------------------------------------------ #

    def get_change(self, change_id: str) -> dict:
        return self._request_json("GET", f"/changes/{_quote(change_id)}", params={"o": "DETAILED_ACCOUNTS"})

    def get_files(self, change_id: str, revision: str = "current") -> dict:
        return self._request_json("GET", f"/changes/{_quote(change_id)}/revisions/{revision}/files") or {}

    def get_file_diff(self, change_id: str, path: str, revision: str = "current") -> dict:
        url = f"/changes/{_quote(change_id)}/revisions/{revision}/files/{_quote(path)}/diff"
        return self._request_json("GET", url) or {}

    def get_patch(self, change_id: str, revision: str = "current") -> str:
        return self._request_base64(f"/changes/{_quote(change_id)}/revisions/{revision}/patch")

    def get_diff(self, change_id: str) -> str:
        """Unified diff of the current revision."""
        return self.get_patch(change_id)

    def get_comments(self, change_id: str) -> dict[str, list[dict]]:
        return self._request_json("GET", f"/changes/{_quote(change_id)}/comments") or {}

    def get_messages(self, change_id: str) -> list[dict]:
        return self._request_json("GET", f"/changes/{_quote(change_id)}/messages") or []

    # ------------------------------------------------------------------ #
    # Submission                                                           #
    # ------------------------------------------------------------------ #

    def post_review(self, change_id: str, review: dict) -> None:
        logger.debug("Posting review to %s: %s", change_id, sorted(review))
        self._request_json("POST", f"/changes/{_quote(change_id)}/revisions/current/review", json=review)

    def test_connection(self) -> bool:
        try:
            self._request_json("GET", "/accounts/self")
        except GerritApiError:
            return False
        return True
