"""Remote store access.

This module provides:
- RemoteStore: Protocol of the row-oriented collection API the core needs
- RestRemoteStore: httpx client for a PostgREST (Supabase REST) endpoint
- RemoteError and subclasses: failures, kept distinct from "no rows"

Rows are plain dictionaries addressed by table name and "id" column.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

if TYPE_CHECKING:
    from offlinesync.core.config import RemoteConfig

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class RemoteError(Exception):
    """Base exception for remote store failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteUnavailableError(RemoteError):
    """Request never got an answer (network down, DNS, timeout)."""


class AuthenticationError(RemoteError):
    """Authentication failed or session expired."""


class RowNotFoundError(RemoteError):
    """Table or resource not found."""


class ConflictError(RemoteError):
    """Write rejected by a constraint (e.g., unique violation)."""


class RemoteStore(Protocol):
    """Row-oriented collection API.

    Implementations raise RemoteError on failure. An empty result is a
    success, never an error.
    """

    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Fetch rows matching filters."""
        ...

    def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return the stored representation."""
        ...

    def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        """Patch the row with this id; None if no row matched."""
        ...

    def delete(self, table: str, row_id: str) -> None:
        """Delete the row with this id."""
        ...

    def health_check(self) -> bool:
        """Return True if the store is reachable."""
        ...


class RestRemoteStore:
    """HTTP client for a PostgREST endpoint."""

    def __init__(self, config: RemoteConfig) -> None:
        """Initialize the client.

        Args:
            config: Remote configuration (URL, key, timeout, SSL settings).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.rest_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.api_key}",
                "Prefer": "return=representation",
            },
        )

    @property
    def config(self) -> RemoteConfig:
        """Get the remote configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RestRemoteStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @staticmethod
    def _detail(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or default
        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or default)
        return default

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code in (401, 403):
            raise AuthenticationError(
                self._detail(response, "Invalid or expired token"), response.status_code
            )
        if response.status_code == 404:
            raise RowNotFoundError(self._detail(response, "Resource not found"), 404)
        if response.status_code == 409:
            raise ConflictError(self._detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise RemoteError(
                self._detail(response, "Unknown error"), response.status_code
            )
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise RemoteUnavailableError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    @staticmethod
    def _rows(response: httpx.Response) -> list[Row]:
        if not response.content:
            return []
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteError(f"Malformed response body: {e}", response.status_code) from e
        if isinstance(body, list):
            return body
        return [body]

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the remote store is reachable.

        Returns:
            True if the REST root answers without a server error.
        """
        try:
            response = self._client.get("/")
            return response.status_code < 500
        except httpx.RequestError:
            return False

    # === Row operations ===

    def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Fetch rows from a table.

        Args:
            table: Table name.
            filters: Column -> value equality filters.
            order: PostgREST order terms, e.g. ["created_at.desc"].
            limit: Maximum number of rows.

        Returns:
            Matching rows (possibly empty).
        """
        params: dict[str, str] = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = ",".join(order)
        if limit is not None:
            params["limit"] = str(limit)
        response = self._request("GET", f"/{table}", params=params)
        return self._rows(response)

    def insert(self, table: str, row: Row) -> Row:
        """Insert a row.

        Returns:
            The row as stored by the server.
        """
        response = self._request("POST", f"/{table}", json=row)
        rows = self._rows(response)
        return rows[0] if rows else dict(row)

    def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        """Patch a row by id.

        Returns:
            Updated row, or None if no row has this id.
        """
        payload = {key: value for key, value in changes.items() if key != "id"}
        response = self._request(
            "PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json=payload
        )
        rows = self._rows(response)
        return rows[0] if rows else None

    def delete(self, table: str, row_id: str) -> None:
        """Delete a row by id (deleting a missing row is not an error)."""
        self._request("DELETE", f"/{table}", params={"id": f"eq.{row_id}"})
