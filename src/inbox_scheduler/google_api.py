"""Thin authenticated REST caller shared by the Gmail and Calendar gateways.

Every call returns a :data:`~inbox_scheduler.result.Result`. Failures carry
an error message built from the HTTP status line and the Google error body,
classified against the caller's rule table.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from inbox_scheduler.errors import ErrorRule, classify
from inbox_scheduler.result import Err, Ok, ProviderError, Result

logger = logging.getLogger(__name__)


def describe_error(response: httpx.Response) -> str:
    """Build ``"<status> <reason>: <google message> (<reasons>)"`` for *response*."""
    text = f"{response.status_code} {response.reason_phrase}"
    try:
        body = response.json()
    except ValueError:
        return text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message")
        if message:
            text = f"{text}: {message}"
        reasons = [
            str(item.get("reason"))
            for item in error.get("errors") or []
            if isinstance(item, dict) and item.get("reason")
        ]
        if reasons:
            text = f"{text} ({', '.join(reasons)})"
    elif isinstance(error, str):
        # OAuth token endpoint errors, e.g. {"error": "invalid_grant"}
        text = f"{text}: {error}"
    return text


class GoogleApiClient:
    """Bearer-authenticated JSON calls against a Google REST API.

    Parameters
    ----------
    provider:
        Provider name recorded on errors (``"gmail"``, ``"calendar"``).
    access_token:
        OAuth access token. None means the provider is unconfigured.
    http_client:
        Shared ``httpx.Client``.
    """

    def __init__(self, provider: str, access_token: str | None, http_client: httpx.Client) -> None:
        self._provider = provider
        self._access_token = access_token
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(self._access_token)

    def request(
        self,
        operation: str,
        method: str,
        url: str,
        rules: tuple[ErrorRule, ...] = (),
        **kwargs: Any,
    ) -> Result[Any]:
        """Perform one call; returns ``Ok(json or None)`` or ``Err(ProviderError)``."""
        if not self.configured:
            return Err(
                ProviderError(
                    provider=self._provider,
                    operation=operation,
                    message=f"{self._provider} credentials not configured",
                    unconfigured=True,
                )
            )

        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            message = f"{type(exc).__name__}: {exc}"
            return Err(
                ProviderError(
                    provider=self._provider,
                    operation=operation,
                    message=message,
                    classified=classify(message, rules),
                )
            )

        if not response.is_success:
            message = describe_error(response)
            logger.error("%s.%s failed: %s", self._provider, operation, message)
            return Err(
                ProviderError(
                    provider=self._provider,
                    operation=operation,
                    message=message,
                    status_code=response.status_code,
                    classified=classify(message, rules),
                )
            )

        if response.status_code == 204 or not response.content:
            return Ok(None)
        try:
            return Ok(response.json())
        except ValueError:
            return Err(
                ProviderError(
                    provider=self._provider,
                    operation=operation,
                    message="Malformed JSON in provider response",
                    status_code=response.status_code,
                )
            )


__all__ = ["GoogleApiClient", "describe_error"]
