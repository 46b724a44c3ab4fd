"""AuthMiddleware — bearer credential authentication for agent requests.

Parses the ``Authorization`` header, verifies the signed credential and
produces an :class:`AuthResult` carrying the subject and the full granted
scope set. Scope enforcement is left to the route, via
:func:`inbox_scheduler.delegation.scopes.require_scope`.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from inbox_scheduler.delegation.scopes import ScopeSet
from inbox_scheduler.delegation.token import CredentialError, verify_token
from inbox_scheduler.errors import AppError


@dataclass
class AuthResult:
    """Result of an authentication attempt.

    Parameters
    ----------
    success:
        Whether authentication succeeded.
    subject:
        The authenticated user (empty string if failed).
    scopes:
        Scopes granted by the verified credential.
    kind:
        ``"session"`` or ``"delegated"`` (empty if failed).
    token:
        The raw bearer value, for onward exchange.
    reason:
        Human-readable explanation of a failure (empty on success).
    code:
        Error code for a failure (empty on success).
    """

    success: bool
    subject: str = ""
    scopes: ScopeSet = field(default_factory=ScopeSet)
    kind: str = ""
    token: str = field(default="", repr=False)
    reason: str = ""
    code: str = ""

    def raise_for_failure(self) -> None:
        """Raise a 401 :class:`AppError` if authentication failed."""
        if not self.success:
            raise AppError(self.reason, status=401, code=self.code or "INVALID_TOKEN")


class AuthMiddleware:
    """Bearer-credential authentication.

    Parameters
    ----------
    secret_key:
        Key used to verify credential signatures.
    audience:
        This service's audience identifier. Delegated credentials minted for
        any other audience are rejected.
    accepted_kinds:
        Credential kinds this service accepts.
    """

    def __init__(
        self,
        secret_key: bytes,
        audience: str,
        accepted_kinds: tuple[str, ...] = ("session", "delegated"),
    ) -> None:
        self._secret_key = secret_key
        self._audience = audience
        self._accepted_kinds = accepted_kinds

    @staticmethod
    def extract_bearer(authorization_header: str | None) -> str | None:
        """Return the bearer value from an Authorization header, or None."""
        if not authorization_header:
            return None
        parts = authorization_header.strip().split(None, 1)
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
            return None
        return parts[1].strip()

    def authenticate_bearer(self, token: str) -> AuthResult:
        """Verify a raw bearer token."""
        try:
            credential = verify_token(token, self._secret_key, audience=self._audience)
        except CredentialError as exc:
            return AuthResult(success=False, reason=str(exc), code="INVALID_TOKEN")

        if credential.kind not in self._accepted_kinds:
            return AuthResult(
                success=False,
                reason=f"{credential.kind.capitalize()} credentials are not accepted here.",
                code="INVALID_TOKEN",
            )

        return AuthResult(
            success=True,
            subject=credential.subject,
            scopes=ScopeSet(credential.scopes),
            kind=credential.kind,
            token=token,
        )

    def authenticate_from_header(self, authorization_header: str | None) -> AuthResult:
        """Parse an HTTP Authorization header and authenticate it."""
        token = self.extract_bearer(authorization_header)
        if token is None:
            return AuthResult(
                success=False,
                reason="Authorization header required",
                code="MISSING_TOKEN",
            )
        return self.authenticate_bearer(token)


__all__ = ["AuthMiddleware", "AuthResult"]
