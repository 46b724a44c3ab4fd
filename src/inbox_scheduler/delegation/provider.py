"""CredentialProvider — mints delegated credentials from session credentials.

The provider is the only component that holds issuing authority. Given a
session credential it issues a narrower credential bound to one audience and
a subset of the session's scopes. It keeps no state: issued credentials are
not recorded, cached or revocable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from inbox_scheduler.delegation.scopes import KNOWN_AUDIENCES, ScopeSet
from inbox_scheduler.delegation.token import (
    DELEGATED,
    SESSION,
    CredentialError,
    SignedCredential,
    verify_token,
)
from inbox_scheduler.errors import AppError

logger = logging.getLogger(__name__)


@dataclass
class DelegationRequest:
    """A request to mint a narrower credential.

    Parameters
    ----------
    session_token:
        The caller's serialized session credential.
    target_audience:
        Identifier of the service the delegated credential is for.
    requested_scopes:
        Scopes to carry. Must be non-empty.
    expiration_time:
        Optional lifetime hint in seconds.
    """

    session_token: str
    target_audience: str
    requested_scopes: list[str]
    expiration_time: int | None = None

    def to_wire(self) -> dict[str, object]:
        body: dict[str, object] = {
            "sessionJwt": self.session_token,
            "targetAudience": self.target_audience,
            "requestedScopes": list(self.requested_scopes),
        }
        if self.expiration_time is not None:
            body["expirationTime"] = self.expiration_time
        return body


class CredentialProvider:
    """Issues session and delegated credentials signed with one key.

    Parameters
    ----------
    secret_key:
        HMAC signing key shared with the services that verify credentials.
    default_ttl_seconds:
        Lifetime of delegated credentials when no hint is given.
    max_ttl_seconds:
        Upper bound applied to any expiration hint.
    session_ttl_seconds:
        Lifetime of session credentials minted by :meth:`issue_session`.
    """

    def __init__(
        self,
        secret_key: bytes,
        default_ttl_seconds: int = 300,
        max_ttl_seconds: int = 3600,
        session_ttl_seconds: int = 3600,
    ) -> None:
        self._secret_key = secret_key
        self._default_ttl = default_ttl_seconds
        self._max_ttl = max_ttl_seconds
        self._session_ttl = session_ttl_seconds

    def issue_session(self, subject: str, scopes: list[str]) -> SignedCredential:
        """Mint a session credential for *subject* (stands in for a login flow)."""
        if not subject.strip():
            raise ValueError("subject must not be empty.")
        unknown = ScopeSet(scopes).unknown()
        if unknown:
            raise ValueError(f"Unknown scopes: {', '.join(unknown)}")
        return SignedCredential.issue(
            subject=subject,
            scopes=scopes,
            secret_key=self._secret_key,
            ttl_seconds=self._session_ttl,
            kind=SESSION,
        )

    def delegate(self, request: DelegationRequest) -> SignedCredential:
        """Mint a delegated credential for *request*.

        Raises
        ------
        AppError
            401 ``INVALID_SESSION`` if the session credential does not verify;
            400 ``VALIDATION_ERROR`` for an empty scope list; 403
            ``UNKNOWN_AUDIENCE`` or ``SCOPE_NOT_GRANTED`` when the request
            asks for more than the session may delegate.
        """
        try:
            session = verify_token(request.session_token, self._secret_key, kind=SESSION)
        except CredentialError as exc:
            raise AppError(str(exc), status=401, code="INVALID_SESSION") from exc

        if not request.requested_scopes:
            raise AppError("requestedScopes must not be empty", status=400, code="VALIDATION_ERROR")
        if request.target_audience not in KNOWN_AUDIENCES:
            raise AppError(
                f"Unknown audience {request.target_audience!r}",
                status=403,
                code="UNKNOWN_AUDIENCE",
            )

        requested = ScopeSet(request.requested_scopes)
        if not requested.issubset(session.scopes):
            missing = sorted(set(requested) - set(session.scopes))
            raise AppError(
                "Session does not hold the requested scopes",
                status=403,
                code="SCOPE_NOT_GRANTED",
                details={"missing": missing},
            )

        ttl = self._default_ttl
        if request.expiration_time is not None and request.expiration_time > 0:
            ttl = request.expiration_time
        ttl = min(ttl, self._max_ttl)

        credential = SignedCredential.issue(
            subject=session.subject,
            scopes=requested.to_list(),
            secret_key=self._secret_key,
            ttl_seconds=ttl,
            kind=DELEGATED,
            audience=request.target_audience,
            parent_token_id=session.token_id,
        )
        logger.info(
            "Issued delegated credential for subject=%s audience=%s scopes=%s ttl=%ds",
            session.subject,
            request.target_audience,
            ",".join(credential.scopes),
            ttl,
        )
        return credential


__all__ = ["CredentialProvider", "DelegationRequest"]
