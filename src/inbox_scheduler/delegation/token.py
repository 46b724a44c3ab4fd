"""SignedCredential — HMAC-signed session and delegated credentials.

A credential is serialized as ``<payload>.<signature>`` where *payload* is
the base64url encoding of a deterministic JSON document and *signature* is
the base64url HMAC-SHA256 of that payload. Verification recomputes the HMAC
and compares in constant time, then checks expiry and, when asked, the
audience.
"""
from __future__ import annotations

import base64
import binascii
import datetime
import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass, field

SESSION = "session"
DELEGATED = "delegated"


class CredentialError(Exception):
    """Raised when a serialized credential cannot be decoded or verified."""


@dataclass
class SignedCredential:
    """A signed bearer credential.

    Parameters
    ----------
    token_id:
        Unique identifier (UUID).
    subject:
        The end user the credential acts for.
    kind:
        ``"session"`` for a first-party user session, ``"delegated"`` for a
        credential minted from a session for one audience.
    scopes:
        Sorted list of granted scope names.
    issued_at:
        UTC issue time.
    expires_at:
        UTC expiry time.
    audience:
        Target service identifier. None for session credentials.
    issuer:
        Name of the minting service.
    parent_token_id:
        For delegated credentials, the ``token_id`` of the source session.
    signature:
        Base64url HMAC-SHA256 over the payload. Empty until signed.
    """

    token_id: str
    subject: str
    kind: str
    scopes: list[str]
    issued_at: datetime.datetime
    expires_at: datetime.datetime
    audience: str | None = None
    issuer: str = "inbox-scheduler"
    parent_token_id: str | None = None
    signature: str = field(default="", repr=False)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def issue(
        cls,
        subject: str,
        scopes: list[str],
        secret_key: bytes,
        ttl_seconds: int = 3600,
        kind: str = SESSION,
        audience: str | None = None,
        parent_token_id: str | None = None,
        issuer: str = "inbox-scheduler",
    ) -> "SignedCredential":
        """Create and sign a new credential valid for *ttl_seconds*."""
        if kind not in (SESSION, DELEGATED):
            raise ValueError(f"Unknown credential kind {kind!r}.")
        if kind == DELEGATED and not audience:
            raise ValueError("Delegated credentials require an audience.")
        now = datetime.datetime.now(datetime.timezone.utc)
        credential = cls(
            token_id=str(uuid.uuid4()),
            subject=subject,
            kind=kind,
            scopes=sorted(set(scopes)),
            issued_at=now,
            expires_at=now + datetime.timedelta(seconds=ttl_seconds),
            audience=audience,
            issuer=issuer,
            parent_token_id=parent_token_id,
        )
        credential.signature = _sign_payload(credential._payload_bytes(), secret_key)
        return credential

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        """Return True if the credential has passed its expiry time."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return now >= self.expires_at

    def signature_valid(self, secret_key: bytes) -> bool:
        """Return True if the signature matches the claims, ignoring expiry."""
        if not self.signature:
            return False
        expected = _sign_payload(self._payload_bytes(), secret_key)
        return hmac.compare_digest(self.signature.encode("utf-8"), expected.encode("ascii"))

    def verify(self, secret_key: bytes) -> bool:
        """Return True if the signature is valid and the credential is unexpired."""
        return self.signature_valid(secret_key) and not self.is_expired()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Return the signable claims as a plain dictionary."""
        return {
            "token_id": self.token_id,
            "subject": self.subject,
            "kind": self.kind,
            "scopes": list(self.scopes),
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "audience": self.audience,
            "issuer": self.issuer,
            "parent_token_id": self.parent_token_id,
        }

    def encode(self) -> str:
        """Serialize to the compact ``<payload>.<signature>`` form."""
        if not self.signature:
            raise CredentialError("Cannot encode an unsigned credential.")
        payload = _b64encode(self._payload_bytes())
        return f"{payload}.{self.signature}"

    @classmethod
    def decode(cls, token: str) -> "SignedCredential":
        """Parse a compact token without verifying it.

        Raises
        ------
        CredentialError
            If the token is not structurally valid.
        """
        parts = token.strip().split(".")
        if len(parts) != 2 or not all(parts):
            raise CredentialError("Malformed credential: expected <payload>.<signature>.")
        payload_b64, signature = parts
        if not signature.isascii():
            raise CredentialError("Malformed credential: signature is not base64url.")
        try:
            data = json.loads(_b64decode(payload_b64).decode("utf-8"))
            return cls(
                token_id=str(data["token_id"]),
                subject=str(data["subject"]),
                kind=str(data["kind"]),
                scopes=[str(s) for s in (data.get("scopes") or [])],
                issued_at=_parse_timestamp(data["issued_at"]),
                expires_at=_parse_timestamp(data["expires_at"]),
                audience=str(data["audience"]) if data.get("audience") else None,
                issuer=str(data.get("issuer", "")),
                parent_token_id=(
                    str(data["parent_token_id"]) if data.get("parent_token_id") else None
                ),
                signature=signature,
            )
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CredentialError(f"Malformed credential payload: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise CredentialError(f"Credential payload is missing fields: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _payload_bytes(self) -> bytes:
        """Produce a deterministic byte representation of the signable payload."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def verify_token(
    token: str,
    secret_key: bytes,
    kind: str | None = None,
    audience: str | None = None,
) -> SignedCredential:
    """Decode and verify *token*, returning the credential.

    Parameters
    ----------
    token:
        Compact serialized credential.
    secret_key:
        Signing key shared with the issuer.
    kind:
        If given, the credential must be of this kind.
    audience:
        If given, a delegated credential must carry exactly this audience.

    Raises
    ------
    CredentialError
        On any decoding, signature, expiry, kind or audience failure.
    """
    credential = SignedCredential.decode(token)
    if not credential.verify(secret_key):
        raise CredentialError("Credential signature is invalid or the credential has expired.")
    if kind is not None and credential.kind != kind:
        raise CredentialError(f"Expected a {kind} credential, got {credential.kind}.")
    if audience is not None and credential.kind == DELEGATED and credential.audience != audience:
        raise CredentialError(
            f"Credential audience {credential.audience!r} does not match {audience!r}."
        )
    return credential


# ------------------------------------------------------------------
# Encoding helpers
# ------------------------------------------------------------------


def _parse_timestamp(value: object) -> datetime.datetime:
    """Parse a claim timestamp, which must carry a UTC offset."""
    parsed = datetime.datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        raise CredentialError(f"Credential timestamp {value!r} has no timezone.")
    return parsed


def _sign_payload(payload: bytes, secret_key: bytes) -> str:
    """Compute HMAC-SHA256 over *payload* and return base64url-encoded string."""
    mac = hmac.new(secret_key, payload, hashlib.sha256).digest()
    return _b64encode(mac)


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


__all__ = [
    "CredentialError",
    "DELEGATED",
    "SESSION",
    "SignedCredential",
    "verify_token",
]
