"""Scoped credential delegation between the agents.

A user's session credential is exchanged at the credential provider for a
delegated credential bound to one audience and a subset of the session's
scopes. The receiving service verifies the signature, the expiry and the
audience, then checks the one scope each operation needs.

Quick start
-----------
::

    from inbox_scheduler.delegation import (
        CredentialProvider,
        DelegationRequest,
        verify_token,
    )

    secret = b"shared-signing-secret"
    provider = CredentialProvider(secret)

    session = provider.issue_session("alice@example.com", ["email.read", "calendar.write"])
    delegated = provider.delegate(
        DelegationRequest(
            session_token=session.encode(),
            target_audience="agent-b-calendar",
            requested_scopes=["calendar.write"],
        )
    )
    verify_token(delegated.encode(), secret, audience="agent-b-calendar")
"""
from __future__ import annotations

from inbox_scheduler.delegation.client import DelegatedCredential, DelegationClient
from inbox_scheduler.delegation.provider import CredentialProvider, DelegationRequest
from inbox_scheduler.delegation.scopes import ScopeDecision, ScopeSet, check_scope, require_scope
from inbox_scheduler.delegation.token import CredentialError, SignedCredential, verify_token

__all__ = [
    "CredentialError",
    "CredentialProvider",
    "DelegatedCredential",
    "DelegationClient",
    "DelegationRequest",
    "ScopeDecision",
    "ScopeSet",
    "SignedCredential",
    "check_scope",
    "require_scope",
    "verify_token",
]
