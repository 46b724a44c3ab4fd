"""Route handlers for the local credential provider."""
from __future__ import annotations

from inbox_scheduler.clock import to_iso
from inbox_scheduler.config import Settings
from inbox_scheduler.delegation.provider import CredentialProvider, DelegationRequest
from inbox_scheduler.server.app import Request, RouteResult, ServiceRoutes
from inbox_scheduler.server.models import DelegateRequest, success_envelope


class ProviderRoutes(ServiceRoutes):
    """HTTP surface of :class:`CredentialProvider`."""

    service_name = "credential-provider"
    routes = [
        ("POST", r"/v1/delegate", "handle_delegate"),
    ]

    def __init__(self, provider: CredentialProvider, cors_origin: str = "*") -> None:
        super().__init__(cors_origin=cors_origin)
        self.provider = provider

    def handle_delegate(self, request: Request) -> RouteResult:
        body = DelegateRequest.model_validate(self.body_dict(request))
        credential = self.provider.delegate(
            DelegationRequest(
                session_token=body.session_jwt,
                target_audience=body.target_audience,
                requested_scopes=body.requested_scopes,
                expiration_time=body.expiration_time,
            )
        )
        return 200, success_envelope(
            {
                "token": credential.encode(),
                "audience": credential.audience,
                "scopes": list(credential.scopes),
                "expiresAt": to_iso(credential.expires_at),
            }
        )


def build_provider_routes(settings: Settings) -> ProviderRoutes:
    provider = CredentialProvider(
        settings.signing_key_bytes,
        default_ttl_seconds=settings.delegated_token_ttl,
        session_ttl_seconds=settings.session_token_ttl,
    )
    return ProviderRoutes(provider, cors_origin=settings.cors_origin)


__all__ = ["ProviderRoutes", "build_provider_routes"]
