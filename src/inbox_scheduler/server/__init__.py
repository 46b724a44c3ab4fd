"""HTTP server mode for the agents and the credential provider.

Provides a lightweight stdlib-based HTTP API without requiring any
additional web framework dependencies.
"""
from __future__ import annotations

from inbox_scheduler.server.app import JsonRequestHandler, ServiceRoutes, create_server, run_server

__all__ = ["JsonRequestHandler", "ServiceRoutes", "create_server", "run_server"]
