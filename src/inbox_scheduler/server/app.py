"""HTTP plumbing shared by both agents and the credential provider.

Each service is a :class:`ServiceRoutes` subclass: a table of
``(method, path pattern, handler name)`` entries whose handlers take a
:class:`Request` and return ``(status_code, response_dict)``. The stdlib
``http.server`` handler below only parses the request, calls
:meth:`ServiceRoutes.dispatch` and serializes the result to JSON, so routes
are testable without opening a socket.
"""
from __future__ import annotations

import json
import logging
import re
import time
import urllib.parse
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, ClassVar

from pydantic import ValidationError

from inbox_scheduler import __version__
from inbox_scheduler.errors import AppError, validation_error
from inbox_scheduler.middleware.rate_limit import SlidingWindowRateLimiter
from inbox_scheduler.server.models import (
    HealthResponse,
    error_envelope,
    validation_details,
)
from inbox_scheduler.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

RouteResult = tuple[int, dict[str, object]]


@dataclass
class Request:
    """A parsed HTTP request.

    Header names are stored lower-cased; use :meth:`header` to read them.
    """

    method: str
    path: str
    body: object = None
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, list[str]] = field(default_factory=dict)
    client: str = ""
    path_params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def query_param(self, name: str) -> str | None:
        values = self.query.get(name)
        return values[0] if values else None


@dataclass
class Response:
    status: int
    body: dict[str, object]
    headers: dict[str, str] = field(default_factory=dict)


class ServiceRoutes:
    """Base class for a service's route table.

    Subclasses set :attr:`service_name` and :attr:`routes` and implement the
    handler methods the table names. Paths in the table are regular
    expressions with named groups for path parameters.
    """

    service_name: ClassVar[str] = "service"
    routes: ClassVar[list[tuple[str, str, str]]] = []
    capabilities: ClassVar[list[str] | None] = None

    def __init__(
        self,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        cors_origin: str = "*",
    ) -> None:
        self.rate_limiter = rate_limiter
        self.cors_origin = cors_origin
        self._started = time.monotonic()
        self._compiled: list[tuple[str, re.Pattern[str], Callable[[Request], RouteResult]]] = [
            (method, re.compile(f"^{pattern}$"), getattr(self, handler_name))
            for method, pattern, handler_name in self.routes
        ]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, request: Request) -> Response:
        """Route *request* and convert errors into envelopes."""
        path = request.path.rstrip("/") or "/"

        if path == "/api/health" and request.method == "GET":
            return Response(200, self.handle_health())

        if self.rate_limiter is not None:
            decision = self.rate_limiter.check(request.client, path)
            if not decision.allowed:
                message = decision.rule.message if decision.rule else "Too many requests"
                error = AppError(message, status=429, code="RATE_LIMITED")
                return Response(
                    429, error_envelope(error), {"Retry-After": str(decision.retry_after)}
                )

        path_matched = False
        for method, pattern, handler in self._compiled:
            match = pattern.match(path)
            if match is None:
                continue
            path_matched = True
            if method != request.method:
                continue
            request.path_params = {k: urllib.parse.unquote(v) for k, v in match.groupdict().items()}
            return self._invoke(handler, request)

        if path_matched:
            error = AppError(
                f"Method {request.method} not allowed on {path}", status=405, code="METHOD_NOT_ALLOWED"
            )
        else:
            error = AppError(
                f"Route {request.method} {path} not found", status=404, code="NOT_FOUND"
            )
        return Response(error.status, error_envelope(error))

    def _invoke(self, handler: Callable[[Request], RouteResult], request: Request) -> Response:
        try:
            status, body = handler(request)
        except ValidationError as exc:
            error = validation_error(validation_details(exc))
            return Response(error.status, error_envelope(error))
        except AppError as exc:
            logger.warning(
                "%s %s -> %d %s: %s", request.method, request.path, exc.status, exc.code, exc.message
            )
            return Response(exc.status, error_envelope(exc))
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            error = AppError("Internal server error")
            return Response(500, error_envelope(error))
        return Response(status, body)

    # ------------------------------------------------------------------
    # Shared handlers
    # ------------------------------------------------------------------

    def handle_health(self) -> dict[str, object]:
        return HealthResponse(
            service=self.service_name,
            timestamp=to_iso(utcnow()),
            version=__version__,
            uptime=round(time.monotonic() - self._started, 3),
            capabilities=self.capabilities,
        ).model_dump(exclude_none=True)

    @staticmethod
    def body_dict(request: Request) -> dict[str, object]:
        """Return the JSON body as a dict, or raise ``VALIDATION_ERROR``."""
        if request.body is None:
            return {}
        if not isinstance(request.body, dict):
            raise validation_error("Request body must be a JSON object")
        return request.body


class JsonRequestHandler(BaseHTTPRequestHandler):
    """Stdlib request handler bound to one :class:`ServiceRoutes` instance.

    Concrete handler classes are produced by :func:`create_server`.
    """

    service_routes: ClassVar[ServiceRoutes]

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    def do_GET(self) -> None:
        self._handle("GET")

    def do_POST(self) -> None:
        self._handle("POST")

    def do_PUT(self) -> None:
        self._handle("PUT")

    def do_DELETE(self) -> None:
        self._handle("DELETE")

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
        self.send_header(
            "Access-Control-Allow-Headers", "Content-Type, Authorization, X-Agent, X-Requested-With"
        )
        self.send_header("Content-Length", "0")
        self.end_headers()

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _handle(self, method: str) -> None:
        parsed = urllib.parse.urlparse(self.path)
        body: object = None
        if method in ("POST", "PUT"):
            try:
                body = self._read_json_body()
            except ValueError as exc:
                error = AppError("Invalid JSON", status=400, code="INVALID_JSON", details=str(exc))
                self._send_json(Response(400, error_envelope(error)))
                return

        request = Request(
            method=method,
            path=parsed.path,
            body=body,
            headers=dict(self.headers.items()),
            query=urllib.parse.parse_qs(parsed.query),
            client=self.client_address[0] if self.client_address else "",
        )
        self._send_json(self.service_routes.dispatch(request))

    def _send_cors_headers(self) -> None:
        self.send_header("Access-Control-Allow-Origin", self.service_routes.cors_origin)
        self.send_header("Access-Control-Allow-Credentials", "true")

    def _send_json(self, response: Response) -> None:
        """Serialize *response* to JSON and send it."""
        payload = json.dumps(response.body, default=str).encode("utf-8")
        self.send_response(response.status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self._send_cors_headers()
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(payload)

    def _read_json_body(self) -> object:
        """Read and parse the JSON request body; None when there is none.

        Raises
        ------
        ValueError
            If the body is not valid UTF-8 JSON.
        """
        content_length = int(self.headers.get("Content-Length", 0) or 0)
        if content_length == 0:
            return None
        raw = self.rfile.read(content_length)
        return json.loads(raw.decode("utf-8"))


def create_server(routes: ServiceRoutes, host: str = "0.0.0.0", port: int = 8080) -> HTTPServer:
    """Create (but do not start) an HTTP server for *routes*."""
    handler_class = type(
        f"{type(routes).__name__}Handler",
        (JsonRequestHandler,),
        {"service_routes": routes},
    )
    server = HTTPServer((host, port), handler_class)
    logger.info("%s server created at http://%s:%d", routes.service_name, host, port)
    return server


def run_server(routes: ServiceRoutes, host: str = "0.0.0.0", port: int = 8080) -> None:
    """Create and run the server for *routes* (blocking)."""
    server = create_server(routes, host=host, port=port)
    logger.info("Serving %s on http://%s:%d", routes.service_name, host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down %s.", routes.service_name)
    finally:
        server.server_close()


__all__ = [
    "JsonRequestHandler",
    "Request",
    "Response",
    "RouteResult",
    "ServiceRoutes",
    "create_server",
    "run_server",
]
