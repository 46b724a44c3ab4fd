#!/usr/bin/env python3
"""Example: Two-agent demo

Runs the email agent, the calendar agent and the credential provider in one
process, wired over an in-memory httpx transport. With no Google or OpenAI
credentials configured every external call falls back to mock data, so the
demo works offline.

Usage:
    python examples/01_two_agent_demo.py

Requirements:
    pip install inbox-scheduler
"""
from __future__ import annotations

import json

import httpx

import inbox_scheduler
from inbox_scheduler.config import Settings
from inbox_scheduler.delegation.provider import CredentialProvider
from inbox_scheduler.server.app import Request, ServiceRoutes
from inbox_scheduler.server.calendar_routes import build_calendar_routes
from inbox_scheduler.server.email_routes import build_email_routes
from inbox_scheduler.server.provider_routes import build_provider_routes


def main() -> None:
    print(f"inbox-scheduler version: {inbox_scheduler.__version__}")

    settings = Settings(
        signing_key="demo-signing-key",
        provider_url="http://provider.local",
        calendar_agent_url="http://calendar.local",
    )
    services: dict[str, ServiceRoutes] = {}

    def route(request: httpx.Request) -> httpx.Response:
        target = services[request.url.host]
        response = target.dispatch(
            Request(
                method=request.method,
                path=request.url.path,
                body=json.loads(request.content) if request.content else None,
                headers=dict(request.headers),
            )
        )
        return httpx.Response(response.status, json=response.body, headers=response.headers)

    with httpx.Client(transport=httpx.MockTransport(route)) as http_client:
        services["provider.local"] = build_provider_routes(settings)
        services["calendar.local"] = build_calendar_routes(settings, http_client)
        email_agent = build_email_routes(settings, http_client)

        # Step 1: Log the user in (a session credential stands in for OAuth)
        session = CredentialProvider(settings.signing_key_bytes).issue_session(
            "demo-user@example.com", ["email.read", "calendar.read", "calendar.write"]
        )
        print(f"Session credential issued: id={session.token_id}")

        # Step 2: Ask Agent A to process the inbox
        response = email_agent.dispatch(
            Request(
                "POST",
                "/api/process-emails",
                body={"maxResults": 3},
                headers={"Authorization": f"Bearer {session.encode()}"},
            )
        )
        print(f"process-emails -> HTTP {response.status}")

        # Step 3: Show what was summarized and scheduled
        data = response.body["data"]
        assert isinstance(data, dict)
        for summary in data["summaries"]:
            print(f"\n[{summary['id']}] {summary['summary']}")
            for action in summary["actionItems"]:
                print(f"  - action: {action['title']}")
        print(f"\nEvents created: {len(data['eventsCreated'])}")
        for event in data["eventsCreated"]:
            print(f"  {event['startTime']}  {event['title']}  ({event['id']})")
        if data["errors"]:
            print(f"Errors: {data['errors']}")

    print("\nDemo complete.")


if __name__ == "__main__":
    main()
