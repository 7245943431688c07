"""Request dependencies."""

from fastapi import Request

from coworkly.domain.scheduling import SchedulingService


def get_scheduling(request: Request) -> SchedulingService:
    """Scheduling service attached to the app at startup (overridable in tests)."""
    return request.app.state.scheduling
