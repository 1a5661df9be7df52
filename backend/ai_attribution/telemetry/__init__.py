"""
Telemetry Module
================

Observability for the attribution service.

Components:
- sentry.py: Error tracking

Usage:
    from ai_attribution.telemetry import init_observability

    # Initialize on app startup
    init_observability(settings)
"""

from ai_attribution.telemetry.sentry import (
    capture_exception,
    capture_message,
    init_sentry,
)


def init_observability(settings) -> dict:
    """
    Initialize all observability tools.

    Returns:
        Dict with status of each tool initialization, e.g. {"sentry": False}
    """
    return {
        "sentry": init_sentry(settings.SENTRY_DSN, settings.ENVIRONMENT, settings.RELEASE_VERSION),
    }


__all__ = [
    "init_observability",
    "init_sentry",
    "capture_exception",
    "capture_message",
]
