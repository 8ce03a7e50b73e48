# src/events/sink_factory.py — v1
"""Factory for the analytics event sink."""

from __future__ import annotations

import logging

from goofyy.config.settings import Settings
from goofyy.events.base_event_sink import BaseEventSink, NullEventSink

logger = logging.getLogger(__name__)


def create_event_sink(settings: Settings) -> BaseEventSink:
    """PostHog sink when POSTHOG_API_KEY is set, otherwise a null sink."""
    if not settings.analytics_enabled:
        logger.info("Analytics disabled (POSTHOG_API_KEY not set)")
        return NullEventSink()

    from goofyy.events.posthog_sink import PostHogEventSink
    return PostHogEventSink(
        api_key=settings.posthog_api_key,
        host=settings.posthog_host,
        distinct_id=settings.analytics_distinct_id,
        timeout_s=settings.analytics_timeout_s,
    )
