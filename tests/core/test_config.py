"""Tests for Settings resolution."""

import pytest

from event_tracking.core.config import Settings

pytestmark = pytest.mark.unit


def test_bus_name_wins_over_arn():
    settings = Settings(event_bus_name="primary", event_bus_arn="arn:aws:events:us-east-1:1:event-bus/other")
    assert settings.resolved_bus_name() == "primary"


def test_bus_name_derived_from_arn():
    settings = Settings(event_bus_name="", event_bus_arn="arn:aws:events:us-east-1:123456789012:event-bus/tracking")
    assert settings.resolved_bus_name() == "tracking"


def test_bus_name_empty_when_unconfigured():
    assert Settings(event_bus_name="", event_bus_arn="").resolved_bus_name() == ""


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("EVENTS_QUEUE_URL", "https://sqs.example/queue")
    monkeypatch.setenv("PROPAGATE_DURABLE_FAILURES", "false")

    settings = Settings()

    assert settings.events_queue_url == "https://sqs.example/queue"
    assert settings.propagate_durable_failures is False
