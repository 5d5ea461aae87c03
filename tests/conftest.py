"""Shared fixtures.

Canonical schemas:
    web_builder        the four-metric web schema (246 combinations)
    requests_schema    web.requests total/duration (6 and 120 combinations)
    validation_builder tags of every kind, used by validator/emitter tests
"""

from __future__ import annotations

import pytest

from statsd_schema.schema import Namespace, SchemaBuilder

# =============================================================================
# State isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_state(monkeypatch):
    """Reset the default emitter, logging, and env config around every test."""
    from statsd_schema.emitter import reset
    from statsd_schema.logging import shutdown_logging

    for var in (
        "STATSD_SCHEMA_VALIDATION_MODE",
        "STATSD_SCHEMA_GLOBAL_TAGS",
        "STATSD_SCHEMA_SAMPLE_RATE",
        "STATSD_SCHEMA_SINK",
        "STATSD_SCHEMA_SINK_PATH",
        "STATSD_SCHEMA_FILE",
        "STATSD_SCHEMA_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)

    reset()
    shutdown_logging()
    yield
    reset()
    shutdown_logging()


# =============================================================================
# Schema fixtures
# =============================================================================


@pytest.fixture
def web_builder() -> SchemaBuilder:
    builder = SchemaBuilder()
    with builder.namespace("web") as web:
        web.tag("environment", ["production", "staging", "development"])
        web.tag("service", ["api", "web"])
        web.tag("region", ["us", "eu"])

        with web.namespace("requests") as requests:
            requests.counter(
                "total",
                description="Total requests",
                tags={"required": ["environment"], "allowed": ["service"]},
            )
            requests.distribution(
                "response_time",
                description="Response time",
                inherit_tags="web.requests.total",
                tags={"required": ["region"]},
            )

        web.gauge(
            "memory_usage",
            description="Memory usage",
            inherit_tags="web.requests.total",
            tags={"allowed": ["region"]},
        )

        with web.namespace("cache") as cache:
            cache.tag("cache_type", ["redis", "memcached"])
            cache.histogram(
                "hit_duration",
                description="Cache hit duration",
                inherit_tags="web.requests.total",
                tags={"required": ["cache_type"]},
            )
    return builder


@pytest.fixture
def web_schema(web_builder) -> Namespace:
    return web_builder.build()


@pytest.fixture
def requests_schema() -> Namespace:
    builder = SchemaBuilder()
    with builder.namespace("web") as web:
        with web.namespace("requests") as requests:
            requests.tag("environment", ["production", "staging", "development"])
            requests.tag("service", ["api", "web"])
            requests.tag("region", ["us", "eu"])
            requests.counter(
                "total", tags={"required": ["environment"], "allowed": ["service"]}
            )
            requests.distribution(
                "duration", inherit_tags="web.requests.total", tags={"required": ["region"]}
            )
    return builder.build()


@pytest.fixture
def validation_builder() -> SchemaBuilder:
    builder = SchemaBuilder()
    with builder.namespace("web") as web:
        web.tag("environment", ["production", "staging", "development"], transform=["downcase"])
        web.tag("service", ["api", "web"])
        web.tag("region", ["us", "eu"])
        web.tag("status_code", type="integer")
        web.tag("percent", validate=lambda v: 0 <= int(v) <= 100)

        with web.namespace("requests") as requests:
            requests.counter("total", tags={"required": ["environment", "service"]})
            requests.distribution(
                "duration", inherit_tags="web.requests.total", tags={"required": ["region"]}
            )
            requests.counter("errors", tags={"allowed": ["status_code"]})

        web.gauge("memory_usage", tags={"allowed": ["percent"]})
        web.counter("heartbeat", tags=False)
        web.histogram("payload_size")
    return builder


@pytest.fixture
def validation_schema(validation_builder) -> Namespace:
    return validation_builder.build()
