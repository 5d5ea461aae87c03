"""Tests for MetricDefinition.

Coverage:
- Construction: type coercion, invalid types, tag-name normalisation
- Tag scope: unrestricted / none / some
- allows_tag, requires_tag, missing_required_tags, invalid_tags, valid_tags
- Inheritance: effective allowed/required tags, cycle guard
- Expansion names per metric type
"""

from __future__ import annotations

from enum import Enum

import pytest

from statsd_schema.schema import METRIC_EXPANSIONS, MetricDefinition, MetricType, TagScope
from statsd_schema.schema.metrics import inheritance_chain


class Tag(str, Enum):
    ENVIRONMENT = "environment"


class _Resolver:
    def __init__(self, **metrics: MetricDefinition) -> None:
        self._metrics = metrics

    def find_metric_by_path(self, path: str) -> MetricDefinition | None:
        return self._metrics.get(path)


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_type_string_is_coerced(self):
        metric = MetricDefinition("total", "counter")
        assert metric.type is MetricType.COUNTER
        assert metric.is_counter()

    def test_invalid_type_lists_valid_types(self):
        with pytest.raises(ValueError, match="Invalid metric type 'meter' for metric 'x'"):
            MetricDefinition("x", "meter")

    def test_tag_names_normalised(self):
        metric = MetricDefinition("x", "gauge", allowed_tags=[Tag.ENVIRONMENT, "region"])
        assert metric.allowed_tags == frozenset({"environment", "region"})

    def test_full_name(self):
        metric = MetricDefinition("total", "counter")
        assert metric.full_name(("web", "requests")) == "web.requests.total"
        assert metric.full_name() == "total"

    def test_kind_predicates(self):
        assert MetricDefinition("a", "timing").is_timing()
        assert MetricDefinition("a", "set").is_set()
        assert MetricDefinition("a", "histogram").is_timing_metric()
        assert MetricDefinition("a", "distribution").is_timing_metric()
        assert not MetricDefinition("a", "gauge").is_timing_metric()

    def test_replace_returns_new_definition(self):
        original = MetricDefinition("a", "counter")
        changed = original.replace(description="new")
        assert changed.description == "new"
        assert original.description is None


# =============================================================================
# Tag checks
# =============================================================================


class TestTagChecks:
    def test_unrestricted_allows_any_tag(self):
        metric = MetricDefinition("x", "counter")
        assert metric.tag_scope is TagScope.UNRESTRICTED
        assert metric.allows_tag("anything")
        assert metric.invalid_tags({"a": 1, "b": 2}) == frozenset()

    def test_allowed_list_restricts(self):
        metric = MetricDefinition("x", "counter", allowed_tags=["environment"])
        assert metric.tag_scope is TagScope.SOME
        assert metric.allows_tag("environment")
        assert not metric.allows_tag("region")
        assert metric.invalid_tags({"environment": "p", "region": "us"}) == {"region"}

    def test_no_tags_rejects_every_tag(self):
        metric = MetricDefinition("x", "counter", no_tags=True)
        assert metric.tag_scope is TagScope.NONE
        assert not metric.allows_tag("environment")
        assert metric.invalid_tags({"a": 1}) == {"a"}
        assert metric.valid_tags({})

    def test_missing_required(self):
        metric = MetricDefinition("x", "counter", required_tags=["environment", "service"])
        assert metric.requires_tag("service")
        assert metric.missing_required_tags({"environment": "p"}) == {"service"}
        assert metric.missing_required_tags(["environment", "service"]) == frozenset()

    def test_enum_keys_count_as_provided(self):
        metric = MetricDefinition("x", "counter", required_tags=["environment"])
        assert metric.valid_tags({Tag.ENVIRONMENT: "production"})

    def test_valid_tags_combines_checks(self):
        metric = MetricDefinition(
            "x", "counter", allowed_tags=["environment"], required_tags=["environment"]
        )
        assert metric.valid_tags({"environment": "p"})
        assert not metric.valid_tags({})
        assert not metric.valid_tags({"environment": "p", "other": 1})


# =============================================================================
# Inheritance
# =============================================================================


class TestInheritance:
    def test_effective_tags_merge_parent(self):
        parent = MetricDefinition(
            "total", "counter", allowed_tags=["service"], required_tags=["environment"]
        )
        child = MetricDefinition(
            "duration", "distribution", required_tags=["region"], inherit_tags="web.total"
        )
        resolver = _Resolver(**{"web.total": parent})
        assert child.effective_required_tags(resolver) == {"environment", "region"}
        assert child.effective_allowed_tags(resolver) == {"service"}

    def test_resolution_is_repeatable(self, web_schema):
        metric = web_schema.find_metric_by_path("web.requests.response_time")
        first = metric.effective_allowed_tags(web_schema)
        assert metric.effective_allowed_tags(web_schema) == first == {"service"}
        assert metric.effective_required_tags(web_schema) == {"environment", "region"}

    def test_without_resolver_only_own_tags(self):
        child = MetricDefinition("d", "gauge", required_tags=["region"], inherit_tags="p")
        assert child.effective_required_tags() == {"region"}

    def test_no_tags_child_inherits_nothing(self):
        parent = MetricDefinition("total", "counter", required_tags=["environment"])
        child = MetricDefinition("beat", "counter", inherit_tags="web.total", no_tags=True)
        resolver = _Resolver(**{"web.total": parent})
        assert child.effective_required_tags(resolver) == frozenset()
        assert child.effective_allowed_tags(resolver) == frozenset()

    def test_unknown_parent_ignored(self):
        child = MetricDefinition("d", "gauge", required_tags=["region"], inherit_tags="missing")
        assert child.effective_required_tags(_Resolver()) == {"region"}

    def test_cycle_terminates(self):
        a = MetricDefinition("a", "counter", required_tags=["x"], inherit_tags="b")
        b = MetricDefinition("b", "counter", required_tags=["y"], inherit_tags="a")
        resolver = _Resolver(a=a, b=b)
        assert a.effective_required_tags(resolver) == {"x", "y"}

    def test_inheritance_chain_reports_cycle(self):
        a = MetricDefinition("a", "counter", inherit_tags="b")
        b = MetricDefinition("b", "counter", inherit_tags="a")
        chain, cyclic = inheritance_chain(a, _Resolver(a=a, b=b))
        assert cyclic
        assert chain == ["b", "a"]

    def test_inheritance_chain_stops_at_unknown(self):
        a = MetricDefinition("a", "counter", inherit_tags="gone")
        chain, cyclic = inheritance_chain(a, _Resolver(a=a))
        assert chain == ["gone"]
        assert not cyclic


# =============================================================================
# Expansion
# =============================================================================


class TestExpansion:
    @pytest.mark.parametrize("kind", ["counter", "timing", "set"])
    def test_non_expanding_types(self, kind):
        metric = MetricDefinition("total", kind)
        assert not metric.expands()
        assert metric.expanded_names("web.total") == ["web.total"]

    def test_gauge_and_histogram_expand_to_five(self):
        for kind in ("gauge", "histogram"):
            names = MetricDefinition("m", kind).expanded_names("web.m")
            assert names == ["web.m.count", "web.m.min", "web.m.max", "web.m.sum", "web.m.avg"]

    def test_distribution_expands_to_ten(self):
        names = MetricDefinition("d", "distribution").expanded_names()
        assert len(names) == 10
        assert names[-1] == "d.p99"
        assert len(METRIC_EXPANSIONS[MetricType.DISTRIBUTION]) == 10
