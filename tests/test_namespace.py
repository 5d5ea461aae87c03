"""Tests for the Namespace tree.

Coverage:
- Persistent updates share untouched subtrees
- Path lookup for metrics and namespaces
- all_metrics / iter_metrics fully-qualified names
- Tag visibility along the ancestor chain
- validate_tag_references defect messages
- Counts
"""

from __future__ import annotations

import pytest

from statsd_schema.errors import UnknownNamespaceError
from statsd_schema.schema import MetricDefinition, Namespace, SchemaBuilder, TagDefinition

# =============================================================================
# Construction and immutability
# =============================================================================


class TestPersistentUpdates:
    def test_add_metric_returns_new_node(self):
        ns = Namespace("web")
        updated = ns.add_metric(MetricDefinition("total", "counter"))
        assert not ns.has_metric("total")
        assert updated.has_metric("total")
        assert updated.metric_names == ["total"]

    def test_add_tag_and_namespace(self):
        child = Namespace("requests")
        ns = Namespace("web").add_tag(TagDefinition("env")).add_namespace(child)
        assert ns.tag_names == ["env"]
        assert ns.namespace_names == ["requests"]
        assert ns.find_namespace("requests") is child

    def test_untouched_children_shared(self):
        child = Namespace("requests")
        ns = Namespace("web").add_namespace(child)
        updated = ns.add_tag(TagDefinition("env"))
        assert updated.find_namespace("requests") is child

    def test_mappings_are_read_only(self):
        ns = Namespace("web", metrics={"a": MetricDefinition("a", "counter")})
        with pytest.raises(TypeError):
            ns.metrics["b"] = MetricDefinition("b", "counter")  # type: ignore[index]


# =============================================================================
# Lookup
# =============================================================================


class TestLookup:
    def test_find_metric_by_path(self, web_schema):
        total = web_schema.find_metric_by_path("web.requests.total")
        assert total is not None
        assert total.name == "total"
        assert web_schema.find_metric_by_path("web.memory_usage").is_gauge()

    def test_find_metric_by_path_missing(self, web_schema):
        assert web_schema.find_metric_by_path("web.requests.nope") is None
        assert web_schema.find_metric_by_path("nope.total") is None

    def test_find_namespace_by_path(self, web_schema):
        requests = web_schema.find_namespace_by_path("web.requests")
        assert requests is not None and requests.name == "requests"
        assert web_schema.find_namespace_by_path("") is web_schema
        assert web_schema.find_namespace_by_path("web.nope") is None

    def test_require_namespace(self, web_schema):
        assert web_schema.require_namespace("web.cache").name == "cache"
        with pytest.raises(UnknownNamespaceError, match="Unknown namespace 'web.db'"):
            web_schema.require_namespace("web.db")

    def test_full_path(self):
        assert Namespace("requests").full_path(("web",)) == ("web", "requests")

    def test_all_metrics_fully_qualified(self, web_schema):
        names = set(web_schema.all_metrics())
        assert names == {
            "web.requests.total",
            "web.requests.response_time",
            "web.memory_usage",
            "web.cache.hit_duration",
        }

    def test_metric_info(self, web_schema):
        info = web_schema.all_metrics()["web.cache.hit_duration"]
        assert info.namespace_path == ("web", "cache")
        assert info.namespace_name == "web.cache"
        assert info.namespace.name == "cache"
        assert info.definition.is_histogram()

    def test_root_is_not_part_of_names(self, web_schema):
        assert web_schema.is_root
        assert all(not n.startswith("root.") for n in web_schema.all_metrics())


# =============================================================================
# Tag visibility
# =============================================================================


class TestTagChain:
    def test_child_sees_ancestor_tags(self, web_schema):
        visible = web_schema.tag_chain("web.cache")
        assert set(visible) == {"environment", "service", "region", "cache_type"}

    def test_sibling_tags_not_visible(self, web_schema):
        assert "cache_type" not in web_schema.tag_chain(("web", "requests"))

    def test_nearest_declaration_wins(self):
        builder = SchemaBuilder()
        with builder.namespace("web") as web:
            web.tag("env", ["a", "b"])
            with web.namespace("inner") as inner:
                inner.tag("env", ["c"])
        schema = builder.build()
        assert schema.tag_chain("web.inner")["env"].estimated_value_count == 1
        assert schema.tag_chain("web")["env"].estimated_value_count == 2

    def test_effective_tags_overrides_parent(self):
        ns = Namespace("web", tags={"env": TagDefinition("env", ["x"])})
        merged = ns.effective_tags({"env": TagDefinition("env"), "other": TagDefinition("other")})
        assert merged["env"].restricted
        assert "other" in merged


# =============================================================================
# Structural validation
# =============================================================================


class TestValidateTagReferences:
    def test_valid_schema_has_no_defects(self, web_schema):
        assert web_schema.validate_tag_references() == []

    def test_tag_from_ancestor_resolves(self):
        builder = SchemaBuilder()
        with builder.namespace("web") as web:
            web.tag("env")
            with web.namespace("inner") as inner:
                inner.counter("c", tags={"required": ["env"]})
        assert builder.build().validate_tag_references() == []

    def test_unknown_allowed_and_required_tags(self):
        builder = SchemaBuilder()
        with builder.namespace("web") as web:
            web.counter("c", tags={"allowed": ["ghost"], "required": ["phantom"]})
        errors = builder.build().validate_tag_references()
        assert "Metric web.c references unknown tag: ghost" in errors
        assert "Metric web.c requires unknown tag: phantom" in errors
        assert "Metric web.c requires tag phantom that is not in its allowed tags" in errors

    def test_no_tags_with_required(self):
        schema = Namespace(
            "root",
            namespaces={
                "web": Namespace(
                    "web",
                    tags={"env": TagDefinition("env")},
                    metrics={
                        "c": MetricDefinition(
                            "c", "counter", required_tags=["env"], no_tags=True
                        )
                    },
                )
            },
        )
        assert schema.validate_tag_references() == [
            "Metric web.c accepts no tags but requires some"
        ]

    def test_unknown_inherit_target(self):
        builder = SchemaBuilder()
        with builder.namespace("web") as web:
            web.counter("c", inherit_tags="web.missing")
        assert builder.build().validate_tag_references() == [
            "Metric web.c inherits tags from unknown metric: web.missing"
        ]

    def test_cyclic_inheritance(self):
        builder = SchemaBuilder()
        with builder.namespace("web") as web:
            web.counter("a", inherit_tags="web.b")
            web.counter("b", inherit_tags="web.a")
        errors = builder.build().validate_tag_references()
        assert "Metric web.a has cyclic tag inheritance: web.a -> web.b -> web.a" in errors
        assert len(errors) == 2


class TestCounts:
    def test_counts(self, web_schema):
        assert web_schema.total_metrics_count() == 4
        assert web_schema.total_namespaces_count() == 3
