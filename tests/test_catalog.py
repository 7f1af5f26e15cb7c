"""Tests for the node-type catalog."""

import pytest

from src.workflow.catalog import NodeCategory, NodeTypeCatalog, NodeTypeInfo, default_catalog


def test_default_catalog_categories(catalog):
    assert catalog.category_of("manual-trigger") == NodeCategory.TRIGGER
    assert catalog.category_of("debate-judge") == NodeCategory.JUDGE
    assert catalog.category_of("context-builder") == NodeCategory.CONTEXT
    assert catalog.is_join("join")
    assert catalog.is_join("decision-merge")
    assert not catalog.is_join("parallel-split")
    assert catalog.min_incoming("decision-merge") == 2
    assert catalog.feeds_outputs_only("approval")
    assert not catalog.feeds_outputs_only("risk-gate")
    assert not catalog.feeds_outputs_only("custom-thing")


def test_unregistered_types_fall_back_on_naming(catalog):
    assert catalog.category_of("webhook-trigger") == NodeCategory.TRIGGER
    assert catalog.category_of("trigger") == NodeCategory.TRIGGER
    assert catalog.category_of("custom-thing") is None
    assert catalog.output_fields("custom-thing") == ()
    assert catalog.min_incoming("custom-thing") == 0


def test_group_type_is_a_group_even_when_unregistered():
    catalog = NodeTypeCatalog([])

    assert catalog.is_group("group")
    assert not catalog.is_trigger("group")


def test_types_in_category(catalog):
    assert catalog.types_in(NodeCategory.JUDGE) == ["judge-agent", "debate-judge"]


def test_output_fields(catalog):
    assert catalog.output_fields("data-fetch") == ("data", "meta")
    assert catalog.output_fields("notify") == ()


def test_duplicate_registration_is_rejected():
    entry = NodeTypeInfo("x", "X", NodeCategory.COMPUTE)

    with pytest.raises(ValueError, match="registered twice"):
        NodeTypeCatalog([entry, entry])


def test_require_raises_for_unknown_types(catalog):
    assert catalog.require("notify").category == NodeCategory.OUTPUT
    with pytest.raises(ValueError, match="Node type not found"):
        catalog.require("teleport")


def test_catalog_is_immutable(catalog):
    with pytest.raises(TypeError):
        catalog._entries["x"] = NodeTypeInfo("x", "X", NodeCategory.COMPUTE)
    with pytest.raises(AttributeError):
        catalog.get("notify").category = NodeCategory.AGENT


def test_default_catalog_returns_fresh_instances():
    first = default_catalog()
    second = default_catalog()

    assert first is not second
    assert len(first) == len(second)
    assert "notify" in first
    assert {e.type for e in first} == {e.type for e in second}
