"""Tests for the compiled pattern catalog."""

import dataclasses
import re

import pytest

from freight_intake.patterns.catalog import DEFAULT_PATTERNS, PatternCatalog, get_default_catalog


class TestBuild:
    def test_default_patterns_all_compile(self, catalog):
        assert catalog.rejected == ()
        assert len(catalog.names()) == len(DEFAULT_PATTERNS)

    def test_invalid_pattern_is_dropped(self):
        catalog = PatternCatalog.build({
            "good": (r"\bRoRo\b", re.IGNORECASE),
            "broken": (r"(unclosed", 0),
            "plain": r"\d+",
        })
        assert catalog.names() == ["good", "plain"]
        assert catalog.rejected == ("broken",)
        assert catalog.stats()["rejected"] == ["broken"]

    def test_catalog_is_immutable(self, catalog):
        with pytest.raises(TypeError):
            catalog.compiled["new"] = re.compile("x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            catalog.rejected = ("x",)

    def test_reload_returns_new_instance(self, catalog):
        reloaded = catalog.reload({"only": (r"x", 0)})
        assert reloaded is not catalog
        assert reloaded.names() == ["only"]
        assert catalog.has_pattern("vin")

    def test_default_catalog_is_shared(self):
        assert get_default_catalog() is get_default_catalog()


class TestMatching:
    def test_match_named_pattern(self, catalog):
        match = catalog.match("vin", "VIN: WBA7E2C51KG123456")
        assert match.group(1) == "WBA7E2C51KG123456"

    def test_unknown_name_returns_none(self, catalog):
        assert catalog.match("does_not_exist", "text") is None
        assert catalog.match_all("does_not_exist", "text") == []

    def test_empty_text(self, catalog):
        assert catalog.match("email", "") is None

    def test_match_all(self, catalog):
        matches = catalog.match_all("email", "a@acme-logistics.be, b@acme-logistics.be")
        assert [m.group(0) for m in matches] == ["a@acme-logistics.be", "b@acme-logistics.be"]

    def test_condition_ignores_place_names(self, catalog):
        assert catalog.match("condition", "shipping to New York") is None
        assert catalog.match("condition", "a used car").group(1) == "used"
