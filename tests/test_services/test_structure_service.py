"""Tests for foreign/legacy document detection."""

from __future__ import annotations

from eventpages.config import Settings
from eventpages.services import template_service
from eventpages.services.structure_service import StructureRules, has_expected_structure
from tests.conftest import make_document, node


class TestHasExpectedStructure:
    rules = StructureRules.from_lists(["HeroSection", "ContactFooter"], ["HeadingBlock"])

    def test_full_expected_set_accepted(self) -> None:
        doc = make_document(node("HeroSection", "h"), node("ContactFooter", "c"))
        assert has_expected_structure(doc, self.rules)

    def test_expected_set_wins_over_legacy(self) -> None:
        doc = make_document(
            node("HeroSection", "h"), node("ContactFooter", "c"), node("HeadingBlock", "l")
        )
        assert has_expected_structure(doc, self.rules)

    def test_legacy_type_rejected(self) -> None:
        doc = make_document(node("HeroSection", "h"), node("HeadingBlock", "l"))
        assert not has_expected_structure(doc, self.rules)

    def test_legacy_type_in_zone_rejected(self) -> None:
        doc = make_document(zones={"z": [node("HeadingBlock", "l")]})
        assert not has_expected_structure(doc, self.rules)

    def test_custom_page_accepted(self) -> None:
        assert has_expected_structure(make_document(node("Text", "t")), self.rules)

    def test_empty_page_accepted(self) -> None:
        assert has_expected_structure(make_document(), self.rules)


class TestStructureRulesFromSettings:
    def test_default_template_matches_default_rules(self) -> None:
        rules = StructureRules.from_settings(Settings(_env_file=None))  # type: ignore[call-arg]
        assert has_expected_structure(template_service.generate("Welcome"), rules)
        assert rules.legacy_types == frozenset({"HeadingBlock"})

    def test_configurable_lists(self) -> None:
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None, expected_node_types=["A"], legacy_node_types=["B"]
        )
        rules = StructureRules.from_settings(settings)
        assert not has_expected_structure(make_document(node("B", "b")), rules)
