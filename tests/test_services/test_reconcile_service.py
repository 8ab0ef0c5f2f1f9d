"""Tests for reconciliation of cached, in-memory and remote documents."""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from eventpages.config import Settings
from eventpages.schemas.page import PageDocument
from eventpages.services import template_service
from eventpages.services.reconcile_service import (
    DocumentSource,
    apply_title,
    reconcile,
    resolve_title,
)
from eventpages.services.structure_service import StructureRules
from tests.conftest import make_document, node

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

RULES = StructureRules.from_settings(Settings(_env_file=None))  # type: ignore[call-arg]


class TestResolveTitle:
    def test_local_wins(self) -> None:
        title = resolve_title(
            make_document(title="Local"),
            make_document(title="Memory"),
            make_document(title="Remote"),
            "Fallback",
        )
        assert title == "Local"

    def test_in_memory_before_remote(self) -> None:
        title = resolve_title(None, make_document(title="Memory"), make_document(title="Remote"), "F")
        assert title == "Memory"

    def test_remote_before_fallback(self) -> None:
        assert resolve_title(None, None, make_document(title="Remote"), "F") == "Remote"

    def test_blank_titles_skipped(self) -> None:
        assert resolve_title(make_document(title="   "), None, None, "Page 3") == "Page 3"

    def test_untitled_when_everything_empty(self) -> None:
        assert resolve_title(None, None, None, "  ") == "Untitled"

    def test_page_title_preferred_over_title(self) -> None:
        doc = make_document()
        doc.root.props.update({"title": "Old", "pageTitle": "New"})
        assert resolve_title(doc, None, None, "F") == "New"


_TITLE = st.one_of(st.none(), st.just(""), st.text(min_size=1, max_size=10))


def _doc(title: str | None) -> PageDocument | None:
    if title is None:
        return None
    return make_document(title=title)


@PROPERTY_SETTINGS
@given(local=_TITLE, memory=_TITLE, remote=_TITLE, fallback=st.text(max_size=10))
def test_title_priority(
    local: str | None, memory: str | None, remote: str | None, fallback: str
) -> None:
    expected = next(
        (t.strip() for t in (local, memory, remote) if t is not None and t.strip()),
        fallback.strip() or "Untitled",
    )
    assert resolve_title(_doc(local), _doc(memory), _doc(remote), fallback) == expected


class TestApplyTitle:
    def test_sets_page_title_and_empty_title(self) -> None:
        doc = apply_title(make_document(), "Hello")
        assert doc.root.props == {"pageTitle": "Hello", "title": "Hello"}

    def test_keeps_custom_title(self) -> None:
        doc = make_document()
        doc.root.props["title"] = "Hero headline"
        updated = apply_title(doc, "Hello")
        assert updated.root.props["title"] == "Hero headline"
        assert updated.root.props["pageTitle"] == "Hello"

    def test_replaces_superseded_title(self) -> None:
        doc = make_document(title="Old name")
        updated = apply_title(doc, "New name", superseded_title="Old name")
        assert updated.root.props["title"] == "New name"

    def test_does_not_mutate_input(self) -> None:
        doc = make_document(title="Old")
        apply_title(doc, "New", superseded_title="Old")
        assert doc.root.props["title"] == "Old"


class TestReconcile:
    def test_remote_structure_with_local_title(self) -> None:
        remote = template_service.generate("Remote title")
        local = make_document(node("Text", "l"), title="Local title")
        result = reconcile(local, remote, None, "Page 1", rules=RULES)
        assert result.base is DocumentSource.REMOTE
        assert result.title == "Local title"
        assert result.document.title == "Local title"
        assert result.document.root.props["title"] == "Local title"
        assert len(result.document.content) == len(remote.content)

    def test_legacy_remote_replaced_by_template(self) -> None:
        remote = make_document(node("HeadingBlock", "h"), title="Old")
        result = reconcile(None, remote, None, "Page 1", rules=RULES)
        assert result.structure_mismatch
        assert result.base is DocumentSource.TEMPLATE
        assert "HeroSection" in result.document.node_types()
        assert result.title == "Old"

    def test_custom_remote_page_accepted(self) -> None:
        remote = make_document(node("Text", "t"), title="Custom")
        result = reconcile(None, remote, None, "Page 1", rules=RULES)
        assert result.base is DocumentSource.REMOTE
        assert not result.structure_mismatch

    def test_local_base_without_remote(self) -> None:
        local = make_document(node("Text", "l"), title="Local")
        memory = make_document(node("Text", "m"), title="Memory")
        result = reconcile(local, None, memory, "F", rules=RULES)
        assert result.base is DocumentSource.LOCAL
        assert result.document.content[0].node_id == "l"

    def test_in_memory_base_without_local(self) -> None:
        memory = make_document(node("Text", "m"))
        result = reconcile(None, None, memory, "Page 2", rules=RULES)
        assert result.base is DocumentSource.IN_MEMORY
        assert result.title == "Page 2"

    def test_template_when_nothing_known(self) -> None:
        result = reconcile(None, None, None, "Page 2", rules=RULES, template=lambda t: make_document(title=t))
        assert result.base is DocumentSource.TEMPLATE
        assert result.document.title == "Page 2"

    def test_base_is_deduplicated(self) -> None:
        remote = make_document(node("Text", "x"), node("Text", "x"), title="R")
        result = reconcile(None, remote, None, "F", rules=RULES)
        assert result.removed_count == 1
        assert len(result.document.content) == 1

    def test_stale_remote_title_does_not_override_local(self) -> None:
        remote = make_document(node("Text", "r"), title="Stale")
        local = make_document(title="Renamed")
        result = reconcile(local, remote, None, "F", rules=RULES)
        assert result.document.root.props["title"] == "Renamed"
        assert result.document.root.props["pageTitle"] == "Renamed"
