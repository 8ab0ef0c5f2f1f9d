"""Tests for page slugs, filenames and ids."""

from __future__ import annotations

from datetime import datetime, timezone

from eventpages.services.slug_service import (
    ensure_page_suffix,
    generate_page_slug,
    is_server_id,
    local_page_id,
    name_from_filename,
    natural_sort_key,
    page_filename,
    strip_page_suffix,
)


class TestGeneratePageSlug:
    def test_basic_name(self) -> None:
        assert generate_page_slug("Page 2") == "page-2"

    def test_special_characters_replaced(self) -> None:
        assert generate_page_slug("Q&A / Venue!") == "q-a-venue"

    def test_unicode_normalized_to_ascii(self) -> None:
        assert generate_page_slug("Café Stage") == "cafe-stage"

    def test_empty_returns_untitled(self) -> None:
        assert generate_page_slug("  ") == "untitled"
        assert generate_page_slug("!!!") == "untitled"

    def test_long_name_truncated_without_trailing_hyphen(self) -> None:
        slug = generate_page_slug("keynote " * 20)
        assert len(slug) <= 80
        assert not slug.endswith("-")


class TestFilenamesAndIds:
    def test_page_filename(self) -> None:
        assert page_filename("Page 2") == "page-2.json"

    def test_local_page_id(self) -> None:
        when = datetime(2025, 1, 13, tzinfo=timezone.utc)
        assert local_page_id("Page 2", when) == f"page-page-2-{int(when.timestamp() * 1000)}"

    def test_is_server_id(self) -> None:
        assert is_server_id("3f2b8c1e-9a4d-4e6f-8b2a-1c3d5e7f9a0b")
        assert not is_server_id("page-page-2-1736726400000")

    def test_suffix_helpers(self) -> None:
        assert strip_page_suffix("welcome.json") == "welcome"
        assert ensure_page_suffix("welcome") == "welcome.json"
        assert ensure_page_suffix("welcome.json") == "welcome.json"


class TestNameFromFilename:
    def test_legacy_prefix_stripped(self) -> None:
        assert name_from_filename("page-data-2024-05-01.json") == "2024 05 01"

    def test_plain_filename(self) -> None:
        assert name_from_filename("welcome.json") == "welcome"

    def test_empty_stem(self) -> None:
        assert name_from_filename(".json") == "Untitled"


class TestNaturalSortKey:
    def test_numbers_compared_numerically(self) -> None:
        names = ["Page 10", "Page 2", "page 1"]
        assert sorted(names, key=natural_sort_key) == ["page 1", "Page 2", "Page 10"]

    def test_case_insensitive(self) -> None:
        assert natural_sort_key("WELCOME") == natural_sort_key("welcome")
