"""Tests for anchoring model quotes onto document text."""

import pytest

from persona_review.models.review import TextLocation
from persona_review.services.document_surface import DocumentSurface
from persona_review.services.quote_anchoring import (
    CENTER_SLICE_CHARS,
    build_search_cascade,
    find_anchor,
    locate_quote,
    normalize_quote,
    strip_enclosing_quotes,
    word_seeds,
)


class LiteralSurface(DocumentSurface):
    """Case-sensitive, punctuation-sensitive search, to exercise every stage."""

    def __init__(self, text: str):
        self.text = text
        self.searches: list[str] = []
        self.inserted: list[tuple[TextLocation, str]] = []

    async def get_full_text(self) -> str:
        return self.text

    async def search(self, needle: str) -> list[TextLocation]:
        self.searches.append(needle)
        start = self.text.find(needle)
        if start < 0:
            return []
        return [TextLocation(start=start, end=start + len(needle))]

    async def insert_comment(self, location, message: str) -> None:
        self.inserted.append((location, message))


class TestNormalizeQuote:
    def test_straightens_quotes_and_dashes(self):
        assert normalize_quote("“We’re late” – again—sadly") == "\"We're late\" - again-sadly"

    def test_collapses_whitespace(self):
        assert normalize_quote("  quick  brown\n\tfox  ") == "quick brown fox"

    def test_long_quote_gets_centered_slice(self):
        quote = "a" * 100 + "b" * 100 + "c" * 100
        normalized = normalize_quote(quote)
        assert len(normalized) == CENTER_SLICE_CHARS
        assert normalized == "a" * 40 + "b" * 100 + "c" * 40

    def test_quote_at_threshold_is_kept(self):
        quote = "x" * 260
        assert normalize_quote(quote) == quote

    def test_idempotent(self):
        once = normalize_quote("‘Hello,’   she   said")
        assert normalize_quote(once) == once


class TestStripEnclosingQuotes:
    @pytest.mark.parametrize(
        "quote,expected",
        [
            ('"quick brown fox"', "quick brown fox"),
            ("'lazy dog'", "lazy dog"),
            ('"half open', "half open"),
            ("no quotes", None),
            ('""', None),
        ],
    )
    def test_cases(self, quote, expected):
        assert strip_enclosing_quotes(quote) == expected


class TestCascade:
    def test_seed_order(self):
        quote = " ".join(f"w{i}" for i in range(10))
        stages = [stage for stage, _ in build_search_cascade(quote)]
        assert stages == [
            "exact",
            "seed_first_8", "seed_middle_8", "seed_last_8",
            "seed_first_6", "seed_middle_6", "seed_last_6",
            "seed_first_5", "seed_middle_5", "seed_last_5",
        ]

    def test_middle_seed_is_centered(self):
        seeds = dict(word_seeds("one two three four five six seven"))
        assert seeds["seed_middle_5"] == "two three four five six"
        assert "seed_first_8" not in seeds

    def test_short_quote_has_no_seeds(self):
        assert build_search_cascade("quick brown fox") == [("exact", "quick brown fox")]

    def test_duplicate_needles_removed(self):
        assert build_search_cascade("one two three four five") == [("exact", "one two three four five")]

    def test_unquoted_stage_precedes_seeds(self):
        cascade = build_search_cascade('"a b c d e f"')
        assert cascade[0] == ("exact", '"a b c d e f"')
        assert cascade[1] == ("unquoted", "a b c d e f")
        # Six-word seeds equal the unquoted text and are dropped
        assert cascade[2] == ("seed_first_5", "a b c d e")

    def test_empty_quote(self):
        assert build_search_cascade(" \n ") == []


class TestLocateQuote:
    @pytest.mark.asyncio
    async def test_verbatim_quote_matches_at_first_stage(self, surface):
        match = await locate_quote(surface, "quick brown fox")

        assert match.stage == "exact"
        assert match.location == TextLocation(start=4, end=19)
        assert surface.searches == ["quick brown fox"]

    @pytest.mark.asyncio
    async def test_curly_quotes_and_extra_whitespace(self, surface_factory):
        surface = surface_factory('She said "do it now" and left.')

        match = await locate_quote(surface, "“do  it now”")

        assert match is not None
        assert match.stage == "exact"
        assert surface.text[match.location.start:match.location.end] == "do it now"

    @pytest.mark.asyncio
    async def test_enclosing_quotes_stripped(self):
        surface = LiteralSurface("The quick brown fox jumps over the lazy dog.")

        match = await locate_quote(surface, '"quick brown fox"')

        assert match.stage == "unquoted"
        assert match.location == TextLocation(start=4, end=19)

    @pytest.mark.asyncio
    async def test_first_five_words_match_at_seed_stage(self, surface_factory):
        surface = surface_factory("Alpha beta gamma delta epsilon zeta eta theta.")
        quote = "alpha beta gamma delta epsilon one two three four five six"

        match = await locate_quote(surface, quote)

        assert match.stage == "seed_first_5"
        assert match.needle == "alpha beta gamma delta epsilon"
        assert match.location.start == 0
        assert len(surface.searches) == 8

    @pytest.mark.asyncio
    async def test_absent_quote_exhausts_all_seeds(self, surface):
        quote = "elephants stampede across the savannah at dawn every single morning"

        match = await locate_quote(surface, quote)

        assert match is None
        # One full-quote search plus nine seeds
        assert len(surface.searches) == 10
        assert surface.searches[-1] == "at dawn every single morning"

    @pytest.mark.asyncio
    async def test_first_hit_is_used(self, surface_factory):
        surface = surface_factory("Go team. Go team. Go team.")

        location = await find_anchor(surface, "go team")

        assert location == TextLocation(start=0, end=7)

    @pytest.mark.asyncio
    async def test_find_anchor_none_when_absent(self, surface):
        assert await find_anchor(surface, "elephant stampede") is None
