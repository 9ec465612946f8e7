"""
Matcher Tests — phrase counting and excerpt windows.
"""

from __future__ import annotations

from repaircheck.matcher import (
    MatchMode,
    contains,
    count_matches,
    extract_context,
    find_matches,
    match_spans,
    scan,
)


class TestWordMode:
    def test_single_word_respects_boundaries(self):
        assert count_matches("I will. Will you? I'm willing.", "will") == 2

    def test_case_insensitive(self):
        assert count_matches("SORRY, so Sorry", "sorry") == 2

    def test_multi_word_phrase_is_literal(self):
        text = "I'm sorry if you felt that way"
        assert count_matches(text, "I'm sorry if") == 1
        assert count_matches(text, "if you felt") == 1

    def test_regex_metacharacters_are_escaped(self):
        assert count_matches("what (if) anything", "what (if)") == 1
        assert count_matches("a.b", "a*b") == 0

    def test_empty_inputs(self):
        assert count_matches("", "sorry") == 0
        assert count_matches("sorry", "") == 0


class TestPrefixMode:
    def test_catches_inflections(self):
        assert count_matches("He hits. He was hitting.", "hit", MatchMode.PREFIX) == 2
        assert count_matches("He hits. He was hitting.", "hit", MatchMode.WORD) == 0

    def test_requires_leading_boundary(self):
        assert count_matches("this is white", "hit", MatchMode.PREFIX) == 0


class TestSubstringMode:
    def test_matches_inside_words(self):
        assert count_matches("my apologies", "apolog", MatchMode.SUBSTRING) == 1

    def test_contains(self):
        assert contains("he listens to me", "listens to me") is True
        assert contains("he listens", "listens to me") is False


class TestMatchSpans:
    def test_offsets_of_each_occurrence(self):
        assert match_spans("you caused it, you caused", "you caused") == [(0, 10), (15, 25)]

    def test_word_mode_boundaries(self):
        assert match_spans("caused, uncaused", "caused") == [(0, 6)]

    def test_empty_inputs(self):
        assert match_spans("", "caused") == []


class TestExtractContext:
    def test_no_match_returns_phrase(self):
        assert extract_context("nothing here", "blame") == "blame"

    def test_short_text_has_no_ellipsis(self):
        assert extract_context("I am sorry", "sorry") == "I am sorry"

    def test_truncated_both_ends(self):
        text = "a" * 100 + " sorry " + "b" * 100
        excerpt = extract_context(text, "sorry", window=50)
        assert excerpt.startswith("...")
        assert excerpt.endswith("...")
        assert "sorry" in excerpt
        # 50 before + match + 50 after + two ellipses
        assert len(excerpt) == 50 + len("sorry") + 50 + 6

    def test_truncated_at_end_only(self):
        text = "sorry " + "b" * 100
        excerpt = extract_context(text, "sorry", window=10)
        assert not excerpt.startswith("...")
        assert excerpt.endswith("...")


class TestFindMatches:
    def test_counts_all_keeps_at_most_three_excerpts(self):
        result = find_matches("no no no no no", "no", window=2)
        assert result.count == 5
        assert len(result.excerpts) == 3
        assert result.matched

    def test_no_match(self):
        result = find_matches("hello", "blame")
        assert result.count == 0
        assert result.excerpts == ()
        assert not result.matched

    def test_scan_keeps_lexicon_order_and_drops_misses(self):
        results = scan("you made me. blame. excuse", ("excuse", "wasn't me", "blame"))
        assert [r.phrase for r in results] == ["excuse", "blame"]
