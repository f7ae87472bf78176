"""
Tests for literal matching helpers: anchored patterns and comma lists.
"""

from toolinv.inventory.matching import (
    anchored_patterns,
    clean_strings,
    literal_to_anchored_pattern,
    split_multi_value,
)


#  Anchored patterns

class TestAnchoredPattern:
    def test_matches_case_and_padding_variants(self):
        pattern = literal_to_anchored_pattern("Drill")
        for candidate in ("Drill", "drill", "DRILL", "  Drill ", "\tdrill\n"):
            assert pattern.match(candidate), candidate

    def test_rejects_substrings_and_superstrings(self):
        pattern = literal_to_anchored_pattern("Drill")
        assert not pattern.match("Drill Press")
        assert not pattern.match("Hammer Drill")
        assert not pattern.match("Dril")

    def test_metacharacters_are_literal(self):
        pattern = literal_to_anchored_pattern('3.5" Drill')
        assert pattern.match('3.5" Drill')
        assert pattern.match(' 3.5" drill ')
        assert not pattern.match('3x5" Drill')
        assert not pattern.match('35" Drill')

    def test_regex_syntax_does_not_wildcard(self):
        pattern = literal_to_anchored_pattern(".*")
        assert pattern.match(".*")
        assert not pattern.match("anything")

    def test_brackets_and_plus(self):
        pattern = literal_to_anchored_pattern("bit [a+b] (x)")
        assert pattern.match("BIT [A+B] (X)")
        assert not pattern.match("bit a (x)")

    def test_input_is_trimmed_before_escaping(self):
        assert literal_to_anchored_pattern("  Saw ").match("saw")

    def test_anchored_patterns_skip_blanks(self):
        assert len(anchored_patterns(["a", "", "  ", "b"])) == 2


#  Comma lists

class TestSplitMultiValue:
    def test_trims_and_drops_empty(self):
        assert split_multi_value(" Power Tools, Hand Tools ,,") == ["Power Tools", "Hand Tools"]

    def test_none_and_empty(self):
        assert split_multi_value(None) == []
        assert split_multi_value("") == []


class TestCleanStrings:
    def test_non_list_is_empty(self):
        assert clean_strings("Drill") == []
        assert clean_strings(None) == []
        assert clean_strings({"a": 1}) == []

    def test_drops_non_strings_and_blanks(self):
        assert clean_strings([" Drill ", 3, None, "", "Saw"]) == ["Drill", "Saw"]
