"""Tests for the attribute line model."""
from __future__ import annotations

import pytest


class TestParseAttribute:
    """Token classification."""

    @pytest.mark.parametrize(
        "token,kind",
        [
            ("diff", "SET"),
            ("diff=true", "SET"),
            ("-diff", "UNSET"),
            ("diff=false", "UNSET"),
            ("!diff", "UNSPECIFIED"),
        ],
    )
    def test_spelling_variants_classify_by_state(self, token: str, kind: str) -> None:
        from git_vendor.core.attributes import AttributeKind, parse_attribute

        entry = parse_attribute(token)

        assert entry.name == "diff"
        assert entry.state.kind is AttributeKind[kind]

    def test_set_spellings_compare_equal(self) -> None:
        from git_vendor.core.attributes import parse_attribute

        assert parse_attribute("diff") == parse_attribute("diff=true")
        assert parse_attribute("-diff") == parse_attribute("diff=false")
        assert parse_attribute("diff") != parse_attribute("-diff")

    def test_value_state_keeps_value(self) -> None:
        from git_vendor.core.attributes import AttributeKind, parse_attribute

        entry = parse_attribute("filter=lfs")

        assert entry.name == "filter"
        assert entry.state.kind is AttributeKind.VALUE
        assert entry.state.value == "lfs"

    def test_value_may_contain_equals(self) -> None:
        from git_vendor.core.attributes import parse_attribute

        entry = parse_attribute("vendor-url=https://example.com/?a=b")

        assert entry.name == "vendor-url"
        assert entry.state.value == "https://example.com/?a=b"

    def test_token_is_trimmed(self) -> None:
        from git_vendor.core.attributes import parse_attribute

        assert parse_attribute("  text  ") == parse_attribute("text")

    def test_canonical_token(self) -> None:
        from git_vendor.core.attributes import parse_attribute

        assert parse_attribute("diff=true").token() == "diff"
        assert parse_attribute("diff=false").token() == "-diff"
        assert parse_attribute("!diff").token() == "!diff"
        assert parse_attribute("eol=lf").token() == "eol=lf"


class TestValidateAttributes:
    @pytest.mark.parametrize("token", ["-", "!", "=v", "my attr"])
    def test_rejects_malformed_names(self, token: str) -> None:
        from git_vendor.core.attributes import validate_attributes
        from git_vendor.core.exceptions import InvalidInputError

        with pytest.raises(InvalidInputError):
            validate_attributes([token])

    def test_skips_blank_tokens(self) -> None:
        from git_vendor.core.attributes import validate_attributes

        validate_attributes(["", "   ", "diff", "-text", "!eol", "filter=lfs"])

    def test_invalid_input_is_a_value_error(self) -> None:
        from git_vendor.core.attributes import validate_attributes

        with pytest.raises(ValueError):
            validate_attributes(["="])


class TestFormatAttributeLine:
    def test_joins_trimmed_tokens_in_order(self) -> None:
        from git_vendor.core.attributes import format_attribute_line

        line = format_attribute_line("*.txt", [" diff ", "", "eol=lf", "-text"])

        assert line == "*.txt diff eol=lf -text"

    def test_pattern_only(self) -> None:
        from git_vendor.core.attributes import format_attribute_line

        assert format_attribute_line("*.bin", []) == "*.bin"


class TestParseAttributeLine:
    def test_blank_and_comment_lines(self) -> None:
        from git_vendor.core.attributes import parse_attribute_line

        assert parse_attribute_line("") is None
        assert parse_attribute_line("   ") is None
        assert parse_attribute_line("# *.txt diff") is None
        assert parse_attribute_line("   # indented comment") is None

    def test_splits_pattern_and_entries(self) -> None:
        from git_vendor.core.attributes import parse_attribute_line

        line = parse_attribute_line("*.txt  diff\t-text")

        assert line is not None
        assert line.pattern == "*.txt"
        assert [e.name for e in line.entries] == ["diff", "text"]
        assert line.tokens == ("diff", "-text")

    def test_get_returns_last_entry(self) -> None:
        from git_vendor.core.attributes import AttributeKind, parse_attribute_line

        line = parse_attribute_line("*.txt diff -diff")

        assert line is not None
        assert line.get("diff").state.kind is AttributeKind.UNSET
        assert line.get("missing") is None


class TestFilterNewAttributes:
    """Semantic set difference against existing lines."""

    def test_same_state_different_spelling_is_not_new(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        assert filter_new_attributes("*.txt", ["diff=true"], ["*.txt diff"]) == []

    def test_different_state_is_new(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        assert filter_new_attributes("*.txt", ["-diff"], ["*.txt diff"]) == ["-diff"]

    def test_different_value_is_new(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        lines = ["*.bin filter=lfs"]

        assert filter_new_attributes("*.bin", ["filter=other"], lines) == ["filter=other"]
        assert filter_new_attributes("*.bin", ["filter=lfs"], lines) == []

    def test_pattern_is_compared_exactly(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        assert filter_new_attributes("*.TXT", ["diff"], ["*.txt diff"]) == ["diff"]
        assert filter_new_attributes("lib/*", ["diff"], ["lib/** diff"]) == ["diff"]

    def test_later_lines_override_earlier(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        lines = ["*.txt diff", "*.md text", "*.txt -diff"]

        assert filter_new_attributes("*.txt", ["-diff"], lines) == []
        assert filter_new_attributes("*.txt", ["diff"], lines) == ["diff"]

    def test_comments_and_blanks_are_ignored(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        lines = ["# *.txt diff", "", "*.txt -text"]

        assert filter_new_attributes("*.txt", ["diff", "-text"], lines) == ["diff"]

    def test_returns_trimmed_original_spelling_in_order(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        result = filter_new_attributes("*.c", [" eol=lf ", "", "diff=true", "text"], ["*.c text"])

        assert result == ["eol=lf", "diff=true"]

    def test_empty_manifest_everything_is_new(self) -> None:
        from git_vendor.core.attributes import filter_new_attributes

        assert filter_new_attributes("*", ["a", "-b"], []) == ["a", "-b"]
