"""Tests for script_fields module."""
import logging

import pytest

from script_fields import (
    FieldAssignment,
    apply_field_assignments,
    read_script_field,
    replace_script_field,
)

NEW_SHA = "ABCDEF0123456789ABCDEF0123456789ABCDEF0123456789ABCDEF0123456789"


class TestReplaceScriptField:
    """Tests for replace_script_field function."""

    def test_preserves_indent_spacing_quote_and_comment(self):
        content = "  $checksum   = 'OLD'  # note\n"
        updated, replaced = replace_script_field(content, "checksum", "NEW")

        assert replaced is True
        assert updated == "  $checksum   = 'NEW'  # note\n"

    def test_hashtable_line_keeps_leading_spaces(self):
        content = "@{\n  checksum      = '1604E27C'\n}\n"
        updated, _ = replace_script_field(content, "checksum", NEW_SHA)

        assert updated == f"@{{\n  checksum      = '{NEW_SHA}'\n}}\n"

    def test_double_quotes_are_kept(self, install_script_text):
        updated, replaced = replace_script_field(install_script_text, "checksum64", NEW_SHA)

        assert replaced is True
        assert f'  checksum64    = "{NEW_SHA}"  # x64 build\n' in updated

    def test_only_target_line_changes(self, install_script_text):
        updated, _ = replace_script_field(install_script_text, "checksum", NEW_SHA)

        before = install_script_text.splitlines()
        after = updated.splitlines()
        assert len(before) == len(after)
        changed = [(a, b) for a, b in zip(before, after) if a != b]
        assert changed == [(
            "  checksum      = '1604E27C0000000000000000000000000000000000000000000000000000AAAA'",
            f"  checksum      = '{NEW_SHA}'",
        )]

    def test_whole_token_match_skips_longer_names(self):
        content = "checksumType = 'sha256'\nchecksum64 = 'AAA'\n"
        updated, replaced = replace_script_field(content, "checksum", "NEW")

        assert replaced is False
        assert updated == content

    def test_checksum_does_not_touch_checksum64(self):
        content = "checksum64 = 'AAA'\nchecksum = 'BBB'\n"
        updated, _ = replace_script_field(content, "checksum", "NEW")

        assert updated == "checksum64 = 'AAA'\nchecksum = 'NEW'\n"

    def test_case_insensitive_field_name(self):
        content = "\t$CheckSum='abc'\n"
        updated, replaced = replace_script_field(content, "checksum", "NEW")

        assert replaced is True
        assert updated == "\t$CheckSum='NEW'\n"

    def test_missing_field_is_noop_with_warning(self, caplog):
        content = "$url = 'https://example.com/app.msi'\n"
        with caplog.at_level(logging.WARNING):
            updated, replaced = replace_script_field(content, "checksum", "NEW")

        assert replaced is False
        assert updated == content
        assert "checksum" in caplog.text

    def test_idempotent(self, install_script_text):
        once, _ = replace_script_field(install_script_text, "checksum", NEW_SHA)
        twice, replaced = replace_script_field(once, "checksum", NEW_SHA)

        assert replaced is True
        assert twice == once

    def test_crlf_line_endings_preserved(self):
        content = "line1\r\n  checksum = 'OLD' # c\r\nline3\r\n"
        updated, _ = replace_script_field(content, "checksum", "NEW")

        assert updated == "line1\r\n  checksum = 'NEW' # c\r\nline3\r\n"

    def test_unquoted_value_gets_single_quotes(self):
        updated, replaced = replace_script_field("checksum = OLD\n", "checksum", "NEW")

        assert replaced is True
        assert updated == "checksum = 'NEW'\n"

    def test_mismatched_quotes_are_each_reused(self):
        updated, _ = replace_script_field("checksum = \"OLD'\n", "checksum", "NEW")

        assert updated == "checksum = \"NEW'\n"

    def test_only_first_occurrence_rewritten(self):
        content = "checksum = 'A'\nchecksum = 'B'\n"
        updated, _ = replace_script_field(content, "checksum", "NEW")

        assert updated == "checksum = 'NEW'\nchecksum = 'B'\n"

    def test_variable_reference_is_not_a_value(self):
        content = "  checksum = $env:CHECKSUM\n"
        updated, replaced = replace_script_field(content, "checksum", "NEW")

        assert replaced is False
        assert updated == content

    def test_hash_inside_quoted_old_value_is_part_of_value(self):
        updated, replaced = replace_script_field("  checksum = 'ab#cd'\n", "checksum", "NEW")

        assert replaced is True
        assert updated == "  checksum = 'NEW'\n"

    def test_hash_inside_double_quotes_keeps_trailing_comment(self):
        content = 'checksum = "ab#cd"  # real comment\n'
        updated, _ = replace_script_field(content, "checksum", "NEW")

        assert updated == 'checksum = "NEW"  # real comment\n'

    def test_value_with_hash_is_a_fixed_point(self):
        once, _ = replace_script_field("checksum = 'OLD'\n", "checksum", "A#B")
        twice, replaced = replace_script_field(once, "checksum", "A#B")

        assert once == "checksum = 'A#B'\n"
        assert replaced is True
        assert twice == once
        assert read_script_field(twice, "checksum") == "A#B"

    def test_unquoted_line_takes_value_with_hash_in_quotes(self):
        once, _ = replace_script_field("checksum = OLD\n", "checksum", "A#B")
        twice, _ = replace_script_field(once, "checksum", "A#B")

        assert once == "checksum = 'A#B'\n"
        assert twice == once

    def test_rejects_hash_between_mismatched_quotes(self):
        with pytest.raises(ValueError):
            replace_script_field("checksum = \"OLD'\n", "checksum", "A#B")

    def test_rejects_value_with_quote(self):
        with pytest.raises(ValueError):
            replace_script_field("checksum = 'A'\n", "checksum", "x'y")

    def test_rejects_invalid_field_name(self):
        with pytest.raises(ValueError):
            replace_script_field("checksum = 'A'\n", "check sum", "NEW")


class TestApplyFieldAssignments:
    """Tests for apply_field_assignments function."""

    def test_applies_each_field_independently(self, install_script_text):
        updated, missing = apply_field_assignments(install_script_text, [
            FieldAssignment("checksum", "AAAA"),
            FieldAssignment("checksum64", "BBBB"),
        ])

        assert missing == []
        assert read_script_field(updated, "checksum") == "AAAA"
        assert read_script_field(updated, "checksum64") == "BBBB"
        assert read_script_field(updated, "checksumType") == "sha256"

    def test_reports_missing_fields_without_appending(self):
        content = "checksum = 'OLD'\n"
        updated, missing = apply_field_assignments(content, [
            FieldAssignment("checksum", "NEW"),
            FieldAssignment("checksum64", "NEW64"),
        ])

        assert missing == ["checksum64"]
        assert updated == "checksum = 'NEW'\n"


def test_read_script_field_absent():
    assert read_script_field("url = 'x'\n", "checksum") == ""
