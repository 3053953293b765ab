#!/usr/bin/env python3
"""
Install Script Field Rewriter
Replaces the quoted value of `name = 'value'` assignments (optionally `$name`)
in PowerShell-style install scripts. Only the value changes: indentation,
spacing around '=', quote characters, trailing comments and line endings are
emitted exactly as found. Fields that are not present are reported, never added.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

DEFAULT_QUOTE = "'"
_FIELD_NAME = re.compile(r'^\w+$')


@dataclass(frozen=True)
class FieldAssignment:
    name: str
    value: str


def field_pattern(field: str) -> "re.Pattern[str]":
    """Regex for one `<indent>[$]field = <quote>value<quote> [# comment]` line

    Paired quotes take anything but that quote, so '#' inside them is part
    of the value. Unquoted or half-quoted values stop at '#', quotes and '$'.
    """
    if not _FIELD_NAME.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return re.compile(
        r'^(?P<indent>[ \t]*)'
        r'(?P<name>\$?' + re.escape(field) + r')(?!\w)'
        r'(?P<before>[ \t]*)=(?P<after>[ \t]*)'
        r'(?:\'(?P<sq>[^\'\r\n]*)\''
        r'|"(?P<dq>[^"\r\n]*)"'
        r'|(?P<open>[\'"]?)(?P<value>[^\'"\r\n#$]*?)(?P<close>[\'"]?))'
        r'(?P<trail>[ \t]*(?:#[^\r\n]*)?)(?=\r?$)',
        re.IGNORECASE | re.MULTILINE,
    )


def _value_parts(match: "re.Match[str]") -> Tuple[str, str, str]:
    """(opening quote, value, closing quote) of a matched assignment"""
    if match.group('sq') is not None:
        return "'", match.group('sq'), "'"
    if match.group('dq') is not None:
        return '"', match.group('dq'), '"'
    return match.group('open'), match.group('value'), match.group('close')


def replace_script_field(content: str, field: str, value: str) -> Tuple[str, bool]:
    """
    Replace the value of the first `field` assignment in content

    Args:
        content: Full script text
        field: Field name, matched case-insensitively as a whole token
        value: New value (written between the original quotes)

    Returns:
        (new content, whether a line was rewritten). Unchanged content when
        the field does not occur.
    """
    if any(ch in value for ch in '\'"\r\n'):
        raise ValueError(f"Value for {field} must not contain quotes or line breaks")

    def _rewrite(match: "re.Match[str]") -> str:
        open_quote, _, close_quote = _value_parts(match)
        open_quote = open_quote or DEFAULT_QUOTE
        close_quote = close_quote or DEFAULT_QUOTE
        if '#' in value and open_quote != close_quote:
            # Between mismatched quotes a '#' would read back as a comment
            raise ValueError(f"Value for {field} must not contain '#' on a line with mismatched quotes")
        return (
            f"{match.group('indent')}{match.group('name')}"
            f"{match.group('before')}={match.group('after')}"
            f"{open_quote}{value}{close_quote}{match.group('trail')}"
        )

    updated, count = field_pattern(field).subn(_rewrite, content, count=1)
    if not count:
        logging.warning(f"Field '{field}' not found; leaving it unchanged")
        return content, False
    return updated, True


def apply_field_assignments(content: str, assignments: Iterable[FieldAssignment]) -> Tuple[str, List[str]]:
    """Apply each assignment independently. Returns (content, names not found)."""
    missing: List[str] = []
    for assignment in assignments:
        content, replaced = replace_script_field(content, assignment.name, assignment.value)
        if not replaced:
            missing.append(assignment.name)
    return content, missing


def read_script_field(content: str, field: str) -> str:
    """Current value of field, or '' when absent"""
    match = field_pattern(field).search(content)
    return _value_parts(match)[1] if match else ''
