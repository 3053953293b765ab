#!/usr/bin/env python3
"""
Nuspec Version Updater
Sets <metadata><version> of a NuGet/Chocolatey package manifest.

Two strategies are tried in order:
  structured - parse the document, look up metadata/version in the root
               namespace (or the nuspec default) and re-serialize the tree
  pattern    - rewrite the inner text of the first <version> inside <metadata>
               in the raw text, leaving every other byte untouched
Each strategy returns None when it cannot apply; first_successful picks the
first usable result.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Callable, Optional, Sequence, Tuple
from xml.sax.saxutils import escape, unescape

NUSPEC_NAMESPACE = 'http://schemas.microsoft.com/packaging/2015/06/nuspec.xsd'

Strategy = Callable[[str, str], Optional[str]]

# Declaration, comments and doctype ahead of the root element are kept verbatim
_PROLOG = re.compile(r'^(?:\s+|<\?.*?\?>|<!--.*?-->|<!DOCTYPE[^>]*>)*', re.DOTALL)
_TRAILING_WHITESPACE = re.compile(r'\s*$')
_METADATA_VERSION = re.compile(
    r'(?P<head><metadata\b[^>]*(?<!/)>(?:(?!</metadata\s*>).)*?<version\b[^>]*>)'
    r'(?P<value>.*?)'
    r'(?P<tail></version\s*>)',
    re.IGNORECASE | re.DOTALL,
)


def _namespace_of(tag: str) -> str:
    if tag.startswith('{'):
        return tag[1:].split('}', 1)[0]
    return ''


def update_version_structured(content: str, version: str) -> Optional[str]:
    """Namespace-aware update through ElementTree; None if not applicable"""
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    try:
        root = ET.fromstring(content, parser=parser)
    except (ET.ParseError, ValueError) as e:
        logging.debug(f"Structured nuspec parse failed: {e}")
        return None

    namespace = _namespace_of(root.tag) or NUSPEC_NAMESPACE
    element = root.find(f'{{{namespace}}}metadata/{{{namespace}}}version')
    if element is None:
        logging.debug(f"No metadata/version element in namespace {namespace}")
        return None

    element.text = version
    try:
        body = ET.tostring(root, encoding='unicode', default_namespace=namespace)
    except ValueError as e:
        # Mixed qualified/unqualified names cannot be written with a default namespace
        logging.debug(f"Structured nuspec serialization failed: {e}")
        return None

    return _PROLOG.match(content).group() + body + _TRAILING_WHITESPACE.search(content).group()


def update_version_pattern(content: str, version: str) -> Optional[str]:
    """Raw-text update of the first <metadata>...<version> element; None if absent"""
    match = _METADATA_VERSION.search(content)
    if match is None:
        return None
    return content[:match.start('value')] + escape(version) + content[match.end('value'):]


VERSION_STRATEGIES: Sequence[Tuple[str, Strategy]] = (
    ('structured', update_version_structured),
    ('pattern', update_version_pattern),
)


def first_successful(
    content: str,
    version: str,
    strategies: Sequence[Tuple[str, Strategy]] = VERSION_STRATEGIES,
) -> Optional[Tuple[str, str]]:
    """Return (updated content, strategy name) from the first strategy that applies"""
    for name, strategy in strategies:
        updated = strategy(content, version)
        if updated is not None:
            return updated, name
        logging.debug(f"Version strategy '{name}' not applicable, trying next")
    return None


def update_nuspec_version(content: str, version: str) -> Optional[str]:
    """
    Set the package version in nuspec text

    Returns:
        Updated text, or None (with a warning) when no version element exists
    """
    result = first_successful(content, version)
    if result is None:
        logging.warning("No <metadata><version> element found in nuspec; version not updated")
        return None
    updated, strategy = result
    logging.info(f"Nuspec version set to {version} ({strategy} update)")
    return updated


def read_nuspec_version(content: str) -> str:
    """Current <metadata><version> text, or '' when absent"""
    match = _METADATA_VERSION.search(content)
    return unescape(match.group('value')).strip() if match else ''
