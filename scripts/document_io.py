#!/usr/bin/env python3
"""
Whole-file text documents for in-place field rewrites.
Files are read and written without newline translation, and a UTF-8 BOM is
kept if the source had one, so untouched bytes stay identical.
"""

import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union


@dataclass
class TextDocument:
    path: Path
    content: str
    encoding: str = 'utf-8'
    original: str = field(default='', repr=False)

    @property
    def changed(self) -> bool:
        return self.content != self.original


def detect_encoding(raw: bytes) -> str:
    return 'utf-8-sig' if raw.startswith(codecs.BOM_UTF8) else 'utf-8'


def load_document(path: Union[str, Path]) -> TextDocument:
    """Read the full text of path"""
    p = Path(path)
    encoding = detect_encoding(p.read_bytes())
    with open(p, 'r', encoding=encoding, newline='') as f:
        content = f.read()
    return TextDocument(path=p, content=content, encoding=encoding, original=content)


def save_document(document: TextDocument) -> bool:
    """Write the document back if its content changed. Returns True if written."""
    if not document.changed:
        return False
    with open(document.path, 'w', encoding=document.encoding, newline='') as f:
        f.write(document.content)
    document.original = document.content
    return True
