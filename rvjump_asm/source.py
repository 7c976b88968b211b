"""
Source normalization.

Splits raw assembly text into trimmed, non-empty lines that remember where they
came from in the original text.
"""

from dataclasses import dataclass
from typing import List, Union

from .errors import InputError


@dataclass(frozen=True)
class SourceLine:
    """
    One non-empty line of assembly source.

    Attributes:
        line_number: 1-based line number in the original source text
        text: Line contents with comments and surrounding whitespace removed
    """

    line_number: int
    text: str


def strip_comments(line: str) -> str:
    """
    Remove comments from a line.

    Supports # and // style comments.
    """
    positions = [pos for pos in (line.find("#"), line.find("//")) if pos >= 0]
    if positions:
        return line[: min(positions)]
    return line


def decode_source(source: Union[str, bytes, bytearray]) -> str:
    """
    Return source text, decoding raw bytes as UTF-8.

    Raises:
        InputError: If the bytes are not valid UTF-8 or the input is not text
    """
    if isinstance(source, str):
        return source
    if isinstance(source, (bytes, bytearray)):
        try:
            return bytes(source).decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputError(f"Source is not valid UTF-8: {e.reason} at byte {e.start}")
    raise InputError(f"Expected source text, got {type(source).__name__}")


def normalize_source(text: str, keep_comments: bool = False) -> List[SourceLine]:
    """
    Normalize assembly text into a list of SourceLine objects.

    Line endings (CRLF, CR, LF) are unified before splitting, each line is
    trimmed, and lines that are empty afterwards are dropped. Surviving lines
    keep their original line numbers.

    Args:
        text: Raw assembly source
        keep_comments: Leave # and // comments in place

    Returns:
        Ordered list of SourceLine objects (empty for an empty program)
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = []
    for line_number, raw in enumerate(text.split("\n"), start=1):
        if not keep_comments:
            raw = strip_comments(raw)
        stripped = raw.strip()
        if stripped:
            lines.append(SourceLine(line_number, stripped))
    return lines
