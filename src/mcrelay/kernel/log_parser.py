"""Parse the structured server console line format.

    [HH:MM:SS] [<source>] [<label>]: <content>

Positions are checked structurally on the UTF-8 bytes of the line. The source
segment may be empty; the label and content are returned as text.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

MIN_LINE_BYTES = 13

# "[__:__:__] [" header: byte offset -> expected byte
_HEADER = ((0, ord("[")), (3, ord(":")), (6, ord(":")), (9, ord("]")), (10, ord(" ")), (11, ord("[")))
_SOURCE_SEARCH_START = 12
# "] [" between the source segment and the label
_LABEL_OFFSET = 3
# "]: " between the label and the content
_CONTENT_OFFSET = 3


class ParseErrorKind(str, Enum):
    TOO_SHORT = "too short"
    INVALID_FORMAT = "invalid format"
    NO_SOURCE_SEGMENT = "invalid format, no source segment found"
    LABEL_START_NOT_FOUND = "error finding label start"
    LABEL_END_NOT_FOUND = "error finding label end"
    EMPTY_OR_MISSING_CONTENT = "invalid content"
    NON_UTF8_LABEL = "label not utf8"
    NON_UTF8_CONTENT = "content not utf8"


class LogParseError(ValueError):
    def __init__(self, kind: ParseErrorKind):
        super().__init__(kind.value)
        self.kind = kind


@dataclass(frozen=True)
class LogRecord:
    label: str
    content: str


def parse_line(line: Union[str, bytes]) -> LogRecord:
    """Return the label and content of a console line.

    Raises LogParseError whose `kind` names the first check that failed.
    """
    data = line.encode("utf-8", errors="surrogatepass") if isinstance(line, str) else bytes(line)
    n = len(data)

    if n < MIN_LINE_BYTES:
        raise LogParseError(ParseErrorKind.TOO_SHORT)

    for pos, expected in _HEADER:
        if data[pos] != expected:
            raise LogParseError(ParseErrorKind.INVALID_FORMAT)

    source_end = data.find(b"]", _SOURCE_SEARCH_START)
    if source_end == -1:
        raise LogParseError(ParseErrorKind.NO_SOURCE_SEGMENT)

    label_start = source_end + _LABEL_OFFSET
    if label_start >= n:
        raise LogParseError(ParseErrorKind.LABEL_START_NOT_FOUND)

    label_end = data.find(b"]", label_start)
    if label_end == -1:
        raise LogParseError(ParseErrorKind.LABEL_END_NOT_FOUND)

    content_start = label_end + _CONTENT_OFFSET
    if content_start >= n:
        raise LogParseError(ParseErrorKind.EMPTY_OR_MISSING_CONTENT)

    try:
        label = data[label_start:label_end].decode("utf-8")
    except UnicodeDecodeError:
        raise LogParseError(ParseErrorKind.NON_UTF8_LABEL) from None

    try:
        content = data[content_start:].decode("utf-8")
    except UnicodeDecodeError:
        raise LogParseError(ParseErrorKind.NON_UTF8_CONTENT) from None

    return LogRecord(label=label, content=content)

