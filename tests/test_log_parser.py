import random

import pytest

from mcrelay.kernel.log_parser import LogParseError, LogRecord, ParseErrorKind, parse_line


def _kind(line) -> ParseErrorKind:
    with pytest.raises(LogParseError) as exc:
        parse_line(line)
    return exc.value.kind


def test_parse_line_with_source_segment() -> None:
    assert parse_line("[__:__:__] [A] [TEST1]: content") == LogRecord("TEST1", "content")


def test_parse_line_with_empty_source_segment() -> None:
    assert parse_line("[__:__:__] [] [TEST2]: A") == LogRecord("TEST2", "A")


def test_parse_server_join_line() -> None:
    record = parse_line("[12:00:00] [Server] [app/Core]: Alice joined the game")
    assert record.label == "app/Core"
    assert record.content == "Alice joined the game"


def test_parse_keeps_brackets_inside_content() -> None:
    record = parse_line("[09:15:42] [Server thread/INFO] [minecraft/MinecraftServer]: <Bob> [hi] there")
    assert record == LogRecord("minecraft/MinecraftServer", "<Bob> [hi] there")


def test_parse_multibyte_content_and_bytes_input() -> None:
    line = "[12:00:00] [S] [Lä]: héllo ✓"
    assert parse_line(line) == LogRecord("Lä", "héllo ✓")
    assert parse_line(line.encode("utf-8")) == LogRecord("Lä", "héllo ✓")


def test_too_short() -> None:
    assert _kind("[__:__:__] ") is ParseErrorKind.TOO_SHORT
    assert _kind("") is ParseErrorKind.TOO_SHORT


def test_bad_header_bytes() -> None:
    assert _kind("A__:__:__] [] [") is ParseErrorKind.INVALID_FORMAT
    assert _kind("[12-00:00] [] [L]: x") is ParseErrorKind.INVALID_FORMAT
    assert _kind("[12:00:00]  [] [L]: x") is ParseErrorKind.INVALID_FORMAT
    assert _kind("[12:00:00] (S) [L]: x") is ParseErrorKind.INVALID_FORMAT


def test_missing_source_bracket() -> None:
    assert _kind("[12:00:00] [abcdef") is ParseErrorKind.NO_SOURCE_SEGMENT


def test_label_start_past_end() -> None:
    assert _kind("[__:__:__] [] [") is ParseErrorKind.LABEL_START_NOT_FOUND


def test_missing_label_end_bracket() -> None:
    assert _kind("[__:__:__] [] [abcdefg") is ParseErrorKind.LABEL_END_NOT_FOUND


def test_empty_content() -> None:
    assert _kind("[__:__:__] [] [TEST3]: ") is ParseErrorKind.EMPTY_OR_MISSING_CONTENT
    assert _kind("[__:__:__] [] [TEST3]:") is ParseErrorKind.EMPTY_OR_MISSING_CONTENT


def test_non_utf8_label_and_content() -> None:
    assert _kind(b"[12:00:00] [] [\xff]: x") is ParseErrorKind.NON_UTF8_LABEL
    assert _kind(b"[12:00:00] [] [L]: \xff") is ParseErrorKind.NON_UTF8_CONTENT


def test_lone_surrogate_is_rejected_not_raised() -> None:
    assert _kind("[12:00:00] [] [L]: \ud800") is ParseErrorKind.NON_UTF8_CONTENT


def test_error_message_names_the_failed_check() -> None:
    with pytest.raises(LogParseError, match="invalid content"):
        parse_line("[__:__:__] [] [TEST3]: ")


def test_generated_lines_parse_to_their_parts() -> None:
    rng = random.Random(1234)
    alphabet = "abcXYZ019 /._-<>:é✓"
    for _ in range(300):
        source = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 12)))
        label = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 12)))
        content = "".join(rng.choice(alphabet + "[]") for _ in range(rng.randint(1, 40)))
        line = f"[{rng.randint(0, 23):02}:{rng.randint(0, 59):02}:{rng.randint(0, 59):02}] [{source}] [{label}]: {content}"
        assert parse_line(line) == LogRecord(label, content)


def test_every_prefix_of_a_valid_line_parses_or_fails_cleanly() -> None:
    line = "[12:00:00] [Server thread/INFO] [app/Core]: Alice joined the game".encode("utf-8")
    for end in range(len(line) + 1):
        try:
            parse_line(line[:end])
        except LogParseError as e:
            assert isinstance(e.kind, ParseErrorKind)
