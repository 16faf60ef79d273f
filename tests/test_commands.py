from mcrelay.daemon.commands import CommandType, format_online, parse_message


def test_plain_text_is_a_message() -> None:
    cmd = parse_message("hello there")
    assert cmd.type is CommandType.MESSAGE
    assert cmd.text == "hello there"


def test_known_commands_and_aliases() -> None:
    assert parse_message("!help").type is CommandType.HELP
    assert parse_message("!online").type is CommandType.ONLINE
    assert parse_message("!TIME").type is CommandType.TIME
    assert parse_message("!logs").type is CommandType.LOGS
    assert parse_message("  !start ").type is CommandType.START
    assert parse_message("!stop").type is CommandType.STOP
    assert parse_message("!update").type is CommandType.UPDATE


def test_cmd_keeps_argument_text() -> None:
    cmd = parse_message("!cmd whitelist add Alice")
    assert cmd.type is CommandType.CMD
    assert cmd.text == "whitelist add Alice"
    assert parse_message("!cmd").text == ""


def test_unknown_commands() -> None:
    cmd = parse_message("!nope now")
    assert cmd.type is CommandType.UNKNOWN
    assert cmd.text == "!nope now"
    assert parse_message("!").type is CommandType.UNKNOWN


def test_format_online() -> None:
    assert format_online([]) == "No players online"
    assert format_online(["Alice", "Bob"]) == "Online players: Alice, Bob"
