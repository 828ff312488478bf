from agenda.lib import ansi
from agenda.lib.ansi import DEFAULT, PLAIN, Theme, bold, hex_color, strip


def test_theme_defaults():
    assert DEFAULT.bold == "\033[1m"
    assert DEFAULT.reset == "\033[0m"
    assert Theme().muted == "\033[90m"


def test_plain_theme_is_empty():
    assert all(value == "" for value in vars(PLAIN).values())


def test_default_theme_wraps_text():
    ansi.use(DEFAULT)
    assert bold("hi") == "\033[1mhi\033[0m"
    assert ansi.green("ok").startswith("\033[38;5;114m")
    assert hex_color("#ff0080", "work") == "\033[38;2;255;0;128mwork\033[0m"


def test_plain_theme_passes_text_through():
    ansi.use(PLAIN)
    assert bold("hi") == "hi"
    assert ansi.coral("x") == "x"
    assert hex_color("#ff0080", "work") == "work"


def test_malformed_hex_is_plain():
    ansi.use(DEFAULT)
    assert hex_color("red", "x") == "x"
    assert hex_color("#zzzzzz", "x") == "x"


def test_strip():
    assert strip("\033[1mhello\033[0m") == "hello"
    assert strip("\033[38;2;1;2;3mrgb\033[0m") == "rgb"
