from imtools.colors import (
    Color,
    capital_color_string,
    level_color,
    lowercase_color_string,
)


def test_add_wraps_in_escape_sequence():
    assert Color.RED.add("x") == "\x1b[31mx\x1b[0m"


def test_color_codes_are_consecutive_from_black():
    wrapped = [c.add("") for c in Color]
    assert wrapped == [f"\x1b[{code}m\x1b[0m" for code in range(30, 38)]
    assert Color.BLACK.add("a") == "\x1b[30ma\x1b[0m"
    assert Color.WHITE.add("a") == "\x1b[37ma\x1b[0m"


def test_level_colors():
    assert level_color("debug") is Color.WHITE
    assert level_color("info") is Color.BLUE
    assert level_color("warn") is Color.YELLOW
    for name in ("error", "dpanic", "panic", "fatal"):
        assert level_color(name) is Color.RED


def test_capital_color_string():
    assert capital_color_string("info") == Color.BLUE.add("INFO")


def test_lowercase_color_string():
    assert lowercase_color_string("warn") == Color.YELLOW.add("warn")


def test_level_names_are_case_insensitive():
    assert capital_color_string("ERROR") == capital_color_string("error")
    assert level_color("Debug") is level_color("debug")


def test_unknown_level():
    assert level_color("trace") is None
    assert capital_color_string("trace") == ""
    assert lowercase_color_string("trace") == ""


def test_add_keeps_text_between_codes():
    text = "[PID:1]"
    wrapped = Color.CYAN.add(text)
    assert wrapped.startswith(f"\x1b[{int(Color.CYAN)}m")
    assert wrapped.endswith("\x1b[0m")
    assert text in wrapped