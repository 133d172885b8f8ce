"""Tests for nhddl.options_file: the ``key: value`` options format."""

import io
from pathlib import Path

import pytest

from nhddl.arguments import Argument, ArgumentList
from nhddl.errors import FormatError, NotFoundError, StorageIOError
from nhddl.options_file import (
    dump_title_arguments,
    format_argument,
    load_argument_list,
    parse_line,
    parse_options,
)


def _parse(text: str) -> ArgumentList:
    return parse_options(io.StringIO(text, newline=""))


# ---------------------------------------------------------------------------
# parse_line()
# ---------------------------------------------------------------------------


class TestParseLine:
    def test_disabled_empty(self) -> None:
        arg = parse_line("$foo:\n")
        assert arg == Argument("foo", "", disabled=True)

    def test_value_with_trailing_comment(self) -> None:
        arg = parse_line("foo: bar # c\n")
        assert arg == Argument("foo", "bar")

    def test_leading_whitespace_and_marker(self) -> None:
        arg = parse_line("   $ mt : 2   \n")
        assert arg.name == "mt"
        assert arg.value == "2"
        assert arg.disabled

    def test_value_keeps_inner_colons(self) -> None:
        arg = parse_line("dvd: mass0:/DVD/Game.iso\n")
        assert arg.value == "mass0:/DVD/Game.iso"

    def test_crlf(self) -> None:
        assert parse_line("foo: bar\r\n").value == "bar"

    def test_value_with_spaces(self) -> None:
        assert parse_line("name:  Some Game  \n").value == "Some Game"

    def test_no_colon(self) -> None:
        with pytest.raises(FormatError):
            parse_line("foo bar\n")

    def test_no_colon_at_eof(self) -> None:
        with pytest.raises(FormatError):
            parse_line("foo")

    def test_comment(self) -> None:
        with pytest.raises(FormatError):
            parse_line("   # mode: ata\n")

    def test_blank(self) -> None:
        with pytest.raises(FormatError):
            parse_line("   \n")

    def test_empty_key(self) -> None:
        with pytest.raises(FormatError):
            parse_line("  : value\n")

    def test_empty_key_after_marker(self) -> None:
        with pytest.raises(FormatError):
            parse_line("$: value\n")

    def test_whitespace_only_value_at_eof(self) -> None:
        with pytest.raises(FormatError):
            parse_line("foo:   ")

    def test_bare_key_at_eof(self) -> None:
        assert parse_line("foo:") == Argument("foo", "")

    def test_comment_right_after_colon(self) -> None:
        assert parse_line("foo:# nothing\n") == Argument("foo", "")


# ---------------------------------------------------------------------------
# parse_options()
# ---------------------------------------------------------------------------


class TestParseOptions:
    def test_skips_bad_lines(self) -> None:
        result = _parse("# header\nfoo: 1\nbroken line\n\n$bar:\nbaz: 2")
        assert result.names == ["foo", "bar", "baz"]
        assert result.get("bar").disabled

    def test_compat_mode_goes_first(self) -> None:
        result = _parse("mt: 1\ngc: 13\n")
        assert result.names == ["gc", "mt"]
        assert result[0].value == "13"

    def test_repeated_key_keeps_first(self) -> None:
        result = _parse("mt: 1\n$mt: 2\ngc: 3\ngc: 5\n")
        assert result.names == ["gc", "mt"]
        assert result.get("mt") == Argument("mt", "1")
        assert result[0].value == "3"
        assert result.flatten() == ["-gc=3", "-mt=1"]

    def test_only_garbage(self) -> None:
        assert len(_parse("nothing here\n# and a comment\n")) == 0

    def test_empty(self) -> None:
        assert len(_parse("")) == 0


# ---------------------------------------------------------------------------
# load_argument_list()
# ---------------------------------------------------------------------------


class TestLoadArgumentList:
    def test_loads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "global.yaml"
        path.write_text("mode: udpbd\n$480p:\n", encoding="utf-8")
        result = load_argument_list(path)
        assert result.names == ["mode", "480p"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            load_argument_list(tmp_path / "missing.yaml")

    def test_not_found_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_argument_list(tmp_path / "missing.yaml")

    def test_read_error(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_bytes(b"foo: 1\nbar: \xff\xfe\n")
        with pytest.raises(StorageIOError):
            load_argument_list(path)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class TestFormatArgument:
    def test_title_argument(self) -> None:
        assert format_argument(Argument("mt", "2")) == "mt: 2\n"

    def test_title_argument_disabled(self) -> None:
        assert format_argument(Argument("mt", "2", disabled=True)) == "$mt: 2\n"

    def test_global_enabled_is_omitted(self) -> None:
        assert format_argument(Argument("mt", "2", is_global_origin=True)) is None

    def test_global_disabled_becomes_marker(self) -> None:
        arg = Argument("mt", "2", disabled=True, is_global_origin=True)
        assert format_argument(arg) == "$mt:\n"


class TestDumpTitleArguments:
    def test_dump_then_parse(self) -> None:
        args = ArgumentList(
            [
                Argument("gc", "13"),
                Argument("mt", "2"),
                Argument("dbc", "", disabled=True),
                Argument("logo", "", is_global_origin=True),
                Argument("cwd", "x", disabled=True, is_global_origin=True),
            ]
        )
        text = dump_title_arguments(args)
        assert text == "gc: 13\nmt: 2\n$dbc: \n$cwd:\n"

        parsed = _parse(text)
        assert parsed.names == ["gc", "mt", "dbc", "cwd"]
        assert parsed.get("cwd") == Argument("cwd", "", disabled=True)
        assert parsed.get("dbc") == Argument("dbc", "", disabled=True)
