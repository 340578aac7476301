"""
Unit tests for Command and argument quoting.
"""

from pathlib import Path, PureWindowsPath

import pytest

from kiln.build.command import Command, quote_argument


class TestQuoteArgument:
    """Test suite for MS C runtime argument quoting."""

    def test_plain_argument_is_verbatim(self):
        assert quote_argument("-O2") == "-O2"

    def test_empty_argument_is_quoted(self):
        assert quote_argument("") == '""'

    def test_space_forces_quotes(self):
        assert quote_argument("a b") == '"a b"'

    @pytest.mark.parametrize("whitespace", ["\t", "\n", "\v"])
    def test_other_whitespace_forces_quotes(self, whitespace):
        assert quote_argument(f"a{whitespace}b") == f'"a{whitespace}b"'

    def test_embedded_quote_is_escaped(self):
        assert quote_argument('say "hi"') == '"say \\"hi\\""'

    def test_backslashes_before_quote_are_doubled_plus_one(self):
        # a\"b -> "a\\\"b"
        assert quote_argument('a\\"b') == '"a\\\\\\"b"'

    def test_trailing_backslashes_are_doubled(self):
        assert quote_argument("C:\\dir with space\\") == '"C:\\dir with space\\\\"'

    def test_interior_backslashes_unchanged(self):
        assert quote_argument("a\\\\b c") == '"a\\\\b c"'

    def test_backslashes_without_triggers_are_verbatim(self):
        assert quote_argument("C:\\dir\\") == "C:\\dir\\"


class TestCommand:
    """Test suite for Command."""

    def test_strings_and_paths(self):
        cmd = Command("clang++", "-c", Path("src") / "main.cpp")
        assert cmd.args == ["clang++", "-c", "src/main.cpp"]

    def test_windows_paths_use_forward_slashes(self):
        cmd = Command("cl", PureWindowsPath("C:\\src\\main.cpp"))
        assert cmd.args == ["cl", "C:/src/main.cpp"]

    def test_nested_lists_are_flattened(self):
        cmd = Command("g++").append(["-O2", ("-Wall", ["-g"])], "-c")
        assert cmd.args == ["g++", "-O2", "-Wall", "-g", "-c"]

    def test_append_returns_self(self):
        cmd = Command("cc")
        assert cmd.append("-c") is cmd

    def test_bytes_rejected(self):
        with pytest.raises(TypeError):
            Command("cc", b"-c")

    def test_unsupported_type_rejected(self):
        with pytest.raises(TypeError):
            Command("cc", 3)

    def test_extend_keeps_arguments_raw(self):
        cmd = Command("build").extend(["release", "a b"])
        assert cmd.args == ["build", "release", "a b"]

    def test_serialize_quotes_each_argument(self):
        cmd = Command("prog", "a b", "", 'x"y')
        assert cmd.serialize() == 'prog "a b" "" "x\\"y"'
        assert str(cmd) == cmd.serialize()

    def test_empty_command(self):
        cmd = Command()
        assert cmd.empty()
        assert len(cmd) == 0
        assert cmd.serialize() == ""
        with pytest.raises(IndexError):
            cmd.program

    def test_clear(self):
        cmd = Command("cc", "-c")
        cmd.clear()
        assert cmd.empty()

    def test_program_and_iteration(self):
        cmd = Command("cc", "-c", "x.c")
        assert cmd.program == "cc"
        assert list(cmd) == ["cc", "-c", "x.c"]

    def test_equality(self):
        assert Command("cc", "-c") == Command("cc", "-c")
        assert Command("cc", "-c") != Command("cc")

    def test_args_is_a_copy(self):
        cmd = Command("cc")
        cmd.args.append("-c")
        assert cmd.args == ["cc"]
