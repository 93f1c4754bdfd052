"""Component tests for the header scanner (input/sgf_header.py).

This module tests:
- read_header(): bounded read, "not a record" signal, I/O failures
- parse_header(): per-property pattern extraction
- black_wins / white_wins derived from the result
"""
from __future__ import annotations

import os

import pytest

from core.errors import IoFailure
from input.sgf_header import (
    MAX_HEADER_BYTES,
    HeaderMetadata,
    is_record,
    parse_header,
    read_header,
)


class TestParseHeader:
    """Tests for parse_header() on in-memory content."""

    def test_all_fields(self, header_sgf_content):
        meta = parse_header(header_sgf_content)

        assert meta.date == "1941-06-21"
        assert meta.event == "Honinbo"
        assert meta.round == "3"
        assert meta.black_player == "Shusai"
        assert meta.black_rank == "9p"
        assert meta.white_player == "Go Seigen"
        assert meta.white_rank == "5p"
        assert meta.komi == "0"
        assert meta.result == "W+R"

    def test_missing_fields_are_none(self):
        meta = parse_header("(;GM[1]SZ[19]PB[Someone])")

        assert meta.black_player == "Someone"
        assert meta.white_player is None
        assert meta.result is None
        assert meta.black_wins is False
        assert meta.white_wins is False

    def test_case_insensitive_identifier(self):
        meta = parse_header("(;pb[lower]Pw[mixed])")

        assert meta.black_player == "lower"
        assert meta.white_player == "mixed"

    def test_first_occurrence_wins(self):
        meta = parse_header("(;PB[first];C[x]PB[second])")
        assert meta.black_player == "first"

    def test_values_are_stripped(self):
        meta = parse_header("(;PW[  padded \n])")
        assert meta.white_player == "padded"

    def test_unterminated_value_left_unset(self):
        """Malformed properties never raise; the field stays unset."""
        meta = parse_header("(;PB[Shusai]PW[broken")

        assert meta.black_player == "Shusai"
        assert meta.white_player is None


class TestWinFlags:
    """Tests for the derived winner flags."""

    @pytest.mark.parametrize("result,black,white", [
        ("B+3.5", True, False),
        ("b+R", True, False),
        ("W+R", False, True),
        ("w+r", False, True),
        ("Draw", False, False),
        ("0", False, False),
        ("", False, False),
        (None, False, False),
    ], ids=["b_points", "b_lower", "w_resign", "w_lower", "draw", "jigo", "empty", "missing"])
    def test_flags(self, result, black, white):
        meta = HeaderMetadata(result=result)
        assert meta.black_wins is black
        assert meta.white_wins is white

    def test_to_dict(self):
        data = HeaderMetadata(black_player="A", result="B+1").to_dict()

        assert data["black_player"] == "A"
        assert data["black_wins"] is True
        assert data["white_wins"] is False
        assert data["date"] is None


class TestReadHeader:
    """Tests for read_header() on files."""

    def test_read_file(self, write_sgf, header_sgf_content):
        meta = read_header(write_sgf(header_sgf_content))

        assert meta is not None
        assert meta.white_wins is True
        assert meta.event == "Honinbo"

    @pytest.mark.parametrize("content", [
        "",
        "hello world",
        "(B[aa])",
        "; (;PB[x])",
        "<html>(;PB[x])</html>",
    ], ids=["empty", "text", "no_semicolon", "wrong_order", "html"])
    def test_not_a_record(self, write_sgf, content):
        assert read_header(write_sgf(content)) is None

    def test_leading_whitespace_accepted(self, write_sgf):
        meta = read_header(write_sgf("\n\n   (;PB[Spaced])"))
        assert meta.black_player == "Spaced"

    def test_byte_order_mark_accepted(self, tmp_path):
        """Records saved with a UTF-8 BOM are still game records."""
        path = tmp_path / "bom.sgf"
        path.write_bytes(b"\xef\xbb\xbf" + "(;GM[1]PB[Lee]PW[Cho])".encode("utf-8"))

        meta = read_header(str(path))

        assert meta is not None
        assert meta.black_player == "Lee"

    @pytest.mark.parametrize("content,expected", [
        ("\ufeff(;B[aa])", True),
        ("  \ufeff\n(;B[aa])", True),
        ("\ufeff hello", False),
    ], ids=["bom", "space_then_bom", "bom_text"])
    def test_is_record_ignores_bom(self, content, expected):
        assert is_record(content) is expected

    def test_only_prefix_is_read(self, write_sgf):
        """Properties past the first 1024 bytes are not seen."""
        padding = "C[" + "x" * MAX_HEADER_BYTES + "]"
        meta = read_header(write_sgf(f"(;PB[Early]{padding}PW[Late])"))

        assert meta.black_player == "Early"
        assert meta.white_player is None

    def test_multibyte_cut_at_boundary(self, write_sgf):
        """A UTF-8 character split by the read limit does not raise."""
        prefix = "(;PB[" + "a" * (MAX_HEADER_BYTES - 6)
        meta = read_header(write_sgf(prefix + "囲碁])"))
        assert meta is not None
        assert meta.black_player is None

    def test_utf8_names(self, write_sgf):
        meta = read_header(write_sgf("(;PB[井山裕太]PW[張栩])"))

        assert meta.black_player == "井山裕太"
        assert meta.white_player == "張栩"

    def test_missing_file_raises_io_failure(self, tmp_path):
        with pytest.raises(IoFailure) as info:
            read_header(str(tmp_path / "nope.sgf"))
        assert isinstance(info.value.__cause__, OSError)

    def test_directory_raises_io_failure(self, tmp_path):
        with pytest.raises(IoFailure):
            read_header(str(tmp_path))

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX non-root")
    def test_unreadable_file(self, write_sgf):
        path = write_sgf("(;PB[x])")
        os.chmod(path, 0)
        try:
            with pytest.raises(IoFailure):
                read_header(path)
        finally:
            os.chmod(path, 0o644)
