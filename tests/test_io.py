import sys
import os
import io

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, PROJECT_ROOT)

from inpreader.io import (LineReader, coerce_scalar, is_keyword_line, parse_data_line,
                          parse_keyword_line, split_preserving_quotes)
from inpreader.errors import MalformedContentError


def test_coerce_integer_stays_integer():
    for text, value in [("42", 42), ("-7", -7), ("0", 0), ("+3", 3)]:
        parsed = coerce_scalar(text)
        assert type(parsed) is int
        assert parsed == value


def test_coerce_float_then_text():
    assert coerce_scalar("1.5") == 1.5
    assert isinstance(coerce_scalar("1E3"), float)
    assert coerce_scalar("0.") == 0.0
    assert coerce_scalar('"Keep Me"') == "Keep Me"
    assert coerce_scalar("C3D8") == "C3D8"
    assert coerce_scalar("") == ""


def test_keyword_line_detection():
    assert is_keyword_line("*NODE")
    assert is_keyword_line("*Element, type=C3D8")
    assert not is_keyword_line("** a comment")
    assert not is_keyword_line("1, 2, 3")
    assert not is_keyword_line("")


def test_split_uppercases_and_strips_outside_quotes():
    fields = split_preserving_quotes("*Element,  type = c3d8 , elset=top")
    assert fields == ["*ELEMENT", "TYPE=C3D8", "ELSET=TOP"]


def test_quoted_field_not_split_or_uppercased():
    fields = split_preserving_quotes('1, "Mixed Case, Not Split", abc')
    assert fields == ["1", '"Mixed Case, Not Split"', "ABC"]
    assert parse_data_line('1, "Mixed Case, Not Split", abc') == [1, "Mixed Case, Not Split", "ABC"]


def test_parse_keyword_line_parameters():
    block = parse_keyword_line('*Nset, nset="Fixed Edge", generate, instance=Plate-1', 12)
    assert block.keyword == "*NSET"
    assert block.parameters == {"NSET": "Fixed Edge", "GENERATE": None, "INSTANCE": "PLATE-1"}
    assert list(block.parameters) == ["NSET", "GENERATE", "INSTANCE"]
    assert block.line_number == 12
    assert block.data == []


def test_parse_keyword_line_coerces_values_unless_asked_not_to():
    assert parse_keyword_line("*Elset, elset=1E3").parameters["ELSET"] == 1000.0
    assert parse_keyword_line("*Elset, elset=1E3", raw_values=True).parameters["ELSET"] == "1E3"
    assert parse_keyword_line("*Output, frequency=10").parameters["FREQUENCY"] == 10


def test_continuation_joins_physical_lines():
    reader = LineReader(io.StringIO("1,2,3,\n4,5\n"))
    assert reader.next_logical_line() == "1,2,3,4,5"
    single = LineReader(io.StringIO("1,2,3,4,5\n"))
    assert parse_data_line(single.next_logical_line()) == [1, 2, 3, 4, 5]


def test_comments_are_transparent():
    plain = LineReader(io.StringIO("*Node\n1,2,3,\n4,5\n"))
    commented = LineReader(io.StringIO("** top\n*Node\n** before data\n1,2,3,\n** inside\n4,5\n"))
    for _ in range(2):
        assert plain.next_logical_line() == commented.next_logical_line()


def test_quote_spanning_lines_is_rejected():
    reader = LineReader(io.StringIO('*Heading, name="abc\ndef"\n'), "broken.inp")
    with pytest.raises(MalformedContentError) as excinfo:
        reader.next_logical_line()
    assert excinfo.value.line_number == 1
    assert "broken.inp" in str(excinfo.value)


def test_end_of_stream_during_continuation():
    reader = LineReader(io.StringIO("1,2,\n"))
    with pytest.raises(MalformedContentError):
        reader.next_logical_line()


def test_data_lines_stop_before_keyword():
    reader = LineReader(io.StringIO("1,2\n** c\n\n3,4\n*NEXT\n5\n"))
    assert list(reader.data_lines()) == ["1,2", "", "3,4"]
    assert reader.next_logical_line() == "*NEXT"
    assert reader.line_number == 5
    reader.skip_data_lines()
    assert reader.eof
    assert reader.readline() == ""


def test_raw_values_keep_case_of_values_only():
    block = parse_keyword_line("*Elset, elset=Left, Generate", raw_values=True)
    assert block.keyword == "*ELSET"
    assert block.parameters == {"ELSET": "Left", "GENERATE": None}

    quoted = parse_keyword_line('*Nset, nset="Fixed Edge"', raw_values=True)
    assert quoted.parameters == {"NSET": "Fixed Edge"}
