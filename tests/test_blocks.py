import sys
import os
import io

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, PROJECT_ROOT)

from inpreader.io import parse_blocks, read_blocks
from inpreader.errors import MalformedContentError


SAMPLE = """** header comment
*Heading
*Node, nset=ALL
1, 0.0, 0.0
2, 1.0, 0.0
*Element, type=CPS3, elset="My Set"
1, 1, 2,
** wrapped element
   1
*Material, name=Steel
*Elastic
210000.0, 0.3
"""


def test_blocks_in_file_order():
    inp = parse_blocks(io.StringIO(SAMPLE), "sample.inp")
    assert inp.filename == "sample.inp"
    assert len(inp) == 5
    assert inp.keywords() == ["*HEADING", "*NODE", "*ELEMENT", "*MATERIAL", "*ELASTIC"]


def test_block_parameters_and_typed_rows():
    inp = parse_blocks(io.StringIO(SAMPLE))
    node = inp.find("node")[0]
    assert node.parameters == {"NSET": "ALL"}
    assert node.data == [[1, 0.0, 0.0], [2, 1.0, 0.0]]
    assert type(node.data[0][0]) is int
    assert type(node.data[0][1]) is float
    assert node.line_number == 3

    element = inp.find("*ELEMENT")[0]
    assert element.parameters == {"TYPE": "CPS3", "ELSET": "My Set"}
    assert element.data == [[1, 1, 2, 1]]

    assert inp.find("*Elastic")[0].data == [[210000.0, 0.3]]
    assert inp.find("*Step") == []


def test_flag_parameters_have_no_value():
    inp = parse_blocks(io.StringIO("*Nset, nset=A, generate\n1, 10, 2\n"))
    block = inp.blocks[0]
    assert block.parameters == {"NSET": "A", "GENERATE": None}
    assert block.data == [[1, 10, 2]]


def test_blank_lines_and_keyword_without_data():
    inp = parse_blocks(io.StringIO("\n*Part, name=P\n\n*End Part\n\n"))
    assert inp.keywords() == ["*PART", "*ENDPART"]
    assert all(block.data == [] for block in inp)


def test_data_before_first_keyword():
    with pytest.raises(MalformedContentError) as excinfo:
        parse_blocks(io.StringIO("** comment\n1, 2, 3\n*Node\n"), "early.inp")
    assert excinfo.value.line_number == 2
    assert excinfo.value.line == "1, 2, 3"


def test_read_blocks_from_file(tmp_path):
    p = tmp_path / "sample.inp"
    p.write_text(SAMPLE)
    inp = read_blocks(str(p))
    assert inp.filename == str(p)
    assert inp.keywords()[1] == "*NODE"


def test_read_blocks_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_blocks(str(tmp_path / "missing.inp"))
