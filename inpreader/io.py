"""
Input module for Abaqus-style .inp files.

Reads the keyword/data-block text format and returns generic keyword blocks
for downstream processing. The mesh extractor in `mesh.py` builds on the
line primitives defined here.

Format rules handled at this level:
- keyword lines start with a single '*'
- comment lines start with '**' and may appear anywhere
- a trailing comma continues the line on the next physical line
- double-quoted strings keep their case and spacing and may not span lines
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .config import ReaderConfig
from .errors import MalformedContentError

logger = logging.getLogger(__name__)

KEYWORD_MARKER = "*"
COMMENT_MARKER = "**"
QUOTE = '"'

# Int | Float | Text | present-without-value
ParamValue = Union[int, float, str, None]


# ============================================================================
# DATACLASSES for the generic block model
# ============================================================================

@dataclass
class KeywordBlock:
    """
    One keyword line and the data rows that follow it.

    Attributes:
        keyword: Upper-cased keyword including the marker, e.g. '*NODE'
        parameters: KEY=VALUE pairs in file order; bare flags map to None
        data: Data rows, each a list of coerced scalars
        line_number: Physical line where the keyword line starts
    """
    keyword: str
    parameters: Dict[str, ParamValue] = field(default_factory=dict)
    data: List[List[ParamValue]] = field(default_factory=list)
    line_number: int = 0


@dataclass
class InpFile:
    """Ordered keyword blocks of one input file."""
    blocks: List[KeywordBlock] = field(default_factory=list)
    filename: str = "<stream>"

    def __iter__(self) -> Iterator[KeywordBlock]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def keywords(self) -> List[str]:
        return [block.keyword for block in self.blocks]

    def find(self, keyword: str) -> List[KeywordBlock]:
        """Return every block named `keyword` (marker optional, any case)."""
        wanted = keyword.upper()
        if not wanted.startswith(KEYWORD_MARKER):
            wanted = KEYWORD_MARKER + wanted
        return [block for block in self.blocks if block.keyword.upper() == wanted]


# ============================================================================
# LINE & TOKEN PRIMITIVES
# ============================================================================

def is_keyword_line(line: str) -> bool:
    """True for '*KEYWORD' lines, false for '**' comments and data."""
    return line.startswith(KEYWORD_MARKER) and not line.startswith(COMMENT_MARKER)


def split_preserving_quotes(line: str, fold_case: bool = True) -> List[str]:
    """
    Split a logical line at commas.

    Outside quotes all whitespace is removed and, with fold_case, text is
    upper-cased. Quoted segments are kept verbatim (quotes included) and a
    comma inside them does not split the field.
    """
    # even indices are outside quotes, odd indices inside
    pieces = line.split(QUOTE)
    fields = [""]
    for i, piece in enumerate(pieces):
        if i % 2 == 0:
            text = "".join(piece.split())
            chunks = (text.upper() if fold_case else text).split(",")
            fields[-1] += chunks[0]
            fields.extend(chunks[1:])
        else:
            fields[-1] += QUOTE + piece + QUOTE
    return fields


def unquote(text: str) -> str:
    if len(text) >= 2 and text.startswith(QUOTE) and text.endswith(QUOTE):
        return text[1:-1]
    return text


def coerce_scalar(text: str) -> Union[int, float, str]:
    """Convert a field to int, else float, else unquoted text, else as-is."""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        pass
    return unquote(text)


def parse_keyword_line(line: str, line_number: int = 0, raw_values: bool = False) -> KeywordBlock:
    """
    Build an empty KeywordBlock from a '*KEYWORD, KEY=VALUE, FLAG' line.

    With raw_values=True only the keyword and the keys are upper-cased;
    values keep their case and text and are only unquoted, so names such as
    ELSET=Left or ELSET=1E3 come back as written.
    """
    convert = unquote if raw_values else coerce_scalar
    fold = str.upper if raw_values else str
    fields = split_preserving_quotes(line, fold_case=not raw_values)
    parameters: Dict[str, ParamValue] = {}
    for parameter in fields[1:]:
        if not parameter:
            continue
        if "=" in parameter:
            key, value = parameter.split("=", 1)
            parameters[fold(key)] = convert(value)
        else:
            parameters[fold(parameter)] = None
    return KeywordBlock(keyword=fold(str(convert(fields[0]))),
                        parameters=parameters,
                        line_number=line_number)


def parse_data_line(line: str) -> List[ParamValue]:
    return [coerce_scalar(f) for f in split_preserving_quotes(line)]


class LineReader:
    """
    Physical/logical line access over a text stream.

    Keeps a one-line push-back so that data reading can stop in front of the
    next keyword line without consuming it.
    """

    def __init__(self, stream: Iterable[str], filename: str = "<stream>"):
        self.filename = filename
        self.line_number = 0
        self.logical_line_number = 0
        self._lines = iter(stream)
        self._count = 0
        self._pending = None

    def _fetch(self):
        raw = next(self._lines, None)
        if raw is None:
            return None
        self._count += 1
        return raw.strip(), self._count

    @property
    def eof(self) -> bool:
        if self._pending is None:
            self._pending = self._fetch()
        return self._pending is None

    def readline(self) -> str:
        """Next physical line without surrounding whitespace, '' at the end."""
        if self._pending is None:
            self._pending = self._fetch()
        if self._pending is None:
            return ""
        line, self.line_number = self._pending
        self._pending = None
        return line

    def push_back(self, line: str) -> None:
        if self._pending is not None:
            raise RuntimeError("Only one line can be pushed back")
        self._pending = (line, self.line_number)
        self.line_number -= 1

    def error(self, message: str, line: Optional[str] = None,
              line_number: Optional[int] = None) -> MalformedContentError:
        if line_number is None:
            line_number = self.line_number
        return MalformedContentError(message, self.filename, line_number, line)

    def _read_unquoted(self) -> str:
        line = self.readline()
        if not line.startswith(COMMENT_MARKER) and line.count(QUOTE) % 2:
            raise self.error("Quoted strings cannot span multiple lines", line)
        return line

    def next_logical_line(self) -> str:
        """
        Read one logical line.

        Comment lines are skipped, also between continuation fragments.
        Fragments of a line ending in ',' are stripped and concatenated.
        """
        line = self._read_unquoted()
        while line.startswith(COMMENT_MARKER):
            line = self._read_unquoted()
        self.logical_line_number = self.line_number
        while line.endswith(","):
            if self.eof:
                raise self.error("Reached end of file on line continuation", line)
            fragment = self._read_unquoted()
            if fragment.startswith(COMMENT_MARKER):
                continue
            line += fragment
        return line

    def data_lines(self) -> Iterator[str]:
        """Yield physical data lines up to, not including, the next keyword."""
        while not self.eof:
            line = self.readline()
            if line.startswith(COMMENT_MARKER):
                continue
            if is_keyword_line(line):
                self.push_back(line)
                return
            yield line

    def skip_data_lines(self) -> None:
        for _ in self.data_lines():
            pass


# ============================================================================
# GENERIC BLOCK PARSER
# ============================================================================

def parse_blocks(stream: Iterable[str], filename: str = "<stream>") -> InpFile:
    """
    Parse a text stream into ordered keyword blocks.

    Raises:
        MalformedContentError: data before the first keyword, a quoted string
            spanning lines, or end of stream inside a continuation
    """
    reader = LineReader(stream, filename)
    inp = InpFile(filename=filename)
    while not reader.eof:
        line = reader.next_logical_line()
        if line == "":
            continue
        if is_keyword_line(line):
            inp.blocks.append(parse_keyword_line(line, reader.logical_line_number))
        else:
            if not inp.blocks:
                raise reader.error("The first non-comment line must be a keyword line",
                                   line, reader.logical_line_number)
            inp.blocks[-1].data.append(parse_data_line(line))
    logger.debug("Parsed %d keyword blocks from %s", len(inp.blocks), filename)
    return inp


def read_blocks(filepath: str, config: Optional[ReaderConfig] = None) -> InpFile:
    """
    Read an .inp file into keyword blocks.

    Args:
        filepath: Path to the .inp file
        config: Reader options (encoding); defaults to ReaderConfig()

    Returns:
        InpFile with the blocks in file order
    """
    config = config or ReaderConfig()
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Input file not found: {filepath}")
    with open(filepath, "r", encoding=config.encoding) as f:
        return parse_blocks(f, filename=str(filepath))


# ============================================================================
# Main entry point for testing
# ============================================================================

if __name__ == "__main__":
    import sys

    if len(sys.argv) < 2:
        print("Usage: python -m inpreader.io <input_file.inp>")
        sys.exit(1)

    try:
        inp = read_blocks(sys.argv[1])
    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}")
        sys.exit(1)

    print(f"✓ Successfully parsed: {inp.filename}")
    for block in inp:
        params = ", ".join(k if v is None else f"{k}={v}" for k, v in block.parameters.items())
        print(f"  {block.keyword:<20} {params:<40} rows={len(block.data)}")
