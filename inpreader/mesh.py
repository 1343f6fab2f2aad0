"""
Mesh extraction from Abaqus-style .inp files.

Walks the file once, dispatching on keyword headers (*Node, *Element, *Nset,
*Elset, *Part, *Instance) and accumulating node coordinates, per-type element
topology and named sets. The accumulated lists are reshaped into numpy
arrays at the end and returned as an immutable `RawMesh`.

Array layout follows the column-per-entity convention:
    nodes.coordinates: (dim, n_nodes) float
    elements[T].topology: (n_vertices, n_elements) int
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import ReaderConfig
from .errors import DimensionMismatchError, MalformedContentError, UnsupportedStructureError
from .io import LineReader, is_keyword_line, parse_keyword_line

logger = logging.getLogger(__name__)

# default trace target for parse_mesh; drops every record
_null_logger = logging.getLogger("inpreader.notrace")
_null_logger.addHandler(logging.NullHandler())
_null_logger.setLevel(logging.CRITICAL + 1)
_null_logger.propagate = False
_null_logger.disabled = True


# ============================================================================
# DATACLASSES for the assembled mesh
# ============================================================================

def _readonly(values, dtype) -> np.ndarray:
    array = np.array(values, dtype=dtype)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class RawNodes:
    """
    Attributes:
        numbers: Node IDs in file order, shape (n_nodes,)
        coordinates: Node coordinates, shape (dim, n_nodes)
    """
    numbers: np.ndarray
    coordinates: np.ndarray

    @property
    def dim(self) -> int:
        return int(self.coordinates.shape[0])


@dataclass(frozen=True)
class RawElements:
    """
    Attributes:
        numbers: Element IDs in file order, shape (n_elements,)
        topology: Vertex node IDs, shape (n_vertices, n_elements)
    """
    numbers: np.ndarray
    topology: np.ndarray

    @property
    def num_vertices(self) -> int:
        return int(self.topology.shape[0])

    @property
    def num_elements(self) -> int:
        return int(self.numbers.shape[0])


@dataclass(frozen=True)
class RawMesh:
    elements: Mapping[str, RawElements]
    nodes: RawNodes
    nodesets: Mapping[str, np.ndarray]
    elementsets: Mapping[str, np.ndarray]


# ============================================================================
# ACCUMULATION
# ============================================================================

def _join_rows(rows: Sequence[str]) -> Iterator[Tuple[int, str]]:
    """Yield (index of first fragment, joined row) pairs."""
    i = 0
    nrows = len(rows)
    while i < nrows:
        first = i
        row = rows[i]
        i += 1
        if not row:
            continue
        while row.endswith(",") and i < nrows:
            row += rows[i]
            i += 1
        yield first, row


def join_continued_rows(rows: Sequence[str]) -> List[str]:
    """
    Join element rows that were wrapped onto several lines.

    A row ending with ',' continues on the next row. Empty rows are dropped.
    """
    return [row for _, row in _join_rows(rows)]


def _split_row(row: str) -> List[str]:
    return [t for t in (s.strip() for s in row.split(",")) if t]


@dataclass
class _MeshAccumulator:
    """Growing lists owned by a single scan; converted by `assemble()`."""
    filename: str = "<stream>"
    dim: Optional[int] = None
    node_numbers: List[int] = field(default_factory=list)
    coordinates: List[float] = field(default_factory=list)
    topology: Dict[str, List[int]] = field(default_factory=dict)
    element_numbers: Dict[str, List[int]] = field(default_factory=dict)
    vertex_counts: Dict[str, int] = field(default_factory=dict)
    nodesets: Dict[str, List[int]] = field(default_factory=dict)
    elementsets: Dict[str, List[int]] = field(default_factory=dict)
    part_counter: int = 0
    instance_counter: int = 0

    def add_node(self, number: int, coords: List[float], line_number: int, line: str) -> None:
        if not coords:
            raise MalformedContentError(f"Node {number} has no coordinates",
                                        self.filename, line_number, line)
        if self.dim is None:
            self.dim = len(coords)
        if len(coords) != self.dim:
            raise DimensionMismatchError(
                f"Not allowed to mix nodes in different dimensions "
                f"(got {len(coords)} coordinates, expected {self.dim})",
                self.filename, line_number, line)
        self.node_numbers.append(number)
        self.coordinates.extend(coords)

    def add_element(self, element_type: str, number: int, vertices: List[int],
                    line_number: int, line: str) -> None:
        expected = self.vertex_counts.setdefault(element_type, len(vertices))
        if len(vertices) != expected:
            raise MalformedContentError(
                f"Element {number} of type {element_type} has {len(vertices)} vertices, "
                f"expected {expected}",
                self.filename, line_number, line)
        self.element_numbers.setdefault(element_type, []).append(number)
        self.topology.setdefault(element_type, []).extend(vertices)

    def assemble(self) -> RawMesh:
        if self.part_counter > 1 or self.instance_counter > 1:
            msg = (f"Multiple parts or instances are not supported "
                   f"({self.part_counter} parts, {self.instance_counter} instances). "
                   "Merge parts and tell them apart by sets for a single grid, "
                   "or split into multiple input files for multiple grids")
            raise UnsupportedStructureError(msg, self.filename)

        elements = {}
        for element_type, flat in self.topology.items():
            numbers = self.element_numbers[element_type]
            n_elements = len(numbers)
            if len(flat) % n_elements != 0:
                raise MalformedContentError(
                    f"Inconsistent vertex counts for element type {element_type}",
                    self.filename)
            matrix = np.array(flat, dtype=int).reshape(n_elements, len(flat) // n_elements).T
            elements[element_type] = RawElements(numbers=_readonly(numbers, int),
                                                 topology=_readonly(matrix, int))

        if self.dim is not None:
            coords = np.array(self.coordinates, dtype=float).reshape(-1, self.dim).T
        else:
            coords = np.empty((0, 0), dtype=float)
        nodes = RawNodes(numbers=_readonly(self.node_numbers, int),
                         coordinates=_readonly(coords, float))

        nodesets = {name: _readonly(ids, int) for name, ids in self.nodesets.items()}
        elementsets = {name: _readonly(ids, int) for name, ids in self.elementsets.items()}
        return RawMesh(elements=MappingProxyType(elements),
                       nodes=nodes,
                       nodesets=MappingProxyType(nodesets),
                       elementsets=MappingProxyType(elementsets))


# ============================================================================
# BLOCK READERS
# ============================================================================

def _to_int(token: str, reader: LineReader, row: str, line_number: int) -> int:
    try:
        return int(token)
    except ValueError:
        raise reader.error(f"Expected an integer, got {token!r}", row, line_number) from None


def _read_nodes(reader: LineReader, acc: _MeshAccumulator, nset: Optional[str]) -> None:
    new_numbers = []
    for row in reader.data_lines():
        node = _split_row(row)
        if not node:
            continue
        number = _to_int(node[0], reader, row, reader.line_number)
        try:
            coords = [float(x) for x in node[1:]]
        except ValueError:
            raise reader.error("Node coordinates must be numeric", row) from None
        acc.add_node(number, coords, reader.line_number, row)
        new_numbers.append(number)
    if nset:
        acc.nodesets.setdefault(nset, []).extend(new_numbers)


def _read_elements(reader: LineReader, acc: _MeshAccumulator, element_type: str,
                   elset: Optional[str]) -> None:
    rows, line_numbers = [], []
    for row in reader.data_lines():
        rows.append(row)
        line_numbers.append(reader.line_number)
    new_numbers = []
    for first, row in _join_rows(rows):
        element = _split_row(row)
        if not element:
            continue
        line_number = line_numbers[first]
        number = _to_int(element[0], reader, row, line_number)
        vertices = [_to_int(v, reader, row, line_number) for v in element[1:]]
        acc.add_element(element_type, number, vertices, line_number, row)
        new_numbers.append(number)
    if elset:
        acc.elementsets.setdefault(elset, []).extend(new_numbers)


def _read_set(reader: LineReader, sets: Dict[str, List[int]], name: str, generate: bool) -> None:
    if generate:
        for row in reader.data_lines():
            if row:
                break
        else:
            raise reader.error(f"Missing start, stop, step line for generated set {name}")
        values = [_to_int(v, reader, row, reader.line_number) for v in _split_row(row)]
        if len(values) not in (2, 3):
            raise reader.error("Generated sets need start, stop[, step]", row)
        start, stop = values[0], values[1]
        step = values[2] if len(values) == 3 else 1
        if step == 0:
            raise reader.error("Generated set increment must not be zero", row)
        # stop is inclusive in either direction
        indices = list(range(start, stop + (1 if step > 0 else -1), step))
    else:
        indices = []
        for row in reader.data_lines():
            indices.extend(_to_int(v, reader, row, reader.line_number) for v in _split_row(row))
    sets.setdefault(name, []).extend(indices)


def _name_parameter(parameters: Dict[str, Any], key: str) -> Optional[str]:
    value = parameters.get(key)
    return None if value is None else str(value)


# ============================================================================
# EXTRACTOR
# ============================================================================

def parse_mesh(stream: Iterable[str], filename: str = "<stream>",
               log: Optional[logging.Logger] = None) -> RawMesh:
    """
    Extract a RawMesh from an .inp text stream.

    Args:
        stream: Iterable of text lines (an open file, io.StringIO, list)
        filename: Name used in error messages
        log: Logger receiving a DEBUG trace of headers and actions;
            tracing is off when omitted

    Raises:
        MalformedContentError: unknown non-keyword header, bad numbers,
            inconsistent vertex counts, continuation at end of file
        DimensionMismatchError: node rows with different coordinate counts
        UnsupportedStructureError: more than one *Part or *Instance
    """
    log = _null_logger if log is None else log
    reader = LineReader(stream, filename)
    acc = _MeshAccumulator(filename=filename)

    while not reader.eof:
        header = reader.next_logical_line()
        if header == "":
            continue
        log.debug("H: %s", header)
        if not is_keyword_line(header):
            raise reader.error("Unknown header. Could also indicate an incomplete file",
                               header, reader.logical_line_number)

        block = parse_keyword_line(header, reader.logical_line_number, raw_values=True)
        keyword, params = block.keyword, block.parameters

        if keyword == "*NODE":
            log.debug("Reading nodes")
            _read_nodes(reader, acc, _name_parameter(params, "NSET"))
        elif keyword == "*ELEMENT":
            element_type = _name_parameter(params, "TYPE")
            if element_type is None:
                raise reader.error("*Element requires a type parameter",
                                   header, block.line_number)
            elset = _name_parameter(params, "ELSET")
            log.debug("Reading elements %s", "with elset" if elset else "without elset")
            _read_elements(reader, acc, element_type, elset)
        elif keyword in ("*ELSET", "*NSET"):
            kind = keyword[1:]
            name = _name_parameter(params, kind)
            if name is None:
                raise reader.error(f"{keyword} requires a {kind.lower()} name",
                                   header, block.line_number)
            log.debug("Reading %s", "elementset" if kind == "ELSET" else "nodeset")
            sets = acc.elementsets if kind == "ELSET" else acc.nodesets
            _read_set(reader, sets, name, "GENERATE" in params)
        elif keyword == "*PART":
            log.debug("Increment part counter")
            acc.part_counter += 1
        elif keyword == "*INSTANCE":
            # Instances hold translations, or an independent mesh
            log.debug("Increment instance counter")
            acc.instance_counter += 1
            reader.skip_data_lines()
        else:
            log.debug("Discarding keyword content")
            reader.skip_data_lines()

    return acc.assemble()


def read_mesh(filepath: str, config: Optional[ReaderConfig] = None,
              log: Optional[logging.Logger] = None) -> RawMesh:
    """
    Read an .inp file and return the assembled RawMesh.

    The file is closed on every exit path; no partial mesh is returned.

    Args:
        filepath: Path to the .inp file
        config: Reader options; `config.debug` traces on this module's logger
        log: Explicit trace logger, takes precedence over `config.debug`
    """
    config = config or ReaderConfig()
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Input file not found: {filepath}")
    if log is None and config.debug:
        log = logger

    with open(filepath, "r", encoding=config.encoding) as f:
        mesh = parse_mesh(f, filename=str(filepath), log=log)

    logger.info("Read %s: %d nodes, %d element types, %d nodesets, %d elementsets",
                filepath.name, mesh.nodes.numbers.size, len(mesh.elements),
                len(mesh.nodesets), len(mesh.elementsets))
    return mesh


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def _missing(ids: np.ndarray, known: np.ndarray) -> np.ndarray:
    return np.setdiff1d(ids, known)


def validate_mesh(mesh: RawMesh) -> Tuple[bool, List[str]]:
    """
    Perform basic consistency checks on an assembled mesh.

    Returns:
        (is_valid, error_messages): Tuple of validation result and any errors found
    """
    errors = []
    node_ids = mesh.nodes.numbers

    unique, counts = np.unique(node_ids, return_counts=True)
    if np.any(counts > 1):
        errors.append(f"Duplicate node numbers: {unique[counts > 1][:10].tolist()}")

    for element_type, elements in mesh.elements.items():
        missing = _missing(elements.topology, node_ids)
        if missing.size:
            errors.append(f"{element_type}: references to unknown nodes {missing[:10].tolist()}")

    if mesh.elements:
        element_ids = np.concatenate([e.numbers for e in mesh.elements.values()])
    else:
        element_ids = np.array([], dtype=int)
    unique, counts = np.unique(element_ids, return_counts=True)
    if np.any(counts > 1):
        errors.append(f"Duplicate element numbers: {unique[counts > 1][:10].tolist()}")

    for name, members in mesh.nodesets.items():
        missing = _missing(members, node_ids)
        if missing.size:
            errors.append(f"Nodeset {name}: unknown nodes {missing[:10].tolist()}")
    for name, members in mesh.elementsets.items():
        missing = _missing(members, element_ids)
        if missing.size:
            errors.append(f"Elementset {name}: unknown elements {missing[:10].tolist()}")

    return len(errors) == 0, errors


def mesh_summary(mesh: RawMesh) -> Dict[str, Any]:
    return {
        "num_nodes": int(mesh.nodes.numbers.size),
        "dim": mesh.nodes.dim,
        "elements": {t: e.num_elements for t, e in mesh.elements.items()},
        "vertices_per_element": {t: e.num_vertices for t, e in mesh.elements.items()},
        "nodesets": list(mesh.nodesets.keys()),
        "elementsets": list(mesh.elementsets.keys()),
    }


# ============================================================================
# Main entry point
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    import json

    from .logging_config import setup_logging

    ap = argparse.ArgumentParser(description="Read the mesh of an Abaqus .inp file")
    ap.add_argument("inp", type=str)
    ap.add_argument("--debug", action="store_true", help="trace headers and actions")
    ap.add_argument("--json", type=str, default="", help="write the summary to this file")
    args = ap.parse_args(argv)

    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    try:
        mesh = read_mesh(args.inp, ReaderConfig(debug=args.debug))
    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}")
        return 1

    summary = mesh_summary(mesh)
    print(f"✓ Successfully parsed: {args.inp}")
    for k, v in summary.items():
        print(f"  {k}: {v}")

    is_valid, errors = validate_mesh(mesh)
    if is_valid:
        print("✓ Validation passed")
    else:
        print("✗ Validation errors:")
        for err in errors:
            print(f"  - {err}")

    if args.json:
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
        print(f"Summary JSON saved to: {args.json}")
    return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())
