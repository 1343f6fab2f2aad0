"""
inpreader: read finite element meshes from Abaqus-style .inp files.

    >>> from inpreader import read_mesh
    >>> mesh = read_mesh("part.inp")
    >>> mesh.nodes.coordinates.shape      # (dim, n_nodes)
    >>> mesh.elements["C3D8"].topology    # (n_vertices, n_elements)
"""
import logging

from .config import ReaderConfig
from .errors import (DimensionMismatchError, InpParseError, MalformedContentError,
                     UnsupportedStructureError)
from .io import InpFile, KeywordBlock, parse_blocks, read_blocks
from .mesh import (RawElements, RawMesh, RawNodes, mesh_summary, parse_mesh, read_mesh,
                   validate_mesh)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ReaderConfig",
    "InpParseError",
    "MalformedContentError",
    "DimensionMismatchError",
    "UnsupportedStructureError",
    "InpFile",
    "KeywordBlock",
    "parse_blocks",
    "read_blocks",
    "RawNodes",
    "RawElements",
    "RawMesh",
    "parse_mesh",
    "read_mesh",
    "validate_mesh",
    "mesh_summary",
]
