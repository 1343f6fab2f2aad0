import sys
import os
import io

# Make local `inpreader` package importable when running this example from the repo root
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from inpreader import parse_blocks, parse_mesh, validate_mesh


# 2x1 quad strip with a generated node set
INP = """*Heading
** Two quads
*Node
1, 0.0, 0.0
2, 1.0, 0.0
3, 2.0, 0.0
4, 0.0, 1.0
5, 1.0, 1.0
6, 2.0, 1.0
*Element, type=CPS4, elset=Strip
1, 1, 2, 5, 4
2, 2, 3, 6, 5
*Nset, nset=Bottom, generate
1, 3, 1
*Material, name=Steel
*Elastic
210000.0, 0.3
"""


def main():
    # Generic view: every keyword block with typed parameters and rows
    for block in parse_blocks(io.StringIO(INP)):
        print(f"{block.keyword:<12} {block.parameters} rows={len(block.data)}")

    # Mesh view: numpy arrays, one column per node / element
    mesh = parse_mesh(io.StringIO(INP), "example.inp")
    print("NodeID, X, Y")
    for n, (x, y) in zip(mesh.nodes.numbers, mesh.nodes.coordinates.T):
        print(f"{n}, {x:.6f}, {y:.6f}")

    for element_type, elements in mesh.elements.items():
        print(f"{element_type}: {elements.num_elements} elements x {elements.num_vertices} vertices")
        print(elements.topology)

    print("Node sets:", {k: v.tolist() for k, v in mesh.nodesets.items()})
    print("Element sets:", {k: v.tolist() for k, v in mesh.elementsets.items()})

    is_valid, errors = validate_mesh(mesh)
    print("✓ Validation passed" if is_valid else f"✗ Validation errors: {errors}")


if __name__ == '__main__':
    main()
