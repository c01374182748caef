"""
Reading and writing ``.wire`` descriptions.

The format is line based and OBJ-like::

    # comment
    v 0.0 0.0 0.0
    v 1.0 0.0 0.0
    l 1 2

Vertex indices in ``l`` lines are 1-based. Anything else is rejected: a
malformed file is never repaired silently.
"""

import logging
from pathlib import Path
from typing import Iterable

import numpy as np

from wirelattice.core.exceptions import WireFormatError
from wirelattice.core.wire_network import WireNetwork

logger = logging.getLogger(__name__)

WIRE_SUFFIX = ".wire"


def parse_wire(lines: Iterable[str], source: str | None = None) -> WireNetwork:
    """
    Parse ``.wire`` content into a WireNetwork.

    Args:
        lines: Text lines of the description
        source: Name used in error messages (usually the file path)

    Returns:
        WireNetwork with connectivity not yet computed

    Raises:
        WireFormatError: On unknown records, bad arity, non-numeric fields,
            out-of-range or self-referencing edges, or an empty description
    """
    vertices: list[list[float]] = []
    edges: list[list[int]] = []

    for line_number, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        fields = line.split()
        tag, values = fields[0], fields[1:]

        if tag == "v":
            if len(values) != 3:
                raise WireFormatError(
                    "Vertex record needs exactly 3 coordinates",
                    path=source, line_number=line_number,
                    details={"line": raw.rstrip()},
                )
            try:
                vertices.append([float(x) for x in values])
            except ValueError as e:
                raise WireFormatError(
                    f"Invalid vertex coordinate: {e}",
                    path=source, line_number=line_number,
                ) from e
            if not np.all(np.isfinite(vertices[-1])):
                raise WireFormatError(
                    "Vertex coordinates must be finite",
                    path=source, line_number=line_number,
                )
        elif tag == "l":
            if len(values) != 2:
                raise WireFormatError(
                    "Edge record needs exactly 2 vertex indices",
                    path=source, line_number=line_number,
                    details={"line": raw.rstrip()},
                )
            try:
                edges.append([int(x) - 1 for x in values])
            except ValueError as e:
                raise WireFormatError(
                    f"Invalid edge index: {e}",
                    path=source, line_number=line_number,
                ) from e
        else:
            raise WireFormatError(
                f"Unknown record type: {tag!r}",
                path=source, line_number=line_number,
            )

    if not vertices or not edges:
        raise WireFormatError(
            "Wire description has no vertices or no edges",
            path=source,
            details={"num_vertices": len(vertices), "num_edges": len(edges)},
        )

    edge_array = np.array(edges, dtype=int)
    bad = np.nonzero(np.any((edge_array < 0) | (edge_array >= len(vertices)), axis=1))[0]
    if len(bad):
        raise WireFormatError(
            "Edge references a vertex that does not exist",
            path=source,
            details={"edges": bad[:10].tolist(), "num_vertices": len(vertices)},
        )
    loops = np.nonzero(edge_array[:, 0] == edge_array[:, 1])[0]
    if len(loops):
        raise WireFormatError(
            "Edge connects a vertex to itself",
            path=source,
            details={"edges": loops[:10].tolist()},
        )

    return WireNetwork(np.array(vertices, dtype=float), edge_array)


def load_wire(file_path: str | Path) -> WireNetwork:
    """
    Load a WireNetwork from a ``.wire`` file.

    Raises:
        WireFormatError: If the file is missing or malformed
    """
    path = Path(file_path)
    if not path.exists():
        raise WireFormatError(f"File not found: {path}", path=str(path))

    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise WireFormatError(f"Failed to read wire file {path}: {e}", path=str(path)) from e

    network = parse_wire(text.splitlines(), source=str(path))
    logger.info(
        "Loaded %s: %d vertices, %d edges",
        path.name, network.num_vertices, network.num_edges,
    )
    return network


def format_wire(network: WireNetwork) -> str:
    """Serialize a WireNetwork to ``.wire`` text."""
    lines = [f"v {x!r} {y!r} {z!r}" for x, y, z in network.vertices.tolist()]
    lines += [f"l {a + 1} {b + 1}" for a, b in network.edges.tolist()]
    return "\n".join(lines) + "\n"


def save_wire(network: WireNetwork, file_path: str | Path) -> None:
    """Write a WireNetwork to a ``.wire`` file."""
    path = Path(file_path)
    path.write_text(format_wire(network))
    logger.info("Saved %s: %d vertices, %d edges", path.name, network.num_vertices, network.num_edges)
