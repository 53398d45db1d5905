"""Loader for meshes in the Object File Format (OFF).

An OFF file starts with the keyword OFF, followed by the vertex, face and
edge counts (on the header line or the next one), the vertex coordinates
and one line per face: a vertex count followed by that many vertex indices.
Faces with more than three vertices are split into a triangle fan around
their first vertex. Blank lines and # comments are ignored; extra values
after a face (such as colors) are ignored as well.

Example:
    >>> from src.whitted.scene.off_loader import load_off
    >>> triangles = load_off("bunny.off")  # (n, 3, 3) float32
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt

logger = logging.getLogger(__name__)


def _tokens(text: str):
    """Yield the whitespace-separated tokens of each non-comment line."""
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if line:
            yield line_number, line.split()


def parse_off(text: str) -> npt.NDArray[np.float32]:
    """Parse OFF text into an (n, 3, 3) triangle array.

    Raises:
        ValueError: If the text is not valid OFF.
    """
    lines = _tokens(text)

    try:
        line_number, header = next(lines)
    except StopIteration:
        raise ValueError("Empty OFF file") from None
    if not header[0].startswith("OFF"):
        raise ValueError(f"Line {line_number}: expected OFF header, got {header[0]!r}")

    counts = header[1:]
    if not counts:
        try:
            line_number, counts = next(lines)
        except StopIteration:
            raise ValueError("OFF file ends before the element counts") from None
    try:
        num_vertices, num_faces = int(counts[0]), int(counts[1])
    except (IndexError, ValueError):
        raise ValueError(f"Line {line_number}: invalid element counts {counts}") from None

    vertices = np.empty((num_vertices, 3), dtype=np.float32)
    for v in range(num_vertices):
        try:
            line_number, values = next(lines)
            vertices[v] = [float(x) for x in values[:3]]
        except StopIteration:
            raise ValueError(f"OFF file ends after {v} of {num_vertices} vertices") from None
        except ValueError:
            raise ValueError(f"Line {line_number}: invalid vertex {values}") from None

    triangles: list[npt.NDArray[np.float32]] = []
    for f in range(num_faces):
        try:
            line_number, values = next(lines)
        except StopIteration:
            raise ValueError(f"OFF file ends after {f} of {num_faces} faces") from None
        try:
            size = int(values[0])
            indices = [int(x) for x in values[1 : 1 + size]]
        except ValueError:
            raise ValueError(f"Line {line_number}: invalid face {values}") from None
        if size < 3 or len(indices) != size:
            raise ValueError(f"Line {line_number}: face needs at least 3 vertex indices")
        if min(indices) < 0 or max(indices) >= num_vertices:
            raise ValueError(f"Line {line_number}: vertex index out of range")

        # Triangle fan around the first vertex
        for k in range(1, size - 1):
            triangles.append(vertices[[indices[0], indices[k], indices[k + 1]]])

    if not triangles:
        return np.empty((0, 3, 3), dtype=np.float32)
    return np.stack(triangles).astype(np.float32)


def load_off(path: str | Path) -> npt.NDArray[np.float32]:
    """Load an OFF file into an (n, 3, 3) triangle array.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid OFF.
    """
    path = Path(path)
    triangles = parse_off(path.read_text())
    logger.info("Loaded %d triangles from %s", len(triangles), path)
    return triangles
