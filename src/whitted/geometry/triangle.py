"""Triangle primitive: host-side array helpers and ray-triangle intersection.

Triangles travel through the host side as a single NumPy array of shape
(n, 3, 3): triangle index, vertex index, xyz. Nothing stores a per-triangle
normal; it is derived from the edges whenever it is needed.

Ray-triangle intersection solves the 3x3 linear system

    u * (P1 - P2) + v * (P1 - P3) + t * D = P1 - O

for (u, v, t) with Cramer's rule. The hit point is P1 + u * (P2 - P1) +
v * (P3 - P1), so (u, v) are the barycentric weights of P2 and P3. A hit is
accepted only when u >= 0, v >= 0 and u + v < 1. The edge u + v == 1
(between P2 and P3) belongs to neither of two triangles sharing it.

Example:
    >>> import numpy as np
    >>> tris = as_triangle_array([[(0, 0, 0), (1, 0, 0), (0, 1, 0)]])
    >>> triangle_normals(tris)
    array([[0., 0., 1.]], dtype=float32)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, facing_record, miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Systems with |det| below this are treated as singular (ray parallel to the
# triangle plane, or a zero-area triangle).
SINGULAR_EPSILON = 1e-12


# =============================================================================
# Host-side helpers
# =============================================================================


def as_triangle_array(triangles: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Validate and convert triangle data to a contiguous (n, 3, 3) float32 array.

    Args:
        triangles: Anything NumPy can turn into an (n, 3, 3) array.

    Returns:
        The triangles as a C-contiguous float32 array.

    Raises:
        ValueError: If the data does not have shape (n, 3, 3).
    """
    array = np.ascontiguousarray(triangles, dtype=np.float32)
    if array.ndim != 3 or array.shape[1:] != (3, 3):
        raise ValueError(f"Expected triangles of shape (n, 3, 3), got {array.shape}")
    return array


def triangle_normals(triangles: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Unit plane normals, normalize(cross(p2 - p1, p3 - p1)).

    Degenerate (zero-area) triangles get a zero normal.
    """
    edge1 = triangles[:, 1] - triangles[:, 0]
    edge2 = triangles[:, 2] - triangles[:, 0]
    normals = np.cross(edge1, edge2)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    safe = np.where(lengths > 0.0, lengths, 1.0)
    return (normals / safe).astype(np.float32)


def triangle_centroids(triangles: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Centroid (mean of the three vertices) of every triangle."""
    return triangles.mean(axis=1).astype(np.float32)


def triangle_bounds(
    triangles: npt.NDArray[np.float32],
) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
    """Per-triangle axis-aligned bounds.

    Returns:
        Tuple of (minimums, maximums), each of shape (n, 3).
    """
    return triangles.min(axis=1), triangles.max(axis=1)


# =============================================================================
# Taichi-side intersection
# =============================================================================


@ti.dataclass
class Triangle:
    """A triangle given by its three vertices.

    Attributes:
        p1: First vertex (vec3).
        p2: Second vertex (vec3).
        p3: Third vertex (vec3).
    """

    p1: vec3
    p2: vec3
    p3: vec3


@ti.func
def triangle_normal(triangle: Triangle) -> vec3:
    """Unit plane normal normalize(cross(p2 - p1, p3 - p1))."""
    return tm.normalize(tm.cross(triangle.p2 - triangle.p1, triangle.p3 - triangle.p1))


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    triangle: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-triangle intersection.

    Columns of the system matrix are a = P1 - P2, b = P1 - P3 and the ray
    direction d; the right-hand side is r = P1 - O. With
    det = a . (b x d):

        u = r . (b x d) / det
        v = a . (r x d) / det
        t = a . (b x r) / det

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        triangle: The triangle to test.
        t_min: Self-intersection threshold; hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.

    Returns:
        A HitRecord with a normal facing against the ray; check its hit field.
    """
    a = triangle.p1 - triangle.p2
    b = triangle.p1 - triangle.p3
    r = triangle.p1 - ray_origin

    b_cross_d = tm.cross(b, ray_direction)
    det = tm.dot(a, b_cross_d)

    result = miss_record()

    if ti.abs(det) > SINGULAR_EPSILON:
        inv_det = 1.0 / det
        u = tm.dot(r, b_cross_d) * inv_det
        v = tm.dot(a, tm.cross(r, ray_direction)) * inv_det
        t = tm.dot(a, tm.cross(b, r)) * inv_det

        if u >= 0.0 and v >= 0.0 and u + v < 1.0 and t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            result = facing_record(t, point, triangle_normal(triangle), ray_direction)

    return result
