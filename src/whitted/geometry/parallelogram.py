"""Parallelogram primitive with ray-parallelogram intersection.

A parallelogram is given by three of its corners: point1 and the two
corners adjacent to it, point2 and point3. The fourth corner is
point2 + point3 - point1. Internally it is stored as a corner Q = point1 and
two edge vectors u = point2 - point1 and v = point3 - point1.

Intersection is the parametric plane test:
1. Find where the ray meets the plane containing the parallelogram
2. Express that point as Q + alpha * u + beta * v
3. Accept if 0 <= alpha <= 1 and 0 <= beta <= 1

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.parallelogram import Parallelogram
    >>> # Floor piece at y=0, spanning x=[0,1] and z=[0,1]
    >>> floor = Parallelogram(
    ...     corner=ti.math.vec3(0, 0, 0),
    ...     edge_u=ti.math.vec3(1, 0, 0),
    ...     edge_v=ti.math.vec3(0, 0, 1),
    ... )
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, facing_record, miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rays whose direction is this close to the plane are treated as parallel.
PARALLEL_EPSILON = 1e-8


@ti.dataclass
class Parallelogram:
    """A parallelogram defined by a corner point and two edge vectors.

    Attributes:
        corner: The corner point (vec3).
        edge_u: Edge vector from the corner to one adjacent corner (vec3).
        edge_v: Edge vector from the corner to the other adjacent corner (vec3).
    """

    corner: vec3
    edge_u: vec3
    edge_v: vec3


def parallelogram_from_points(
    point1: tuple[float, float, float],
    point2: tuple[float, float, float],
    point3: tuple[float, float, float],
) -> tuple[tuple[float, float, float], tuple[float, float, float], tuple[float, float, float]]:
    """Convert the three-corner form into (corner, edge_u, edge_v) tuples.

    Args:
        point1: The shared corner.
        point2: The corner adjacent to point1 along the first edge.
        point3: The corner adjacent to point1 along the second edge.

    Returns:
        Tuple of (corner, edge_u, edge_v).
    """
    corner = (float(point1[0]), float(point1[1]), float(point1[2]))
    edge_u = tuple(float(point2[k]) - corner[k] for k in range(3))
    edge_v = tuple(float(point3[k]) - corner[k] for k in range(3))
    return corner, edge_u, edge_v


@ti.func
def parallelogram_normal(shape: Parallelogram) -> vec3:
    """Unit normal normalize(cross(edge_u, edge_v))."""
    return tm.normalize(tm.cross(shape.edge_u, shape.edge_v))


@ti.func
def hit_parallelogram(
    ray_origin: vec3,
    ray_direction: vec3,
    shape: Parallelogram,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-parallelogram intersection.

    With n = edge_u x edge_v, the hit parameter is
        t = dot(normal, corner - origin) / dot(normal, direction)
    and the local coordinates of the hit point P are
        alpha = dot(w_u, P - corner),  w_u = (edge_v x n) / (n . n)
        beta  = dot(w_v, P - corner),  w_v = (n x edge_u) / (n . n)

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        shape: The parallelogram to test.
        t_min: Self-intersection threshold; hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.

    Returns:
        A HitRecord with a normal facing against the ray; check its hit field.
    """
    n = tm.cross(shape.edge_u, shape.edge_v)
    n_dot_n = tm.dot(n, n)

    result = miss_record()

    # Zero-area parallelograms (parallel edges) are never hit
    if n_dot_n > 1e-20:
        normal = n / ti.sqrt(n_dot_n)
        denom = tm.dot(normal, ray_direction)

        if ti.abs(denom) > PARALLEL_EPSILON:
            t = tm.dot(normal, shape.corner - ray_origin) / denom

            if t > t_min and t < t_max:
                point = ray_origin + t * ray_direction
                offset = point - shape.corner
                alpha = tm.dot(tm.cross(shape.edge_v, n) / n_dot_n, offset)
                beta = tm.dot(tm.cross(n, shape.edge_u) / n_dot_n, offset)

                if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                    result = facing_record(t, point, normal, ray_direction)

    return result
