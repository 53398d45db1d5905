"""Infinite plane primitive.

A plane is a point on it plus a normal. Rays parallel to the plane miss it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.plane import Plane
    >>> ground = Plane(point=ti.math.vec3(0, -1, 0), normal=ti.math.vec3(0, 1, 0))
"""

import taichi as ti
import taichi.math as tm

from .parallelogram import PARALLEL_EPSILON
from .sphere import HitRecord, facing_record, miss_record

vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane (vec3).
        normal: Plane normal (vec3, normalized when stored in a scene).
    """

    point: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-plane intersection.

    t = dot(normal, point - origin) / dot(normal, direction)

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test.
        t_min: Self-intersection threshold; hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.

    Returns:
        A HitRecord with a normal facing against the ray; check its hit field.
    """
    denom = tm.dot(plane.normal, ray_direction)
    result = miss_record()

    if ti.abs(denom) > PARALLEL_EPSILON:
        t = tm.dot(plane.normal, plane.point - ray_origin) / denom
        if t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            result = facing_record(t, point, plane.normal, ray_direction)

    return result
