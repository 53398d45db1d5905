"""Geometry module for shape primitives and spatial acceleration.

This module provides geometric primitives and intersection algorithms:

Components:
    sphere: Sphere primitive, the shared HitRecord and normal orientation
    triangle: Triangle array helpers and Cramer's-rule triangle intersection
    parallelogram: Three-corner parallelogram primitive
    plane: Infinite plane primitive
    aabb: Axis-Aligned Bounding Box and the slab test
    bvh: Host-side Bounding Volume Hierarchy builder (flat node arena)

All intersection routines are implemented as Taichi functions (@ti.func)
and share one convention:
    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
where only hits with t_min < t < t_max are reported, and record.normal
always faces against the ray.
"""

from .aabb import AABB, hit_aabb
from .bvh import BVH, NO_INDEX, SplitPolicy
from .parallelogram import (
    PARALLEL_EPSILON,
    Parallelogram,
    hit_parallelogram,
    parallelogram_from_points,
    parallelogram_normal,
)
from .plane import Plane, hit_plane
from .sphere import HitRecord, Sphere, facing_record, hit_sphere, miss_record
from .triangle import (
    SINGULAR_EPSILON,
    Triangle,
    as_triangle_array,
    hit_triangle,
    triangle_bounds,
    triangle_centroids,
    triangle_normal,
    triangle_normals,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "miss_record",
    "facing_record",
    "Triangle",
    "hit_triangle",
    "triangle_normal",
    "as_triangle_array",
    "triangle_normals",
    "triangle_centroids",
    "triangle_bounds",
    "SINGULAR_EPSILON",
    "Parallelogram",
    "hit_parallelogram",
    "parallelogram_normal",
    "parallelogram_from_points",
    "PARALLEL_EPSILON",
    "Plane",
    "hit_plane",
    "AABB",
    "hit_aabb",
    "BVH",
    "SplitPolicy",
    "NO_INDEX",
]
