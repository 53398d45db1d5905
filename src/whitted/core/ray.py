"""Ray data structure and vector utilities for Whitted-style ray tracing.

This module provides the Ray dataclass and the small set of vector helpers
used by the intersection routines and the shading loop. Everything except
HitPoint is designed to run inside Taichi kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4

# Stand-in for 1/0 in slab tests. Kernels are compiled with fast-math,
# which does not guarantee IEEE infinities.
INV_DIRECTION_LIMIT = 1e30


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Callers usually
            normalize it, but it is never renormalized here because hit
            distances are measured in units of this vector.
    """

    origin: vec3
    direction: vec3


@dataclass(frozen=True)
class HitPoint:
    """Host-side copy of a nearest-hit query result.

    Attributes:
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: Unit surface normal, facing against the incoming ray.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a Taichi kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes incident - 2 * dot(incident, normal) * normal. The normal
    should be unit length for correct results.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirror-reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def safe_inverse(direction: vec3) -> vec3:
    """Component-wise reciprocal of a ray direction for slab tests.

    A component that is exactly zero (either sign) maps to
    +INV_DIRECTION_LIMIT. The slab test takes the min and max of the two
    plane parameters, so the sign of the limit does not change the result.

    Args:
        direction: The ray direction.

    Returns:
        The reciprocal direction, finite in every component.
    """
    result = vec3(0.0, 0.0, 0.0)
    for c in ti.static(range(3)):
        if direction[c] == 0.0:
            result[c] = INV_DIRECTION_LIMIT
        else:
            result[c] = 1.0 / direction[c]
    return result


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


def to_hit_point(
    t: float,
    point: "ti.Vector",
    normal: "ti.Vector",
) -> HitPoint:
    """Convert values read back from Taichi fields into a HitPoint."""
    return HitPoint(
        t=float(t),
        point=(float(point[0]), float(point[1]), float(point[2])),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
    )
