"""Sphere primitive and the HitRecord shared by all primitive intersectors.

Ray-sphere intersection uses the robust quadratic formula from Ray Tracing
Gems to avoid catastrophic cancellation when b^2 is close to 4ac.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 0), radius=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise.
        t: Ray parameter of the intersection. Only valid if hit == 1.
        point: World-space intersection point. Only valid if hit == 1.
        normal: Unit surface normal oriented against the ray direction.
            Only valid if hit == 1.
        front_face: 1 if the ray hit the side the geometric normal points
            to, 0 if it hit the back side. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def miss_record() -> HitRecord:
    """Create a HitRecord that reports no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def facing_record(
    t: ti.f32,
    point: vec3,
    geometric_normal: vec3,
    ray_direction: vec3,
) -> HitRecord:
    """Build a hit record whose normal faces against the incoming ray.

    Args:
        t: Ray parameter of the hit.
        point: Hit point.
        geometric_normal: Unit normal as defined by the primitive.
        ray_direction: Direction of the incoming ray.

    Returns:
        A HitRecord with hit == 1 and a ray-facing normal.
    """
    front = 1
    normal = geometric_normal
    if tm.dot(geometric_normal, ray_direction) > 0.0:
        front = 0
        normal = -geometric_normal
    return HitRecord(hit=1, t=t, point=point, normal=normal, front_face=front)


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 without catastrophic cancellation.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent ray through the center plane: fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |origin + t * direction - center|^2 = radius^2 with the half-b
    formulation (a = d.d, h = d.oc, c = oc.oc - r^2) and returns the nearest
    root strictly inside (t_min, t_max). When the ray starts inside the
    sphere the far root is returned and the normal is flipped inward so it
    still faces the ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Self-intersection threshold; hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored (closest hit so far, or the
            distance to a light for shadow rays).

    Returns:
        A HitRecord; check its hit field.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    result = miss_record()

    if discriminant >= 0.0 and a > 0.0:
        t0, t1 = _solve_quadratic_robust(h, a, c, ti.sqrt(discriminant))

        t = t0
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            point = ray_origin + t * ray_direction
            outward_normal = (point - sphere.center) / sphere.radius
            result = facing_record(t, point, outward_normal, ray_direction)

    return result
