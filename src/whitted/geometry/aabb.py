"""Axis-aligned bounding boxes.

The host-side AABB class is used while building a BVH: boxes start empty
(+inf minimum, -inf maximum) and grow by a min/max fold over points. Once a
BVH is built its boxes are copied into Taichi fields and only read there,
through the slab test hit_aabb().

Example:
    >>> box = AABB.empty()
    >>> box.extend((1.0, 2.0, 3.0))
    >>> box.extend((-1.0, 0.0, 5.0))
    >>> box.contains((0.0, 1.0, 4.0))
    True
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


class AABB:
    """Axis-aligned bounding box with float32 corners.

    Attributes:
        minimum: Component-wise minimum corner, shape (3,).
        maximum: Component-wise maximum corner, shape (3,).
    """

    __slots__ = ("minimum", "maximum")

    def __init__(self, minimum: npt.ArrayLike, maximum: npt.ArrayLike) -> None:
        self.minimum = np.array(minimum, dtype=np.float32).reshape(3)
        self.maximum = np.array(maximum, dtype=np.float32).reshape(3)

    @classmethod
    def empty(cls) -> "AABB":
        """A box that contains nothing; extending it by a point yields that point."""
        return cls(np.full(3, np.inf), np.full(3, -np.inf))

    @classmethod
    def from_points(cls, points: npt.ArrayLike) -> "AABB":
        """Smallest box containing every point of an (m, 3) array."""
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 3)
        box = cls.empty()
        if len(pts):
            box.minimum = pts.min(axis=0)
            box.maximum = pts.max(axis=0)
        return box

    def extend(self, point: npt.ArrayLike) -> None:
        """Grow the box to include a point."""
        p = np.asarray(point, dtype=np.float32).reshape(3)
        self.minimum = np.minimum(self.minimum, p)
        self.maximum = np.maximum(self.maximum, p)

    def extend_triangle(self, triangle: npt.ArrayLike) -> None:
        """Grow the box to include all three vertices of a (3, 3) triangle."""
        for vertex in np.asarray(triangle, dtype=np.float32).reshape(3, 3):
            self.extend(vertex)

    def union(self, other: "AABB") -> "AABB":
        """Smallest box containing both boxes."""
        return AABB(
            np.minimum(self.minimum, other.minimum),
            np.maximum(self.maximum, other.maximum),
        )

    def contains(self, point: npt.ArrayLike) -> bool:
        """Whether a point lies inside the box (boundary included)."""
        p = np.asarray(point, dtype=np.float32).reshape(3)
        return bool(np.all(p >= self.minimum) and np.all(p <= self.maximum))

    def is_empty(self) -> bool:
        return bool(np.any(self.minimum > self.maximum))

    @property
    def diagonal(self) -> npt.NDArray[np.float32]:
        return self.maximum - self.minimum

    def longest_axis(self) -> int:
        """Index (0, 1 or 2) of the axis with the largest extent."""
        return int(np.argmax(self.diagonal))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AABB):
            return NotImplemented
        return bool(
            np.array_equal(self.minimum, other.minimum)
            and np.array_equal(self.maximum, other.maximum)
        )

    def __repr__(self) -> str:
        return f"AABB(minimum={self.minimum.tolist()}, maximum={self.maximum.tolist()})"


@ti.func
def hit_aabb(
    ray_origin: vec3,
    inv_direction: vec3,
    box_min: vec3,
    box_max: vec3,
) -> ti.i32:
    """Slab test: does the ray's line segment t >= 0 pass through the box?

    For each axis the ray enters and leaves the slab at
    (box_min - origin) * inv_direction and (box_max - origin) * inv_direction.
    The box is hit when the latest entry is no later than the earliest exit
    and the exit is not behind the origin.

    Args:
        ray_origin: The starting point of the ray.
        inv_direction: Reciprocal of the ray direction, from safe_inverse().
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.

    Returns:
        1 if the ray intersects the box, 0 otherwise.
    """
    t1 = (box_min - ray_origin) * inv_direction
    t2 = (box_max - ray_origin) * inv_direction

    tmin = ti.max(ti.max(ti.min(t1.x, t2.x), ti.min(t1.y, t2.y)), ti.min(t1.z, t2.z))
    tmax = ti.min(ti.min(ti.max(t1.x, t2.x), ti.max(t1.y, t2.y)), ti.max(t1.z, t2.z))

    result = 1
    if tmax < 0.0 or tmin > tmax:
        result = 0
    return result
