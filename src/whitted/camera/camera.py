"""Axis-aligned camera with perspective and orthographic projection.

The camera looks down -z from its position. Its image plane sits at
z = position.z - focal_length, centered on the camera's x and y, with
half-height tan(fov / 2) * focal_length and half-width scaled by the
aspect ratio. Pixel (i, j) samples the center of its cell; i runs left to
right and j runs top to bottom, so row 0 of a rendered image is its top.

fov is therefore the full vertical angle seen by a perspective camera.
This differs from the classic screen-space setup that anchors the screen
at an absolute origin and spans 2 * tan(fov / 2) * focal_length per half
axis: the same parameters frame a view half as wide here, always centered
on the camera.

Projections:
    PERSPECTIVE: rays start at the camera position and pass through the
        pixel center on the image plane (normalized direction).
    ORTHOGRAPHIC: rays start at the pixel center translated back to
        z = position.z and all point along (0, 0, -1).

Example:
    >>> import math
    >>> from src.whitted.camera.camera import Camera, CameraKind, setup_camera
    >>> camera = Camera(fov=math.pi / 3, focal_length=1.0, width=320, height=240)
    >>> setup_camera(camera)
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(160, 120)
"""

import math
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import Ray, make_ray, vec3


class CameraKind(IntEnum):
    PERSPECTIVE = 0
    ORTHOGRAPHIC = 1


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Configuration for the render camera.

    Attributes:
        fov: Vertical field of view in radians, in (0, pi).
        focal_length: Distance from the camera to the image plane.
        width: Image width in pixels.
        height: Image height in pixels.
        position: Camera position in world space (x, y, z).
        kind: Projection type.
    """

    fov: float
    focal_length: float
    width: int
    height: int
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    kind: CameraKind = CameraKind.PERSPECTIVE

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if not 0.0 < self.fov < math.pi:
            raise ValueError(f"Field of view must be in (0, pi) radians, got {self.fov}")
        if self.focal_length <= 0.0:
            raise ValueError(f"Focal length must be positive, got {self.focal_length}")
        self.kind = CameraKind(self.kind)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def half_extent(self) -> tuple[float, float]:
        """Half-width and half-height of the image plane."""
        half_height = math.tan(self.fov / 2.0) * self.focal_length
        return half_height * self.aspect_ratio, half_height


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_position = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_kind = ti.field(dtype=ti.i32, shape=())

# Center of pixel (0, 0) on the image plane, and the step between
# neighbouring pixel centers along i and j
_pixel_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_step_x = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_step_y = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_camera(camera: Camera) -> None:
    """Copy a camera configuration into the fields read by get_ray().

    Args:
        camera: Camera configuration.
    """
    half_width, half_height = camera.half_extent
    px, py, pz = (float(c) for c in camera.position)

    step_x = 2.0 * half_width / camera.width
    step_y = -2.0 * half_height / camera.height

    _camera_position[None] = [px, py, pz]
    _camera_kind[None] = int(camera.kind)
    _pixel_origin[None] = [
        px - half_width + 0.5 * step_x,
        py + half_height + 0.5 * step_y,
        pz - camera.focal_length,
    ]
    _pixel_step_x[None] = [step_x, 0.0, 0.0]
    _pixel_step_y[None] = [0.0, step_y, 0.0]


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_ray(i: ti.i32, j: ti.i32) -> Ray:
    """Generate the primary ray through the center of pixel (i, j).

    Args:
        i: Column, 0 = left.
        j: Row, 0 = top.

    Returns:
        The camera ray for the configured projection.
    """
    screen_point = (
        _pixel_origin[None]
        + ti.cast(i, ti.f32) * _pixel_step_x[None]
        + ti.cast(j, ti.f32) * _pixel_step_y[None]
    )
    position = _camera_position[None]

    origin = position
    direction = tm.normalize(screen_point - position)
    if _camera_kind[None] == int(CameraKind.ORTHOGRAPHIC):
        origin = vec3(screen_point.x, screen_point.y, position.z)
        direction = vec3(0.0, 0.0, -1.0)

    return make_ray(origin, direction)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with position, pixel_origin, step_x and step_y.
    """
    info = {}
    for name, field in (
        ("position", _camera_position),
        ("pixel_origin", _pixel_origin),
        ("step_x", _pixel_step_x),
        ("step_y", _pixel_step_y),
    ):
        v = field[None]
        info[name] = (float(v[0]), float(v[1]), float(v[2]))
    return info
