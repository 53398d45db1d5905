"""Whitted-style shading integrator and image render loop.

The color along a ray is

    ambient + direct + reflection

where ambient is the material's ambient color times the scene ambient
light, direct is the Blinn-Phong contribution of every point light that
is not blocked by a shadow ray, and reflection is the color seen along the
mirror-reflected ray, weighted by the material's reflection color. The
reflected ray is shaded the same way, up to a bounce budget.

Taichi functions cannot recurse, so shoot_ray() unrolls the reflection
chain into a loop that carries the product of reflection weights. Each hit
spawns at most one secondary ray, so the work is linear in the budget.

A hit object with its own material (material_id >= 0) is shaded with it;
otherwise the material passed to the render call is used.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.integrator import render_image
    >>> from src.whitted.camera.camera import Camera
    >>> from src.whitted.scene.demo import create_demo_scene
    >>>
    >>> scene, camera = create_demo_scene()
    >>> image = render_image(camera, bounce_budget=3)  # (height, width, 4)
"""

import logging
import time

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.camera.camera import Camera, get_ray, setup_camera
from src.whitted.core.ray import length_squared, make_ray, ray_at, reflect
from src.whitted.core.settings import (
    RenderSettings,
    apply_settings,
    get_background,
    get_hit_epsilon,
    get_reflection_offset,
)
from src.whitted.materials.phong import (
    Material,
    PhongMaterial,
    eval_blinn_phong,
    get_material,
)
from src.whitted.scene.intersection import intersect_scene
from src.whitted.scene.lights import light_colors, light_positions, num_lights, scene_ambient

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3
vec4 = tm.vec4

# =============================================================================
# Rendering Constants
# =============================================================================

# Number of mirror bounces after the primary hit
DEFAULT_BOUNCE_BUDGET = 5

# Upper bound on primary and reflection ray hits
T_MAX = 1e10

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# RGBA buffer indexed [i, j], i = column from the left, j = row from the top
_color_buffer = ti.Vector.field(4, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Result of the last trace_ray() call
_trace_result = ti.Vector.field(4, dtype=ti.f32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffer.

    Raises:
        ValueError: If dimensions exceed maximum supported size.
    """
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    _image_width[None] = width
    _image_height[None] = height
    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffer to zero."""
    _color_buffer.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Get the rendered image as a (height, width, 4) float32 array, row 0 on top."""
    width, height = get_image_dimensions()
    image = _color_buffer.to_numpy()[:width, :height, :]
    return np.ascontiguousarray(np.transpose(image, (1, 0, 2)), dtype=np.float32)


# =============================================================================
# Whitted Shading
# =============================================================================


@ti.func
def _direct_lighting(point: vec3, normal: vec3, ray_direction: vec3, material: PhongMaterial) -> vec3:
    """Sum of Blinn-Phong contributions of all lights visible from a point.

    A shadow ray toward each light is blocked by any hit closer than the
    light itself.
    """
    total = vec3(0.0, 0.0, 0.0)
    t_min = get_hit_epsilon()

    for light in range(num_lights[None]):
        to_light = light_positions[light] - point
        distance_squared = length_squared(to_light)
        distance = ti.sqrt(distance_squared)
        if distance > 0.0:
            direction = to_light / distance
            shadow = intersect_scene(point, direction, t_min, distance)
            if shadow.hit == 0:
                total += eval_blinn_phong(
                    material,
                    normal,
                    direction,
                    ray_direction,
                    light_colors[light],
                    distance_squared,
                )

    return total


@ti.func
def shoot_ray(
    ray_origin: vec3,
    ray_direction: vec3,
    material: PhongMaterial,
    bounce_budget: ti.i32,
) -> vec4:
    """Shade a ray with ambient, shadowed direct light and mirror reflection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        material: Material for objects that have none of their own.
        bounce_budget: Number of reflection rays allowed after the first hit.
            0 means no reflection ray is cast.

    Returns:
        RGBA color. A primary miss returns the background color as is; a
        primary hit has alpha 1.
    """
    background = get_background()
    t_min = get_hit_epsilon()
    offset = get_reflection_offset()

    color = vec3(0.0, 0.0, 0.0)
    alpha = 0.0
    weight = vec3(1.0, 1.0, 1.0)
    origin = ray_origin
    direction = ray_direction

    # Active flag for reflection chain continuation
    active = 1

    for bounce in range(bounce_budget + 1):
        if active == 1:
            rec = intersect_scene(origin, direction, t_min, T_MAX)

            if rec.hit == 0:
                if bounce == 0:
                    alpha = background.w
                color += weight * vec3(background.x, background.y, background.z)
                active = 0
            else:
                if bounce == 0:
                    alpha = 1.0

                surface = material
                if rec.material_id >= 0:
                    surface = get_material(rec.material_id)

                local = surface.ambient * scene_ambient()
                local += _direct_lighting(rec.point, rec.normal, direction, surface)
                color += weight * local

                if bounce < bounce_budget:
                    reflected = reflect(direction, rec.normal)
                    origin = ray_at(make_ray(rec.point, reflected), offset)
                    direction = reflected
                    weight *= surface.reflection

    return vec4(color.x, color.y, color.z, alpha)


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _trace_single_ray(
    ray_origin: vec3,
    ray_direction: vec3,
    ambient: vec3,
    diffuse: vec3,
    specular: vec3,
    shininess: ti.f32,
    reflection: vec3,
    bounce_budget: ti.i32,
):
    # Single-iteration outer loop keeps the scene scans serial
    for _ in range(1):
        material = PhongMaterial(
            ambient=ambient,
            diffuse=diffuse,
            specular=specular,
            shininess=shininess,
            reflection=reflection,
        )
        _trace_result[None] = shoot_ray(ray_origin, ray_direction, material, bounce_budget)


@ti.kernel
def _render_pixels(
    width: ti.i32,
    height: ti.i32,
    ambient: vec3,
    diffuse: vec3,
    specular: vec3,
    shininess: ti.f32,
    reflection: vec3,
    bounce_budget: ti.i32,
):
    for i, j in ti.ndrange(width, height):
        material = PhongMaterial(
            ambient=ambient,
            diffuse=diffuse,
            specular=specular,
            shininess=shininess,
            reflection=reflection,
        )
        ray = get_ray(i, j)
        _color_buffer[i, j] = shoot_ray(ray.origin, ray.direction, material, bounce_budget)


# =============================================================================
# Public Rendering API
# =============================================================================


def _material_args(material: Material | None):
    if material is None:
        material = Material()
    return (
        vec3(*material.ambient),
        vec3(*material.diffuse),
        vec3(*material.specular),
        float(material.shininess),
        vec3(*material.reflection),
    )


def _check_bounce_budget(bounce_budget: int) -> None:
    if bounce_budget < 0:
        raise ValueError(f"bounce_budget must be non-negative, got {bounce_budget}")


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    material: Material | None = None,
    bounce_budget: int = DEFAULT_BOUNCE_BUDGET,
    settings: RenderSettings | None = None,
) -> tuple[float, float, float, float]:
    """Shade a single ray against the current scene.

    Args:
        origin: Ray origin.
        direction: Ray direction.
        material: Material for objects without one. None uses Material().
        bounce_budget: Maximum number of reflection rays.
        settings: Render settings. None uses RenderSettings().

    Returns:
        Tuple of (R, G, B, A).

    Raises:
        ValueError: If bounce_budget is negative.
    """
    _check_bounce_budget(bounce_budget)
    apply_settings(settings)
    _trace_single_ray(vec3(*origin), vec3(*direction), *_material_args(material), bounce_budget)
    c = _trace_result[None]
    return (float(c[0]), float(c[1]), float(c[2]), float(c[3]))


def render_image(
    camera: Camera,
    material: Material | None = None,
    bounce_budget: int = DEFAULT_BOUNCE_BUDGET,
    settings: RenderSettings | None = None,
) -> npt.NDArray[np.float32]:
    """Render the current scene through a camera.

    Args:
        camera: Camera to shoot primary rays from.
        material: Material for objects without one. None uses Material().
        bounce_budget: Maximum number of reflection rays per pixel.
        settings: Render settings. None uses RenderSettings().

    Returns:
        Array of shape (camera.height, camera.width, 4), row 0 at the top.

    Raises:
        ValueError: If the image is too large or bounce_budget is negative.
    """
    _check_bounce_budget(bounce_budget)
    setup_render_target(camera.width, camera.height)
    setup_camera(camera)
    apply_settings(settings)

    start = time.perf_counter()
    _render_pixels(camera.width, camera.height, *_material_args(material), bounce_budget)
    ti.sync()
    logger.info(
        "Rendered %dx%d image (bounce budget %d) in %.3fs",
        camera.width,
        camera.height,
        bounce_budget,
        time.perf_counter() - start,
    )
    return get_image_numpy()
