"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers, host-side HitPoint
    settings: Render settings (self-intersection epsilon, reflection offset,
        background color) and the Taichi fields that hold them
    integrator: Whitted shading loop, image render kernel and render target

The integrator evaluates ambient light, shadowed Blinn-Phong direct light
from point lights and mirror reflection up to a bounce budget.
"""

from .ray import (
    INV_DIRECTION_LIMIT,
    HitPoint,
    Ray,
    length_squared,
    make_ray,
    ray_at,
    reflect,
    safe_inverse,
    vec3,
    vec4,
)
from .settings import (
    DEFAULT_BACKGROUND,
    HIT_EPSILON,
    REFLECTION_OFFSET,
    RenderSettings,
    apply_settings,
)

# Note: integrator is NOT imported here to avoid circular imports.
# Import directly from src.whitted.core.integrator when needed.

__all__ = [
    "Ray",
    "HitPoint",
    "ray_at",
    "make_ray",
    "reflect",
    "safe_inverse",
    "length_squared",
    "vec3",
    "vec4",
    "INV_DIRECTION_LIMIT",
    "RenderSettings",
    "apply_settings",
    "HIT_EPSILON",
    "REFLECTION_OFFSET",
    "DEFAULT_BACKGROUND",
]
