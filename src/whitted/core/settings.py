"""Render settings shared by the intersection routines and the shading loop.

The self-intersection threshold, the reflection ray offset and the
background color are configurable per render. Python code describes them
with a RenderSettings dataclass; apply_settings() copies the values into
Taichi fields that kernels read.

Example:
    >>> from src.whitted.core.settings import RenderSettings, apply_settings
    >>> apply_settings(RenderSettings(hit_epsilon=1e-4))
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

vec4 = tm.vec4

# Reference self-intersection threshold: hits with t <= HIT_EPSILON are ignored.
HIT_EPSILON = 1e-6

# Distance a reflection ray origin is pushed along the reflected direction.
REFLECTION_OFFSET = 1e-4

# Transparent black: what a ray that hits nothing returns.
DEFAULT_BACKGROUND = (0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class RenderSettings:
    """Per-render numeric settings.

    Attributes:
        hit_epsilon: Minimum accepted hit distance for every primitive type.
            Used by primary, shadow and reflection rays alike.
        reflection_offset: Offset of reflection ray origins along the
            reflected direction.
        background: RGBA color returned for rays that hit nothing.
    """

    hit_epsilon: float = HIT_EPSILON
    reflection_offset: float = REFLECTION_OFFSET
    background: tuple[float, float, float, float] = DEFAULT_BACKGROUND

    def __post_init__(self) -> None:
        if self.hit_epsilon < 0.0:
            raise ValueError(f"hit_epsilon must be non-negative, got {self.hit_epsilon}")
        if self.reflection_offset < 0.0:
            raise ValueError(
                f"reflection_offset must be non-negative, got {self.reflection_offset}"
            )
        if len(self.background) != 4:
            raise ValueError(f"background must be RGBA, got {self.background}")


_hit_epsilon = ti.field(dtype=ti.f32, shape=())
_reflection_offset = ti.field(dtype=ti.f32, shape=())
_background = ti.Vector.field(4, dtype=ti.f32, shape=())


def apply_settings(settings: RenderSettings | None = None) -> RenderSettings:
    """Copy render settings into the Taichi fields read by kernels.

    Args:
        settings: Settings to apply. None applies the defaults.

    Returns:
        The settings that were applied.
    """
    if settings is None:
        settings = RenderSettings()
    _hit_epsilon[None] = settings.hit_epsilon
    _reflection_offset[None] = settings.reflection_offset
    _background[None] = list(settings.background)
    return settings


@ti.func
def get_hit_epsilon() -> ti.f32:
    """Current self-intersection threshold."""
    return _hit_epsilon[None]


@ti.func
def get_reflection_offset() -> ti.f32:
    """Current reflection ray origin offset."""
    return _reflection_offset[None]


@ti.func
def get_background() -> vec4:
    """Current background RGBA color."""
    return _background[None]
