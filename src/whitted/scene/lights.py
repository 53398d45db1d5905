"""Point lights and the scene ambient color.

Lights are stored in Taichi fields, like every other piece of scene data,
and read by the shading loop. A point light has a position and an RGB
color that doubles as its intensity; its contribution falls off with the
squared distance.

Example:
    >>> from src.whitted.scene.lights import PointLight, add_light, set_ambient
    >>> add_light(PointLight(position=(0.0, 4.0, 2.0), color=(10.0, 10.0, 10.0)))
    >>> set_ambient((0.1, 0.1, 0.1))
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

_ambient = ti.Vector.field(3, dtype=ti.f32, shape=())


@dataclass(frozen=True)
class PointLight:
    """A point light.

    Attributes:
        position: World-space position.
        color: RGB intensity. Components must be non-negative.
    """

    position: tuple[float, float, float]
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        if len(self.position) != 3 or len(self.color) != 3:
            raise ValueError("Light position and color must have three components")
        if min(self.color) < 0.0:
            raise ValueError(f"Light color must be non-negative, got {self.color}")


def clear_lights() -> None:
    """Remove all lights and reset the ambient color to black."""
    num_lights[None] = 0
    _ambient[None] = vec3(0.0, 0.0, 0.0)


def add_light(light: PointLight) -> int:
    """Add a point light.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = vec3(*light.position)
    light_colors[idx] = vec3(*light.color)
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the scene."""
    return int(num_lights[None])


def set_ambient(color: tuple[float, float, float]) -> None:
    """Set the scene ambient color.

    Raises:
        ValueError: If a component is negative.
    """
    if len(color) != 3 or min(color) < 0.0:
        raise ValueError(f"Ambient color must be a non-negative RGB triple, got {color}")
    _ambient[None] = vec3(*color)


def get_ambient() -> tuple[float, float, float]:
    """Current scene ambient color."""
    c = _ambient[None]
    return (float(c[0]), float(c[1]), float(c[2]))


@ti.func
def scene_ambient() -> vec3:
    return _ambient[None]
