"""Blinn-Phong material model.

A material has five terms: an ambient color (scaled by the scene ambient
light), a diffuse and a specular color with a specular exponent for direct
lighting, and a reflection color that weights the mirror-reflected ray.

For a light at squared distance dist2 in unit direction L from a hit point
with normal N, seen along ray direction D:

    H = normalize(L - D)
    color = (max(0, N.L) * diffuse + max(0, N.H)^shininess * specular)
            * light_color / dist2

Example:
    >>> from src.whitted.materials.phong import Material, add_material
    >>> red = add_material(Material(ambient=(0.5, 0.1, 0.1)))
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

Color = tuple[float, float, float]


@dataclass(frozen=True)
class Material:
    """Host-side Blinn-Phong material description.

    Attributes:
        ambient: Color multiplied with the scene ambient light.
        diffuse: Lambertian term color.
        specular: Highlight color.
        shininess: Specular exponent.
        reflection: Weight of the mirror-reflected color. Zero disables
            reflection for this material's contribution.
    """

    ambient: Color = (0.5, 0.1, 0.1)
    diffuse: Color = (0.5, 0.5, 0.5)
    specular: Color = (0.2, 0.2, 0.2)
    shininess: float = 256.0
    reflection: Color = (0.7, 0.7, 0.7)

    def __post_init__(self) -> None:
        for name in ("ambient", "diffuse", "specular", "reflection"):
            value = getattr(self, name)
            if len(value) != 3:
                raise ValueError(f"Material {name} must be an RGB triple, got {value}")
            if min(value) < 0.0:
                raise ValueError(f"Material {name} must be non-negative, got {value}")
        if self.shininess < 0.0:
            raise ValueError(f"Material shininess must be non-negative, got {self.shininess}")


@ti.dataclass
class PhongMaterial:
    """Device-side twin of Material."""

    ambient: vec3
    diffuse: vec3
    specular: vec3
    shininess: ti.f32
    reflection: vec3


@ti.func
def eval_blinn_phong(
    material: PhongMaterial,
    normal: vec3,
    to_light: vec3,
    ray_direction: vec3,
    light_color: vec3,
    distance_squared: ti.f32,
) -> vec3:
    """Direct light from one unoccluded point light.

    Args:
        material: Material at the hit point.
        normal: Unit normal facing the incoming ray.
        to_light: Unit vector from the hit point to the light.
        ray_direction: Direction of the ray that hit the point, used as
            given (a non-unit direction shifts the half vector).
        light_color: RGB intensity of the light.
        distance_squared: Squared distance from the hit point to the light.

    Returns:
        The RGB contribution of this light.
    """
    half_vector = tm.normalize(to_light - ray_direction)
    n_dot_l = ti.max(0.0, tm.dot(normal, to_light))
    n_dot_h = ti.max(0.0, tm.dot(normal, half_vector))

    diffuse = n_dot_l * material.diffuse
    specular = ti.pow(n_dot_h, material.shininess) * material.specular
    return (diffuse + specular) * light_color / distance_squared


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_MATERIALS = 256

material_ambient = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflection = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Add a material to the material table.

    Returns:
        The material id, for use as an object's material_id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
    material_ambient[idx] = vec3(*material.ambient)
    material_diffuse[idx] = vec3(*material.diffuse)
    material_specular[idx] = vec3(*material.specular)
    material_shininess[idx] = material.shininess
    material_reflection[idx] = vec3(*material.reflection)
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def get_material(material_id: ti.i32) -> PhongMaterial:
    """Load a material from the table inside a kernel."""
    return PhongMaterial(
        ambient=material_ambient[material_id],
        diffuse=material_diffuse[material_id],
        specular=material_specular[material_id],
        shininess=material_shininess[material_id],
        reflection=material_reflection[material_id],
    )
