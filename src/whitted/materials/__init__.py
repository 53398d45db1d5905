"""Materials module for the Phong reflection model.

Components:
    phong: Material parameters, Blinn-Phong evaluation and material table

A material carries ambient, diffuse and specular coefficients, a Phong
exponent and a mirror reflection coefficient, all stored per channel.
"""

from .phong import (
    MAX_MATERIALS,
    Material,
    PhongMaterial,
    add_material,
    clear_materials,
    eval_blinn_phong,
    get_material,
    get_material_count,
)

__all__ = [
    "Material",
    "PhongMaterial",
    "eval_blinn_phong",
    "add_material",
    "clear_materials",
    "get_material",
    "get_material_count",
    "MAX_MATERIALS",
]
