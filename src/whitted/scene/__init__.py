"""Scene module for scene storage and ray-scene queries.

Components:
    intersection: Object table, primitive storage and nearest-hit search
    mesh: Triangle and BVH node arenas, BVH traversal
    lights: Point lights and the ambient term
    manager: Scene builder that keeps a Python-side record of the scene
    off_loader: OFF mesh file parser
    demo: Demo scene with a mesh, a mirror sphere and a reflective floor

Scene data lives in module-level Taichi fields in Structure-of-Arrays
layout. Only one scene is live at a time.
"""

from .intersection import (
    MAX_OBJECTS,
    MAX_PARALLELOGRAMS,
    MAX_PLANES,
    MAX_SINGLE_TRIANGLES,
    MAX_SPHERES,
    ObjectKind,
    SceneHitRecord,
    add_mesh_object,
    add_parallelogram,
    add_plane,
    add_sphere,
    add_triangle,
    clear_scene,
    get_object_count,
    get_scene_query_count,
    intersect_scene,
    reset_scene_query_count,
    scene_nearest_hit,
)
from .lights import (
    MAX_LIGHTS,
    PointLight,
    add_light,
    clear_lights,
    get_ambient,
    get_light_count,
    set_ambient,
)
from .manager import MeshInfo, ObjectInfo, Scene, SceneConfig
from .mesh import (
    MAX_BVH_NODES,
    MAX_MESHES,
    MAX_TRIANGLES,
    clear_meshes,
    intersect_bvh,
    intersect_mesh,
    mesh_nearest_hit,
    upload_mesh,
)
from .off_loader import load_off, parse_off

# Note: demo is NOT imported here; it pulls in the camera and settings.
# Import directly from src.whitted.scene.demo when needed.

__all__ = [
    # Intersection module
    "ObjectKind",
    "SceneHitRecord",
    "add_sphere",
    "add_triangle",
    "add_parallelogram",
    "add_plane",
    "add_mesh_object",
    "clear_scene",
    "get_object_count",
    "intersect_scene",
    "scene_nearest_hit",
    "reset_scene_query_count",
    "get_scene_query_count",
    "MAX_OBJECTS",
    "MAX_SPHERES",
    "MAX_SINGLE_TRIANGLES",
    "MAX_PARALLELOGRAMS",
    "MAX_PLANES",
    # Mesh module
    "upload_mesh",
    "clear_meshes",
    "intersect_bvh",
    "intersect_mesh",
    "mesh_nearest_hit",
    "MAX_TRIANGLES",
    "MAX_BVH_NODES",
    "MAX_MESHES",
    # Lights module
    "PointLight",
    "add_light",
    "clear_lights",
    "get_light_count",
    "set_ambient",
    "get_ambient",
    "MAX_LIGHTS",
    # Manager module
    "Scene",
    "ObjectInfo",
    "MeshInfo",
    "SceneConfig",
    # OFF loader
    "load_off",
    "parse_off",
]
