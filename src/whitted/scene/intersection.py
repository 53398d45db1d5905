"""Scene-level primitive intersection testing.

A scene is a flat object table. Each entry is a tagged variant: a kind
(ObjectKind), an index into the storage of that kind, and a material id.
Spheres, single triangles, parallelograms and planes live in per-kind
structure-of-arrays fields; meshes live in the shared arenas of
src.whitted.scene.mesh and are intersected through their BVH.

intersect_scene() scans the object table linearly and keeps the closest
hit, narrowing t_max as it goes. Every call increments a query counter
so tests can check how many rays a shading computation cast.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.intersection import (
    ...     add_sphere, add_parallelogram, clear_scene, scene_nearest_hit
    ... )
    >>> clear_scene()
    >>> add_sphere((0, 0, -1), 0.5, material_id=0)
    >>> add_parallelogram((-1, -0.5, -2), (1, -0.5, -2), (-1, 0.5, -2))
    >>> hit = scene_nearest_hit((0, 0, 0), (0, 0, -1))
"""

from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import HitPoint, to_hit_point
from src.whitted.core.settings import HIT_EPSILON
from src.whitted.geometry.parallelogram import (
    Parallelogram,
    hit_parallelogram,
    parallelogram_from_points,
)
from src.whitted.geometry.plane import Plane, hit_plane
from src.whitted.geometry.sphere import HitRecord, Sphere, hit_sphere, miss_record
from src.whitted.geometry.triangle import Triangle, hit_triangle
from src.whitted.scene.mesh import clear_meshes, get_mesh_count, intersect_mesh

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class ObjectKind(IntEnum):
    """Closed set of object kinds stored in the object table."""

    SPHERE = 0
    TRIANGLE = 1
    PARALLELOGRAM = 2
    PLANE = 3
    MESH = 4


# Plain ints for comparisons inside kernels
_SPHERE = int(ObjectKind.SPHERE)
_TRIANGLE = int(ObjectKind.TRIANGLE)
_PARALLELOGRAM = int(ObjectKind.PARALLELOGRAM)
_PLANE = int(ObjectKind.PLANE)
_MESH = int(ObjectKind.MESH)


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any object (1 if hit, 0 if miss).
        t: Ray parameter of the closest intersection. Only valid if hit == 1.
        point: World-space intersection point. Only valid if hit == 1.
        normal: Unit surface normal facing against the ray.
            Only valid if hit == 1.
        front_face: Whether the ray hit the front face (1) or back face (0).
            Only valid if hit == 1.
        material_id: Material of the hit object. -1 when the object has no
            material of its own, or on a miss.
        object_id: Index of the hit object in the object table, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32
    object_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_OBJECTS = 4096
MAX_SPHERES = 1024
MAX_SINGLE_TRIANGLES = 1024
MAX_PARALLELOGRAMS = 1024
MAX_PLANES = 1024

# Object table
object_kinds = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_indices = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_material_ids = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Stand-alone triangles (mesh triangles live in the mesh arena)
triangle_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SINGLE_TRIANGLES)
triangle_p2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SINGLE_TRIANGLES)
triangle_p3 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SINGLE_TRIANGLES)
num_single_triangles = ti.field(dtype=ti.i32, shape=())

parallelogram_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PARALLELOGRAMS)
parallelogram_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PARALLELOGRAMS)
parallelogram_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PARALLELOGRAMS)
num_parallelograms = ti.field(dtype=ti.i32, shape=())

plane_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Number of intersect_scene() calls since the last reset
_scene_query_count = ti.field(dtype=ti.i32, shape=())

# Single-query results, read back by scene_nearest_hit()
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_object = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all objects from the scene, meshes included.

    Resets the counts to zero. The actual field data is not cleared but
    will be overwritten when new objects are added.
    """
    num_objects[None] = 0
    num_spheres[None] = 0
    num_single_triangles[None] = 0
    num_parallelograms[None] = 0
    num_planes[None] = 0
    _scene_query_count[None] = 0
    clear_meshes()


def _add_object(kind: ObjectKind, index: int, material_id: int) -> int:
    idx = num_objects[None]
    if idx >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")
    object_kinds[idx] = int(kind)
    object_indices[idx] = index
    object_material_ids[idx] = material_id
    num_objects[None] = idx + 1
    return idx


def _reserve(counter, capacity: int, name: str) -> int:
    idx = counter[None]
    if idx >= capacity:
        raise RuntimeError(f"Maximum number of {name} ({capacity}) exceeded")
    if num_objects[None] >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")
    counter[None] = idx + 1
    return idx


def add_sphere(center, radius: float, material_id: int = -1) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (must be positive).
        material_id: Material of this sphere, -1 to shade it with the
            material passed to the render call.

    Returns:
        The object id of the added sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    idx = _reserve(num_spheres, MAX_SPHERES, "spheres")
    sphere_centers[idx] = vec3(*center)
    sphere_radii[idx] = radius
    return _add_object(ObjectKind.SPHERE, idx, material_id)


def add_triangle(point1, point2, point3, material_id: int = -1) -> int:
    """Add a stand-alone triangle to the scene.

    Returns:
        The object id of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    idx = _reserve(num_single_triangles, MAX_SINGLE_TRIANGLES, "triangles")
    triangle_p1[idx] = vec3(*point1)
    triangle_p2[idx] = vec3(*point2)
    triangle_p3[idx] = vec3(*point3)
    return _add_object(ObjectKind.TRIANGLE, idx, material_id)


def add_parallelogram(point1, point2, point3, material_id: int = -1) -> int:
    """Add a parallelogram to the scene.

    The parallelogram has corners point1, point2, point3 and
    point2 + point3 - point1.

    Args:
        point1: The corner shared by both edges.
        point2: The corner adjacent to point1 along the first edge.
        point3: The corner adjacent to point1 along the second edge.
        material_id: Material of this parallelogram, -1 for the render
            call's material.

    Returns:
        The object id of the added parallelogram.

    Raises:
        RuntimeError: If the maximum number of parallelograms is exceeded.
    """
    corner, edge_u, edge_v = parallelogram_from_points(point1, point2, point3)
    idx = _reserve(num_parallelograms, MAX_PARALLELOGRAMS, "parallelograms")
    parallelogram_corners[idx] = vec3(*corner)
    parallelogram_edge_u[idx] = vec3(*edge_u)
    parallelogram_edge_v[idx] = vec3(*edge_v)
    return _add_object(ObjectKind.PARALLELOGRAM, idx, material_id)


def add_plane(point, normal, material_id: int = -1) -> int:
    """Add an infinite plane to the scene.

    Raises:
        ValueError: If the normal has zero length.
        RuntimeError: If the maximum number of planes is exceeded.
    """
    n = np.asarray(normal, dtype=np.float64)
    length = float(np.linalg.norm(n))
    if length == 0.0:
        raise ValueError("Plane normal must be non-zero")
    idx = _reserve(num_planes, MAX_PLANES, "planes")
    plane_points[idx] = vec3(*point)
    plane_normals[idx] = vec3(*(n / length))
    return _add_object(ObjectKind.PLANE, idx, material_id)


def add_mesh_object(mesh: int, material_id: int = -1) -> int:
    """Add an uploaded mesh (see upload_mesh()) to the object table.

    Raises:
        IndexError: If no mesh with that index was uploaded.
        RuntimeError: If the object table is full.
    """
    if not 0 <= mesh < get_mesh_count():
        raise IndexError(f"No mesh with index {mesh}")
    return _add_object(ObjectKind.MESH, mesh, material_id)


def get_object_count() -> int:
    """Get the number of objects in the scene."""
    return int(num_objects[None])


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_parallelogram_count() -> int:
    """Get the number of parallelograms in the scene."""
    return int(num_parallelograms[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


def get_single_triangle_count() -> int:
    """Get the number of stand-alone triangles in the scene."""
    return int(num_single_triangles[None])


def get_object_kinds() -> npt.NDArray[np.int32]:
    """Kinds of all objects, in object id order."""
    return object_kinds.to_numpy()[: get_object_count()]


def reset_scene_query_count() -> None:
    _scene_query_count[None] = 0


def get_scene_query_count() -> int:
    """Number of intersect_scene() calls since the last reset."""
    return int(_scene_query_count[None])


@ti.func
def _hit_record_to_scene_hit_record(
    rec: HitRecord, material_id: ti.i32, object_id: ti.i32
) -> SceneHitRecord:
    """Convert a HitRecord to a SceneHitRecord with object information."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
        object_id=object_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
        object_id=-1,
    )


@ti.func
def _intersect_object(
    obj: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Dispatch one object table entry to the intersector for its kind."""
    kind = object_kinds[obj]
    idx = object_indices[obj]
    rec = miss_record()

    if kind == _SPHERE:
        sphere = Sphere(center=sphere_centers[idx], radius=sphere_radii[idx])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, t_max)
    elif kind == _TRIANGLE:
        tri = Triangle(p1=triangle_p1[idx], p2=triangle_p2[idx], p3=triangle_p3[idx])
        rec = hit_triangle(ray_origin, ray_direction, tri, t_min, t_max)
    elif kind == _PARALLELOGRAM:
        shape = Parallelogram(
            corner=parallelogram_corners[idx],
            edge_u=parallelogram_edge_u[idx],
            edge_v=parallelogram_edge_v[idx],
        )
        rec = hit_parallelogram(ray_origin, ray_direction, shape, t_min, t_max)
    elif kind == _PLANE:
        plane = Plane(point=plane_points[idx], normal=plane_normals[idx])
        rec = hit_plane(ray_origin, ray_direction, plane, t_min, t_max)
    elif kind == _MESH:
        rec = intersect_mesh(ray_origin, ray_direction, idx, t_min, t_max, 0)

    return rec


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Test ray against all objects in the scene.

    Tests every object in table order and tracks the closest hit. A later
    object replaces the current hit only when strictly closer.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.

    Returns:
        A SceneHitRecord containing the closest intersection, or a miss
        record if no intersection was found.
    """
    ti.atomic_add(_scene_query_count[None], 1)

    closest_t = t_max
    result = _make_miss_record()

    for obj in range(num_objects[None]):
        rec = _intersect_object(obj, ray_origin, ray_direction, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, object_material_ids[obj], obj)

    return result


@ti.kernel
def _query_scene(ray_origin: vec3, ray_direction: vec3, t_min: ti.f32, t_max: ti.f32):
    # Single-iteration outer loop keeps the object scan serial
    for _ in range(1):
        rec = intersect_scene(ray_origin, ray_direction, t_min, t_max)
        _query_hit[None] = rec.hit
        _query_t[None] = rec.t
        _query_point[None] = rec.point
        _query_normal[None] = rec.normal
        _query_object[None] = rec.object_id


def scene_nearest_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = HIT_EPSILON,
    t_max: float = 1e10,
) -> HitPoint | None:
    """Nearest hit of a single ray against the whole scene.

    Returns:
        The hit, or None when the ray misses every object.
    """
    _query_scene(vec3(*origin), vec3(*direction), t_min, t_max)
    if _query_hit[None] == 0:
        return None
    return to_hit_point(_query_t[None], _query_point[None], _query_normal[None])


def last_hit_object() -> int:
    """Object id of the hit reported by the last scene_nearest_hit() call."""
    return int(_query_object[None])
