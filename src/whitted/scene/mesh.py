"""Triangle meshes on the Taichi side: storage, BVH upload and traversal.

Every mesh in a scene shares one triangle arena and one BVH node arena.
A mesh is a contiguous triangle range plus, when accelerated, the id of its
BVH root in the node arena. Node child ids and leaf triangle indices are
rebased to global arena indices on upload, so traversal never needs to know
which mesh a node came from.

Traversal is iterative with a fixed-size local stack. Both children of a
node whose box the ray enters are pushed; the closest hit found so far
bounds every later triangle test, and a hit replaces it only when strictly
closer.

Example:
    >>> from src.whitted.geometry.bvh import BVH
    >>> from src.whitted.scene.mesh import upload_mesh, mesh_nearest_hit
    >>> mesh = upload_mesh(triangles, BVH.build(triangles))
    >>> hit = mesh_nearest_hit(mesh, (0.2, 0.2, 1.0), (0.0, 0.0, -1.0))
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import HitPoint, safe_inverse, to_hit_point
from src.whitted.core.settings import HIT_EPSILON
from src.whitted.geometry.aabb import hit_aabb
from src.whitted.geometry.bvh import BVH, NO_INDEX
from src.whitted.geometry.sphere import HitRecord, miss_record
from src.whitted.geometry.triangle import Triangle, as_triangle_array, hit_triangle

logger = logging.getLogger(__name__)

vec3 = tm.vec3

MAX_TRIANGLES = 1 << 18
MAX_BVH_NODES = 1 << 19
MAX_MESHES = 256

# Depth of the per-ray traversal stack. Trees deeper than
# BVH_STACK_SIZE - 2 are rejected at upload.
BVH_STACK_SIZE = 64

# Triangle arena
tri_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_p2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_p3 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# BVH node arena
node_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
node_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
node_left = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
node_right = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
node_primitive = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
num_nodes = ti.field(dtype=ti.i32, shape=())

# Mesh table
mesh_root = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_first_triangle = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_triangle_count = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_accelerated = ti.field(dtype=ti.i32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())

# Single-query results, read back by mesh_nearest_hit()
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())


def clear_meshes() -> None:
    """Forget every mesh. Arena data is overwritten by later uploads."""
    num_triangles[None] = 0
    num_nodes[None] = 0
    num_meshes[None] = 0


def get_mesh_count() -> int:
    """Get the number of meshes uploaded."""
    return int(num_meshes[None])


def get_triangle_count() -> int:
    """Get the total number of triangles across all meshes."""
    return int(num_triangles[None])


def get_node_count() -> int:
    """Get the total number of BVH nodes across all meshes."""
    return int(num_nodes[None])


@ti.kernel
def _store_triangles(triangles: ti.types.ndarray(), base: ti.i32):
    for i in range(triangles.shape[0]):
        tri_p1[base + i] = vec3(triangles[i, 0, 0], triangles[i, 0, 1], triangles[i, 0, 2])
        tri_p2[base + i] = vec3(triangles[i, 1, 0], triangles[i, 1, 1], triangles[i, 1, 2])
        tri_p3[base + i] = vec3(triangles[i, 2, 0], triangles[i, 2, 1], triangles[i, 2, 2])


@ti.kernel
def _store_nodes(
    bounds_min: ti.types.ndarray(),
    bounds_max: ti.types.ndarray(),
    left: ti.types.ndarray(),
    right: ti.types.ndarray(),
    primitive: ti.types.ndarray(),
    node_base: ti.i32,
    triangle_base: ti.i32,
):
    for i in range(left.shape[0]):
        node = node_base + i
        node_min[node] = vec3(bounds_min[i, 0], bounds_min[i, 1], bounds_min[i, 2])
        node_max[node] = vec3(bounds_max[i, 0], bounds_max[i, 1], bounds_max[i, 2])
        node_left[node] = NO_INDEX
        node_right[node] = NO_INDEX
        node_primitive[node] = NO_INDEX
        if primitive[i] >= 0:
            node_primitive[node] = triangle_base + primitive[i]
        else:
            node_left[node] = node_base + left[i]
            node_right[node] = node_base + right[i]


def upload_mesh(triangles: npt.ArrayLike, bvh: BVH | None = None) -> int:
    """Copy a mesh, and optionally its BVH, into the Taichi arenas.

    Args:
        triangles: (n, 3, 3) triangle array.
        bvh: Hierarchy built over exactly these triangles. Without one the
            mesh is intersected by testing every triangle.

    Returns:
        The mesh index, used by scene objects of kind MESH.

    Raises:
        ValueError: If the mesh is empty, the BVH does not match the
            triangles or is too deep for the traversal stack.
        RuntimeError: If an arena is full.
    """
    array = as_triangle_array(triangles)
    count = len(array)
    if count == 0:
        raise ValueError("Cannot upload an empty mesh")

    mesh = num_meshes[None]
    tri_base = num_triangles[None]
    if mesh >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
    if tri_base + count > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")

    root = NO_INDEX
    if bvh is not None:
        if bvh.leaf_count != count:
            raise ValueError(
                f"BVH has {bvh.leaf_count} leaves but the mesh has {count} triangles"
            )
        if bvh.depth + 2 > BVH_STACK_SIZE:
            raise ValueError(
                f"BVH depth {bvh.depth} exceeds traversal stack size {BVH_STACK_SIZE}"
            )
        node_base = num_nodes[None]
        if node_base + bvh.node_count > MAX_BVH_NODES:
            raise RuntimeError(f"Maximum number of BVH nodes ({MAX_BVH_NODES}) exceeded")

        _store_nodes(
            np.ascontiguousarray(bvh.bounds_min, dtype=np.float32),
            np.ascontiguousarray(bvh.bounds_max, dtype=np.float32),
            np.ascontiguousarray(bvh.left, dtype=np.int32),
            np.ascontiguousarray(bvh.right, dtype=np.int32),
            np.ascontiguousarray(bvh.primitive, dtype=np.int32),
            node_base,
            tri_base,
        )
        num_nodes[None] = node_base + bvh.node_count
        root = node_base

    _store_triangles(array, tri_base)
    num_triangles[None] = tri_base + count

    mesh_root[mesh] = root
    mesh_first_triangle[mesh] = tri_base
    mesh_triangle_count[mesh] = count
    mesh_accelerated[mesh] = 1 if bvh is not None else 0
    num_meshes[None] = mesh + 1

    logger.debug(
        "Uploaded mesh %d: %d triangles, %s",
        mesh,
        count,
        f"{bvh.node_count} BVH nodes" if bvh is not None else "no BVH",
    )
    return mesh


@ti.func
def _load_triangle(index: ti.i32) -> Triangle:
    return Triangle(p1=tri_p1[index], p2=tri_p2[index], p3=tri_p3[index])


@ti.func
def intersect_bvh(
    ray_origin: vec3,
    ray_direction: vec3,
    root: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Nearest triangle hit in (t_min, t_max) below a BVH root.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        root: Global node id of the BVH root.
        t_min: Self-intersection threshold.
        t_max: Upper bound on accepted hits.

    Returns:
        The nearest HitRecord, or a miss record.
    """
    inv_direction = safe_inverse(ray_direction)
    stack = ti.Vector.zero(ti.i32, BVH_STACK_SIZE)
    stack[0] = root
    top = 1

    closest_t = t_max
    result = miss_record()

    while top > 0:
        top -= 1
        node = stack[top]
        if hit_aabb(ray_origin, inv_direction, node_min[node], node_max[node]) == 1:
            prim = node_primitive[node]
            if prim >= 0:
                rec = hit_triangle(ray_origin, ray_direction, _load_triangle(prim), t_min, closest_t)
                if rec.hit == 1:
                    closest_t = rec.t
                    result = rec
            elif top + 2 <= BVH_STACK_SIZE:
                stack[top] = node_left[node]
                stack[top + 1] = node_right[node]
                top += 2

    return result


@ti.func
def intersect_triangles_linear(
    ray_origin: vec3,
    ray_direction: vec3,
    first: ti.i32,
    count: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Nearest hit among triangles [first, first + count), testing each one."""
    closest_t = t_max
    result = miss_record()
    for k in range(count):
        rec = hit_triangle(ray_origin, ray_direction, _load_triangle(first + k), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec
    return result


@ti.func
def intersect_mesh(
    ray_origin: vec3,
    ray_direction: vec3,
    mesh: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
    brute_force: ti.i32,
) -> HitRecord:
    """Nearest hit on one mesh, through its BVH unless brute_force is set."""
    result = miss_record()
    if mesh_accelerated[mesh] == 1 and brute_force == 0:
        result = intersect_bvh(ray_origin, ray_direction, mesh_root[mesh], t_min, t_max)
    else:
        result = intersect_triangles_linear(
            ray_origin,
            ray_direction,
            mesh_first_triangle[mesh],
            mesh_triangle_count[mesh],
            t_min,
            t_max,
        )
    return result


@ti.kernel
def _query_mesh(
    mesh: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    brute_force: ti.i32,
):
    # Single-iteration outer loop keeps the triangle scan serial
    for _ in range(1):
        rec = intersect_mesh(ray_origin, ray_direction, mesh, t_min, t_max, brute_force)
        _query_hit[None] = rec.hit
        _query_t[None] = rec.t
        _query_point[None] = rec.point
        _query_normal[None] = rec.normal


def mesh_nearest_hit(
    mesh: int,
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = HIT_EPSILON,
    t_max: float = 1e10,
    brute_force: bool = False,
) -> HitPoint | None:
    """Nearest hit of a single ray against one uploaded mesh.

    Args:
        mesh: Index returned by upload_mesh().
        origin: Ray origin.
        direction: Ray direction.
        t_min: Hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.
        brute_force: Test every triangle instead of walking the BVH.

    Returns:
        The hit, or None when the ray misses the mesh.

    Raises:
        IndexError: If no mesh with that index was uploaded.
    """
    if not 0 <= mesh < num_meshes[None]:
        raise IndexError(f"No mesh with index {mesh}")
    _query_mesh(mesh, vec3(*origin), vec3(*direction), t_min, t_max, int(brute_force))
    if _query_hit[None] == 0:
        return None
    return to_hit_point(_query_t[None], _query_point[None], _query_normal[None])
