"""High-level scene builder.

The Scene class wraps the module-level Taichi storage (object table, mesh
arenas, material table, lights) behind one object. Creating a Scene clears
all device state, so only one scene is live at a time. It keeps a Python
side record of everything it added, for inspection and serialization.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.manager import Scene
    >>> from src.whitted.materials.phong import Material
    >>> from src.whitted.scene.lights import PointLight
    >>> scene = Scene(ambient=(0.2, 0.2, 0.2))
    >>> mirror = scene.add_material(Material(reflection=(0.9, 0.9, 0.9)))
    >>> scene.add_sphere((0, 0, -3), 1.0, material_id=mirror)
    >>> scene.add_light(PointLight(position=(0, 5, 0), color=(20, 20, 20)))
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy.typing as npt

from src.whitted.core.ray import HitPoint
from src.whitted.core.settings import HIT_EPSILON
from src.whitted.geometry.bvh import BVH, SplitPolicy
from src.whitted.geometry.triangle import as_triangle_array
from src.whitted.materials.phong import (
    Material,
    add_material,
    clear_materials,
    get_material_count,
)
from src.whitted.scene.intersection import (
    ObjectKind,
    add_mesh_object,
    add_parallelogram,
    add_plane,
    add_sphere,
    add_triangle,
    clear_scene,
    get_object_count,
    scene_nearest_hit,
)
from src.whitted.scene.lights import (
    PointLight,
    add_light,
    clear_lights,
    get_ambient,
    get_light_count,
    set_ambient,
)
from src.whitted.scene.mesh import mesh_nearest_hit, upload_mesh

logger = logging.getLogger(__name__)


@dataclass
class ObjectInfo:
    """Information about an object in the scene.

    Attributes:
        object_id: Index in the object table.
        kind: Object kind.
        material_id: Material of the object, -1 for the render call's material.
        params: Geometry parameters as provided when the object was added.
    """

    object_id: int
    kind: ObjectKind
    material_id: int
    params: dict[str, Any]


@dataclass
class MeshInfo:
    """Information about a mesh in the scene.

    Attributes:
        mesh_index: Index in the mesh table.
        object_id: Index of the mesh object in the object table.
        triangle_count: Number of triangles.
        bvh: The hierarchy built for the mesh, None when not accelerated.
    """

    mesh_index: int
    object_id: int
    triangle_count: int
    bvh: BVH | None


@dataclass
class SceneConfig:
    """Plain-data description of a scene (meshes summarized by size)."""

    ambient: tuple[float, float, float] = (0.0, 0.0, 0.0)
    materials: list[dict[str, Any]] = field(default_factory=list)
    objects: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)


class Scene:
    """Builder for the single live scene.

    Attributes:
        materials: Materials in material id order.
        objects: ObjectInfo for every object, in object id order.
        meshes: MeshInfo for every mesh, in mesh index order.
        lights: Lights in insertion order.
    """

    def __init__(self, ambient: tuple[float, float, float] = (0.0, 0.0, 0.0)) -> None:
        self.materials: list[Material] = []
        self.objects: list[ObjectInfo] = []
        self.meshes: list[MeshInfo] = []
        self.lights: list[PointLight] = []
        self.clear()
        self.set_ambient(ambient)

    def clear(self) -> None:
        """Clear the entire scene, device state included."""
        clear_scene()
        clear_materials()
        clear_lights()
        self.materials.clear()
        self.objects.clear()
        self.meshes.clear()
        self.lights.clear()

    # =========================================================================
    # Materials and Lights
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material and return its id."""
        material_id = add_material(material)
        self.materials.append(material)
        return material_id

    def add_light(self, light: PointLight) -> int:
        index = add_light(light)
        self.lights.append(light)
        return index

    def set_ambient(self, color: tuple[float, float, float]) -> None:
        set_ambient(color)

    @property
    def ambient(self) -> tuple[float, float, float]:
        return get_ambient()

    def _check_material(self, material_id: int) -> None:
        if material_id != -1 and not 0 <= material_id < get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    def _track(self, object_id: int, kind: ObjectKind, material_id: int, **params: Any) -> int:
        self.objects.append(ObjectInfo(object_id, kind, material_id, params))
        return object_id

    # =========================================================================
    # Objects
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int = -1,
    ) -> int:
        """Add a sphere and return its object id.

        Raises:
            ValueError: If material_id is invalid or the radius not positive.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        self._check_material(material_id)
        object_id = add_sphere(center, radius, material_id)
        return self._track(object_id, ObjectKind.SPHERE, material_id, center=center, radius=radius)

    def add_triangle(
        self,
        point1: tuple[float, float, float],
        point2: tuple[float, float, float],
        point3: tuple[float, float, float],
        material_id: int = -1,
    ) -> int:
        """Add a stand-alone triangle and return its object id."""
        self._check_material(material_id)
        object_id = add_triangle(point1, point2, point3, material_id)
        return self._track(
            object_id,
            ObjectKind.TRIANGLE,
            material_id,
            point1=point1,
            point2=point2,
            point3=point3,
        )

    def add_parallelogram(
        self,
        point1: tuple[float, float, float],
        point2: tuple[float, float, float],
        point3: tuple[float, float, float],
        material_id: int = -1,
    ) -> int:
        """Add a parallelogram with corners point1, point2, point3 and
        point2 + point3 - point1, and return its object id."""
        self._check_material(material_id)
        object_id = add_parallelogram(point1, point2, point3, material_id)
        return self._track(
            object_id,
            ObjectKind.PARALLELOGRAM,
            material_id,
            point1=point1,
            point2=point2,
            point3=point3,
        )

    def add_plane(
        self,
        point: tuple[float, float, float],
        normal: tuple[float, float, float],
        material_id: int = -1,
    ) -> int:
        """Add an infinite plane and return its object id."""
        self._check_material(material_id)
        object_id = add_plane(point, normal, material_id)
        return self._track(object_id, ObjectKind.PLANE, material_id, point=point, normal=normal)

    def add_mesh(
        self,
        triangles: npt.ArrayLike,
        material_id: int = -1,
        accelerate: bool = True,
        split_policy: SplitPolicy = SplitPolicy.INSERTION_ORDER,
    ) -> int:
        """Add a triangle mesh and return its object id.

        Args:
            triangles: (n, 3, 3) triangle array.
            material_id: Material of the mesh.
            accelerate: Build a BVH for the mesh. Without one every ray tests
                every triangle.
            split_policy: Split policy of the BVH.

        Raises:
            ValueError: If material_id is invalid or the mesh is empty.
            RuntimeError: If a mesh arena or the object table is full.
        """
        self._check_material(material_id)
        array = as_triangle_array(triangles)
        bvh = BVH.build(array, split_policy) if accelerate else None
        mesh_index = upload_mesh(array, bvh)
        object_id = add_mesh_object(mesh_index, material_id)

        self.meshes.append(MeshInfo(mesh_index, object_id, len(array), bvh))
        logger.info(
            "Added mesh %d with %d triangles (%s)",
            mesh_index,
            len(array),
            "BVH" if accelerate else "brute force",
        )
        return self._track(
            object_id,
            ObjectKind.MESH,
            material_id,
            mesh_index=mesh_index,
            triangle_count=len(array),
        )

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_object_count(self) -> int:
        return get_object_count()

    def get_material_count(self) -> int:
        return get_material_count()

    def get_light_count(self) -> int:
        return get_light_count()

    def nearest_hit(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        t_min: float = HIT_EPSILON,
    ) -> HitPoint | None:
        """Nearest hit of a ray against every object in the scene."""
        return scene_nearest_hit(origin, direction, t_min)

    def mesh_nearest_hit(
        self,
        mesh_index: int,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        t_min: float = HIT_EPSILON,
        brute_force: bool = False,
    ) -> HitPoint | None:
        """Nearest hit of a ray against a single mesh."""
        return mesh_nearest_hit(mesh_index, origin, direction, t_min, brute_force=brute_force)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig(ambient=self.ambient)
        config.materials = [asdict(material) for material in self.materials]
        for obj in self.objects:
            config.objects.append(
                {"kind": obj.kind.name.lower(), "material_id": obj.material_id, **obj.params}
            )
        config.lights = [asdict(light) for light in self.lights]
        return config
