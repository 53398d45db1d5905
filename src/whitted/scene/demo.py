"""Demo scene: a triangle mesh, a mirror sphere and a reflective floor.

The mesh is either loaded from an OFF file (and scaled to fit the scene)
or a procedural box. Seven point lights alternate above and below the
objects along the x axis, as in the classic mesh render this renderer is
tested with.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.demo import DemoSceneParams, create_demo_scene
    >>> from src.whitted.core.integrator import render_image
    >>>
    >>> params = DemoSceneParams(width=320, height=240)
    >>> scene, camera = create_demo_scene(params)
    >>> image = render_image(camera, settings=params.render_settings())
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.whitted.camera.camera import Camera, CameraKind
from src.whitted.core.settings import RenderSettings
from src.whitted.geometry.bvh import SplitPolicy
from src.whitted.materials.phong import Material
from src.whitted.scene.lights import PointLight
from src.whitted.scene.manager import Scene
from src.whitted.scene.off_loader import load_off

# =============================================================================
# Scene Constants
# =============================================================================

FLOOR_HEIGHT = -1.0
MESH_CENTER = (-0.6, -0.4, -3.0)
MESH_SIZE = 1.2
SPHERE_CENTER = (1.1, -0.35, -3.4)
SPHERE_RADIUS = 0.65

LIGHT_COLOR = (16.0, 16.0, 16.0)
LIGHT_POSITIONS = (
    (8.0, 8.0, 0.0),
    (6.0, -8.0, 0.0),
    (4.0, 8.0, 0.0),
    (2.0, -8.0, 0.0),
    (0.0, 8.0, 0.0),
    (-2.0, -8.0, 0.0),
    (-4.0, 8.0, 0.0),
)

FLOOR_MATERIAL = Material(
    ambient=(0.2, 0.2, 0.25),
    diffuse=(0.4, 0.4, 0.45),
    specular=(0.1, 0.1, 0.1),
    shininess=32.0,
    reflection=(0.3, 0.3, 0.3),
)
MIRROR_MATERIAL = Material(
    ambient=(0.05, 0.05, 0.05),
    diffuse=(0.1, 0.1, 0.1),
    specular=(0.8, 0.8, 0.8),
    shininess=512.0,
    reflection=(0.9, 0.9, 0.9),
)


@dataclass
class DemoSceneParams:
    """Parameters for the demo scene.

    Attributes:
        mesh_path: OFF file for the mesh. None uses a procedural box.
        width: Image width in pixels.
        height: Image height in pixels.
        fov: Vertical field of view in radians.
        focal_length: Camera focal length.
        camera_position: Camera position.
        camera_kind: Projection type.
        ambient: Scene ambient light.
        background: RGBA color of rays that escape the scene.
        accelerate: Build a BVH for the mesh.
        split_policy: BVH split policy.
        mesh_material: Material of the mesh. None shades it with the
            material passed to the render call.
    """

    mesh_path: str | Path | None = None
    width: int = 640
    height: int = 480
    fov: float = 0.7854
    focal_length: float = 2.0
    camera_position: tuple[float, float, float] = (0.0, 0.0, 2.0)
    camera_kind: CameraKind = CameraKind.PERSPECTIVE
    ambient: tuple[float, float, float] = (0.4, 0.4, 0.4)
    background: tuple[float, float, float, float] = (0.0, 0.1, 0.7, 1.0)
    accelerate: bool = True
    split_policy: SplitPolicy = SplitPolicy.INSERTION_ORDER
    mesh_material: Material | None = None
    lights: tuple[tuple[float, float, float], ...] = LIGHT_POSITIONS

    def camera(self) -> Camera:
        return Camera(
            fov=self.fov,
            focal_length=self.focal_length,
            width=self.width,
            height=self.height,
            position=self.camera_position,
            kind=self.camera_kind,
        )

    def render_settings(self) -> RenderSettings:
        return RenderSettings(background=self.background)


def box_mesh(
    center: tuple[float, float, float] = (0.0, 0.0, 0.0),
    size: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Axis-aligned cube as 12 triangles."""
    h = size / 2.0
    c = np.asarray(center, dtype=np.float32)
    corners = np.array(
        [[x, y, z] for x in (-h, h) for y in (-h, h) for z in (-h, h)],
        dtype=np.float32,
    ) + c
    # Corner index = 4 * (x > 0) + 2 * (y > 0) + (z > 0)
    quads = (
        (0, 1, 3, 2),  # -x
        (4, 6, 7, 5),  # +x
        (0, 4, 5, 1),  # -y
        (2, 3, 7, 6),  # +y
        (0, 2, 6, 4),  # -z
        (1, 5, 7, 3),  # +z
    )
    triangles = []
    for a, b, cc, d in quads:
        triangles.append(corners[[a, b, cc]])
        triangles.append(corners[[a, cc, d]])
    return np.stack(triangles).astype(np.float32)


def fit_to_box(
    triangles: npt.NDArray[np.float32],
    center: tuple[float, float, float],
    size: float,
) -> npt.NDArray[np.float32]:
    """Uniformly scale and translate a mesh so its bounds fit a cube.

    The longest side of the mesh bounds becomes size; the bounds center
    moves to center.
    """
    lo = triangles.reshape(-1, 3).min(axis=0)
    hi = triangles.reshape(-1, 3).max(axis=0)
    extent = float(np.max(hi - lo))
    scale = size / extent if extent > 0.0 else 1.0
    fitted = (triangles - (lo + hi) / 2.0) * scale + np.asarray(center, dtype=np.float32)
    return fitted.astype(np.float32)


def create_demo_scene(params: DemoSceneParams | None = None) -> tuple[Scene, Camera]:
    """Build the demo scene into the live scene storage.

    Returns:
        Tuple of (scene, camera).

    Raises:
        FileNotFoundError: If params.mesh_path does not exist.
        ValueError: If the mesh file is not valid OFF.
    """
    if params is None:
        params = DemoSceneParams()

    if params.mesh_path is not None:
        triangles = fit_to_box(load_off(params.mesh_path), MESH_CENTER, MESH_SIZE)
    else:
        triangles = box_mesh(MESH_CENTER, MESH_SIZE * 0.8)

    scene = Scene(ambient=params.ambient)

    floor = scene.add_material(FLOOR_MATERIAL)
    mirror = scene.add_material(MIRROR_MATERIAL)
    mesh_material = -1
    if params.mesh_material is not None:
        mesh_material = scene.add_material(params.mesh_material)

    scene.add_parallelogram(
        (-4.0, FLOOR_HEIGHT, 1.0),
        (4.0, FLOOR_HEIGHT, 1.0),
        (-4.0, FLOOR_HEIGHT, -8.0),
        material_id=floor,
    )
    scene.add_sphere(SPHERE_CENTER, SPHERE_RADIUS, material_id=mirror)
    scene.add_mesh(
        triangles,
        material_id=mesh_material,
        accelerate=params.accelerate,
        split_policy=params.split_policy,
    )

    for position in params.lights:
        scene.add_light(PointLight(position=position, color=LIGHT_COLOR))

    return scene, params.camera()
