"""Camera module for primary ray generation.

Components:
    camera: Perspective and orthographic cameras looking down -z

The image plane is centered on the camera position at distance
focal_length, with a half-height of tan(fov / 2) * focal_length. Pixel
(0, 0) is the top-left corner of the image.
"""

from .camera import (
    Camera,
    CameraKind,
    get_camera_info,
    get_ray,
    setup_camera,
)

__all__ = [
    "Camera",
    "CameraKind",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
