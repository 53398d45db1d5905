"""Matplotlib preview of rendered RGBA images.

Renders carry an alpha channel: 1 where a primary ray hit geometry, the
background alpha elsewhere (0 for the default transparent background).
Tone mapping and gamma touch the color channels only. For viewing, the
processed image is composited over a gray checkerboard so transparent
pixels stay visible.

Example:
    >>> from src.whitted.preview.display import show_preview
    >>> from src.whitted.core.integrator import render_image
    >>>
    >>> image = render_image(camera)
    >>> show_preview(image, tone_map="reinhard")
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import numpy.typing as npt

ToneMapMethod = Literal["none", "reinhard", "exposure"]

CHECKER_SHADES = (0.6, 0.8)


def tone_map_reinhard(rgb: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Reinhard operator L / (1 + L); negative input is treated as black."""
    rgb = np.maximum(rgb, 0.0)
    return (rgb / (1.0 + rgb)).astype(np.float32)


def tone_map_exposure(
    rgb: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Exponential operator 1 - exp(-L * exposure)."""
    rgb = np.maximum(rgb, 0.0)
    return (1.0 - np.exp(-rgb * exposure)).astype(np.float32)


def apply_gamma(
    rgb: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Encode linear values with 1/gamma. gamma == 1.0 is a no-op."""
    if gamma == 1.0:
        return rgb
    # Negative values would turn into NaN under the power
    rgb = np.clip(rgb, 0.0, 1.0)
    return np.power(rgb, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, gamma encode and clamp an RGB or RGBA image.

    The input array is not modified. Alpha, when present, is only clamped.

    Args:
        image: Linear image of shape (H, W, 3) or (H, W, 4).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Gamma applied after tone mapping.
        exposure: Scale for the "exposure" operator.

    Returns:
        float32 image of the same shape with values in [0, 1].

    Raises:
        ValueError: If the image is not RGB or RGBA, or the tone mapping
            method is unknown.
    """
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3) or (H, W, 4) image, got {image.shape}")

    result = image.astype(np.float32, copy=True)
    rgb = result[..., :3]

    if tone_map == "reinhard":
        rgb = tone_map_reinhard(rgb)
    elif tone_map == "exposure":
        rgb = tone_map_exposure(rgb, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result[..., :3] = apply_gamma(rgb, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def composite_over_checkerboard(
    image: npt.NDArray[np.float32],
    tile: int = 8,
) -> npt.NDArray[np.float32]:
    """Blend an RGBA image in [0, 1] over a checkerboard, returning RGB.

    RGB input is returned as a float32 copy.
    """
    if image.shape[2] == 3:
        return image.astype(np.float32, copy=True)

    height, width = image.shape[:2]
    rows = (np.arange(height) // tile)[:, None]
    cols = (np.arange(width) // tile)[None, :]
    board = np.where((rows + cols) % 2 == 0, *CHECKER_SHADES).astype(np.float32)

    alpha = image[..., 3:4]
    return (image[..., :3] * alpha + board[..., None] * (1.0 - alpha)).astype(np.float32)


def _prepare(image, tone_map, gamma, exposure):
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return processed, composite_over_checkerboard(processed)


def show_preview(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Show a rendered image in a Matplotlib window.

    Args:
        image: Linear image of shape (H, W, 3) or (H, W, 4).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Gamma applied for display (2.2 by default).
        exposure: Scale for the "exposure" operator.
        title: Figure title (default shows the image size).
        figsize: Figure size in inches (width, height).
        block: Whether to block until the window is closed.
    """
    import matplotlib.pyplot as plt

    _, shown = _prepare(image, tone_map, gamma, exposure)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(shown)
    ax.axis("off")

    if title is None:
        height, width = image.shape[:2]
        title = f"Whitted render - {width}x{height}"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("BVH", "brute force"),
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    figsize: tuple[float, float] = (16, 5),
    block: bool = True,
) -> int:
    """Show two renders side by side with a mask of differing pixels.

    Returns:
        Number of pixels whose RGBA values differ after display processing.
    """
    import matplotlib.pyplot as plt

    processed_a, shown_a = _prepare(image_a, tone_map, gamma, 1.0)
    processed_b, shown_b = _prepare(image_b, tone_map, gamma, 1.0)

    mask = np.any(processed_a != processed_b, axis=2)
    differing = int(np.count_nonzero(mask))

    fig, axes = plt.subplots(1, 3, figsize=figsize)
    panels = (
        (shown_a, labels[0], None),
        (shown_b, labels[1], None),
        (mask, f"{differing} differing pixels", "gray"),
    )
    for ax, (data, label, cmap) in zip(axes, panels):
        ax.imshow(data, cmap=cmap)
        ax.set_title(label)
        ax.axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return differing
