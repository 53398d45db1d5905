"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview display and tone mapping
    export: PNG export and image comparison utilities

Example:
    >>> from src.whitted.preview import save_png, show_preview
    >>> save_png(image, "output.png")
    >>> show_preview(image, tone_map="reinhard")
"""

from src.whitted.preview.display import (
    ToneMapMethod,
    apply_gamma,
    composite_over_checkerboard,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.whitted.preview.export import (
    compute_rmse,
    image_to_uint8,
    load_png,
    save_png,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "composite_over_checkerboard",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "load_png",
    "image_to_uint8",
    "compute_rmse",
]
