"""Preview module for image output.

Components:
    export: PPM (P3 text) and PNG export utilities

Rendered images are linear RGB in [0, 1]; export applies gamma-2
correction and 8-bit quantization.

Example:
    >>> from pathtrace.preview import write_ppm, save_png
    >>> image = renderer.render()
    >>> write_ppm(image, "output.ppm")
    >>> save_png(image, "output.png")
"""

from pathtrace.preview.export import (
    GAMMA,
    compute_rmse,
    decode_ppm,
    encode_ppm,
    image_to_uint8,
    save_png,
    write_ppm,
)

__all__ = [
    "GAMMA",
    "encode_ppm",
    "decode_ppm",
    "write_ppm",
    "save_png",
    "image_to_uint8",
    "compute_rmse",
]
