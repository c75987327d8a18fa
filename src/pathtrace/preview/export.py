"""Image export utilities for rendered images.

This module turns the renderer's linear [0, 1] images into files.

Supported formats:
    - PPM P3: plain-text header ``P3``, ``width height``, ``255``, then one
      ``r g b`` line per pixel, rows from top to bottom, left to right
    - PNG (8-bit via Pillow)

Both formats apply the same gamma-2 quantization: every channel becomes
``floor(255.999 * c ** (1 / 2))``.

Example:
    >>> from pathtrace.preview.export import write_ppm, save_png
    >>> image = renderer.render()
    >>> write_ppm(image, "output.ppm")
    >>> save_png(image, "output.png")
"""

from __future__ import annotations

import io
import os
import sys
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Display gamma applied when quantizing
GAMMA = 2.0

# Scale that maps [0, 1] onto the 256 integer levels without reaching 256
QUANTIZE_SCALE = 255.999


def _check_image(image: npt.NDArray) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    gamma: float = GAMMA,
) -> npt.NDArray[np.uint8]:
    """Gamma-correct and quantize a linear image to 8 bits.

    Args:
        image: Linear image of shape (H, W, 3). Values are clamped to [0, 1].
        gamma: Gamma correction value (default 2).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If the image has the wrong shape or gamma is not positive.
    """
    _check_image(image)
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")

    linear = np.clip(np.nan_to_num(image.astype(np.float64)), 0.0, 1.0)
    corrected = np.power(linear, 1.0 / gamma)
    return np.floor(QUANTIZE_SCALE * corrected).astype(np.uint8)


def encode_ppm(image: npt.NDArray[np.floating], *, gamma: float = GAMMA) -> str:
    """Encode a linear image as P3 text.

    Args:
        image: Linear image of shape (H, W, 3), row 0 at the top.
        gamma: Gamma correction value (default 2).

    Returns:
        The full file contents, ending with a newline.
    """
    pixels = image_to_uint8(image, gamma=gamma)
    height, width, _ = pixels.shape

    out = io.StringIO()
    out.write(f"P3\n{width} {height}\n255\n")
    for r, g, b in pixels.reshape(-1, 3):
        out.write(f"{r} {g} {b}\n")
    return out.getvalue()


def write_ppm(
    image: npt.NDArray[np.floating],
    target: str | os.PathLike[str] | TextIO | None = None,
    *,
    gamma: float = GAMMA,
) -> None:
    """Write a linear image as a P3 file.

    Args:
        image: Linear image of shape (H, W, 3), row 0 at the top.
        target: Output path, an open text stream, or None / "-" for stdout.
        gamma: Gamma correction value (default 2).
    """
    text = encode_ppm(image, gamma=gamma)
    if target is None or target == "-":
        sys.stdout.write(text)
        sys.stdout.flush()
    elif hasattr(target, "write"):
        target.write(text)
    else:
        with open(target, "w", encoding="ascii") as f:
            f.write(text)


def decode_ppm(text: str) -> npt.NDArray[np.uint8]:
    """Parse P3 text back into an 8-bit image of shape (H, W, 3).

    Raises:
        ValueError: If the text is not a well-formed 8-bit P3 image.
    """
    tokens = text.split()
    if len(tokens) < 4 or tokens[0] != "P3":
        raise ValueError("Not a P3 image")
    width, height, max_value = int(tokens[1]), int(tokens[2]), int(tokens[3])
    if max_value != 255:
        raise ValueError(f"Unsupported max value {max_value}")

    values = tokens[4:]
    if len(values) != width * height * 3:
        raise ValueError(
            f"Expected {width * height * 3} channel values, got {len(values)}"
        )
    channels = np.array([int(v) for v in values], dtype=np.int64)
    if channels.size and (channels.min() < 0 or channels.max() > 255):
        raise ValueError("Channel value outside [0, 255]")
    return channels.astype(np.uint8).reshape(height, width, 3)


def save_png(
    image: npt.NDArray[np.floating],
    filepath: str | os.PathLike[str],
    *,
    gamma: float = GAMMA,
) -> None:
    """Save a linear image as a PNG file.

    Args:
        image: Linear image of shape (H, W, 3), row 0 at the top.
        filepath: Output file path (should end in .png).
        gamma: Gamma correction value (default 2).
    """
    image_uint8 = image_to_uint8(image, gamma=gamma)
    pil_image = PILImage.fromarray(image_uint8, mode="RGB")
    pil_image.save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
