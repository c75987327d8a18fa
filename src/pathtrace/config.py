"""Render settings and Taichi runtime initialization.

The Taichi runtime must be initialized before any module that declares
fields is imported, so entry points call ``init_taichi`` first and import
the rendering modules afterwards.

Example:
    >>> from pathtrace.config import RenderSettings, init_taichi
    >>> settings = RenderSettings(image_width=400, samples_per_pixel=100)
    >>> settings.validate()
    >>> init_taichi(settings.thread_count, seed=settings.seed)
"""

from dataclasses import dataclass

import taichi as ti

DEFAULT_IMAGE_WIDTH = 200
DEFAULT_ASPECT_RATIO = 16.0 / 9.0
DEFAULT_SAMPLES_PER_PIXEL = 50
DEFAULT_MAX_DEPTH = 10
DEFAULT_THREAD_COUNT = 2

ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
}


@dataclass
class RenderSettings:
    """Image and sampling parameters read once before rendering.

    Attributes:
        image_width: Image width in pixels.
        aspect_ratio: Width divided by height.
        samples_per_pixel: Samples per pixel across all workers.
        max_depth: Maximum number of intersections followed per path.
        thread_count: Number of workers the samples are split across.
        seed: Seed for the random generators.
    """

    image_width: int = DEFAULT_IMAGE_WIDTH
    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    samples_per_pixel: int = DEFAULT_SAMPLES_PER_PIXEL
    max_depth: int = DEFAULT_MAX_DEPTH
    thread_count: int = DEFAULT_THREAD_COUNT
    seed: int = 0

    @property
    def image_height(self) -> int:
        """Image height derived from width and aspect ratio (truncated)."""
        return int(self.image_width / self.aspect_ratio)

    @property
    def samples_per_worker(self) -> int:
        return self.samples_per_pixel // self.thread_count

    def validate(self) -> None:
        """Check every setting is usable.

        Raises:
            ValueError: If any setting is out of range.
        """
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_width < 2:
            raise ValueError(f"image_width must be at least 2, got {self.image_width}")
        if self.image_height < 2:
            raise ValueError(
                f"image_height ({self.image_height}) derived from width "
                f"{self.image_width} and aspect ratio {self.aspect_ratio} must be at least 2"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.thread_count < 1:
            raise ValueError(f"thread_count must be positive, got {self.thread_count}")
        if self.samples_per_pixel < self.thread_count:
            raise ValueError(
                f"samples_per_pixel ({self.samples_per_pixel}) must be at least "
                f"thread_count ({self.thread_count})"
            )
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")


_initialized = False


def init_taichi(
    thread_count: int = DEFAULT_THREAD_COUNT,
    arch: str = "cpu",
    seed: int = 0,
    debug: bool = False,
) -> bool:
    """Initialize the Taichi runtime once.

    Args:
        thread_count: Upper bound on CPU threads used by parallel loops.
        arch: "cpu" or "gpu". Taichi falls back to CPU when no GPU is found.
        seed: Seed for Taichi's built-in generator.
        debug: Enable Taichi debug mode (bounds checks and device asserts).

    Returns:
        True if this call initialized the runtime, False if it already was.

    Raises:
        ValueError: If arch is unknown or thread_count is not positive.
    """
    global _initialized

    if arch not in ARCHES:
        raise ValueError(f"Unknown arch {arch!r}, expected one of {sorted(ARCHES)}")
    if thread_count < 1:
        raise ValueError(f"thread_count must be positive, got {thread_count}")
    if _initialized:
        return False

    ti.init(
        arch=ARCHES[arch],
        cpu_max_num_threads=thread_count,
        random_seed=seed,
        debug=debug,
    )
    _initialized = True
    return True
