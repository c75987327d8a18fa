"""Parallel renderer that splits samples across workers.

Parallelism is over samples, not pixels: each of ``workers`` workers renders
the entire image with ``samples_per_pixel // workers`` samples per pixel into
its own accumulation buffer. The render kernel's parallel loop runs over
(worker, scan line) pairs, which the Taichi runtime spreads over its thread
pool. The scene, BVH and camera are read-only during the kernel. Random draws
come from Taichi's per-thread generator, seeded by ``init_taichi``; with one
CPU thread a seed reproduces the image exactly.

When the kernel returns, the per-worker buffers are summed and divided by the
number of samples actually taken.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.scene.presets import create_random_spheres_scene
    >>> from pathtrace.core.renderer import Renderer, Scene
    >>>
    >>> world, camera = create_random_spheres_scene(seed=0)
    >>> scene = Scene(camera, world, image_width=200, image_height=112,
    ...               max_depth=10, samples_per_pixel=50)
    >>> image = Renderer(scene, workers=2).render()
    >>> image.shape
    (112, 200, 3)
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtrace.camera.thin_lens import (
    ThinLensCamera,
    get_ray_jittered,
    is_camera_ready,
    setup_camera,
)
from pathtrace.core.integrator import radiance
from pathtrace.geometry.bvh import get_bvh_node_count
from pathtrace.scene.manager import SceneManager

# Type alias for 3D vectors
vec3 = tm.vec3


@dataclass(frozen=True)
class Scene:
    """Everything a render reads, fixed before rendering starts.

    Attributes:
        camera: The camera configuration.
        world: The scene manager holding spheres, materials and the BVH.
        image_width: Image width in pixels.
        image_height: Image height in pixels.
        max_depth: Maximum number of intersections followed per path.
        samples_per_pixel: Requested samples per pixel across all workers.
    """

    camera: ThinLensCamera
    world: SceneManager
    image_width: int
    image_height: int
    max_depth: int
    samples_per_pixel: int

    def validate(self) -> None:
        """Check image dimensions, depth and sample count.

        Raises:
            ValueError: If any value is out of range.
        """
        if self.image_width < 2 or self.image_height < 2:
            raise ValueError(
                f"Image must be at least 2x2 pixels, got {self.image_width}x{self.image_height}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )


# =============================================================================
# Rendering Kernel
# =============================================================================


@ti.kernel
def _render_workers(
    buffers: ti.types.ndarray(dtype=ti.f32, ndim=4),
    workers: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
):
    """Accumulate ``samples`` radiance estimates per pixel for every worker.

    Args:
        buffers: Accumulation buffer of shape (workers, width, height, 3).
        workers: Number of workers.
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Samples per pixel for each worker.
        max_depth: Maximum path depth.
    """
    for w, j in ti.ndrange(workers, height):
        for i in range(width):
            total = vec3(0.0, 0.0, 0.0)
            for _ in range(samples):
                ray = get_ray_jittered(i, j, width, height)
                color = radiance(ray.origin, ray.direction, max_depth)
                total += color

            for c in ti.static(range(3)):
                buffers[w, i, j, c] = total[c]


# =============================================================================
# Renderer
# =============================================================================


class Renderer:
    """Render a Scene by splitting its samples across workers.

    Attributes:
        scene: The scene being rendered.
        workers: Number of sample partitions.
    """

    def __init__(self, scene: Scene, workers: int = 2) -> None:
        """Initialize the renderer.

        Args:
            scene: The scene to render.
            workers: Number of workers; each takes samples_per_pixel // workers
                samples per pixel.

        Raises:
            ValueError: If the scene is invalid, workers is not positive,
                or there are fewer samples than workers.
        """
        scene.validate()
        if workers < 1:
            raise ValueError(f"workers must be positive, got {workers}")
        if scene.samples_per_pixel < workers:
            raise ValueError(
                f"samples_per_pixel ({scene.samples_per_pixel}) must be at least "
                f"the number of workers ({workers})"
            )

        self.scene = scene
        self.workers = workers

    @property
    def samples_per_worker(self) -> int:
        """Samples per pixel taken by each worker."""
        return self.scene.samples_per_pixel // self.workers

    @property
    def samples_taken(self) -> int:
        """Samples per pixel actually taken across all workers."""
        return self.samples_per_worker * self.workers

    def _check_ready(self) -> None:
        if not self.scene.world.has_bvh() or get_bvh_node_count() == 0:
            raise RuntimeError("Scene BVH not built. Call SceneManager.build_bvh() first.")

    def render_worker_buffers(self) -> npt.NDArray[np.float32]:
        """Run the render kernel and return the raw per-worker sums.

        Returns:
            Array of shape (workers, width, height, 3) holding each worker's
            summed radiance per pixel, with j = 0 the bottom row.

        Raises:
            RuntimeError: If the scene BVH has not been built.
        """
        self._check_ready()
        setup_camera(self.scene.camera)
        if not is_camera_ready():
            raise RuntimeError("Camera not set up")

        scene = self.scene
        buffers = np.zeros(
            (self.workers, scene.image_width, scene.image_height, 3), dtype=np.float32
        )
        _render_workers(
            buffers,
            self.workers,
            scene.image_width,
            scene.image_height,
            self.samples_per_worker,
            scene.max_depth,
        )
        ti.sync()
        return buffers

    def render(self) -> npt.NDArray[np.float32]:
        """Render the scene.

        Returns:
            Linear RGB image of shape (height, width, 3), row 0 at the top,
            averaged over all samples and clamped to [0, 1].

        Raises:
            RuntimeError: If the scene BVH has not been built.
        """
        return merge_worker_buffers(self.render_worker_buffers(), self.samples_taken)

    def __repr__(self) -> str:
        return (
            f"Renderer({self.scene.image_width}x{self.scene.image_height}, "
            f"workers={self.workers}, spp={self.samples_taken})"
        )


def merge_worker_buffers(
    buffers: npt.NDArray[np.float32], samples_taken: int
) -> npt.NDArray[np.float32]:
    """Sum per-worker buffers and average them into an image.

    Args:
        buffers: Array of shape (workers, width, height, 3).
        samples_taken: Total samples per pixel across all workers.

    Returns:
        Array of shape (height, width, 3), row 0 at the top, in [0, 1].

    Raises:
        ValueError: If samples_taken is not positive.
    """
    if samples_taken < 1:
        raise ValueError(f"samples_taken must be positive, got {samples_taken}")

    image = buffers.sum(axis=0, dtype=np.float64) / samples_taken

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (j = 0 is the bottom row, images use top-left)
    image = np.flipud(image)

    return np.clip(image, 0.0, 1.0).astype(np.float32)


def render(scene: Scene, workers: int = 2) -> npt.NDArray[np.float32]:
    """Render a scene in one call. See Renderer.render."""
    return Renderer(scene, workers=workers).render()
