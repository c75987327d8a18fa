"""Ready-made scenes.

This module provides factory functions for the scenes the renderer ships with:

- ``create_random_spheres_scene``: a large ground sphere covered by a 22x22
  grid of small randomly placed spheres with random materials, plus five
  large feature spheres (solid glass, a hollow glass shell, polished metal
  and a second glass sphere behind them).
- ``create_single_sphere_scene``: one diffuse sphere resting on a huge
  diffuse ground sphere, viewed straight down -z. Useful for checking the
  sky gradient and single-bounce shading.

Each factory fills a fresh SceneManager, builds its BVH and returns it
together with the matching camera configuration.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.scene.presets import create_random_spheres_scene
    >>> from pathtrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=0)
    >>> setup_camera(camera)
"""

import numpy as np

from pathtrace.camera.thin_lens import ThinLensCamera
from pathtrace.scene.manager import SceneManager

# Half-width of the grid of small spheres: a and b run over [-GRID_EXTENT, GRID_EXTENT)
GRID_EXTENT = 11

# Radius of every sphere in the grid
SMALL_SPHERE_RADIUS = 0.2

# Grid spheres closer than this to the hollow glass shell are skipped
CLEARANCE_POINT = (4.0, 0.2, 0.0)
CLEARANCE_RADIUS = 0.9

# Cumulative material probabilities for grid spheres (diffuse, metal, else glass)
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95

GLASS_IOR = 1.5


def _random_color(rng: np.random.Generator, low: float = 0.0, high: float = 1.0) -> tuple[float, float, float]:
    r, g, b = rng.uniform(low, high, size=3)
    return (float(r), float(g), float(b))


def create_random_spheres_scene(
    seed: int = 0,
    aspect_ratio: float = 16.0 / 9.0,
    bvh_seed: int | None = None,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field scene.

    Layout:
        - Ground: Lambertian (0.5, 0.5, 0.8), center (0, -1000, 0), radius 1000
        - Grid: for a, b in [-11, 11), a sphere of radius 0.2 at
          (a + 0.9 * rand, 0.2, b + 0.9 * rand), skipped when within 0.9 of
          (4, 0.2, 0). Material: 80% diffuse with color rand * rand,
          15% metal with color in [0.5, 1) and fuzz in [0, 0.5), 5% glass 1.5.
        - Glass sphere at (0, 1, 0), radius 1
        - Hollow glass shell at (4, 1, 0): radius 1 with an inner radius -0.8
        - Metal (0.7, 0.6, 0.5), fuzz 0, at (-4, 1, 0), radius 1
        - Glass sphere at (0, 3, -5), radius 1.5

    Camera: lookfrom (6, 2, 12), lookat (0, 0, 0), vup (0, 1, 0), vfov 20,
    aperture 0.1, focus distance 10.

    Args:
        seed: Seed for sphere placement and materials.
        aspect_ratio: Image width / height, forwarded to the camera.
        bvh_seed: Seed for the BVH split axes. Defaults to ``seed``.

    Returns:
        Tuple of (SceneManager, ThinLensCamera). The BVH is already built.
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.8))

    for a in range(-GRID_EXTENT, GRID_EXTENT):
        for b in range(-GRID_EXTENT, GRID_EXTENT):
            choose_mat = rng.random()
            center = (a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random())
            offset = np.subtract(center, CLEARANCE_POINT)
            if np.linalg.norm(offset) <= CLEARANCE_RADIUS:
                continue

            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = tuple(
                    x * y for x, y in zip(_random_color(rng), _random_color(rng))
                )
                scene.add_lambertian_sphere(center, SMALL_SPHERE_RADIUS, albedo)
            elif choose_mat < METAL_PROBABILITY:
                albedo = _random_color(rng, 0.5, 1.0)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(center, SMALL_SPHERE_RADIUS, albedo, fuzz)
            else:
                scene.add_dielectric_sphere(center, SMALL_SPHERE_RADIUS, GLASS_IOR)

    scene.add_dielectric_sphere((0.0, 1.0, 0.0), 1.0, GLASS_IOR)
    scene.add_dielectric_sphere((4.0, 1.0, 0.0), 1.0, GLASS_IOR)
    scene.add_dielectric_sphere((4.0, 1.0, 0.0), -0.8, GLASS_IOR)
    scene.add_metal_sphere((-4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), 0.0)
    scene.add_dielectric_sphere((0.0, 3.0, -5.0), 1.5, GLASS_IOR)

    scene.build_bvh(seed if bvh_seed is None else bvh_seed)

    camera = ThinLensCamera(
        lookfrom=(6.0, 2.0, 12.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


def create_single_sphere_scene(
    aspect_ratio: float = 16.0 / 9.0,
    albedo: tuple[float, float, float] = (0.5, 0.5, 0.5),
    bvh_seed: int = 0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a single diffuse sphere on a diffuse ground sphere.

    Layout:
        - Sphere: Lambertian ``albedo``, center (0, 0, -1), radius 0.5
        - Ground: Lambertian ``albedo``, center (0, -100.5, -1), radius 100

    Camera: pinhole (aperture 0) at the origin looking down -z, vfov 90,
    focus distance 1. The upper part of the image sees only sky.

    Args:
        aspect_ratio: Image width / height, forwarded to the camera.
        albedo: Diffuse color of both spheres.
        bvh_seed: Seed for the BVH split axes.

    Returns:
        Tuple of (SceneManager, ThinLensCamera). The BVH is already built.
    """
    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo)
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, albedo)
    scene.build_bvh(bvh_seed)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=1.0,
    )
    return scene, camera


SCENES = {
    "random": create_random_spheres_scene,
    "single": create_single_sphere_scene,
}
