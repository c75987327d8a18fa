"""Scene module for scene storage and construction.

Components:
    intersection: Sphere storage fields, scene hit records and the linear
        reference intersection
    manager: Scene manager coordinating spheres, materials and the BVH
    presets: Ready-made scenes with matching cameras

Scene data is organized for efficient device access:
    - Structure-of-Arrays layout for sphere data
    - Unified material IDs mapped to per-type registries
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_spheres_linear,
)

# Note: manager and presets are NOT imported here; they depend on the BVH,
# which depends on the sphere storage above. Import them directly.

__all__ = [
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_spheres_linear",
    "MAX_SPHERES",
]
