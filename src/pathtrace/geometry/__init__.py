"""Geometry module for shape primitives and spatial acceleration.

Components:
    aabb: Axis-aligned bounding boxes and the ray/box slab test
    sphere: Sphere primitive with ray-sphere intersection
    bvh: Bounding Volume Hierarchy over the scene's spheres

All intersection routines are implemented as Taichi functions (@ti.func);
bounding boxes and BVH construction live on the host.
"""

from .aabb import AABB, hit_aabb, surrounding_box
from .sphere import HitRecord, Sphere, hit_sphere, set_face_normal, sphere_bounding_box

# Note: bvh is NOT imported here; it depends on the scene's sphere storage.
# Import directly from pathtrace.geometry.bvh when needed.

__all__ = [
    "AABB",
    "surrounding_box",
    "hit_aabb",
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "set_face_normal",
    "sphere_bounding_box",
]
