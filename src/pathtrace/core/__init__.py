"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    sampler: Random sampling helpers built on ti.random
    integrator: Radiance estimation along a ray
    renderer: Worker-parallel rendering of a whole image

All per-ray operations are Taichi functions for parallel execution.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .sampler import (
    random_f32,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_range,
    random_unit_vector,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from pathtrace.core.integrator or pathtrace.core.renderer when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_f32",
    "random_range",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
