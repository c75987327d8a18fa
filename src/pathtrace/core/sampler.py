"""Random sampling helpers for Monte Carlo path tracing.

All draws come from Taichi's built-in generator (``ti.random``), which keeps
one state per runtime thread. It is seeded once through ``ti.init`` (see
``pathtrace.config.init_taichi``); with a single CPU thread the sequence, and
therefore the rendered image, depends only on that seed.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     return random_f32()
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum rejection-sampling attempts before giving up on a draw
MAX_REJECTION_ATTEMPTS = 100


@ti.func
def random_f32() -> ti.f32:
    """Draw a uniform float in [0, 1)."""
    return ti.random(ti.f32)


@ti.func
def random_range(low: ti.f32, high: ti.f32) -> ti.f32:
    """Draw a uniform float in [low, high)."""
    return low + (high - low) * ti.random(ti.f32)


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point strictly inside the unit sphere.

    Uses rejection sampling from the [-1, 1]^3 cube, which yields uniformly
    distributed points within the sphere.

    Returns:
        A random point with squared length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            if tm.dot(candidate, candidate) < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere."""
    p = random_in_unit_sphere()
    result = vec3(0.0, 1.0, 0.0)
    if tm.dot(p, p) > 0.0:
        result = p / tm.length(p)
    return result


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Used by the thin-lens camera for defocus blur.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = True
    return p
