"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimator. The estimate for a ray is
defined recursively:

    radiance(ray, 0) = black
    radiance(ray, depth) =
        sky(ray)                                    if the ray misses
        attenuation * radiance(scattered, depth-1)  if the material scatters
        black                                       if the material absorbs

Taichi functions cannot recurse, so the recursion is unrolled into a loop of
at most ``max_depth`` bounces that carries the running product of
attenuations (the path throughput). A path that exhausts its depth budget
while still bouncing contributes black, exactly like the recursive form.

Intersections are found through the BVH over [T_MIN, +inf). The lower bound
keeps a scattered ray from re-hitting the surface it starts on.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtrace.core.integrator import radiance
    >>> # Use within a Taichi kernel:
    >>> # color = radiance(ray.origin, ray.direction, max_depth)
"""

import taichi as ti
import taichi.math as tm

from pathtrace.geometry.bvh import intersect_bvh
from pathtrace.materials.dielectric import scatter_dielectric_by_id
from pathtrace.materials.lambertian import scatter_lambertian_by_id
from pathtrace.materials.metal import scatter_metal_by_id
from pathtrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# t_min and t_max for scene intersection
T_MIN = 0.001
T_MAX = tm.inf

# Sky gradient endpoints: white toward the horizon, blue straight up
SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)


# =============================================================================
# Background
# =============================================================================


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Background radiance for a ray that escapes the scene.

    Blends white and sky blue by ``t = 0.5 * (unit_direction.y + 1)``.

    Args:
        direction: The ray direction (any length).

    Returns:
        ``(1 - t) * white + t * (0.5, 0.7, 1.0)``.
    """
    unit_direction = tm.normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_HORIZON_COLOR + t * SKY_ZENITH_COLOR


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Dispatch to the scatter function of the hit surface's material.

    A hit without a registered material breaks the scene contract; it trips
    an assertion when Taichi runs in debug mode and is absorbed otherwise.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction.
        normal: The surface normal (normalized, facing toward ray).
        front_face: 1 if hit front face, 0 if back face.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)
    assert mat_type >= 0, "Hit recorded with no material"

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter = scatter_lambertian_by_id(
            type_index, normal
        )
    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter = scatter_metal_by_id(
            type_index, incident_direction, normal
        )
    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, incident_direction, normal, front_face
        )

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def radiance(
    ray_origin: vec3,
    ray_direction: vec3,
    max_depth: ti.i32,
) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (any length).
        max_depth: Maximum number of intersections to follow. 0 gives black.

    Returns:
        The estimated radiance (RGB) for this path sample.
    """
    origin = ray_origin
    direction = ray_direction
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Cleared on escape or absorption (Taichi doesn't support break in ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_bvh(origin, direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * sky_color(direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = scatter_material(
                    rec.material_id, direction, rec.normal, rec.front_face
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = rec.point
                    direction = scattered_direction

    return color


# =============================================================================
# Single-Ray Kernels (host access for tests and debugging)
# =============================================================================


_trace_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_ray_kernel(origin: vec3, direction: vec3, max_depth: ti.i32):
    # Single-iteration loop keeps the bounce loop serial
    for _ in range(1):
        _trace_result[None] = radiance(origin, direction, max_depth)


@ti.kernel
def _background_kernel(direction: vec3):
    _trace_result[None] = sky_color(direction)


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int,
) -> tuple[float, float, float]:
    """Estimate the radiance along one ray from Python.

    Raises:
        ValueError: If max_depth is negative.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")
    _trace_ray_kernel(vec3(*origin), vec3(*direction), max_depth)
    color = _trace_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def background(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    """Evaluate the sky gradient for one direction from Python."""
    _background_kernel(vec3(*direction))
    color = _trace_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))
