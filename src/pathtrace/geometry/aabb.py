"""Axis-aligned bounding boxes.

The host side ``AABB`` value type is used while building the BVH: primitives
report their boxes and internal nodes cache the union of their children's boxes.
The device side ``hit_aabb`` is the slab test used during traversal.

Example:
    >>> a = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    >>> b = AABB((2.0, -1.0, 0.0), (3.0, 0.5, 1.0))
    >>> a.union(b)
    AABB(minimum=(0.0, -1.0, 0.0), maximum=(3.0, 1.0, 1.0))
"""


from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

Point = tuple[float, float, float]


@dataclass(frozen=True)
class AABB:
    """An axis-aligned box given by its minimum and maximum corners.

    Attributes:
        minimum: The corner with the smallest coordinate on every axis.
        maximum: The corner with the largest coordinate on every axis.

    Raises:
        ValueError: If minimum exceeds maximum on any axis.
    """

    minimum: Point
    maximum: Point

    def __post_init__(self) -> None:
        for axis in range(3):
            if self.minimum[axis] > self.maximum[axis]:
                raise ValueError(
                    f"AABB minimum {self.minimum} exceeds maximum {self.maximum} "
                    f"on axis {axis}"
                )

    def union(self, other: "AABB") -> "AABB":
        """Return the smallest box enclosing both this box and other."""
        return surrounding_box(self, other)

    def contains(self, other: "AABB") -> bool:
        """Check whether other lies entirely inside this box."""
        return all(
            self.minimum[axis] <= other.minimum[axis]
            and other.maximum[axis] <= self.maximum[axis]
            for axis in range(3)
        )


def surrounding_box(box0: AABB, box1: AABB) -> AABB:
    """Component-wise min of the minimums and max of the maximums."""
    small = (
        min(box0.minimum[0], box1.minimum[0]),
        min(box0.minimum[1], box1.minimum[1]),
        min(box0.minimum[2], box1.minimum[2]),
    )
    big = (
        max(box0.maximum[0], box1.maximum[0]),
        max(box0.maximum[1], box1.maximum[1]),
        max(box0.maximum[2], box1.maximum[2]),
    )
    return AABB(small, big)


@ti.func
def hit_aabb(
    box_min: vec3,
    box_max: vec3,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    For each axis the entry and exit parameters are computed with the inverse
    direction component. A zero component divides to a signed infinity, which
    the comparisons below clamp correctly; an entry/exit pair that becomes NaN
    (origin exactly on a slab plane) leaves the interval untouched. The
    interval [t_min, t_max] narrows axis by axis and the box is missed as soon
    as it becomes empty.

    Args:
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Lower bound of the accepted parameter interval.
        t_max: Upper bound of the accepted parameter interval.

    Returns:
        1 if the ray overlaps the box within the interval, 0 otherwise.
    """
    lo = t_min
    hi = t_max
    hit = 1

    for axis in ti.static(range(3)):
        if hit == 1:
            inv_d = 1.0 / ray_direction[axis]
            t0 = (box_min[axis] - ray_origin[axis]) * inv_d
            t1 = (box_max[axis] - ray_origin[axis]) * inv_d
            if inv_d < 0.0:
                tmp = t0
                t0 = t1
                t1 = tmp
            if t0 > lo:
                lo = t0
            if t1 < hi:
                hi = t1
            if hi <= lo:
                hit = 0

    return hit
