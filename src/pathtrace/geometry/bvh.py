"""Bounding Volume Hierarchy over scene spheres.

The hierarchy is built once on the host as a tree of ``BVHNode`` objects,
flattened into Taichi fields, and then traversed read-only on the device.

Construction picks a split axis uniformly at random for every node, orders
the primitives by the minimum coordinate of their boxes along that axis and
splits them at the midpoint. One primitive gives a node with only a left
child; two primitives become the node's two leaves directly. Every node caches
the union of its children's boxes at construction time.

Traversal rejects a node whose box the ray misses, otherwise visits the left
child and then the right child with the upper bound tightened to the closest
hit found so far. Taichi functions cannot recurse, so the device traversal
walks the flattened tree with a small explicit stack; it returns the same
nearest hit as the recursive formulation.

Example:
    >>> import random
    >>> prims = [PrimitiveRef(0, AABB((0, 0, 0), (1, 1, 1)))]
    >>> root = build_bvh(prims, random.Random(7))
    >>> upload_bvh(root)
    >>> # Use intersect_bvh within a Taichi kernel
"""


import random
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtrace.geometry.aabb import AABB, hit_aabb, surrounding_box
from pathtrace.geometry.sphere import hit_sphere
from pathtrace.scene.intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    get_sphere,
    hit_record_to_scene_hit_record,
    make_miss_record,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# A tree over N primitives has N leaves and at most N internal nodes
MAX_BVH_NODES = 2 * MAX_SPHERES

# Traversal stack depth; the midpoint split keeps trees near log2(N) deep
BVH_STACK_SIZE = 64


class PrimitiveRef(NamedTuple):
    """A primitive as seen by the builder: its storage index and its box."""

    index: int
    box: AABB | None


@dataclass(frozen=True)
class BVHNode:
    """A node of the host-side hierarchy.

    A leaf holds one primitive index. An internal node always has a left
    child and may lack a right child when a single primitive was left over.

    Attributes:
        box: The cached bounding box of everything below this node.
        left: The left child (internal nodes only).
        right: The optional right child (internal nodes only).
        primitive: The primitive index for leaves, -1 for internal nodes.
    """

    box: AABB
    left: "BVHNode | None" = None
    right: "BVHNode | None" = None
    primitive: int = -1

    @property
    def is_leaf(self) -> bool:
        return self.primitive >= 0


def _leaf(prim: PrimitiveRef) -> BVHNode:
    return BVHNode(box=prim.box, primitive=prim.index)


def _build(prims: list[PrimitiveRef], rng: random.Random) -> BVHNode:
    axis = rng.randrange(3)
    span = len(prims)

    if span == 1:
        left, right = _leaf(prims[0]), None
    elif span == 2:
        first, second = prims
        if first.box.minimum[axis] < second.box.minimum[axis]:
            left, right = _leaf(first), _leaf(second)
        else:
            left, right = _leaf(second), _leaf(first)
    else:
        ordered = sorted(prims, key=lambda p: p.box.minimum[axis])
        mid = span // 2
        left = _build(ordered[:mid], rng)
        right = _build(ordered[mid:], rng)

    if right is None:
        box = left.box
    else:
        box = surrounding_box(left.box, right.box)
    return BVHNode(box=box, left=left, right=right)


def build_bvh(primitives: Sequence[PrimitiveRef], rng: random.Random | None = None) -> BVHNode:
    """Build a hierarchy over a list of primitives.

    The split axis of every node is drawn from ``rng``; pass a seeded
    generator for a reproducible tree. The input sequence is not modified.

    Args:
        primitives: The primitives to partition, each with a bounding box.
        rng: Source of the per-node axis choice. Defaults to a fresh
            unseeded ``random.Random``.

    Returns:
        The root node. The root is always an internal node, even for a
        single primitive.

    Raises:
        ValueError: If primitives is empty or any primitive has no box.
    """
    if len(primitives) == 0:
        raise ValueError("Cannot build a BVH over an empty primitive list")
    for prim in primitives:
        if prim.box is None:
            raise ValueError(f"Primitive {prim.index} has no bounding box")
    if rng is None:
        rng = random.Random()
    return _build(list(primitives), rng)


def iter_nodes(root: BVHNode) -> Iterator[BVHNode]:
    """Yield every node of the tree in pre-order (node, left, right)."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.right is not None:
            stack.append(node.right)
        if node.left is not None:
            stack.append(node.left)


def count_nodes(root: BVHNode) -> int:
    """Count all nodes, leaves included."""
    return sum(1 for _ in iter_nodes(root))


def bvh_depth(root: BVHNode) -> int:
    """Length of the longest root-to-leaf path, counted in nodes."""
    if root.is_leaf:
        return 1
    depth = bvh_depth(root.left)
    if root.right is not None:
        depth = max(depth, bvh_depth(root.right))
    return depth + 1


def leaf_primitives(root: BVHNode) -> list[int]:
    """Primitive indices of all leaves, left to right."""
    return [node.primitive for node in iter_nodes(root) if node.is_leaf]


# =============================================================================
# Flattened Device Storage
# =============================================================================

bvh_box_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_box_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
# Child node indices; bvh_right is -1 for a node with only a left child
bvh_left = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_right = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
# Sphere index for leaves, -1 for internal nodes
bvh_primitive = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())


@dataclass
class FlatBVH:
    """Structure-of-arrays form of a tree, root at index 0, pre-order."""

    box_min: np.ndarray
    box_max: np.ndarray
    left: np.ndarray
    right: np.ndarray
    primitive: np.ndarray

    @property
    def node_count(self) -> int:
        return len(self.primitive)


def flatten_bvh(root: BVHNode) -> FlatBVH:
    """Lay a tree out in pre-order arrays with child links as indices."""
    nodes = list(iter_nodes(root))
    index_of = {id(node): i for i, node in enumerate(nodes)}
    count = len(nodes)

    box_min = np.zeros((count, 3), dtype=np.float32)
    box_max = np.zeros((count, 3), dtype=np.float32)
    left = np.full(count, -1, dtype=np.int32)
    right = np.full(count, -1, dtype=np.int32)
    primitive = np.full(count, -1, dtype=np.int32)

    for i, node in enumerate(nodes):
        box_min[i] = node.box.minimum
        box_max[i] = node.box.maximum
        if node.is_leaf:
            primitive[i] = node.primitive
        else:
            left[i] = index_of[id(node.left)]
            if node.right is not None:
                right[i] = index_of[id(node.right)]

    return FlatBVH(box_min, box_max, left, right, primitive)


def _padded(values: np.ndarray, fill: float | int) -> np.ndarray:
    shape = (MAX_BVH_NODES,) + values.shape[1:]
    out = np.full(shape, fill, dtype=values.dtype)
    out[: len(values)] = values
    return out


def upload_bvh(root: BVHNode) -> int:
    """Flatten a tree and copy it into the device fields.

    Args:
        root: The root returned by build_bvh.

    Returns:
        The number of nodes uploaded.

    Raises:
        RuntimeError: If the tree has more than MAX_BVH_NODES nodes.
    """
    flat = flatten_bvh(root)
    if flat.node_count > MAX_BVH_NODES:
        raise RuntimeError(
            f"BVH has {flat.node_count} nodes, but MAX_BVH_NODES is {MAX_BVH_NODES}"
        )

    bvh_box_min.from_numpy(_padded(flat.box_min, 0.0))
    bvh_box_max.from_numpy(_padded(flat.box_max, 0.0))
    bvh_left.from_numpy(_padded(flat.left, -1))
    bvh_right.from_numpy(_padded(flat.right, -1))
    bvh_primitive.from_numpy(_padded(flat.primitive, -1))
    num_bvh_nodes[None] = flat.node_count
    return flat.node_count


def clear_bvh() -> None:
    """Forget the uploaded tree; traversal then reports misses only."""
    num_bvh_nodes[None] = 0


def get_bvh_node_count() -> int:
    """Get the number of nodes currently uploaded."""
    return int(num_bvh_nodes[None])


# =============================================================================
# Device Traversal
# =============================================================================


@ti.func
def intersect_bvh(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the nearest sphere hit by walking the uploaded hierarchy.

    Internal nodes are tested against their cached box with the current
    closest hit as the upper bound; children are pushed right first so the
    left subtree is explored first. Leaves test their sphere directly.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The nearest hit within [t_min, t_max], or a miss record.
    """
    closest_t = t_max
    result = make_miss_record()

    stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
    stack_ptr = 0
    if num_bvh_nodes[None] > 0:
        stack_ptr = 1

    while stack_ptr > 0:
        stack_ptr -= 1
        node = stack[stack_ptr]
        prim = bvh_primitive[node]

        if prim >= 0:
            rec = hit_sphere(ray_origin, ray_direction, get_sphere(prim), t_min, closest_t)
            if rec.hit == 1:
                closest_t = rec.t
                result = hit_record_to_scene_hit_record(rec, prim)
        elif hit_aabb(
            bvh_box_min[node], bvh_box_max[node], ray_origin, ray_direction, t_min, closest_t
        ) == 1:
            right = bvh_right[node]
            if right >= 0:
                stack[stack_ptr] = right
                stack_ptr += 1
            stack[stack_ptr] = bvh_left[node]
            stack_ptr += 1

    return result
