"""Unit tests for the bounding volume hierarchy.

Tests cover:
- Host-side construction (empty input, one and two primitives, split order)
- Tree statistics and pre-order flattening
- Reproducibility of the tree for a fixed seed
- Device traversal agreeing with a linear scan over every sphere
"""

import random

import numpy as np
import pytest
import taichi as ti


def _boxes(centers, radius=0.5):
    from pathtrace.geometry.bvh import PrimitiveRef
    from pathtrace.geometry.sphere import sphere_bounding_box

    return [PrimitiveRef(i, sphere_bounding_box(c, radius)) for i, c in enumerate(centers)]


def _tree_shape(node):
    """Nested tuple describing the tree, for structural comparison."""
    if node.is_leaf:
        return node.primitive
    right = None if node.right is None else _tree_shape(node.right)
    return (_tree_shape(node.left), right)


class TestBVHBuild:
    """Tests for the host-side builder."""

    def test_empty_raises(self):
        """Test building over no primitives raises ValueError."""
        from pathtrace.geometry.bvh import build_bvh

        with pytest.raises(ValueError):
            build_bvh([])

    def test_missing_box_raises(self):
        """Test a primitive without a bounding box raises ValueError."""
        from pathtrace.geometry.bvh import PrimitiveRef, build_bvh

        with pytest.raises(ValueError):
            build_bvh([PrimitiveRef(0, None)])

    def test_single_primitive(self):
        """Test one primitive gives an internal node with only a left leaf."""
        from pathtrace.geometry.bvh import build_bvh, count_nodes

        prims = _boxes([(0.0, 0.0, 0.0)])
        root = build_bvh(prims, random.Random(0))
        assert not root.is_leaf
        assert root.left.is_leaf
        assert root.left.primitive == 0
        assert root.right is None
        assert root.box == prims[0].box
        assert count_nodes(root) == 2

    def test_two_primitives_ordered_on_axis(self):
        """Test two primitives are ordered by box minimum on the split axis."""
        from pathtrace.geometry.bvh import build_bvh

        # Primitive 0 is larger on every axis, so it always goes right
        prims = _boxes([(5.0, 5.0, 5.0), (0.0, 0.0, 0.0)])
        for seed in range(5):
            root = build_bvh(prims, random.Random(seed))
            assert root.left.primitive == 1
            assert root.right.primitive == 0

    def test_box_encloses_children(self):
        """Test every internal node's box contains its children's boxes."""
        from pathtrace.geometry.bvh import build_bvh, iter_nodes

        rng = np.random.default_rng(1)
        prims = _boxes([tuple(c) for c in rng.uniform(-10, 10, size=(40, 3))])
        root = build_bvh(prims, random.Random(2))
        for node in iter_nodes(root):
            if not node.is_leaf:
                assert node.box.contains(node.left.box)
                if node.right is not None:
                    assert node.box.contains(node.right.box)

    def test_every_primitive_in_one_leaf(self):
        """Test each primitive appears in exactly one leaf."""
        from pathtrace.geometry.bvh import build_bvh, leaf_primitives

        prims = _boxes([(float(i), 0.0, 0.0) for i in range(17)])
        root = build_bvh(prims, random.Random(3))
        assert sorted(leaf_primitives(root)) == list(range(17))

    def test_input_not_modified(self):
        """Test the input sequence keeps its order."""
        from pathtrace.geometry.bvh import build_bvh

        prims = _boxes([(float(-i), 0.0, 0.0) for i in range(6)])
        before = list(prims)
        build_bvh(prims, random.Random(0))
        assert prims == before

    def test_same_seed_same_tree(self):
        """Test a fixed seed reproduces the same tree."""
        from pathtrace.geometry.bvh import build_bvh

        rng = np.random.default_rng(4)
        prims = _boxes([tuple(c) for c in rng.uniform(-5, 5, size=(30, 3))])
        first = build_bvh(prims, random.Random(9))
        second = build_bvh(prims, random.Random(9))
        assert _tree_shape(first) == _tree_shape(second)


class TestBVHStats:
    """Tests for node counts, depth and flattening."""

    def test_counts_and_depth(self):
        """Test a balanced split of four primitives."""
        from pathtrace.geometry.bvh import build_bvh, bvh_depth, count_nodes

        prims = _boxes([(float(i), float(i), float(i)) for i in range(4)])
        root = build_bvh(prims, random.Random(0))
        # Root, two internal nodes, four leaves
        assert count_nodes(root) == 7
        assert bvh_depth(root) == 3

    def test_flatten_preorder(self):
        """Test flattened arrays put the root first and link children by index."""
        from pathtrace.geometry.bvh import build_bvh, count_nodes, flatten_bvh

        prims = _boxes([(float(i), 0.0, 0.0) for i in range(5)])
        root = build_bvh(prims, random.Random(0))
        flat = flatten_bvh(root)

        assert flat.node_count == count_nodes(root)
        assert flat.primitive[0] == -1
        assert flat.left[0] == 1
        np.testing.assert_allclose(flat.box_min[0], root.box.minimum)
        np.testing.assert_allclose(flat.box_max[0], root.box.maximum)
        for i in range(flat.node_count):
            if flat.primitive[i] >= 0:
                assert flat.left[i] == -1
                assert flat.right[i] == -1
            else:
                # Pre-order: children come after their parent
                assert flat.left[i] > i
                assert flat.right[i] == -1 or flat.right[i] > flat.left[i]

    def test_upload_and_clear(self):
        """Test upload reports the node count and clear resets it."""
        from pathtrace.geometry.bvh import (
            build_bvh,
            clear_bvh,
            count_nodes,
            get_bvh_node_count,
            upload_bvh,
        )

        root = build_bvh(_boxes([(0.0, 0.0, 0.0), (2.0, 0.0, 0.0), (4.0, 0.0, 0.0)]))
        assert upload_bvh(root) == count_nodes(root)
        assert get_bvh_node_count() == count_nodes(root)
        clear_bvh()
        assert get_bvh_node_count() == 0


class TestBVHTraversal:
    """Tests for device traversal against the linear scan."""

    N_RAYS = 512

    def _compare(self):
        from pathtrace.geometry.bvh import intersect_bvh
        from pathtrace.scene.intersection import intersect_spheres_linear

        n_rays = self.N_RAYS
        rng = np.random.default_rng(11)
        origins = rng.uniform(-8.0, 8.0, size=(self.N_RAYS, 3)).astype(np.float32)
        # Aim roughly at the scene so most rays hit something
        targets = rng.uniform(-3.0, 3.0, size=(self.N_RAYS, 3)).astype(np.float32)
        directions = targets - origins

        o_field = ti.Vector.field(3, dtype=ti.f32, shape=self.N_RAYS)
        d_field = ti.Vector.field(3, dtype=ti.f32, shape=self.N_RAYS)
        bvh_hit = ti.field(dtype=ti.i32, shape=self.N_RAYS)
        bvh_prim = ti.field(dtype=ti.i32, shape=self.N_RAYS)
        bvh_t = ti.field(dtype=ti.f32, shape=self.N_RAYS)
        lin_hit = ti.field(dtype=ti.i32, shape=self.N_RAYS)
        lin_prim = ti.field(dtype=ti.i32, shape=self.N_RAYS)
        lin_t = ti.field(dtype=ti.f32, shape=self.N_RAYS)
        o_field.from_numpy(origins)
        d_field.from_numpy(directions)

        @ti.kernel
        def test_kernel():
            for k in range(n_rays):
                a = intersect_bvh(o_field[k], d_field[k], 0.001, 1e30)
                b = intersect_spheres_linear(o_field[k], d_field[k], 0.001, 1e30)
                bvh_hit[k] = a.hit
                bvh_prim[k] = a.primitive_id
                bvh_t[k] = a.t
                lin_hit[k] = b.hit
                lin_prim[k] = b.primitive_id
                lin_t[k] = b.t

        test_kernel()
        np.testing.assert_array_equal(bvh_hit.to_numpy(), lin_hit.to_numpy())
        hits = lin_hit.to_numpy() == 1
        np.testing.assert_allclose(bvh_t.to_numpy()[hits], lin_t.to_numpy()[hits], rtol=1e-5)
        return hits, bvh_prim.to_numpy(), lin_prim.to_numpy()

    @pytest.mark.parametrize("n_spheres", [1, 2, 3, 50])
    def test_matches_linear_scan(self, n_spheres):
        """Test BVH traversal finds the same nearest hit as a linear scan."""
        from pathtrace.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        rng = np.random.default_rng(n_spheres)
        for center in rng.uniform(-3.0, 3.0, size=(n_spheres, 3)):
            scene.add_sphere(tuple(float(x) for x in center), float(rng.uniform(0.5, 1.5)), mat)
        scene.build_bvh(seed=n_spheres)

        hits, bvh_prim, lin_prim = self._compare()
        assert hits.any()
        # Overlapping spheres can tie on t; the hit distance is already checked
        assert (bvh_prim[hits] == lin_prim[hits]).mean() > 0.99

    def test_empty_hierarchy_misses(self):
        """Test traversal with no uploaded tree reports a miss."""
        from pathtrace.geometry.bvh import intersect_bvh, vec3

        hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            rec = intersect_bvh(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0.001, 1e30)
            hit[None] = rec.hit

        test_kernel()
        assert hit[None] == 0

    def test_nearest_of_stacked_spheres(self):
        """Test the nearest of several spheres along one ray is returned."""
        from pathtrace.geometry.bvh import intersect_bvh, vec3
        from pathtrace.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        far = scene.add_sphere((0.0, 0.0, -10.0), 1.0, mat)
        near = scene.add_sphere((0.0, 0.0, -3.0), 1.0, mat)
        scene.add_sphere((0.0, 0.0, -6.0), 1.0, mat)
        scene.build_bvh(seed=0)

        prim = ti.field(dtype=ti.i32, shape=())
        t = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                rec = intersect_bvh(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0.001, 1e30)
                prim[None] = rec.primitive_id
                t[None] = rec.t

        test_kernel()
        assert prim[None] == near
        assert prim[None] != far
        assert abs(t[None] - 2.0) < 1e-5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
