"""Tests for the bundled scenes.

Tests cover:
- Random sphere field layout, materials and reproducibility
- Single sphere scene layout
- Camera settings returned with each scene
"""

import numpy as np
import pytest


class TestRandomSpheresScene:
    """Tests for create_random_spheres_scene."""

    def test_layout(self):
        """Test ground, grid and feature spheres are present."""
        from pathtrace.scene.presets import create_random_spheres_scene

        scene, camera = create_random_spheres_scene(seed=0)
        spheres = scene.spheres

        # Ground first, five feature spheres last, at most 22 x 22 grid spheres between
        assert spheres[0].center == (0.0, -1000.0, 0.0)
        assert spheres[0].radius == 1000.0
        grid = spheres[1:-5]
        assert 0 < len(grid) <= 22 * 22
        assert all(s.radius == 0.2 and s.center[1] == 0.2 for s in grid)
        assert [s.radius for s in spheres[-5:]] == [1.0, 1.0, -0.8, 1.0, 1.5]
        assert scene.has_bvh()
        assert scene.get_sphere_count() == len(spheres)

    def test_grid_keeps_clear_of_feature_sphere(self):
        """Test no grid sphere sits within the clearance radius of (4, 0.2, 0)."""
        from pathtrace.scene.presets import CLEARANCE_POINT, CLEARANCE_RADIUS
        from pathtrace.scene.presets import create_random_spheres_scene

        scene, _ = create_random_spheres_scene(seed=3)
        for sphere in scene.spheres[1:-5]:
            distance = np.linalg.norm(np.subtract(sphere.center, CLEARANCE_POINT))
            assert distance > CLEARANCE_RADIUS

    def test_material_mix(self):
        """Test the grid mixes all three material types, mostly diffuse."""
        from pathtrace.scene.manager import MaterialType
        from pathtrace.scene.presets import create_random_spheres_scene

        scene, _ = create_random_spheres_scene(seed=0)
        types = [scene.get_material_type_python(s.material_id) for s in scene.spheres[1:-5]]
        diffuse = types.count(MaterialType.LAMBERTIAN)
        assert diffuse > len(types) // 2
        assert MaterialType.METAL in types
        assert MaterialType.DIELECTRIC in types

    def test_same_seed_same_scene(self):
        from pathtrace.scene.presets import create_random_spheres_scene

        first, _ = create_random_spheres_scene(seed=5)
        first_centers = [s.center for s in first.spheres]
        second, _ = create_random_spheres_scene(seed=5)
        assert [s.center for s in second.spheres] == first_centers

    def test_camera(self):
        from pathtrace.scene.presets import create_random_spheres_scene

        _, camera = create_random_spheres_scene(seed=0, aspect_ratio=1.5)
        assert camera.lookfrom == (6.0, 2.0, 12.0)
        assert camera.lookat == (0.0, 0.0, 0.0)
        assert camera.vfov == 20.0
        assert camera.aperture == 0.1
        assert camera.focus_dist == 10.0
        assert camera.aspect_ratio == 1.5


class TestSingleSphereScene:
    """Tests for create_single_sphere_scene."""

    def test_layout(self):
        from pathtrace.scene.presets import create_single_sphere_scene

        scene, camera = create_single_sphere_scene(albedo=(0.3, 0.4, 0.5))
        assert [(s.center, s.radius) for s in scene.spheres] == [
            ((0.0, 0.0, -1.0), 0.5),
            ((0.0, -100.5, -1.0), 100.0),
        ]
        info = scene.get_material_info(scene.spheres[0].material_id)
        assert info.params["albedo"] == (0.3, 0.4, 0.5)
        assert scene.has_bvh()
        assert camera.aperture == 0.0
        assert camera.vfov == 90.0

    def test_scene_registry(self):
        from pathtrace.scene.presets import (
            SCENES,
            create_random_spheres_scene,
            create_single_sphere_scene,
        )

        assert SCENES["random"] is create_random_spheres_scene
        assert SCENES["single"] is create_single_sphere_scene


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
