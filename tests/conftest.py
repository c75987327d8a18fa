"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    # advanced_optimization=False works around a Taichi 1.7.4 compiler segfault
    # when kernels pass constant vectors with zero components (1/0 folding)
    ti.init(arch=ti.cpu, random_seed=42, advanced_optimization=False)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before any field is declared
    from pathtrace.camera.thin_lens import reset_camera
    from pathtrace.geometry.bvh import clear_bvh
    from pathtrace.materials.dielectric import clear_dielectric_materials
    from pathtrace.materials.lambertian import clear_lambertian_materials
    from pathtrace.materials.metal import clear_metal_materials
    from pathtrace.scene.intersection import clear_scene
    from pathtrace.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        clear_bvh()
        reset_camera()

    _clear_all()

    yield

    _clear_all()
