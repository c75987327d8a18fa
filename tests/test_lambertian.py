"""Unit tests for the Lambertian material module.

Tests cover:
- Scatter function (direction, attenuation, never absorbing)
- Scattered directions leaning toward the normal
- Material registry operations
"""

import pytest
import taichi as ti

N_SAMPLES = 1000


class TestLambertianScatter:
    """Tests for Lambertian scatter."""

    def test_attenuation_is_albedo(self):
        """Test attenuation equals albedo and the ray always scatters."""
        from pathtrace.materials.lambertian import scatter_lambertian

        min_scatter = ti.field(dtype=ti.i32, shape=())
        max_err = ti.field(dtype=ti.f32, shape=())
        min_scatter[None] = 1

        @ti.kernel
        def test_kernel():
            albedo = ti.math.vec3(0.5, 0.3, 0.1)
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            for i in range(N_SAMPLES):
                direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)
                ti.atomic_min(min_scatter[None], did_scatter)
                ti.atomic_max(max_err[None], (attenuation - albedo).norm())

        test_kernel()
        assert min_scatter[None] == 1
        assert max_err[None] < 1e-6

    def test_direction_in_normal_hemisphere(self):
        """Test normal + unit vector never points below the surface."""
        from pathtrace.materials.lambertian import scatter_lambertian

        min_dot = ti.field(dtype=ti.f32, shape=())
        min_dot[None] = 10.0

        @ti.kernel
        def test_kernel():
            albedo = ti.math.vec3(0.5, 0.5, 0.5)
            normal = ti.math.vec3(0.0, 0.0, 1.0)
            for i in range(N_SAMPLES):
                direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)
                ti.atomic_min(min_dot[None], direction.dot(normal))

        test_kernel()
        assert min_dot[None] >= -1e-5

    def test_direction_is_cosine_weighted(self):
        """Test the mean cosine with the normal is 2/3 for cosine-weighted sampling."""
        from pathtrace.materials.lambertian import scatter_lambertian

        total = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            albedo = ti.math.vec3(0.5, 0.5, 0.5)
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            for i in range(N_SAMPLES):
                for _ in range(10):
                    direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)
                    total[None] += direction.normalized().dot(normal)

        test_kernel()
        assert abs(total[None] / (N_SAMPLES * 10) - 2.0 / 3.0) < 0.03

    def test_cancelling_unit_vector_falls_back_to_normal(self):
        """Test a unit vector equal to the negated normal yields the normal."""
        from pathtrace.materials.lambertian import diffuse_direction

        cancelled = ti.Vector.field(3, dtype=ti.f32, shape=())
        regular = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 0.6, 0.8)
            cancelled[None] = diffuse_direction(normal, -normal)
            regular[None] = diffuse_direction(normal, ti.math.vec3(1.0, 0.0, 0.0))

        test_kernel()
        assert tuple(cancelled[None]) == pytest.approx((0.0, 0.6, 0.8), abs=1e-6)
        assert tuple(regular[None]) == pytest.approx((1.0, 0.6, 0.8), abs=1e-6)


class TestLambertianRegistry:
    """Tests for the material registry."""

    def test_add_material_returns_index(self):
        """Test materials get sequential indices."""
        from pathtrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_material_count,
        )

        assert add_lambertian_material((0.1, 0.2, 0.3)) == 0
        assert add_lambertian_material((0.4, 0.5, 0.6)) == 1
        assert get_lambertian_material_count() == 2

    def test_albedo_out_of_range_raises(self):
        """Test albedo components outside [0, 1] raise ValueError."""
        from pathtrace.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError):
            add_lambertian_material((1.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            add_lambertian_material((0.5, -0.1, 0.5))

    def test_scatter_by_id_uses_stored_albedo(self):
        """Test scatter_lambertian_by_id reads the registered albedo."""
        from pathtrace.materials.lambertian import (
            add_lambertian_material,
            scatter_lambertian_by_id,
        )

        add_lambertian_material((0.9, 0.9, 0.9))
        idx = add_lambertian_material((0.2, 0.4, 0.6))
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                direction, attenuation, did_scatter = scatter_lambertian_by_id(
                    idx, ti.math.vec3(0.0, 1.0, 0.0)
                )
                result[None] = attenuation

        test_kernel()
        r = result[None]
        assert abs(r[0] - 0.2) < 1e-6
        assert abs(r[1] - 0.4) < 1e-6
        assert abs(r[2] - 0.6) < 1e-6


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
