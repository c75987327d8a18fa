"""Integration tests for end-to-end rendering.

These tests build the bundled scenes, render them at a tiny resolution
and write the outputs the way the command line tool does.
"""

from __future__ import annotations

import subprocess
import sys

import numpy as np
import pytest


def _render_single_threaded(tmp_path, seed: int) -> str:
    """Render the single sphere scene in a fresh process on one CPU thread."""
    output = tmp_path / f"seed_{seed}_{len(list(tmp_path.iterdir()))}.ppm"
    subprocess.run(
        [
            sys.executable, "-m", "pathtrace",
            "--scene", "single",
            "--width", "8",
            "--aspect-ratio", "2",
            "--samples", "4",
            "--max-depth", "4",
            "--threads", "1",
            "--seed", str(seed),
            "--output", str(output),
            "--quiet",
        ],
        check=True,
        capture_output=True,
        timeout=300,
    )
    return output.read_text()


class TestRandomSpheresIntegration:
    """End-to-end tests for the random sphere field."""

    def test_random_scene_renders(self) -> None:
        """Test the full scene renders to a finite, non-black image."""
        from pathtrace.core.renderer import Renderer, Scene
        from pathtrace.scene.presets import create_random_spheres_scene

        world, camera = create_random_spheres_scene(seed=0, aspect_ratio=2.0)
        scene = Scene(
            camera=camera,
            world=world,
            image_width=12,
            image_height=6,
            max_depth=5,
            samples_per_pixel=2,
        )
        image = Renderer(scene, workers=2).render()

        assert image.shape == (6, 12, 3)
        assert np.isfinite(image).all()
        assert image.min() >= 0.0
        assert image.max() <= 1.0
        assert image.mean() > 0.05

    def test_bvh_matches_scene(self) -> None:
        """Test every sphere of the scene ends up in exactly one BVH leaf."""
        from pathtrace.geometry.bvh import bvh_depth, get_bvh_node_count, leaf_primitives
        from pathtrace.scene.presets import create_random_spheres_scene

        world, _ = create_random_spheres_scene(seed=1)
        leaves = leaf_primitives(world.bvh_root)
        assert sorted(leaves) == list(range(world.get_sphere_count()))
        assert get_bvh_node_count() > world.get_sphere_count()
        # Median splits keep the tree shallow
        assert bvh_depth(world.bvh_root) <= 12


class TestCommandLineRun:
    """End-to-end tests for the command line run function."""

    def test_run_writes_ppm_and_png(self, tmp_path) -> None:
        """Test run writes a decodable P3 file and a matching PNG."""
        from PIL import Image

        from pathtrace.cli import run
        from pathtrace.config import RenderSettings
        from pathtrace.preview.export import decode_ppm

        settings = RenderSettings(
            image_width=8, aspect_ratio=2.0, samples_per_pixel=2, max_depth=3, seed=0
        )
        ppm_path = tmp_path / "out.ppm"
        png_path = tmp_path / "out.png"
        run(settings, "single", str(ppm_path), str(png_path), quiet=True)

        pixels = decode_ppm(ppm_path.read_text())
        assert pixels.shape == (4, 8, 3)
        with Image.open(png_path) as png:
            np.testing.assert_array_equal(np.asarray(png), pixels)

    def test_run_logs_to_stderr(self, capsys) -> None:
        """Test progress goes to stderr and the image to stdout."""
        from pathtrace.cli import run
        from pathtrace.config import RenderSettings

        settings = RenderSettings(
            image_width=4, aspect_ratio=2.0, samples_per_pixel=2, max_depth=2, seed=0
        )
        run(settings, "single", "-", None, quiet=False)

        captured = capsys.readouterr()
        assert captured.out.startswith("P3\n4 2\n255\n")
        assert "Rendering 4x2" in captured.err
        assert "P3" not in captured.err


class TestReproducibility:
    """Seeded renders on a single thread."""

    def test_same_seed_same_image(self, tmp_path) -> None:
        """Test two processes with the same seed write identical files."""
        first = _render_single_threaded(tmp_path, seed=7)
        second = _render_single_threaded(tmp_path, seed=7)
        assert first.startswith("P3\n8 4\n255\n")
        assert first == second

    def test_different_seed_different_image(self, tmp_path) -> None:
        first = _render_single_threaded(tmp_path, seed=1)
        second = _render_single_threaded(tmp_path, seed=2)
        assert first != second


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
