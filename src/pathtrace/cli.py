"""Command line entry point.

Renders one of the bundled scenes and writes it as a P3 image, by default to
stdout. Progress goes to stderr so the image stream stays clean.

Usage:
    python -m pathtrace [options] > image.ppm

Options:
    --width WIDTH           Image width in pixels (default: 200)
    --aspect-ratio RATIO    Width / height (default: 16/9)
    --samples SAMPLES       Samples per pixel (default: 50)
    --max-depth DEPTH       Maximum bounces per path (default: 10)
    --threads THREADS       Worker threads (default: 2)
    --seed SEED             Random seed (default: 0)
    --scene {random,single} Scene to render (default: random)
    --output OUTPUT         PPM output path, "-" for stdout (default: stdout)
    --png PNG               Also save a PNG copy
    --arch {cpu,gpu}        Taichi backend (default: cpu)
    --quiet                 Suppress progress output

Example:
    python -m pathtrace --width 400 --samples 100 --output spheres.ppm --png spheres.png
"""

from __future__ import annotations

import argparse
import sys
import time
from fractions import Fraction

from pathtrace.config import (
    ARCHES,
    DEFAULT_IMAGE_WIDTH,
    DEFAULT_MAX_DEPTH,
    DEFAULT_SAMPLES_PER_PIXEL,
    DEFAULT_THREAD_COUNT,
    RenderSettings,
    init_taichi,
)


def _aspect_ratio(text: str) -> float:
    """Parse an aspect ratio given as a number or a fraction like 16/9."""
    try:
        value = float(Fraction(text))
    except (ValueError, ZeroDivisionError) as e:
        raise argparse.ArgumentTypeError(f"invalid aspect ratio {text!r}") from e
    if value <= 0.0:
        raise argparse.ArgumentTypeError(f"aspect ratio must be positive, got {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pathtrace",
        description="Render a sphere scene with a BVH-accelerated path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=DEFAULT_IMAGE_WIDTH,
        help=f"Image width in pixels (default: {DEFAULT_IMAGE_WIDTH})",
    )
    parser.add_argument(
        "--aspect-ratio",
        type=_aspect_ratio,
        default=16.0 / 9.0,
        help="Image width / height, e.g. 1.5 or 16/9 (default: 16/9)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=DEFAULT_SAMPLES_PER_PIXEL,
        help=f"Samples per pixel (default: {DEFAULT_SAMPLES_PER_PIXEL})",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum bounces per path (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=DEFAULT_THREAD_COUNT,
        help=f"Worker threads; samples are split across them (default: {DEFAULT_THREAD_COUNT})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for scene generation, BVH build and sampling (default: 0)",
    )
    parser.add_argument(
        "--scene",
        choices=["random", "single"],
        default="random",
        help="Scene to render (default: random)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        help='PPM output path, "-" for stdout (default: stdout)',
    )
    parser.add_argument(
        "--png",
        type=str,
        default=None,
        help="Also save a PNG copy to this path",
    )
    parser.add_argument(
        "--arch",
        choices=sorted(ARCHES),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> RenderSettings:
    """Build validated render settings from parsed arguments.

    Raises:
        ValueError: If the settings are out of range.
    """
    settings = RenderSettings(
        image_width=args.width,
        aspect_ratio=args.aspect_ratio,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        thread_count=args.threads,
        seed=args.seed,
    )
    settings.validate()
    return settings


def run(settings: RenderSettings, scene_name: str, output: str, png: str | None, quiet: bool) -> None:
    """Build the scene, render it and write the outputs.

    Taichi must already be initialized.
    """
    # Lazy imports so Taichi is initialized before fields are declared
    from pathtrace.core.renderer import Renderer, Scene
    from pathtrace.geometry.bvh import bvh_depth, count_nodes
    from pathtrace.preview.export import save_png, write_ppm
    from pathtrace.scene.presets import create_random_spheres_scene, create_single_sphere_scene

    def log(message: str) -> None:
        if not quiet:
            print(message, file=sys.stderr, flush=True)

    start_time = time.time()

    if scene_name == "random":
        world, camera = create_random_spheres_scene(
            seed=settings.seed, aspect_ratio=settings.aspect_ratio
        )
    else:
        world, camera = create_single_sphere_scene(
            aspect_ratio=settings.aspect_ratio, bvh_seed=settings.seed
        )

    root = world.bvh_root
    log(
        f"Scene '{scene_name}': {world.get_sphere_count()} spheres, "
        f"{world.get_material_count()} materials, "
        f"BVH {count_nodes(root)} nodes, depth {bvh_depth(root)}"
    )

    scene = Scene(
        camera=camera,
        world=world,
        image_width=settings.image_width,
        image_height=settings.image_height,
        max_depth=settings.max_depth,
        samples_per_pixel=settings.samples_per_pixel,
    )
    renderer = Renderer(scene, workers=settings.thread_count)
    log(
        f"Rendering {settings.image_width}x{settings.image_height}, "
        f"{renderer.samples_taken} spp on {renderer.workers} workers, "
        f"max depth {settings.max_depth}..."
    )

    render_start = time.time()
    image = renderer.render()
    log(f"Rendered in {time.time() - render_start:.2f}s")

    write_ppm(image, output)
    if output != "-":
        log(f"Saved PPM to: {output}")
    if png is not None:
        save_png(image, png)
        log(f"Saved PNG to: {png}")

    log(f"Total time: {time.time() - start_time:.2f}s")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    init_taichi(settings.thread_count, arch=args.arch, seed=settings.seed)

    try:
        run(settings, args.scene, args.output, args.png, args.quiet)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
