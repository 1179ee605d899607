#!/usr/bin/env python3
"""Render the Cornell box scene.

Builds the Cornell box, traces it with mixture importance sampling and writes
the image as plain-text PPM (to stdout by default) or PNG.

Usage:
    python -m examples.render_cornell_box [options]

Options:
    --width WIDTH           Image width in pixels (default: 500)
    --aspect-ratio RATIO    Width divided by height (default: 1.0)
    --samples SAMPLES       Samples per pixel (default: 1000)
    --depth DEPTH           Maximum bounces per path (default: 50)
    --background R G B      Radiance of escaped rays (default: 0 0 0)
    --seed SEED             Random seed (default: 0)
    --output OUTPUT         Output path; "-" writes PPM to stdout (default: -)
    --quiet                 Suppress progress output

Example:
    python -m examples.render_cornell_box --width 200 --samples 50 > cornell.ppm
    python -m examples.render_cornell_box --width 200 --output cornell.png
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TextIO

import numpy as np
import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Cornell box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=500,
        help="Image width in pixels (default: 500)",
    )
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=1.0,
        help="Width divided by height (default: 1.0)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=1000,
        help="Number of samples per pixel (default: 1000)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=50,
        help="Maximum number of bounces per path (default: 50)",
    )
    parser.add_argument(
        "--background",
        type=float,
        nargs=3,
        default=(0.0, 0.0, 0.0),
        metavar=("R", "G", "B"),
        help="Radiance of rays that escape the scene (default: 0 0 0)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="-",
        help='Output path, PNG if it ends in .png; "-" writes PPM to stdout (default: -)',
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_cornell_box(
    width: int = 500,
    aspect_ratio: float = 1.0,
    num_samples: int = 1000,
    max_depth: int = 50,
    background: tuple[float, float, float] = (0.0, 0.0, 0.0),
    seed: int = 0,
    output_path: str = "-",
    quiet: bool = False,
) -> None:
    """Render the Cornell box scene and write it out.

    Args:
        width: Image width in pixels.
        aspect_ratio: Width divided by height.
        num_samples: Number of samples per pixel.
        max_depth: Maximum number of bounces per path.
        background: Radiance of escaped rays.
        seed: Random seed.
        output_path: Output file path, or "-" for PPM on stdout.
        quiet: If True, suppress progress output.
    """
    # Lazy imports to allow Taichi initialization first
    from src.pathtracer.camera.thin_lens import setup_camera
    from src.pathtracer.core.config import RenderConfig
    from src.pathtracer.core.renderer import render
    from src.pathtracer.preview.export import (
        save_png_from_array,
        write_ppm_header,
        write_ppm_row,
    )
    from src.pathtracer.scene.cornell_box import CornellBoxParams, create_cornell_box_scene

    config = RenderConfig(
        image_width=width,
        aspect_ratio=aspect_ratio,
        samples_per_pixel=num_samples,
        max_depth=max_depth,
        background=background,
        seed=seed,
    )

    _, camera = create_cornell_box_scene(CornellBoxParams(aspect_ratio=aspect_ratio))
    setup_camera(camera)

    write_png = output_path.lower().endswith(".png")
    stream: TextIO | None = None
    if not write_png:
        stream = sys.stdout if output_path == "-" else open(output_path, "w")  # noqa: SIM115
        write_ppm_header(stream, config.image_width, config.image_height)

    def on_row(j: int, sums: np.ndarray) -> None:
        if not quiet:
            print(f"\rScanlines remaining: {j} ", end="", file=sys.stderr, flush=True)
        if stream is not None:
            write_ppm_row(stream, sums, config.samples_per_pixel)

    try:
        image = render(config, on_row=on_row)
    finally:
        if stream is not None and stream is not sys.stdout:
            stream.close()

    if write_png:
        save_png_from_array(image, output_path)

    if not quiet:
        print("\nDone.", file=sys.stderr)


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    ti.init(arch=ti.cpu)

    try:
        render_cornell_box(
            width=args.width,
            aspect_ratio=args.aspect_ratio,
            num_samples=args.samples,
            max_depth=args.depth,
            background=tuple(args.background),
            seed=args.seed,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
