"""Image encoding and export for rendered images.

Every output path applies the same per-channel encoding to a pixel's sample
sum:

    1. divide by the sample count
    2. replace NaN by 0
    3. gamma 2 (square root)
    4. clamp to [0, 0.999]
    5. scale by 256 and truncate

Supported formats:
    - PPM (plain-text P3), streamed row by row
    - PNG (8-bit via Pillow)

Example:
    >>> import sys
    >>> from src.pathtracer.preview.export import write_ppm_header, write_ppm_row
    >>> write_ppm_header(sys.stdout, 2, 1)
    >>> write_ppm_row(sys.stdout, [(1.0, 0.25, 0.0), (0.0, 0.0, 0.0)], samples_per_pixel=1)
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Upper clamp applied before scaling to 8 bits
_CLAMP_MAX = 0.999


def encode_component(value: float, samples_per_pixel: int) -> int:
    """Encode one channel of a sample sum as an integer in [0, 255]."""
    scaled = value / samples_per_pixel
    if math.isnan(scaled):
        scaled = 0.0
    # Negative values are clamped before the square root
    corrected = math.sqrt(max(scaled, 0.0))
    return int(256 * min(max(corrected, 0.0), _CLAMP_MAX))


def encode_color(
    pixel_sum: Sequence[float], samples_per_pixel: int
) -> tuple[int, int, int]:
    """Encode a pixel's RGB sample sum.

    Args:
        pixel_sum: Sum of the pixel's radiance samples (R, G, B).
        samples_per_pixel: Number of samples in the sum.

    Returns:
        Tuple of (R, G, B) integers in [0, 255].
    """
    return (
        encode_component(float(pixel_sum[0]), samples_per_pixel),
        encode_component(float(pixel_sum[1]), samples_per_pixel),
        encode_component(float(pixel_sum[2]), samples_per_pixel),
    )


def write_ppm_header(stream: TextIO, width: int, height: int) -> None:
    """Write the three-line P3 header."""
    stream.write(f"P3\n{width} {height}\n255\n")


def write_ppm_row(
    stream: TextIO,
    row_sums: Iterable[Sequence[float]],
    samples_per_pixel: int,
) -> None:
    """Write one row of pixels, left to right, one ``"r g b"`` line each."""
    lines = []
    for pixel_sum in row_sums:
        r, g, b = encode_color(pixel_sum, samples_per_pixel)
        lines.append(f"{r} {g} {b}\n")
    stream.write("".join(lines))


def image_to_uint8(image: npt.NDArray[np.float32]) -> npt.NDArray[np.uint8]:
    """Encode an averaged linear image (H, W, 3) to 8 bits.

    Applies steps 2-5 of the encoding; the image is already averaged.
    """
    linear = np.nan_to_num(image.astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    corrected = np.sqrt(np.clip(linear, 0.0, None))
    return (256.0 * np.clip(corrected, 0.0, _CLAMP_MAX)).astype(np.uint8)


def save_png_from_array(image: npt.NDArray[np.float32], filepath: str) -> None:
    """Save an averaged linear image (H, W, 3) as an 8-bit PNG.

    Args:
        image: Averaged linear image, top row first.
        filepath: Output file path (should end in .png).
    """
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(filepath)
