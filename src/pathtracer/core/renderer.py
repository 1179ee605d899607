"""Scanline render driver.

Rows are produced from the top of the image (``j = height - 1``) to the
bottom. For every row one kernel fans out over all (column, sample) pairs in
parallel. Each task seeds its own generator from (seed, pixel index, sample
index) and writes its estimate into a private slot of the row sample buffer;
a second kernel then sums each pixel's slots in sample order. Rows with more
samples than the buffer holds are processed in several passes whose sums
are added in order. The result is therefore identical for a given seed
regardless of thread scheduling.

A row is handed to the caller only after all of its samples are reduced.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.config import RenderConfig
    >>> from src.pathtracer.core.renderer import render
    >>> from src.pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> image = render(RenderConfig(image_width=100, samples_per_pixel=10))
"""

import logging
import time
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.thin_lens import get_ray, is_camera_ready
from src.pathtracer.core.config import MAX_IMAGE_WIDTH, RenderConfig
from src.pathtracer.core.integrator import estimate
from src.pathtracer.core.rng import next_float, seed_rng
from src.pathtracer.scene.intersection import instances_ready

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Type alias for row callback
# Callback receives (row index counted from the bottom, per-pixel sample sums)
RowCallback = Callable[[int, npt.NDArray[np.float32]], None]

# Samples per pixel evaluated in one pass over a row
SAMPLE_BATCH = 64

# Private per-task sample slots of the current row
_row_samples = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, SAMPLE_BATCH))

# Per-pixel sample sums of the current row
_row_sums = ti.Vector.field(3, dtype=ti.f32, shape=MAX_IMAGE_WIDTH)

_background = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _sample_row(
    row: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_start: ti.i32,
    batch: ti.i32,
    depth: ti.i32,
    seed: ti.i32,
):
    """Trace ``batch`` samples for every pixel of ``row``."""
    for i, k in ti.ndrange(width, batch):
        rng = seed_rng(seed, row * width + i, sample_start + k)
        du, rng = next_float(rng)
        dv, rng = next_float(rng)
        s = (ti.cast(i, ti.f32) + du) / ti.cast(ti.max(width - 1, 1), ti.f32)
        t = (ti.cast(row, ti.f32) + dv) / ti.cast(ti.max(height - 1, 1), ti.f32)
        ray, rng = get_ray(s, t, rng)
        color, rng = estimate(ray, _background[None], depth, rng)
        _row_samples[i, k] = color


@ti.kernel
def _reduce_row(width: ti.i32, batch: ti.i32):
    """Add each pixel's sample slots, in sample order, to its row sum."""
    for i in range(width):
        total = vec3(0.0, 0.0, 0.0)
        for k in range(batch):
            total += _row_samples[i, k]
        _row_sums[i] += total


def _check_ready() -> None:
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    if not instances_ready():
        raise RuntimeError("Scene not built. Call SceneManager.build() first.")


def render_rows(
    config: RenderConfig,
) -> Generator[tuple[int, npt.NDArray[np.float32]], None, None]:
    """Render the image row by row, top row first.

    Args:
        config: Run parameters.

    Yields:
        Tuple of (row index counted from the bottom, sample sums of shape
        (width, 3)).

    Raises:
        RuntimeError: If the camera or the scene has not been set up.
    """
    _check_ready()

    width = config.image_width
    height = config.image_height
    spp = config.samples_per_pixel
    _background[None] = [config.background[0], config.background[1], config.background[2]]

    for j in range(height - 1, -1, -1):
        _row_sums.fill(0.0)
        for sample_start in range(0, spp, SAMPLE_BATCH):
            batch = min(SAMPLE_BATCH, spp - sample_start)
            _sample_row(j, width, height, sample_start, batch, config.max_depth, config.seed)
            _reduce_row(width, batch)
        logger.debug("Row %d done", j)
        yield j, _row_sums.to_numpy()[:width]


def render(config: RenderConfig, on_row: RowCallback | None = None) -> npt.NDArray[np.float32]:
    """Render the compiled scene through the configured camera.

    Args:
        config: Run parameters.
        on_row: Optional callback called once per finished row, in output
            order, with the row index (counted from the bottom) and its
            per-pixel sample sums.

    Returns:
        The averaged linear image, shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If the camera or the scene has not been set up.
    """
    width = config.image_width
    height = config.image_height
    logger.info(
        "Rendering %dx%d at %d spp, max depth %d, seed %d",
        width,
        height,
        config.samples_per_pixel,
        config.max_depth,
        config.seed,
    )
    start = time.perf_counter()

    image = np.zeros((height, width, 3), dtype=np.float32)
    for j, sums in render_rows(config):
        image[height - 1 - j] = sums / config.samples_per_pixel
        if on_row is not None:
            on_row(j, sums)

    logger.info("Render finished in %.2f s", time.perf_counter() - start)
    return image
