"""Render configuration.

Example:
    >>> from src.pathtracer.core.config import RenderConfig
    >>> config = RenderConfig(image_width=200, samples_per_pixel=16)
    >>> config.image_height
    200
"""

from dataclasses import dataclass

# Widest image the preallocated row buffers can hold
MAX_IMAGE_WIDTH = 2048

# Pixel indices (row * width + column) are passed to kernels as i32
MAX_IMAGE_HEIGHT = 2**31 // MAX_IMAGE_WIDTH - 1

# Seeds are passed to kernels as i32
MAX_SEED = 2**31 - 1


@dataclass(frozen=True)
class RenderConfig:
    """Run parameters of a render.

    Attributes:
        image_width: Output width in pixels, at most MAX_IMAGE_WIDTH.
        aspect_ratio: Width divided by height; the height is derived
            and must not exceed MAX_IMAGE_HEIGHT.
        samples_per_pixel: Number of primary rays traced per pixel.
        max_depth: Maximum number of bounces per path.
        background: Radiance returned by rays that escape the scene.
        seed: Seed of the per-sample generators, in [0, 2^31 - 1].

    Raises:
        ValueError: If any parameter is out of range.
    """

    image_width: int = 500
    aspect_ratio: float = 1.0
    samples_per_pixel: int = 100
    max_depth: int = 50
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)
    seed: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.image_width <= MAX_IMAGE_WIDTH:
            raise ValueError(
                f"image_width must be in [1, {MAX_IMAGE_WIDTH}], got {self.image_width}"
            )
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"image height {self.image_height} exceeds {MAX_IMAGE_HEIGHT}; "
                "increase aspect_ratio"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if len(self.background) != 3 or any(c < 0.0 for c in self.background):
            raise ValueError(
                f"background must be 3 non-negative components, got {self.background}"
            )
        if not 0 <= self.seed <= MAX_SEED:
            raise ValueError(f"seed must be in [0, {MAX_SEED}], got {self.seed}")

    @property
    def image_height(self) -> int:
        """Output height in pixels, at least 1."""
        return max(1, int(self.image_width / self.aspect_ratio))
