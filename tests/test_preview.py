"""Tests for the export module.

Covers the gamma-2 encoding, the PPM stream format and PNG export.
"""

import io
import os
import tempfile

import numpy as np
import pytest
from PIL import Image as PILImage


class TestEncoding:
    """Tests for the per-channel encoding."""

    def test_encode_color_averages_and_applies_gamma(self):
        from src.pathtracer.preview.export import encode_color

        # 4 samples summing to 1.0 average to 0.25, whose sqrt is 0.5
        assert encode_color((1.0, 0.0, 4.0), 4) == (128, 0, 255)

    def test_encode_clamps_to_255(self):
        from src.pathtracer.preview.export import encode_component

        assert encode_component(100.0, 1) == 255
        assert encode_component(0.999**2, 1) == 255

    def test_nan_and_negative_become_zero(self):
        from src.pathtracer.preview.export import encode_component

        assert encode_component(float("nan"), 10) == 0
        assert encode_component(-3.0, 10) == 0

    def test_image_to_uint8_matches_scalar_encoding(self):
        from src.pathtracer.preview.export import encode_component, image_to_uint8

        image = np.array([[[0.0, 0.25, 1.0], [0.01, 0.5, 4.0]]], dtype=np.float32)
        encoded = image_to_uint8(image)

        assert encoded.dtype == np.uint8
        assert encoded.shape == (1, 2, 3)
        for i in range(2):
            for c in range(3):
                assert encoded[0, i, c] == encode_component(float(image[0, i, c]), 1)


class TestPPM:
    """Tests for the plain-text PPM writer."""

    def test_header(self):
        from src.pathtracer.preview.export import write_ppm_header

        stream = io.StringIO()
        write_ppm_header(stream, 500, 250)
        assert stream.getvalue() == "P3\n500 250\n255\n"

    def test_rows_are_one_pixel_per_line(self):
        from src.pathtracer.preview.export import write_ppm_row

        stream = io.StringIO()
        sums = np.array([[2.0, 0.5, 0.0], [0.0, 0.0, 0.0]], dtype=np.float32)
        write_ppm_row(stream, sums, 2)
        assert stream.getvalue() == "255 128 0\n0 0 0\n"


class TestPNG:
    """Tests for PNG export."""

    def test_save_png_from_array(self):
        from src.pathtracer.preview.export import save_png_from_array

        image = np.zeros((4, 6, 3), dtype=np.float32)
        image[0, 0] = [1.0, 0.25, 0.0]

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.png")
            save_png_from_array(image, path)

            with PILImage.open(path) as loaded:
                assert loaded.size == (6, 4)
                assert loaded.mode == "RGB"
                pixels = np.array(loaded)
        assert tuple(pixels[0, 0]) == (255, 128, 0)
        assert tuple(pixels[3, 5]) == (0, 0, 0)
