"""Unit tests for the thin-lens camera.

Tests cover:
- Parameter validation
- Basis construction
- Primary ray directions, lens jitter and shutter times
"""

import math

import numpy as np
import pytest
import taichi as ti


def _make_camera(**overrides):
    from src.pathtracer.camera.thin_lens import ThinLensCamera

    params = {
        "lookfrom": (278.0, 278.0, -800.0),
        "lookat": (278.0, 278.0, 0.0),
        "vup": (0.0, 1.0, 0.0),
        "vfov": 40.0,
        "aspect_ratio": 1.0,
        "aperture": 0.0,
        "focus_dist": 10.0,
        "time0": 0.0,
        "time1": 1.0,
    }
    params.update(overrides)
    return ThinLensCamera(**params)


def _rays(n, s, t):
    from src.pathtracer.camera.thin_lens import get_ray
    from src.pathtracer.core.rng import seed_rng

    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    times = ti.field(dtype=ti.f32, shape=n)

    @ti.kernel
    def test_kernel():
        for i in range(n):
            ray, _state = get_ray(s, t, seed_rng(0, i, 0))
            origins[i] = ray.origin
            directions[i] = ray.direction
            times[i] = ray.time

    test_kernel()
    return origins.to_numpy(), directions.to_numpy(), times.to_numpy()


class TestValidation:
    """Tests for construction-time validation."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"aperture": -1.0},
            {"focus_dist": 0.0},
            {"time0": 1.0, "time1": 0.5},
            {"lookat": (278.0, 278.0, -800.0)},
            {"vup": (0.0, 0.0, 1.0)},
        ],
    )
    def test_invalid_parameters(self, overrides):
        with pytest.raises(ValueError):
            _make_camera(**overrides)

    def test_lens_radius(self):
        assert _make_camera(aperture=2.0).lens_radius == 1.0


class TestSetup:
    """Tests for setup_camera."""

    def test_basis_vectors(self):
        from src.pathtracer.camera.thin_lens import get_camera_info, is_camera_ready, setup_camera

        assert not is_camera_ready()
        setup_camera(_make_camera())
        assert is_camera_ready()

        info = get_camera_info()
        assert np.allclose(info["origin"], [278.0, 278.0, -800.0])
        assert np.allclose(info["w"], [0.0, 0.0, -1.0], atol=1e-6)
        assert np.allclose(info["u"], [-1.0, 0.0, 0.0], atol=1e-6)
        assert np.allclose(info["v"], [0.0, 1.0, 0.0], atol=1e-6)

        height = 2.0 * math.tan(math.radians(20.0)) * 10.0
        assert np.linalg.norm(info["vertical"]) == pytest.approx(height, rel=1e-5)
        assert np.linalg.norm(info["horizontal"]) == pytest.approx(height, rel=1e-5)


class TestRayGeneration:
    """Tests for get_ray."""

    def test_center_ray_points_at_lookat(self):
        from src.pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera())
        origins, directions, _ = _rays(4, 0.5, 0.5)

        assert np.allclose(origins, [278.0, 278.0, -800.0])
        unit = directions / np.linalg.norm(directions, axis=1, keepdims=True)
        assert np.allclose(unit, [0.0, 0.0, 1.0], atol=1e-5)

    def test_corners_span_field_of_view(self):
        from src.pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera())
        _, bottom, _ = _rays(1, 0.5, 0.0)
        _, top, _ = _rays(1, 0.5, 1.0)

        angle = math.degrees(
            math.acos(np.dot(bottom[0], top[0]) / (np.linalg.norm(bottom[0]) * np.linalg.norm(top[0])))
        )
        assert angle == pytest.approx(40.0, abs=1e-3)
        # t = 1 is the top of the image
        assert top[0][1] > bottom[0][1]

    def test_shutter_times_within_interval(self):
        from src.pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera(time0=2.0, time1=3.0))
        _, _, times = _rays(500, 0.3, 0.7)

        assert times.min() >= 2.0
        assert times.max() <= 3.0
        assert times.std() > 0.1

    def test_aperture_jitters_origin_on_lens_disk(self):
        from src.pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera(aperture=4.0, focus_dist=800.0))
        origins, directions, _ = _rays(500, 0.5, 0.5)

        offsets = origins - np.array([278.0, 278.0, -800.0])
        assert (np.linalg.norm(offsets, axis=1) <= 2.0 + 1e-3).all()
        assert np.allclose(offsets[:, 2], 0.0, atol=1e-3)
        assert np.linalg.norm(offsets, axis=1).max() > 0.5
        # Every ray passes through the focus point
        focus = origins + directions
        assert np.allclose(focus, [278.0, 278.0, 0.0], atol=1e-2)
