"""Unit tests for scene-level intersection through the instance table.

Tests cover:
- Nearest-hit selection over a list
- Translation, rotation and face-flip wrappers
- Light density and sampling through wrapper chains
"""

import math

import numpy as np
import pytest
import taichi as ti


@pytest.fixture
def scene():
    from src.pathtracer.scene.manager import SceneManager

    manager = SceneManager()
    yield manager
    manager.clear()


def _trace(origin, direction):
    """Run hit_world for a single ray and return the record as a dict."""
    from src.pathtracer.core.ray import make_ray, vec3
    from src.pathtracer.scene.intersection import hit_world

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel():
        for _ in range(1):
            ray = make_ray(
                vec3(origin[0], origin[1], origin[2]),
                vec3(direction[0], direction[1], direction[2]),
                0.0,
            )
            rec = hit_world(ray, 0.001, 1e10)
            hit[None] = rec.hit
            t_val[None] = rec.t
            point[None] = rec.point
            normal[None] = rec.normal
            front_face[None] = rec.front_face
            material_id[None] = rec.material_id

    test_kernel()
    return {
        "hit": hit[None],
        "t": t_val[None],
        "point": np.array(point[None]),
        "normal": np.array(normal[None]),
        "front_face": front_face[None],
        "material_id": material_id[None],
    }


class TestNearestHit:
    """Tests for nearest-hit aggregation."""

    def test_list_returns_closest_surface(self, scene):
        near = scene.add_lambertian_material(albedo=(0.1, 0.1, 0.1))
        far = scene.add_lambertian_material(albedo=(0.9, 0.9, 0.9))
        world = scene.add_list(
            [
                scene.add_sphere((0.0, 0.0, -10.0), 1.0, far),
                scene.add_sphere((0.0, 0.0, -3.0), 1.0, near),
            ]
        )
        scene.build(world)

        rec = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert abs(rec["t"] - 2.0) < 1e-5
        assert rec["material_id"] == near

    def test_empty_world_misses(self, scene):
        scene.build(scene.add_list())
        rec = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 0

    def test_box_hit(self, scene):
        white = scene.add_lambertian_material(albedo=(0.7, 0.7, 0.7))
        scene.build(scene.add_box((-1.0, -1.0, -6.0), (1.0, 1.0, -4.0), white))

        rec = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert abs(rec["t"] - 4.0) < 1e-5
        assert np.allclose(rec["normal"], [0.0, 0.0, 1.0], atol=1e-5)
        assert rec["front_face"] == 1


class TestWrappers:
    """Tests for translation, rotation and face flipping."""

    def test_translate_moves_hit_point(self, scene):
        white = scene.add_lambertian_material(albedo=(0.7, 0.7, 0.7))
        ball = scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.build(scene.translate(ball, (0.0, 0.0, -5.0)))

        rec = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert abs(rec["t"] - 4.0) < 1e-5
        assert np.allclose(rec["point"], [0.0, 0.0, -4.0], atol=1e-5)
        assert np.allclose(rec["normal"], [0.0, 0.0, 1.0], atol=1e-5)

    def test_rotate_y_turns_normal(self, scene):
        """A +X facing YZ rect rotated by 90 degrees faces -Z."""
        white = scene.add_lambertian_material(albedo=(0.7, 0.7, 0.7))
        rect = scene.add_yz_rect(-1.0, 1.0, -1.0, 1.0, 0.0, white)
        rotated = scene.rotate_y(rect, 90.0)
        scene.build(scene.translate(rotated, (0.0, 0.0, -5.0)))

        rec = _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert abs(rec["t"] - 5.0) < 1e-4
        assert np.allclose(rec["point"], [0.0, 0.0, -5.0], atol=1e-4)
        # Normal still faces against the ray
        assert np.allclose(rec["normal"], [0.0, 0.0, 1.0], atol=1e-5)
        # Rotated outward normal is (0, 0, -1): the ray arrives from behind
        assert rec["front_face"] == 0

    def test_rotate_y_misses_outside_rotated_extent(self, scene):
        white = scene.add_lambertian_material(albedo=(0.7, 0.7, 0.7))
        # Thin slab along x, rotated 90 degrees so it extends along z instead
        slab = scene.add_box((-3.0, -1.0, -0.1), (3.0, 1.0, 0.1), white)
        scene.build(scene.translate(scene.rotate_y(slab, 90.0), (0.0, 0.0, -10.0)))

        assert _trace((2.0, 0.0, 0.0), (0.0, 0.0, -1.0))["hit"] == 0
        assert _trace((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))["hit"] == 1

    def test_flip_face_inverts_front_face_only(self, scene):
        lamp = scene.add_diffuse_light_material(emission=(1.0, 1.0, 1.0))
        rect = scene.add_xz_rect(-1.0, 1.0, -1.0, 1.0, 2.0, lamp)
        scene.build(scene.flip_face(rect))

        rec = _trace((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert rec["hit"] == 1
        assert rec["front_face"] == 1
        assert np.allclose(rec["normal"], [0.0, -1.0, 0.0], atol=1e-5)
        assert rec["material_id"] == lamp


def _light_queries(origin, direction, n=1):
    """Evaluate lights_pdf_value once and lights_random n times from origin."""
    from src.pathtracer.core.ray import vec3
    from src.pathtracer.core.rng import seed_rng
    from src.pathtracer.scene.intersection import lights_pdf_value, lights_random

    density = ti.field(dtype=ti.f32, shape=())
    samples = ti.Vector.field(3, dtype=ti.f32, shape=n)
    sample_pdfs = ti.field(dtype=ti.f32, shape=n)

    @ti.kernel
    def test_kernel():
        o = vec3(origin[0], origin[1], origin[2])
        density[None] = lights_pdf_value(o, vec3(direction[0], direction[1], direction[2]))
        for i in range(n):
            d, _state = lights_random(o, seed_rng(0, i, 0))
            samples[i] = d
            sample_pdfs[i] = lights_pdf_value(o, d)

    test_kernel()
    return density[None], samples.to_numpy(), sample_pdfs.to_numpy()


class TestLights:
    """Tests for the light-importance queries."""

    def test_no_lights_density_is_zero(self, scene):
        white = scene.add_lambertian_material(albedo=(0.7, 0.7, 0.7))
        world = scene.add_list([scene.add_sphere((0.0, 0.0, -3.0), 1.0, white)])
        scene.build(world)

        from src.pathtracer.core.ray import vec3
        from src.pathtracer.scene.intersection import lights_pdf_value

        density = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            density[None] = lights_pdf_value(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))

        test_kernel()
        assert density[None] == 0.0

    def test_density_is_mean_over_lights(self, scene):
        lamp = scene.add_diffuse_light_material(emission=(1.0, 1.0, 1.0))
        above = scene.add_xz_rect(-1.0, 1.0, -1.0, 1.0, 2.0, lamp)
        below = scene.add_xz_rect(-1.0, 1.0, -1.0, 1.0, -2.0, lamp)
        scene.build(scene.add_list([above, below]), lights=[above, below])

        density, _, _ = _light_queries((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        # Single-light density is 4 / (1 * 4) = 1; the other light contributes 0
        assert abs(density - 0.5) < 1e-5

    def test_samples_toward_translated_rotated_light(self, scene):
        lamp = scene.add_diffuse_light_material(emission=(1.0, 1.0, 1.0))
        rect = scene.add_xy_rect(-1.0, 1.0, -1.0, 1.0, 0.0, lamp)
        light = scene.translate(scene.rotate_y(rect, 30.0), (0.0, 0.0, -5.0))
        scene.build(scene.add_list([light]), lights=[light])

        _, samples, pdfs = _light_queries((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), n=200)
        # Every sampled direction reaches the light and has positive density
        assert (pdfs > 0.0).all()
        for d in samples[:20]:
            rec = _trace((0.0, 0.0, 0.0), tuple(float(c) for c in d))
            assert rec["hit"] == 1
            assert abs(rec["t"] - 1.0) < 1e-3

    def test_light_shared_with_world_inherits_wrappers(self, scene):
        """A light named below its wrapper is sampled where it is rendered."""
        lamp = scene.add_diffuse_light_material(emission=(1.0, 1.0, 1.0))
        ball = scene.add_sphere((0.0, 0.0, 0.0), 1.0, lamp)
        scene.build(scene.add_list([scene.translate(ball, (0.0, 0.0, -4.0))]), lights=[ball])

        density, samples, _ = _light_queries((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), n=50)
        cos_theta_max = math.sqrt(1.0 - 1.0 / 16.0)
        expected = 1.0 / (2.0 * math.pi * (1.0 - cos_theta_max))
        assert abs(density - expected) / expected < 1e-3
        unit = samples / np.linalg.norm(samples, axis=1, keepdims=True)
        assert (-unit[:, 2] >= cos_theta_max - 1e-4).all()
