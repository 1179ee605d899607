"""Cornell box scene configuration.

The scene is the classic 555-unit box viewed through its open front:

- Green wall at x = 555, red wall at x = 0
- White floor, ceiling and back wall
- Emissive ceiling light, flipped so that it emits downward
- Mirror-finish aluminum box, rotated 15 degrees about Y
- Glass sphere resting on the floor

The ceiling light and the glass sphere are the importance-sampled lights.
Both are the same nodes that the world renders.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
"""

from dataclasses import dataclass

from src.pathtracer.camera.thin_lens import ThinLensCamera
from src.pathtracer.scene.manager import SceneManager

# Box spans [0, BOX_SIZE] on every axis
BOX_SIZE = 555.0

# Ceiling light footprint: x range, z range and height
LIGHT_RECT = (213.0, 343.0, 227.0, 332.0, 554.0)


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    All defaults reproduce the classic configuration.

    Attributes:
        light_intensity: Emitted radiance of the ceiling light per channel.
        light_color: RGB tint multiplied into the emission.
        left_wall_color: Albedo of the wall at x = 555 (seen on the left).
        right_wall_color: Albedo of the wall at x = 0 (seen on the right).
        white_color: Albedo of floor, ceiling and back wall.
        box_albedo: Reflectance of the aluminum box.
        box_fuzz: Fuzz of the aluminum box.
        box_angle: Rotation of the box about +Y in degrees.
        sphere_ior: Refractive index of the glass sphere.
        aspect_ratio: Camera aspect ratio.

    Example:
        >>> params = CornellBoxParams(light_intensity=7.0)
        >>> params.box_angle
        15.0
    """

    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    right_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    white_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    box_albedo: tuple[float, float, float] = (0.8, 0.85, 0.88)
    box_fuzz: float = 0.0
    box_angle: float = 15.0
    sphere_ior: float = 1.5
    aspect_ratio: float = 1.0


def create_cornell_box_camera(aspect_ratio: float = 1.0) -> ThinLensCamera:
    """Camera looking into the box through its open front."""
    return ThinLensCamera(
        lookfrom=(278.0, 278.0, -800.0),
        lookat=(278.0, 278.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=10.0,
        time0=0.0,
        time1=1.0,
    )


def create_cornell_box_scene(
    params: CornellBoxParams | None = None,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create and compile the Cornell box scene.

    Args:
        params: Optional CornellBoxParams; defaults to CornellBoxParams().

    Returns:
        A tuple of (SceneManager, ThinLensCamera). The scene is already
        built; the camera still has to be passed to setup_camera().
    """
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager()

    red = scene.add_lambertian_material(params.right_wall_color)
    white = scene.add_lambertian_material(params.white_color)
    green = scene.add_lambertian_material(params.left_wall_color)
    light = scene.add_diffuse_light_material(
        tuple(params.light_intensity * c for c in params.light_color)
    )
    aluminum = scene.add_metal_material(params.box_albedo, fuzz=params.box_fuzz)
    glass = scene.add_dielectric_material(ior=params.sphere_ior)

    x0, x1, z0, z1, y = LIGHT_RECT
    ceiling_light = scene.flip_face(scene.add_xz_rect(x0, x1, z0, z1, y, light))

    box = scene.add_box((0.0, 0.0, 0.0), (165.0, 330.0, 165.0), aluminum)
    box = scene.rotate_y(box, params.box_angle)
    box = scene.translate(box, (265.0, 0.0, 295.0))

    glass_sphere = scene.add_sphere((190.0, 90.0, 190.0), 90.0, glass)

    world = scene.add_list(
        [
            scene.add_yz_rect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, green),
            scene.add_yz_rect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, red),
            ceiling_light,
            scene.add_xz_rect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white),
            scene.add_xz_rect(0.0, BOX_SIZE, 0.0, BOX_SIZE, 0.0, white),
            scene.add_xy_rect(0.0, BOX_SIZE, 0.0, BOX_SIZE, BOX_SIZE, white),
            box,
            glass_sphere,
        ]
    )
    scene.build(world, lights=[ceiling_light, glass_sphere])

    return scene, create_cornell_box_camera(params.aspect_ratio)
