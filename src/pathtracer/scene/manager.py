"""Unified scene manager for coordinating hittable nodes and materials.

The SceneManager maintains:
- A unified material_id space across all material types, mapping each id to
  (material_type, type_local_index) for dispatch in the integrator
- The hittable node graph: leaves, boxes, lists and wrappers, each addressed
  by a stable node id, with single ownership of every child
- Compilation of the graph (world root plus lights collection) into the flat
  instance table consumed by the Taichi kernels

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> white = scene.add_lambertian_material(albedo=(0.73, 0.73, 0.73))
    >>> lamp = scene.add_diffuse_light_material(emission=(15, 15, 15))
    >>> floor = scene.add_xz_rect(0, 555, 0, 555, 0, white)
    >>> light = scene.flip_face(scene.add_xz_rect(213, 343, 227, 332, 554, lamp))
    >>> world = scene.add_list([floor, light])
    >>> scene.build(world, lights=[light])
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Sequence

import taichi as ti
import taichi.math as tm

from src.pathtracer.geometry.rect import RectAxis
from src.pathtracer.geometry.transform import rotation_y_terms
from src.pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.pathtracer.materials.diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
)
from src.pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.pathtracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from src.pathtracer.scene.intersection import (
    HittableType,
    add_marker_node,
    add_rect_node,
    add_rotate_y_node,
    add_sphere_node,
    add_translate_node,
    clear_nodes,
    set_instances,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the integrator to determine which
    scattering and emission functions to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3


# Maximum number of materials across all types
MAX_MATERIALS = 1024  # 256 per type * 4 types

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    Returns:
        The index into the type-specific material array, -1 for invalid IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


_LEAF_TYPES = (
    HittableType.SPHERE,
    HittableType.XY_RECT,
    HittableType.XZ_RECT,
    HittableType.YZ_RECT,
)
_WRAPPER_TYPES = (HittableType.TRANSLATE, HittableType.ROTATE_Y, HittableType.FLIP_FACE)


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material array.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class NodeInfo:
    """Host-side description of a hittable node.

    Attributes:
        node_id: Stable id in the node arena.
        node_type: The node's variant.
        children: Owned child ids (one for wrappers, six for boxes, any
            number for lists, none for leaves).
        params: The construction parameters.
    """

    node_id: int
    node_type: HittableType
    children: list[int] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)


class SceneManager:
    """Unified scene manager coordinating hittable nodes and materials.

    Every child node is owned by exactly one box, list or wrapper; the world
    root and the lights collection are references into the same arena and
    may name the same nodes.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        nodes: List of NodeInfo indexed by node id.
        world: Root node id of the last build, or None.
        lights: Light node ids of the last build.

    Example:
        >>> scene = SceneManager()
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> ball = scene.add_sphere((190, 90, 190), 90, glass)
        >>> scene.build(scene.add_list([ball]), lights=[ball])
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.nodes: list[NodeInfo] = []
        self.world: int | None = None
        self.lights: list[int] = []
        self._owners: dict[int, int] = {}
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_nodes()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.nodes.clear()
        self._owners.clear()
        self.world = None
        self.lights = []

    def clear(self) -> None:
        """Clear the entire scene (nodes and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance color as (R, G, B) tuple in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material to the scene.

        Args:
            albedo: The reflective color as (R, G, B) tuple in [0, 1].
            fuzz: Reflection perturbation in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component or fuzz is outside [0, 1].
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Args:
            ior: Index of refraction. Default is 1.5 (typical glass).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If IOR is less than 1.0.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def add_diffuse_light_material(self, emission: tuple[float, float, float]) -> int:
        """Add a one-sided emissive material to the scene.

        Args:
            emission: Emitted radiance as (R, G, B); components may exceed 1.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any emission component is negative.
        """
        type_index = add_diffuse_light_material(emission)
        return self._register_material(
            MaterialType.DIFFUSE_LIGHT, type_index, {"emission": emission}
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        Returns:
            The MaterialType, or None for invalid material IDs.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    # =========================================================================
    # Node Management
    # =========================================================================

    def _check_material(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    def _check_node(self, node_id: int) -> None:
        if not isinstance(node_id, int) or node_id < 0 or node_id >= len(self.nodes):
            raise ValueError(f"Invalid node id: {node_id}")

    def _record(self, node_id: int, node_type: HittableType, **params: Any) -> int:
        # Arena ids and host list indices advance together
        assert node_id == len(self.nodes)
        self.nodes.append(NodeInfo(node_id=node_id, node_type=node_type, params=params))
        return node_id

    def _check_unowned(self, node_id: int) -> None:
        self._check_node(node_id)
        if node_id in self._owners:
            raise ValueError(
                f"Node {node_id} is already owned by node {self._owners[node_id]}"
            )

    def _is_ancestor(self, candidate: int, node_id: int) -> bool:
        """True if ``candidate`` is ``node_id`` or owns it transitively."""
        current: int | None = node_id
        while current is not None:
            if current == candidate:
                return True
            current = self._owners.get(current)
        return False

    def _claim(self, parent: int, child: int) -> None:
        """Make ``parent`` the exclusive owner of ``child``.

        Raises:
            ValueError: If the child does not exist, already has an owner, or
                owning it would create a cycle.
        """
        self._check_unowned(child)
        if self._is_ancestor(child, parent):
            raise ValueError(f"Adding node {child} under node {parent} would create a cycle")
        self._owners[child] = parent
        self.nodes[parent].children.append(child)

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere node.

        Returns:
            The node id of the sphere.

        Raises:
            RuntimeError: If sphere or node storage is exhausted.
            ValueError: If the radius is not positive or material_id is invalid.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self._check_material(material_id)
        node_id = add_sphere_node(vec3(center[0], center[1], center[2]), radius, material_id)
        return self._record(
            node_id, HittableType.SPHERE, center=center, radius=radius, material_id=material_id
        )

    def _add_rect(
        self,
        node_type: HittableType,
        axis: RectAxis,
        a0: float,
        a1: float,
        b0: float,
        b1: float,
        k: float,
        material_id: int,
    ) -> int:
        if a1 <= a0 or b1 <= b0:
            raise ValueError(
                f"Rectangle extents must be increasing, got [{a0}, {a1}] x [{b0}, {b1}]"
            )
        self._check_material(material_id)
        node_id = add_rect_node(node_type, int(axis), (a0, a1, b0, b1), k, material_id)
        return self._record(
            node_id, node_type, bounds=(a0, a1, b0, b1), k=k, material_id=material_id
        )

    def add_xy_rect(
        self, x0: float, x1: float, y0: float, y1: float, k: float, material_id: int
    ) -> int:
        """Add a rectangle in the plane z = k spanning [x0, x1] x [y0, y1]."""
        return self._add_rect(HittableType.XY_RECT, RectAxis.XY, x0, x1, y0, y1, k, material_id)

    def add_xz_rect(
        self, x0: float, x1: float, z0: float, z1: float, k: float, material_id: int
    ) -> int:
        """Add a rectangle in the plane y = k spanning [x0, x1] x [z0, z1]."""
        return self._add_rect(HittableType.XZ_RECT, RectAxis.XZ, x0, x1, z0, z1, k, material_id)

    def add_yz_rect(
        self, y0: float, y1: float, z0: float, z1: float, k: float, material_id: int
    ) -> int:
        """Add a rectangle in the plane x = k spanning [y0, y1] x [z0, z1]."""
        return self._add_rect(HittableType.YZ_RECT, RectAxis.YZ, y0, y1, z0, z1, k, material_id)

    def add_box(
        self,
        p0: tuple[float, float, float],
        p1: tuple[float, float, float],
        material_id: int,
    ) -> int:
        """Add an axis-aligned box made of six rectangles.

        Args:
            p0: Minimum corner.
            p1: Maximum corner.
            material_id: Material shared by all six faces.

        Returns:
            The node id of the box.

        Raises:
            ValueError: If p1 is not strictly greater than p0 on every axis.
        """
        if any(hi <= lo for lo, hi in zip(p0, p1)):
            raise ValueError(f"Box corners must satisfy p0 < p1, got {p0} and {p1}")
        self._check_material(material_id)

        faces = [
            self.add_xy_rect(p0[0], p1[0], p0[1], p1[1], p1[2], material_id),
            self.add_xy_rect(p0[0], p1[0], p0[1], p1[1], p0[2], material_id),
            self.add_xz_rect(p0[0], p1[0], p0[2], p1[2], p1[1], material_id),
            self.add_xz_rect(p0[0], p1[0], p0[2], p1[2], p0[1], material_id),
            self.add_yz_rect(p0[1], p1[1], p0[2], p1[2], p1[0], material_id),
            self.add_yz_rect(p0[1], p1[1], p0[2], p1[2], p0[0], material_id),
        ]
        box_id = self._record(
            add_marker_node(HittableType.BOX), HittableType.BOX, p0=p0, p1=p1,
            material_id=material_id,
        )
        for face in faces:
            self._claim(box_id, face)
        return box_id

    def add_list(self, members: Sequence[int] = ()) -> int:
        """Add an aggregate list owning ``members``.

        Returns:
            The node id of the list.

        Raises:
            ValueError: If a member does not exist or is already owned.
        """
        for member in members:
            self._check_unowned(member)
        if len(set(members)) != len(members):
            raise ValueError(f"List members must be distinct, got {list(members)}")
        list_id = self._record(add_marker_node(HittableType.LIST), HittableType.LIST)
        for member in members:
            self._claim(list_id, member)
        return list_id

    def add_to_list(self, list_id: int, member: int) -> None:
        """Append ``member`` to an existing list.

        Raises:
            ValueError: If ``list_id`` is not a list, ``member`` is unknown or
                already owned, or the addition would create a cycle.
        """
        self._check_node(list_id)
        if self.nodes[list_id].node_type != HittableType.LIST:
            raise ValueError(f"Node {list_id} is not a list")
        self._claim(list_id, member)

    def translate(self, child: int, offset: tuple[float, float, float]) -> int:
        """Wrap ``child`` in a translation by ``offset``."""
        self._check_unowned(child)
        node_id = self._record(
            add_translate_node(vec3(offset[0], offset[1], offset[2])),
            HittableType.TRANSLATE,
            offset=offset,
        )
        self._claim(node_id, child)
        return node_id

    def rotate_y(self, child: int, angle_degrees: float) -> int:
        """Wrap ``child`` in a rotation of ``angle_degrees`` about +Y."""
        self._check_unowned(child)
        sin_theta, cos_theta = rotation_y_terms(angle_degrees)
        node_id = self._record(
            add_rotate_y_node(sin_theta, cos_theta),
            HittableType.ROTATE_Y,
            angle=angle_degrees,
        )
        self._claim(node_id, child)
        return node_id

    def flip_face(self, child: int) -> int:
        """Wrap ``child`` so that its front-face flag is inverted."""
        self._check_unowned(child)
        node_id = self._record(add_marker_node(HittableType.FLIP_FACE), HittableType.FLIP_FACE)
        self._claim(node_id, child)
        return node_id

    def get_node_count(self) -> int:
        """Get the number of nodes in the arena."""
        return len(self.nodes)

    def get_node_info(self, node_id: int) -> NodeInfo:
        """Get the host-side description of a node.

        Raises:
            ValueError: If the node does not exist.
        """
        self._check_node(node_id)
        return self.nodes[node_id]

    # =========================================================================
    # Compilation
    # =========================================================================

    def _wrapper_chain_above(self, node_id: int) -> list[int]:
        """Wrappers owning ``node_id``, outermost first."""
        chain: list[int] = []
        current = self._owners.get(node_id)
        while current is not None:
            if self.nodes[current].node_type in _WRAPPER_TYPES:
                chain.append(current)
            current = self._owners.get(current)
        chain.reverse()
        return chain

    def _flatten(self, root: int, prefix: list[int]) -> list[tuple[int, list[int]]]:
        instances: list[tuple[int, list[int]]] = []
        stack: list[tuple[int, list[int]]] = [(root, prefix)]
        while stack:
            node_id, chain = stack.pop()
            info = self.nodes[node_id]
            if info.node_type in _LEAF_TYPES:
                instances.append((node_id, chain))
            elif info.node_type in _WRAPPER_TYPES:
                stack.append((info.children[0], chain + [node_id]))
            else:
                # Reversed so members come out in insertion order
                for child in reversed(info.children):
                    stack.append((child, chain))
        return instances

    def build(self, world: int, lights: Sequence[int] = ()) -> None:
        """Compile the world and lights into the kernel instance table.

        A light node is compiled together with the wrappers that own it in the
        graph, so a surface shared by the world and the lights is sampled
        exactly where it is rendered.

        Args:
            world: Root node id of the visible geometry.
            lights: Node ids that receive direct importance sampling.

        Raises:
            ValueError: If any id is unknown.
            RuntimeError: If the instance table capacity is exceeded.
        """
        self._check_node(world)
        for light in lights:
            self._check_node(light)

        world_instances = self._flatten(world, self._wrapper_chain_above(world))
        light_instances: list[tuple[int, list[int]]] = []
        for light in lights:
            light_instances.extend(self._flatten(light, self._wrapper_chain_above(light)))

        set_instances(world_instances, light_instances)
        self.world = world
        self.lights = list(lights)
        logger.debug(
            "Compiled scene: %d nodes, %d world instances, %d light instances",
            len(self.nodes),
            len(world_instances),
            len(light_instances),
        )
