"""Scene-level storage and intersection over the hittable node arena.

Every hittable is a node with a stable integer id. ``node_types[id]`` holds
its HittableType and ``node_type_indices[id]`` the index into the per-type
Structure-of-Arrays storage below (the same split the material registry
uses for material ids).

Aggregates (boxes and lists) exist only on the host. Before rendering the
node graph is compiled into a flat instance table: each instance is one leaf
(sphere or rectangle) plus the chain of wrapper nodes above it, outermost
first. Wrappers never change the hit parameter, so the nearest hit over the
instance table is the nearest hit of the whole tree.

Instances ``[0, num_world_instances)`` make up the world; the light instances
follow in ``[light_instance_start, light_instance_start + num_light_instances)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.intersection import (
    ...     add_sphere_node, clear_nodes, set_instances, hit_world
    ... )
    >>> clear_nodes()
    >>> ball = add_sphere_node(ti.math.vec3(0, 0, -1), 0.5, material_id=0)
    >>> set_instances([(ball, [])], [])
    >>> # Use hit_world within a Taichi kernel
"""

from enum import IntEnum
from typing import Sequence

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray
from src.pathtracer.core.rng import next_index
from src.pathtracer.geometry.hit_record import HitRecord, make_miss_record
from src.pathtracer.geometry.rect import Rect, hit_rect, rect_pdf_value, rect_random
from src.pathtracer.geometry.sphere import Sphere, hit_sphere, sphere_pdf_value, sphere_random
from src.pathtracer.geometry.transform import rotate_y_to_local, rotate_y_to_world

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class HittableType(IntEnum):
    """Enumeration of hittable node variants."""

    SPHERE = 0
    XY_RECT = 1
    XZ_RECT = 2
    YZ_RECT = 3
    BOX = 4
    LIST = 5
    TRANSLATE = 6
    ROTATE_Y = 7
    FLIP_FACE = 8


# Capacity of the node arena and of each per-type store
MAX_NODES = 8192
MAX_SPHERES = 1024
MAX_RECTS = 4096
MAX_TRANSLATES = 1024
MAX_ROTATIONS = 1024

# Capacity of the compiled instance table
MAX_INSTANCES = 4096
MAX_CHAIN_LENGTH = 8

# Node arena
node_types = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_type_indices = ti.field(dtype=ti.i32, shape=MAX_NODES)
num_nodes = ti.field(dtype=ti.i32, shape=())

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Rectangle storage; rect_bounds holds (a0, a1, b0, b1)
rect_axes = ti.field(dtype=ti.i32, shape=MAX_RECTS)
rect_bounds = ti.Vector.field(4, dtype=ti.f32, shape=MAX_RECTS)
rect_ks = ti.field(dtype=ti.f32, shape=MAX_RECTS)
rect_material_ids = ti.field(dtype=ti.i32, shape=MAX_RECTS)
num_rects = ti.field(dtype=ti.i32, shape=())

# Wrapper storage
translate_offsets = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRANSLATES)
num_translates = ti.field(dtype=ti.i32, shape=())
rotation_sines = ti.field(dtype=ti.f32, shape=MAX_ROTATIONS)
rotation_cosines = ti.field(dtype=ti.f32, shape=MAX_ROTATIONS)
num_rotations = ti.field(dtype=ti.i32, shape=())

# Instance table
instance_leaves = ti.field(dtype=ti.i32, shape=MAX_INSTANCES)
instance_chain_lengths = ti.field(dtype=ti.i32, shape=MAX_INSTANCES)
instance_chains = ti.field(dtype=ti.i32, shape=(MAX_INSTANCES, MAX_CHAIN_LENGTH))
num_world_instances = ti.field(dtype=ti.i32, shape=())
light_instance_start = ti.field(dtype=ti.i32, shape=())
num_light_instances = ti.field(dtype=ti.i32, shape=())
_instances_ready = ti.field(dtype=ti.i32, shape=())


def clear_nodes() -> None:
    """Clear the node arena, all per-type stores and the instance table."""
    num_nodes[None] = 0
    num_spheres[None] = 0
    num_rects[None] = 0
    num_translates[None] = 0
    num_rotations[None] = 0
    num_world_instances[None] = 0
    light_instance_start[None] = 0
    num_light_instances[None] = 0
    _instances_ready[None] = 0


def _add_node(node_type: HittableType, type_index: int) -> int:
    node_id = num_nodes[None]
    if node_id >= MAX_NODES:
        raise RuntimeError(f"Maximum number of hittable nodes ({MAX_NODES}) exceeded")
    node_types[node_id] = int(node_type)
    node_type_indices[node_id] = type_index
    num_nodes[None] = node_id + 1
    return node_id


def add_sphere_node(center: vec3, radius: float, material_id: int) -> int:
    """Store a sphere and return its node id.

    Raises:
        RuntimeError: If sphere or node storage is exhausted.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return _add_node(HittableType.SPHERE, idx)


def add_rect_node(
    node_type: HittableType,
    axis: int,
    bounds: tuple[float, float, float, float],
    k: float,
    material_id: int,
) -> int:
    """Store an axis-aligned rectangle and return its node id.

    Args:
        node_type: One of the three rectangle node types.
        axis: The matching RectAxis value.
        bounds: (a0, a1, b0, b1) extents along the spanned axes.
        k: Plane constant.
        material_id: Unified material id.

    Raises:
        RuntimeError: If rectangle or node storage is exhausted.
    """
    idx = num_rects[None]
    if idx >= MAX_RECTS:
        raise RuntimeError(f"Maximum number of rectangles ({MAX_RECTS}) exceeded")
    rect_axes[idx] = axis
    rect_bounds[idx] = ti.Vector([bounds[0], bounds[1], bounds[2], bounds[3]])
    rect_ks[idx] = k
    rect_material_ids[idx] = material_id
    num_rects[None] = idx + 1
    return _add_node(node_type, idx)


def add_translate_node(offset: vec3) -> int:
    """Store a translation wrapper and return its node id."""
    idx = num_translates[None]
    if idx >= MAX_TRANSLATES:
        raise RuntimeError(f"Maximum number of translations ({MAX_TRANSLATES}) exceeded")
    translate_offsets[idx] = offset
    num_translates[None] = idx + 1
    return _add_node(HittableType.TRANSLATE, idx)


def add_rotate_y_node(sin_theta: float, cos_theta: float) -> int:
    """Store a Y-rotation wrapper and return its node id."""
    idx = num_rotations[None]
    if idx >= MAX_ROTATIONS:
        raise RuntimeError(f"Maximum number of rotations ({MAX_ROTATIONS}) exceeded")
    rotation_sines[idx] = sin_theta
    rotation_cosines[idx] = cos_theta
    num_rotations[None] = idx + 1
    return _add_node(HittableType.ROTATE_Y, idx)


def add_marker_node(node_type: HittableType) -> int:
    """Register a node with no kernel-side data (box, list, flip face)."""
    return _add_node(node_type, -1)


def get_node_count() -> int:
    """Get the number of nodes in the arena."""
    return int(num_nodes[None])


def get_node_type(node_id: int) -> HittableType:
    """Get the HittableType of a node (Python side)."""
    return HittableType(int(node_types[node_id]))


def set_instances(
    world: Sequence[tuple[int, Sequence[int]]],
    lights: Sequence[tuple[int, Sequence[int]]],
) -> None:
    """Upload the compiled instance table.

    Args:
        world: (leaf node id, wrapper chain outermost first) per world leaf.
        lights: The same for every leaf reachable from the lights collection.

    Raises:
        RuntimeError: If the table or a wrapper chain exceeds its capacity.
    """
    total = len(world) + len(lights)
    if total > MAX_INSTANCES:
        raise RuntimeError(f"Maximum number of instances ({MAX_INSTANCES}) exceeded")

    for slot, (leaf, chain) in enumerate(list(world) + list(lights)):
        if len(chain) > MAX_CHAIN_LENGTH:
            raise RuntimeError(
                f"Wrapper chain of length {len(chain)} exceeds maximum ({MAX_CHAIN_LENGTH})"
            )
        instance_leaves[slot] = leaf
        instance_chain_lengths[slot] = len(chain)
        for depth, wrapper in enumerate(chain):
            instance_chains[slot, depth] = wrapper

    num_world_instances[None] = len(world)
    light_instance_start[None] = len(world)
    num_light_instances[None] = len(lights)
    _instances_ready[None] = 1


def instances_ready() -> bool:
    """Check whether an instance table has been uploaded since the last clear."""
    return bool(_instances_ready[None])


def get_world_instance_count() -> int:
    """Get the number of compiled world instances."""
    return int(num_world_instances[None])


def get_light_instance_count() -> int:
    """Get the number of compiled light instances."""
    return int(num_light_instances[None])


# =============================================================================
# Kernel-side queries
# =============================================================================


@ti.func
def _is_rect_type(node_type: ti.i32) -> ti.i32:
    return (
        node_type == int(HittableType.XY_RECT)
        or node_type == int(HittableType.XZ_RECT)
        or node_type == int(HittableType.YZ_RECT)
    )


@ti.func
def _sphere_at(idx: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[idx], radius=sphere_radii[idx])


@ti.func
def _rect_at(idx: ti.i32) -> Rect:
    bounds = rect_bounds[idx]
    return Rect(
        axis=rect_axes[idx],
        a0=bounds[0],
        a1=bounds[1],
        b0=bounds[2],
        b1=bounds[3],
        k=rect_ks[idx],
    )


@ti.func
def _to_leaf_frame(instance: ti.i32, origin: vec3, direction: vec3):
    """Apply the instance's wrapper chain, outermost first, to a ray."""
    local_origin = origin
    local_direction = direction
    chain_length = instance_chain_lengths[instance]
    for depth in range(MAX_CHAIN_LENGTH):
        if depth < chain_length:
            node = instance_chains[instance, depth]
            node_type = node_types[node]
            idx = node_type_indices[node]
            if node_type == int(HittableType.TRANSLATE):
                local_origin = local_origin - translate_offsets[idx]
            elif node_type == int(HittableType.ROTATE_Y):
                s = rotation_sines[idx]
                c = rotation_cosines[idx]
                local_origin = rotate_y_to_local(local_origin, s, c)
                local_direction = rotate_y_to_local(local_direction, s, c)
    return local_origin, local_direction


@ti.func
def _hit_leaf(leaf: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    node_type = node_types[leaf]
    idx = node_type_indices[leaf]
    rec = make_miss_record()
    if node_type == int(HittableType.SPHERE):
        rec = hit_sphere(ray, _sphere_at(idx), t_min, t_max)
        rec.material_id = sphere_material_ids[idx]
    elif _is_rect_type(node_type):
        rec = hit_rect(ray, _rect_at(idx), t_min, t_max)
        rec.material_id = rect_material_ids[idx]
    return rec


@ti.func
def hit_instance(instance: ti.i32, ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Intersect a ray with one compiled instance.

    The ray is moved into the leaf's frame through the wrapper chain, the
    leaf is queried, and the hit is moved back out innermost first:
    translations shift the point, rotations turn point and normal, face
    flips invert ``front_face``.

    Args:
        instance: Slot in the instance table.
        ray: World-space ray.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The world-space hit record (``hit == 0`` on miss).
    """
    local_origin, local_direction = _to_leaf_frame(instance, ray.origin, ray.direction)
    local_ray = Ray(origin=local_origin, direction=local_direction, time=ray.time)
    rec = _hit_leaf(instance_leaves[instance], local_ray, t_min, t_max)

    if rec.hit == 1:
        chain_length = instance_chain_lengths[instance]
        for step in range(MAX_CHAIN_LENGTH):
            depth = chain_length - 1 - step
            if depth >= 0:
                node = instance_chains[instance, depth]
                node_type = node_types[node]
                idx = node_type_indices[node]
                if node_type == int(HittableType.TRANSLATE):
                    rec.point = rec.point + translate_offsets[idx]
                elif node_type == int(HittableType.ROTATE_Y):
                    s = rotation_sines[idx]
                    c = rotation_cosines[idx]
                    rec.point = rotate_y_to_world(rec.point, s, c)
                    rec.normal = rotate_y_to_world(rec.normal, s, c)
                elif node_type == int(HittableType.FLIP_FACE):
                    rec.front_face = 1 - rec.front_face

    return rec


@ti.func
def hit_world(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Find the nearest hit over all world instances.

    Linear scan; the upper bound shrinks to the closest t found so far.

    Args:
        ray: World-space ray.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The closest HitRecord, or a miss record.
    """
    closest_t = t_max
    result = make_miss_record()
    for i in range(num_world_instances[None]):
        rec = hit_instance(i, ray, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec
    return result


@ti.func
def instance_pdf_value(instance: ti.i32, origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward one instance.

    Rigid wrappers preserve solid angle, so the leaf's density evaluated in
    its own frame is the world density.
    """
    local_origin, local_direction = _to_leaf_frame(instance, origin, direction)
    leaf = instance_leaves[instance]
    node_type = node_types[leaf]
    idx = node_type_indices[leaf]
    density = 0.0
    if node_type == int(HittableType.SPHERE):
        density = sphere_pdf_value(_sphere_at(idx), local_origin, local_direction)
    elif _is_rect_type(node_type):
        density = rect_pdf_value(_rect_at(idx), local_origin, local_direction)
    return density


@ti.func
def instance_random(instance: ti.i32, origin: vec3, rng: ti.u32):
    """Sample a world-space direction from ``origin`` toward one instance.

    Returns:
        Tuple (direction, rng).
    """
    local_origin, _ = _to_leaf_frame(instance, origin, vec3(0.0, 0.0, 1.0))
    leaf = instance_leaves[instance]
    node_type = node_types[leaf]
    idx = node_type_indices[leaf]
    direction = vec3(0.0, 0.0, 0.0)
    state = rng
    if node_type == int(HittableType.SPHERE):
        direction, state = sphere_random(_sphere_at(idx), local_origin, state)
    elif _is_rect_type(node_type):
        direction, state = rect_random(_rect_at(idx), local_origin, state)

    # Directions ignore translation; undo rotations innermost first
    chain_length = instance_chain_lengths[instance]
    for step in range(MAX_CHAIN_LENGTH):
        depth = chain_length - 1 - step
        if depth >= 0:
            node = instance_chains[instance, depth]
            if node_types[node] == int(HittableType.ROTATE_Y):
                widx = node_type_indices[node]
                direction = rotate_y_to_world(
                    direction, rotation_sines[widx], rotation_cosines[widx]
                )
    return direction, state


@ti.func
def lights_pdf_value(origin: vec3, direction: vec3) -> ti.f32:
    """Mean density over the light instances; 0 when there are none."""
    count = num_light_instances[None]
    start = light_instance_start[None]
    total = 0.0
    for k in range(count):
        total += instance_pdf_value(start + k, origin, direction)
    density = 0.0
    if count > 0:
        density = total / ti.cast(count, ti.f32)
    return density


@ti.func
def lights_random(origin: vec3, rng: ti.u32):
    """Pick a light instance uniformly and sample a direction toward it.

    Must only be called when at least one light instance exists.

    Returns:
        Tuple (direction, rng).
    """
    pick, state = next_index(rng, num_light_instances[None])
    return instance_random(light_instance_start[None] + pick, origin, state)
