"""Scene module for the hittable arena and its compiled form.

Components:
    intersection: Node arena, instance table and nearest-hit queries
    manager: SceneManager building the node graph and registering materials
    cornell_box: Factory for the Cornell box scene

Scene data is stored in Taichi fields as structure-of-arrays per node type.
"""

from .intersection import (
    MAX_CHAIN_LENGTH,
    MAX_INSTANCES,
    MAX_NODES,
    HittableType,
    get_light_instance_count,
    get_world_instance_count,
    hit_world,
    instances_ready,
    lights_pdf_value,
    lights_random,
)

# Note: manager and cornell_box are NOT imported here to avoid circular imports
# through the material registries. Import them directly from
# src.pathtracer.scene.manager or src.pathtracer.scene.cornell_box.

__all__ = [
    "HittableType",
    "MAX_NODES",
    "MAX_INSTANCES",
    "MAX_CHAIN_LENGTH",
    "hit_world",
    "instances_ready",
    "get_world_instance_count",
    "get_light_instance_count",
    "lights_pdf_value",
    "lights_random",
]
