"""Geometry module for shape primitives.

Components:
    hit_record: Intersection result shared by every primitive
    sphere: Sphere intersection, solid-angle density and sampling
    rect: Axis-aligned rectangles in the XY, XZ and YZ planes
    transform: Rotation about the Y axis

Intersection routines are Taichi functions (@ti.func). There is no
acceleration structure; the scene is scanned linearly.
"""

from .hit_record import HitRecord, make_face_record, make_miss_record
from .rect import Rect, RectAxis, hit_rect, rect_area, rect_normal, rect_pdf_value, rect_random
from .sphere import Sphere, hit_sphere, sphere_pdf_value, sphere_random, sphere_uv
from .transform import rotate_y_to_local, rotate_y_to_world, rotation_y_terms

__all__ = [
    "HitRecord",
    "make_face_record",
    "make_miss_record",
    "Sphere",
    "hit_sphere",
    "sphere_uv",
    "sphere_pdf_value",
    "sphere_random",
    "Rect",
    "RectAxis",
    "hit_rect",
    "rect_area",
    "rect_normal",
    "rect_pdf_value",
    "rect_random",
    "rotation_y_terms",
    "rotate_y_to_local",
    "rotate_y_to_world",
]
