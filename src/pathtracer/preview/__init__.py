"""Output module for rendered images.

Components:
    export: PPM streaming and PNG export with gamma-2 encoding
"""

from src.pathtracer.preview.export import (
    encode_color,
    encode_component,
    image_to_uint8,
    save_png_from_array,
    write_ppm_header,
    write_ppm_row,
)

__all__ = [
    "encode_component",
    "encode_color",
    "write_ppm_header",
    "write_ppm_row",
    "image_to_uint8",
    "save_png_from_array",
]
