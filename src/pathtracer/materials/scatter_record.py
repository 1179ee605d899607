"""Result of a material scattering event."""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class ScatterRecord:
    """Outcome of scattering an incoming ray at a surface.

    Attributes:
        did_scatter: 1 if the surface scattered the ray, 0 if it absorbed it.
        is_specular: 1 for a deterministic-lobe bounce that bypasses
            importance sampling, 0 for a diffuse bounce.
        specular_direction: Outgoing direction of a specular bounce.
        attenuation: Color attenuation of the bounce.
        pdf_type: PdfType of the density owned by a diffuse material.
        pdf_axis: Axis of that density (the shading normal).
    """

    did_scatter: ti.i32
    is_specular: ti.i32
    specular_direction: vec3
    attenuation: vec3
    pdf_type: ti.i32
    pdf_axis: vec3


@ti.func
def make_absorbed_record() -> ScatterRecord:
    """A ScatterRecord for an absorbed ray."""
    return ScatterRecord(
        did_scatter=0,
        is_specular=0,
        specular_direction=vec3(0.0, 0.0, 0.0),
        attenuation=vec3(0.0, 0.0, 0.0),
        pdf_type=-1,
        pdf_axis=vec3(0.0, 0.0, 0.0),
    )


def validate_color(name: str, color: tuple[float, float, float], upper: float | None) -> None:
    """Validate the components of a color parameter.

    Args:
        name: Parameter name used in the error message.
        color: (R, G, B) tuple.
        upper: Inclusive upper bound, or None for non-negative only.

    Raises:
        ValueError: If the color does not have three components or a component
            is out of range.
    """
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0 or (upper is not None and component > upper):
            bound = f"[0, {upper}]" if upper is not None else "[0, inf)"
            raise ValueError(f"{name} component {i} = {component} is outside {bound}")
