"""Directional probability densities.

A density is either the cosine lobe about an axis or the light density
seen from a point. Two densities combine into an equal-weight mixture.
"""

from .pdf import (
    Pdf,
    PdfType,
    cosine_pdf_value,
    make_cosine_pdf,
    make_hittable_pdf,
    mixture_generate,
    mixture_value,
    pdf_generate,
    pdf_value,
)

__all__ = [
    "Pdf",
    "PdfType",
    "make_cosine_pdf",
    "make_hittable_pdf",
    "cosine_pdf_value",
    "pdf_value",
    "pdf_generate",
    "mixture_value",
    "mixture_generate",
]
