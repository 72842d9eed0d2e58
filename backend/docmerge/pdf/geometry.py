"""
DocMerge — Page fitting for raster images.

Pixels are treated as millimetres (1 px = 1 mm) throughout. Small images
are placed at that natural size; larger ones are scaled down to the
margined area. Either way the image is centered on the full page.
"""

from __future__ import annotations

from dataclasses import dataclass

from docmerge.errors import InvalidImageError

MM_TO_PT = 72 / 25.4


@dataclass(frozen=True)
class PageGeometry:
    page_width: float
    page_height: float
    margined_width: float
    margined_height: float

    def __post_init__(self):
        dims = (self.page_width, self.page_height, self.margined_width, self.margined_height)
        if any(d <= 0 for d in dims):
            raise ValueError(f"Page dimensions must be positive: {dims}")
        if self.margined_width > self.page_width or self.margined_height > self.page_height:
            raise ValueError("Margined area cannot exceed the page")

    @classmethod
    def with_margin(cls, page_width: float, page_height: float, margin: float) -> "PageGeometry":
        return cls(page_width, page_height, page_width - 2 * margin, page_height - 2 * margin)

    @property
    def page_size_pt(self) -> tuple[float, float]:
        return self.page_width * MM_TO_PT, self.page_height * MM_TO_PT


# A4 portrait with 10 mm margins. Shared by every job; never mutated.
A4_GEOMETRY = PageGeometry.with_margin(210.0, 297.0, 10.0)


@dataclass(frozen=True)
class FitResult:
    scale: float
    render_width: float
    render_height: float
    offset_x: float
    offset_y: float

    def rect_pt(self) -> tuple[float, float, float, float]:
        """Placement as (x0, y0, x1, y1) in PDF points, origin top-left."""
        x0 = self.offset_x * MM_TO_PT
        y0 = self.offset_y * MM_TO_PT
        return (
            x0,
            y0,
            x0 + self.render_width * MM_TO_PT,
            y0 + self.render_height * MM_TO_PT,
        )


def fit_image(width_px: float, height_px: float, geometry: PageGeometry = A4_GEOMETRY) -> FitResult:
    """
    Compute where an image of the given pixel size lands on the page.

    The smaller of the width and height scales is the binding one, so both
    dimensions fit. Raises InvalidImageError for zero or negative sizes.
    """
    if width_px <= 0 or height_px <= 0:
        raise InvalidImageError(width_px, height_px)

    scale = 1.0
    if width_px > geometry.margined_width or height_px > geometry.margined_height:
        scale = min(geometry.margined_width / width_px, geometry.margined_height / height_px)

    render_w = width_px * scale
    render_h = height_px * scale

    return FitResult(
        scale=scale,
        render_width=render_w,
        render_height=render_h,
        offset_x=(geometry.page_width - render_w) / 2,
        offset_y=(geometry.page_height - render_h) / 2,
    )
