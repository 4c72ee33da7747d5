"""Bounding-box coordinate transform from normalized polygons to rendered pixels."""

from typing import Dict, List, Optional, Sequence, Tuple

from ..models.document_record import BoundingBox, DocumentRecord

Point = Tuple[float, float]

MIN_SCALE = 0.5
MAX_SCALE = 3.0
SCALE_STEP = 0.25
BASE_WIDTH = 600.0


def clamp_scale(scale: float) -> float:
    """Keep a zoom factor within 0.5-3.0."""
    return max(MIN_SCALE, min(MAX_SCALE, scale))


def zoom(scale: float, steps: int) -> float:
    """Zoom in (positive steps) or out (negative) by 0.25 per step."""
    return clamp_scale(scale + steps * SCALE_STEP)


def rendered_size(
    page_width: float,
    page_height: float,
    scale: float = 1.0,
    base_width: float = BASE_WIDTH
) -> Tuple[float, float]:
    """Size of a page rendered at base_width * scale, keeping its aspect ratio.

    Args:
        page_width: Native page width (any unit)
        page_height: Native page height (same unit)
        scale: Zoom factor
        base_width: Rendered width at scale 1.0, in pixels (a profile sets it
            through its preview.base_width)

    Returns:
        (width, height) in pixels

    Raises:
        ValueError: If the page has no area
    """
    if page_width <= 0 or page_height <= 0:
        raise ValueError(f"page size must be positive, got {page_width}x{page_height}")
    width = base_width * scale
    return width, (page_height / page_width) * width


def to_pixels(polygon: Sequence[Point], width: float, height: float) -> List[Point]:
    """Scale normalized (0-1) points to a rendered page of width x height pixels."""
    return [(x * width, y * height) for x, y in polygon]


def svg_points(polygon: Sequence[Point], width: float, height: float) -> str:
    """Polygon as an SVG points attribute ("x1,y1 x2,y2 ...")."""
    return " ".join(f"{x:g},{y:g}" for x, y in to_pixels(polygon, width, height))


def polygon_bounds(polygon: Sequence[Point]) -> Tuple[float, float, float, float]:
    """Axis-aligned bounds (x, y, width, height) of a polygon."""
    xs = [x for x, _ in polygon]
    ys = [y for _, y in polygon]
    return min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys)


def label_anchor(polygon: Sequence[Point], width: float, height: float, offset: float = 5.0) -> Point:
    """Pixel position of a field label: just above the polygon's first point."""
    x, y = polygon[0]
    return x * width, y * height - offset


def boxes_on_page(record: DocumentRecord, page_number: int) -> Dict[str, BoundingBox]:
    """Bounding boxes of a record that lie on the given 1-based page."""
    return {
        name: box for name, box in record.bounding_boxes.items()
        if box.page_number == page_number
    }


def page_for_field(record: DocumentRecord, field_name: str) -> Optional[int]:
    """Page that shows a field, used to jump to it when the field is selected."""
    box = record.bounding_boxes.get(field_name)
    return box.page_number if box else None


def hit_test(
    record: DocumentRecord,
    page_number: int,
    point: Point,
    width: float,
    height: float,
    tolerance: float = 5.0
) -> Optional[str]:
    """Field whose box contains a clicked pixel position (with tolerance), or None."""
    px, py = point
    for name, box in boxes_on_page(record, page_number).items():
        x0, y0, w, h = polygon_bounds(to_pixels(box.polygon, width, height))
        if x0 - tolerance <= px <= x0 + w + tolerance and y0 - tolerance <= py <= y0 + h + tolerance:
            return name
    return None
