"""Render service for composing print-ready gangsheet PNGs."""

import io
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from PIL import Image, ImageColor, ImageDraw, UnidentifiedImageError

from gangsheet_worker.services.packing_service import (
    PackingResult,
    Placement,
    SheetLayout,
    SheetSettings,
)

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """Base exception for rendering errors."""
    pass


class SourceImageUnavailableError(RenderError):
    """A design raster could not be fetched or decoded."""

    def __init__(self, source_image_ref: str, reason: str):
        self.source_image_ref = source_image_ref
        super().__init__(f"Source image {source_image_ref} unavailable: {reason}")


class SheetEncodeError(RenderError):
    """A composed sheet could not be encoded."""
    pass


@dataclass
class RasterSheet:
    """One finished sheet encoded as PNG."""

    index: int
    width_px: int
    height_px: int
    design_count: int
    png: bytes


def decode_image(source_image_ref: str, content: bytes) -> Image.Image:
    """
    Decode fetched design bytes into an RGBA image.

    Raises:
        SourceImageUnavailableError: If the bytes are empty or not an image
    """
    if not content:
        raise SourceImageUnavailableError(source_image_ref, "empty content")

    try:
        with Image.open(io.BytesIO(content)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise SourceImageUnavailableError(source_image_ref, f"cannot decode image ({e})")


class RenderService:
    """Rasterize packed sheets at print resolution.

    Inch to pixel conversion: the canvas rounds up and both edges of an item
    round down, so an item ends on the pixel where its neighbour starts and
    neighbouring items never drift into each other across many shelves.
    """

    # Absorbs float noise such as 22 * 300 = 6600.000000001
    PIXEL_EPSILON = 1e-6

    def render(
        self,
        packing: PackingResult,
        images: Mapping[str, Image.Image],
        settings: SheetSettings,
    ) -> List[RasterSheet]:
        """
        Render every sheet of a packing result.

        Args:
            packing: Packing result from PackingService
            images: Decoded design images keyed by source_image_ref
            settings: Settings used for packing

        Returns:
            One RasterSheet per sheet, in sheet order
        """
        return [self.render_sheet(sheet, images, settings) for sheet in packing.sheets]

    def render_sheet(
        self,
        sheet: SheetLayout,
        images: Mapping[str, Image.Image],
        settings: SheetSettings,
    ) -> RasterSheet:
        """Compose a single sheet and encode it as PNG."""
        dpi = settings.dpi
        width_px = self.ceil_px(settings.roll_width_in, dpi)
        height_px = self.ceil_px(settings.roll_height_in, dpi)

        canvas = Image.new("RGBA", (width_px, height_px), self._background(settings))
        draw = ImageDraw.Draw(canvas)

        border_px = self.round_px(settings.border_in, dpi)
        border_color = self._parse_color(settings.border_color) if settings.border else None
        tiles: Dict[Tuple[str, int, int, bool], Image.Image] = {}

        for placement in sheet.placements:
            source = images.get(placement.source_image_ref)
            if source is None:
                raise SourceImageUnavailableError(placement.source_image_ref, "image was not loaded")

            if border_color is not None and border_px > 0:
                self._draw_border(draw, placement, border_px, border_color, dpi)

            tile = self._tile(tiles, source, placement, dpi)
            canvas.alpha_composite(
                tile,
                dest=(self.floor_px(placement.image_x_in, dpi), self.floor_px(placement.image_y_in, dpi)),
            )

        png = self._encode(canvas, sheet.index, dpi)
        canvas.close()

        logger.info(
            f"Rendered sheet {sheet.index}: {width_px}x{height_px}px, "
            f"{len(sheet.placements)} designs, PNG size: {len(png)} bytes"
        )

        return RasterSheet(
            index=sheet.index,
            width_px=width_px,
            height_px=height_px,
            design_count=len(sheet.placements),
            png=png,
        )

    def ceil_px(self, inches: float, dpi: int) -> int:
        return math.ceil(inches * dpi - self.PIXEL_EPSILON)

    def floor_px(self, inches: float, dpi: int) -> int:
        return math.floor(inches * dpi + self.PIXEL_EPSILON)

    def round_px(self, inches: float, dpi: int) -> int:
        return math.floor(inches * dpi + 0.5)

    def span_px(self, start_in: float, length_in: float, dpi: int) -> int:
        """Pixels covered from floor(start) up to floor(start + length), at least one."""
        return max(1, self.floor_px(start_in + length_in, dpi) - self.floor_px(start_in, dpi))

    def _tile(
        self,
        cache: Dict[Tuple[str, int, int, bool], Image.Image],
        source: Image.Image,
        placement: Placement,
        dpi: int,
    ) -> Image.Image:
        """Scale (and rotate) a design to its exact pixel footprint."""
        width_px = self.span_px(placement.image_x_in, placement.width_in, dpi)
        height_px = self.span_px(placement.image_y_in, placement.height_in, dpi)
        key = (placement.source_image_ref, width_px, height_px, placement.rotated90)

        if key not in cache:
            if placement.rotated90:
                # Scale in the design's own orientation, then turn clockwise
                tile = source.resize((height_px, width_px), Image.Resampling.LANCZOS)
                tile = tile.transpose(Image.Transpose.ROTATE_270)
            else:
                tile = source.resize((width_px, height_px), Image.Resampling.LANCZOS)
            cache[key] = tile

        return cache[key]

    def _draw_border(
        self,
        draw: ImageDraw.ImageDraw,
        placement: Placement,
        border_px: int,
        color: Tuple[int, int, int, int],
        dpi: int,
    ) -> None:
        x0 = self.floor_px(placement.x_in, dpi)
        y0 = self.floor_px(placement.y_in, dpi)
        x1 = x0 + self.span_px(placement.x_in, placement.footprint_width_in, dpi) - 1
        y1 = y0 + self.span_px(placement.y_in, placement.footprint_height_in, dpi) - 1
        draw.rectangle([x0, y0, x1, y1], outline=color, width=border_px)

    def _background(self, settings: SheetSettings) -> Tuple[int, int, int, int]:
        if not settings.background_color:
            return (0, 0, 0, 0)
        return self._parse_color(settings.background_color)

    def _parse_color(self, value: str) -> Tuple[int, int, int, int]:
        try:
            rgb = ImageColor.getrgb(value)
        except ValueError:
            raise RenderError(f"Invalid colour {value!r}")
        if len(rgb) == 4:
            return rgb
        return (rgb[0], rgb[1], rgb[2], 255)

    def _encode(self, canvas: Image.Image, index: int, dpi: int) -> bytes:
        buffer = io.BytesIO()
        try:
            canvas.save(buffer, format="PNG", dpi=(dpi, dpi))
        except (OSError, ValueError) as e:
            raise SheetEncodeError(f"Failed to encode sheet {index} as PNG: {e}")
        return buffer.getvalue()
