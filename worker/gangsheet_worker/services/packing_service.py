"""Packing service: greedy shelf layout of design units onto gangsheets."""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class PackingError(Exception):
    """Base exception for layout errors."""
    pass


class InvalidSettingsError(PackingError):
    """Sheet settings cannot produce any layout."""
    pass


class EmptyInputError(PackingError):
    """No placement units were supplied."""
    pass


class ItemTooLargeError(PackingError):
    """A unit does not fit on an empty sheet in either orientation."""

    def __init__(self, item: "DesignItem", settings: "SheetSettings"):
        self.item = item
        super().__init__(
            f"Design {item.describe()} measures {item.width_in:g}x{item.height_in:g}in "
            f"and does not fit on a {settings.roll_width_in:g}x{settings.roll_height_in:g}in sheet"
        )


@dataclass(frozen=True)
class DesignItem:
    """One physical piece to print, as resolved from an order."""

    source_image_ref: str
    width_in: float
    height_in: float
    quantity: int = 1
    order_id: Optional[int] = None
    line_id: Optional[str] = None
    label: Optional[str] = None

    def describe(self) -> str:
        """Human readable identification for error messages."""
        name = f"'{self.label}'" if self.label else self.source_image_ref
        context = []
        if self.order_id is not None:
            context.append(f"order {self.order_id}")
        if self.line_id:
            context.append(f"line {self.line_id}")
        if self.label:
            context.append(f"image {self.source_image_ref}")
        return f"{name} ({', '.join(context)})" if context else name


@dataclass(frozen=True)
class SheetSettings:
    """Layout configuration snapshot for one gangsheet run."""

    roll_width_in: float = 22.0
    roll_height_in: float = 60.0
    dpi: int = 300
    gap_in: float = 0.3
    border: bool = True
    border_size_in: float = 0.1
    border_color: str = "red"
    auto_arrange: bool = True
    max_designs_per_sheet: Optional[int] = None
    background_color: Optional[str] = None

    @property
    def border_in(self) -> float:
        """Border band reserved on each side of an item."""
        return self.border_size_in if self.border else 0.0

    @property
    def edge_margin_in(self) -> float:
        """Distance kept between items and the sheet edges."""
        return 0.0 if self.border else self.gap_in

    def validate(self) -> None:
        if self.roll_width_in <= 0 or self.roll_height_in <= 0:
            raise InvalidSettingsError(
                f"Sheet dimensions must be positive, got "
                f"{self.roll_width_in:g}x{self.roll_height_in:g}in"
            )
        if not isinstance(self.dpi, int) or self.dpi <= 0:
            raise InvalidSettingsError(f"DPI must be a positive integer, got {self.dpi!r}")
        if self.gap_in < 0:
            raise InvalidSettingsError(f"Gap must not be negative, got {self.gap_in:g}in")
        if self.border and self.border_size_in < 0:
            raise InvalidSettingsError(
                f"Border size must not be negative, got {self.border_size_in:g}in"
            )
        if self.max_designs_per_sheet is not None and self.max_designs_per_sheet < 1:
            raise InvalidSettingsError(
                f"Max designs per sheet must be at least 1, got {self.max_designs_per_sheet}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SheetSettings":
        """Build settings from a JSON snapshot, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Placement:
    """Position of one placement unit on a sheet (inches, top-left origin).

    ``x_in``/``y_in`` locate the footprint, which is the printed image plus the
    border band on every side when borders are enabled.
    """

    sheet_index: int
    x_in: float
    y_in: float
    rotated90: bool
    item_index: int
    copy_index: int
    width_in: float
    height_in: float
    footprint_width_in: float
    footprint_height_in: float
    source_image_ref: str
    order_id: Optional[int] = None

    @property
    def image_x_in(self) -> float:
        return self.x_in + (self.footprint_width_in - self.width_in) / 2

    @property
    def image_y_in(self) -> float:
        return self.y_in + (self.footprint_height_in - self.height_in) / 2

    def inflated_box(self, gap_in: float) -> Tuple[float, float, float, float]:
        """Footprint grown by half the gap on all sides as (x0, y0, x1, y1)."""
        half = gap_in / 2
        return (
            self.x_in - half,
            self.y_in - half,
            self.x_in + self.footprint_width_in + half,
            self.y_in + self.footprint_height_in + half,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "sheet_index": self.sheet_index,
            "item_index": self.item_index,
            "copy_index": self.copy_index,
            "order_id": self.order_id,
            "source_image_ref": self.source_image_ref,
            "x_in": round(self.x_in, 4),
            "y_in": round(self.y_in, 4),
            "width_in": round(self.width_in, 4),
            "height_in": round(self.height_in, 4),
            "rotated90": self.rotated90,
        }


@dataclass
class SheetLayout:
    """All placements assigned to one output sheet."""

    index: int
    width_in: float
    height_in: float
    placements: List[Placement] = field(default_factory=list)
    utilization: float = 0.0

    def calculate_utilization(self) -> float:
        """Calculate utilization percentage of this sheet."""
        total_area = self.width_in * self.height_in
        used_area = sum(p.footprint_width_in * p.footprint_height_in for p in self.placements)
        self.utilization = (used_area / total_area) * 100 if total_area > 0 else 0.0
        return self.utilization

    @property
    def used_height_in(self) -> float:
        return max((p.y_in + p.footprint_height_in for p in self.placements), default=0.0)

    @property
    def order_ids(self) -> List[int]:
        seen = []
        for p in self.placements:
            if p.order_id is not None and p.order_id not in seen:
                seen.append(p.order_id)
        return seen

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "width_in": round(self.width_in, 4),
            "height_in": round(self.height_in, 4),
            "used_height_in": round(self.used_height_in, 4),
            "utilization": round(self.utilization, 2),
            "items_count": len(self.placements),
            "order_ids": self.order_ids,
            "placements": [p.to_dict() for p in self.placements],
        }


@dataclass
class PackingResult:
    """Result of packing operation."""

    sheets: List[SheetLayout]
    auto_arrange: bool

    @property
    def placements(self) -> List[Placement]:
        return [p for sheet in self.sheets for p in sheet.placements]

    @property
    def sheet_count(self) -> int:
        return len(self.sheets)

    @property
    def avg_utilization(self) -> float:
        if not self.sheets:
            return 0.0
        return sum(s.utilization for s in self.sheets) / len(self.sheets)

    def to_dict(self) -> dict:
        return {
            "auto_arrange": self.auto_arrange,
            "total_sheets": self.sheet_count,
            "total_units": len(self.placements),
            "avg_utilization": round(self.avg_utilization, 2),
            "sheets": [s.to_dict() for s in self.sheets],
        }


@dataclass
class _Unit:
    item_index: int
    copy_index: int
    item: DesignItem
    base_rotated: bool


class _Cursor:
    """Shelf cursor of the sheet currently being filled."""

    def __init__(self, sheet: SheetLayout, margin: float):
        self.sheet = sheet
        self.margin = margin
        self.shelf_y = margin
        self.shelf_height = 0.0
        self.cursor_x = margin

    def new_shelf(self, shelf_y: float) -> None:
        self.shelf_y = shelf_y
        self.shelf_height = 0.0
        self.cursor_x = self.margin


class PackingService:
    """Shelf packing of design units across as many sheets as needed.

    Units are laid left to right in shelves; a shelf closes when the next
    unit does not fit its remaining width, and a sheet closes when a new
    shelf would run past the sheet height or the per-sheet cap is reached.
    The result only depends on the input order and the settings.
    """

    # Tolerance for float comparisons against sheet bounds
    EPSILON = 1e-9

    def pack(self, items: Sequence[DesignItem], settings: SheetSettings) -> PackingResult:
        """
        Pack design items onto sheets.

        Args:
            items: Design items; each expands to ``quantity`` units
            settings: Sheet constraints

        Returns:
            PackingResult with one placement per unit

        Raises:
            InvalidSettingsError: Settings are unusable
            EmptyInputError: No units after expanding quantities
            ItemTooLargeError: A unit fits no orientation on an empty sheet
        """
        settings.validate()
        units = self._flatten(items, settings)

        if not units:
            raise EmptyInputError("No designs to place: every item has zero quantity")

        if settings.auto_arrange:
            units.sort(
                key=lambda u: (
                    -self._footprint(u.item, u.base_rotated, settings)[1],
                    -self._footprint(u.item, u.base_rotated, settings)[0],
                )
            )

        sheets: List[SheetLayout] = []
        cursor = self._open_sheet(sheets, settings)
        cap = settings.max_designs_per_sheet

        for unit in units:
            if cap is not None and len(cursor.sheet.placements) >= cap:
                cursor = self._open_sheet(sheets, settings)

            rotated = self._choose_orientation(unit, cursor, settings)
            width, height = self._footprint(unit.item, rotated, settings)

            if not self._fits_shelf(cursor, width, height, settings):
                rotated = unit.base_rotated
                width, height = self._footprint(unit.item, rotated, settings)
                next_shelf_y = cursor.shelf_y + cursor.shelf_height + settings.gap_in

                if (
                    cursor.shelf_height > 0
                    and next_shelf_y + height + cursor.margin <= settings.roll_height_in + self.EPSILON
                ):
                    cursor.new_shelf(next_shelf_y)
                else:
                    cursor = self._open_sheet(sheets, settings)

            self._place(cursor, unit, rotated, width, height, settings)

        for sheet in sheets:
            sheet.calculate_utilization()
            logger.info(
                f"Sheet {sheet.index}: {len(sheet.placements)} designs, "
                f"{sheet.utilization:.1f}% utilization, "
                f"used height {sheet.used_height_in:.2f}in"
            )

        result = PackingResult(sheets=sheets, auto_arrange=settings.auto_arrange)
        logger.info(
            f"Packed {len(units)} units onto {result.sheet_count} sheet(s), "
            f"average utilization {result.avg_utilization:.1f}%"
        )
        return result

    def _flatten(self, items: Sequence[DesignItem], settings: SheetSettings) -> List[_Unit]:
        """Expand items by quantity, failing fast on anything unplaceable."""
        units = []
        for item_index, item in enumerate(items):
            if item.width_in <= 0 or item.height_in <= 0:
                raise InvalidSettingsError(
                    f"Design {item.describe()} has non-positive print size "
                    f"{item.width_in:g}x{item.height_in:g}in"
                )
            if item.quantity <= 0:
                continue
            base_rotated = self._base_orientation(item, settings)
            for copy_index in range(item.quantity):
                units.append(_Unit(item_index, copy_index, item, base_rotated))
        return units

    def _base_orientation(self, item: DesignItem, settings: SheetSettings) -> bool:
        """Upright when that fits an empty sheet, rotated otherwise."""
        for rotated in (False, True):
            width, height = self._footprint(item, rotated, settings)
            if self._fits_empty_sheet(width, height, settings):
                return rotated
        raise ItemTooLargeError(item, settings)

    def _choose_orientation(self, unit: _Unit, cursor: _Cursor, settings: SheetSettings) -> bool:
        """Rotate onto a partly filled shelf when that wastes less shelf height."""
        base = unit.base_rotated
        if not settings.auto_arrange or cursor.shelf_height <= 0:
            return base
        if unit.item.width_in == unit.item.height_in:
            return base

        alt_w, alt_h = self._footprint(unit.item, not base, settings)
        alt_fits = (
            self._fits_shelf(cursor, alt_w, alt_h, settings)
            and alt_h <= cursor.shelf_height + self.EPSILON
        )
        if not alt_fits:
            return base

        base_w, base_h = self._footprint(unit.item, base, settings)
        base_fits = (
            self._fits_shelf(cursor, base_w, base_h, settings)
            and base_h <= cursor.shelf_height + self.EPSILON
        )
        if not base_fits or alt_h > base_h + self.EPSILON:
            return not base
        return base

    def _footprint(self, item: DesignItem, rotated: bool, settings: SheetSettings) -> Tuple[float, float]:
        width, height = (item.height_in, item.width_in) if rotated else (item.width_in, item.height_in)
        border = settings.border_in
        return width + 2 * border, height + 2 * border

    def _fits_empty_sheet(self, width: float, height: float, settings: SheetSettings) -> bool:
        margin = settings.edge_margin_in
        return (
            width + 2 * margin <= settings.roll_width_in + self.EPSILON
            and height + 2 * margin <= settings.roll_height_in + self.EPSILON
        )

    def _fits_shelf(self, cursor: _Cursor, width: float, height: float, settings: SheetSettings) -> bool:
        return (
            cursor.cursor_x + width + cursor.margin <= settings.roll_width_in + self.EPSILON
            and cursor.shelf_y + height + cursor.margin <= settings.roll_height_in + self.EPSILON
        )

    def _open_sheet(self, sheets: List[SheetLayout], settings: SheetSettings) -> _Cursor:
        sheet = SheetLayout(
            index=len(sheets),
            width_in=settings.roll_width_in,
            height_in=settings.roll_height_in,
        )
        sheets.append(sheet)
        return _Cursor(sheet, settings.edge_margin_in)

    def _place(
        self,
        cursor: _Cursor,
        unit: _Unit,
        rotated: bool,
        width: float,
        height: float,
        settings: SheetSettings,
    ) -> None:
        item = unit.item
        print_w, print_h = (item.height_in, item.width_in) if rotated else (item.width_in, item.height_in)

        placement = Placement(
            sheet_index=cursor.sheet.index,
            x_in=cursor.cursor_x,
            y_in=cursor.shelf_y,
            rotated90=rotated,
            item_index=unit.item_index,
            copy_index=unit.copy_index,
            width_in=print_w,
            height_in=print_h,
            footprint_width_in=width,
            footprint_height_in=height,
            source_image_ref=item.source_image_ref,
            order_id=item.order_id,
        )
        cursor.sheet.placements.append(placement)

        cursor.cursor_x += width + settings.gap_in
        cursor.shelf_height = max(cursor.shelf_height, height)

        logger.debug(
            f"Unit {unit.item_index}.{unit.copy_index} @ ({placement.x_in:.2f}, "
            f"{placement.y_in:.2f}in) on sheet {placement.sheet_index}"
            f"{' rotated' if rotated else ''}"
        )
