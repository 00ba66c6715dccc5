"""Tests for the shelf packing service."""

import pytest

from gangsheet_worker.services.packing_service import (
    DesignItem,
    EmptyInputError,
    InvalidSettingsError,
    ItemTooLargeError,
    PackingService,
    SheetSettings,
)

EPS = 1e-6

NO_BORDER = SheetSettings(roll_width_in=22, roll_height_in=72, dpi=300, gap_in=0.25, border=False)


def item(width, height, quantity=1, ref=None, order_id=1, line_id=None):
    return DesignItem(
        source_image_ref=ref or f"designs/{width}x{height}.png",
        width_in=width,
        height_in=height,
        quantity=quantity,
        order_id=order_id,
        line_id=line_id,
    )


def assert_valid_layout(result, settings):
    """Every placement sits inside its sheet and keeps the gap to the others."""
    margin = settings.edge_margin_in
    for sheet in result.sheets:
        for p in sheet.placements:
            assert p.x_in >= margin - EPS
            assert p.y_in >= margin - EPS
            assert p.x_in + p.footprint_width_in <= settings.roll_width_in - margin + EPS
            assert p.y_in + p.footprint_height_in <= settings.roll_height_in - margin + EPS

        boxes = [p.inflated_box(settings.gap_in) for p in sheet.placements]
        for i, a in enumerate(boxes):
            for b in boxes[i + 1:]:
                overlap_x = a[0] < b[2] - EPS and b[0] < a[2] - EPS
                overlap_y = a[1] < b[3] - EPS and b[1] < a[3] - EPS
                assert not (overlap_x and overlap_y), f"{a} overlaps {b}"


def test_three_small_designs_share_one_shelf():
    items = [item(5, 5, ref=f"designs/{n}.png") for n in range(3)]

    result = PackingService().pack(items, NO_BORDER)

    assert result.sheet_count == 1
    placements = result.sheets[0].placements
    assert [p.x_in for p in placements] == pytest.approx([0.25, 5.5, 10.75])
    assert {p.y_in for p in placements} == {0.25}
    assert not any(p.rotated90 for p in placements)
    assert_valid_layout(result, NO_BORDER)


def test_shelf_wraps_when_row_is_full():
    result = PackingService().pack([item(5, 5, quantity=5)], NO_BORDER)

    placements = result.sheets[0].placements
    assert len(placements) == 5
    assert placements[4].x_in == pytest.approx(0.25)
    assert placements[4].y_in == pytest.approx(5.5)
    assert_valid_layout(result, NO_BORDER)


def test_new_sheet_when_height_runs_out():
    settings = SheetSettings(roll_width_in=22, roll_height_in=12, gap_in=0.25, border=False)

    result = PackingService().pack([item(5, 5, quantity=9)], settings)

    assert result.sheet_count == 2
    assert [len(s.placements) for s in result.sheets] == [8, 1]
    assert result.sheets[1].placements[0].sheet_index == 1
    assert_valid_layout(result, settings)


def test_max_designs_per_sheet_caps_each_sheet():
    settings = SheetSettings(max_designs_per_sheet=20)

    result = PackingService().pack([item(4, 4, quantity=50)], settings)

    assert result.sheet_count == 3
    assert [len(s.placements) for s in result.sheets] == [20, 20, 10]
    assert_valid_layout(result, settings)


def test_every_unit_is_placed_exactly_once():
    items = [
        item(3, 7, quantity=4, ref="a.png"),
        item(10, 2, quantity=3, ref="b.png"),
        item(6, 6, quantity=2, ref="c.png"),
        item(1.5, 9.25, quantity=5, ref="d.png"),
    ]
    settings = SheetSettings(roll_width_in=22, roll_height_in=20)

    result = PackingService().pack(items, settings)

    units = sorted((p.item_index, p.copy_index) for p in result.placements)
    expected = sorted((i, c) for i, it in enumerate(items) for c in range(it.quantity))
    assert units == expected
    assert_valid_layout(result, settings)


def test_layout_is_deterministic():
    items = [item(3, 7, quantity=4), item(10, 2, quantity=3), item(6, 6, quantity=2)]
    service = PackingService()

    first = service.pack(items, SheetSettings())
    second = service.pack(items, SheetSettings())

    assert first.to_dict() == second.to_dict()


def test_auto_arrange_places_tallest_first():
    items = [item(2, 2, ref="small.png"), item(5, 8, ref="tall.png")]

    arranged = PackingService().pack(items, NO_BORDER)
    in_order = PackingService().pack(items, SheetSettings(**{**NO_BORDER.to_dict(), "auto_arrange": False}))

    assert arranged.placements[0].source_image_ref == "tall.png"
    assert in_order.placements[0].source_image_ref == "small.png"


def test_design_wider_than_sheet_is_rotated():
    result = PackingService().pack([item(30, 10)], NO_BORDER)

    placement = result.placements[0]
    assert placement.rotated90 is True
    assert placement.width_in == 10
    assert placement.height_in == 30
    assert_valid_layout(result, NO_BORDER)


def test_auto_arrange_turns_design_to_fill_shelf_height():
    items = [item(10, 10, ref="square.png"), item(8, 3, ref="strip.png")]

    result = PackingService().pack(items, NO_BORDER)

    square, strip = result.placements
    assert strip.rotated90 is True
    assert strip.y_in == pytest.approx(0.25)
    assert strip.x_in == pytest.approx(10.5)
    assert (strip.width_in, strip.height_in) == (3, 8)
    assert strip.height_in <= square.height_in
    assert_valid_layout(result, NO_BORDER)


def test_input_order_layout_keeps_designs_upright():
    items = [item(10, 10, ref="square.png"), item(8, 3, ref="strip.png")]
    settings = SheetSettings(**{**NO_BORDER.to_dict(), "auto_arrange": False})

    result = PackingService().pack(items, settings)

    strip = result.placements[1]
    assert strip.rotated90 is False
    assert (strip.width_in, strip.height_in) == (8, 3)
    assert strip.y_in == pytest.approx(0.25)


def test_border_band_is_part_of_the_footprint():
    settings = SheetSettings(border=True, border_size_in=0.1)

    result = PackingService().pack([item(4, 4, quantity=2)], settings)

    first, second = result.placements
    assert (first.x_in, first.y_in) == (0.0, 0.0)
    assert first.footprint_width_in == pytest.approx(4.2)
    assert first.image_x_in == pytest.approx(0.1)
    assert second.x_in == pytest.approx(4.5)
    assert_valid_layout(result, settings)


def test_design_taller_than_sheet_is_rejected():
    oversized = DesignItem("designs/banner.png", 10, 80, order_id=1001, line_id="7", label="Banner")

    with pytest.raises(ItemTooLargeError) as exc_info:
        PackingService().pack([item(5, 5), oversized], NO_BORDER)

    message = str(exc_info.value)
    assert "does not fit" in message
    assert "order 1001" in message
    assert "Banner" in message


def test_design_larger_than_sheet_both_ways_is_rejected():
    with pytest.raises(ItemTooLargeError):
        PackingService().pack([item(23, 73)], NO_BORDER)


def test_no_units_is_an_error():
    with pytest.raises(EmptyInputError):
        PackingService().pack([], NO_BORDER)

    with pytest.raises(EmptyInputError):
        PackingService().pack([item(5, 5, quantity=0)], NO_BORDER)


@pytest.mark.parametrize(
    "overrides",
    [
        {"roll_width_in": 0},
        {"roll_height_in": -1},
        {"dpi": 0},
        {"gap_in": -0.1},
        {"max_designs_per_sheet": 0},
    ],
)
def test_unusable_settings_are_rejected(overrides):
    settings = SheetSettings(**{**NO_BORDER.to_dict(), **overrides})

    with pytest.raises(InvalidSettingsError):
        PackingService().pack([item(5, 5)], settings)


def test_non_positive_design_size_is_rejected():
    with pytest.raises(InvalidSettingsError):
        PackingService().pack([item(0, 5)], NO_BORDER)


def test_settings_from_snapshot_ignore_unknown_keys():
    settings = SheetSettings.from_dict({"roll_width_in": 24, "dpi": 150, "legacy_field": True})

    assert settings.roll_width_in == 24
    assert settings.dpi == 150
    assert settings.border is True
