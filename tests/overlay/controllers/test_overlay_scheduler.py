"""
Overlay Scheduler Tests

Tests for OverlayScheduler showing:
- Draft validation rules
- Insertion order and unique ids
- Inclusive time queries with overlaps
- JSON export in the player plugin format

To run:
    pytest tests/overlay/controllers/test_overlay_scheduler.py -v
"""

import json
import math

import pytest

from overlay.constants import Anchor
from overlay.controllers.overlay_scheduler import (
    OverlayNotFoundError,
    OverlayScheduler,
    OverlayValidationError,
)

# =============================================================================
# CONSTRUCTION TESTS
# =============================================================================


@pytest.mark.unit
@pytest.mark.parametrize("duration", [-1, math.nan, math.inf, "12", True])
def test_invalid_duration(duration):
    """Test the recording duration must be a finite non-negative number."""
    with pytest.raises(ValueError):
        OverlayScheduler(duration)


@pytest.mark.unit
def test_starts_empty(scheduler):
    """Test a new scheduler has no overlays."""
    assert len(scheduler) == 0
    assert scheduler.active_at(0) == []
    assert scheduler.to_overlay_data() == []


# =============================================================================
# ADD TESTS
# =============================================================================


@pytest.mark.unit
def test_add_returns_committed_overlay(scheduler, make_draft):
    """Test add() stores the draft values under a fresh id."""
    overlay = scheduler.add(make_draft("Title", 1, 4, "top"))

    assert overlay.content == "Title"
    assert overlay.start_sec == 1.0
    assert overlay.end_sec == 4.0
    assert overlay.anchor == Anchor.TOP
    assert len(overlay.id) == 12
    assert scheduler.get(overlay.id) == overlay


@pytest.mark.unit
def test_add_keeps_insertion_order(scheduler, make_draft):
    """Test overlays come back in the order they were added."""
    first = scheduler.add(make_draft("B", 5, 8))
    second = scheduler.add(make_draft("A", 0, 2))

    assert [o.id for o in scheduler.overlays] == [first.id, second.id]
    assert first.id != second.id


@pytest.mark.unit
def test_draft_is_not_aliased(scheduler, make_draft):
    """Test editing the draft after add() does not change the overlay."""
    draft = make_draft("Original", 0, 3)
    overlay = scheduler.add(draft)

    draft.content = "Changed"

    assert scheduler.get(overlay.id).content == "Original"


@pytest.mark.unit
def test_end_may_equal_duration(scheduler, make_draft):
    """Test an overlay may run to the very end of the recording."""
    overlay = scheduler.add(make_draft(start_sec=10, end_sec=12))

    assert overlay.end_sec == 12.0


@pytest.mark.unit
@pytest.mark.parametrize(
    "content, start, end, anchor",
    [
        ("", 0, 3, "top"),
        ("   ", 0, 3, "top"),
        ("Hi", -1, 3, "top"),
        ("Hi", 3, 3, "top"),
        ("Hi", 4, 3, "top"),
        ("Hi", 0, 12.5, "top"),
        ("Hi", math.nan, 3, "top"),
        ("Hi", 0, math.inf, "top"),
        ("Hi", "0", 3, "top"),
        ("Hi", 0, 3, "middle"),
    ],
)
def test_invalid_drafts_rejected(scheduler, make_draft, content, start, end, anchor):
    """Test every broken rule raises and leaves the set unchanged."""
    with pytest.raises(OverlayValidationError):
        scheduler.add(make_draft(content, start, end, anchor))

    assert len(scheduler) == 0


# =============================================================================
# REMOVE TESTS
# =============================================================================


@pytest.mark.unit
def test_remove(scheduler, make_draft):
    """Test removal by id keeps the order of the others."""
    a = scheduler.add(make_draft("A"))
    b = scheduler.add(make_draft("B"))
    c = scheduler.add(make_draft("C"))

    removed = scheduler.remove(b.id)

    assert removed == b
    assert [o.id for o in scheduler] == [a.id, c.id]


@pytest.mark.unit
def test_remove_unknown_id(scheduler):
    """Test removing a missing id raises OverlayNotFoundError."""
    with pytest.raises(OverlayNotFoundError) as exc_info:
        scheduler.remove("nope")

    assert exc_info.value.overlay_id == "nope"


@pytest.mark.unit
def test_clear(scheduler, make_draft):
    """Test clear drops everything."""
    scheduler.add(make_draft())
    scheduler.clear()

    assert len(scheduler) == 0


# =============================================================================
# QUERY TESTS
# =============================================================================


@pytest.mark.unit
def test_active_at_bounds_inclusive(scheduler, make_draft):
    """Test an overlay is visible at both its start and end second."""
    overlay = scheduler.add(make_draft(start_sec=2, end_sec=5))

    assert scheduler.active_at(1.99) == []
    assert scheduler.active_at(2) == [overlay]
    assert scheduler.active_at(5) == [overlay]
    assert scheduler.active_at(5.01) == []


@pytest.mark.unit
def test_active_at_overlaps(scheduler, make_draft):
    """Test overlapping overlays are all returned in insertion order."""
    late = scheduler.add(make_draft("Late", 3, 9))
    early = scheduler.add(make_draft("Early", 0, 4))

    assert scheduler.active_at(3.5) == [late, early]


# =============================================================================
# EXPORT TESTS
# =============================================================================


@pytest.mark.unit
def test_to_overlay_data(scheduler, make_draft):
    """Test the player plugin entry format."""
    scheduler.add(make_draft("Hello", 0, 3, "bottom-right"))

    assert scheduler.to_overlay_data() == [
        {"content": "Hello", "start": 0.0, "end": 3.0, "align": "bottom-right"},
    ]


@pytest.mark.unit
def test_export_json(scheduler, make_draft, tmp_path):
    """Test the JSON file holds the plugin list."""
    scheduler.add(make_draft("One", 0, 1))
    scheduler.add(make_draft("Two", 1, 2, "center"))

    path = scheduler.export_json(tmp_path / "out" / "overlays.json")

    data = json.loads(path.read_text())
    assert [entry["content"] for entry in data] == ["One", "Two"]
    assert data[1]["align"] == "center"
