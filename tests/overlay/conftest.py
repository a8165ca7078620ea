"""
Overlay Test Configuration and Fixtures

Shared fixtures for overlay module tests.
"""

import pytest

from overlay.constants import Anchor
from overlay.controllers.overlay_editor import OverlayEditor
from overlay.controllers.overlay_scheduler import OverlayScheduler
from overlay.implementations.mock_playback import MockPlayback
from overlay.models.overlay import OverlayDraft


@pytest.fixture
def scheduler():
    """Scheduler for a 12 second recording"""
    return OverlayScheduler(duration_sec=12.0)


@pytest.fixture
def playback():
    """
    Provide a MockPlayback over 12 seconds of media.

    Usage:
        def test_seek(playback):
            playback.seek(3.0)
    """
    return MockPlayback(duration_sec=12.0)


@pytest.fixture
def editor(scheduler, playback):
    overlay_editor = OverlayEditor(scheduler, playback)
    yield overlay_editor
    overlay_editor.close()


@pytest.fixture
def make_draft():
    """Factory for valid drafts with overridable fields"""

    def _make(content="Hello", start_sec=0, end_sec=3, anchor=Anchor.BOTTOM):
        return OverlayDraft(content, start_sec, end_sec, anchor)

    return _make
