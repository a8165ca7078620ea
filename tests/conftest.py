"""
Test Configuration and Fixtures

Fixtures shared by every test package, plus marker registration.

To use pytest:
    pip install -e ".[test]"
    pytest tests/
"""

import pytest

# =============================================================================
# TIME FIXTURES
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """
    Provide a controllable clock.

    Usage:
        def test_timing(fake_clock):
            fake_clock.advance(10)
    """
    return FakeClock()


# =============================================================================
# CALLBACK TRACKING FIXTURES
# =============================================================================


@pytest.fixture
def callback_tracker():
    """
    Provide helper for tracking callback calls.

    Usage:
        def test_callback(session, callback_tracker):
            session.on_complete = callback_tracker.track
            # ... finish recording ...
            assert callback_tracker.was_called()
    """

    class CallbackTracker:
        def __init__(self):
            self.calls = []

        def track(self, *args, **kwargs):
            """Record a callback invocation"""
            self.calls.append({"args": args, "kwargs": kwargs})

        def was_called(self) -> bool:
            return len(self.calls) > 0

        def get_call_count(self) -> int:
            return len(self.calls)

        def get_last_call(self):
            """Get arguments from last call"""
            return self.calls[-1] if self.calls else None

        def get_all_calls(self):
            return self.calls.copy()

        def reset(self):
            self.calls.clear()

    return CallbackTracker()


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """
    Configure pytest with custom markers.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "requires_ffmpeg: Tests requiring FFmpeg")
