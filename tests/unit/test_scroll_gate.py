"""Tests for scroll-edge detection."""

from unittest.mock import Mock

import pytest

from infinitecal.viewport.scroll_gate import ScrollEdge, ScrollGate

pytestmark = pytest.mark.unit


@pytest.fixture
def callbacks():
    return Mock(), Mock()


@pytest.fixture
def gate(callbacks, fake_clock):
    on_head, on_tail = callbacks
    return ScrollGate(on_head, on_tail, clock=fake_clock)


def test_near_top_fires_head(gate, callbacks):
    on_head, on_tail = callbacks
    assert gate.on_scroll(40, 2000, 600) is ScrollEdge.HEAD
    on_head.assert_called_once_with()
    on_tail.assert_not_called()


def test_near_bottom_fires_tail(gate, callbacks):
    on_head, on_tail = callbacks
    assert gate.on_scroll(1350, 2000, 600) is ScrollEdge.TAIL
    on_tail.assert_called_once_with()
    on_head.assert_not_called()


def test_middle_fires_nothing(gate, callbacks):
    assert gate.on_scroll(700, 2000, 600) is None
    assert not any(cb.called for cb in callbacks)


def test_cooldown_suppresses_second_trigger(gate, callbacks, fake_clock):
    """40 px then 45 px within 100 ms: one extension only."""
    on_head, _ = callbacks
    gate.on_scroll(40, 2000, 600)
    fake_clock.advance(0.05)
    assert gate.on_scroll(45, 2000, 600) is None

    assert on_head.call_count == 1
    assert gate.stats["suppressed"] == 1
    assert gate.cooling_down


def test_fires_again_after_cooldown(gate, callbacks, fake_clock):
    on_head, _ = callbacks
    gate.on_scroll(40, 2000, 600)
    fake_clock.advance(0.11)
    assert gate.on_scroll(45, 2000, 600) is ScrollEdge.HEAD
    assert on_head.call_count == 2


def test_overscroll_bounce_is_ignored(gate, callbacks):
    assert gate.on_scroll(-30, 2000, 600) is None
    assert gate.on_scroll(1430, 2000, 600) is None
    assert gate.stats["ignored"] == 2
    assert not any(cb.called for cb in callbacks)


def test_small_overscroll_inside_tolerance_is_not_an_edge(gate):
    assert gate.on_scroll(-5, 2000, 600) is None
    assert gate.stats["ignored"] == 0


def test_reset_clears_cooldown(gate, fake_clock):
    gate.on_scroll(40, 2000, 600)
    gate.reset()
    assert not gate.cooling_down
    assert gate.on_scroll(40, 2000, 600) is ScrollEdge.HEAD
