"""
Unit tests for section/navigation scroll synchronisation.
"""

import pytest

from isonav_core.scroll_sync import ScrollSync
from isonav_core.widget import NAVIGATION_CHANGE


@pytest.fixture
def scrolled():
    return []


@pytest.fixture
def sync(widget, scrolled):
    return ScrollSync(widget, scrolled.append, debounce_ms=100)


class TestScrollToNavigation:
    """Visibility reports drive navigation after a debounce."""

    def test_most_visible_section_is_navigated_after_debounce(self, widget, sync, scrolled):
        sync.report_visibility("storage", 0.8)
        sync.report_visibility("backend", 0.3)
        sync.tick(50)
        assert not widget.camera.animating
        sync.tick(60)
        assert widget.camera.animating
        widget.run_until_idle()
        assert widget.bookmark_index == 2
        # the widget followed the page, so no scroll request goes back
        assert scrolled == []

    def test_new_report_restarts_debounce(self, widget, sync):
        sync.report_visibility("storage", 0.8)
        sync.tick(90)
        sync.report_visibility("storage", 0.9)
        sync.tick(90)
        assert not widget.camera.animating
        sync.tick(20)
        assert widget.camera.animating

    def test_no_visible_section_returns_to_overview(self, widget, sync):
        widget.navigate_to(2)
        widget.run_until_idle()
        sync.scroll_finished()
        sync.report_visibility("storage", 0.0)
        sync.tick(150)
        widget.run_until_idle()
        assert widget.bookmark_index == -1
        assert sync.current_section is None

    def test_section_without_bookmark_is_ignored(self, widget, sync):
        sync.report_visibility("appendix", 1.0)
        sync.tick(150)
        assert not widget.camera.animating

    def test_ties_go_to_first_reported(self, sync):
        sync.report_visibility("backend", 0.5)
        sync.report_visibility("storage", 0.5)
        assert sync.most_visible() == "backend"

    def test_ratios_are_clamped(self, sync):
        sync.report_visibility("backend", 4.0)
        sync.report_visibility("storage", -1.0)
        assert sync.visibility == {"backend": 1.0, "storage": 0.0}


class TestNavigationToScroll:
    """Navigation to a new section scrolls the page programmatically."""

    def test_navigation_requests_scroll(self, widget, sync, scrolled):
        widget.navigate_to(1)
        widget.run_until_idle()
        assert scrolled == ["backend"]
        assert sync.programmatic

    def test_reports_ignored_while_programmatic(self, widget, sync):
        widget.navigate_to(1)
        widget.run_until_idle()
        sync.report_visibility("storage", 1.0)
        sync.tick(150)
        assert not widget.camera.animating
        assert sync.visibility == {}

    def test_user_scroll_cancels_programmatic(self, widget, sync):
        widget.navigate_to(1)
        widget.run_until_idle()
        sync.user_scrolled()
        assert not sync.programmatic
        sync.report_visibility("storage", 1.0)
        sync.tick(150)
        assert widget.camera.animating

    def test_same_section_does_not_scroll_again(self, widget, sync, scrolled):
        widget.navigate_to(1)
        widget.run_until_idle()
        widget.navigate_to(1)
        widget.run_until_idle()
        assert scrolled == ["backend"]

    def test_close_detaches(self, widget, sync, scrolled):
        sync.close()
        assert sync._on_navigation not in widget._listeners.get(NAVIGATION_CHANGE, [])
        widget.navigate_to(1)
        widget.run_until_idle()
        assert scrolled == []
