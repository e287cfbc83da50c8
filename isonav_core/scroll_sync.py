"""
Bidirectional synchronisation between content sections and navigation.

Scroll to navigation: the host reports how much of each content section is
visible. After a short debounce the most visible section is navigated to;
when no section is visible the widget returns to its overview.

Navigation to scroll: every ``navigationChange`` that lands on a new section
asks the host to scroll that section into view. While such a programmatic
scroll runs, visibility reports are ignored; a user scroll cancels it.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from .scene import OVERVIEW_INDEX
from .widget import NAVIGATION_CHANGE, NavigationChange, SceneWidget

logger = logging.getLogger(__name__)


class ScrollSync:
    """
    Args:
        widget: Widget to drive and observe
        scroll_to: Host callback scrolling a section into view
        debounce_ms: Quiet time after the last visibility report
    """

    def __init__(
        self,
        widget: SceneWidget,
        scroll_to: Callable[[str], None],
        debounce_ms: float = 100.0,
    ):
        self.widget = widget
        self.scroll_to = scroll_to
        self.debounce_ms = debounce_ms
        self.visibility: Dict[str, float] = {}
        self.current_section: Optional[str] = None
        self.programmatic = False
        self._remaining_ms: Optional[float] = None
        widget.on(NAVIGATION_CHANGE, self._on_navigation)

    def close(self) -> None:
        self.widget.off(NAVIGATION_CHANGE, self._on_navigation)
        self._remaining_ms = None

    # ----- scroll -> navigation -----
    def report_visibility(self, section_id: str, ratio: float) -> None:
        """Record the visible fraction (0..1) of a section and restart the debounce."""
        if self.programmatic:
            return
        self.visibility[section_id] = max(0.0, min(1.0, ratio))
        self._remaining_ms = self.debounce_ms

    def user_scrolled(self) -> None:
        """Wheel/touch input from the user; cancels a programmatic scroll."""
        if self.programmatic:
            logger.debug("user scroll cancelled programmatic scroll")
        self.programmatic = False

    def scroll_finished(self) -> None:
        self.programmatic = False

    def most_visible(self) -> Optional[str]:
        visible = [(ratio, section) for section, ratio in self.visibility.items() if ratio > 0]
        if not visible:
            return None
        # ties go to the section reported first
        best_ratio = max(r for r, _ in visible)
        return next(s for r, s in visible if r == best_ratio)

    def tick(self, dt_ms: float) -> None:
        if self._remaining_ms is None:
            return
        self._remaining_ms -= dt_ms
        if self._remaining_ms <= 0:
            self._remaining_ms = None
            self.sync()

    def sync(self) -> None:
        """Navigate to the most visible section, or back to the overview."""
        section = self.most_visible()
        if section is None:
            if self.current_section is not None or self.widget.bookmark_index != OVERVIEW_INDEX:
                self.current_section = None
                self.widget.reset_to_default()
            return
        if section == self.current_section:
            return
        if self.widget.find_bookmark(section) is None:
            logger.debug("section %r has no bookmark", section)
            return
        self.current_section = section
        self.widget.navigate_by_key(section)

    # ----- navigation -> scroll -----
    def _on_navigation(self, change: NavigationChange) -> None:
        section = change.section_id
        if not section or section == self.current_section:
            return
        self.current_section = section
        self.programmatic = True
        self.scroll_to(section)
