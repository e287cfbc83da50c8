"""
Configuration objects for the isonav widget.

Exposes tunable parameters for camera limits, animation timing, connector
routing and dimming so that scenes can be tuned without editing core logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class AxisLimits:
    """Inclusive ``[min, max]`` range for one rotation axis (degrees)."""

    min: float
    max: float

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))


@dataclass(frozen=True)
class RotationLimits:
    """
    Per-axis rotation limits, fixed at construction.

    Defaults match the widget's historic behaviour: pitch (x) may only tilt
    between flat and top-down, the other two axes may spin a full turn.
    """

    x: AxisLimits = AxisLimits(0.0, 90.0)
    y: AxisLimits = AxisLimits(-180.0, 180.0)
    z: AxisLimits = AxisLimits(-180.0, 180.0)

    def clamp(self, rx: float, ry: float, rz: float) -> Tuple[float, float, float]:
        return self.x.clamp(rx), self.y.clamp(ry), self.z.clamp(rz)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "RotationLimits":
        """Build limits from ``{"x": {"min": .., "max": ..}, ...}``; missing keys keep defaults."""
        base = cls()
        if not data:
            return base
        axes = {}
        for name in ("x", "y", "z"):
            current: AxisLimits = getattr(base, name)
            spec = data.get(name) or {}
            axes[name] = AxisLimits(
                float(spec.get("min", current.min)),
                float(spec.get("max", current.max)),
            )
        return cls(**axes)


@dataclass
class WidgetConfig:
    """
    Configuration for `SceneWidget` behaviour.

    Defaults reproduce the original widget's constants.
    """

    # Camera defaults and limits
    default_rotation: Tuple[float, float, float] = (45.0, 0.0, -35.0)
    default_zoom: float = 1.0
    default_pan: Tuple[float, float] = (0.0, 0.0)
    rotation_limits: RotationLimits = field(default_factory=RotationLimits)
    zoom_min: float = 0.2
    zoom_max: float = 3.0

    # Animation timing (milliseconds)
    navigation_duration_ms: float = 1200.0
    nudge_duration_ms: float = 500.0
    focus_duration_ms: float = 300.0
    nudge_step_deg: float = 15.0

    # Layout settle: delay after a dimension change before anchors are trusted
    settle_delay_ms: float = 100.0

    # Autoplay dwell time on each bookmark once it has settled
    autoplay_interval_ms: float = 4000.0

    # Connector routing
    corner_radius: float = 10.0
    center_nudge: float = 20.0
    straight_threshold: float = 1.0
    bend_ratios: Tuple[float, float] = (0.25, 0.75)
    stroke_width: float = 3.0
    dash_pattern: str = "8,4"
    marker_period_s: float = 3.0
    marker_radius: float = 4.0
    circle_radius: float = 6.0
    default_connector_color: str = "#4CAF50"
    dimmed_arrow_color: str = "#808080"

    # Connector defaults applied when a connector does not say otherwise
    default_start_decoration: str = "none"
    default_end_decoration: str = "none"
    default_line_style: str = "solid"
    default_animated: bool = False

    # Dimming alphas (reversible colour transform)
    dim_background_alpha: float = 0.2
    dim_border_alpha: float = 0.2
    dim_text_alpha: float = 0.3
    dim_vector_alpha: float = 0.25

    # Which element receives the "selected" marker after navigation:
    # "clicked" or a face kind such as "top", "front", ...
    nav_selected_target: str = "clicked"

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.zoom_min, min(self.zoom_max, zoom))

    def dim_alphas(self) -> Dict[str, float]:
        """Alpha used for each colour channel of a dimmed element."""
        return {
            "background": self.dim_background_alpha,
            "border": self.dim_border_alpha,
            "text": self.dim_text_alpha,
            "stroke": self.dim_vector_alpha,
            "fill": self.dim_vector_alpha,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "WidgetConfig":
        """
        Build a config from a mapping of field overrides.

        Raises:
            ValueError: On a key that is not a config field
        """
        cfg = cls()
        for key, value in (data or {}).items():
            if key not in cls.__dataclass_fields__:
                raise ValueError(f"unknown widget config key {key!r}")
            if key == "rotation_limits":
                value = RotationLimits.from_dict(value)
            elif isinstance(getattr(cfg, key), tuple):
                value = tuple(float(v) for v in value)
            setattr(cfg, key, value)
        return cfg
