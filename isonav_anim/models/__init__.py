from .events import (
    SceneDeclared,
    FrameStart,
    FrameEnd,
    PoseFrame,
    NavigationStarted,
    NavigationSettled,
    HighlightApplied,
    ConnectorPath,
    Transition,
)
