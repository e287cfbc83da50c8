"""
isonav frame-event package.

This package provides:
- Event protocol describing what a renderer receives from a widget per frame
- Adapters driving a live `SceneWidget` or replaying recorded JSONL streams
- Timeline compiler grouping frames into navigation transitions
"""

__all__ = [
    # Subpackages will be imported lazily by users
]
