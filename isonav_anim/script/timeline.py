from __future__ import annotations

from typing import Iterable, List, Optional

from isonav_anim.models.events import Event, NavigationSettled, NavigationStarted, Transition


def compile_events_to_transitions(events: Iterable[Event]) -> List[Transition]:
    """
    Group a frame-event stream into navigation transitions.

    A transition opens at `NavigationStarted` and closes at the matching
    `NavigationSettled`. A transition that is still open when another one
    starts was superseded; it is kept with ``settled=False`` so consumers can
    see the poses it produced before it was abandoned.
    """
    transitions: List[Transition] = []
    current: List[Event] = []
    current_idx: Optional[int] = None
    start_t: Optional[float] = None
    last_t: Optional[float] = None

    def close(settled: bool, end_t: Optional[float]) -> None:
        duration = (end_t - start_t) if (end_t is not None and start_t is not None) else 0.0
        transitions.append(
            Transition(
                idx=current_idx if current_idx is not None else len(transitions),
                duration=float(max(0.0, duration)),
                events=list(current),
                settled=settled,
            )
        )

    for ev in events:
        t = getattr(ev, "t", None)
        if isinstance(ev, NavigationStarted):
            if current_idx is not None:
                close(False, last_t)
            current = [ev]
            current_idx = ev.index
            start_t = ev.t
            last_t = ev.t
        elif isinstance(ev, NavigationSettled):
            if current_idx is None:
                # settle without a recorded start; open a zero-length transition
                current_idx = ev.index
                start_t = ev.t
            current.append(ev)
            close(True, ev.t)
            current = []
            current_idx = None
            start_t = None
            last_t = ev.t
        elif current_idx is not None:
            current.append(ev)
            if t is not None:
                last_t = t

    if current_idx is not None:
        # flush tail
        close(False, last_t)

    return transitions
