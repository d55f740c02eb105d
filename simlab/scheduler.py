#!/usr/bin/env python3
"""
Host frame scheduler.

A cooperative, single-threaded stand-in for an animation-frame primitive. Engines
register one callback per frame they want; the host (the viewport loop, or a test)
pumps run_frame() once per rendered frame with a monotonic timestamp in seconds.

Ordering
- Callbacks fire in registration order.
- A callback registered while a frame is running fires on the next frame, never the
  current one, so each engine advances at most once per run_frame() call.
- A cancelled handle never fires.
"""
from typing import Callable, Dict, Optional

FrameCallback = Callable[[float], None]


class FrameScheduler:

    def __init__(self):
        self._pending: Dict[int, FrameCallback] = {}
        self._next_handle = 1
        self.frame_count = 0
        self.last_frame_time: Optional[float] = None

    def request_frame(self, callback: FrameCallback) -> int:
        """Schedule callback(now) for the next frame and return a handle for cancel_frame()."""
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        """Drop a scheduled callback; unknown or already-fired handles are ignored."""
        if handle is not None:
            self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def run_frame(self, now: float) -> int:
        """
        Fire every callback that was scheduled before this frame started.

        Args:
            now: Monotonic time in seconds

        Returns:
            Number of callbacks fired
        """
        self.frame_count += 1
        self.last_frame_time = now
        batch = list(self._pending.items())
        fired = 0
        for handle, callback in batch:
            # An earlier callback in this batch may have cancelled this one
            if self._pending.pop(handle, None) is None:
                continue
            callback(now)
            fired += 1
        return fired
