#!/usr/bin/env python3
"""
Bounded run history and history-to-current parameter replay.

HistoryLog keeps the most recent HISTORY_CAPACITY entries in insertion order; once
full, each append evicts the oldest entry (FIFO, not LRU: selecting or replaying an
entry does not refresh it).

ParameterReplay walks every field of a parameter snapshot from its current value to
a historical entry's value in fixed increments, one increment per host frame.
"""
import itertools
import logging
from collections import deque
from dataclasses import fields
from datetime import datetime
from typing import Callable, Deque, Iterator, List, Mapping, Optional

from .constants import HISTORY_CAPACITY, REPLAY_INCREMENT
from .data_models import HistoryEntry, SimulationParameters
from .scheduler import FrameScheduler
from .vector_utils import lerp

logger = logging.getLogger(__name__)


class HistoryLog:
    """Append-only, insertion-ordered log that drops its oldest entry when full."""

    def __init__(self, capacity: int = HISTORY_CAPACITY,
                 clock: Callable[[], datetime] = datetime.now):
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock
        self._entries: Deque[HistoryEntry] = deque(maxlen=capacity)
        self._ids = itertools.count(1)

    def record(self, simulation: str, parameters: SimulationParameters, result: float,
               result_label: str, unit: str, formula: str,
               quantities: Optional[Mapping[str, float]] = None) -> HistoryEntry:
        """Build a HistoryEntry stamped with the next id and the current time, then append it."""
        entry = HistoryEntry(
            entry_id=next(self._ids),
            simulation=simulation,
            parameters=parameters,
            result=result,
            result_label=result_label,
            unit=unit,
            formula=formula,
            timestamp=self._clock(),
            quantities=quantities or {},
        )
        self.append(entry)
        return entry

    def append(self, entry: HistoryEntry) -> None:
        if len(self._entries) == self.capacity:
            logger.debug("History full, evicting entry #%d", self._entries[0].entry_id)
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def find(self, entry_id: int) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        return None

    @property
    def latest(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def newest_first(self) -> List[HistoryEntry]:
        return list(reversed(self._entries))

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def interpolate_parameters(start: SimulationParameters, target: SimulationParameters,
                           progress: float) -> SimulationParameters:
    """
    Linearly interpolate every field of two snapshots of the same parameter type.

    progress 0 returns start's values and 1 returns target's values exactly.
    """
    if type(start) is not type(target):
        raise TypeError(f"cannot interpolate {type(start).__name__} towards {type(target).__name__}")
    if progress >= 1.0:
        return target
    values = {
        f.name: lerp(getattr(start, f.name), getattr(target, f.name), progress)
        for f in fields(start)
    }
    return type(start)(**values)


class ParameterReplay:
    """
    Frame-driven interpolation from the current parameters to a history entry.

    apply() is called once per step with the interpolated snapshot. A new start()
    before the previous replay finished restarts from whatever snapshot is passed in,
    which the engine takes to be its current (possibly mid-replay) parameters.
    """

    def __init__(self, scheduler: FrameScheduler,
                 apply: Callable[[SimulationParameters], None],
                 increment: float = REPLAY_INCREMENT):
        if not 0.0 < increment <= 1.0:
            raise ValueError("replay increment must be in (0, 1]")
        self.scheduler = scheduler
        self.apply = apply
        self.increment = increment
        self.total_steps = max(1, round(1.0 / increment))
        self.selected_entry_id: Optional[int] = None
        self._start: Optional[SimulationParameters] = None
        self._target: Optional[SimulationParameters] = None
        self._step = 0
        self._handle: Optional[int] = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def progress(self) -> float:
        return min(1.0, self._step * self.increment)

    def start(self, current: SimulationParameters, entry: HistoryEntry) -> None:
        if self.active:
            logger.debug("Restarting replay towards entry #%d from current values", entry.entry_id)
        self.cancel()
        self._start = current
        self._target = entry.parameters
        self._step = 0
        self.selected_entry_id = entry.entry_id
        self._handle = self.scheduler.request_frame(self._on_frame)

    def cancel(self) -> None:
        self._generation += 1
        self.scheduler.cancel_frame(self._handle)
        self._handle = None
        self.selected_entry_id = None

    def _on_frame(self, now: float) -> None:
        self._handle = None
        self._step += 1
        # Count whole steps so float drift in progress can never skip the final one
        if self._step >= self.total_steps:
            params = self._target
        else:
            params = interpolate_parameters(self._start, self._target, self._step * self.increment)
        generation = self._generation
        self.apply(params)
        if generation != self._generation:
            # apply() restarted or cancelled the replay
            return
        if self._step >= self.total_steps:
            logger.debug("Replay finished after %d steps", self._step)
            self.selected_entry_id = None
        else:
            self._handle = self.scheduler.request_frame(self._on_frame)
