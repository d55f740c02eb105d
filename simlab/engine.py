#!/usr/bin/env python3
"""
Animation and history engine for Physics Lab

Responsibilities
- Own the parameter snapshot of one simulation instance and accept explicit
  parameters_changed() notifications from the host; nothing here reads UI state.
- Drive one run at a time through IDLE -> RUNNING -> SETTLED -> IDLE, advancing the run's
  state in fixed ticks of dt = 1/60 s.
- On settle, append a HistoryEntry to the bounded log before returning to IDLE.
- Replay a history entry by interpolating the parameters over 20 frames.

Timing
- The host pumps a FrameScheduler once per rendered frame. Each frame callback adds the
  real elapsed time to an accumulator and consumes it in whole dt ticks, at most
  MAX_SUBSTEPS per frame. Physical time therefore does not depend on the display rate;
  the leftover fraction of a tick is only used by render_sample() to interpolate between
  the last two ticks.
- The first frame after a launch advances exactly one tick.

Threading
- Single owner. The desktop host serialises every call through its own lock, so the
  engine never sees two callers at once.
"""

import logging
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional, Tuple

from .constants import FIXED_DT, MAX_SUBSTEPS
from .data_models import HistoryEntry, SimulationParameters
from .errors import NoActiveParametersError
from .history import HistoryLog, ParameterReplay
from .scheduler import FrameScheduler
from .vector_utils import clamp, lerp

logger = logging.getLogger(__name__)

# Tolerance when comparing accumulated frame time against dt
TIME_EPSILON = 1e-9


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SETTLED = "settled"


class RunSummary(NamedTuple):
    """Derived result of a parameter snapshot, as stored in a HistoryEntry."""
    result: float
    result_label: str
    unit: str
    formula: str
    quantities: Mapping[str, float]


class ParameterModel:
    """
    Parameter ownership, history and replay shared by every simulation.

    Subclasses set name and parameters_type and may override _apply_parameters() to
    validate or react to a new snapshot before it is committed.
    """

    name = "simulation"
    parameters_type = SimulationParameters

    def __init__(self, scheduler: FrameScheduler,
                 parameters: Optional[SimulationParameters] = None,
                 history: Optional[HistoryLog] = None,
                 on_parameters: Optional[Callable[[SimulationParameters], None]] = None):
        self.scheduler = scheduler
        self.parameters: Optional[SimulationParameters] = None
        self.history = history if history is not None else HistoryLog()
        self.on_parameters = on_parameters
        self.replay_driver = ParameterReplay(scheduler, self._apply_replay_step)
        if parameters is not None:
            self.parameters_changed(parameters)

    # -----------------------
    # Parameters
    # -----------------------

    def parameters_changed(self, parameters: SimulationParameters) -> None:
        """Host notification that the controls now hold this snapshot."""
        self._update_parameters(parameters, user_change=True)

    def restore_defaults(self) -> None:
        self.parameters_changed(self.parameters_type())

    def _update_parameters(self, parameters: SimulationParameters, user_change: bool) -> None:
        if not isinstance(parameters, self.parameters_type):
            raise TypeError(f"{self.name} expects {self.parameters_type.__name__}, "
                            f"got {type(parameters).__name__}")
        # May raise; nothing is committed in that case
        self._apply_parameters(parameters, user_change)
        self.parameters = parameters
        if self.on_parameters is not None:
            self.on_parameters(parameters)

    def _apply_parameters(self, parameters: SimulationParameters, user_change: bool) -> None:
        pass

    # -----------------------
    # Replay
    # -----------------------

    @property
    def selected_entry_id(self) -> Optional[int]:
        return self.replay_driver.selected_entry_id

    @property
    def replaying(self) -> bool:
        return self.replay_driver.active

    def replay(self, entry: HistoryEntry) -> None:
        """Interpolate the current parameters towards entry's over the next 20 frames."""
        if not isinstance(entry.parameters, self.parameters_type):
            raise TypeError(f"entry #{entry.entry_id} belongs to {entry.simulation}, not {self.name}")
        if self.parameters is None:
            logger.info("%s: no current parameters, jumping straight to entry #%d", self.name, entry.entry_id)
            self.parameters_changed(entry.parameters)
            return
        logger.info("%s: replaying entry #%d", self.name, entry.entry_id)
        self.replay_driver.start(self.parameters, entry)

    def _apply_replay_step(self, parameters: SimulationParameters) -> None:
        self._update_parameters(parameters, user_change=False)

    def clear_history(self) -> None:
        """Drop every recorded entry; a replay in progress is cancelled with it."""
        self.replay_driver.cancel()
        self.history.clear()
        logger.info("%s: history cleared", self.name)

    def close(self) -> None:
        """Stop every scheduled callback owned by this model."""
        self.replay_driver.cancel()


class AnimationEngine(ParameterModel):
    """
    Fixed-timestep run loop with termination detection.

    Subclasses provide the physics through five hooks:
    - _summarize(params): RunSummary for a snapshot; raising here rejects a launch
    - _start_state(params): fresh state at t = 0, trail seeded with the start sample
    - _advance(state, params): recompute state at state.t (already incremented)
    - _terminated(state, params): termination predicate
    - _clamp_terminal(state, params): snap state to the exact terminal value
    and _sample(state) returning the tuple the renderer interpolates.
    """

    def __init__(self, scheduler: FrameScheduler,
                 parameters: Optional[SimulationParameters] = None,
                 history: Optional[HistoryLog] = None,
                 on_parameters: Optional[Callable[[SimulationParameters], None]] = None,
                 on_settle: Optional[Callable[[HistoryEntry], None]] = None,
                 dt: float = FIXED_DT):
        if dt <= 0:
            raise ValueError("dt must be positive")
        self.dt = dt
        self.phase = Phase.IDLE
        self.state = None
        self.last_run = None
        self.run_parameters: Optional[SimulationParameters] = None
        self.on_settle = on_settle
        self._summary: Optional[RunSummary] = None
        self._frame_handle: Optional[int] = None
        self._last_frame_time: Optional[float] = None
        self._accumulator = 0.0
        self._previous_sample: Optional[Tuple[float, ...]] = None
        super().__init__(scheduler, parameters, history, on_parameters)

    @property
    def running(self) -> bool:
        return self.phase is Phase.RUNNING

    # -----------------------
    # Transitions
    # -----------------------

    def launch(self):
        """
        Start a run from the current parameters (IDLE -> RUNNING).

        A launch while a run is in flight cancels that run, without a history entry,
        and starts over.

        Raises:
            NoActiveParametersError: no parameters were ever supplied
            InvalidParameterError: the physics model rejected the parameters; the
                engine state is left untouched
        """
        params = self.parameters
        if params is None:
            raise NoActiveParametersError(f"{self.name}: cannot launch before parameters are set")
        summary = self._summarize(params)
        state = self._start_state(params)

        if self.phase is Phase.RUNNING:
            logger.info("%s: relaunch requested, cancelling run at t=%.3fs", self.name, self.state.t)
        self._cancel_frame()
        self.run_parameters = params
        self._summary = summary
        self.state = state
        self.last_run = None
        self._accumulator = 0.0
        self._last_frame_time = None
        self._previous_sample = self._sample(state)
        self.phase = Phase.RUNNING
        self._request_frame()
        logger.info("%s: launched with %s", self.name, params)
        return state

    def step(self) -> bool:
        """
        Advance the active run by one fixed tick.

        Returns:
            True while the run is still going, False when idle or just settled
        """
        if self.phase is not Phase.RUNNING:
            return False
        state = self.state
        params = self.run_parameters
        self._previous_sample = self._sample(state)
        state.t += self.dt
        self._advance(state, params)
        if self._terminated(state, params):
            self._settle()
            return False
        state.add_trail_point()
        return True

    def reset(self) -> None:
        """Return to IDLE from any phase, discarding the run without recording it."""
        self._cancel_frame()
        self.replay_driver.cancel()
        if self.phase is Phase.RUNNING:
            logger.info("%s: reset during run at t=%.3fs", self.name, self.state.t)
        self.phase = Phase.IDLE
        self.state = None
        self.last_run = None
        self.run_parameters = None
        self._summary = None
        self._accumulator = 0.0
        self._last_frame_time = None
        self._previous_sample = None

    def hold(self) -> None:
        """Stop frame-driven ticking but keep the run; step() still advances it."""
        self._cancel_frame()
        self._last_frame_time = None
        self._accumulator = 0.0

    def resume(self) -> None:
        """Hand a held run back to the frame loop; the first frame advances one tick."""
        if self.phase is Phase.RUNNING:
            self._request_frame()

    @property
    def held(self) -> bool:
        return self.phase is Phase.RUNNING and self._frame_handle is None

    def close(self) -> None:
        self._cancel_frame()
        super().close()

    def _settle(self) -> None:
        self.phase = Phase.SETTLED
        state = self.state
        self._clamp_terminal(state, self.run_parameters)
        state.add_trail_point()
        summary = self._summary
        entry = self.history.record(
            self.name, self.run_parameters, summary.result, summary.result_label,
            summary.unit, summary.formula, summary.quantities,
        )
        self._cancel_frame()
        self.last_run = state
        self.state = None
        self._previous_sample = None
        self._accumulator = 0.0
        self.phase = Phase.IDLE
        logger.info("%s: settled at t=%.3fs, %s = %.3f %s",
                    self.name, state.t, summary.result_label, summary.result, summary.unit)
        if self.on_settle is not None:
            self.on_settle(entry)

    # -----------------------
    # Frame driving
    # -----------------------

    def _request_frame(self) -> None:
        if self._frame_handle is None:
            self._frame_handle = self.scheduler.request_frame(self._on_frame)

    def _cancel_frame(self) -> None:
        self.scheduler.cancel_frame(self._frame_handle)
        self._frame_handle = None

    def _on_frame(self, now: float) -> None:
        self._frame_handle = None
        if self.phase is not Phase.RUNNING:
            return
        if self._last_frame_time is None:
            elapsed = self.dt
        else:
            elapsed = max(0.0, now - self._last_frame_time)
        self._last_frame_time = now
        self._accumulator += elapsed

        steps = 0
        while self._accumulator + TIME_EPSILON >= self.dt and steps < MAX_SUBSTEPS:
            self._accumulator -= self.dt
            steps += 1
            if not self.step():
                return
        if steps == MAX_SUBSTEPS and self._accumulator >= self.dt:
            logger.debug("%s: frame backlog of %.3fs dropped", self.name, self._accumulator)
            self._accumulator %= self.dt
        self._accumulator = max(0.0, self._accumulator)
        self._request_frame()

    # -----------------------
    # Rendering support
    # -----------------------

    @property
    def render_alpha(self) -> float:
        """Fraction of a tick elapsed since the last one, for render interpolation."""
        return clamp(self._accumulator / self.dt, 0.0, 1.0)

    def render_sample(self) -> Optional[Tuple[float, ...]]:
        """Sample to draw this frame: interpolated while running, terminal once settled."""
        if self.state is None:
            return self._sample(self.last_run) if self.last_run is not None else None
        current = self._sample(self.state)
        # A held run only moves on step(), so its latest tick is what to draw
        if self._previous_sample is None or self.held:
            return current
        alpha = self.render_alpha
        return tuple(lerp(a, b, alpha) for a, b in zip(self._previous_sample, current))

    @property
    def current_summary(self) -> Optional[RunSummary]:
        """Summary of the current parameters, or None when they are not set."""
        if self.parameters is None:
            return None
        return self._summarize(self.parameters)

    # -----------------------
    # Hooks
    # -----------------------

    def _summarize(self, params) -> RunSummary:
        raise NotImplementedError

    def _start_state(self, params):
        raise NotImplementedError

    def _advance(self, state, params) -> None:
        raise NotImplementedError

    def _terminated(self, state, params) -> bool:
        raise NotImplementedError

    def _clamp_terminal(self, state, params) -> None:
        raise NotImplementedError

    def _sample(self, state) -> Tuple[float, ...]:
        raise NotImplementedError
