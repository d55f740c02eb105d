"""Frame scheduler ordering and cancellation."""
from simlab.scheduler import FrameScheduler


def test_callbacks_fire_once_in_registration_order():
  sched = FrameScheduler()
  calls = []
  sched.request_frame(lambda now: calls.append(("a", now)))
  sched.request_frame(lambda now: calls.append(("b", now)))
  assert sched.run_frame(1.5) == 2
  assert calls == [("a", 1.5), ("b", 1.5)]
  assert sched.run_frame(2.0) == 0


def test_callback_registered_during_frame_waits_for_next_frame():
  sched = FrameScheduler()
  calls = []

  def chain(now):
    calls.append(now)
    sched.request_frame(chain)

  sched.request_frame(chain)
  sched.run_frame(0.0)
  sched.run_frame(1.0)
  assert calls == [0.0, 1.0]
  assert sched.pending == 1


def test_cancelled_handle_never_fires():
  sched = FrameScheduler()
  calls = []
  handle = sched.request_frame(lambda now: calls.append(now))
  sched.cancel_frame(handle)
  sched.cancel_frame(handle)
  sched.cancel_frame(None)
  assert sched.run_frame(0.0) == 0
  assert calls == []


def test_cancel_from_earlier_callback_in_same_batch():
  sched = FrameScheduler()
  calls = []
  handles = {}
  handles["first"] = sched.request_frame(lambda now: sched.cancel_frame(handles["second"]))
  handles["second"] = sched.request_frame(lambda now: calls.append(now))
  assert sched.run_frame(0.0) == 1
  assert calls == []


def test_frame_bookkeeping():
  sched = FrameScheduler()
  sched.run_frame(0.25)
  sched.run_frame(0.5)
  assert sched.frame_count == 2
  assert sched.last_frame_time == 0.5
