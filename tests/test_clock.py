import threading
import time

import pytest

from core.clock import ThreadFrameClock


@pytest.fixture
def clock():
    c = ThreadFrameClock(fps=20)
    yield c
    c.close()


def _run_once(clock, record=None):
    done = threading.Event()

    def cb():
        if record is not None:
            record.append(time.perf_counter())
        done.set()

    clock.request_frame(cb)
    assert done.wait(2.0)


def test_runs_callback_on_worker_thread(clock):
    seen = []
    done = threading.Event()

    def cb():
        seen.append(threading.current_thread().name)
        done.set()

    clock.request_frame(cb)
    assert done.wait(2.0)
    assert seen == ["frame-clock"]


def test_callbacks_paced_by_fps(clock):
    times = []
    _run_once(clock, times)
    _run_once(clock, times)
    _run_once(clock, times)
    gaps = [b - a for a, b in zip(times, times[1:])]
    assert all(gap >= clock.interval_s * 0.9 for gap in gaps)


def test_cancel_drops_pending_callback():
    clock = ThreadFrameClock(fps=2)
    try:
        _run_once(clock)
        ran = threading.Event()
        clock.request_frame(ran.set)
        clock.cancel()
        assert not ran.wait(0.8)
    finally:
        clock.close()


def test_failing_callback_does_not_stop_clock(clock):
    def boom():
        raise RuntimeError("tick failed")

    clock.request_frame(boom)
    _run_once(clock)


def test_close_ignores_later_requests():
    clock = ThreadFrameClock(fps=50)
    clock.close()
    ran = threading.Event()
    clock.request_frame(ran.set)
    assert not ran.wait(0.2)


def test_rejects_non_positive_fps():
    with pytest.raises(ValueError):
        ThreadFrameClock(fps=0)
