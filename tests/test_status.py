import logging
import signal
import threading

import pytest

from slicer.data_models import RunOutcome, RunStatus, TaskParameters
from slicer.status import EventKind, StatusChannel, StatusEvent
from slicer.stop_flag import StopFlag


def test_channel_preserves_order():
    channel = StatusChannel()
    channel.publish(EventKind.STARTED, "start")
    channel.publish(EventKind.PROGRESS, "ten", 10)
    channel.publish(EventKind.FINISHED, "done", 12)

    events = channel.drain()
    assert [event.message for event in events] == ["start", "ten", "done"]
    assert events[1].kept_frames == 10
    assert channel.last_message == "done"
    assert channel.drain() == []


def test_get_times_out_empty():
    assert StatusChannel().get(timeout=0.01) is None


def test_terminal_kinds():
    assert StatusEvent(EventKind.FINISHED, "x").is_terminal
    assert StatusEvent(EventKind.CANCELLED, "x").is_terminal
    assert StatusEvent(EventKind.ERROR, "x").is_terminal
    assert not StatusEvent(EventKind.PROGRESS, "x").is_terminal


def test_events_are_immutable():
    event = StatusEvent(EventKind.STARTED, "x")
    with pytest.raises(Exception):
        event.message = "y"


def test_callback_receives_messages():
    received = []
    channel = StatusChannel(on_update=received.append)
    channel.publish(EventKind.STARTED, "hello")
    assert received == ["hello"]


def test_failing_callback_is_logged_not_raised(caplog):
    def broken(message):
        raise RuntimeError("ui gone")

    channel = StatusChannel(on_update=broken)
    with caplog.at_level(logging.ERROR):
        channel.publish(EventKind.STARTED, "hello")

    assert "Status callback raised" in caplog.text
    assert [event.message for event in channel] == ["hello"]


def test_stop_flag_is_per_instance():
    flag = StopFlag()
    assert not flag.is_stop_requested()
    flag.request_stop()
    flag.request_stop()
    assert flag.is_stop_requested()
    assert not StopFlag().is_stop_requested()


def test_signal_handlers_route_to_callback_and_restore():
    previous = signal.getsignal(signal.SIGINT)
    calls = []
    flag = StopFlag()

    flag.register_signal_handlers(lambda: calls.append("stop"))
    try:
        handler = signal.getsignal(signal.SIGINT)
        assert handler is not previous
        handler(signal.SIGINT, None)
        assert calls == ["stop"]
        assert not flag.is_stop_requested()
    finally:
        flag.restore_signal_handlers()

    assert signal.getsignal(signal.SIGINT) is previous


def test_signal_registration_off_main_thread_is_harmless():
    flag = StopFlag()
    errors = []

    def register():
        try:
            flag.register_signal_handlers()
            flag.restore_signal_handlers()
        except Exception as e:
            errors.append(e)

    thread = threading.Thread(target=register)
    thread.start()
    thread.join()
    assert errors == []


def test_task_parameters_coerce_paths():
    params = TaskParameters("in.mp4", "out")
    assert params.source_path.name == "in.mp4"
    assert params.output_dir.name == "out"
    assert (params.sampling_rate, params.quality_mode) == (10, 1)


@pytest.mark.parametrize("kwargs", [
    {"sampling_rate": 0},
    {"sampling_rate": 11},
    {"sampling_rate": 2.0},
    {"sampling_rate": True},
    {"quality_mode": -1},
    {"quality_mode": 4},
    {"quality_mode": False},
])
def test_task_parameters_reject_out_of_range(kwargs):
    with pytest.raises(ValueError):
        TaskParameters("in.mp4", "out", **kwargs)


def test_outcome_success_flag():
    assert RunOutcome(status=RunStatus.SUCCESS).success
    assert not RunOutcome(status=RunStatus.PARTIAL).success
