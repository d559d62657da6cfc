import threading

from conftest import FakeAdapter, failed, pending, running, succeeded
from mediaflow.adapters import JobHandle, JobState
from mediaflow.poller import PollOutcome, Poller


def _handle(adapter):
    return adapter.submit("m", {})


def test_running_then_succeeded():
    adapter = FakeAdapter([pending(), running(), running(), succeeded(url="http://x/v.mp4")])
    result = Poller().poll(adapter, _handle(adapter), interval=0, timeout=5)
    assert result.outcome == PollOutcome.SUCCEEDED
    assert result.status.output_url == "http://x/v.mp4"
    assert result.checks == 4
    assert adapter.status_calls == 4


def test_provider_failure_keeps_reason():
    adapter = FakeAdapter([running(), failed("content policy violation")])
    result = Poller().poll(adapter, _handle(adapter), interval=0, timeout=5)
    assert result.outcome == PollOutcome.FAILED
    assert result.reason == "content policy violation"


def test_timeout_reports_last_status():
    adapter = FakeAdapter([running()])
    result = Poller().poll(adapter, _handle(adapter), interval=0.01, timeout=0.05)
    assert result.outcome == PollOutcome.TIMED_OUT
    assert result.status.state == JobState.RUNNING
    assert result.checks >= 1


def test_transient_errors_are_retried():
    adapter = FakeAdapter([ConnectionError("blip"), ConnectionError("blip"), succeeded(text="ok")])
    result = Poller(max_status_errors=3).poll(adapter, _handle(adapter), interval=0, timeout=5)
    assert result.outcome == PollOutcome.SUCCEEDED
    assert result.status.output_text == "ok"


def test_error_counter_resets_after_success():
    script = [ConnectionError("1"), ConnectionError("2"), running(),
              ConnectionError("3"), ConnectionError("4"), succeeded(text="done")]
    adapter = FakeAdapter(script)
    result = Poller(max_status_errors=3).poll(adapter, _handle(adapter), interval=0, timeout=5)
    assert result.outcome == PollOutcome.SUCCEEDED


def test_consecutive_errors_escalate():
    adapter = FakeAdapter([running(), ConnectionError("down")])
    result = Poller(max_status_errors=3).poll(adapter, _handle(adapter), interval=0, timeout=5)
    assert result.outcome == PollOutcome.ERROR
    assert "3 times" in result.reason
    assert result.status.state == JobState.RUNNING
    assert adapter.status_calls == 4


def test_cancel_stops_polling():
    adapter = FakeAdapter([running()])
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        result = Poller().poll(adapter, _handle(adapter), interval=0.01, timeout=30, cancel_event=cancel)
    finally:
        timer.cancel()
    assert result.outcome == PollOutcome.CANCELED_BY_CALLER


def test_already_cancelled_makes_no_checks():
    adapter = FakeAdapter([running()])
    cancel = threading.Event()
    cancel.set()
    result = Poller().poll(adapter, JobHandle(id="j", provider="fake"), interval=0, timeout=5, cancel_event=cancel)
    assert result.outcome == PollOutcome.CANCELED_BY_CALLER
    assert adapter.status_calls == 0
