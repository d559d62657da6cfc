import asyncio
import time

import pytest

from conftest import FakeAdapter, running, succeeded
from webui.backend.models import RunRequest
from webui.backend.run_manager import RunManager


def _manager(fast_config, adapters, **kwargs):
    return RunManager(config_loader=lambda: fast_config, registry_factory=lambda cfg, test: adapters, **kwargs)


def _wait(manager, run_id):
    for _ in range(200):
        status = manager.status(run_id)
        if status.state in ("done", "failed", "cancelled"):
            return status
        time.sleep(0.01)
    raise AssertionError("run did not finish")


def _collect(manager, run_id, timeout=2.0):
    async def collect():
        return [msg async for msg in manager.stream(run_id)]
    return asyncio.run(asyncio.wait_for(collect(), timeout))


def _two_step_adapters():
    return {"image": FakeAdapter([succeeded(url="http://x/a.png")]),
            "video": FakeAdapter([succeeded(url="http://x/b.mp4")])}


def test_observers_see_every_event(fast_config, image_video_plan):
    manager = _manager(fast_config, _two_step_adapters())
    seen = []
    manager.add_observer(lambda run_id, msg: seen.append((run_id, msg["type"])))

    run_id = manager.submit(RunRequest(plan=image_video_plan))
    status = _wait(manager, run_id)

    assert status.state == "done"
    assert status.outputs["b"].url == "http://x/b.mp4"
    assert [t for _, t in seen] == ["step_start", "step_complete", "step_start", "step_complete", "done"]
    assert {r for r, _ in seen} == {run_id}
    assert manager.events(run_id)[-1]["status"] == "success"


def test_broken_observer_does_not_stop_run(fast_config, image_video_plan):
    manager = _manager(fast_config, {"image": FakeAdapter(), "video": FakeAdapter()})

    def explode(run_id, msg):
        raise RuntimeError("observer down")

    manager.add_observer(explode)
    run_id = manager.submit(RunRequest(plan=image_video_plan))
    assert _wait(manager, run_id).state == "done"


def test_stream_replays_for_every_subscriber(fast_config, image_video_plan):
    manager = _manager(fast_config, _two_step_adapters())
    run_id = manager.submit(RunRequest(plan=image_video_plan))

    first = _collect(manager, run_id)
    _wait(manager, run_id)
    second = _collect(manager, run_id)

    expected = ["step_start", "step_complete", "step_start", "step_complete", "done"]
    assert [m["type"] for m in first] == expected
    assert second == first


def test_stream_joined_mid_run_gets_history_and_live_events(fast_config, image_video_plan):
    fast_config.poll_intervals["video"] = 0.01
    adapters = {"image": FakeAdapter([succeeded(url="http://x/a.png")]),
                "video": FakeAdapter([running()] * 20 + [succeeded(url="http://x/b.mp4")])}
    manager = _manager(fast_config, adapters)
    run_id = manager.submit(RunRequest(plan=image_video_plan))
    for _ in range(200):
        if len(manager.events(run_id)) >= 3:
            break
        time.sleep(0.005)

    events = _collect(manager, run_id)

    assert [m["type"] for m in events] == ["step_start", "step_complete", "step_start", "step_complete", "done"]
    assert events[-1]["status"] == "success"


def test_finished_runs_are_evicted(fast_config, image_video_plan):
    manager = _manager(fast_config, _two_step_adapters(), max_finished_runs=1)
    old = manager.submit(RunRequest(plan=image_video_plan))
    _wait(manager, old)
    newer = manager.submit(RunRequest(plan=image_video_plan))
    _wait(manager, newer)
    assert manager.status(old) is not None

    latest = manager.submit(RunRequest(plan=image_video_plan))

    assert manager.status(old) is None
    assert manager.status(newer) is not None
    assert manager.status(latest) is not None


def test_unknown_start_step_raises_before_thread(fast_config, image_video_plan):
    manager = _manager(fast_config, {})
    with pytest.raises(ValueError):
        manager.submit(RunRequest(plan=image_video_plan, start_step_id="missing"))
    assert manager._runs == {}


def test_unknown_run(fast_config):
    manager = _manager(fast_config, {})
    assert manager.status("nope") is None
    assert manager.cancel("nope") is False
    assert manager.events("nope") == []
    assert _collect(manager, "nope") == []
