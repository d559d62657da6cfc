import json
import time

import pytest
from litestar.testing import TestClient

from conftest import FakeAdapter, running, succeeded
from mediaflow import config as config_module
from mediaflow.adapters import build_registry
from mediaflow.events import Done, StepStart, parse_event
from webui.backend.app import app
from webui.backend.run_manager import run_manager

PLAN = {
    "summary": "Image then animate",
    "steps": [
        {"id": "a", "tool": "image", "model": "flux", "inputs": {"prompt": "a red fox"}},
        {"id": "b", "tool": "video", "model": "wan", "dependencies": ["a"],
         "inputs": {"prompt": "fox runs", "start_image": {"kind": "stepOutput", "stepId": "a"}}},
    ],
}


@pytest.fixture
def client(fast_config, monkeypatch, tmp_path):
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "cfg" / "config.json")
    monkeypatch.setattr(run_manager, "_config_loader", lambda: fast_config)
    monkeypatch.setattr(run_manager, "_registry_factory", lambda cfg, test: build_registry(cfg, True))
    with TestClient(app=app) as c:
        yield c


def _sse_events(text):
    return [json.loads(line[len("data:"):].strip()) for line in text.splitlines() if line.startswith("data:")]


def _wait_for_state(client, run_id, states=("done", "failed", "cancelled")):
    for _ in range(200):
        body = client.get(f"/api/runs/{run_id}").json()
        if body["state"] in states:
            return body
        time.sleep(0.01)
    raise AssertionError(f"run {run_id} still {body['state']}")


def test_run_streams_events_until_done(client):
    res = client.post("/api/runs", json={"plan": PLAN, "useTestMode": True})
    assert res.status_code == 201
    run_id = res.json()["runId"]

    events = _sse_events(client.get(f"/api/runs/{run_id}/stream").text)

    assert [e["type"] for e in events] == ["step_start", "step_complete", "step_start", "step_complete", "done"]
    assert events[0]["stepId"] == "a"
    done = events[-1]
    assert done["status"] == "success"
    assert set(done["outputs"]) == {"a", "b"}
    # the placeholder video echoes the image it was started from
    assert done["outputs"]["b"]["url"] == done["outputs"]["a"]["url"]

    parsed = [parse_event(e) for e in events]
    assert isinstance(parsed[0], StepStart)
    assert isinstance(parsed[-1], Done)
    assert [p.to_dict() for p in parsed] == events


def test_run_status_after_completion(client):
    run_id = client.post("/api/runs", json={"plan": PLAN}).json()["runId"]
    body = _wait_for_state(client, run_id)
    assert body["state"] == "done"
    assert body["stepStates"]["b"]["status"] == "complete"
    assert body["finishedAt"] >= body["startedAt"]


def test_failed_step_marks_run_failed(client, monkeypatch):
    adapters = {
        "image": FakeAdapter([succeeded(url="http://x/a.png")]),
        "video": FakeAdapter([running(), succeeded()]),  # no output
    }
    monkeypatch.setattr(run_manager, "_registry_factory", lambda cfg, test: adapters)

    run_id = client.post("/api/runs", json={"plan": PLAN}).json()["runId"]
    events = _sse_events(client.get(f"/api/runs/{run_id}/stream").text)

    assert events[-2]["type"] == "step_error"
    assert events[-2]["kind"] == "provider_failure"
    assert events[-1]["failedStepId"] == "b"
    body = _wait_for_state(client, run_id)
    assert body["state"] == "failed"
    assert body["stepStates"]["a"]["status"] == "complete"


def test_resume_from_step(client):
    res = client.post("/api/runs", json={
        "plan": PLAN,
        "startStepId": "b",
        "previousOutputs": {"a": {"url": "file:///tmp/fox.png"}},
    })
    events = _sse_events(client.get(f"/api/runs/{res.json()['runId']}/stream").text)
    assert [e["type"] for e in events] == ["step_start", "step_complete", "done"]
    assert events[1]["outputUrl"] == "file:///tmp/fox.png"


def test_cancel_run(client, fast_config, monkeypatch):
    fast_config.poll_intervals["image"] = 0.01
    adapters = {"image": FakeAdapter([running()]), "video": FakeAdapter()}
    monkeypatch.setattr(run_manager, "_registry_factory", lambda cfg, test: adapters)

    run_id = client.post("/api/runs", json={"plan": PLAN}).json()["runId"]
    res = client.post(f"/api/runs/{run_id}/cancel")
    assert res.status_code == 201
    assert res.json() == {"ok": True, "runId": run_id}

    events = _sse_events(client.get(f"/api/runs/{run_id}/stream").text)
    assert events[-1]["status"] == "canceled"
    assert adapters["video"].submissions == []
    assert _wait_for_state(client, run_id)["state"] == "cancelled"


def test_unknown_run_is_404(client):
    assert client.get("/api/runs/nope").status_code == 404
    assert client.post("/api/runs/nope/cancel").status_code == 404
    assert client.get("/api/runs/nope/stream").status_code == 404


def test_bad_plan_is_400(client):
    bad = {"steps": [{"id": "a", "tool": "image", "dependencies": ["z"], "inputs": {}}]}
    assert client.post("/api/runs", json={"plan": bad}).status_code == 400
    assert client.post("/api/runs", json={"plan": {"steps": []}}).status_code == 400


def test_unknown_start_step_is_400(client):
    res = client.post("/api/runs", json={"plan": PLAN, "startStepId": "zzz"})
    assert res.status_code == 400


def test_validate_plan_endpoint(client):
    ok = client.post("/api/plans/validate", json={"plan": PLAN})
    assert ok.json() == {"ok": True, "errors": {}}

    res = client.post("/api/plans/validate", json={
        "plan": PLAN,
        "stepConfigs": {"b": {"model": "kwaivgi/kling-v2.1", "inputs": {"prompt": "go"}}},
    })
    assert res.json() == {"ok": False, "errors": {"b": ["Kling v2.1 requires start_image"]}}


def test_config_masks_and_keeps_secrets(client, monkeypatch):
    for var in ("REPLICATE_API_TOKEN", "SIEVE_API_KEY", "HF_TOKEN", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)

    payload = {"replicate_api_token": "r8_abcdefghijkl", "output_dir": "renders",
               "poll_intervals": {"veo": 20}}
    assert client.post("/api/config", json=payload).json() == {"ok": True}

    body = client.get("/api/config").json()
    assert body["replicate_api_token"] == "r8_a…ijkl"
    assert body["poll_intervals"]["veo"] == 20.0
    assert body["output_dir"] == "renders"

    # posting the masked value back leaves the stored secret alone
    client.post("/api/config", json={**body, "hf_token": "hf_123456789"})
    cfg = config_module.Config.load()
    assert cfg.replicate_api_token == "r8_abcdefghijkl"
    assert cfg.hf_token == "hf_123456789"


def test_stream_reconnect_after_done_replays_history(client):
    run_id = client.post("/api/runs", json={"plan": PLAN}).json()["runId"]
    first = _sse_events(client.get(f"/api/runs/{run_id}/stream").text)
    _wait_for_state(client, run_id)

    second = _sse_events(client.get(f"/api/runs/{run_id}/stream").text)

    assert second == first
    assert second[-1]["type"] == "done"
