import pytest

from mediaflow.adapters import TOOLS, JobHandle, JobState, JobStatus
from mediaflow.config import Config
from schemas import Plan


def running():
    return JobStatus(state=JobState.RUNNING)


def pending():
    return JobStatus(state=JobState.PENDING)


def succeeded(url=None, text=None):
    return JobStatus(state=JobState.SUCCEEDED, output_url=url, output_text=text)


def failed(reason):
    return JobStatus(state=JobState.FAILED, error=reason)


class FakeAdapter:
    """Scripted adapter. Each handle replays ``statuses``; the last entry repeats.

    Entries may be JobStatus objects or exceptions (raised from ``status``).
    """
    name = "fake"

    def __init__(self, statuses=None, submit_error=None):
        self.statuses = list(statuses or [succeeded(url="http://x/out.png")])
        self.submit_error = submit_error
        self.submissions = []
        self.status_calls = 0
        self._scripts = {}

    def submit(self, model, inputs):
        self.submissions.append((model, dict(inputs)))
        if self.submit_error is not None:
            raise self.submit_error
        handle = JobHandle(id=f"job-{len(self.submissions)}", provider=self.name)
        self._scripts[handle.id] = list(self.statuses)
        return handle

    def status(self, handle):
        self.status_calls += 1
        script = self._scripts[handle.id]
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fast_config(tmp_path):
    return Config(
        output_dir=tmp_path / "out",
        poll_intervals={t: 0.0 for t in TOOLS},
        job_timeouts={t: 2.0 for t in TOOLS},
    )


@pytest.fixture
def image_video_plan():
    return Plan.model_validate({
        "summary": "Image then animate",
        "steps": [
            {"id": "a", "title": "Hero image", "tool": "image", "model": "flux",
             "inputs": {"prompt": "a red fox"}},
            {"id": "b", "title": "Animate", "tool": "video", "model": "wan-i2v",
             "dependencies": ["a"],
             "inputs": {"prompt": "fox runs", "start_image": {"kind": "stepOutput", "stepId": "a"}}},
        ],
    })


@pytest.fixture
def chain_plan():
    """Four image steps, each using the previous output as a reference."""
    steps = [{"id": "s1", "tool": "image", "model": "flux", "inputs": {"prompt": "p1"}}]
    for i in range(2, 5):
        steps.append({
            "id": f"s{i}", "tool": "image", "model": "flux",
            "dependencies": [f"s{i - 1}"],
            "inputs": {"prompt": f"p{i}", "image_input": [{"kind": "stepOutput", "stepId": f"s{i - 1}"}]},
        })
    return Plan.model_validate({"summary": "chain", "steps": steps})
