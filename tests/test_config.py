import json

import pytest

from mediaflow import config as config_module
from mediaflow.config import DEFAULT_JOB_TIMEOUT, DEFAULT_POLL_INTERVAL, Config


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "mediaflow" / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_FILE", path)
    for var in ("REPLICATE_API_TOKEN", "SIEVE_API_KEY", "HF_TOKEN", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    return path


def test_defaults_without_file(config_file):
    cfg = Config.load()
    assert cfg.replicate_api_token == ""
    assert cfg.interval_for("veo") == 10.0
    assert cfg.timeout_for("video") == 1800.0
    assert cfg.interval_for("unknown") == DEFAULT_POLL_INTERVAL
    assert cfg.timeout_for("unknown") == DEFAULT_JOB_TIMEOUT


def test_env_beats_file(config_file, monkeypatch):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"replicate_api_token": "from-file", "sieve_api_key": "sv"}))
    monkeypatch.setenv("REPLICATE_API_TOKEN", "from-env")

    cfg = Config.load()

    assert cfg.replicate_api_token == "from-env"
    assert cfg.sieve_api_key == "sv"


def test_save_then_load(config_file, tmp_path):
    cfg = Config(hf_token="hf_abc", output_dir=tmp_path / "renders")
    cfg.poll_intervals["video"] = 1.5
    cfg.job_timeouts["image"] = 42
    cfg.save()

    loaded = Config.load()
    assert loaded.hf_token == "hf_abc"
    assert loaded.output_dir == tmp_path / "renders"
    assert loaded.interval_for("video") == 1.5
    assert loaded.timeout_for("image") == 42.0
    # untouched tools keep their defaults
    assert loaded.interval_for("veo") == 10.0


def test_bad_file_is_ignored(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{not json")
    cfg = Config.load()
    assert cfg.gemini_api_key == ""
    assert cfg.max_status_errors == config_module.MAX_STATUS_ERRORS
