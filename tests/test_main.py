"""Tests for the command-line entry point."""

import json
import sys

import pytest

from ddp_linreg.main import main
from tests.conftest import encode_samples


def test_single_mode_runs_job(tmp_path, monkeypatch, linear_samples):
    stream = tmp_path / "part-0.txt"
    stream.write_text("".join(token + "\n" for token in encode_samples(linear_samples)))
    config_path = tmp_path / "job.json"
    config_path.write_text(json.dumps({
        "training_config": {"model_name": "cli", "num_iter": 5},
        "data_loader_config": {"stream_paths": [str(stream)]},
        "output_dir": str(tmp_path / "out"),
    }))

    monkeypatch.setattr(sys, "argv", ["ddp-linreg", "--mode", "single", "--config_path", str(config_path)])
    main()

    assert (tmp_path / "out" / "cli_rank0.params").exists()


def test_failed_job_exits_nonzero(tmp_path, monkeypatch):
    config_path = tmp_path / "job.json"
    config_path.write_text(json.dumps({
        "data_loader_config": {"stream_paths": [str(tmp_path / "missing.txt")]},
        "output_dir": str(tmp_path / "out"),
    }))

    monkeypatch.setattr(sys, "argv", ["ddp-linreg", "--mode", "single", "--config_path", str(config_path)])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 1


def test_mode_is_required(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["ddp-linreg"])
    with pytest.raises(SystemExit):
        main()
