"""Tests for the end-to-end worker job."""

import json

import numpy as np
import pytest

from ddp_linreg.config import build_job_config
from ddp_linreg.context import WorkerContext
from ddp_linreg.models.export import decode_params
from ddp_linreg.training.distributed import launch_local_workers
from ddp_linreg.training.worker import distributed_worker_main, run_worker
from ddp_linreg.utils.checkpoint import load_param_stream
from tests.conftest import encode_samples


def _write_stream(path, samples):
    path.write_text("".join(token + "\n" for token in encode_samples(samples)))
    return str(path)


def _job(tmp_path, stream_paths, **training):
    return build_job_config({
        "training_config": {"model_name": "housing", "alpha": 0.5, "num_iter": 30, **training},
        "data_loader_config": {"data_loader_type": "stream", "stream_paths": stream_paths},
        "distributed_config": {"timeout_seconds": 120},
        "output_dir": str(tmp_path / "out"),
    })


class TestRunWorker:
    """Tests for run_worker without a process group."""

    def test_stream_job(self, tmp_path, linear_samples):
        job = _job(tmp_path, [_write_stream(tmp_path / "part-0.txt", linear_samples)])
        summary = run_worker(job, WorkerContext())

        assert summary["status"] == "ok"
        assert summary["global_width"] == 2
        assert summary["num_samples"] == len(linear_samples)
        assert summary["num_param"] == 3
        assert len(decode_params(load_param_stream("housing_rank0", str(tmp_path / "out")))) == 3

        with open(tmp_path / "out" / "housing_rank0.json") as f:
            assert json.load(f)["final_loss"] == pytest.approx(summary["final_loss"])

    def test_file_job(self, tmp_path):
        data = tmp_path / "train.tsv"
        data.write_text("0.0\t1.0\n1.0\t3.0\n0.5\t2.0\n")
        job = _job(tmp_path, [])
        job["data_loader_config"].update({
            "data_loader_type": "file",
            "file_config": {"url": str(data), "data_format": "tsv"},
        })

        summary = run_worker(job, WorkerContext())
        assert summary["status"] == "ok"
        assert summary["global_width"] == 1

    def test_malformed_stream_reports_status(self, tmp_path):
        bad = tmp_path / "part-0.txt"
        bad.write_text("2\n1\nfoo\n")
        summary = run_worker(_job(tmp_path, [str(bad)]), WorkerContext())

        assert summary["status"] == "protocol_error"
        assert summary["param_file"] is None
        assert (tmp_path / "out" / "housing_rank0.json").exists()

    def test_invalid_config_raises(self, tmp_path):
        with pytest.raises(ValueError):
            run_worker(_job(tmp_path, ["a.txt", "b.txt"]), WorkerContext())


def test_two_workers_agree_on_width_and_parameters(tmp_path):
    """Workers holding samples of different widths end with identical parameters."""
    parts = [
        [([0.0, 1.0], 0.0), ([1.0, 0.0], 3.0)],
        [([1.0, 1.0, 1.0], 4.0), ([0.5, 0.5, 0.0], 2.0), ([0.0, 0.0, 1.0], 1.0)],
    ]
    stream_paths = [_write_stream(tmp_path / f"part-{rank}.txt", part) for rank, part in enumerate(parts)]
    job = _job(tmp_path, stream_paths)

    launch_local_workers(distributed_worker_main, 2, args=(job,))

    out = tmp_path / "out"
    summaries = []
    for rank in range(2):
        with open(out / f"housing_rank{rank}.json") as f:
            summaries.append(json.load(f))

    assert [s["status"] for s in summaries] == ["ok", "ok"]
    assert [s["global_width"] for s in summaries] == [3, 3]
    assert [s["num_samples"] for s in summaries] == [2, 3]
    assert summaries[0]["final_loss"] == summaries[1]["final_loss"]

    payloads = [load_param_stream(f"housing_rank{rank}", str(out)) for rank in range(2)]
    assert payloads[0] == payloads[1]
    assert len(decode_params(payloads[0])) == 4
