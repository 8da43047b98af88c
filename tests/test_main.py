from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from app.main import DEMO_LABELS, apply_defaults, load_dataset, load_yaml, main, run_demo


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body)
    return path


def test_load_yaml_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_yaml(tmp_path / "absent.yaml")


def test_apply_defaults_is_non_destructive():
    cfg = apply_defaults({"LR": 0.5, "ARTIFACTS": {"summaries": "x"}})
    assert cfg["LR"] == 0.5
    assert cfg["ARTIFACTS"]["summaries"] == "x"
    assert cfg["HIDDEN_UNITS"] == 2
    assert cfg["DATASET"] == "one_hot"


def test_load_dataset_from_npy(tmp_path: Path):
    path = tmp_path / "d.npy"
    np.save(path, np.eye(3))
    rows = load_dataset({"DATASET": str(path)})
    assert rows == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    assert load_dataset({"DATASET": "one_hot", "ONE_HOT_SIZE": 2}) == [[1, 0], [0, 1]]


def test_main_train_writes_summary(tmp_path: Path, capsys):
    pytest.importorskip("matplotlib")
    summaries = tmp_path / "out"
    cfg_path = _write_config(
        tmp_path,
        f"SEED: 1\nITERATIONS: 10\nLOG_EVERY: 5\nARTIFACTS:\n  summaries: {summaries}\n",
    )
    main(["train", "--config", str(cfg_path)])
    out = capsys.readouterr().out
    assert "[config] Using" in out
    assert "h=00 ->" in out and "h=11 ->" in out
    assert (summaries / "summary.json").exists()


def test_run_demo_prints_four_labels(capsys):
    decoded = run_demo(apply_defaults({"ITERATIONS": 5, "LOG_EVERY": 5, "SEED": 3}))
    assert len(decoded) == 4
    assert all(d in DEMO_LABELS + ["unknown"] for d in decoded)
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[-4:] == decoded


def test_main_train_warns_when_preview_fails(tmp_path: Path, capsys, monkeypatch):
    import app.main as app_main

    def _broken(book, path):
        raise RuntimeError("no display")

    monkeypatch.setattr(app_main, "save_codebook_png", _broken)
    summaries = tmp_path / "out"
    cfg_path = _write_config(
        tmp_path,
        f"SEED: 1\nITERATIONS: 3\nLOG_EVERY: 5\nARTIFACTS:\n  summaries: {summaries}\n",
    )
    main(["train", "--config", str(cfg_path)])
    out = capsys.readouterr().out
    assert "[warn] could not write codebook preview -> no display" in out
    assert (summaries / "summary.json").exists()
    assert not (summaries / "codebook.png").exists()
    assert "h=11 ->" in out
