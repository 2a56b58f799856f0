"""Tests for writing query results."""

import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from annotation_platform.jobs.config_loader import OutputSinkConfig
from annotation_platform.jobs.sinks import write_output


@pytest.fixture
def frame() -> pd.DataFrame:
    return pd.DataFrame({"featuretype": ["exon", "gene"], "count": [8, 3]})


def test_display_sink_logs_rows(frame, caplog):
    with caplog.at_level(logging.INFO, logger="annotation_platform.jobs.sinks"):
        write_output(frame, OutputSinkConfig(sink_type="display", config={"num_rows": 1}))
    assert "Displaying 1 of 2 rows" in caplog.text
    assert "exon" in caplog.text
    assert "gene" not in caplog.text.split("rows:")[1]


@pytest.mark.parametrize("sink_type, sep", [("csv", ","), ("tsv", "\t")])
def test_delimited_sinks(frame, tmp_path: Path, sink_type, sep):
    path = tmp_path / "out" / f"counts.{sink_type}"
    write_output(frame, OutputSinkConfig(sink_type=sink_type, config={"path": str(path)}))
    pd.testing.assert_frame_equal(pd.read_csv(path, sep=sep), frame)


def test_json_sink(frame, tmp_path: Path):
    path = tmp_path / "counts.json"
    write_output(frame, OutputSinkConfig(sink_type="json", config={"path": str(path)}))
    assert json.loads(path.read_text()) == [{"featuretype": "exon", "count": 8}, {"featuretype": "gene", "count": 3}]


def test_file_sink_requires_path(frame):
    with pytest.raises(ValueError, match="Missing path"):
        write_output(frame, OutputSinkConfig(sink_type="csv"))


def test_unknown_sink_only_warns(frame, caplog):
    with caplog.at_level(logging.WARNING):
        write_output(frame, OutputSinkConfig(sink_type="parquet", config={"path": "x.parquet"}))
    assert "Unsupported sink_type: parquet" in caplog.text
