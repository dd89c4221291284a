"""Tests for the atomic target file writer."""

import os
from unittest.mock import patch

import pytest
import yaml

from gce_prometheus_discovery.discovery.change_detector import targets_different
from gce_prometheus_discovery.discovery.models import Target
from gce_prometheus_discovery.exceptions import ReadError, WriteError
from gce_prometheus_discovery.output.file_writer import TargetFileWriter, dump_targets, read_targets

TARGETS = [
    Target(endpoints=("10.0.0.3:8080", "10.0.0.3:6060"),
           labels={"job": "zk", "gce_instance_zone": "us-central1-b", "gce_instance_tag_prod": "true"}),
    Target(endpoints=("10.0.0.1:9100",), labels={"job": "node", "gce_instance_zone": "us-central1-a"}),
]


class TestTargetFileWriter:
    def test_writes_file_sd_format(self, tmp_path):
        path = tmp_path / "targets.yml"
        TargetFileWriter(path).write(TARGETS)
        data = yaml.safe_load(path.read_text())
        assert data == [
            {"targets": ["10.0.0.1:9100"], "labels": {"job": "node", "gce_instance_zone": "us-central1-a"}},
            {
                "targets": ["10.0.0.3:6060", "10.0.0.3:8080"],
                "labels": {"job": "zk", "gce_instance_zone": "us-central1-b", "gce_instance_tag_prod": "true"},
            },
        ]

    def test_round_trip_is_equal_under_diff(self, tmp_path):
        path = tmp_path / "targets.yml"
        TargetFileWriter(path).write(TARGETS)
        assert not targets_different(TARGETS, read_targets(path))

    def test_output_independent_of_discovery_order(self, tmp_path):
        assert dump_targets(TARGETS) == dump_targets(list(reversed(TARGETS)))

    def test_empty_target_set(self, tmp_path):
        path = tmp_path / "targets.yml"
        TargetFileWriter(path).write([])
        assert yaml.safe_load(path.read_text()) == []
        assert read_targets(path) == []

    def test_replaces_existing_file(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text("old")
        TargetFileWriter(path).write(TARGETS)
        assert len(read_targets(path)) == 2

    def test_leaves_no_temp_files(self, tmp_path):
        TargetFileWriter(tmp_path / "targets.yml").write(TARGETS)
        assert os.listdir(tmp_path) == ["targets.yml"]

    def test_missing_directory_raises_write_error(self, tmp_path):
        with pytest.raises(WriteError, match="Failed to write"):
            TargetFileWriter(tmp_path / "missing" / "targets.yml").write(TARGETS)

    def test_failed_rename_keeps_previous_file(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text("previous")
        with patch("gce_prometheus_discovery.output.file_writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(WriteError, match="disk full"):
                TargetFileWriter(path).write(TARGETS)
        assert path.read_text() == "previous"
        assert os.listdir(tmp_path) == ["targets.yml"]


class TestReadTargets:
    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text("targets: []")
        with pytest.raises(ReadError, match="list of targets"):
            read_targets(path)

    def test_rejects_non_mapping_entries(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text("- 10.0.0.3:8080\n")
        with pytest.raises(ReadError, match="list of targets"):
            read_targets(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReadError, match="Failed to read"):
            read_targets(tmp_path / "absent.yml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "targets.yml"
        path.write_text("- targets: [unclosed\n")
        with pytest.raises(ReadError, match="Failed to read"):
            read_targets(path)
