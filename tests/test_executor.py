# -*- coding: utf-8 -*-
#
import logging
import os

import executor
from executor import main, EXIT_SUCCESS, EXIT_ARGUMENT_ERROR, EXIT_CONVERT_ERROR
from module.MOptions import MExportOptions
from service.VrmExportService import VrmExportService


def test_convert(triangle_vrm_path, tmp_path):
    input_path = triangle_vrm_path()
    output_path = str(tmp_path / "out" / "model.pmx")

    assert main([input_path, "-out", output_path]) == EXIT_SUCCESS
    assert os.path.isfile(output_path)


def test_output_root(triangle_vrm_path, tmp_path):
    input_path = triangle_vrm_path(file_name="avatar.vrm")

    assert main(["-in", input_path, "-output-root", str(tmp_path / "root")]) == EXIT_SUCCESS
    assert os.path.isfile(str(tmp_path / "root" / "avatar" / "avatar.pmx"))


def test_argument_error(tmp_path):
    assert main([]) == EXIT_ARGUMENT_ERROR
    assert main(["a.vrm", "b.vrm", "-out", str(tmp_path / "out.pmx")]) == EXIT_ARGUMENT_ERROR
    assert main(["a.vrm", "-out", "a.pmx", "-output-root", str(tmp_path)]) == EXIT_ARGUMENT_ERROR


def test_convert_error(tmp_path):
    input_path = tmp_path / "broken.vrm"
    input_path.write_bytes(b"broken")

    assert main([str(input_path), "-out", str(tmp_path / "out.pmx")]) == EXIT_CONVERT_ERROR
    assert not os.path.exists(str(tmp_path / "out.pmx"))


def test_dry_run(triangle_vrm_path, tmp_path):
    input_path = triangle_vrm_path()
    output_root = tmp_path / "root"

    assert main([input_path, "-dry-run", "-output-root", str(output_root)]) == EXIT_SUCCESS
    # 何も出力しない
    assert not output_root.exists()

    assert main([str(tmp_path / "missing.vrm"), "-dry-run", "-output-root", str(output_root)]) == EXIT_CONVERT_ERROR


def test_fail_fast(tmp_path, monkeypatch):
    executed_paths = []

    class FailedExportService:
        def __init__(self, options):
            self.options = options

        def execute(self):
            executed_paths.append(self.options.input_path)
            return False

    monkeypatch.setattr(executor, "VrmExportService", FailedExportService)
    input_paths = [str(tmp_path / "a.vrm"), str(tmp_path / "b.vrm")]

    assert main(input_paths + ["-output-root", str(tmp_path / "root")]) == EXIT_CONVERT_ERROR
    assert executed_paths == input_paths

    executed_paths.clear()
    assert main(input_paths + ["-output-root", str(tmp_path / "root"), "-fail-fast"]) == EXIT_CONVERT_ERROR
    assert executed_paths == input_paths[:1]


def test_logging_shutdown_after_batch(tmp_path, monkeypatch):
    shutdown_calls = []

    class SucceededExportService:
        def __init__(self, options):
            self.options = options

        def execute(self):
            # 変換中はログを閉じない
            assert shutdown_calls == []
            return True

    monkeypatch.setattr(executor, "VrmExportService", SucceededExportService)
    monkeypatch.setattr(logging, "shutdown", lambda: shutdown_calls.append(1))
    input_paths = [str(tmp_path / "a.vrm"), str(tmp_path / "b.vrm")]

    assert main(input_paths + ["-output-root", str(tmp_path / "root")]) == EXIT_SUCCESS
    assert len(shutdown_calls) == 1


def test_execute_keeps_logging(triangle_vrm_path, tmp_path, monkeypatch):
    shutdown_calls = []
    monkeypatch.setattr(logging, "shutdown", lambda: shutdown_calls.append(1))

    options = MExportOptions("1.00.00", 20, triangle_vrm_path(), str(tmp_path / "out" / "model.pmx"))
    assert VrmExportService(options).execute()
    assert shutdown_calls == []
