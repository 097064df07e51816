"""Tests for the package manager command runner."""

import subprocess
from pathlib import Path
from unittest.mock import patch

from kupler.utils.process_runner import (
    query_package_manager,
    resolve_executable,
    run_package_manager,
)


@patch("kupler.utils.process_runner.shutil.which", return_value="/usr/bin/npm")
@patch("kupler.utils.process_runner.subprocess.run")
def test_run_inherits_streams_and_uses_cwd(mock_run, _mock_which):
    mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)

    run_package_manager("npm", ["link"], Path("/work/pkg"))

    mock_run.assert_called_once_with(
        ["/usr/bin/npm", "link"], cwd="/work/pkg", check=False
    )


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
@patch("kupler.utils.process_runner.subprocess.run")
def test_run_uses_bare_name_when_not_on_path(mock_run, _mock_which):
    mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)

    run_package_manager("npm", ["install"], Path("/work"))

    assert mock_run.call_args.args[0] == ["npm", "install"]
    assert "env" not in mock_run.call_args.kwargs


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
def test_resolve_executable_falls_back_to_bare_name(_mock_which):
    assert resolve_executable("yarn") == "yarn"


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
@patch("kupler.utils.process_runner.subprocess.run")
def test_query_returns_trimmed_stdout(mock_run, _mock_which):
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=0, stdout="/usr/lib/node_modules\n", stderr=""
    )

    assert query_package_manager("npm", ["root", "-g"]) == "/usr/lib/node_modules"
    assert mock_run.call_args.kwargs["capture_output"] is True


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
@patch("kupler.utils.process_runner.subprocess.run")
def test_query_failure_returns_none(mock_run, _mock_which):
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=1, stdout="", stderr="boom"
    )

    assert query_package_manager("npm", ["root", "-g"]) is None


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
@patch("kupler.utils.process_runner.subprocess.run")
def test_query_missing_executable_returns_none(mock_run, _mock_which):
    mock_run.side_effect = FileNotFoundError("npm")

    assert query_package_manager("npm", ["prefix", "-g"]) is None


@patch("kupler.utils.process_runner.shutil.which", return_value=None)
@patch("kupler.utils.process_runner.subprocess.run")
def test_query_empty_output_returns_none(mock_run, _mock_which):
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=0, stdout="  \n", stderr=""
    )

    assert query_package_manager("yarn", ["global", "dir"]) is None
