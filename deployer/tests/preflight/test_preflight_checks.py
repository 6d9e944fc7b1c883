"""Tests for executable and environment presence checks."""

import subprocess
from unittest.mock import patch

import pytest

from services.bootstrap.errors import MissingDependency, MissingVariable
from utils.preflight import (
    check_environment_variable,
    check_exec_dependency,
    check_exec_version,
    check_executables,
)


class TestExecutableChecks:
    """Missing or broken executables map to exit code 3."""

    @patch("utils.preflight.checks.shutil.which", return_value=None)
    def test_missing_executable(self, _which):
        with pytest.raises(MissingDependency) as exc_info:
            check_exec_dependency("terraform")

        assert exc_info.value.exit_code == 3
        assert "terraform command is not available" in str(exc_info.value)

    @patch("utils.preflight.checks.shutil.which", return_value="/usr/bin/terraform")
    def test_present_executable_returns_path(self, _which):
        assert check_exec_dependency("terraform") == "/usr/bin/terraform"

    @patch("utils.preflight.checks.subprocess.run")
    def test_version_first_line_returned(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["terraform", "--version"], returncode=0, stdout="Terraform v1.7.5\non linux_amd64\n", stderr=""
        )
        assert check_exec_version("terraform") == "Terraform v1.7.5"
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == ["terraform", "--version"]

    @patch("utils.preflight.checks.subprocess.run")
    def test_version_non_zero_exit_is_unusable(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=["gcloud", "--version"], returncode=1, stdout="", stderr="broken install"
        )
        with pytest.raises(MissingDependency) as exc_info:
            check_exec_version("gcloud")

        assert exc_info.value.exit_code == 3
        assert "broken install" in str(exc_info.value)

    @patch("utils.preflight.checks.subprocess.run", side_effect=FileNotFoundError("gcloud"))
    def test_version_binary_vanished(self, _run):
        with pytest.raises(MissingDependency):
            check_exec_version("gcloud")

    @patch("utils.preflight.checks.subprocess.run", side_effect=subprocess.TimeoutExpired("gcloud", 60))
    def test_version_hangs(self, _run):
        with pytest.raises(MissingDependency):
            check_exec_version("gcloud")

    @patch("utils.preflight.checks.check_exec_version")
    @patch("utils.preflight.checks.check_exec_dependency")
    def test_check_executables_checks_each_in_order(self, mock_dep, mock_version):
        check_executables(["gcloud", "terraform"])

        assert [c.args[0] for c in mock_dep.call_args_list] == ["gcloud", "terraform"]
        assert [c.args[0] for c in mock_version.call_args_list] == ["gcloud", "terraform"]

    def test_check_executables_empty_is_noop(self):
        check_executables([])


class TestEnvironmentVariableCheck:
    """Missing variables map to exit code 2."""

    def test_present_value_returned_stripped(self):
        assert check_environment_variable("PROJECT_ID", "the project", {"PROJECT_ID": " proj-123 "}) == "proj-123"

    @pytest.mark.parametrize("env", [{}, {"PROJECT_ID": ""}, {"PROJECT_ID": "   "}])
    def test_missing_or_blank(self, env):
        with pytest.raises(MissingVariable) as exc_info:
            check_environment_variable("PROJECT_ID", "the target GCP project", env)

        assert exc_info.value.exit_code == 2
        assert "PROJECT_ID environment variable" in str(exc_info.value)
