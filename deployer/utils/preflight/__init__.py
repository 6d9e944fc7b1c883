"""Executable and environment presence checks."""

from utils.preflight.checks import (
    check_environment_variable,
    check_exec_dependency,
    check_exec_version,
    check_executables,
)

__all__ = [
    "check_environment_variable",
    "check_exec_dependency",
    "check_exec_version",
    "check_executables",
]
