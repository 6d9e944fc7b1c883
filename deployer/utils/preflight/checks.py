"""
Preflight checks run before any control-plane call is made.
"""

import logging
import os
import shutil
import subprocess
from typing import Iterable, Mapping, Optional

from services.bootstrap.errors import MissingDependency, MissingVariable

logger = logging.getLogger(__name__)

VERSION_CHECK_TIMEOUT = 60


def check_exec_dependency(executable_name: str) -> str:
    """Return the resolved path of ``executable_name`` or raise MissingDependency."""
    path = shutil.which(executable_name)
    if not path:
        raise MissingDependency(
            f"{executable_name} command is not available, but it's needed."
        )
    logger.debug(f"{executable_name} found at {path}")
    return path


def check_exec_version(executable_name: str) -> str:
    """Run ``<executable> --version`` and return its first output line.

    Raises:
        MissingDependency: the binary is absent, hangs, or exits non-zero.
    """
    try:
        result = subprocess.run(
            [executable_name, "--version"],
            capture_output=True,
            text=True,
            timeout=VERSION_CHECK_TIMEOUT,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise MissingDependency(f"{executable_name} command is not available, but it's needed.") from e
    except subprocess.TimeoutExpired as e:
        raise MissingDependency(
            f"{executable_name} --version did not answer within {VERSION_CHECK_TIMEOUT}s."
        ) from e

    if result.returncode != 0:
        raise MissingDependency(
            f"{executable_name} command is not usable (--version exited {result.returncode}): "
            f"{result.stderr.strip()}"
        )

    output = (result.stdout or result.stderr).strip()
    version = output.splitlines()[0] if output else ""
    logger.info(f"{executable_name}: {version}")
    return version


def check_executables(executables: Iterable[str]) -> None:
    for name in executables:
        check_exec_dependency(name)
        check_exec_version(name)


def check_environment_variable(
    variable_name: str,
    description: str,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the non-empty value of ``variable_name`` or raise MissingVariable."""
    env = os.environ if environ is None else environ
    value = (env.get(variable_name) or "").strip()
    if not value:
        raise MissingVariable(
            f"{variable_name} environment variable that points to {description} is not defined."
        )
    return value
