"""
Cloud Provisioning Client backed by the gcloud CLI.

Every operation is one ``gcloud`` invocation run through ``run_gcloud``. The
active gcloud account and configuration are used as-is.
"""

import json
import logging
import os
import subprocess
import tempfile
from typing import List, Optional

from connectors.gcp_connector.client import CloudProvisioningClient
from connectors.gcp_connector.errors import CloudCallError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300


def run_gcloud(args: List[str], gcloud_cmd: str = "gcloud", env=None, timeout=DEFAULT_TIMEOUT) -> str:
    """Run a gcloud command and return its stripped stdout.

    Args:
        args: Arguments after the ``gcloud`` executable.
        gcloud_cmd: Executable name or path.
        env: Optional environment dict for subprocess.
        timeout: Command timeout in seconds.

    Raises:
        CloudCallError: the binary is missing or not runnable, times out or exits non-zero.
    """
    cmd = [gcloud_cmd, *args]
    operation = " ".join(cmd[:4])
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CloudCallError(operation, f"timed out after {timeout}s") from e
    except FileNotFoundError as e:
        raise CloudCallError(operation, f"{gcloud_cmd} not found") from e
    except OSError as e:
        raise CloudCallError(operation, f"{gcloud_cmd} could not be run: {e}") from e

    if result.returncode != 0:
        raise CloudCallError(operation, result.stderr.strip() or "no output", result.returncode)
    return result.stdout.strip()


class GcloudCliProvisioningClient(CloudProvisioningClient):
    """Shells out to gcloud for each control-plane call."""

    def __init__(self, gcloud_cmd: str = "gcloud", timeout: int = DEFAULT_TIMEOUT, env: Optional[dict] = None):
        self.gcloud_cmd = gcloud_cmd
        self.timeout = timeout
        self.env = env

    def _run(self, args: List[str]) -> str:
        return run_gcloud(args, gcloud_cmd=self.gcloud_cmd, env=self.env, timeout=self.timeout)

    def list_enabled_services(self, project_id: str) -> List[str]:
        output = self._run([
            "services", "list", "--enabled",
            f"--project={project_id}",
            "--format=value(config.name)",
        ])
        return [line.strip() for line in output.splitlines() if line.strip()]

    def enable_service(self, project_id: str, api: str) -> None:
        self._run(["services", "enable", api, f"--project={project_id}", "--async"])

    def describe_org_policy(self, policy_name: str, project_id: str) -> str:
        return self._run(["org-policies", "describe", policy_name, f"--project={project_id}"])

    def set_org_policy(self, policy_document: dict) -> None:
        fd, path = tempfile.mkstemp(prefix="org-policy-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(policy_document, fh)
            self._run(["org-policies", "set-policy", path])
        finally:
            os.unlink(path)

    def add_iam_binding(self, project_id: str, role: str, member: str) -> None:
        self._run([
            "projects", "add-iam-policy-binding", project_id,
            f"--role={role}",
            f"--member={member}",
            "--condition=None",
            "--quiet",
            "--format=none",
        ])

    def get_project_number(self, project_id: str) -> str:
        project_number = self._run([
            "projects", "describe", project_id, "--format=value(projectNumber)",
        ])
        if not project_number:
            raise CloudCallError("gcloud projects describe", f"no projectNumber returned for {project_id}")
        return project_number
