"""
Configuration for a deployment prerequisites run.

Everything the run needs is read once at startup into a ``BootstrapConfig``
and passed explicitly to the orchestrator; nothing downstream reads the
environment.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from services.bootstrap.errors import MissingVariable
from utils.polling import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_POLL_MAX_ATTEMPTS
from utils.preflight import check_environment_variable

logger = logging.getLogger(__name__)

BACKEND_API = "api"
BACKEND_GCLOUD = "gcloud"
SUPPORTED_BACKENDS = (BACKEND_API, BACKEND_GCLOUD)

DEFAULT_APIS_FILE = "project_apis.txt"
DEFAULT_ROLES_FILE = "project_roles.txt"


class OrgPolicyRequirement(BaseModel):
    """A project-level org policy rule that must be present."""

    name: str = Field(..., min_length=1, description="Constraint name, e.g. iam.allowedPolicyMemberDomains")
    rule_pattern: str = Field(..., min_length=1, description="Text expected in the describe output when satisfied")
    rule_payload: Dict[str, Any] = Field(..., description="Body of the single rule installed when absent")


def read_list_file(path: Path) -> List[str]:
    """Read a line-delimited list, one entry per line, keeping file order.

    Blank lines and ``#`` comments are skipped.
    """
    if not path.is_file():
        raise MissingVariable(f"Configuration file {path} does not exist.")

    entries = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return entries


def load_policy_requirements(path: Path) -> List[OrgPolicyRequirement]:
    """Load a JSON list of ``OrgPolicyRequirement`` objects."""
    if not path.is_file():
        raise MissingVariable(f"Configuration file {path} does not exist.")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MissingVariable(
            f"Org policy file {path} is not valid JSON: {e}",
            remediation="Fix the file so it holds a JSON list of policy requirements.",
        ) from e

    if not isinstance(raw, list):
        raise MissingVariable(
            f"Org policy file {path} must hold a JSON list, got {type(raw).__name__}.",
            remediation="Fix the file so it holds a JSON list of policy requirements.",
        )

    try:
        return [OrgPolicyRequirement.model_validate(item) for item in raw]
    except ValidationError as e:
        raise MissingVariable(
            f"Org policy file {path} has an invalid entry: {e}",
            remediation="Every entry needs name, rule_pattern and rule_payload.",
        ) from e


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise MissingVariable(f"Invalid {name}={raw!r}; must be a number.") from e


@dataclass(frozen=True)
class BootstrapConfig:
    """Inputs of one run against one project."""

    project_id: str
    service_account: str
    apis: Tuple[str, ...]
    roles: Tuple[str, ...]
    policies: Tuple[OrgPolicyRequirement, ...] = ()
    backend: str = BACKEND_API
    required_executables: Tuple[str, ...] = ("terraform",)
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    grant_builder_roles: bool = True

    @staticmethod
    def from_env(
        environ: Optional[Mapping[str, str]] = None,
        *,
        apis_file: Optional[str] = None,
        roles_file: Optional[str] = None,
        policies_file: Optional[str] = None,
        backend: Optional[str] = None,
        grant_builder_roles: bool = True,
    ) -> "BootstrapConfig":
        """Build the config from environment variables, with explicit overrides.

        Keyword overrides win over the environment (they come from the command line).

        Raises:
            MissingVariable: a required variable or configuration file is missing or invalid.
        """
        env = os.environ if environ is None else environ

        project_id = check_environment_variable("PROJECT_ID", "the target GCP project", env)
        service_account = check_environment_variable(
            "SERVICE_ACCOUNT", "the service account used to deploy terraform resources", env
        )

        selected_backend = (backend or env.get("PROVISIONING_BACKEND") or BACKEND_API).strip().lower()
        if selected_backend not in SUPPORTED_BACKENDS:
            raise MissingVariable(
                f"PROVISIONING_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)} (got {selected_backend!r})."
            )

        apis_path = Path(apis_file or env.get("PROJECT_APIS_FILE") or DEFAULT_APIS_FILE)
        roles_path = Path(roles_file or env.get("PROJECT_ROLES_FILE") or DEFAULT_ROLES_FILE)
        policies_value = policies_file or env.get("PROJECT_POLICIES_FILE")

        apis = read_list_file(apis_path)
        roles = read_list_file(roles_path)
        policies = load_policy_requirements(Path(policies_value)) if policies_value else []

        raw_executables = env.get("REQUIRED_EXECUTABLES")
        if raw_executables is not None:
            executables = [e.strip() for e in raw_executables.split(",") if e.strip()]
        else:
            executables = ["terraform"]
            if selected_backend == BACKEND_GCLOUD:
                executables.insert(0, "gcloud")

        interval = _parse_number(env, "API_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS, float)
        attempts = _parse_number(env, "API_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS, int)
        if interval < 0 or attempts < 1:
            raise MissingVariable(
                "API_POLL_INTERVAL_SECONDS must be >= 0 and API_POLL_MAX_ATTEMPTS must be >= 1."
            )

        logger.info(
            f"Loaded {len(apis)} APIs from {apis_path}, {len(roles)} roles from {roles_path}, "
            f"{len(policies)} org policies"
        )

        return BootstrapConfig(
            project_id=project_id,
            service_account=service_account,
            apis=tuple(apis),
            roles=tuple(roles),
            policies=tuple(policies),
            backend=selected_backend,
            required_executables=tuple(executables),
            poll_interval_seconds=interval,
            poll_max_attempts=attempts,
            grant_builder_roles=grant_builder_roles,
        )
