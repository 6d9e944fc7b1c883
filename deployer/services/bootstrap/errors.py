"""
Error taxonomy for the deployment prerequisites run.

Every failure that should stop the run is a ``BootstrapError`` subclass
carrying the process exit code and a remediation hint for the operator.
"""

from typing import Optional

EXIT_OK = 0
ERR_ENFORCEMENT = 1
ERR_VARIABLE_NOT_DEFINED = 2
ERR_MISSING_DEPENDENCY = 3


class BootstrapError(RuntimeError):
    """Base class for fatal, operator-facing failures."""

    exit_code: int = ERR_ENFORCEMENT
    remediation: str = ""

    def __init__(self, message: str, remediation: Optional[str] = None) -> None:
        super().__init__(message)
        if remediation is not None:
            self.remediation = remediation


class MissingDependency(BootstrapError):
    exit_code = ERR_MISSING_DEPENDENCY
    remediation = "Make it available in PATH and try again."


class MissingVariable(BootstrapError):
    exit_code = ERR_VARIABLE_NOT_DEFINED
    remediation = "Define it in the environment or in the .env file and try again."


class ApiEnablementTimeout(BootstrapError):
    """The API never showed up as enabled within the poll budget."""

    remediation = "Check the API name and that billing is enabled for the project, then re-run."

    def __init__(self, api: str, attempts: int) -> None:
        super().__init__(f"{api} api is not enabled after {attempts} checks, installation can not continue!")
        self.api = api
        self.attempts = attempts


class ApiEnablementFailure(BootstrapError):
    remediation = "Make sure the deploying identity has roles/serviceusage.serviceUsageAdmin on the project."

    def __init__(self, api: str, reason: str) -> None:
        super().__init__(f"Could not request enablement of {api}: {reason}")
        self.api = api


class PolicyEnforcementFailure(BootstrapError):
    remediation = "Contact your org-admin to set the policy before continuing with the deployment."

    def __init__(self, policy_name: str, rule_pattern: str) -> None:
        super().__init__(
            f"Org policy: '{policy_name}' with rule: '{rule_pattern}' cannot be set but is required"
        )
        self.policy_name = policy_name
        self.rule_pattern = rule_pattern


class GrantFailure(BootstrapError):
    remediation = "Make sure the deploying identity can set the project IAM policy, then re-run."
