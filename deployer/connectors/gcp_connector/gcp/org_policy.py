"""
Project-level organization policy enforcement.

Policies are only ever added: when the described policy already contains the
expected rule nothing is written.

Limitation: only the policy set on the project itself is inspected. A rule
inherited from the folder or organization is not detected, and the rule is
then set on the project anyway.
"""

import logging
from typing import Any, Dict, Iterable, List

from connectors.gcp_connector.client import CloudProvisioningClient
from connectors.gcp_connector.errors import CloudCallError
from services.bootstrap.errors import PolicyEnforcementFailure

logger = logging.getLogger(__name__)


def build_policy_document(policy_name: str, rule_payload: Dict[str, Any], project_id: str) -> dict:
    """Full-replacement policy holding a single rule."""
    return {
        "name": f"projects/{project_id}/policies/{policy_name}",
        "spec": {
            "rules": [dict(rule_payload)],
        },
    }


def is_rule_present(description: str, rule_pattern: str) -> bool:
    return rule_pattern.lower() in (description or "").lower()


def ensure_policy_rule(
    client: CloudProvisioningClient,
    policy_name: str,
    rule_pattern: str,
    rule_payload: Dict[str, Any],
    project_id: str,
) -> bool:
    """Make sure ``policy_name`` on the project carries a rule matching ``rule_pattern``.

    Returns:
        bool: True if the policy was set, False if it was already satisfied

    Raises:
        PolicyEnforcementFailure: the rule is absent and could not be set
    """
    logger.info(f"policy: {policy_name}")
    try:
        description = client.describe_org_policy(policy_name, project_id)
    except CloudCallError as e:
        # No policy at project scope describes as an error; treat as not satisfied.
        logger.info(f"Org policy {policy_name} not readable on {project_id}: {e}")
        description = ""

    if is_rule_present(description, rule_pattern):
        logger.info(f"Org policy {policy_name} already satisfied on project {project_id}")
        return False

    document = build_policy_document(policy_name, rule_payload, project_id)
    try:
        client.set_org_policy(document)
    except CloudCallError as e:
        logger.error(f"Failed to set Org Policy {policy_name} for project {project_id}: {e}")
        raise PolicyEnforcementFailure(policy_name, rule_pattern) from e

    logger.info(f"Set Org Policy {policy_name} on project {project_id}")
    return True


def ensure_policies(client: CloudProvisioningClient, project_id: str, requirements: Iterable) -> List[str]:
    """Apply each ``OrgPolicyRequirement`` in order.

    Returns:
        Names of the policies that had to be set.
    """
    changed = []
    for requirement in requirements:
        if ensure_policy_rule(
            client,
            requirement.name,
            requirement.rule_pattern,
            requirement.rule_payload,
            project_id,
        ):
            changed.append(requirement.name)
    return changed
