"""
IAM role grants for the deploying service account and the build principal.
"""

import logging
from typing import Iterable, List

from connectors.gcp_connector.client import CloudProvisioningClient
from connectors.gcp_connector.errors import CloudCallError
from services.bootstrap.errors import GrantFailure

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_PREFIX = "serviceAccount:"

# Cloud Build runs as the default compute service account, which no longer
# receives these by default (https://cloud.google.com/build/docs/cloud-build-service-account-updates).
BUILDER_ROLES = (
    "roles/logging.logWriter",
    "roles/storage.objectUser",
    "roles/artifactregistry.createOnPushWriter",
)


def derive_compute_service_principal(project_number: str) -> str:
    """Email of the project's default compute service account."""
    return f"{str(project_number).strip()}-compute@developer.gserviceaccount.com"


def as_member(principal: str) -> str:
    """IAM member string for a service-account email, prefixed exactly once."""
    principal = principal.strip()
    if principal.startswith(SERVICE_ACCOUNT_PREFIX):
        return principal
    return f"{SERVICE_ACCOUNT_PREFIX}{principal}"


def grant_roles(
    client: CloudProvisioningClient,
    project_id: str,
    principal: str,
    roles: Iterable[str],
) -> List[str]:
    """Grant every role in ``roles`` to ``principal``, in order.

    Existing bindings are not checked first; re-adding one is a no-op on the
    control plane. The first failing grant stops the batch.

    Returns:
        The roles granted, in order.

    Raises:
        GrantFailure: a binding call failed
    """
    member = as_member(principal)
    granted = []
    for role in roles:
        logger.info(f"Granting {role} to {member} on project {project_id}")
        try:
            client.add_iam_binding(project_id, role, member)
        except CloudCallError as e:
            raise GrantFailure(f"Could not grant {role} to {member} on {project_id}: {e}") from e
        granted.append(role)
    return granted


def grant_builder_roles(client: CloudProvisioningClient, project_id: str) -> List[str]:
    """Grant ``BUILDER_ROLES`` to the default compute service account of the project."""
    try:
        project_number = client.get_project_number(project_id)
    except CloudCallError as e:
        raise GrantFailure(f"Could not resolve the project number of {project_id}: {e}") from e

    principal = derive_compute_service_principal(project_number)
    return grant_roles(client, project_id, principal, BUILDER_ROLES)
