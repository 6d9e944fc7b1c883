"""
API enablement for the target project.

Enabling a service is accepted by the control plane before it is visible in the
enabled-services listing, so every enable is followed by a bounded poll of
that listing.
"""

import enum
import logging
from typing import Iterable, List

from connectors.gcp_connector.client import CloudProvisioningClient
from connectors.gcp_connector.errors import CloudCallError
from services.bootstrap.errors import ApiEnablementFailure, ApiEnablementTimeout
from utils.polling import Poller

logger = logging.getLogger(__name__)


class ApiState(enum.Enum):
    UNKNOWN = "unknown"
    ENABLING = "enabling"
    ENABLED = "enabled"
    TIMED_OUT = "timed_out"


def is_api_listed(api: str, enabled_services: Iterable[str]) -> bool:
    """Case-insensitive substring match of ``api`` against the listing.

    The listing format differs between backends (bare names, full resource
    names, table rows), so a substring match is used rather than equality.
    """
    needle = api.strip().lower()
    if not needle:
        return False
    return any(needle in entry.lower() for entry in enabled_services)


def check_api_enabled(client: CloudProvisioningClient, project_id: str, api: str) -> bool:
    """Single observation of whether ``api`` is listed as enabled.

    A failing listing counts as "not yet visible".
    """
    try:
        enabled = client.list_enabled_services(project_id)
    except CloudCallError as e:
        logger.warning(f"Could not list enabled services for {project_id}: {e}")
        return False
    return is_api_listed(api, enabled)


def enable_and_verify(
    client: CloudProvisioningClient,
    project_id: str,
    api: str,
    poller: Poller = None,
) -> ApiState:
    """Enable ``api`` and wait until it is listed as enabled.

    Args:
        client: Cloud Provisioning Client
        project_id: GCP project ID
        api: API name (e.g., 'run.googleapis.com')
        poller: Poll budget; defaults to 100 checks 6 seconds apart

    Returns:
        ApiState.ENABLED

    Raises:
        ApiEnablementFailure: the enable request itself was rejected
        ApiEnablementTimeout: the API never showed up within the poll budget
    """
    poller = poller if poller is not None else Poller()
    state = ApiState.UNKNOWN

    logger.info(f"Enabling API {api} for project {project_id}")
    try:
        client.enable_service(project_id, api)
    except CloudCallError as e:
        raise ApiEnablementFailure(api, str(e)) from e
    state = ApiState.ENABLING

    result = poller.poll(
        lambda: check_api_enabled(client, project_id, api),
        description=f"{api} to be enabled",
    )
    if not result.succeeded:
        state = ApiState.TIMED_OUT
        logger.error(f"{api} still not enabled after {result.attempts} checks ({state.value})")
        raise ApiEnablementTimeout(api, result.attempts)

    state = ApiState.ENABLED
    logger.info(f"{api} api is enabled")
    return state


def enable_all_apis(
    client: CloudProvisioningClient,
    project_id: str,
    apis: Iterable[str],
    poller: Poller = None,
) -> List[str]:
    """Enable and verify each API in order, stopping at the first failure.

    Returns:
        The APIs confirmed enabled, in order.
    """
    enabled = []
    for api in apis:
        enable_and_verify(client, project_id, api, poller=poller)
        enabled.append(api)
    return enabled
