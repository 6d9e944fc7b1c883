"""
GCP connector: control-plane clients and the prerequisite reconcilers.
"""

from connectors.gcp_connector.client import (
    CloudProvisioningClient,
    GoogleApiProvisioningClient,
)
from connectors.gcp_connector.errors import CloudCallError
from connectors.gcp_connector.gcloud_cli import GcloudCliProvisioningClient

__all__ = [
    'CloudProvisioningClient',
    'GoogleApiProvisioningClient',
    'GcloudCliProvisioningClient',
    'CloudCallError',
]
