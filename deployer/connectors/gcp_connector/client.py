"""
Cloud Provisioning Client.

The only way the reconcilers talk to the GCP control plane. ``CloudProvisioningClient``
names the six operations they need; ``GoogleApiProvisioningClient`` implements
them with the Google API discovery clients, ``GcloudCliProvisioningClient``
(see ``gcloud_cli.py``) with the gcloud CLI.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import httplib2
import yaml
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from connectors.gcp_connector.errors import CloudCallError

logger = logging.getLogger(__name__)

# Suppress googleapiclient discovery cache warnings
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
logging.getLogger("googleapiclient.http").setLevel(logging.ERROR)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# API errors plus failures below HTTP: credential refresh, DNS, sockets
_CALL_ERRORS = (HttpError, GoogleAuthError, OSError, httplib2.HttpLib2Error)


class CloudProvisioningClient(ABC):
    """Control-plane operations used by the reconcilers.

    Every method is a blocking call and raises ``CloudCallError`` on failure.
    """

    @abstractmethod
    def list_enabled_services(self, project_id: str) -> List[str]:
        """Return the names of the services currently enabled on the project."""
        ...

    @abstractmethod
    def enable_service(self, project_id: str, api: str) -> None:
        """Request enablement of ``api``; does not wait for it to take effect."""
        ...

    @abstractmethod
    def describe_org_policy(self, policy_name: str, project_id: str) -> str:
        """Return the project-level policy as YAML text."""
        ...

    @abstractmethod
    def set_org_policy(self, policy_document: dict) -> None:
        """Install ``policy_document`` as the full policy for its resource."""
        ...

    @abstractmethod
    def add_iam_binding(self, project_id: str, role: str, member: str) -> None:
        """Add ``member`` to ``role`` on the project; a no-op when already bound."""
        ...

    @abstractmethod
    def get_project_number(self, project_id: str) -> str:
        ...


def add_binding_if_missing(policy: dict, role: str, member: str) -> bool:
    """Add a single IAM binding if the (role, member) pair is missing.

    Args:
        policy: Existing IAM policy dict
        role: Role string, e.g. "roles/logging.logWriter"
        member: Member string, e.g. "serviceAccount:foo@bar"

    Returns:
        bool: True if policy was modified, False otherwise
    """
    bindings = policy.setdefault("bindings", [])
    for b in bindings:
        # Conditional bindings are left alone; the unconditional one is what we need.
        if b.get("role") == role and not b.get("condition"):
            if member in b.get("members", []):
                return False
            b.setdefault("members", []).append(member)
            return True
    bindings.append({"role": role, "members": [member]})
    return True


def _http_status(e: Exception):
    return getattr(getattr(e, "resp", None), "status", None)


class GoogleApiProvisioningClient(CloudProvisioningClient):
    """Cloud Provisioning Client on top of googleapiclient.

    Service Usage v1 for APIs, Org Policy v2 for policies and Cloud Resource
    Manager v1 for IAM and project metadata. Credentials default to
    Application Default Credentials.
    """

    def __init__(self, credentials=None, service_factory=None):
        if credentials is None:
            import google.auth

            credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        if service_factory is None:
            from googleapiclient.discovery import build as service_factory
        self.credentials = credentials
        self._build = service_factory
        self._services = {}

    def _service(self, name: str, version: str):
        key = (name, version)
        svc = self._services.get(key)
        if svc is None:
            svc = self._build(name, version, credentials=self.credentials, cache_discovery=False)
            self._services[key] = svc
        return svc

    def list_enabled_services(self, project_id: str) -> List[str]:
        service_usage = self._service("serviceusage", "v1")
        enabled_apis = []
        page_token = None
        try:
            while True:
                response = service_usage.services().list(
                    parent=f"projects/{project_id}",
                    filter="state:ENABLED",
                    pageToken=page_token,
                ).execute()

                for service in response.get("services", []):
                    # Extract just the API name (e.g., 'run.googleapis.com')
                    enabled_apis.append(service["name"].split("/")[-1])

                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        except _CALL_ERRORS as e:
            raise CloudCallError("services.list", str(e), _http_status(e)) from e
        return enabled_apis

    def enable_service(self, project_id: str, api: str) -> None:
        service_usage = self._service("serviceusage", "v1")
        try:
            operation = service_usage.services().enable(
                name=f"projects/{project_id}/services/{api}"
            ).execute()
        except _CALL_ERRORS as e:
            if _http_status(e) == 403:
                logger.error(f"Permission denied while enabling service '{api}': {e}")
            raise CloudCallError("services.enable", str(e), _http_status(e)) from e
        logger.debug(f"Enable requested for {api} (operation {operation.get('name')})")

    def describe_org_policy(self, policy_name: str, project_id: str) -> str:
        org_policy = self._service("orgpolicy", "v2")
        try:
            policy = org_policy.projects().policies().get(
                name=f"projects/{project_id}/policies/{policy_name}"
            ).execute()
        except _CALL_ERRORS as e:
            raise CloudCallError("policies.get", str(e), _http_status(e)) from e
        # Same YAML shape gcloud org-policies describe prints
        return yaml.safe_dump(policy, default_flow_style=False, sort_keys=False)

    def set_org_policy(self, policy_document: dict) -> None:
        name = policy_document.get("name", "")
        parent = name.split("/policies/")[0]
        policies = self._service("orgpolicy", "v2").projects().policies()
        try:
            policies.patch(name=name, body=policy_document).execute()
            return
        except _CALL_ERRORS as e:
            if _http_status(e) != 404:
                raise CloudCallError("policies.patch", str(e), _http_status(e)) from e

        # No policy at this scope yet
        try:
            policies.create(parent=parent, body=policy_document).execute()
        except _CALL_ERRORS as e:
            raise CloudCallError("policies.create", str(e), _http_status(e)) from e

    def add_iam_binding(self, project_id: str, role: str, member: str) -> None:
        crm_service = self._service("cloudresourcemanager", "v1")
        try:
            policy = crm_service.projects().getIamPolicy(
                resource=project_id,
                body={"options": {"requestedPolicyVersion": 3}},
            ).execute()
        except _CALL_ERRORS as e:
            raise CloudCallError("projects.getIamPolicy", str(e), _http_status(e)) from e

        if not add_binding_if_missing(policy, role, member):
            logger.info(f"No changes needed - {member} already has {role} on {project_id}")
            return

        try:
            crm_service.projects().setIamPolicy(
                resource=project_id,
                body={"policy": policy},
            ).execute()
        except _CALL_ERRORS as e:
            raise CloudCallError("projects.setIamPolicy", str(e), _http_status(e)) from e

    def get_project_number(self, project_id: str) -> str:
        crm_service = self._service("cloudresourcemanager", "v1")
        try:
            project = crm_service.projects().get(projectId=project_id).execute()
        except _CALL_ERRORS as e:
            raise CloudCallError("projects.get", str(e), _http_status(e)) from e

        project_number = project.get("projectNumber")
        if not project_number:
            raise CloudCallError("projects.get", f"no projectNumber returned for {project_id}")
        return str(project_number)
