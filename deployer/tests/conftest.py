"""Shared test fixtures for the deployment prerequisites suite."""

import sys
import os

import pytest

# Ensure deployer/ is on sys.path so ``connectors.*`` / ``services.*`` imports resolve.
_deployer_dir = os.path.join(os.path.dirname(__file__), os.pardir)
if os.path.abspath(_deployer_dir) not in sys.path:
    sys.path.insert(0, os.path.abspath(_deployer_dir))

from connectors.gcp_connector.client import CloudProvisioningClient  # noqa: E402
from connectors.gcp_connector.errors import CloudCallError  # noqa: E402


# ---------------------------------------------------------------------------
# Fake control plane
# ---------------------------------------------------------------------------


class FakeProvisioningClient(CloudProvisioningClient):
    """In-memory control plane that records every call.

    ``visible_after`` maps an API to how many listings after its enable call
    still omit it. APIs in ``never_enabled`` never show up.
    """

    def __init__(
        self,
        enabled=None,
        visible_after=None,
        never_enabled=None,
        policies=None,
        project_numbers=None,
    ):
        self.enabled = list(enabled or [])
        self.visible_after = dict(visible_after or {})
        self.never_enabled = set(never_enabled or [])
        self.policies = dict(policies or {})
        self.project_numbers = dict(project_numbers or {})
        self.bindings = []
        self.calls = []
        self.fail = {}
        self._pending = {}

    def fail_on(self, operation, detail="boom", match=None):
        """Make ``operation`` raise CloudCallError (optionally only when ``match`` is an argument)."""
        self.fail[operation] = (detail, match)

    def _maybe_fail(self, operation, *args):
        if operation in self.fail:
            detail, match = self.fail[operation]
            if match is None or match in args:
                raise CloudCallError(operation, detail)

    def calls_to(self, operation):
        return [args for op, args in self.calls if op == operation]

    def list_enabled_services(self, project_id):
        self.calls.append(("list_enabled_services", (project_id,)))
        self._maybe_fail("list_enabled_services", project_id)
        for api, remaining in list(self._pending.items()):
            if remaining <= 0:
                self.enabled.append(api)
                del self._pending[api]
            else:
                self._pending[api] = remaining - 1
        return list(self.enabled)

    def enable_service(self, project_id, api):
        self.calls.append(("enable_service", (project_id, api)))
        self._maybe_fail("enable_service", project_id, api)
        if api in self.never_enabled or api in self.enabled:
            return
        self._pending[api] = self.visible_after.get(api, 0)

    def describe_org_policy(self, policy_name, project_id):
        self.calls.append(("describe_org_policy", (policy_name, project_id)))
        self._maybe_fail("describe_org_policy", policy_name, project_id)
        if policy_name not in self.policies:
            raise CloudCallError("describe_org_policy", f"NOT_FOUND: {policy_name}")
        return self.policies[policy_name]

    def set_org_policy(self, policy_document):
        self.calls.append(("set_org_policy", (policy_document,)))
        self._maybe_fail("set_org_policy", policy_document.get("name"))
        self.policies[policy_document["name"].split("/")[-1]] = str(policy_document)

    def add_iam_binding(self, project_id, role, member):
        self.calls.append(("add_iam_binding", (project_id, role, member)))
        self._maybe_fail("add_iam_binding", project_id, role, member)
        if (role, member) not in self.bindings:
            self.bindings.append((role, member))

    def get_project_number(self, project_id):
        self.calls.append(("get_project_number", (project_id,)))
        self._maybe_fail("get_project_number", project_id)
        if project_id not in self.project_numbers:
            raise CloudCallError("get_project_number", f"project {project_id} not found")
        return self.project_numbers[project_id]


class FakeClock:
    """Clock whose sleep only advances a counter."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_client():
    return FakeProvisioningClient(project_numbers={"proj-123": "555"})


@pytest.fixture()
def fake_clock():
    return FakeClock()
