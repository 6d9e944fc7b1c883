"""
Deployment prerequisites orchestrator.

Runs the reconcilers in a fixed order against one project and stops at the
first failure. Every step only adds state, so a failed run can simply be
re-run once the reported problem is fixed.

Runs are not coordinated: two runs against the same project at the same time
are unsupported.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List

from config.bootstrap_config import BootstrapConfig
from connectors.gcp_connector.client import CloudProvisioningClient
from connectors.gcp_connector.gcp import (
    enable_all_apis,
    ensure_policies,
    grant_builder_roles,
    grant_roles,
)
from utils.polling import Clock, Poller
from utils.preflight import check_executables

logger = logging.getLogger(__name__)


@dataclass
class BootstrapReport:
    """What a successful run confirmed or changed."""

    project_id: str
    apis_enabled: List[str] = field(default_factory=list)
    policies_checked: List[str] = field(default_factory=list)
    policies_set: List[str] = field(default_factory=list)
    deployer_roles_granted: List[str] = field(default_factory=list)
    builder_roles_granted: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"project {self.project_id}: {len(self.apis_enabled)} APIs enabled, "
            f"{len(self.policies_checked)} org policies checked ({len(self.policies_set)} set), "
            f"{len(self.deployer_roles_granted)} deployer roles and "
            f"{len(self.builder_roles_granted)} builder roles granted"
        )


@contextmanager
def section(description: str):
    logger.info(f"===== {description} =====")
    yield
    logger.info(f"===== {description} - done =====")


class ProjectBootstrapper:
    """Sequences the prerequisite reconcilers for one project."""

    def __init__(
        self,
        config: BootstrapConfig,
        client: CloudProvisioningClient,
        poller: Poller = None,
        clock: Clock = None,
    ) -> None:
        self.config = config
        self.client = client
        self.poller = poller if poller is not None else Poller(
            interval_seconds=config.poll_interval_seconds,
            max_attempts=config.poll_max_attempts,
            clock=clock,
        )

    def run(self) -> BootstrapReport:
        """Run every step; any ``BootstrapError`` propagates to the caller."""
        cfg = self.config
        report = BootstrapReport(project_id=cfg.project_id)

        with section("Checking required executables"):
            check_executables(cfg.required_executables)

        with section(f"Enabling {len(cfg.apis)} APIs"):
            report.apis_enabled = enable_all_apis(self.client, cfg.project_id, cfg.apis, poller=self.poller)

        if cfg.policies:
            with section(f"Checking {len(cfg.policies)} org policies"):
                report.policies_set = ensure_policies(self.client, cfg.project_id, cfg.policies)
                report.policies_checked = [p.name for p in cfg.policies]

        with section(f"Granting {len(cfg.roles)} roles to {cfg.service_account}"):
            report.deployer_roles_granted = grant_roles(
                self.client, cfg.project_id, cfg.service_account, cfg.roles
            )

        if cfg.grant_builder_roles:
            with section("Granting build roles to the default compute service account"):
                report.builder_roles_granted = grant_builder_roles(self.client, cfg.project_id)

        logger.info(f"Prerequisites ready for {report.summary()}")
        return report
