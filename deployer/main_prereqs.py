#!/usr/bin/env python3
"""
Deployment prerequisites - command-line entry point.

Enables the configured APIs, enforces the configured org policies and grants
IAM roles on PROJECT_ID before terraform runs.

Usage: deploy-prereqs [--apis-file FILE] [--roles-file FILE] [--policies-file FILE]
                      [--backend {api,gcloud}] [--skip-builder-roles]

Exit codes: 0 success, 1 API/policy/IAM enforcement failure,
2 missing variable or configuration file, 3 missing executable.
"""
# Load environment variables before anything reads them
from dotenv import load_dotenv

load_dotenv()

import argparse
import logging
import os
import sys

from google.auth.exceptions import DefaultCredentialsError

from config.bootstrap_config import BACKEND_GCLOUD, SUPPORTED_BACKENDS, BootstrapConfig
from connectors.gcp_connector.client import CloudProvisioningClient, GoogleApiProvisioningClient
from connectors.gcp_connector.gcloud_cli import GcloudCliProvisioningClient
from services.bootstrap.errors import EXIT_OK, BootstrapError, MissingVariable
from services.bootstrap.orchestrator import ProjectBootstrapper

logger = logging.getLogger(__name__)


def configure_logging(environ=None) -> None:
    env = os.environ if environ is None else environ
    level_name = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if level_name != logging.getLevelName(level):
        logger.warning(f"Unknown LOG_LEVEL {level_name!r}, using INFO")
    # Silence verbose loggers
    logging.getLogger("googleapiclient.http").setLevel(logging.ERROR)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("google.auth").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="deploy-prereqs",
        description="Prepare a GCP project (APIs, org policies, IAM) for terraform.",
    )
    parser.add_argument("--apis-file", help="Line-delimited API list (default: $PROJECT_APIS_FILE or project_apis.txt)")
    parser.add_argument("--roles-file", help="Line-delimited role list (default: $PROJECT_ROLES_FILE or project_roles.txt)")
    parser.add_argument("--policies-file", help="JSON list of org policy requirements (default: $PROJECT_POLICIES_FILE)")
    parser.add_argument("--backend", choices=SUPPORTED_BACKENDS, help="Control-plane backend (default: $PROVISIONING_BACKEND or api)")
    parser.add_argument(
        "--skip-builder-roles",
        action="store_true",
        help="Do not grant build roles to the default compute service account",
    )
    return parser.parse_args(argv)


def build_client(config: BootstrapConfig) -> CloudProvisioningClient:
    if config.backend == BACKEND_GCLOUD:
        return GcloudCliProvisioningClient()
    try:
        return GoogleApiProvisioningClient()
    except DefaultCredentialsError as e:
        raise MissingVariable(
            f"No Application Default Credentials found: {e}",
            remediation="Run 'gcloud auth application-default login' or set GOOGLE_APPLICATION_CREDENTIALS.",
        ) from e


def main(argv=None, environ=None, client_factory=build_client, clock=None) -> int:
    """Run the prerequisites and return the process exit code."""
    args = parse_args(argv)

    try:
        config = BootstrapConfig.from_env(
            environ,
            apis_file=args.apis_file,
            roles_file=args.roles_file,
            policies_file=args.policies_file,
            backend=args.backend,
            grant_builder_roles=not args.skip_builder_roles,
        )
        bootstrapper = ProjectBootstrapper(config, client_factory(config), clock=clock)
        bootstrapper.run()
    except BootstrapError as e:
        logger.error(f"[ERROR]: {e} Terminating...")
        if e.remediation:
            logger.error(e.remediation)
        return e.exit_code

    return EXIT_OK


def run() -> None:
    configure_logging()
    sys.exit(main())


if __name__ == "__main__":
    run()
