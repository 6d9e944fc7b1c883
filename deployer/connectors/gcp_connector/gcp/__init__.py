"""
Reconcilers for the prerequisites of a GCP project.
"""

from .apis import (
    ApiState,
    is_api_listed,
    check_api_enabled,
    enable_and_verify,
    enable_all_apis,
)

from .org_policy import (
    build_policy_document,
    is_rule_present,
    ensure_policy_rule,
    ensure_policies,
)

from .iam import (
    BUILDER_ROLES,
    derive_compute_service_principal,
    as_member,
    grant_roles,
    grant_builder_roles,
)

__all__ = [
    # APIs
    'ApiState',
    'is_api_listed',
    'check_api_enabled',
    'enable_and_verify',
    'enable_all_apis',
    # Org policies
    'build_policy_document',
    'is_rule_present',
    'ensure_policy_rule',
    'ensure_policies',
    # IAM
    'BUILDER_ROLES',
    'derive_compute_service_principal',
    'as_member',
    'grant_roles',
    'grant_builder_roles',
]
