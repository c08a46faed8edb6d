"""
Input validation for the EKS Auto Mode stack
Declarative predicates over config values, checked before any resource is declared
"""

import ipaddress
import re
from typing import Any, Dict, List

ALLOWED_ENVIRONMENTS = ["production", "staging", "development", "qa"]

# Retention values accepted by CloudWatch Logs
CLOUDWATCH_RETENTION_DAYS = [
    1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545,
    731, 1096, 1827, 2192, 2557, 2922, 3288, 3653,
]

CLUSTER_LOG_TYPES = ["api", "audit", "authenticator", "controllerManager", "scheduler"]

AUTO_MODE_NODE_POOLS = ["general-purpose", "system"]
CUSTOM_NODE_POOLS = ["memory-optimized", "compute-optimized"]

SUPPORTED_ADDONS = ["vpc-cni", "coredns", "kube-proxy", "eks-pod-identity-agent"]
RESOLVE_CONFLICTS_POLICIES = ["OVERWRITE", "PRESERVE"]

REGION_PATTERN = re.compile(r"^[a-z]{2}-[a-z]+-[0-9]{1}$")
PROJECT_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")
CLUSTER_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*$")
CLUSTER_VERSION_PATTERN = re.compile(r"^1\.[0-9]+$")
IAM_PRINCIPAL_ARN_PATTERN = re.compile(r"^arn:aws[a-z-]*:iam::[0-9]{12}:(role|user)/.+$")
GITHUB_REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.*-]+$")
DNS_LABEL_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class ConfigValidationError(ValueError):
    """Raised when one or more config values fail validation"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid stack configuration:\n  - " + "\n  - ".join(self.errors))


def is_valid_region(value: Any) -> bool:
    return isinstance(value, str) and REGION_PATTERN.match(value) is not None


def is_valid_environment(value: Any) -> bool:
    return value in ALLOWED_ENVIRONMENTS


def is_valid_cidr(value: Any) -> bool:
    """True when the value is an IPv4 CIDR that cidrhost(value, 0) would accept"""
    if not isinstance(value, str) or "/" not in value:
        return False
    try:
        ipaddress.IPv4Network(value, strict=False)
    except ValueError:
        return False
    return True


def is_subnet_of(subnet_cidr: str, vpc_cidr: str) -> bool:
    """True when both CIDRs are well formed and subnet_cidr lies inside vpc_cidr"""
    if not (is_valid_cidr(subnet_cidr) and is_valid_cidr(vpc_cidr)):
        return False
    subnet = ipaddress.IPv4Network(subnet_cidr, strict=False)
    vpc = ipaddress.IPv4Network(vpc_cidr, strict=False)
    return subnet.subnet_of(vpc)


def has_min_items(values: Any, minimum: int) -> bool:
    return isinstance(values, (list, tuple)) and len(values) >= minimum


def is_valid_retention(days: Any) -> bool:
    return days in CLOUDWATCH_RETENTION_DAYS


def is_valid_project_name(value: Any) -> bool:
    return isinstance(value, str) and len(value) <= 32 and PROJECT_NAME_PATTERN.match(value) is not None


def is_valid_cluster_name(value: Any) -> bool:
    return isinstance(value, str) and len(value) <= 100 and CLUSTER_NAME_PATTERN.match(value) is not None


def is_valid_cluster_version(value: Any) -> bool:
    return isinstance(value, str) and CLUSTER_VERSION_PATTERN.match(value) is not None


def is_subset(values: Any, allowed: List[str]) -> bool:
    return isinstance(values, (list, tuple)) and all(value in allowed for value in values)


def is_valid_principal_arn(value: Any) -> bool:
    return isinstance(value, str) and IAM_PRINCIPAL_ARN_PATTERN.match(value) is not None


def is_valid_github_repository(value: Any) -> bool:
    return isinstance(value, str) and GITHUB_REPOSITORY_PATTERN.match(value) is not None


def is_valid_dns_label(value: Any) -> bool:
    return isinstance(value, str) and len(value) <= 63 and DNS_LABEL_PATTERN.match(value) is not None


def validate_addons(addons: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Validate the cluster_addons map

    Args:
        addons: Mapping of add-on name to {"version", "resolve_conflicts"}

    Returns:
        List of error messages, empty when the map is valid
    """
    errors = []
    for name, settings in addons.items():
        if name not in SUPPORTED_ADDONS:
            errors.append(
                f"cluster_addons: unsupported add-on '{name}'. "
                f"Supported add-ons: {', '.join(SUPPORTED_ADDONS)}."
            )
            continue
        if not isinstance(settings, dict):
            errors.append(f"cluster_addons: settings for '{name}' must be a map with version and resolve_conflicts.")
            continue
        policy = settings.get("resolve_conflicts")
        if policy not in RESOLVE_CONFLICTS_POLICIES:
            errors.append(
                f"cluster_addons: resolve_conflicts for '{name}' must be one of "
                f"{', '.join(RESOLVE_CONFLICTS_POLICIES)}, got '{policy}'."
            )
        version = settings.get("version")
        if version is not None and not (isinstance(version, str) and version.startswith("v")):
            errors.append(f"cluster_addons: version for '{name}' must look like 'v1.2.3-eksbuild.1'.")
    return errors


def _validate_subnets(kind: str, cidrs: Any, vpc_cidr: str, az_count: int) -> List[str]:
    errors = []
    if not has_min_items(cidrs, 2):
        errors.append(f"At least 2 {kind} subnet CIDRs are required for high availability.")
        return errors
    for cidr in cidrs:
        if not is_valid_cidr(cidr):
            errors.append(f"{kind.capitalize()} subnet CIDR '{cidr}' must be a valid IPv4 CIDR block.")
        elif is_valid_cidr(vpc_cidr) and not is_subnet_of(cidr, vpc_cidr):
            errors.append(f"{kind.capitalize()} subnet CIDR '{cidr}' must be inside the VPC CIDR {vpc_cidr}.")
    if len(cidrs) != az_count:
        errors.append(
            f"Number of {kind} subnet CIDRs ({len(cidrs)}) must match "
            f"the number of availability zones ({az_count})."
        )
    return errors


def validate_config(config) -> List[str]:
    """
    Run every predicate against a loaded Config

    Args:
        config: autoeks.config.Config instance

    Returns:
        List of human-readable error messages, empty when the config is valid
    """
    errors = []

    if not is_valid_region(config.aws_region):
        errors.append("AWS region must be a valid region format (e.g., us-east-1, eu-west-2).")

    if not is_valid_project_name(config.project_name):
        errors.append("Project name must contain only lowercase letters, numbers and hyphens (max 32 characters).")

    if not is_valid_environment(config.environment):
        errors.append(f"Environment must be one of: {', '.join(ALLOWED_ENVIRONMENTS)}.")

    if not is_valid_cluster_name(config.cluster_name):
        errors.append(
            "Cluster name must start with a letter and contain only letters, numbers and hyphens (max 100 characters)."
        )

    if not is_valid_cluster_version(config.cluster_version):
        errors.append("Cluster version must be a Kubernetes minor version such as 1.31.")

    if not is_valid_cidr(config.vpc_cidr):
        errors.append("VPC CIDR must be a valid IPv4 CIDR block.")

    azs = config.availability_zones
    if not has_min_items(azs, 2):
        errors.append("At least 2 availability zones are required for high availability.")
    else:
        for az in azs:
            if not (isinstance(az, str) and az.startswith(str(config.aws_region))):
                errors.append(f"Availability zone '{az}' is not in region {config.aws_region}.")

    az_count = len(azs) if isinstance(azs, (list, tuple)) else 0
    errors.extend(_validate_subnets("private", config.private_subnet_cidrs, config.vpc_cidr, az_count))
    errors.extend(_validate_subnets("public", config.public_subnet_cidrs, config.vpc_cidr, az_count))

    if not is_valid_retention(config.cluster_log_retention_days):
        errors.append("Cluster log retention must be a valid CloudWatch Logs retention value.")

    if not is_valid_retention(config.flow_logs_retention_days):
        errors.append("Flow logs retention must be a valid CloudWatch Logs retention value.")

    if not is_subset(config.cluster_enabled_log_types, CLUSTER_LOG_TYPES):
        errors.append(f"Cluster log types must be a subset of: {', '.join(CLUSTER_LOG_TYPES)}.")

    if not (config.cluster_endpoint_private_access or config.cluster_endpoint_public_access):
        errors.append("At least one of private or public cluster endpoint access must be enabled.")

    for cidr in config.cluster_endpoint_public_access_cidrs:
        if not is_valid_cidr(cidr):
            errors.append(f"Public access CIDR '{cidr}' must be a valid IPv4 CIDR block.")

    if not 7 <= config.kms_key_deletion_window_days <= 30:
        errors.append("KMS key deletion window must be between 7 and 30 days.")

    if not is_subset(config.auto_mode_node_pools, AUTO_MODE_NODE_POOLS):
        errors.append(f"Auto Mode node pools must be a subset of: {', '.join(AUTO_MODE_NODE_POOLS)}.")

    if not is_subset(config.additional_node_pools, CUSTOM_NODE_POOLS):
        errors.append(f"Additional node pools must be a subset of: {', '.join(CUSTOM_NODE_POOLS)}.")

    # Custom pools reference the default NodeClass, which Auto Mode only creates with a built-in pool
    if config.additional_node_pools and not config.auto_mode_node_pools:
        errors.append("Additional node pools require at least one built-in Auto Mode node pool.")

    errors.extend(validate_addons(config.cluster_addons))

    for arn in config.cluster_admin_arns:
        if not is_valid_principal_arn(arn):
            errors.append(f"Cluster admin '{arn}' must be an IAM role or user ARN.")

    if config.enable_github_oidc and not is_valid_github_repository(config.github_repository):
        errors.append("GitHub repository must be in 'owner/repo' format when GitHub OIDC is enabled.")

    if not is_valid_dns_label(config.jenkins_namespace):
        errors.append("Jenkins namespace must be a valid Kubernetes namespace name.")

    return errors
