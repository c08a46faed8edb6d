"""
Configuration management for the EKS Auto Mode deployment
"""

import pulumi
from typing import Any, Dict, List

from .validation import (
    AUTO_MODE_NODE_POOLS,
    CLUSTER_LOG_TYPES,
    CUSTOM_NODE_POOLS,
    SUPPORTED_ADDONS,
    ConfigValidationError,
    validate_config,
)

DEFAULT_ADDON_SETTINGS = {"version": None, "resolve_conflicts": "OVERWRITE"}


class Config:
    """Centralized configuration management for the EKS Auto Mode deployment"""

    def __init__(self, config=None, aws_config=None):
        self.config = config if config is not None else pulumi.Config()
        if aws_config is None:
            aws_config = pulumi.Config("aws")

        # AWS Configuration
        self.aws_region = aws_config.get("region") or "us-east-1"

        # Project
        self.project_name = self.config.get("project_name") or "eks-auto-mode"
        self.environment = self.config.get("environment") or "production"

        # Cluster Configuration
        self.cluster_name = self.config.get("cluster_name") or f"{self.project_name}-{self.environment}"
        self.cluster_version = self.config.get("cluster_version") or "1.31"
        self.cluster_endpoint_private_access = self._bool("cluster_endpoint_private_access", True)
        self.cluster_endpoint_public_access = self._bool("cluster_endpoint_public_access", True)
        self.cluster_endpoint_public_access_cidrs = self.config.get_object("cluster_endpoint_public_access_cidrs") or ["0.0.0.0/0"]
        self.cluster_admin_arns = self.config.get_object("cluster_admin_arns") or []

        # VPC Configuration
        self.vpc_cidr = self.config.get("vpc_cidr") or "10.0.0.0/16"
        self.availability_zones = self.config.get_object("availability_zones") or [
            f"{self.aws_region}{suffix}" for suffix in ("a", "b", "c")
        ]
        self.private_subnet_cidrs = self.config.get_object("private_subnet_cidrs") or [
            "10.0.1.0/24", "10.0.2.0/24", "10.0.3.0/24"
        ]
        self.public_subnet_cidrs = self.config.get_object("public_subnet_cidrs") or [
            "10.0.101.0/24", "10.0.102.0/24", "10.0.103.0/24"
        ]
        self.enable_nat_gateway = self._bool("enable_nat_gateway", True)
        self.single_nat_gateway = self._bool("single_nat_gateway", False)
        self.enable_flow_logs = self._bool("enable_flow_logs", True)
        self.flow_logs_retention_days = self._int("flow_logs_retention_days", 30)

        # Logging Configuration
        self.cluster_log_retention_days = self._int("cluster_log_retention_days", 30)
        self.cluster_enabled_log_types = self.config.get_object("cluster_enabled_log_types") or list(CLUSTER_LOG_TYPES)

        # Encryption
        self.enable_kms_encryption = self._bool("enable_kms_encryption", True)
        self.kms_key_deletion_window_days = self._int("kms_key_deletion_window_days", 30)

        # Auto Mode compute
        self.auto_mode_node_pools = self._list("auto_mode_node_pools", AUTO_MODE_NODE_POOLS)
        self.additional_node_pools = self._list("additional_node_pools", CUSTOM_NODE_POOLS)

        # EKS Addons
        self.cluster_addons = self._addons()

        # Identity
        self.enable_irsa = self._bool("enable_irsa", True)
        self.enable_github_oidc = self._bool("enable_github_oidc", False)
        self.github_repository = self.config.get("github_repository") or ""

        # Kubernetes-side objects
        self.enable_jenkins = self._bool("enable_jenkins", True)
        self.jenkins_namespace = self.config.get("jenkins_namespace") or "jenkins"
        self.jenkins_chart_version = self.config.get("jenkins_chart_version") or "5.7.15"
        self.jenkins_admin_password = self.config.get_secret("jenkins_admin_password")
        self.jenkins_ingress_enabled = self._bool("jenkins_ingress_enabled", False)
        self.enable_default_storage_class = self._bool("enable_default_storage_class", True)
        self.enable_alb_ingress_class = self._bool("enable_alb_ingress_class", True)

        # Additional tags
        self.additional_tags = self.config.get_object("tags") or {}

    def _bool(self, key: str, default: bool) -> bool:
        value = self.config.get_bool(key)
        return default if value is None else value

    def _int(self, key: str, default: int) -> int:
        value = self.config.get_int(key)
        return default if value is None else value

    def _list(self, key: str, default: List[str]) -> List[str]:
        # An explicit empty list disables the feature, so only None falls back
        value = self.config.get_object(key)
        return list(default) if value is None else value

    def _addons(self) -> Dict[str, Dict[str, Any]]:
        configured = self.config.get_object("cluster_addons")
        if configured is None:
            return {name: dict(DEFAULT_ADDON_SETTINGS) for name in SUPPORTED_ADDONS}
        # Malformed entries pass through unchanged so validation can report them
        return {
            name: {**DEFAULT_ADDON_SETTINGS, **(settings or {})} if settings is None or isinstance(settings, dict)
            else settings
            for name, settings in configured.items()
        }

    @property
    def common_tags(self) -> Dict[str, str]:
        """Get common tags for all resources"""
        base_tags = {
            "Project": self.project_name,
            "Environment": self.environment,
            "Cluster": self.cluster_name,
            "ManagedBy": "pulumi",
        }
        base_tags.update(self.additional_tags)
        return base_tags

    @property
    def nat_gateway_count(self) -> int:
        """Number of NAT gateways implied by the NAT settings"""
        if not self.enable_nat_gateway:
            return 0
        if self.single_nat_gateway:
            return 1
        return len(self.availability_zones)

    def validate(self) -> "Config":
        """
        Check every input predicate and fail before any resource is declared

        Raises:
            ConfigValidationError: listing every failed predicate
        """
        errors = validate_config(self)
        if errors:
            for message in errors:
                pulumi.log.error(message)
            raise ConfigValidationError(errors)

        if self.environment == "production":
            if self.enable_nat_gateway and self.single_nat_gateway:
                pulumi.log.warn("single_nat_gateway in production makes egress depend on one availability zone")
            if self.cluster_endpoint_public_access and "0.0.0.0/0" in self.cluster_endpoint_public_access_cidrs:
                pulumi.log.warn("Cluster API endpoint is publicly reachable from 0.0.0.0/0")
        if self.enable_jenkins and self.jenkins_ingress_enabled and self.enable_alb_ingress_class:
            pulumi.log.warn("Jenkins controller is exposed through an internet-facing ALB")
        if not self.enable_kms_encryption:
            pulumi.log.warn("KMS envelope encryption of Kubernetes secrets is disabled")
        return self


def get_config() -> Config:
    """Get the validated configuration instance"""
    return Config().validate()
