"""
Unit tests for input validation predicates
Exercised in isolation, without provisioning infrastructure
"""

import unittest
import sys
import os

# Add project root to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autoeks import validation
from autoeks.validation import (
    CLOUDWATCH_RETENTION_DAYS,
    ConfigValidationError,
    validate_addons,
    validate_config,
)


class ValidConfig:
    """Plain attribute holder shaped like autoeks.config.Config"""

    def __init__(self, **overrides):
        self.aws_region = "us-east-1"
        self.project_name = "eks-auto-mode"
        self.environment = "production"
        self.cluster_name = "eks-auto-mode-production"
        self.cluster_version = "1.31"
        self.vpc_cidr = "10.0.0.0/16"
        self.availability_zones = ["us-east-1a", "us-east-1b", "us-east-1c"]
        self.private_subnet_cidrs = ["10.0.1.0/24", "10.0.2.0/24", "10.0.3.0/24"]
        self.public_subnet_cidrs = ["10.0.101.0/24", "10.0.102.0/24", "10.0.103.0/24"]
        self.cluster_log_retention_days = 30
        self.flow_logs_retention_days = 30
        self.cluster_enabled_log_types = ["api", "audit"]
        self.cluster_endpoint_private_access = True
        self.cluster_endpoint_public_access = True
        self.cluster_endpoint_public_access_cidrs = ["0.0.0.0/0"]
        self.kms_key_deletion_window_days = 30
        self.auto_mode_node_pools = ["general-purpose", "system"]
        self.additional_node_pools = ["memory-optimized"]
        self.cluster_addons = {"vpc-cni": {"version": None, "resolve_conflicts": "OVERWRITE"}}
        self.cluster_admin_arns = []
        self.enable_github_oidc = False
        self.github_repository = ""
        self.jenkins_namespace = "jenkins"
        for key, value in overrides.items():
            setattr(self, key, value)


class TestPredicates(unittest.TestCase):
    """Test the individual predicates"""

    def test_region_pattern(self):
        for region in ["us-east-1", "eu-west-2", "ap-southeast-1", "af-south-1"]:
            with self.subTest(region=region):
                self.assertTrue(validation.is_valid_region(region))
        for region in ["us-east", "US-EAST-1", "us-east-10", "useast1", "", None, "us-gov-west-1"]:
            with self.subTest(region=region):
                self.assertFalse(validation.is_valid_region(region))

    def test_environment_membership(self):
        for env in ["production", "staging", "development", "qa"]:
            self.assertTrue(validation.is_valid_environment(env))
        for env in ["prod", "Production", "test", ""]:
            self.assertFalse(validation.is_valid_environment(env))

    def test_cidr_well_formed(self):
        self.assertTrue(validation.is_valid_cidr("10.0.0.0/16"))
        self.assertTrue(validation.is_valid_cidr("192.168.1.0/24"))
        # cidrhost accepts host bits set
        self.assertTrue(validation.is_valid_cidr("10.0.0.1/16"))
        for cidr in ["10.0.0.0", "10.0.0.0/33", "300.0.0.0/16", "not-a-cidr", "", None, "fd00::/8"]:
            with self.subTest(cidr=cidr):
                self.assertFalse(validation.is_valid_cidr(cidr))

    def test_subnet_inside_vpc(self):
        self.assertTrue(validation.is_subnet_of("10.0.1.0/24", "10.0.0.0/16"))
        self.assertFalse(validation.is_subnet_of("10.1.1.0/24", "10.0.0.0/16"))
        self.assertFalse(validation.is_subnet_of("bogus", "10.0.0.0/16"))

    def test_min_items(self):
        self.assertTrue(validation.has_min_items(["a", "b"], 2))
        self.assertFalse(validation.has_min_items(["a"], 2))
        self.assertFalse(validation.has_min_items("ab", 2))

    def test_retention_set(self):
        for days in CLOUDWATCH_RETENTION_DAYS:
            self.assertTrue(validation.is_valid_retention(days))
        for days in [0, 2, 31, 365 * 2, -1]:
            with self.subTest(days=days):
                self.assertFalse(validation.is_valid_retention(days))

    def test_cluster_name_and_version(self):
        self.assertTrue(validation.is_valid_cluster_name("my-cluster-1"))
        self.assertFalse(validation.is_valid_cluster_name("1-cluster"))
        self.assertFalse(validation.is_valid_cluster_name("my_cluster"))
        self.assertTrue(validation.is_valid_cluster_version("1.31"))
        self.assertFalse(validation.is_valid_cluster_version("1.31.2"))
        self.assertFalse(validation.is_valid_cluster_version("v1.31"))

    def test_principal_arn_and_repository(self):
        self.assertTrue(validation.is_valid_principal_arn("arn:aws:iam::123456789012:role/Admin"))
        self.assertFalse(validation.is_valid_principal_arn("arn:aws:iam::12345:role/Admin"))
        self.assertTrue(validation.is_valid_github_repository("octo-org/infra"))
        self.assertFalse(validation.is_valid_github_repository("infra"))

    def test_dns_label(self):
        self.assertTrue(validation.is_valid_dns_label("jenkins"))
        self.assertFalse(validation.is_valid_dns_label("Jenkins"))
        self.assertFalse(validation.is_valid_dns_label("-jenkins"))


class TestAddonValidation(unittest.TestCase):
    """Test the cluster_addons map checks"""

    def test_valid_policies(self):
        addons = {
            "vpc-cni": {"version": "v1.19.0-eksbuild.1", "resolve_conflicts": "OVERWRITE"},
            "coredns": {"version": None, "resolve_conflicts": "PRESERVE"},
        }
        self.assertEqual(validate_addons(addons), [])

    def test_unknown_addon(self):
        errors = validate_addons({"aws-ebs-csi-driver": {"version": None, "resolve_conflicts": "OVERWRITE"}})
        self.assertEqual(len(errors), 1)
        self.assertIn("unsupported add-on", errors[0])

    def test_settings_must_be_a_map(self):
        errors = validate_addons({"coredns": "PRESERVE", "vpc-cni": ["v1.19.0"]})
        self.assertEqual(len(errors), 2)
        self.assertIn("settings for 'coredns' must be a map", errors[0])

    def test_bad_policy_and_version(self):
        errors = validate_addons({"kube-proxy": {"version": "1.31", "resolve_conflicts": "NONE"}})
        self.assertEqual(len(errors), 2)


class TestValidateConfig(unittest.TestCase):
    """Test the whole-config validation"""

    def test_valid_config_has_no_errors(self):
        self.assertEqual(validate_config(ValidConfig()), [])

    def test_bad_region(self):
        errors = validate_config(ValidConfig(aws_region="useast1",
                                             availability_zones=["useast1a", "useast1b"],
                                             private_subnet_cidrs=["10.0.1.0/24", "10.0.2.0/24"],
                                             public_subnet_cidrs=["10.0.101.0/24", "10.0.102.0/24"]))
        self.assertIn("AWS region must be a valid region format (e.g., us-east-1, eu-west-2).", errors)

    def test_bad_environment(self):
        errors = validate_config(ValidConfig(environment="prod"))
        self.assertEqual(errors, ["Environment must be one of: production, staging, development, qa."])

    def test_single_availability_zone(self):
        errors = validate_config(ValidConfig(
            availability_zones=["us-east-1a"],
            private_subnet_cidrs=["10.0.1.0/24"],
            public_subnet_cidrs=["10.0.101.0/24"],
        ))
        self.assertIn("At least 2 availability zones are required for high availability.", errors)
        self.assertIn("At least 2 private subnet CIDRs are required for high availability.", errors)

    def test_subnet_outside_vpc_and_count_mismatch(self):
        errors = validate_config(ValidConfig(private_subnet_cidrs=["10.1.1.0/24", "10.0.2.0/24"]))
        self.assertTrue(any("must be inside the VPC CIDR" in e for e in errors))
        self.assertTrue(any("must match the number of availability zones" in e for e in errors))

    def test_bad_vpc_cidr(self):
        errors = validate_config(ValidConfig(vpc_cidr="10.0.0.0"))
        self.assertIn("VPC CIDR must be a valid IPv4 CIDR block.", errors)

    def test_bad_retention(self):
        errors = validate_config(ValidConfig(cluster_log_retention_days=45))
        self.assertEqual(errors, ["Cluster log retention must be a valid CloudWatch Logs retention value."])

    def test_endpoint_access_requires_one(self):
        errors = validate_config(ValidConfig(cluster_endpoint_private_access=False,
                                             cluster_endpoint_public_access=False))
        self.assertIn("At least one of private or public cluster endpoint access must be enabled.", errors)

    def test_custom_pools_need_builtin_pool(self):
        errors = validate_config(ValidConfig(auto_mode_node_pools=[]))
        self.assertEqual(errors, ["Additional node pools require at least one built-in Auto Mode node pool."])
        self.assertEqual(validate_config(ValidConfig(auto_mode_node_pools=["system"])), [])

    def test_github_repository_required_when_enabled(self):
        errors = validate_config(ValidConfig(enable_github_oidc=True, github_repository=""))
        self.assertEqual(len(errors), 1)

    def test_errors_are_collected(self):
        errors = validate_config(ValidConfig(environment="prod", cluster_log_retention_days=45,
                                             kms_key_deletion_window_days=3))
        self.assertEqual(len(errors), 3)

    def test_error_type_carries_messages(self):
        error = ConfigValidationError(["first", "second"])
        self.assertIsInstance(error, ValueError)
        self.assertEqual(error.errors, ["first", "second"])
        self.assertIn("first", str(error))


if __name__ == '__main__':
    unittest.main()
