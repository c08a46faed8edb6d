"""
Unit tests for stack configuration loading and validation
"""

import unittest
import sys
import os
from unittest.mock import patch

# Add project root to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autoeks.config import Config
from autoeks.validation import ConfigValidationError, SUPPORTED_ADDONS


class FakeConfig:
    """In-memory stand-in for pulumi.Config"""

    def __init__(self, values=None):
        self.values = values or {}

    def get(self, key):
        return self.values.get(key)

    def get_object(self, key):
        return self.values.get(key)

    def get_bool(self, key):
        return self.values.get(key)

    def get_int(self, key):
        return self.values.get(key)

    def get_secret(self, key):
        return self.values.get(key)


def make_config(values=None, region="us-east-1"):
    return Config(config=FakeConfig(values), aws_config=FakeConfig({"region": region}))


class TestConfigDefaults(unittest.TestCase):
    """Test defaults applied when keys are unset"""

    def test_defaults(self):
        config = make_config()
        self.assertEqual(config.aws_region, "us-east-1")
        self.assertEqual(config.environment, "production")
        self.assertEqual(config.cluster_name, "eks-auto-mode-production")
        self.assertEqual(config.cluster_version, "1.31")
        self.assertEqual(config.vpc_cidr, "10.0.0.0/16")
        self.assertEqual(config.availability_zones, ["us-east-1a", "us-east-1b", "us-east-1c"])
        self.assertEqual(config.cluster_log_retention_days, 30)
        self.assertTrue(config.enable_nat_gateway)
        self.assertFalse(config.single_nat_gateway)
        self.assertTrue(config.enable_kms_encryption)
        self.assertFalse(config.enable_github_oidc)
        self.assertFalse(config.jenkins_ingress_enabled)
        self.assertEqual(config.auto_mode_node_pools, ["general-purpose", "system"])

    def test_region_drives_availability_zones(self):
        config = make_config(region="eu-west-2")
        self.assertEqual(config.availability_zones, ["eu-west-2a", "eu-west-2b", "eu-west-2c"])

    def test_default_addons(self):
        config = make_config()
        self.assertEqual(sorted(config.cluster_addons), sorted(SUPPORTED_ADDONS))
        for settings in config.cluster_addons.values():
            self.assertEqual(settings, {"version": None, "resolve_conflicts": "OVERWRITE"})

    def test_defaults_pass_validation(self):
        with patch('autoeks.config.pulumi'):
            config = make_config().validate()
        self.assertEqual(config.cluster_name, "eks-auto-mode-production")


class TestConfigOverrides(unittest.TestCase):
    """Test explicit values, including falsy ones"""

    def test_false_booleans_are_honoured(self):
        config = make_config({
            "enable_nat_gateway": False,
            "enable_flow_logs": False,
            "enable_kms_encryption": False,
            "enable_jenkins": False,
        })
        self.assertFalse(config.enable_nat_gateway)
        self.assertFalse(config.enable_flow_logs)
        self.assertFalse(config.enable_kms_encryption)
        self.assertFalse(config.enable_jenkins)

    def test_empty_node_pool_list_is_kept(self):
        config = make_config({"additional_node_pools": []})
        self.assertEqual(config.additional_node_pools, [])

    def test_addon_settings_merge_over_defaults(self):
        config = make_config({"cluster_addons": {
            "coredns": {"resolve_conflicts": "PRESERVE"},
            "vpc-cni": None,
        }})
        self.assertEqual(config.cluster_addons, {
            "coredns": {"version": None, "resolve_conflicts": "PRESERVE"},
            "vpc-cni": {"version": None, "resolve_conflicts": "OVERWRITE"},
        })

    def test_common_tags(self):
        config = make_config({"environment": "staging", "tags": {"Team": "platform"}})
        self.assertEqual(config.common_tags, {
            "Project": "eks-auto-mode",
            "Environment": "staging",
            "Cluster": "eks-auto-mode-staging",
            "ManagedBy": "pulumi",
            "Team": "platform",
        })

    def test_nat_gateway_count(self):
        self.assertEqual(make_config().nat_gateway_count, 3)
        self.assertEqual(make_config({"single_nat_gateway": True}).nat_gateway_count, 1)
        self.assertEqual(make_config({"enable_nat_gateway": False}).nat_gateway_count, 0)


class TestConfigValidate(unittest.TestCase):
    """Test that validate() logs and raises"""

    @patch('autoeks.config.pulumi')
    def test_invalid_environment_raises(self, mock_pulumi):
        config = make_config({"environment": "prod", "cluster_name": "demo"})
        with self.assertRaises(ConfigValidationError) as context:
            config.validate()
        self.assertEqual(context.exception.errors,
                         ["Environment must be one of: production, staging, development, qa."])
        mock_pulumi.log.error.assert_called_once()

    @patch('autoeks.config.pulumi')
    def test_every_error_is_logged(self, mock_pulumi):
        config = make_config({"vpc_cidr": "10.0.0.0", "cluster_log_retention_days": 45})
        with self.assertRaises(ConfigValidationError):
            config.validate()
        self.assertGreaterEqual(mock_pulumi.log.error.call_count, 2)

    @patch('autoeks.config.pulumi')
    def test_production_warnings(self, mock_pulumi):
        make_config({"single_nat_gateway": True, "enable_kms_encryption": False}).validate()
        # single NAT, open endpoint, KMS disabled
        self.assertEqual(mock_pulumi.log.warn.call_count, 3)
        mock_pulumi.log.error.assert_not_called()

    @patch('autoeks.config.pulumi')
    def test_custom_pools_without_builtin_pools_raise(self, mock_pulumi):
        config = make_config({"auto_mode_node_pools": []})
        self.assertEqual(config.additional_node_pools, ["memory-optimized", "compute-optimized"])
        with self.assertRaises(ConfigValidationError) as context:
            config.validate()
        self.assertEqual(context.exception.errors,
                         ["Additional node pools require at least one built-in Auto Mode node pool."])

    @patch('autoeks.config.pulumi')
    def test_no_node_pools_at_all_is_valid(self, mock_pulumi):
        make_config({"auto_mode_node_pools": [], "additional_node_pools": []}).validate()
        mock_pulumi.log.error.assert_not_called()

    @patch('autoeks.config.pulumi')
    def test_malformed_addon_entry_is_reported(self, mock_pulumi):
        config = make_config({"cluster_addons": {"coredns": "PRESERVE"}})
        self.assertEqual(config.cluster_addons, {"coredns": "PRESERVE"})
        with self.assertRaises(ConfigValidationError) as context:
            config.validate()
        self.assertEqual(len(context.exception.errors), 1)
        self.assertIn("settings for 'coredns' must be a map", context.exception.errors[0])

    @patch('autoeks.config.pulumi')
    def test_jenkins_ingress_warning(self, mock_pulumi):
        make_config({"environment": "development", "jenkins_ingress_enabled": True}).validate()
        mock_pulumi.log.warn.assert_called_once_with("Jenkins controller is exposed through an internet-facing ALB")

    @patch('autoeks.config.pulumi')
    def test_no_production_warnings_elsewhere(self, mock_pulumi):
        make_config({"environment": "development", "single_nat_gateway": True}).validate()
        mock_pulumi.log.warn.assert_not_called()


if __name__ == '__main__':
    unittest.main()
