"""
Unit tests for the module layout
Tests that every area exposes a single create_<area>_resources entry point
and that the Pulumi program wires them together
"""

import unittest
import sys
import os
import inspect

# Add project root to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

ENTRY_POINTS = {
    'vpc': 'create_vpc_resources',
    'iam': 'create_iam_resources',
    'security': 'create_security_group_resources',
    'eks': 'create_eks_resources',
    'kubernetes': 'create_kubernetes_resources',
    'state_storage': 'create_state_storage_resources',
}


class TestModuleStructure(unittest.TestCase):
    """Test that modules follow the function-based pattern"""

    def test_areas_export_entry_point(self):
        for module_name, function_name in ENTRY_POINTS.items():
            with self.subTest(module=module_name):
                module = __import__(f'autoeks.{module_name}', fromlist=[''])
                self.assertEqual(module.__all__, [function_name])
                self.assertTrue(inspect.isfunction(getattr(module, function_name)))

    def test_no_classes_in_resource_modules(self):
        for module_name in ENTRY_POINTS:
            with self.subTest(module=module_name):
                module = __import__(f'autoeks.{module_name}.functions', fromlist=[''])
                classes = inspect.getmembers(module, inspect.isclass)
                user_classes = [name for name, cls in classes
                                if cls.__module__ == f'autoeks.{module_name}.functions']
                self.assertEqual(user_classes, [],
                                 f"{module_name} module has classes: {user_classes}. Should be plain functions.")

    def test_package_reexports(self):
        import autoeks
        self.assertEqual(sorted(autoeks.__all__), sorted(ENTRY_POINTS.values()))

    def test_main_wires_modules(self):
        with open(os.path.join(PROJECT_ROOT, '__main__.py'), 'r') as f:
            main_content = f.read()

        self.assertIn('from autoeks.config import get_config', main_content)
        for module_name, function_name in ENTRY_POINTS.items():
            if module_name == 'state_storage':
                continue
            self.assertIn(f'from autoeks.{module_name} import {function_name}', main_content)
        # The cluster runs in the private subnets only
        self.assertIn('subnet_ids=network["private_subnet_ids"]', main_content)

    def test_bootstrap_uses_state_storage(self):
        with open(os.path.join(PROJECT_ROOT, 'bootstrap', '__main__.py'), 'r') as f:
            bootstrap_content = f.read()

        self.assertIn('create_state_storage_resources', bootstrap_content)


if __name__ == '__main__':
    unittest.main()
