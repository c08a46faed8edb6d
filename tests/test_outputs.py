"""
Unit tests for the exported text outputs
"""

import unittest
import sys
import os

# Add project root to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from autoeks.kubernetes.functions import build_node_pool_spec
from autoeks.outputs import kubeconfig_command, next_steps


class TestOutputs(unittest.TestCase):

    def test_kubeconfig_command(self):
        self.assertEqual(
            kubeconfig_command("us-east-1", "demo"),
            "aws eks update-kubeconfig --region us-east-1 --name demo"
        )

    def test_next_steps_minimal(self):
        text = next_steps("us-east-1", "demo")
        self.assertTrue(text.startswith("EKS Auto Mode cluster is ready."))
        self.assertIn("aws eks update-kubeconfig --region us-east-1 --name demo", text)
        self.assertIn("3. Inspect control plane logs:", text)
        self.assertIn("/aws/eks/demo/cluster", text)
        self.assertNotIn("Jenkins", text)
        self.assertNotIn("karpenter.sh/nodepool", text)

    def test_toleration_matches_node_pool_taint(self):
        taint = build_node_pool_spec("memory-optimized")["template"]["spec"]["taints"][0]
        text = next_steps("us-east-1", "demo", additional_node_pools=["memory-optimized"])
        self.assertIn(
            f"toleration: key: {taint['key']}, value: {taint['value']}, effect: {taint['effect']}", text
        )

    def test_next_steps_full(self):
        text = next_steps("eu-west-2", "demo", jenkins_enabled=True, jenkins_namespace="ci",
                          additional_node_pools=["memory-optimized", "compute-optimized"])
        self.assertIn("nodeSelector: karpenter.sh/nodepool: memory-optimized", text)
        self.assertIn("nodeSelector: karpenter.sh/nodepool: compute-optimized", text)
        self.assertIn("toleration: key: workload-type, value: memory-optimized, effect: NoSchedule", text)
        self.assertIn("toleration: key: workload-type, value: compute-optimized, effect: NoSchedule", text)
        self.assertIn("4. Open Jenkins:", text)
        self.assertIn("kubectl -n ci port-forward svc/jenkins 8080:8080", text)
        self.assertIn("5. Inspect control plane logs:", text)


if __name__ == '__main__':
    unittest.main()
