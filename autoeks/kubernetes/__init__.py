"""
Kubernetes Module for EKS
Storage class, ingress class, node pools and Helm releases
"""

from .functions import create_kubernetes_resources

__all__ = ["create_kubernetes_resources"]
