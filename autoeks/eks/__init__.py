"""
EKS Module
Auto Mode cluster, managed add-ons, IRSA and access entries
"""

from .functions import create_eks_resources

__all__ = ["create_eks_resources"]
