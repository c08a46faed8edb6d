"""
IAM Module for EKS
Cluster and node roles, KMS key, GitHub Actions federation
"""

from .functions import create_iam_resources

__all__ = ["create_iam_resources"]
