"""
Security Module for EKS
Cluster, node and pod security groups
"""

from .functions import create_security_group_resources

__all__ = ["create_security_group_resources"]
