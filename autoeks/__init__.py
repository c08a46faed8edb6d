"""
Pulumi modules for the EKS Auto Mode platform
Simple function-based approach: each area exposes create_<area>_resources
"""

from .vpc import create_vpc_resources
from .iam import create_iam_resources
from .security import create_security_group_resources
from .eks import create_eks_resources
from .kubernetes import create_kubernetes_resources
from .state_storage import create_state_storage_resources

__all__ = [
    "create_vpc_resources",
    "create_iam_resources",
    "create_security_group_resources",
    "create_eks_resources",
    "create_kubernetes_resources",
    "create_state_storage_resources",
]
