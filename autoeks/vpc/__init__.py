"""
VPC Module for EKS
Networking: VPC, subnets, NAT gateways, route tables and flow logs
"""

from .functions import create_vpc_resources

__all__ = ["create_vpc_resources"]
