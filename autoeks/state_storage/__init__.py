"""
State Storage Module
Remote Pulumi state bucket and lock table, deployed by the bootstrap project
"""

from .functions import create_state_storage_resources

__all__ = ["create_state_storage_resources"]
