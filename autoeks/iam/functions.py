"""
IAM Module Functions
Creates IAM roles for the EKS Auto Mode cluster and nodes, the KMS key,
and the optional GitHub Actions OIDC federation
"""

import json
import pulumi
import pulumi_aws as aws
from typing import Dict, List, Any

CLUSTER_POLICY_ARNS = [
    ("cluster", "arn:aws:iam::aws:policy/AmazonEKSClusterPolicy"),
    ("compute", "arn:aws:iam::aws:policy/AmazonEKSComputePolicy"),
    ("block-storage", "arn:aws:iam::aws:policy/AmazonEKSBlockStoragePolicy"),
    ("load-balancing", "arn:aws:iam::aws:policy/AmazonEKSLoadBalancingPolicy"),
    ("networking", "arn:aws:iam::aws:policy/AmazonEKSNetworkingPolicy"),
]

NODE_POLICY_ARNS = [
    ("worker", "arn:aws:iam::aws:policy/AmazonEKSWorkerNodeMinimalPolicy"),
    ("registry", "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryPullOnly"),
]

GITHUB_OIDC_URL = "https://token.actions.githubusercontent.com"
GITHUB_OIDC_THUMBPRINT = "6938fd4d98bab03faadb97b34396831e3780aea1"


def service_trust_policy(service: str, actions: List[str] = None) -> str:
    """Assume-role policy document trusting a single AWS service principal"""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Action": actions or ["sts:AssumeRole"],
            "Effect": "Allow",
            "Principal": {"Service": service}
        }]
    })


def kms_key_policy(account_id: str, aws_region: str) -> str:
    """Key policy: account root administers the key, CloudWatch Logs may use it"""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "EnableRootPermissions",
                "Effect": "Allow",
                "Principal": {"AWS": f"arn:aws:iam::{account_id}:root"},
                "Action": "kms:*",
                "Resource": "*"
            },
            {
                "Sid": "AllowCloudWatchLogs",
                "Effect": "Allow",
                "Principal": {"Service": f"logs.{aws_region}.amazonaws.com"},
                "Action": [
                    "kms:Encrypt*",
                    "kms:Decrypt*",
                    "kms:ReEncrypt*",
                    "kms:GenerateDataKey*",
                    "kms:Describe*"
                ],
                "Resource": "*"
            }
        ]
    })


def github_trust_policy(provider_arn: str, repository: str) -> str:
    """Trust policy for GitHub Actions workflows of one repository"""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"Federated": provider_arn},
            "Action": "sts:AssumeRoleWithWebIdentity",
            "Condition": {
                "StringEquals": {
                    "token.actions.githubusercontent.com:aud": "sts.amazonaws.com"
                },
                "StringLike": {
                    "token.actions.githubusercontent.com:sub": f"repo:{repository}:*"
                }
            }
        }]
    })


def create_cluster_role(name: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create IAM role for the EKS Auto Mode control plane

    Auto Mode manages compute, block storage, load balancing and networking
    on behalf of the cluster, so the role carries one managed policy for each.

    Args:
        name: Cluster name
        tags: Additional tags

    Returns:
        Dict with role resource and outputs
    """
    tags = tags or {}

    role = aws.iam.Role(
        f"{name}-cluster-role",
        name=f"{name}-cluster-role",
        assume_role_policy=service_trust_policy("eks.amazonaws.com", ["sts:AssumeRole", "sts:TagSession"]),
        tags={
            **tags,
            "Name": f"{name}-cluster-role",
            "Module": "iam"
        }
    )

    policy_attachments = {}
    for policy_name, policy_arn in CLUSTER_POLICY_ARNS:
        policy_attachments[policy_name] = aws.iam.RolePolicyAttachment(
            f"{name}-cluster-{policy_name}-policy",
            policy_arn=policy_arn,
            role=role.name
        )

    return {
        "role": role,
        "policy_attachments": policy_attachments,
        "role_arn": role.arn,
        "role_name": role.name
    }


def create_node_role(name: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create IAM role assumed by Auto Mode nodes

    Args:
        name: Cluster name
        tags: Additional tags

    Returns:
        Dict with role resource and outputs
    """
    tags = tags or {}

    role = aws.iam.Role(
        f"{name}-node-role",
        name=f"{name}-node-role",
        assume_role_policy=service_trust_policy("ec2.amazonaws.com"),
        tags={
            **tags,
            "Name": f"{name}-node-role",
            "Module": "iam"
        }
    )

    policy_attachments = {}
    for policy_name, policy_arn in NODE_POLICY_ARNS:
        policy_attachments[policy_name] = aws.iam.RolePolicyAttachment(
            f"{name}-node-{policy_name}-policy",
            policy_arn=policy_arn,
            role=role.name
        )

    return {
        "role": role,
        "policy_attachments": policy_attachments,
        "role_arn": role.arn,
        "role_name": role.name
    }


def create_kms_key(name: str, aws_region: str, deletion_window_days: int = 30,
                   tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create KMS key for EKS secret encryption and log group encryption

    Args:
        name: Cluster name
        aws_region: AWS region, used for the CloudWatch Logs principal
        deletion_window_days: Waiting period before key deletion (7-30)
        tags: Additional tags

    Returns:
        Dict with key resources and outputs
    """
    tags = tags or {}
    current = aws.get_caller_identity()

    kms_key = aws.kms.Key(
        f"{name}-eks-kms-key",
        description=f"EKS Secret Encryption Key for {name}",
        deletion_window_in_days=deletion_window_days,
        enable_key_rotation=True,
        policy=kms_key_policy(current.account_id, aws_region),
        tags={
            **tags,
            "Name": f"{name}-eks-kms-key",
            "Module": "iam"
        }
    )

    kms_alias = aws.kms.Alias(
        f"{name}-eks-kms-alias",
        name=f"alias/{name}-eks",
        target_key_id=kms_key.key_id
    )

    return {
        "key": kms_key,
        "alias": kms_alias,
        "key_arn": kms_key.arn,
        "key_id": kms_key.key_id
    }


def grant_cluster_kms_access(name: str, role_name: pulumi.Output[str],
                             key_arn: pulumi.Output[str]) -> aws.iam.RolePolicy:
    """Let the cluster role use the KMS key for envelope encryption"""
    return aws.iam.RolePolicy(
        f"{name}-cluster-kms-policy",
        role=role_name,
        policy=key_arn.apply(lambda arn: json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Effect": "Allow",
                "Action": [
                    "kms:Encrypt",
                    "kms:Decrypt",
                    "kms:ListGrants",
                    "kms:DescribeKey",
                    "kms:CreateGrant"
                ],
                "Resource": arn
            }]
        }))
    )


def create_github_actions_role(name: str, repository: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create the GitHub Actions OIDC provider and a deploy role for one repository

    Args:
        name: Cluster name
        repository: GitHub repository in owner/repo form
        tags: Additional tags

    Returns:
        Dict with provider and role resources and outputs
    """
    tags = tags or {}

    provider = aws.iam.OpenIdConnectProvider(
        f"{name}-github-oidc",
        url=GITHUB_OIDC_URL,
        client_id_lists=["sts.amazonaws.com"],
        thumbprint_lists=[GITHUB_OIDC_THUMBPRINT],
        tags={
            **tags,
            "Name": f"{name}-github-oidc",
            "Module": "iam"
        }
    )

    role = aws.iam.Role(
        f"{name}-github-actions-role",
        name=f"{name}-github-actions",
        assume_role_policy=provider.arn.apply(lambda arn: github_trust_policy(arn, repository)),
        tags={
            **tags,
            "Name": f"{name}-github-actions",
            "Module": "iam"
        }
    )

    role_policy = aws.iam.RolePolicy(
        f"{name}-github-actions-eks-policy",
        role=role.id,
        policy=json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Effect": "Allow",
                "Action": ["eks:DescribeCluster", "eks:ListClusters"],
                "Resource": "*"
            }]
        })
    )

    return {
        "provider": provider,
        "role": role,
        "role_policy": role_policy,
        "provider_arn": provider.arn,
        "role_arn": role.arn
    }


def create_iam_resources(cluster_name: str,
                         aws_region: str,
                         enable_kms_encryption: bool = True,
                         kms_key_deletion_window_days: int = 30,
                         enable_github_oidc: bool = False,
                         github_repository: str = "",
                         tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create IAM and KMS resources for EKS Auto Mode

    Args:
        cluster_name: EKS cluster name
        aws_region: AWS region
        enable_kms_encryption: Create the KMS key used for secrets and logs
        kms_key_deletion_window_days: KMS key deletion window
        enable_github_oidc: Create GitHub Actions OIDC federation
        github_repository: GitHub repository allowed to assume the deploy role
        tags: Additional tags

    Returns:
        Dict with all IAM resources and outputs
    """
    tags = tags or {}
    pulumi.log.info(f"Declaring IAM roles for cluster {cluster_name}")

    cluster_role_result = create_cluster_role(cluster_name, tags)
    node_role_result = create_node_role(cluster_name, tags)

    kms_result = None
    kms_policy = None
    if enable_kms_encryption:
        kms_result = create_kms_key(cluster_name, aws_region, kms_key_deletion_window_days, tags)
        kms_policy = grant_cluster_kms_access(
            cluster_name,
            cluster_role_result["role_name"],
            kms_result["key_arn"]
        )

    github_result = None
    if enable_github_oidc:
        github_result = create_github_actions_role(cluster_name, github_repository, tags)

    return {
        "cluster_role_arn": cluster_role_result["role_arn"],
        "cluster_role_name": cluster_role_result["role_name"],
        "node_role_arn": node_role_result["role_arn"],
        "node_role_name": node_role_result["role_name"],
        "kms_key_arn": kms_result["key_arn"] if kms_result else None,
        "github_actions_role_arn": github_result["role_arn"] if github_result else None,
        # Keep references to resources for dependencies
        "_cluster_role": cluster_role_result["role"],
        "_node_role": node_role_result["role"],
        "_cluster_policy_attachments": cluster_role_result["policy_attachments"],
        "_node_policy_attachments": node_role_result["policy_attachments"],
        "_kms_key": kms_result["key"] if kms_result else None,
        "_kms_policy": kms_policy,
        "_github_actions": github_result
    }
