"""
EKS Module Functions
Creates the EKS Auto Mode cluster, its log group, managed add-ons,
IRSA OIDC provider and access entries
"""

import pulumi
import pulumi_aws as aws
from typing import Dict, List, Any

# EKS OIDC root CA thumbprint, identical across regions
EKS_OIDC_THUMBPRINT = "9e99a48a9960b14926bb7f3b02e22da2b0ab7280"

CLUSTER_ADMIN_POLICY_ARN = "arn:aws:eks::aws:cluster-access-policy/AmazonEKSClusterAdminPolicy"


def create_cloudwatch_log_group(name: str, retention_days: int = 30, kms_key_arn: pulumi.Output[str] = None,
                                tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create the control plane log group before the cluster so retention applies

    Args:
        name: Cluster name
        retention_days: Log retention in days
        kms_key_arn: Optional KMS key for log encryption
        tags: Additional tags

    Returns:
        Dict with log group resource and outputs
    """
    tags = tags or {}

    log_group = aws.cloudwatch.LogGroup(
        f"{name}-eks-log-group",
        name=f"/aws/eks/{name}/cluster",
        retention_in_days=retention_days,
        kms_key_id=kms_key_arn,
        tags={
            **tags,
            "Name": f"{name}-eks-log-group",
            "Module": "eks"
        }
    )

    return {
        "log_group": log_group,
        "log_group_name": log_group.name
    }


def create_eks_cluster(name: str, version: str, role_arn: pulumi.Output[str], node_role_arn: pulumi.Output[str],
                       subnet_ids: List[pulumi.Output[str]], security_group_ids: List[pulumi.Output[str]],
                       node_pools: List[str], kms_key_arn: pulumi.Output[str] = None,
                       enabled_log_types: List[str] = None,
                       endpoint_private_access: bool = True,
                       endpoint_public_access: bool = True,
                       public_access_cidrs: List[str] = None,
                       depends_on: list = None,
                       tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create EKS cluster with Auto Mode compute, block storage and load balancing

    Args:
        name: Cluster name
        version: Kubernetes version
        role_arn: IAM role ARN for cluster
        node_role_arn: IAM role ARN for Auto Mode nodes
        subnet_ids: List of subnet IDs
        security_group_ids: Additional security group IDs for the control plane
        node_pools: Built-in Auto Mode node pools to enable
        kms_key_arn: KMS key ARN for secrets encryption, None to disable
        enabled_log_types: List of enabled log types
        endpoint_private_access: Enable private API endpoint
        endpoint_public_access: Enable public API endpoint
        public_access_cidrs: List of CIDRs for public access
        depends_on: Resources that must exist first (log group, role policies)
        tags: Additional tags

    Returns:
        Dict with cluster resource and outputs
    """
    tags = tags or {}
    enabled_log_types = enabled_log_types or ["api", "audit", "authenticator"]
    public_access_cidrs = public_access_cidrs or ["0.0.0.0/0"]

    encryption_config = None
    if kms_key_arn is not None:
        encryption_config = aws.eks.ClusterEncryptionConfigArgs(
            provider=aws.eks.ClusterEncryptionConfigProviderArgs(
                key_arn=kms_key_arn
            ),
            resources=["secrets"]
        )

    # Auto Mode requires compute, block storage and load balancing to be toggled together
    cluster = aws.eks.Cluster(
        f"{name}-cluster",
        name=name,
        version=version,
        role_arn=role_arn,
        bootstrap_self_managed_addons=False,
        access_config=aws.eks.ClusterAccessConfigArgs(
            authentication_mode="API",
            bootstrap_cluster_creator_admin_permissions=True
        ),
        compute_config=aws.eks.ClusterComputeConfigArgs(
            enabled=True,
            node_pools=node_pools,
            node_role_arn=node_role_arn if node_pools else None
        ),
        kubernetes_network_config=aws.eks.ClusterKubernetesNetworkConfigArgs(
            elastic_load_balancing=aws.eks.ClusterKubernetesNetworkConfigElasticLoadBalancingArgs(
                enabled=True
            )
        ),
        storage_config=aws.eks.ClusterStorageConfigArgs(
            block_storage=aws.eks.ClusterStorageConfigBlockStorageArgs(
                enabled=True
            )
        ),
        vpc_config=aws.eks.ClusterVpcConfigArgs(
            subnet_ids=subnet_ids,
            endpoint_private_access=endpoint_private_access,
            endpoint_public_access=endpoint_public_access,
            public_access_cidrs=public_access_cidrs if endpoint_public_access else None,
            security_group_ids=security_group_ids
        ),
        enabled_cluster_log_types=enabled_log_types,
        encryption_config=encryption_config,
        tags={
            **tags,
            "Name": f"{name}-cluster",
            "Module": "eks"
        },
        opts=pulumi.ResourceOptions(depends_on=depends_on or [])
    )

    return {
        "cluster": cluster,
        "cluster_id": cluster.id,
        "cluster_arn": cluster.arn,
        "cluster_name": cluster.name,
        "cluster_endpoint": cluster.endpoint,
        "cluster_version": cluster.version,
        "cluster_certificate_authority_data": cluster.certificate_authority.data,
        "cluster_primary_security_group_id": cluster.vpc_config.cluster_security_group_id
    }


def create_eks_addons(name: str, cluster_name: pulumi.Output[str], addons: Dict[str, Dict[str, Any]],
                      cluster=None, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create EKS managed add-ons

    Args:
        name: Cluster name
        cluster_name: EKS cluster name output
        addons: Mapping of add-on name to {"version", "resolve_conflicts"}
        cluster: Cluster resource the add-ons wait for
        tags: Additional tags

    Returns:
        Dict with addon resources keyed by add-on name
    """
    tags = tags or {}
    opts = pulumi.ResourceOptions(depends_on=[cluster]) if cluster is not None else None

    created = {}
    for addon_name, settings in addons.items():
        created[addon_name] = aws.eks.Addon(
            f"{name}-{addon_name}-addon",
            cluster_name=cluster_name,
            addon_name=addon_name,
            addon_version=settings.get("version"),
            # PRESERVE is only accepted on update
            resolve_conflicts_on_create="OVERWRITE",
            resolve_conflicts_on_update=settings["resolve_conflicts"],
            tags={
                **tags,
                "Name": f"{name}-{addon_name}-addon",
                "Module": "eks"
            },
            opts=opts
        )

    return {"addons": created}


def create_irsa_provider(name: str, cluster, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Register the cluster OIDC issuer with IAM for IAM Roles for Service Accounts

    Args:
        name: Cluster name
        cluster: EKS cluster resource
        tags: Additional tags

    Returns:
        Dict with provider resource and outputs
    """
    tags = tags or {}

    issuer_url = cluster.identities.apply(lambda identities: identities[0].oidcs[0].issuer)

    provider = aws.iam.OpenIdConnectProvider(
        f"{name}-eks-oidc-provider",
        url=issuer_url,
        client_id_lists=["sts.amazonaws.com"],
        thumbprint_lists=[EKS_OIDC_THUMBPRINT],
        tags={
            **tags,
            "Name": f"{name}-eks-oidc-provider",
            "Module": "eks"
        }
    )

    return {
        "provider": provider,
        "provider_arn": provider.arn,
        "issuer_url": issuer_url
    }


def create_access_entries(name: str, cluster_name: pulumi.Output[str], principal_arns: list,
                          cluster=None) -> Dict[str, Any]:
    """
    Grant cluster-admin to IAM principals through EKS access entries

    Args:
        name: Cluster name
        cluster_name: EKS cluster name output
        principal_arns: IAM role/user ARNs (plain strings or outputs)
        cluster: Cluster resource the entries wait for

    Returns:
        Dict with access entry and policy association resources
    """
    entries = []
    associations = []
    for i, principal_arn in enumerate(principal_arns):
        entry = aws.eks.AccessEntry(
            f"{name}-admin-access-{i+1}",
            cluster_name=cluster_name,
            principal_arn=principal_arn,
            type="STANDARD",
            opts=pulumi.ResourceOptions(depends_on=[cluster] if cluster is not None else [])
        )
        association = aws.eks.AccessPolicyAssociation(
            f"{name}-admin-policy-{i+1}",
            cluster_name=cluster_name,
            principal_arn=principal_arn,
            policy_arn=CLUSTER_ADMIN_POLICY_ARN,
            access_scope=aws.eks.AccessPolicyAssociationAccessScopeArgs(type="cluster"),
            opts=pulumi.ResourceOptions(depends_on=[entry])
        )
        entries.append(entry)
        associations.append(association)

    return {
        "access_entries": entries,
        "policy_associations": associations
    }


def create_eks_resources(cluster_name: str, cluster_version: str,
                         cluster_role_arn: pulumi.Output[str], node_role_arn: pulumi.Output[str],
                         subnet_ids: List[pulumi.Output[str]],
                         cluster_security_group_id: pulumi.Output[str],
                         auto_mode_node_pools: List[str],
                         cluster_addons: Dict[str, Dict[str, Any]],
                         kms_key_arn: pulumi.Output[str] = None,
                         cluster_enabled_log_types: List[str] = None,
                         cluster_log_retention_days: int = 30,
                         endpoint_private_access: bool = True,
                         endpoint_public_access: bool = True,
                         public_access_cidrs: List[str] = None,
                         enable_irsa: bool = True,
                         cluster_admin_arns: list = None,
                         depends_on: list = None,
                         tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create complete EKS Auto Mode infrastructure

    Args:
        cluster_name: EKS cluster name
        cluster_version: Kubernetes version
        cluster_role_arn: IAM role ARN for cluster
        node_role_arn: IAM role ARN for Auto Mode nodes
        subnet_ids: List of subnet IDs
        cluster_security_group_id: Additional control plane security group ID
        auto_mode_node_pools: Built-in node pools to enable
        cluster_addons: Mapping of add-on name to {"version", "resolve_conflicts"}
        kms_key_arn: KMS key ARN for secrets encryption, None to disable
        cluster_enabled_log_types: List of enabled log types
        cluster_log_retention_days: Control plane log retention in days
        endpoint_private_access: Enable private API endpoint
        endpoint_public_access: Enable public API endpoint
        public_access_cidrs: List of CIDRs for public access
        enable_irsa: Register the cluster OIDC issuer with IAM
        cluster_admin_arns: IAM principals granted cluster-admin
        depends_on: Extra resources the cluster waits for (IAM policy attachments)
        tags: Additional tags

    Returns:
        Dict with all EKS resources and outputs
    """
    tags = tags or {}
    cluster_admin_arns = cluster_admin_arns or []
    pulumi.log.info(
        f"Declaring EKS {cluster_version} cluster {cluster_name} in Auto Mode "
        f"with node pools {', '.join(auto_mode_node_pools) or 'none'}"
    )

    log_group_result = create_cloudwatch_log_group(
        cluster_name,
        cluster_log_retention_days,
        kms_key_arn,
        tags
    )

    cluster_result = create_eks_cluster(
        name=cluster_name,
        version=cluster_version,
        role_arn=cluster_role_arn,
        node_role_arn=node_role_arn,
        subnet_ids=subnet_ids,
        security_group_ids=[cluster_security_group_id],
        node_pools=auto_mode_node_pools,
        kms_key_arn=kms_key_arn,
        enabled_log_types=cluster_enabled_log_types,
        endpoint_private_access=endpoint_private_access,
        endpoint_public_access=endpoint_public_access,
        public_access_cidrs=public_access_cidrs,
        depends_on=[log_group_result["log_group"], *(depends_on or [])],
        tags=tags
    )
    cluster = cluster_result["cluster"]

    addons_result = create_eks_addons(
        name=cluster_name,
        cluster_name=cluster.name,
        addons=cluster_addons,
        cluster=cluster,
        tags=tags
    )

    irsa_result = None
    if enable_irsa:
        irsa_result = create_irsa_provider(cluster_name, cluster, tags)

    access_result = create_access_entries(cluster_name, cluster.name, cluster_admin_arns, cluster)

    return {
        "cluster_id": cluster_result["cluster_id"],
        "cluster_arn": cluster_result["cluster_arn"],
        "cluster_name": cluster_result["cluster_name"],
        "cluster_endpoint": cluster_result["cluster_endpoint"],
        "cluster_version_output": cluster_result["cluster_version"],
        "cluster_certificate_authority_data": cluster_result["cluster_certificate_authority_data"],
        "cluster_primary_security_group_id": cluster_result["cluster_primary_security_group_id"],
        "cloudwatch_log_group_name": log_group_result["log_group_name"],
        "oidc_provider_arn": irsa_result["provider_arn"] if irsa_result else None,
        "addon_names": list(addons_result["addons"].keys()),
        # Keep references to resources for dependencies
        "_log_group": log_group_result["log_group"],
        "_cluster": cluster,
        "_addons": addons_result["addons"],
        "_oidc_provider": irsa_result["provider"] if irsa_result else None,
        "_access_entries": access_result["access_entries"]
    }
