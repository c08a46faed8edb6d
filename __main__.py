"""
EKS Auto Mode cluster - Pulumi entry point
VPC, IAM, security groups, EKS Auto Mode, add-ons and Kubernetes-side objects
"""
import pulumi
from autoeks.config import get_config
from autoeks.iam import create_iam_resources
from autoeks.vpc import create_vpc_resources
from autoeks.security import create_security_group_resources
from autoeks.eks import create_eks_resources
from autoeks.kubernetes import create_kubernetes_resources
from autoeks.outputs import kubeconfig_command, next_steps

# Configuration (fails the preview on invalid input)
config = get_config()
tags = config.common_tags

# 1. Identity: roles and KMS key
iam = create_iam_resources(
    cluster_name=config.cluster_name,
    aws_region=config.aws_region,
    enable_kms_encryption=config.enable_kms_encryption,
    kms_key_deletion_window_days=config.kms_key_deletion_window_days,
    enable_github_oidc=config.enable_github_oidc,
    github_repository=config.github_repository,
    tags=tags
)

# 2. Network
network = create_vpc_resources(
    cluster_name=config.cluster_name,
    vpc_cidr=config.vpc_cidr,
    availability_zones=config.availability_zones,
    private_subnet_cidrs=config.private_subnet_cidrs,
    public_subnet_cidrs=config.public_subnet_cidrs,
    enable_nat_gateway=config.enable_nat_gateway,
    single_nat_gateway=config.single_nat_gateway,
    enable_flow_logs=config.enable_flow_logs,
    flow_logs_retention_days=config.flow_logs_retention_days,
    kms_key_arn=iam["kms_key_arn"],
    tags=tags
)

# 3. Security groups
security = create_security_group_resources(
    cluster_name=config.cluster_name,
    vpc_id=network["vpc_id"],
    tags=tags
)

# 4. EKS Auto Mode cluster and managed add-ons
admin_arns = list(config.cluster_admin_arns)
if iam["github_actions_role_arn"] is not None:
    admin_arns.append(iam["github_actions_role_arn"])

cluster_dependencies = list(iam["_cluster_policy_attachments"].values())
if iam["_kms_policy"] is not None:
    cluster_dependencies.append(iam["_kms_policy"])

eks = create_eks_resources(
    cluster_name=config.cluster_name,
    cluster_version=config.cluster_version,
    cluster_role_arn=iam["cluster_role_arn"],
    node_role_arn=iam["node_role_arn"],
    subnet_ids=network["private_subnet_ids"],
    cluster_security_group_id=security["cluster_security_group_id"],
    auto_mode_node_pools=config.auto_mode_node_pools,
    cluster_addons=config.cluster_addons,
    kms_key_arn=iam["kms_key_arn"],
    cluster_enabled_log_types=config.cluster_enabled_log_types,
    cluster_log_retention_days=config.cluster_log_retention_days,
    endpoint_private_access=config.cluster_endpoint_private_access,
    endpoint_public_access=config.cluster_endpoint_public_access,
    public_access_cidrs=config.cluster_endpoint_public_access_cidrs,
    enable_irsa=config.enable_irsa,
    cluster_admin_arns=admin_arns,
    depends_on=cluster_dependencies,
    tags=tags
)

# 5. Kubernetes-side objects
kubernetes = create_kubernetes_resources(
    cluster_name=config.cluster_name,
    cluster_endpoint=eks["cluster_endpoint"],
    cluster_ca_data=eks["cluster_certificate_authority_data"],
    cluster_name_output=eks["cluster_name"],
    aws_region=config.aws_region,
    cluster=eks["_cluster"],
    kms_key_arn=iam["kms_key_arn"],
    enable_default_storage_class=config.enable_default_storage_class,
    enable_alb_ingress_class=config.enable_alb_ingress_class,
    additional_node_pools=config.additional_node_pools,
    enable_jenkins=config.enable_jenkins,
    jenkins_namespace=config.jenkins_namespace,
    jenkins_chart_version=config.jenkins_chart_version,
    jenkins_admin_password=config.jenkins_admin_password,
    jenkins_ingress_enabled=config.jenkins_ingress_enabled
)

# Exports
pulumi.export("aws_region", config.aws_region)
pulumi.export("cluster_name", eks["cluster_name"])
pulumi.export("cluster_endpoint", eks["cluster_endpoint"])
pulumi.export("cluster_arn", eks["cluster_arn"])
pulumi.export("cluster_version", eks["cluster_version_output"])
pulumi.export("cluster_certificate_authority_data", eks["cluster_certificate_authority_data"])
pulumi.export("cluster_security_group_id", security["cluster_security_group_id"])
pulumi.export("cluster_primary_security_group_id", eks["cluster_primary_security_group_id"])
pulumi.export("node_security_group_id", security["node_security_group_id"])
pulumi.export("pod_security_group_id", security["pod_security_group_id"])
pulumi.export("vpc_id", network["vpc_id"])
pulumi.export("private_subnet_ids", network["private_subnet_ids"])
pulumi.export("public_subnet_ids", network["public_subnet_ids"])
pulumi.export("nat_gateway_ids", network["nat_gateway_ids"])
pulumi.export("cluster_role_arn", iam["cluster_role_arn"])
pulumi.export("node_role_arn", iam["node_role_arn"])
pulumi.export("kms_key_arn", iam["kms_key_arn"])
pulumi.export("oidc_provider_arn", eks["oidc_provider_arn"])
pulumi.export("cloudwatch_log_group_name", eks["cloudwatch_log_group_name"])
pulumi.export("github_actions_role_arn", iam["github_actions_role_arn"])
pulumi.export("addons_installed", eks["addon_names"])
pulumi.export("node_pools", config.auto_mode_node_pools + kubernetes["node_pool_names"])
pulumi.export("jenkins_namespace", kubernetes["jenkins_namespace"])
pulumi.export("configure_kubectl", eks["cluster_name"].apply(
    lambda name: kubeconfig_command(config.aws_region, name)
))
pulumi.export("next_steps", eks["cluster_name"].apply(
    lambda name: next_steps(
        config.aws_region,
        name,
        jenkins_enabled=config.enable_jenkins,
        jenkins_namespace=config.jenkins_namespace,
        additional_node_pools=config.additional_node_pools
    )
))
