"""
Kubernetes Module Functions
Cluster-side objects applied after the EKS Auto Mode cluster exists:
storage class, ALB ingress class, custom node pools and the Jenkins release
"""

import pulumi
import pulumi_kubernetes as k8s
from typing import Dict, List, Any

# Provisioner and controller names of the Auto Mode managed drivers
AUTO_MODE_EBS_PROVISIONER = "ebs.csi.eks.amazonaws.com"
AUTO_MODE_ALB_CONTROLLER = "eks.amazonaws.com/alb"

NODE_POOL_INSTANCE_CATEGORIES = {
    "memory-optimized": ["r", "x"],
    "compute-optimized": ["c"],
}


def build_kubeconfig(endpoint: str, ca_data: str, cluster_name: str, aws_region: str) -> str:
    """Kubeconfig that authenticates through `aws eks get-token`"""
    return f"""apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: {ca_data}
    server: {endpoint}
  name: {cluster_name}
contexts:
- context:
    cluster: {cluster_name}
    user: {cluster_name}
  name: {cluster_name}
current-context: {cluster_name}
kind: Config
users:
- name: {cluster_name}
  user:
    exec:
      apiVersion: client.authentication.k8s.io/v1beta1
      command: aws
      args:
        - eks
        - get-token
        - --cluster-name
        - {cluster_name}
        - --region
        - {aws_region}
"""


def build_node_pool_spec(category: str) -> Dict[str, Any]:
    """
    NodePool spec for a custom Auto Mode node pool category

    Args:
        category: One of the keys of NODE_POOL_INSTANCE_CATEGORIES

    Returns:
        NodePool spec dict referencing the Auto Mode default NodeClass
    """
    return {
        "template": {
            "metadata": {
                "labels": {"workload-type": category}
            },
            "spec": {
                "nodeClassRef": {
                    "group": "eks.amazonaws.com",
                    "kind": "NodeClass",
                    "name": "default",
                },
                "requirements": [
                    {
                        "key": "eks.amazonaws.com/instance-category",
                        "operator": "In",
                        "values": NODE_POOL_INSTANCE_CATEGORIES[category]
                    },
                    {
                        "key": "eks.amazonaws.com/instance-generation",
                        "operator": "Gt",
                        "values": ["4"]
                    },
                    {
                        "key": "kubernetes.io/arch",
                        "operator": "In",
                        "values": ["amd64", "arm64"]
                    },
                    {
                        "key": "karpenter.sh/capacity-type",
                        "operator": "In",
                        "values": ["on-demand"]
                    },
                ],
                "taints": [{
                    "key": "workload-type",
                    "value": category,
                    "effect": "NoSchedule"
                }],
            },
        },
        "limits": {
            "cpu": "1000",
            "memory": "1000Gi"
        },
        "disruption": {
            "consolidationPolicy": "WhenEmptyOrUnderutilized",
            "consolidateAfter": "30s",
        },
    }


def build_jenkins_values(storage_class_name: str = None, ingress_class_name: str = None) -> Dict[str, Any]:
    """Helm values for the Jenkins chart"""
    values = {
        "controller": {
            "serviceType": "ClusterIP",
            "resources": {
                "requests": {"cpu": "500m", "memory": "1Gi"},
                "limits": {"cpu": "2", "memory": "4Gi"}
            },
            "installPlugins": [
                "kubernetes",
                "workflow-aggregator",
                "git",
                "configuration-as-code"
            ],
        },
        "persistence": {
            "enabled": True,
            "size": "20Gi",
        },
        "agent": {
            "enabled": True,
        },
    }
    if storage_class_name:
        values["persistence"]["storageClass"] = storage_class_name
    if ingress_class_name:
        values["controller"]["ingress"] = {
            "enabled": True,
            "ingressClassName": ingress_class_name,
            "annotations": {
                "alb.ingress.kubernetes.io/target-type": "ip"
            }
        }
    return values


def create_kubernetes_provider(name: str, cluster_endpoint: pulumi.Output[str],
                               cluster_ca_data: pulumi.Output[str], cluster_name: pulumi.Output[str],
                               aws_region: str, cluster=None) -> k8s.Provider:
    """
    Create Kubernetes provider for the EKS cluster

    Args:
        name: Provider name prefix
        cluster_endpoint: EKS cluster endpoint
        cluster_ca_data: EKS cluster CA certificate data
        cluster_name: EKS cluster name output
        aws_region: AWS region used by `aws eks get-token`
        cluster: Cluster resource the provider waits for

    Returns:
        Kubernetes provider instance
    """
    kubeconfig = pulumi.Output.all(cluster_endpoint, cluster_ca_data, cluster_name).apply(
        lambda args: build_kubeconfig(args[0], args[1], args[2], aws_region)
    )

    return k8s.Provider(
        f"{name}-k8s-provider",
        kubeconfig=kubeconfig,
        opts=pulumi.ResourceOptions(depends_on=[cluster] if cluster is not None else [])
    )


def create_storage_class(name: str, provider: k8s.Provider, kms_key_arn: pulumi.Output[str] = None) -> Dict[str, Any]:
    """
    Create the default gp3 storage class served by the Auto Mode EBS driver

    Args:
        name: Resource name prefix
        provider: Kubernetes provider
        kms_key_arn: Optional KMS key for volume encryption

    Returns:
        Dict with storage class resource and name
    """
    parameters = {"type": "gp3", "encrypted": "true"}
    if kms_key_arn is not None:
        parameters["kmsKeyId"] = kms_key_arn

    storage_class = k8s.storage.v1.StorageClass(
        f"{name}-gp3-storage-class",
        metadata=k8s.meta.v1.ObjectMetaArgs(
            name="auto-ebs-gp3",
            annotations={"storageclass.kubernetes.io/is-default-class": "true"},
        ),
        provisioner=AUTO_MODE_EBS_PROVISIONER,
        parameters=parameters,
        reclaim_policy="Delete",
        volume_binding_mode="WaitForFirstConsumer",
        allow_volume_expansion=True,
        opts=pulumi.ResourceOptions(provider=provider)
    )

    return {
        "storage_class": storage_class,
        "storage_class_name": "auto-ebs-gp3"
    }


def create_ingress_class(name: str, provider: k8s.Provider, scheme: str = "internet-facing") -> Dict[str, Any]:
    """
    Create IngressClassParams and an ALB IngressClass for Auto Mode load balancing

    Args:
        name: Resource name prefix
        provider: Kubernetes provider
        scheme: ALB scheme, internet-facing or internal

    Returns:
        Dict with ingress class resources and name
    """
    params = k8s.apiextensions.CustomResource(
        f"{name}-alb-ingress-class-params",
        api_version="eks.amazonaws.com/v1",
        kind="IngressClassParams",
        metadata=k8s.meta.v1.ObjectMetaArgs(name="alb"),
        spec={"scheme": scheme},
        opts=pulumi.ResourceOptions(provider=provider)
    )

    ingress_class = k8s.networking.v1.IngressClass(
        f"{name}-alb-ingress-class",
        metadata=k8s.meta.v1.ObjectMetaArgs(
            name="alb",
            annotations={"ingressclass.kubernetes.io/is-default-class": "true"},
        ),
        spec=k8s.networking.v1.IngressClassSpecArgs(
            controller=AUTO_MODE_ALB_CONTROLLER,
            parameters=k8s.networking.v1.IngressClassParametersReferenceArgs(
                api_group="eks.amazonaws.com",
                kind="IngressClassParams",
                name="alb",
            ),
        ),
        opts=pulumi.ResourceOptions(provider=provider, depends_on=[params])
    )

    return {
        "ingress_class_params": params,
        "ingress_class": ingress_class,
        "ingress_class_name": "alb"
    }


def create_node_pools(name: str, provider: k8s.Provider, categories: List[str]) -> Dict[str, Any]:
    """
    Create custom NodePools next to the built-in Auto Mode pools

    Args:
        name: Resource name prefix
        provider: Kubernetes provider
        categories: Node pool categories, e.g. memory-optimized

    Returns:
        Dict with node pool resources keyed by category
    """
    node_pools = {}
    for category in categories:
        node_pools[category] = k8s.apiextensions.CustomResource(
            f"{name}-{category}-node-pool",
            api_version="karpenter.sh/v1",
            kind="NodePool",
            metadata=k8s.meta.v1.ObjectMetaArgs(name=category),
            spec=build_node_pool_spec(category),
            opts=pulumi.ResourceOptions(provider=provider)
        )

    return {"node_pools": node_pools}


def deploy_jenkins(name: str, provider: k8s.Provider, namespace: str, chart_version: str,
                   admin_password: pulumi.Output[str] = None,
                   storage_class_name: str = None, ingress_class_name: str = None,
                   depends_on: list = None) -> Dict[str, Any]:
    """
    Deploy Jenkins using Helm

    Args:
        name: Release name prefix
        provider: Kubernetes provider
        namespace: Namespace for the release
        chart_version: Jenkins chart version
        admin_password: Optional admin password secret
        storage_class_name: Storage class for the controller volume
        ingress_class_name: Ingress class exposing the controller
        depends_on: Resources the release waits for

    Returns:
        Dict with namespace and release resources
    """
    jenkins_namespace = k8s.core.v1.Namespace(
        f"{name}-jenkins-namespace",
        metadata=k8s.meta.v1.ObjectMetaArgs(
            name=namespace,
            labels={
                "name": namespace,
                "managed-by": "pulumi"
            }
        ),
        opts=pulumi.ResourceOptions(provider=provider)
    )

    values = build_jenkins_values(storage_class_name, ingress_class_name)
    if admin_password is not None:
        values["controller"]["admin"] = {"password": admin_password}

    release = k8s.helm.v3.Release(
        f"{name}-jenkins",
        name="jenkins",
        chart="jenkins",
        version=chart_version,
        namespace=namespace,
        repository_opts=k8s.helm.v3.RepositoryOptsArgs(
            repo="https://charts.jenkins.io"
        ),
        values=values,
        timeout=900,
        opts=pulumi.ResourceOptions(
            provider=provider,
            depends_on=[jenkins_namespace, *(depends_on or [])]
        )
    )

    return {
        "namespace": jenkins_namespace,
        "release": release,
        "namespace_name": namespace
    }


def create_kubernetes_resources(cluster_name: str,
                                cluster_endpoint: pulumi.Output[str],
                                cluster_ca_data: pulumi.Output[str],
                                cluster_name_output: pulumi.Output[str],
                                aws_region: str,
                                cluster=None,
                                kms_key_arn: pulumi.Output[str] = None,
                                enable_default_storage_class: bool = True,
                                enable_alb_ingress_class: bool = True,
                                additional_node_pools: List[str] = None,
                                enable_jenkins: bool = True,
                                jenkins_namespace: str = "jenkins",
                                jenkins_chart_version: str = "5.7.15",
                                jenkins_admin_password: pulumi.Output[str] = None,
                                jenkins_ingress_enabled: bool = False) -> Dict[str, Any]:
    """
    Create Kubernetes-side objects for the EKS Auto Mode cluster

    Args:
        cluster_name: EKS cluster name
        cluster_endpoint: EKS cluster endpoint
        cluster_ca_data: EKS cluster CA certificate data
        cluster_name_output: Cluster name output, ties the provider to the cluster
        aws_region: AWS region
        cluster: Cluster resource
        kms_key_arn: KMS key for EBS volume encryption
        enable_default_storage_class: Create the default gp3 storage class
        enable_alb_ingress_class: Create the ALB ingress class
        additional_node_pools: Custom node pool categories
        enable_jenkins: Deploy the Jenkins Helm release
        jenkins_namespace: Jenkins namespace
        jenkins_chart_version: Jenkins chart version
        jenkins_admin_password: Optional Jenkins admin password
        jenkins_ingress_enabled: Expose the controller through the ALB ingress class

    Returns:
        Dict with Kubernetes resources and status
    """
    additional_node_pools = additional_node_pools or []
    pulumi.log.info(f"Declaring Kubernetes objects for cluster {cluster_name}")

    provider = create_kubernetes_provider(
        cluster_name,
        cluster_endpoint,
        cluster_ca_data,
        cluster_name_output,
        aws_region,
        cluster
    )

    storage_result = None
    if enable_default_storage_class:
        storage_result = create_storage_class(cluster_name, provider, kms_key_arn)

    ingress_result = None
    if enable_alb_ingress_class:
        ingress_result = create_ingress_class(cluster_name, provider)

    node_pools_result = create_node_pools(cluster_name, provider, additional_node_pools)

    jenkins_result = None
    if enable_jenkins:
        jenkins_depends_on = []
        if storage_result:
            jenkins_depends_on.append(storage_result["storage_class"])

        # The ALB ingress class is internet-facing, so the controller stays private unless asked
        jenkins_ingress_class = None
        if ingress_result and jenkins_ingress_enabled:
            jenkins_ingress_class = ingress_result["ingress_class_name"]
            jenkins_depends_on.append(ingress_result["ingress_class"])

        jenkins_result = deploy_jenkins(
            cluster_name,
            provider,
            jenkins_namespace,
            jenkins_chart_version,
            admin_password=jenkins_admin_password,
            storage_class_name=storage_result["storage_class_name"] if storage_result else None,
            ingress_class_name=jenkins_ingress_class,
            depends_on=jenkins_depends_on
        )

    return {
        "storage_class_name": storage_result["storage_class_name"] if storage_result else None,
        "ingress_class_name": ingress_result["ingress_class_name"] if ingress_result else None,
        "node_pool_names": list(node_pools_result["node_pools"].keys()),
        "jenkins_namespace": jenkins_result["namespace_name"] if jenkins_result else None,
        # Keep references to resources for dependencies
        "_k8s_provider": provider,
        "_storage_class": storage_result["storage_class"] if storage_result else None,
        "_ingress_class": ingress_result["ingress_class"] if ingress_result else None,
        "_node_pools": node_pools_result["node_pools"],
        "_jenkins_release": jenkins_result["release"] if jenkins_result else None
    }
