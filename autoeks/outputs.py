"""
Output formatting for the EKS Auto Mode stack
Plain string builders used by pulumi.export in __main__.py
"""

from typing import List


def kubeconfig_command(aws_region: str, cluster_name: str) -> str:
    """Command that writes a kubeconfig entry for the cluster"""
    return f"aws eks update-kubeconfig --region {aws_region} --name {cluster_name}"


def next_steps(aws_region: str, cluster_name: str, jenkins_enabled: bool = False,
               jenkins_namespace: str = "jenkins",
               additional_node_pools: List[str] = None) -> str:
    """
    Build the "next steps" block shown after a successful deployment

    Args:
        aws_region: AWS region of the cluster
        cluster_name: EKS cluster name
        jenkins_enabled: Whether the Jenkins release was deployed
        jenkins_namespace: Namespace of the Jenkins release
        additional_node_pools: Custom node pools declared on the cluster

    Returns:
        Multi-line text block
    """
    additional_node_pools = additional_node_pools or []

    lines = [
        "EKS Auto Mode cluster is ready.",
        "",
        "1. Configure kubectl:",
        f"   {kubeconfig_command(aws_region, cluster_name)}",
        "",
        "2. Verify the cluster (Auto Mode launches nodes when pods are scheduled):",
        "   kubectl get nodes",
        "   kubectl get pods -A",
        "   kubectl get nodepools",
    ]

    step = 3
    if additional_node_pools:
        lines += [
            "",
            f"{step}. Target a custom node pool with a node selector and a toleration for its taint:",
        ]
        for pool in additional_node_pools:
            lines += [
                f"   {pool}:",
                f"     nodeSelector: karpenter.sh/nodepool: {pool}",
                f"     toleration: key: workload-type, value: {pool}, effect: NoSchedule",
            ]
        step += 1

    if jenkins_enabled:
        lines += [
            "",
            f"{step}. Open Jenkins:",
            f"   kubectl -n {jenkins_namespace} port-forward svc/jenkins 8080:8080",
            f"   kubectl -n {jenkins_namespace} get secret jenkins "
            "-o jsonpath='{.data.jenkins-admin-password}' | base64 -d",
        ]
        step += 1

    lines += [
        "",
        f"{step}. Inspect control plane logs:",
        f"   aws logs tail /aws/eks/{cluster_name}/cluster --region {aws_region} --follow",
    ]
    return "\n".join(lines)
