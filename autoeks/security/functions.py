"""
Security Group Module Functions
Creates cluster, node and pod security groups with one resource per rule
"""

import pulumi
import pulumi_aws as aws
from typing import Dict, Any


def create_security_group(name: str, role: str, vpc_id: pulumi.Output[str], description: str,
                          tags: Dict[str, str] = None) -> aws.ec2.SecurityGroup:
    tags = tags or {}

    return aws.ec2.SecurityGroup(
        f"{name}-{role}-sg",
        name_prefix=f"{name}-{role}-",
        description=description,
        vpc_id=vpc_id,
        tags={
            **tags,
            "Name": f"{name}-{role}-sg",
            "Module": "security"
        }
    )


def create_rule(name: str, security_group_id: pulumi.Output[str], rule_type: str,
                from_port: int, to_port: int, protocol: str, description: str,
                source_security_group_id: pulumi.Output[str] = None,
                cidr_blocks: list = None, self_reference: bool = False) -> aws.ec2.SecurityGroupRule:
    """
    Declare a single ingress or egress rule

    Exactly one of source_security_group_id, cidr_blocks or self_reference
    names the peer of the rule.
    """
    kwargs = {}
    if source_security_group_id is not None:
        kwargs["source_security_group_id"] = source_security_group_id
    elif self_reference:
        kwargs["self"] = True
    else:
        kwargs["cidr_blocks"] = cidr_blocks or ["0.0.0.0/0"]

    return aws.ec2.SecurityGroupRule(
        name,
        type=rule_type,
        from_port=from_port,
        to_port=to_port,
        protocol=protocol,
        description=description,
        security_group_id=security_group_id,
        **kwargs
    )


def create_security_group_resources(cluster_name: str, vpc_id: pulumi.Output[str],
                                    tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create security groups for the EKS control plane, nodes and pods

    Args:
        cluster_name: EKS cluster name
        vpc_id: VPC ID
        tags: Additional tags

    Returns:
        Dict with security group IDs, rules, and resource references
    """
    tags = tags or {}
    pulumi.log.info(f"Declaring security groups for cluster {cluster_name}")

    cluster_sg = create_security_group(
        cluster_name, "cluster", vpc_id, "EKS control plane additional security group", tags
    )
    node_sg = create_security_group(
        cluster_name, "node", vpc_id, "EKS Auto Mode nodes", tags
    )
    pod_sg = create_security_group(
        cluster_name, "pod", vpc_id, "Security group for pods", tags
    )

    rules = {
        # Control plane
        "cluster_ingress_node_https": create_rule(
            f"{cluster_name}-cluster-ingress-node-https", cluster_sg.id, "ingress",
            443, 443, "tcp", "Nodes to cluster API",
            source_security_group_id=node_sg.id
        ),
        "cluster_ingress_pod_https": create_rule(
            f"{cluster_name}-cluster-ingress-pod-https", cluster_sg.id, "ingress",
            443, 443, "tcp", "Pods to cluster API",
            source_security_group_id=pod_sg.id
        ),
        "cluster_egress_all": create_rule(
            f"{cluster_name}-cluster-egress", cluster_sg.id, "egress",
            0, 0, "-1", "Cluster egress"
        ),
        # Nodes
        "node_ingress_self": create_rule(
            f"{cluster_name}-node-ingress-self", node_sg.id, "ingress",
            0, 0, "-1", "Node to node",
            self_reference=True
        ),
        "node_ingress_cluster": create_rule(
            f"{cluster_name}-node-ingress-cluster", node_sg.id, "ingress",
            1025, 65535, "tcp", "Cluster API to kubelets and pods",
            source_security_group_id=cluster_sg.id
        ),
        "node_ingress_cluster_https": create_rule(
            f"{cluster_name}-node-ingress-cluster-https", node_sg.id, "ingress",
            443, 443, "tcp", "Cluster API to admission webhooks",
            source_security_group_id=cluster_sg.id
        ),
        "node_ingress_pod": create_rule(
            f"{cluster_name}-node-ingress-pod", node_sg.id, "ingress",
            0, 0, "-1", "Pods to nodes",
            source_security_group_id=pod_sg.id
        ),
        "node_egress_all": create_rule(
            f"{cluster_name}-node-egress", node_sg.id, "egress",
            0, 0, "-1", "Node egress"
        ),
        # Pods
        "pod_ingress_self": create_rule(
            f"{cluster_name}-pod-ingress-self", pod_sg.id, "ingress",
            0, 0, "-1", "Pod to pod",
            self_reference=True
        ),
        "pod_ingress_node": create_rule(
            f"{cluster_name}-pod-ingress-node", pod_sg.id, "ingress",
            0, 0, "-1", "Nodes to pods",
            source_security_group_id=node_sg.id
        ),
        "pod_egress_all": create_rule(
            f"{cluster_name}-pod-egress", pod_sg.id, "egress",
            0, 0, "-1", "Pod egress"
        ),
    }

    return {
        "cluster_security_group_id": cluster_sg.id,
        "node_security_group_id": node_sg.id,
        "pod_security_group_id": pod_sg.id,
        # Keep references to resources for dependencies
        "_cluster_sg": cluster_sg,
        "_node_sg": node_sg,
        "_pod_sg": pod_sg,
        "_rules": rules
    }
