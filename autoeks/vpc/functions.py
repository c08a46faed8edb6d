"""
VPC Module Functions
Creates VPC, public/private subnets, NAT gateways, route tables and flow logs for EKS
"""

import json
import pulumi
import pulumi_aws as aws
from typing import Dict, List, Any


def create_vpc(name: str, cidr: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create VPC with DNS settings

    Args:
        name: VPC name
        cidr: VPC CIDR block
        tags: Additional tags

    Returns:
        Dict with vpc resource and outputs
    """
    tags = tags or {}

    vpc = aws.ec2.Vpc(
        f"{name}-vpc",
        cidr_block=cidr,
        enable_dns_hostnames=True,
        enable_dns_support=True,
        tags={
            **tags,
            "Name": f"{name}-vpc",
            f"kubernetes.io/cluster/{name}": "shared",
            "Module": "vpc"
        }
    )

    return {
        "vpc": vpc,
        "vpc_id": vpc.id,
        "vpc_cidr_block": vpc.cidr_block
    }


def create_internet_gateway(name: str, vpc_id: pulumi.Output[str], tags: Dict[str, str] = None) -> Dict[str, Any]:
    tags = tags or {}

    igw = aws.ec2.InternetGateway(
        f"{name}-igw",
        vpc_id=vpc_id,
        tags={
            **tags,
            "Name": f"{name}-igw",
            "Module": "vpc"
        }
    )

    return {
        "igw": igw,
        "igw_id": igw.id
    }


def create_subnets(name: str, vpc_id: pulumi.Output[str], subnet_cidrs: List[str],
                   availability_zones: List[str], public: bool,
                   tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create one subnet per availability zone

    Public subnets carry the ELB role tag and map public IPs; private subnets
    carry the internal-ELB role tag used by Auto Mode load balancing.

    Args:
        name: Resource name prefix (cluster name)
        vpc_id: VPC ID
        subnet_cidrs: List of CIDR blocks, one per availability zone
        availability_zones: List of availability zones
        public: Create public subnets when True, private otherwise
        tags: Additional tags

    Returns:
        Dict with subnet resources and outputs
    """
    tags = tags or {}
    kind = "public" if public else "private"
    role_tag = "kubernetes.io/role/elb" if public else "kubernetes.io/role/internal-elb"

    subnets = []
    for i, cidr in enumerate(subnet_cidrs):
        subnet = aws.ec2.Subnet(
            f"{name}-{kind}-subnet-{i+1}",
            vpc_id=vpc_id,
            cidr_block=cidr,
            availability_zone=availability_zones[i],
            map_public_ip_on_launch=public,
            tags={
                **tags,
                "Name": f"{name}-{kind}-subnet-{i+1}",
                "Type": kind,
                f"kubernetes.io/cluster/{name}": "shared",
                role_tag: "1",
                "Module": "vpc"
            }
        )
        subnets.append(subnet)

    return {
        "subnets": subnets,
        "subnet_ids": [subnet.id for subnet in subnets],
        "availability_zones": availability_zones
    }


def create_nat_gateways(name: str, public_subnet_ids: List[pulumi.Output[str]], count: int,
                        igw=None, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create NAT gateways with their Elastic IPs in the public subnets

    Args:
        name: Resource name prefix
        public_subnet_ids: Public subnet IDs, the i-th gateway goes in the i-th subnet
        count: Number of gateways (0, 1 or one per availability zone)
        igw: Internet gateway the gateways depend on
        tags: Additional tags

    Returns:
        Dict with NAT gateway resources and outputs
    """
    tags = tags or {}
    opts = pulumi.ResourceOptions(depends_on=[igw]) if igw is not None else None

    eips = []
    nat_gateways = []
    for i in range(count):
        eip = aws.ec2.Eip(
            f"{name}-nat-eip-{i+1}",
            domain="vpc",
            tags={
                **tags,
                "Name": f"{name}-nat-eip-{i+1}",
                "Module": "vpc"
            },
            opts=opts
        )
        nat_gateway = aws.ec2.NatGateway(
            f"{name}-nat-{i+1}",
            allocation_id=eip.id,
            subnet_id=public_subnet_ids[i],
            tags={
                **tags,
                "Name": f"{name}-nat-{i+1}",
                "Module": "vpc"
            },
            opts=opts
        )
        eips.append(eip)
        nat_gateways.append(nat_gateway)

    return {
        "eips": eips,
        "nat_gateways": nat_gateways,
        "nat_gateway_ids": [nat.id for nat in nat_gateways],
        "nat_public_ips": [eip.public_ip for eip in eips]
    }


def create_public_route_tables(name: str, vpc_id: pulumi.Output[str], igw_id: pulumi.Output[str],
                               subnet_ids: List[pulumi.Output[str]], tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create one route table per public subnet, each routing 0.0.0.0/0 to the internet gateway

    Args:
        name: Resource name prefix
        vpc_id: VPC ID
        igw_id: Internet Gateway ID
        subnet_ids: Public subnet IDs
        tags: Additional tags

    Returns:
        Dict with route table resources and outputs
    """
    tags = tags or {}

    route_tables = []
    routes = []
    associations = []
    for i, subnet_id in enumerate(subnet_ids):
        route_table = aws.ec2.RouteTable(
            f"{name}-public-rt-{i+1}",
            vpc_id=vpc_id,
            tags={
                **tags,
                "Name": f"{name}-public-rt-{i+1}",
                "Module": "vpc"
            }
        )
        route_tables.append(route_table)

        routes.append(aws.ec2.Route(
            f"{name}-public-route-{i+1}",
            route_table_id=route_table.id,
            destination_cidr_block="0.0.0.0/0",
            gateway_id=igw_id
        ))

        associations.append(aws.ec2.RouteTableAssociation(
            f"{name}-public-rta-{i+1}",
            subnet_id=subnet_id,
            route_table_id=route_table.id
        ))

    return {
        "route_tables": route_tables,
        "routes": routes,
        "associations": associations,
        "route_table_ids": [rt.id for rt in route_tables]
    }


def create_private_route_tables(name: str, vpc_id: pulumi.Output[str], subnet_ids: List[pulumi.Output[str]],
                                nat_gateway_ids: List[pulumi.Output[str]],
                                tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create one route table per private subnet

    Each table sends 0.0.0.0/0 to the NAT gateway of the same availability zone,
    or to the single NAT gateway. Without NAT gateways the tables stay local-only.

    Args:
        name: Resource name prefix
        vpc_id: VPC ID
        subnet_ids: Private subnet IDs
        nat_gateway_ids: NAT gateway IDs (empty, one, or one per subnet)
        tags: Additional tags

    Returns:
        Dict with route table resources and outputs
    """
    tags = tags or {}

    route_tables = []
    routes = []
    associations = []
    for i, subnet_id in enumerate(subnet_ids):
        route_table = aws.ec2.RouteTable(
            f"{name}-private-rt-{i+1}",
            vpc_id=vpc_id,
            tags={
                **tags,
                "Name": f"{name}-private-rt-{i+1}",
                "Module": "vpc"
            }
        )
        route_tables.append(route_table)

        if nat_gateway_ids:
            routes.append(aws.ec2.Route(
                f"{name}-private-route-{i+1}",
                route_table_id=route_table.id,
                destination_cidr_block="0.0.0.0/0",
                nat_gateway_id=nat_gateway_ids[i % len(nat_gateway_ids)]
            ))

        associations.append(aws.ec2.RouteTableAssociation(
            f"{name}-private-rta-{i+1}",
            subnet_id=subnet_id,
            route_table_id=route_table.id
        ))

    return {
        "route_tables": route_tables,
        "routes": routes,
        "associations": associations,
        "route_table_ids": [rt.id for rt in route_tables]
    }


def create_flow_logs(name: str, vpc_id: pulumi.Output[str], retention_days: int = 30,
                     kms_key_arn: pulumi.Output[str] = None, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Send VPC flow logs to CloudWatch Logs

    Args:
        name: Resource name prefix
        vpc_id: VPC ID
        retention_days: Log retention in days
        kms_key_arn: Optional KMS key for log group encryption
        tags: Additional tags

    Returns:
        Dict with flow log resources and outputs
    """
    tags = tags or {}

    log_group = aws.cloudwatch.LogGroup(
        f"{name}-flow-logs",
        name=f"/aws/vpc/{name}/flow-logs",
        retention_in_days=retention_days,
        kms_key_id=kms_key_arn,
        tags={
            **tags,
            "Name": f"{name}-flow-logs",
            "Module": "vpc"
        }
    )

    role = aws.iam.Role(
        f"{name}-flow-logs-role",
        name=f"{name}-flow-logs-role",
        assume_role_policy=json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Action": "sts:AssumeRole",
                "Effect": "Allow",
                "Principal": {"Service": "vpc-flow-logs.amazonaws.com"}
            }]
        }),
        tags={
            **tags,
            "Name": f"{name}-flow-logs-role",
            "Module": "vpc"
        }
    )

    role_policy = aws.iam.RolePolicy(
        f"{name}-flow-logs-policy",
        role=role.id,
        policy=log_group.arn.apply(lambda arn: json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Effect": "Allow",
                "Action": [
                    "logs:CreateLogStream",
                    "logs:PutLogEvents",
                    "logs:DescribeLogGroups",
                    "logs:DescribeLogStreams"
                ],
                "Resource": [arn, f"{arn}:*"]
            }]
        }))
    )

    flow_log = aws.ec2.FlowLog(
        f"{name}-flow-log",
        vpc_id=vpc_id,
        traffic_type="ALL",
        log_destination_type="cloud-watch-logs",
        log_destination=log_group.arn,
        iam_role_arn=role.arn,
        max_aggregation_interval=60,
        tags={
            **tags,
            "Name": f"{name}-flow-log",
            "Module": "vpc"
        }
    )

    return {
        "log_group": log_group,
        "role": role,
        "role_policy": role_policy,
        "flow_log": flow_log,
        "log_group_name": log_group.name,
        "role_arn": role.arn
    }


def create_vpc_resources(cluster_name: str, vpc_cidr: str, availability_zones: List[str],
                         private_subnet_cidrs: List[str], public_subnet_cidrs: List[str],
                         enable_nat_gateway: bool = True, single_nat_gateway: bool = False,
                         enable_flow_logs: bool = True, flow_logs_retention_days: int = 30,
                         kms_key_arn: pulumi.Output[str] = None,
                         tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create complete VPC infrastructure for EKS

    Args:
        cluster_name: EKS cluster name
        vpc_cidr: VPC CIDR block
        availability_zones: Availability zones, one public and one private subnet each
        private_subnet_cidrs: Private subnet CIDR blocks
        public_subnet_cidrs: Public subnet CIDR blocks
        enable_nat_gateway: Give private subnets internet egress through NAT
        single_nat_gateway: Share one NAT gateway across all availability zones
        enable_flow_logs: Capture VPC flow logs in CloudWatch
        flow_logs_retention_days: Flow log retention in days
        kms_key_arn: Optional KMS key for the flow log group
        tags: Additional tags for all resources

    Returns:
        Dict with all VPC resources and outputs
    """
    tags = tags or {}
    pulumi.log.info(f"Declaring VPC {vpc_cidr} across {len(availability_zones)} availability zones")

    vpc_result = create_vpc(cluster_name, vpc_cidr, tags)

    igw_result = create_internet_gateway(cluster_name, vpc_result["vpc_id"], tags)

    public_result = create_subnets(
        cluster_name,
        vpc_result["vpc_id"],
        public_subnet_cidrs,
        availability_zones,
        public=True,
        tags=tags
    )

    private_result = create_subnets(
        cluster_name,
        vpc_result["vpc_id"],
        private_subnet_cidrs,
        availability_zones,
        public=False,
        tags=tags
    )

    if not enable_nat_gateway:
        nat_count = 0
    elif single_nat_gateway:
        nat_count = 1
    else:
        nat_count = len(availability_zones)

    nat_result = create_nat_gateways(
        cluster_name,
        public_result["subnet_ids"],
        nat_count,
        igw=igw_result["igw"],
        tags=tags
    )

    public_rt_result = create_public_route_tables(
        cluster_name,
        vpc_result["vpc_id"],
        igw_result["igw_id"],
        public_result["subnet_ids"],
        tags
    )

    private_rt_result = create_private_route_tables(
        cluster_name,
        vpc_result["vpc_id"],
        private_result["subnet_ids"],
        nat_result["nat_gateway_ids"],
        tags
    )

    flow_logs_result = None
    if enable_flow_logs:
        flow_logs_result = create_flow_logs(
            cluster_name,
            vpc_result["vpc_id"],
            flow_logs_retention_days,
            kms_key_arn,
            tags
        )

    return {
        "vpc_id": vpc_result["vpc_id"],
        "vpc_cidr_block": vpc_result["vpc_cidr_block"],
        "public_subnet_ids": public_result["subnet_ids"],
        "private_subnet_ids": private_result["subnet_ids"],
        "availability_zones": availability_zones,
        "nat_gateway_ids": nat_result["nat_gateway_ids"],
        "nat_public_ips": nat_result["nat_public_ips"],
        "flow_logs_log_group_name": flow_logs_result["log_group_name"] if flow_logs_result else None,
        "flow_logs_role_arn": flow_logs_result["role_arn"] if flow_logs_result else None,
        # Keep references to all resources for dependencies
        "_vpc": vpc_result["vpc"],
        "_igw": igw_result["igw"],
        "_public_subnets": public_result["subnets"],
        "_private_subnets": private_result["subnets"],
        "_nat_gateways": nat_result["nat_gateways"],
        "_public_route_tables": public_rt_result["route_tables"],
        "_private_route_tables": private_rt_result["route_tables"],
        "_flow_logs": flow_logs_result
    }
