"""
State Storage Bootstrap - Pulumi project for the remote state backend
Creates the S3 bucket, DynamoDB lock table and secrets KMS key used by the EKS stack
"""

import pulumi
from autoeks.state_storage import create_state_storage_resources
from autoeks.validation import ConfigValidationError, is_valid_project_name, is_valid_region

# Configuration
config = pulumi.Config()
aws_region = pulumi.Config("aws").get("region") or "us-east-1"
project_name = config.get("project_name") or "eks-auto-mode"
use_kms = config.get_bool("use_kms")
target_stack = config.get("target_stack") or "production"

errors = []
if not is_valid_region(aws_region):
    errors.append("AWS region must be a valid region format (e.g., us-east-1, eu-west-2).")
if not is_valid_project_name(project_name):
    errors.append("Project name must contain only lowercase letters, numbers and hyphens (max 32 characters).")
if errors:
    for message in errors:
        pulumi.log.error(message)
    raise ConfigValidationError(errors)

tags = {
    "Project": project_name,
    "ManagedBy": "pulumi",
    "Purpose": "state-storage-bootstrap"
}

state = create_state_storage_resources(
    project_name=project_name,
    aws_region=aws_region,
    use_kms=True if use_kms is None else use_kms,
    stack=target_stack,
    tags=tags
)

# Exports
pulumi.export("bucket_name", state["bucket_name_output"])
pulumi.export("dynamodb_table_name", state["dynamodb_table_name_output"])
pulumi.export("kms_key_arn", state["kms_key_arn"])
pulumi.export("backend_config", state["backend_config"])
pulumi.export("backend_configuration_commands", state["configuration_commands"])
