"""
State Storage Module Functions
Creates the encrypted S3 bucket and DynamoDB lock table backing remote Pulumi state
"""

import json
import pulumi
import pulumi_aws as aws
from typing import Dict, List, Any


def state_bucket_name(project_name: str, aws_region: str) -> str:
    """Bucket name, suffixed with the region for global uniqueness"""
    return f"{project_name}-pulumi-state-{aws_region}"


def lock_table_name(project_name: str) -> str:
    return f"{project_name}-pulumi-state-lock"


def backend_url(bucket_name: str, aws_region: str) -> str:
    return f"s3://{bucket_name}?region={aws_region}"


def create_state_kms_key(name: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create KMS key used for state bucket encryption and as Pulumi secrets provider

    Args:
        name: Resource name prefix
        tags: Additional tags

    Returns:
        Dict with key resources and outputs
    """
    tags = tags or {}

    key = aws.kms.Key(
        f"{name}-state-kms-key",
        description=f"Pulumi state and secrets encryption for {name}",
        deletion_window_in_days=30,
        enable_key_rotation=True,
        tags={
            **tags,
            "Name": f"{name}-state-kms-key",
            "Module": "state-storage"
        }
    )

    alias = aws.kms.Alias(
        f"{name}-state-kms-alias",
        name=f"alias/{name}-pulumi-secrets",
        target_key_id=key.key_id
    )

    return {
        "key": key,
        "alias": alias,
        "key_arn": key.arn,
        "alias_name": f"alias/{name}-pulumi-secrets"
    }


def create_s3_bucket(name: str, bucket_name: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    tags = tags or {}

    bucket = aws.s3.Bucket(
        f"{name}-pulumi-state-bucket",
        bucket=bucket_name,
        tags={
            **tags,
            "Name": f"{name}-pulumi-state",
            "Purpose": "Pulumi state storage",
            "Module": "state-storage"
        },
        opts=pulumi.ResourceOptions(protect=True)
    )

    return {
        "bucket": bucket,
        "bucket_id": bucket.id,
        "bucket_arn": bucket.arn,
        "bucket_name": bucket_name
    }


def configure_s3_bucket_settings(name: str, bucket_id: pulumi.Output[str], bucket_arn: pulumi.Output[str],
                                 kms_key_arn: pulumi.Output[str] = None) -> Dict[str, Any]:
    """
    Configure S3 bucket settings for state storage

    Versioning, server-side encryption (KMS when a key is given, AES256
    otherwise), public access block, TLS-only bucket policy and a lifecycle
    rule expiring old state versions.

    Args:
        name: Resource name prefix
        bucket_id: S3 bucket ID
        bucket_arn: S3 bucket ARN
        kms_key_arn: Optional KMS key ARN

    Returns:
        Dict with bucket configuration resources
    """
    versioning = aws.s3.BucketVersioning(
        f"{name}-state-bucket-versioning",
        bucket=bucket_id,
        versioning_configuration=aws.s3.BucketVersioningVersioningConfigurationArgs(
            status="Enabled"
        )
    )

    if kms_key_arn is not None:
        encryption_default = aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
            sse_algorithm="aws:kms",
            kms_master_key_id=kms_key_arn
        )
    else:
        encryption_default = aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
            sse_algorithm="AES256"
        )

    encryption = aws.s3.BucketServerSideEncryptionConfiguration(
        f"{name}-state-bucket-encryption",
        bucket=bucket_id,
        rules=[
            aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                apply_server_side_encryption_by_default=encryption_default,
                bucket_key_enabled=True
            )
        ]
    )

    public_access_block = aws.s3.BucketPublicAccessBlock(
        f"{name}-state-bucket-pab",
        bucket=bucket_id,
        block_public_acls=True,
        block_public_policy=True,
        ignore_public_acls=True,
        restrict_public_buckets=True
    )

    tls_policy = aws.s3.BucketPolicy(
        f"{name}-state-bucket-tls-policy",
        bucket=bucket_id,
        policy=bucket_arn.apply(lambda arn: json.dumps({
            "Version": "2012-10-17",
            "Statement": [{
                "Sid": "DenyInsecureTransport",
                "Effect": "Deny",
                "Principal": "*",
                "Action": "s3:*",
                "Resource": [arn, f"{arn}/*"],
                "Condition": {"Bool": {"aws:SecureTransport": "false"}}
            }]
        })),
        opts=pulumi.ResourceOptions(depends_on=[public_access_block])
    )

    lifecycle = aws.s3.BucketLifecycleConfiguration(
        f"{name}-state-bucket-lifecycle",
        bucket=bucket_id,
        rules=[
            aws.s3.BucketLifecycleConfigurationRuleArgs(
                id="state_lifecycle",
                status="Enabled",
                filter=aws.s3.BucketLifecycleConfigurationRuleFilterArgs(
                    prefix=""
                ),
                noncurrent_version_expiration=aws.s3.BucketLifecycleConfigurationRuleNoncurrentVersionExpirationArgs(
                    noncurrent_days=90
                ),
                abort_incomplete_multipart_upload=aws.s3.BucketLifecycleConfigurationRuleAbortIncompleteMultipartUploadArgs(
                    days_after_initiation=1
                )
            )
        ]
    )

    return {
        "versioning": versioning,
        "encryption": encryption,
        "public_access_block": public_access_block,
        "tls_policy": tls_policy,
        "lifecycle": lifecycle
    }


def create_dynamodb_table(name: str, table_name: str, tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create DynamoDB table for state locking

    Args:
        name: Resource name prefix
        table_name: DynamoDB table name
        tags: Additional tags

    Returns:
        Dict with table resource and outputs
    """
    tags = tags or {}

    table = aws.dynamodb.Table(
        f"{name}-pulumi-state-lock-table",
        name=table_name,
        billing_mode="PAY_PER_REQUEST",
        hash_key="LockID",
        attributes=[
            aws.dynamodb.TableAttributeArgs(
                name="LockID",
                type="S"
            )
        ],
        server_side_encryption=aws.dynamodb.TableServerSideEncryptionArgs(
            enabled=True
        ),
        point_in_time_recovery=aws.dynamodb.TablePointInTimeRecoveryArgs(
            enabled=True
        ),
        tags={
            **tags,
            "Name": f"{name}-pulumi-state-lock",
            "Purpose": "Pulumi state locking",
            "Module": "state-storage"
        }
    )

    return {
        "table": table,
        "table_name": table.name,
        "table_arn": table.arn
    }


def get_backend_configuration_commands(bucket_name: str, aws_region: str, kms_alias: str = None,
                                       stack: str = "production") -> List[str]:
    """
    Get commands to point the EKS project at the remote backend

    Args:
        bucket_name: S3 bucket name
        aws_region: AWS region
        kms_alias: KMS alias used as secrets provider, None for passphrase secrets
        stack: Stack to create

    Returns:
        List of configuration commands
    """
    secrets_provider = f"awskms://{kms_alias}?region={aws_region}" if kms_alias else "passphrase"
    return [
        "# Configure Pulumi to use the S3 backend:",
        f"pulumi login '{backend_url(bucket_name, aws_region)}'",
        "",
        "# Initialize the stack with encrypted secrets:",
        f"pulumi stack init {stack} --secrets-provider='{secrets_provider}'",
        "",
        "# Set AWS region:",
        f"pulumi config set aws:region {aws_region}",
        "",
        "# Deploy infrastructure:",
        "make plan && make apply",
    ]


def create_state_storage_resources(project_name: str,
                                   aws_region: str,
                                   use_kms: bool = True,
                                   stack: str = "production",
                                   tags: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Create complete state storage infrastructure

    Args:
        project_name: Project name for resource naming
        aws_region: AWS region
        use_kms: Encrypt with a customer managed KMS key instead of AES256
        stack: Stack name used in the configuration commands
        tags: Additional tags for all resources

    Returns:
        Dict with all state storage resources and outputs
    """
    tags = tags or {}

    bucket_name = state_bucket_name(project_name, aws_region)
    dynamodb_table_name = lock_table_name(project_name)
    pulumi.log.info(f"Setting up S3 bucket for state storage: {bucket_name}")

    kms_result = create_state_kms_key(project_name, tags) if use_kms else None

    bucket_result = create_s3_bucket(project_name, bucket_name, tags)

    bucket_config_result = configure_s3_bucket_settings(
        project_name,
        bucket_result["bucket_id"],
        bucket_result["bucket_arn"],
        kms_result["key_arn"] if kms_result else None
    )

    pulumi.log.info(f"Setting up DynamoDB table for state locking: {dynamodb_table_name}")
    table_result = create_dynamodb_table(project_name, dynamodb_table_name, tags)

    backend_config = {
        "backend_type": "s3",
        "bucket": bucket_name,
        "region": aws_region,
        "dynamodb_table": dynamodb_table_name,
        "encrypt": "true",
        "backend_url": backend_url(bucket_name, aws_region)
    }

    return {
        "bucket_name_output": bucket_result["bucket_id"],
        "dynamodb_table_name_output": table_result["table_name"],
        "kms_key_arn": kms_result["key_arn"] if kms_result else None,
        "backend_config": backend_config,
        "configuration_commands": get_backend_configuration_commands(
            bucket_name,
            aws_region,
            kms_result["alias_name"] if kms_result else None,
            stack
        ),
        # Keep references to resources for dependencies
        "_bucket": bucket_result["bucket"],
        "_table": table_result["table"],
        "_bucket_config": bucket_config_result,
        "_kms": kms_result
    }
