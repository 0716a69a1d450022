"""Deterministic resource naming shared by provisioning and teardown."""

import re
import uuid

from rosadr.errors import MalformedResponseError

ROLE_NAME_PREFIX = "rosa-hcp-bkp-"
KMS_POLICY_PREFIX = "AllowSSEKMSBackupKey-"
BUCKET_NAME_PREFIX = "rosa-hcp-backup-oadp-"
SCHEDULE_SUFFIX = "-hourly"

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def role_name(mc_name: str, cluster_id: str) -> str:
    return f"{ROLE_NAME_PREFIX}{mc_name}-{cluster_id}"


def kms_policy_name(cluster_id: str) -> str:
    return f"{KMS_POLICY_PREFIX}{cluster_id}"


def schedule_resource_name(cluster_id: str) -> str:
    """Name shared by the hourly Schedule and its BackupStorageLocation."""
    return f"{cluster_id}{SCHEDULE_SUFFIX}"


def generate_bucket_name() -> str:
    # Not derivable later; teardown reads it back from the BackupStorageLocation.
    return f"{BUCKET_NAME_PREFIX}{uuid.uuid4().hex}"


def strip_scheme(url: str) -> str:
    return _SCHEME.sub("", url.strip(), count=1)


def matches_cluster(resource_name: str, cluster_id: str) -> bool:
    return bool(cluster_id) and cluster_id in resource_name


def account_id_from_arn(arn: str) -> str:
    parts = arn.split(":")
    if len(parts) < 6 or not parts[4]:
        raise MalformedResponseError(f"ARN has no account id: {arn}")
    return parts[4]
