"""Shared domain models for rosadr."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from rosadr.errors import EmptyResultError
from rosadr.services import naming

DEFAULT_SERVICE_ACCOUNT_SUBJECT = "system:serviceaccount:openshift-adp:velero"
DEFAULT_BASELINE_POLICY_ARN = "arn:aws:iam::aws:policy/AmazonS3FullAccess"


@dataclass(frozen=True)
class ClusterContext:
    """Identifies the cluster a single run acts on."""

    cluster_id: str
    cluster_name: str
    cluster_env: str
    mc_name: str
    cloud_profile: str
    cloud_region: str


@dataclass(frozen=True)
class OIDCTrust:
    issuer_url: str
    issuer_host_path: str
    provider_arn: str

    @classmethod
    def build(cls, issuer_url: str, issuer_host_path: str, provider_arn: str) -> "OIDCTrust":
        missing = [
            label
            for label, value in (
                ("issuer_url", issuer_url),
                ("issuer_host_path", issuer_host_path),
                ("provider_arn", provider_arn),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise EmptyResultError(f"Incomplete OIDC trust, missing: {', '.join(missing)}")
        return cls(
            issuer_url=issuer_url.strip(),
            issuer_host_path=issuer_host_path.strip(),
            provider_arn=provider_arn.strip(),
        )


@dataclass(frozen=True)
class IAMRole:
    name: str
    arn: str
    attached_policy_arns: Tuple[str, ...] = ()
    trust_policy: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ObjectStorageBucket:
    name: str
    region: str


@dataclass(frozen=True)
class EncryptionKey:
    arn: str
    companion_policy_name: str
    key_policy: Optional[Dict[str, Any]] = None


class ResourceKind(Enum):
    """Backup-related cluster resources handled during teardown."""

    BACKUP_STORAGE_LOCATION = ("bsl", "BackupStorageLocation", True)
    SCHEDULE = ("schedule", "Schedule", True)
    BACKUP = ("backup", "Backup", False)
    SECRET = ("secret", "Secret", False)
    BACKUP_REPOSITORY = ("backuprepository", "BackupRepository", False)

    def __init__(self, cli_name: str, manifest_kind: str, deterministic_name: bool):
        self.cli_name = cli_name
        self.manifest_kind = manifest_kind
        self.deterministic_name = deterministic_name

    @classmethod
    def teardown_order(cls) -> Tuple["ResourceKind", ...]:
        return (
            cls.BACKUP_STORAGE_LOCATION,
            cls.SCHEDULE,
            cls.BACKUP,
            cls.SECRET,
            cls.BACKUP_REPOSITORY,
        )


@dataclass(frozen=True)
class ClusterManagedResource:
    kind: ResourceKind
    name: str


@dataclass(frozen=True)
class ProvisioningSettings:
    """Operator-tunable inputs for the provisioning pipeline."""

    service_account_subject: str = DEFAULT_SERVICE_ACCOUNT_SUBJECT
    baseline_policy_arn: str = DEFAULT_BASELINE_POLICY_ARN
    key_admin_principal_arn: Optional[str] = None
    oidc_provider_match: Optional[str] = None
    reuse_existing_key: bool = False


@dataclass(frozen=True)
class TeardownTarget:
    """What teardown removes on the cloud side."""

    role_name: str
    bucket_name: Optional[str] = None
    cluster_id: Optional[str] = None

    @classmethod
    def for_cluster(cls, cluster_id: str, mc_name: str) -> "TeardownTarget":
        return cls(role_name=naming.role_name(mc_name, cluster_id), cluster_id=cluster_id)


@dataclass
class StepOutcome:
    name: str
    policy: str
    status: str
    error: Optional[str] = None
    details: dict = field(default_factory=dict)
