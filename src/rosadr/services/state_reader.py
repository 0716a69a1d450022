"""Reads cluster, fleet and cloud state through the command runner."""

import json
from enum import Enum
from typing import List, Optional

from rosadr.errors import EmptyResultError, MalformedResponseError
from rosadr.models import ResourceKind
from rosadr.services.queries import management_cluster_search, render_query


class ExtractRule(Enum):
    FIRST_TOKEN = "first_token"
    STRUCTURED = "structured"
    TRIM = "trim"


# What jq -r and `aws --output text` print for a missing field.
_NULL_LITERALS = {"null", "None"}


def extract_scalar(raw: Optional[str], rule: ExtractRule = ExtractRule.TRIM, what: str = "value") -> str:
    """Reduces raw tool output to a single value.

    The CLIs report "not found" as success with empty output, so an empty
    extraction is the uniform not-found signal and raises EmptyResultError.
    """
    text = raw or ""

    if rule is ExtractRule.FIRST_TOKEN:
        value = ""
        for line in text.splitlines():
            fields = line.split()
            if fields:
                value = fields[0]
                break
    elif rule is ExtractRule.STRUCTURED:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        value = lines[0] if lines else ""
        if value in _NULL_LITERALS:
            value = ""
    else:
        value = text.strip()

    if not value.strip():
        raise EmptyResultError(f"No {what} found in command output.")
    return value.strip()


def parse_bucket_name(raw_json: str) -> str:
    """Reads spec.objectStorage.bucket from a BackupStorageLocation JSON document."""
    try:
        document = json.loads(raw_json or "")
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"BackupStorageLocation is not valid JSON: {exc}") from exc

    bucket = None
    if isinstance(document, dict):
        spec = document.get("spec")
        object_storage = spec.get("objectStorage") if isinstance(spec, dict) else None
        if isinstance(object_storage, dict):
            bucket = object_storage.get("bucket")

    if not isinstance(bucket, str) or not bucket.strip():
        raise MalformedResponseError("BackupStorageLocation has no spec.objectStorage.bucket field.")
    return bucket.strip()


class ExternalStateReader:
    """Typed lookups over oc, ocm, rosa and aws output."""

    def __init__(self, runner, logger):
        self.runner = runner
        self.logger = logger

    # Cluster and fleet registry

    def describe_cluster(self, cluster_name: str) -> str:
        result = self.runner.run(["rosa", "describe", "cluster", f"--cluster={cluster_name}"])
        return result.stdout or ""

    def management_cluster_href(self, region: str, mc_name: str) -> str:
        script = render_query(
            "management_cluster_href",
            search=management_cluster_search(region, mc_name),
        )
        result = self.runner.run_shell(script)
        return extract_scalar(result.stdout, ExtractRule.STRUCTURED, "management cluster href")

    def oidc_endpoint_url(self, href: str) -> str:
        result = self.runner.run_shell(render_query("oidc_endpoint_url", href=href))
        return extract_scalar(result.stdout, ExtractRule.STRUCTURED, "OIDC endpoint URL")

    def oidc_provider_arn(self, match: str) -> str:
        result = self.runner.run_shell(render_query("oidc_provider_arn", match=match))
        return extract_scalar(result.stdout, ExtractRule.FIRST_TOKEN, "OIDC provider ARN")

    # IAM and KMS

    def role_arn(self, role_name: str) -> str:
        result = self.runner.run(
            [
                "aws",
                "iam",
                "get-role",
                "--role-name",
                role_name,
                "--query",
                "Role.Arn",
                "--output",
                "text",
            ]
        )
        return extract_scalar(result.stdout, ExtractRule.STRUCTURED, f"ARN for role {role_name}")

    def policy_arn(self, policy_name: str) -> str:
        result = self.runner.run(
            [
                "aws",
                "iam",
                "list-policies",
                "--scope",
                "Local",
                "--query",
                f"Policies[?PolicyName=='{policy_name}'].Arn",
                "--output",
                "text",
            ]
        )
        return extract_scalar(result.stdout, ExtractRule.FIRST_TOKEN, f"ARN for policy {policy_name}")

    def attached_policy_arns(self, role_name: str) -> List[str]:
        result = self.runner.run(
            [
                "aws",
                "iam",
                "list-attached-role-policies",
                "--role-name",
                role_name,
                "--query",
                "AttachedPolicies[].PolicyArn",
                "--output",
                "text",
            ]
        )
        return [token for token in (result.stdout or "").split() if token not in _NULL_LITERALS]

    def key_arn_by_cluster_tag(self, cluster_id: str, region: str) -> str:
        result = self.runner.run(
            [
                "aws",
                "resourcegroupstaggingapi",
                "get-resources",
                "--resource-type-filters",
                "kms:key",
                "--tag-filters",
                f"Key=cluster,Values={cluster_id}",
                "--region",
                region,
                "--query",
                "ResourceTagMappingList[].ResourceARN",
                "--output",
                "text",
            ]
        )
        return extract_scalar(result.stdout, ExtractRule.FIRST_TOKEN, f"KMS key tagged cluster={cluster_id}")

    # Cluster-managed resources

    @staticmethod
    def _oc(args: List[str], namespace: Optional[str]) -> List[str]:
        cmd = ["oc"] + args
        if namespace:
            cmd.extend(["-n", namespace])
        return cmd

    def list_resource_names(self, kind: ResourceKind, namespace: Optional[str] = None) -> List[str]:
        result = self.runner.run(self._oc(["get", kind.cli_name, "--no-headers"], namespace))
        names = []
        for line in (result.stdout or "").splitlines():
            fields = line.split()
            if fields:
                names.append(fields[0])
        return names

    def get_resource_name(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> str:
        result = self.runner.run(self._oc(["get", kind.cli_name, name, "--no-headers"], namespace))
        return extract_scalar(result.stdout, ExtractRule.FIRST_TOKEN, f"{kind.manifest_kind} {name}")

    def bucket_name_from_bsl(self, name: str, namespace: Optional[str] = None) -> str:
        result = self.runner.run(
            self._oc(["get", ResourceKind.BACKUP_STORAGE_LOCATION.cli_name, name, "-o", "json"], namespace)
        )
        return parse_bucket_name(result.stdout)
