"""Actionable error catalog for rosadr."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "command_not_found": {
        "what": "Required command not found: {program}.",
        "next": "Install `{program}` and make sure it is on PATH before retrying.",
    },
    "management_cluster_not_found": {
        "what": "Management cluster '{mc_name}' was not found in region {region}.",
        "next": "Check the name with `ocm get /api/osd_fleet_mgmt/v1/management_clusters` and your `ocm login`.",
    },
    "oidc_issuer_not_found": {
        "what": "Management cluster '{mc_name}' has no OIDC endpoint URL.",
        "next": "Verify the management cluster is STS-enabled and retry.",
    },
    "oidc_provider_not_found": {
        "what": "No OIDC provider matching '{match}' is registered in the AWS account.",
        "next": "Check the active AWS profile or set `oidc_provider_match` in the config file.",
    },
    "role_arn_not_found": {
        "what": "Could not resolve the ARN of IAM role '{role_name}'.",
        "next": "Run `aws iam get-role --role-name {role_name}` to inspect the role.",
    },
    "policy_arn_not_found": {
        "what": "Could not resolve the ARN of IAM policy '{policy_name}'.",
        "next": "Run `aws iam list-policies --scope Local` and check the policy exists.",
    },
    "key_arn_not_returned": {
        "what": "KMS key creation returned no ARN for cluster {cluster_id}.",
        "next": "Inspect the key in the KMS console; delete it if it is unusable and rerun.",
    },
    "bucket_not_discoverable": {
        "what": "Could not read the backup bucket from BackupStorageLocation '{name}'.",
        "next": "Pass the bucket name explicitly with `teardown-from-manifest` or restore the BSL.",
    },
    "bsl_not_found": {
        "what": "No BackupStorageLocation was resolved for this cluster.",
        "next": "Check `oc get bsl` in the backup namespace, or pass the bucket name explicitly.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
