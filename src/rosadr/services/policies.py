"""IAM and KMS policy documents."""

import json
from typing import Any, Dict, Optional

from rosadr.services.naming import account_id_from_arn

POLICY_VERSION = "2012-10-17"
KEY_USER_ACTIONS = [
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:GenerateDataKey",
    "kms:DescribeKey",
]


def trust_policy(provider_arn: str, issuer_host_path: str, subject: str) -> Dict[str, Any]:
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Federated": provider_arn},
                "Action": ["sts:AssumeRoleWithWebIdentity"],
                "Condition": {"StringEquals": {f"{issuer_host_path}:sub": subject}},
            }
        ],
    }


def key_policy(role_arn: str, admin_principal_arn: Optional[str] = None) -> Dict[str, Any]:
    """Key policy for the backup key.

    The account root keeps key administration so the policy can be changed
    later. A named administrator is granted full access only when one is given.
    """
    account_id = account_id_from_arn(role_arn)
    statements = [
        {
            "Sid": "EnableAccountAdministration",
            "Effect": "Allow",
            "Principal": {"AWS": f"arn:aws:iam::{account_id}:root"},
            "Action": "kms:*",
            "Resource": "*",
        },
        {
            "Sid": "AllowClusterRoleAccess",
            "Effect": "Allow",
            "Principal": {"AWS": role_arn},
            "Action": list(KEY_USER_ACTIONS),
            "Resource": "*",
        },
    ]
    if admin_principal_arn:
        statements.append(
            {
                "Sid": "AllowKeyAdministratorFullAccess",
                "Effect": "Allow",
                "Principal": {"AWS": "*"},
                "Action": "kms:*",
                "Resource": "*",
                "Condition": {"StringEquals": {"aws:PrincipalArn": admin_principal_arn}},
            }
        )
    return {"Version": POLICY_VERSION, "Statement": statements}


def companion_policy(key_arn: str) -> Dict[str, Any]:
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": list(KEY_USER_ACTIONS),
                "Resource": key_arn,
            }
        ],
    }


def render(document: Dict[str, Any]) -> str:
    return json.dumps(document, separators=(",", ":"))
