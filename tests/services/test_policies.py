import json

from rosadr.services import policies

ROLE_ARN = "arn:aws:iam::123456789012:role/rosa-hcp-bkp-hs-mc-1-abc123"


def test_trust_policy_scopes_web_identity_to_service_account():
    document = policies.trust_policy(
        "arn:aws:iam::123456789012:oidc-provider/oidc.example/abc",
        "oidc.example/abc",
        "system:serviceaccount:openshift-adp:velero",
    )

    statement = document["Statement"][0]
    assert statement["Action"] == ["sts:AssumeRoleWithWebIdentity"]
    assert statement["Principal"]["Federated"].endswith("oidc-provider/oidc.example/abc")
    assert statement["Condition"] == {
        "StringEquals": {"oidc.example/abc:sub": "system:serviceaccount:openshift-adp:velero"}
    }


def test_key_policy_grants_role_and_account_root_only_by_default():
    document = policies.key_policy(ROLE_ARN)

    sids = [statement["Sid"] for statement in document["Statement"]]
    assert sids == ["EnableAccountAdministration", "AllowClusterRoleAccess"]
    assert document["Statement"][0]["Principal"]["AWS"] == "arn:aws:iam::123456789012:root"
    assert document["Statement"][1]["Principal"]["AWS"] == ROLE_ARN
    assert "aws:PrincipalArn" not in json.dumps(document)


def test_key_policy_adds_admin_grant_when_configured():
    admin = "arn:aws:iam::123456789012:user/backup-admin"
    document = policies.key_policy(ROLE_ARN, admin)

    admin_statement = document["Statement"][-1]
    assert admin_statement["Action"] == "kms:*"
    assert admin_statement["Condition"]["StringEquals"]["aws:PrincipalArn"] == admin


def test_companion_policy_mirrors_key_permissions():
    key_arn = "arn:aws:kms:us-west-2:123456789012:key/k1"
    rendered = policies.render(policies.companion_policy(key_arn))

    document = json.loads(rendered)
    assert document["Statement"][0]["Resource"] == key_arn
    assert document["Statement"][0]["Action"] == policies.KEY_USER_ACTIONS
