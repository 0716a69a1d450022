"""Fixed shell query templates.

Only lookups that must pipe through a filter (jq, grep) go through the shell,
and only through one of these templates. Every parameter is shell-quoted.
"""

import re
import shlex
from string import Formatter
from typing import Dict

from rosadr.errors import DRError

QUERY_TEMPLATES: Dict[str, str] = {
    "management_cluster_href": (
        "ocm get /api/osd_fleet_mgmt/v1/management_clusters --parameter search={search}"
        " | jq -r '.items[].cluster_management_reference.href'"
    ),
    "oidc_endpoint_url": "ocm get {href} | jq -r '.aws.sts.oidc_endpoint_url'",
    "oidc_provider_arn": (
        "aws iam list-open-id-connect-providers --output json"
        " | jq -r '.OpenIDConnectProviderList[].Arn'"
        " | {{ grep -F -- {match} || true; }}"
    ),
}

# Values embedded inside an ocm search expression, where quoting alone is not enough.
_SEARCH_IDENTIFIER = re.compile(r"^[A-Za-z0-9._-]+$")


def management_cluster_search(region: str, mc_name: str) -> str:
    for label, value in (("region", region), ("management cluster name", mc_name)):
        if not _SEARCH_IDENTIFIER.match(value or ""):
            raise DRError(f"Invalid {label} for registry search: {value!r}")
    return f"region='{region}' and name='{mc_name}'"


def render_query(name: str, **params: str) -> str:
    if name not in QUERY_TEMPLATES:
        raise KeyError(f"Unknown query template: {name}")

    template = QUERY_TEMPLATES[name]
    expected = {field for _, field, _, _ in Formatter().parse(template) if field}
    if set(params) != expected:
        raise DRError(
            f"Query template '{name}' expects parameters {sorted(expected)}, got {sorted(params)}"
        )

    return template.format(**{key: shlex.quote(str(value)) for key, value in params.items()})
