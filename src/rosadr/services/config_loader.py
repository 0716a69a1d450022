"""Configuration loader for rosadr."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from rosadr.errors import DRError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    DEFAULT_FILE_NAME = ".rosadr.yml"

    SUPPORTED_KEYS = {
        "profile",
        "namespace",
        "verbose",
        "log_file",
        "report_file",
        "dry_run",
        "key_admin_principal_arn",
        "service_account_subject",
        "baseline_policy_arn",
        "oidc_provider_match",
        "reuse_existing_key",
        "shell",
    }

    def default_path(self, directory: Optional[str] = None) -> Optional[str]:
        """Returns the .rosadr.yml in the given directory (default: cwd), if present."""
        candidate = Path(directory or os.getcwd()) / self.DEFAULT_FILE_NAME
        return str(candidate) if candidate.exists() else None

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            config_path = self.default_path()
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise DRError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DRError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise DRError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise DRError(f"Unknown configuration keys: {unknown_list}")

        return parsed
