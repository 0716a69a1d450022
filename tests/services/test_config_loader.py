from pathlib import Path

import pytest

from rosadr.errors import DRError
from rosadr.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".rosadr.yml"
    config_file.write_text(
        "profile: dr-account\n"
        "namespace: openshift-adp\n"
        "key_admin_principal_arn: arn:aws:iam::123456789012:user/backup-admin\n"
        "reuse_existing_key: true\n",
        encoding="utf-8",
    )

    loader = ConfigLoader()
    loaded = loader.load(str(config_file))

    assert loaded["profile"] == "dr-account"
    assert loaded["namespace"] == "openshift-adp"
    assert loaded["reuse_existing_key"] is True


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".rosadr.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    loader = ConfigLoader()

    with pytest.raises(DRError, match="Unknown configuration keys"):
        loader.load(str(config_file))


def test_config_loader_rejects_non_mapping_root(tmp_path):
    config_file = tmp_path / ".rosadr.yml"
    config_file.write_text("- profile\n", encoding="utf-8")

    with pytest.raises(DRError, match="YAML mapping"):
        ConfigLoader().load(str(config_file))


def test_config_loader_returns_empty_without_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert ConfigLoader().load(None) == {}


def test_config_loader_falls_back_to_default_file(tmp_path, monkeypatch):
    (tmp_path / ".rosadr.yml").write_text("namespace: openshift-adp\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    loader = ConfigLoader()

    assert Path(loader.default_path()).samefile(tmp_path / ".rosadr.yml")
    assert loader.load(None) == {"namespace": "openshift-adp"}


def test_config_loader_default_path_is_none_when_absent(tmp_path):
    assert ConfigLoader().default_path(str(tmp_path)) is None
