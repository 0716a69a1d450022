from click.testing import CliRunner

import rosadr.cli as cli_module
from rosadr.core import PipelineResult
from rosadr.services.name_resolver import LiveNameResolver, ManifestNameResolver

PROVISION_ARGS = ["provision", "abc123", "my-rosa-cluster", "john.doe", "hs-mc-1", "dr-account", "us-west-2"]


def _fake_pipeline(captured, status="success"):
    class FakePipeline:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return PipelineResult(pipeline="fake", status=status)

    return FakePipeline


def test_provision_builds_context_from_arguments(monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(cli_module.main, PROVISION_ARGS)

    assert result.exit_code == 0
    context = captured["context"]
    assert context.cluster_id == "abc123"
    assert context.mc_name == "hs-mc-1"
    assert context.cloud_region == "us-west-2"
    assert captured["runner"].env == {"AWS_PROFILE": "dr-account"}
    assert captured["settings"].key_admin_principal_arn is None
    assert captured["dry_run"] is False


def test_provision_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / ".rosadr.yml"
    config_file.write_text(
        "key_admin_principal_arn: arn:aws:iam::123456789012:user/config-admin\n"
        "oidc_provider_match: oidc.example\n"
        "reuse_existing_key: true\n"
        "dry_run: true\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(
        cli_module.main,
        PROVISION_ARGS
        + [
            "--config",
            str(config_file),
            "--key-admin-principal",
            "arn:aws:iam::123456789012:user/cli-admin",
        ],
    )

    assert result.exit_code == 0
    settings = captured["settings"]
    assert settings.key_admin_principal_arn == "arn:aws:iam::123456789012:user/cli-admin"
    assert settings.oidc_provider_match == "oidc.example"
    assert settings.reuse_existing_key is True
    assert captured["dry_run"] is True


def test_provision_uses_default_config_file_when_present(tmp_path, monkeypatch):
    (tmp_path / ".rosadr.yml").write_text("report_file: reports/provision.json\n", encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, PROVISION_ARGS)

    assert result.exit_code == 0
    assert captured["report_file"] == "reports/provision.json"


def test_unknown_config_key_is_reported(tmp_path, monkeypatch):
    config_file = tmp_path / "bad.yml"
    config_file.write_text("bucket_prefix: custom\n", encoding="utf-8")
    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline({}))

    result = CliRunner().invoke(cli_module.main, PROVISION_ARGS + ["--config", str(config_file)])

    assert result.exit_code == 1
    assert "Unknown configuration keys: bucket_prefix" in result.output


def test_exit_code_follows_pipeline_status(monkeypatch):
    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline({}, status="partial"))
    assert CliRunner().invoke(cli_module.main, PROVISION_ARGS).exit_code == 2

    monkeypatch.setattr(cli_module, "ProvisioningPipeline", _fake_pipeline({}, status="failed"))
    assert CliRunner().invoke(cli_module.main, PROVISION_ARGS).exit_code == 1


def test_teardown_uses_live_resolver(monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "TeardownPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["teardown", "abc123", "hs-mc-1", "--profile", "dr-account", "--namespace", "openshift-adp"],
    )

    assert result.exit_code == 0
    assert captured["target"].role_name == "rosa-hcp-bkp-hs-mc-1-abc123"
    assert captured["target"].bucket_name is None
    assert isinstance(captured["resolver"], LiveNameResolver)
    assert captured["resolver"].namespace == "openshift-adp"
    assert captured["namespace"] == "openshift-adp"
    assert captured["runner"].env == {"AWS_PROFILE": "dr-account"}


def test_teardown_profile_can_come_from_config(tmp_path, monkeypatch):
    config_file = tmp_path / ".rosadr.yml"
    config_file.write_text("profile: config-profile\nnamespace: openshift-adp\n", encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "TeardownPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(
        cli_module.main, ["teardown", "abc123", "hs-mc-1", "--config", str(config_file)]
    )

    assert result.exit_code == 0
    assert captured["runner"].env == {"AWS_PROFILE": "config-profile"}
    assert captured["namespace"] == "openshift-adp"


def test_teardown_from_manifest_uses_manifest_resolver(tmp_path, monkeypatch):
    manifest = tmp_path / "backup_resources.yml"
    manifest.write_text(
        "apiVersion: velero.io/v1\nkind: Schedule\nmetadata:\n  name: abc123-hourly\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "TeardownPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["teardown-from-manifest", str(manifest), "rosa-hcp-bkp-hs-mc-1-abc123", "my-bucket", "--dry-run"],
    )

    assert result.exit_code == 0
    assert isinstance(captured["resolver"], ManifestNameResolver)
    assert captured["target"].bucket_name == "my-bucket"
    assert captured["target"].role_name == "rosa-hcp-bkp-hs-mc-1-abc123"
    assert captured["dry_run"] is True


def test_teardown_from_missing_manifest_fails_before_running(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "TeardownPipeline", _fake_pipeline(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["teardown-from-manifest", str(tmp_path / "missing.yml"), "some-role", "some-bucket"],
    )

    assert result.exit_code == 1
    assert "Manifest file not found" in result.output
    assert captured == {}
