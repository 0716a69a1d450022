import logging

import click
from rich.logging import RichHandler

from .errors import DRError
from .models import ClusterContext, ProvisioningSettings, TeardownTarget
from .provisioning import ProvisioningPipeline
from .services.command_runner import CommandRunner
from .services.config_loader import ConfigLoader
from .services.name_resolver import LiveNameResolver, ManifestNameResolver
from .services.state_reader import ExternalStateReader
from .teardown import TeardownPipeline

logger = logging.getLogger("rosadr")


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _load_config(config):
    try:
        return ConfigLoader().load(config)
    except DRError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(config_values, verbose, log_file):
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _build_runner(config_values, profile):
    shell = _resolve_option(None, config_values, "shell", default="bash")
    env = {"AWS_PROFILE": profile} if profile else {}
    return CommandRunner(logger=logger, shell=shell, env=env)


def common_options(func):
    options = [
        click.option(
            "--config",
            required=False,
            type=click.Path(),
            help="Path to a YAML configuration file. Defaults to .rosadr.yml if present.",
        ),
        click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging"),
        click.option("--log-file", type=click.Path(), help="Path to log file"),
        click.option(
            "--report-file",
            type=click.Path(),
            help="Write a JSON report of every step outcome to this path.",
        ),
        click.option(
            "--dry-run",
            is_flag=True,
            default=None,
            help="Resolve names and print the plan without creating or deleting anything.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def teardown_options(func):
    func = click.option(
        "--namespace",
        required=False,
        help="Namespace holding the backup resources (default: current oc project).",
    )(func)
    func = click.option(
        "--profile",
        required=False,
        help="AWS profile used for IAM and S3 cleanup.",
    )(func)
    return func


@click.group()
def main():
    """Provision and tear down ROSA HCP disaster-recovery backup resources."""


@main.command()
@click.argument("cluster_id")
@click.argument("cluster_name")
@click.argument("cluster_env")
@click.argument("mc_name")
@click.argument("aws_profile")
@click.argument("aws_region")
@common_options
@click.option(
    "--key-admin-principal",
    "key_admin_principal_arn",
    required=False,
    help="IAM principal ARN granted full administration of the backup KMS key.",
)
@click.option(
    "--reuse-existing-key",
    is_flag=True,
    default=None,
    help="Reuse a KMS key already tagged with this cluster id instead of creating one.",
)
def provision(
    cluster_id,
    cluster_name,
    cluster_env,
    mc_name,
    aws_profile,
    aws_region,
    config,
    verbose,
    log_file,
    report_file,
    dry_run,
    key_admin_principal_arn,
    reuse_existing_key,
):
    """Create the bucket, IAM role and KMS key backing cluster backups."""
    config_values = _load_config(config)
    _configure_logging(config_values, verbose, log_file)

    defaults = ProvisioningSettings()
    settings = ProvisioningSettings(
        service_account_subject=_resolve_option(
            None, config_values, "service_account_subject", default=defaults.service_account_subject
        ),
        baseline_policy_arn=_resolve_option(
            None, config_values, "baseline_policy_arn", default=defaults.baseline_policy_arn
        ),
        key_admin_principal_arn=_resolve_option(
            key_admin_principal_arn, config_values, "key_admin_principal_arn"
        ),
        oidc_provider_match=_resolve_option(None, config_values, "oidc_provider_match"),
        reuse_existing_key=bool(
            _resolve_option(reuse_existing_key, config_values, "reuse_existing_key", default=False)
        ),
    )
    context = ClusterContext(
        cluster_id=cluster_id,
        cluster_name=cluster_name,
        cluster_env=cluster_env,
        mc_name=mc_name,
        cloud_profile=aws_profile,
        cloud_region=aws_region,
    )

    pipeline = ProvisioningPipeline(
        context=context,
        runner=_build_runner(config_values, aws_profile),
        settings=settings,
        report_file=_resolve_option(report_file, config_values, "report_file"),
        dry_run=bool(_resolve_option(dry_run, config_values, "dry_run", default=False)),
    )
    raise SystemExit(pipeline.run().exit_code)


def _run_teardown(config_values, target, build_resolver, profile, namespace, report_file, dry_run):
    profile = _resolve_option(profile, config_values, "profile")
    namespace = _resolve_option(namespace, config_values, "namespace")
    runner = _build_runner(config_values, profile)
    reader = ExternalStateReader(runner, logger)

    try:
        resolver = build_resolver(reader, namespace)
    except DRError as exc:
        raise click.ClickException(str(exc)) from exc

    pipeline = TeardownPipeline(
        target=target,
        resolver=resolver,
        runner=runner,
        reader=reader,
        namespace=namespace,
        report_file=_resolve_option(report_file, config_values, "report_file"),
        dry_run=bool(_resolve_option(dry_run, config_values, "dry_run", default=False)),
    )
    raise SystemExit(pipeline.run().exit_code)


@main.command()
@click.argument("cluster_id")
@click.argument("mc_name")
@common_options
@teardown_options
def teardown(cluster_id, mc_name, config, verbose, log_file, report_file, dry_run, profile, namespace):
    """Discover the cluster's backup resources live and delete them."""
    config_values = _load_config(config)
    _configure_logging(config_values, verbose, log_file)

    _run_teardown(
        config_values,
        TeardownTarget.for_cluster(cluster_id, mc_name),
        lambda reader, ns: LiveNameResolver(reader, logger, cluster_id=cluster_id, namespace=ns),
        profile,
        namespace,
        report_file,
        dry_run,
    )


@main.command("teardown-from-manifest")
@click.argument("manifest", type=click.Path())
@click.argument("role_name")
@click.argument("bucket_name")
@common_options
@teardown_options
def teardown_from_manifest(
    manifest, role_name, bucket_name, config, verbose, log_file, report_file, dry_run, profile, namespace
):
    """Delete the resources declared in a backup manifest, plus the given role and bucket."""
    config_values = _load_config(config)
    _configure_logging(config_values, verbose, log_file)

    _run_teardown(
        config_values,
        TeardownTarget(role_name=role_name, bucket_name=bucket_name),
        lambda reader, ns: ManifestNameResolver(reader, logger, manifest_path=manifest, namespace=ns),
        profile,
        namespace,
        report_file,
        dry_run,
    )


if __name__ == "__main__":
    main()
