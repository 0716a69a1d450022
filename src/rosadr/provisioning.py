"""Provisioning pipeline for the backup bucket, IAM role and KMS key."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from .core import Pipeline, StepPolicy, console, logger
from .errors import DRError, EmptyResultError, ExecutionError
from .errors_catalog import actionable_error
from .models import (
    ClusterContext,
    EncryptionKey,
    IAMRole,
    ObjectStorageBucket,
    OIDCTrust,
    ProvisioningSettings,
)
from .services import naming, policies

HEALTHY_STATES = ("ready", "installing")
# S3 rejects an explicit LocationConstraint for its default region.
DEFAULT_S3_REGION = "us-east-1"


class ProvisioningPipeline(Pipeline):
    """Creates the cloud resources backing cluster backups, in dependency order."""

    NAME = "provisioning"

    def __init__(
        self,
        context: ClusterContext,
        runner,
        settings: Optional[ProvisioningSettings] = None,
        reader=None,
        report_file: Optional[str] = None,
        dry_run: bool = False,
    ):
        super().__init__(runner, reader=reader, report_file=report_file, dry_run=dry_run)
        self.context = context
        self.settings = settings or ProvisioningSettings()

    def _metadata(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = asdict(self.context)
        metadata.update(
            {
                "role_name": naming.role_name(self.context.mc_name, self.context.cluster_id),
                "kms_policy_name": naming.kms_policy_name(self.context.cluster_id),
                "reuse_existing_key": self.settings.reuse_existing_key,
                "key_admin_principal_arn": self.settings.key_admin_principal_arn,
                "dry_run": self.dry_run,
            }
        )
        return metadata

    def _execute(self):
        if self.dry_run:
            self.print_plan()
            return

        self._run_step("check_cluster_health", StepPolicy.FATAL, self.check_cluster_health)
        self._run_step("create_bucket", StepPolicy.BEST_EFFORT, self.create_bucket)

        trust, _ = self._run_step("discover_oidc_trust", StepPolicy.FATAL, self.discover_oidc_trust)
        role, _ = self._run_step("create_role", StepPolicy.FATAL, self.create_role, trust)
        self._run_step(
            "attach_baseline_policy",
            StepPolicy.FATAL,
            self.attach_role_policy,
            role.name,
            self.settings.baseline_policy_arn,
        )

        key_arn, _ = self._run_step("create_key", StepPolicy.FATAL, self.create_key)
        key_policy, _ = self._run_step(
            "put_key_policy", StepPolicy.FATAL, self.put_key_policy, key_arn, role.arn
        )
        key, _ = self._run_step(
            "create_companion_policy",
            StepPolicy.FATAL,
            self.create_companion_policy,
            key_arn,
            key_policy,
        )
        self._run_step(
            "attach_companion_policy",
            StepPolicy.FATAL,
            self.attach_role_policy,
            role.name,
            self.result.values["companion_policy_arn"],
        )
        self._run_step(
            "verify_attached_policies", StepPolicy.BEST_EFFORT, self.verify_attached_policies, role.name
        )

        console.print(f"\n[bold]Role ARN:[/bold] {role.arn}")
        console.print(f"[bold]KMS key ARN:[/bold] {key.arn}")
        if "bucket_name" in self.result.values:
            console.print(f"[bold]Bucket:[/bold] {self.result.values['bucket_name']}")

    def print_plan(self):
        console.print("[bold blue]Dry run: no resources will be created.[/bold blue]")
        plan = {
            "role_name": naming.role_name(self.context.mc_name, self.context.cluster_id),
            "kms_policy_name": naming.kms_policy_name(self.context.cluster_id),
            "schedule_name": naming.schedule_resource_name(self.context.cluster_id),
            "bucket_name_prefix": naming.BUCKET_NAME_PREFIX,
            "region": self.context.cloud_region,
        }
        for key, value in plan.items():
            console.print(f"  {key}: {value}")
            self._set_value(key, value)

    def check_cluster_health(self) -> bool:
        console.print(f"[blue]Checking cluster health for '{self.context.cluster_name}'...[/blue]")
        description = self.reader.describe_cluster(self.context.cluster_name)
        healthy = any(state in description for state in HEALTHY_STATES)
        if healthy:
            console.print("[green]Cluster appears healthy or is in the installation process.[/green]")
        else:
            self._warn(
                "Cluster state is not 'ready' or 'installing'. Review `rosa describe cluster` output."
            )
        return healthy

    def create_bucket(self) -> ObjectStorageBucket:
        bucket = ObjectStorageBucket(name=naming.generate_bucket_name(), region=self.context.cloud_region)
        self._set_value("attempted_bucket_name", bucket.name)
        console.print(f"[blue]Creating S3 bucket '{bucket.name}' in {bucket.region}...[/blue]")

        cmd = [
            "aws",
            "s3api",
            "create-bucket",
            "--bucket",
            bucket.name,
            "--region",
            bucket.region,
        ]
        if bucket.region != DEFAULT_S3_REGION:
            cmd.extend(["--create-bucket-configuration", f"LocationConstraint={bucket.region}"])
        self.runner.run(cmd)

        self._set_value("bucket_name", bucket.name)
        console.print(f"[green]S3 bucket '{bucket.name}' created.[/green]")
        return bucket

    def discover_oidc_trust(self) -> OIDCTrust:
        mc_name = self.context.mc_name
        region = self.context.cloud_region
        console.print(f"[blue]Resolving OIDC trust for management cluster '{mc_name}'...[/blue]")

        try:
            href = self.reader.management_cluster_href(region, mc_name)
        except EmptyResultError as exc:
            raise EmptyResultError(
                actionable_error("management_cluster_not_found", mc_name=mc_name, region=region)
            ) from exc
        logger.info("Management cluster href: %s", href)

        try:
            issuer_url = self.reader.oidc_endpoint_url(href)
        except EmptyResultError as exc:
            raise EmptyResultError(actionable_error("oidc_issuer_not_found", mc_name=mc_name)) from exc

        issuer_host_path = naming.strip_scheme(issuer_url)
        match = self.settings.oidc_provider_match or issuer_host_path
        try:
            provider_arn = self.reader.oidc_provider_arn(match)
        except EmptyResultError as exc:
            raise EmptyResultError(actionable_error("oidc_provider_not_found", match=match)) from exc

        trust = OIDCTrust.build(issuer_url, issuer_host_path, provider_arn)
        self._set_value("oidc_issuer_url", trust.issuer_url)
        self._set_value("oidc_provider_arn", trust.provider_arn)
        logger.info("OIDC issuer %s, provider %s", trust.issuer_host_path, trust.provider_arn)
        return trust

    def create_role(self, trust: OIDCTrust) -> IAMRole:
        role_name = naming.role_name(self.context.mc_name, self.context.cluster_id)
        console.print(f"[blue]Creating IAM role '{role_name}'...[/blue]")

        document = policies.trust_policy(
            trust.provider_arn,
            trust.issuer_host_path,
            self.settings.service_account_subject,
        )
        try:
            self.runner.run(
                [
                    "aws",
                    "iam",
                    "create-role",
                    "--role-name",
                    role_name,
                    "--assume-role-policy-document",
                    policies.render(document),
                    "--description",
                    f"backup-role for cluster {self.context.cluster_id}",
                ]
            )
            console.print(f"[green]IAM role '{role_name}' created.[/green]")
        except ExecutionError as exc:
            if not exc.is_already_exists():
                raise
            self._warn(f"IAM role '{role_name}' already exists. Skipping creation.")

        # The ARN is looked up even when the role existed; a failed create does not return it.
        try:
            role_arn = self.reader.role_arn(role_name)
        except EmptyResultError as exc:
            raise EmptyResultError(actionable_error("role_arn_not_found", role_name=role_name)) from exc

        self._set_value("role_name", role_name)
        self._set_value("role_arn", role_arn)
        return IAMRole(name=role_name, arn=role_arn, trust_policy=document)

    def attach_role_policy(self, role_name: str, policy_arn: str):
        console.print(f"[blue]Attaching '{policy_arn}' to role '{role_name}'...[/blue]")
        self.runner.run(
            [
                "aws",
                "iam",
                "attach-role-policy",
                "--role-name",
                role_name,
                "--policy-arn",
                policy_arn,
            ]
        )

    def create_key(self) -> str:
        cluster_id = self.context.cluster_id
        region = self.context.cloud_region

        if self.settings.reuse_existing_key:
            try:
                key_arn = self.reader.key_arn_by_cluster_tag(cluster_id, region)
            except EmptyResultError:
                logger.info("No KMS key tagged cluster=%s, creating one.", cluster_id)
            else:
                self._warn(f"Reusing KMS key {key_arn} tagged cluster={cluster_id}.")
                self._set_value("kms_key_arn", key_arn)
                return key_arn

        console.print(f"[blue]Creating KMS key for cluster '{cluster_id}'...[/blue]")
        result = self.runner.run(
            [
                "aws",
                "kms",
                "create-key",
                "--description",
                f"SSE-KMS backup key: {cluster_id}",
                "--key-usage",
                "ENCRYPT_DECRYPT",
                "--key-spec",
                "SYMMETRIC_DEFAULT",
                "--tags",
                f"TagKey=Owner,TagValue={self.context.cluster_env}",
                f"TagKey=cluster,TagValue={cluster_id}",
                "--region",
                region,
                "--query",
                "KeyMetadata.Arn",
                "--output",
                "text",
            ]
        )
        key_arn = (result.stdout or "").strip()
        if not key_arn or key_arn == "None":
            raise EmptyResultError(actionable_error("key_arn_not_returned", cluster_id=cluster_id))

        self._set_value("kms_key_arn", key_arn)
        console.print(f"[green]KMS key created: {key_arn}[/green]")
        return key_arn

    def put_key_policy(self, key_arn: str, role_arn: str) -> Dict[str, Any]:
        admin = self.settings.key_admin_principal_arn
        if admin:
            logger.warning("Granting full key access to administrator principal %s", admin)
        document = policies.key_policy(role_arn, admin)

        self.runner.run(
            [
                "aws",
                "kms",
                "put-key-policy",
                "--key-id",
                key_arn,
                "--policy-name",
                "default",
                "--region",
                self.context.cloud_region,
                "--policy",
                policies.render(document),
            ]
        )
        console.print(f"[green]Key policy applied to {key_arn}.[/green]")
        return document

    def create_companion_policy(
        self, key_arn: str, key_policy: Optional[Dict[str, Any]] = None
    ) -> EncryptionKey:
        policy_name = naming.kms_policy_name(self.context.cluster_id)
        console.print(f"[blue]Creating IAM policy '{policy_name}'...[/blue]")

        policy_arn = ""
        try:
            result = self.runner.run(
                [
                    "aws",
                    "iam",
                    "create-policy",
                    "--policy-name",
                    policy_name,
                    "--policy-document",
                    policies.render(policies.companion_policy(key_arn)),
                    "--query",
                    "Policy.Arn",
                    "--output",
                    "text",
                ]
            )
            policy_arn = (result.stdout or "").strip()
        except ExecutionError as exc:
            if not exc.is_already_exists():
                raise
            self._warn(f"IAM policy '{policy_name}' already exists. Skipping creation.")

        if not policy_arn or policy_arn == "None":
            try:
                policy_arn = self.reader.policy_arn(policy_name)
            except EmptyResultError as exc:
                raise DRError(actionable_error("policy_arn_not_found", policy_name=policy_name)) from exc

        self._set_value("kms_policy_name", policy_name)
        self._set_value("companion_policy_arn", policy_arn)
        return EncryptionKey(arn=key_arn, companion_policy_name=policy_name, key_policy=key_policy)

    def verify_attached_policies(self, role_name: str) -> IAMRole:
        attached = self.reader.attached_policy_arns(role_name)
        console.print(f"[blue]Policies attached to '{role_name}':[/blue]")
        for policy_arn in attached:
            console.print(f"  {policy_arn}")
        self._set_value("attached_policy_arns", attached)
        return IAMRole(
            name=role_name,
            arn=self.result.values.get("role_arn", ""),
            attached_policy_arns=tuple(attached),
        )
