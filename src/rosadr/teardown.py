"""Teardown pipeline: discovers backup resources and deletes them."""

from dataclasses import asdict
from typing import Any, Dict, Optional

from .core import Pipeline, StepPolicy, console, logger
from .errors import DRError, EmptyResultError, ExecutionError, MalformedResponseError
from .errors_catalog import actionable_error
from .models import ClusterManagedResource, ResourceKind, TeardownTarget
from .services.name_resolver import NameResolver


class TeardownPipeline(Pipeline):
    """Removes cloud and cluster backup resources, continuing past individual failures."""

    NAME = "teardown"

    def __init__(
        self,
        target: TeardownTarget,
        resolver: NameResolver,
        runner,
        reader=None,
        namespace: Optional[str] = None,
        report_file: Optional[str] = None,
        dry_run: bool = False,
    ):
        super().__init__(runner, reader=reader, report_file=report_file, dry_run=dry_run)
        self.target = target
        self.resolver = resolver
        self.namespace = namespace

    def _metadata(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = asdict(self.target)
        metadata.update(
            {
                "resolver": type(self.resolver).__name__,
                "namespace": self.namespace,
                "dry_run": self.dry_run,
            }
        )
        return metadata

    def _execute(self):
        bucket_name = self.target.bucket_name
        if bucket_name:
            self._skip_step("discover_bucket", StepPolicy.FATAL, "bucket name supplied")
            self._set_value("bucket_name", bucket_name)
        else:
            # Runs before any delete: once the BSL is gone the bucket name is unrecoverable.
            bucket_name, _ = self._run_step("discover_bucket", StepPolicy.FATAL, self.discover_bucket)

        console.print("[bold blue]--- Delete AWS resources ---[/bold blue]")
        self.cleanup_role()
        self._run_delete("delete_bucket", self.delete_bucket, bucket_name)

        console.print("[bold blue]--- Delete OpenShift resources ---[/bold blue]")
        for kind in ResourceKind.teardown_order():
            self.cleanup_kind(kind)

    def _run_delete(self, name: str, callback, *args):
        if self.dry_run:
            self._skip_step(name, StepPolicy.BEST_EFFORT, "dry run")
            return None, False
        return self._run_step(name, StepPolicy.BEST_EFFORT, callback, *args)

    def discover_bucket(self) -> str:
        names = self.resolver.resolve(ResourceKind.BACKUP_STORAGE_LOCATION)
        if not names:
            raise EmptyResultError(actionable_error("bsl_not_found"))

        bsl_name = names[0]
        try:
            bucket_name = self.reader.bucket_name_from_bsl(bsl_name, self.namespace)
        except (ExecutionError, MalformedResponseError) as exc:
            raise MalformedResponseError(
                f"{actionable_error('bucket_not_discoverable', name=bsl_name)} ({exc})"
            ) from exc

        console.print(f"[green]Backup bucket: {bucket_name}[/green]")
        self._set_value("bucket_name", bucket_name)
        return bucket_name

    def cleanup_role(self):
        role_name = self.target.role_name
        policy_arns, listed = self._run_step(
            "list_role_policies",
            StepPolicy.BEST_EFFORT,
            self.reader.attached_policy_arns,
            role_name,
        )
        if listed:
            self._set_value("attached_policy_arns", policy_arns)

        all_detached = listed
        for policy_arn in policy_arns or []:
            _, detached = self._run_delete(
                f"detach_policy:{policy_arn}", self.detach_policy, role_name, policy_arn
            )
            all_detached = all_detached and detached

        if self.dry_run:
            self._skip_step("delete_role", StepPolicy.BEST_EFFORT, "dry run")
        elif not all_detached:
            # IAM refuses to delete a role with attached policies.
            self._record_failure(
                "delete_role",
                StepPolicy.BEST_EFFORT,
                f"Role '{role_name}' was not deleted: attached policies could not be listed or detached.",
            )
        else:
            self._run_step("delete_role", StepPolicy.BEST_EFFORT, self.delete_role, role_name)

    def detach_policy(self, role_name: str, policy_arn: str):
        self.runner.run(
            [
                "aws",
                "iam",
                "detach-role-policy",
                "--role-name",
                role_name,
                "--policy-arn",
                policy_arn,
            ]
        )
        console.print(f"[green]Detached {policy_arn} from {role_name}.[/green]")

    def delete_role(self, role_name: str):
        self.runner.run(["aws", "iam", "delete-role", "--role-name", role_name])
        console.print(f"[green]Deleted IAM role '{role_name}'.[/green]")

    def delete_bucket(self, bucket_name: Optional[str]):
        if not bucket_name:
            raise DRError("No bucket name is known; the backup bucket was not deleted.")
        # --force empties the bucket in the same call.
        self.runner.run(["aws", "s3", "rb", f"s3://{bucket_name}", "--force"])
        console.print(f"[green]Deleted S3 bucket '{bucket_name}'.[/green]")

    def cleanup_kind(self, kind: ResourceKind):
        names, resolved = self._run_step(
            f"resolve:{kind.cli_name}", StepPolicy.BEST_EFFORT, self.resolver.resolve, kind
        )
        if not resolved:
            return
        if not names:
            logger.info("No %s resources to delete.", kind.manifest_kind)
            return

        console.print(f"[blue]{kind.manifest_kind} resources to remove: {', '.join(names)}[/blue]")
        for name in names:
            resource = ClusterManagedResource(kind=kind, name=name)
            self._run_delete(f"delete:{kind.cli_name}/{name}", self.delete_resource, resource)

    def delete_resource(self, resource: ClusterManagedResource):
        cli_name = resource.kind.cli_name
        cmd = ["oc", "delete", cli_name, resource.name]
        if self.namespace:
            cmd.extend(["-n", self.namespace])
        self.runner.run(cmd)
        console.print(f"[green]Resource deleted: {cli_name}/{resource.name}[/green]")
