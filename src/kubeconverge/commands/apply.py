from dataclasses import replace
from pathlib import Path
from typing import Any

from click.core import ParameterSource
from kubernetes.client.api_client import ApiClient
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config
from loguru import logger
from rich.console import Console
from rich.table import Table
from typer import Argument, Context, Exit, Option

from kubeconverge.client import KubernetesClusterClient
from kubeconverge.dispatch import Dispatcher
from kubeconverge.errors import KubeconvergeError
from kubeconverge.loader import load_paths
from kubeconverge.outcome import Applied, Failed, Outcome, Skipped
from kubeconverge.policy import ApplyContext, ReconcilePolicy
from kubeconverge.tools.typer import parse_key_value_pairs

from . import app


@app.command()
def apply(
    ctx: Context,
    paths: list[Path] = Argument(..., help="The manifest file(s) to apply. Can be a directory."),
    namespace: str = Option(
        None, "--namespace", "-n", help="The namespace to apply resources into, overriding their own namespace."
    ),
    in_cluster: bool = Option(False, help="Use the in-cluster Kubernetes configuration."),
    kubeconfig: Path = Option(None, envvar="KUBECONFIG", help="The kubeconfig file to use."),
    context: str = Option(None, help="The kubeconfig context to use."),
    config: Path = Option(
        None, help="The reconcile policy file. Defaults to the closest 'kubeconverge.yaml' in the working directory."
    ),
    throw_on_error: bool = Option(True, "--throw-on-error/--continue-on-error", help="Abort on the first failure."),
    allow_create: bool = Option(True, "--allow-create/--no-create", help="Create resources that don't exist."),
    recreate: bool = Option(
        False, "--recreate/--no-recreate", help="Delete and re-create changed resources instead of replacing them."
    ),
    services_only: bool = Option(False, "--services-only/--no-services-only", help="Only apply Services."),
    ignore_services: bool = Option(False, "--ignore-services/--no-ignore-services", help="Leave Services alone."),
    oauth_clients: bool = Option(False, "--oauth-clients/--no-oauth-clients", help="Apply OAuthClients."),
    update_running_oauth_clients: bool = Option(
        False,
        "--update-running-oauth-clients/--ignore-running-oauth-clients",
        help="Update OAuthClients that already exist.",
    ),
    local_templates: bool = Option(
        False, "--local-templates/--server-templates", help="Expand templates locally instead of on the server."
    ),
    fail_on_missing_parameter: bool = Option(
        False,
        "--fail-on-missing-parameter/--allow-missing-parameter",
        help="Fail if a template parameter has no value.",
    ),
    delete_pods: bool = Option(
        True,
        "--delete-pods/--keep-pods",
        help="Delete the pods of a replication controller after updating it, so they pick up the new template.",
    ),
    param: list[str] = Option([], "--param", "-p", help="A template parameter value as KEY=VALUE. Repeatable."),
    log_json_dir: Path = Option(None, help="Write every object sent to the cluster as JSON into this directory."),
    basedir: Path = Option(None, help="Report the paths of written JSON files relative to this directory."),
) -> None:
    """
    Apply manifests to the cluster, creating missing resources and updating changed ones.

    The reconcile policy is loaded from the policy file; options that are given on the command line take precedence.
    """

    parameters = parse_key_value_pairs(param, "--param")

    policy = replace(
        ReconcilePolicy.load(config),
        **_overrides(
            ctx,
            throw_on_error=("throw_on_error", throw_on_error),
            allow_create=("allow_create", allow_create),
            recreate_mode=("recreate", recreate),
            services_only_mode=("services_only", services_only),
            ignore_service_mode=("ignore_services", ignore_services),
            support_oauth_clients=("oauth_clients", oauth_clients),
            ignore_running_oauth_clients=("update_running_oauth_clients", not update_running_oauth_clients),
            process_templates_locally=("local_templates", local_templates),
            fail_on_missing_parameter_value=("fail_on_missing_parameter", fail_on_missing_parameter),
            delete_pods_on_scale_group_update=("delete_pods", delete_pods),
        ),
    )
    logger.debug("Using reconcile policy {}", policy)

    if in_cluster:
        logger.info("Using in-cluster configuration.")
        load_incluster_config()
    else:
        load_kube_config(config_file=str(kubeconfig) if kubeconfig else None, context=context)

    dispatcher = Dispatcher.default(KubernetesClusterClient.from_api_client(ApiClient()), policy)

    try:
        sources = load_paths(paths)
    except KubeconvergeError as exc:
        logger.error("{}", exc)
        raise Exit(1)

    outcomes: list[Outcome] = []
    for file, entity in sources:
        logger.info("Applying manifests from {}", file)
        apply_context = ApplyContext(
            namespace=namespace,
            source=str(file),
            basedir=basedir,
            log_dir=log_json_dir,
            parameters=parameters,
        )
        try:
            result = dispatcher.apply(entity, apply_context)
        except KubeconvergeError as exc:
            logger.error("{}", exc)
            raise Exit(1)

        logger.info("Applied manifests from {}: {}", file, result.summary())
        outcomes.extend(result.outcomes)

    if outcomes:
        Console().print(_outcome_table(outcomes))
    if any(isinstance(outcome, Failed) for outcome in outcomes):
        raise Exit(1)


def _overrides(ctx: Context, **options: tuple[str, Any]) -> dict[str, Any]:
    """
    Maps policy fields to the value of their command-line option, for the options that were given explicitly.
    """

    return {
        field: value
        for field, (param, value) in options.items()
        if ctx.get_parameter_source(param) not in (None, ParameterSource.DEFAULT)
    }


def _outcome_table(outcomes: list[Outcome]) -> Table:
    table = Table()
    table.add_column("Kind", justify="right", style="cyan")
    table.add_column("Namespace")
    table.add_column("Name")
    table.add_column("Outcome")
    for outcome in outcomes:
        match outcome:
            case Applied(action=action):
                status = action.value
            case Skipped(reason=reason):
                status = f"[yellow]skipped[/yellow] ({reason})"
            case Failed():
                status = "[red]failed[/red]"
        table.add_row(outcome.ref.kind, outcome.ref.namespace or "", outcome.ref.name, status)
    return table
