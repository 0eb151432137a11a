from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kubeconverge.tools.fs import find_config_file


@dataclass(frozen=True)
class ReconcilePolicy:
    """
    Options that decide how resources are converged onto the cluster. A policy is immutable and is passed explicitly
    to every reconcile call, so a single policy can be shared by any number of apply batches.

    A policy can be loaded from a `kubeconverge.yaml` file, see `ReconcilePolicy.load()`.
    """

    FILENAMES = ("kubeconverge.yaml", ".kubeconverge.yaml")

    throw_on_error: bool = True
    """
    Abort the batch on the first failed cluster operation. If disabled, the failure is logged and recorded and the
    remaining resources are applied.
    """

    allow_create: bool = True
    """ Create resources that do not exist in the cluster yet. """

    recreate_mode: bool = False
    """ Delete and re-create resources that changed instead of replacing them in place. """

    services_only_mode: bool = False
    """
    Only apply Services (and the Namespaces they live in). This allows to create or update the services of a number
    of applications before any of their pods or controllers are touched.
    """

    ignore_service_mode: bool = False
    """ Leave Services alone, e.g. to keep their cluster IPs stable when re-creating controllers. """

    ignore_running_oauth_clients: bool = True
    """ Never update an OAuthClient that already exists. OAuth clients are shared across namespaces. """

    process_templates_locally: bool = False
    """ Expand templates without calling the cluster's template processing endpoint. """

    fail_on_missing_parameter_value: bool = False
    """ Fail template expansion if a parameter has no value, instead of substituting an empty string. """

    support_oauth_clients: bool = False
    """ Apply OAuthClient resources at all. """

    delete_pods_on_scale_group_update: bool = True
    """
    Delete the pods of a ReplicationController after it was replaced in place, so that they are re-spawned from the
    new pod template.
    """

    default_namespace: str = "default"
    """ The namespace for resources that don't specify one when the apply request doesn't either. """

    @staticmethod
    def load(file: Path | None = None, /) -> "ReconcilePolicy":
        """
        Load the policy from the given or the closest `kubeconverge.yaml` file. If there is no such file, the default
        policy is returned.
        """

        from databind.json import load as deser
        from yaml import safe_load

        if file is None:
            file = find_config_file(ReconcilePolicy.FILENAMES)
        if file is None:
            return ReconcilePolicy()

        logger.debug("Loading reconcile policy from '{}'", file)
        return deser(safe_load(file.read_text()) or {}, ReconcilePolicy, filename=str(file))


@dataclass(frozen=True)
class ApplyContext:
    """
    Values that are specific to a single apply request.
    """

    namespace: str | None = None
    """
    The namespace to apply resources into. Takes precedence over the namespace that a resource specifies itself.
    """

    source: str = "<unknown>"
    """ A human readable label of where the manifests came from. Only used for logging. """

    basedir: Path | None = None
    """ If set, paths of logged artifacts are reported relative to this directory. """

    log_dir: Path | None = None
    """ If set, every object that is sent to the cluster is written as JSON into this directory. """

    parameters: dict[str, str] = field(default_factory=dict)
    """ Values for template parameters. These take precedence over the values declared in a template. """

    templates: tuple[str, ...] = ()
    """ The templates whose expansion the resources being applied stem from, outermost first. """

    def resolve_namespace(self, resource_namespace: str | None, policy: ReconcilePolicy) -> str:
        """
        Returns the namespace that applies to a resource that declares *resource_namespace*.
        """

        return self.namespace or resource_namespace or policy.default_namespace
