"""
The reconciler converges a single resource onto the cluster: it looks up the live object and creates, replaces or
re-creates it as needed. What exactly happens depends on the `ReconcilePolicy` and on the `KindPolicy` of the
resource's kind.
"""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from kubeconverge.artifacts import CLUSTER_SCOPE_DIR, ArtifactLogger
from kubeconverge.client import ClusterClient
from kubeconverge.compare import config_equal
from kubeconverge.errors import ClusterOperationError, ValidationError
from kubeconverge.outcome import Action, Applied, Failed, Outcome, ResourceRef, Skipped
from kubeconverge.policy import ApplyContext, ReconcilePolicy
from kubeconverge.resources import PodBearing, ReplicationController, Resource
from kubeconverge.tools.types import Manifest
from kubeconverge.validate import validate_dependencies


class Strategy(str, Enum):
    FULL = "full"
    """ Create if missing; replace or re-create if changed. """

    CREATE_ONLY = "create-only"
    """ Create if missing; an existing object is never touched. """


@dataclass(frozen=True)
class KindPolicy:
    """
    Describes how resources of a particular kind are reconciled.
    """

    namespaced: bool = True
    strategy: Strategy = Strategy.FULL

    replaceable: bool = True
    """ Whether the kind can be replaced in place. If not, a changed object is always deleted and re-created. """

    services_only_exempt: bool = False
    """ Whether the kind is still applied in `services_only_mode`. """


KIND_POLICIES: dict[str, KindPolicy] = {
    "BuildConfig": KindPolicy(),
    "DeploymentConfig": KindPolicy(),
    "ImageStream": KindPolicy(),
    # Namespaces are only ever created, deleting one to re-create it would delete its contents as well.
    "Namespace": KindPolicy(namespaced=False, strategy=Strategy.CREATE_ONLY, services_only_exempt=True),
    "OAuthClient": KindPolicy(namespaced=False),
    "Pod": KindPolicy(),
    "ReplicationController": KindPolicy(),
    "Route": KindPolicy(),
    "Secret": KindPolicy(),
    "Service": KindPolicy(services_only_exempt=True),
    "ServiceAccount": KindPolicy(),
    "Template": KindPolicy(replaceable=False, services_only_exempt=True),
}


class Reconciler:
    """
    Applies individual resources to the cluster.
    """

    def __init__(self, client: ClusterClient, policy: ReconcilePolicy) -> None:
        """
        Args:
            client: The client to read and write objects in the cluster with.
            policy: The policy that decides which resources are applied and how.
        """

        self._client = client
        self._policy = policy

    @property
    def policy(self) -> ReconcilePolicy:
        return self._policy

    def ref(self, resource: Resource, context: ApplyContext) -> ResourceRef:
        """
        Returns the reference to the *resource* with its namespace resolved.
        """

        kind_policy = KIND_POLICIES.get(resource.kind, KindPolicy())
        namespace = context.resolve_namespace(resource.namespace, self._policy) if kind_policy.namespaced else None
        return ResourceRef(resource.kind, namespace, resource.name, context.source)

    def skip_reason(self, kind: str) -> str | None:
        """
        Returns the reason why resources of the given *kind* are not applied under the current policy, or `None`.
        """

        if self._policy.services_only_mode and not KIND_POLICIES[kind].services_only_exempt:
            return "only Services are applied"
        if self._policy.ignore_service_mode and kind == "Service":
            return "Services are ignored"
        if kind == "OAuthClient" and not self._policy.support_oauth_clients:
            return "OAuthClients are not supported"
        return None

    def reconcile(self, resource: Resource, context: ApplyContext) -> Outcome:
        """
        Converge the *resource* onto the cluster.

        Failing cluster calls are logged and returned as a `Failed` outcome; it is up to the caller to decide whether
        to continue with other resources.

        Raises:
            ValidationError: If the resource has no name or depends on a secret that does not exist.
        """

        if resource.kind not in KIND_POLICIES:
            raise ValidationError(f"Unknown resource kind {resource.kind!r}", context.source)

        kind_policy = KIND_POLICIES[resource.kind]
        ref = self.ref(resource, context)

        if (reason := self.skip_reason(resource.kind)) is not None:
            logger.debug("Ignoring {} from {}: {}", ref, context.source, reason)
            return Skipped(ref, reason)

        if not resource.name:
            raise ValidationError(f"No name for {resource.kind} in namespace {ref.namespace}", context.source)

        desired = resource.with_namespace(ref.namespace)

        try:
            live = self._client.get(ref.kind, ref.namespace, ref.name)

            if live is None:
                if not self._policy.allow_create:
                    logger.warning("Creation disabled so not creating {} from {}", ref, context.source)
                    return Skipped(ref, "creation is disabled")
                return self._create(resource, desired, ref, Action.CREATED, context)

            if kind_policy.strategy == Strategy.CREATE_ONLY:
                logger.debug("{} already exists", ref)
                return Applied(ref, Action.UNCHANGED, live)

            if resource.kind == "OAuthClient" and self._policy.ignore_running_oauth_clients:
                logger.info("Not updating {} which is shared across namespaces as it already exists", ref)
                return Skipped(ref, "OAuthClient already exists")

            if config_equal(desired, live):
                logger.info("{} is unchanged, not doing anything", ref)
                return Applied(ref, Action.UNCHANGED, live)

            if self._policy.recreate_mode or not kind_policy.replaceable:
                self._validate(resource, ref)
                logger.info("Deleting {} to re-create it from {}", ref, context.source)
                self._client.delete(ref.kind, ref.namespace, ref.name)
                return self._create(resource, desired, ref, Action.RECREATED, context, validate=False)

            return self._replace(resource, desired, live, ref, context)

        except ClusterOperationError as exc:
            exc.source = context.source
            logger.error("{}", exc)
            return Failed(ref, exc)

    def _validate(self, resource: Resource, ref: ResourceRef) -> None:
        if isinstance(resource, PodBearing):
            assert ref.namespace is not None
            validate_dependencies(self._client, resource, ref.namespace, ref.source)

    def _create(
        self,
        resource: Resource,
        desired: Manifest,
        ref: ResourceRef,
        action: Action,
        context: ApplyContext,
        validate: bool = True,
    ) -> Applied:
        if validate:
            self._validate(resource, ref)

        logger.info("Creating {} from {}", ref, ref.source)
        result = self._client.create(ref.kind, ref.namespace, desired)
        self._log_artifact(f"Created {ref.kind}: ", ref, result, context)
        return Applied(ref, action, result)

    def _replace(
        self, resource: Resource, desired: Manifest, live: Manifest, ref: ResourceRef, context: ApplyContext
    ) -> Applied:
        logger.info("Updating {} from {}", ref, ref.source)
        if (resource_version := (live.get("metadata") or {}).get("resourceVersion")) is not None:
            desired["metadata"]["resourceVersion"] = resource_version

        result = self._client.replace(ref.kind, ref.namespace, ref.name, desired)
        self._log_artifact(f"Updated {ref.kind}: ", ref, result, context)

        if isinstance(resource, ReplicationController):
            if not self._policy.delete_pods_on_scale_group_update:
                logger.warning("Not deleting the pods of {}, they may still run with the old configuration", ref)
            elif not (selector := resource.selector):
                logger.warning("{} has no pod selector, not deleting any pods", ref)
            else:
                logger.info("Deleting the pods of {} to ensure they use the new configuration", ref)
                self._client.delete_collection("Pod", ref.namespace, selector)

        return Applied(ref, Action.UPDATED, result)

    def _log_artifact(self, message: str, ref: ResourceRef, result: Manifest, context: ApplyContext) -> None:
        if context.log_dir is None:
            logger.debug("{}{}", message, ref)
            return

        if ref.namespace:
            directory = ref.namespace
        elif ref.kind == "Namespace":
            directory = ref.name
        else:
            directory = CLUSTER_SCOPE_DIR
        ArtifactLogger(context.log_dir, context.basedir).log(message, directory, ref.kind, ref.name, result)
