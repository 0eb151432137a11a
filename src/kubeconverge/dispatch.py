from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import Any

from loguru import logger

from kubeconverge.client import ClusterClient
from kubeconverge.errors import ClusterOperationError, TemplateExpansionError, ValidationError
from kubeconverge.outcome import ApplyResult, Failed, Outcome
from kubeconverge.policy import ApplyContext, ReconcilePolicy
from kubeconverge.reconciler import KIND_POLICIES, Reconciler
from kubeconverge.resources import Resource, ResourceList, Template
from kubeconverge.templates import TemplateProcessor

Handler = Callable[[Resource, ApplyContext], Iterable[Outcome]]


class Dispatcher:
    """
    Applies resources and (nested) lists of resources to the cluster. Every resource is dispatched to the handler
    that is registered for its kind.

    Resources are applied one after another in the order they are given. Whether a failure aborts the batch depends
    on the `throw_on_error` option of the policy.
    """

    def __init__(self, reconciler: Reconciler, templates: TemplateProcessor) -> None:
        self._reconciler = reconciler
        self._templates = templates
        self.handlers: dict[str, Handler] = {kind: self._reconcile for kind in KIND_POLICIES}
        self.handlers["Template"] = self._apply_template

    @staticmethod
    def default(client: ClusterClient, policy: ReconcilePolicy | None = None) -> "Dispatcher":
        """
        Create a new Dispatcher with the default reconciler and template processor.

        Args:
            client: The client to read and write objects in the cluster with.
            policy: The reconcile policy. Defaults to `ReconcilePolicy()`.
        """

        policy = policy or ReconcilePolicy()
        return Dispatcher(Reconciler(client, policy), TemplateProcessor(client, policy))

    @property
    def policy(self) -> ReconcilePolicy:
        return self._reconciler.policy

    def apply(self, entity: Any, context: ApplyContext | None = None) -> ApplyResult:
        """
        Apply a resource, a `ResourceList` or a plain list of either to the cluster.

        Returns:
            The outcome for every resource, in the order they were applied.
        Raises:
            ValidationError: If a resource is invalid, of an unknown kind or depends on a missing secret.
            ClusterOperationError: On the first failed cluster operation, if `throw_on_error` is enabled.
            TemplateExpansionError: On the first template that fails to expand, if `throw_on_error` is enabled.
        """

        context = context or ApplyContext()
        result = ApplyResult()
        for outcome in self._walk(entity, context, frozenset()):
            result.outcomes.append(outcome)
            if isinstance(outcome, Failed) and self.policy.throw_on_error:
                raise outcome.error

        logger.debug("Applied {}: {}", context.source, result.summary())
        return result

    def _walk(self, entity: Any, context: ApplyContext, ancestors: frozenset[int]) -> Iterator[Outcome]:
        """
        Yields the outcomes of applying *entity*. The *ancestors* are the identities of the lists that contain the
        entity, which is used to detect lists that (indirectly) contain themselves.
        """

        if isinstance(entity, (list, ResourceList)):
            ancestors = ancestors | {id(entity)}
            for element in entity:
                if id(element) in ancestors:
                    logger.warning(
                        "Found recursive nested list of {} element(s) in {}, ignoring it", len(element), context.source
                    )
                    continue
                yield from self._walk(element, context, ancestors)
        elif isinstance(entity, Resource):
            handler = self.handlers.get(entity.kind)
            if handler is None:
                raise ValidationError(f"Unknown resource kind {entity.kind!r}", context.source)
            yield from handler(entity, context)
        elif entity is not None:
            raise ValidationError(f"Unknown entity type {type(entity).__name__}", context.source)

    def _reconcile(self, resource: Resource, context: ApplyContext) -> Iterable[Outcome]:
        return [self._reconciler.reconcile(resource, context)]

    def _apply_template(self, resource: Resource, context: ApplyContext) -> Iterator[Outcome]:
        """
        Expand the template and apply the resulting resources. Unless the template is processed locally, the template
        object itself is applied to the cluster first.
        """

        assert isinstance(resource, Template), resource
        ref = self._reconciler.ref(resource, context)
        if resource.name in context.templates:
            raise ValidationError(
                f"Template {resource.name!r} expands into itself (via {' -> '.join(context.templates)})", context.source
            )

        if not self.policy.process_templates_locally:
            outcome = self._reconciler.reconcile(resource, context)
            yield outcome
            if isinstance(outcome, Failed):
                return

        assert ref.namespace is not None
        try:
            expanded = self._templates.process(resource, ref.namespace, context.parameters, context.source)
        except (ClusterOperationError, TemplateExpansionError) as exc:
            logger.error("Failed to process {} from {}: {}", ref, context.source, exc)
            yield Failed(ref, exc)
            return

        context = replace(
            context, source=expanded.source or context.source, templates=(*context.templates, resource.name)
        )
        yield from self._walk(expanded, context, frozenset())
