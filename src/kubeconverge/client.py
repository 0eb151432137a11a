"""
The cluster client is the only part of kubeconverge that talks to the cluster API. The reconciler only ever
depends on the `ClusterClient` interface, which makes it easy to substitute the cluster in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from kubernetes.client.api_client import ApiClient
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError, ResourceNotFoundError
from loguru import logger
from urllib3.exceptions import HTTPError

from kubeconverge.errors import ClusterOperationError
from kubeconverge.tools.types import LabelSelector, Manifest

T = TypeVar("T")

API_VERSIONS: dict[str, str] = {
    "BuildConfig": "build.openshift.io/v1",
    "DeploymentConfig": "apps.openshift.io/v1",
    "ImageStream": "image.openshift.io/v1",
    "Namespace": "v1",
    "OAuthClient": "oauth.openshift.io/v1",
    "Pod": "v1",
    "ReplicationController": "v1",
    "Route": "route.openshift.io/v1",
    "Secret": "v1",
    "Service": "v1",
    "ServiceAccount": "v1",
    "Template": "template.openshift.io/v1",
}
""" The API version to use for each of the resource kinds that kubeconverge reconciles. """


class ClusterClient(ABC):
    """
    CRUD operations against the cluster, keyed by (kind, namespace, name). The *namespace* is `None` for
    cluster-scoped kinds.

    Implementations raise `ClusterOperationError` if a call fails.
    """

    @abstractmethod
    def get(self, kind: str, namespace: str | None, name: str) -> Manifest | None:
        """
        Returns the live object, or `None` if it does not exist.
        """

    @abstractmethod
    def create(self, kind: str, namespace: str | None, manifest: Manifest) -> Manifest:
        """
        Create the object and return it as it was stored by the server.
        """

    @abstractmethod
    def replace(self, kind: str, namespace: str | None, name: str, manifest: Manifest) -> Manifest:
        """
        Replace the object and return it as it was stored by the server.
        """

    @abstractmethod
    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        """
        Delete the object.
        """

    @abstractmethod
    def delete_collection(self, kind: str, namespace: str | None, selector: LabelSelector) -> None:
        """
        Delete all objects of the given kind that match the label *selector*.
        """

    @abstractmethod
    def process_template(self, namespace: str, template: Manifest) -> Manifest:
        """
        Expand a template on the server. Returns the processed template, which contains the expanded `objects`.
        """


class KubernetesClusterClient(ClusterClient):
    """
    Implements the `ClusterClient` using the dynamic client of the official Kubernetes Python client.
    """

    def __init__(self, dynamic: DynamicClient, api_versions: dict[str, str] | None = None) -> None:
        """
        Args:
            dynamic: The dynamic client to send requests with.
            api_versions: Overrides for the API version to use per resource kind.
        """

        self._dynamic = dynamic
        self._api_versions = {**API_VERSIONS, **(api_versions or {})}

    @staticmethod
    def from_api_client(client: ApiClient, api_versions: dict[str, str] | None = None) -> "KubernetesClusterClient":
        """
        Create a cluster client from a Kubernetes API client. Note that this discovers the API resources served by
        the cluster.
        """

        return KubernetesClusterClient(DynamicClient(client), api_versions)

    def _resource(self, kind: str) -> Any:
        return self._dynamic.resources.get(api_version=self._api_versions.get(kind, "v1"), kind=kind)

    def _call(self, operation: str, kind: str, namespace: str | None, name: str, func: Callable[[], T]) -> T:
        logger.debug("{} {} {}/{}", operation.capitalize(), kind, namespace or "-", name)
        try:
            return func()
        except (DynamicApiError, ResourceNotFoundError, HTTPError, OSError) as exc:
            raise ClusterOperationError(operation, kind, namespace, name, exc) from exc

    def get(self, kind: str, namespace: str | None, name: str) -> Manifest | None:
        def _get() -> Manifest | None:
            try:
                return _to_manifest(self._dynamic.get(self._resource(kind), name=name, namespace=namespace))
            except NotFoundError:
                return None

        return self._call("get", kind, namespace, name, _get)

    def create(self, kind: str, namespace: str | None, manifest: Manifest) -> Manifest:
        name = manifest.get("metadata", {}).get("name", "")
        return self._call(
            "create",
            kind,
            namespace,
            name,
            lambda: _to_manifest(self._dynamic.create(self._resource(kind), body=manifest, namespace=namespace)),
        )

    def replace(self, kind: str, namespace: str | None, name: str, manifest: Manifest) -> Manifest:
        return self._call(
            "replace",
            kind,
            namespace,
            name,
            lambda: _to_manifest(
                self._dynamic.replace(self._resource(kind), body=manifest, name=name, namespace=namespace)
            ),
        )

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        self._call(
            "delete", kind, namespace, name, lambda: self._dynamic.delete(self._resource(kind), name, namespace)
        )

    def delete_collection(self, kind: str, namespace: str | None, selector: LabelSelector) -> None:
        label_selector = ",".join(f"{key}={value}" for key, value in sorted(selector.items()))
        self._call(
            "delete",
            kind,
            namespace,
            f"-l {label_selector}",
            lambda: self._dynamic.delete(self._resource(kind), namespace=namespace, label_selector=label_selector),
        )

    def process_template(self, namespace: str, template: Manifest) -> Manifest:
        def _process() -> Manifest:
            resource = self._dynamic.resources.get(
                api_version=self._api_versions["Template"], name="processedtemplates"
            )
            return _to_manifest(self._dynamic.create(resource, body=template, namespace=namespace))

        return self._call("process", "Template", namespace, template.get("metadata", {}).get("name", ""), _process)


def _to_manifest(obj: Any) -> Manifest:
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    return Manifest(dict(obj))
