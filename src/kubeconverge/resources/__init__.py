"""
This package contains the typed views over the Kubernetes and OpenShift resources that kubeconverge knows how to
reconcile. Every supported kind is a subclass of `Resource`, registered by its `KIND`.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Iterator, cast

from kubeconverge.tools.types import LabelSelector, Manifest

SERVER_METADATA_FIELDS = frozenset(
    {
        "creationTimestamp",
        "deletionGracePeriodSeconds",
        "deletionTimestamp",
        "generation",
        "managedFields",
        "resourceVersion",
        "selfLink",
        "uid",
    }
)
""" Metadata fields that are assigned by the server and never compared or sent back as desired state. """


@dataclass(eq=False)
class Resource:
    """
    A single resource to converge onto the cluster, wrapping its manifest.

    Loading a manifest through `Resource.load()` returns an instance of the subclass registered for the manifest's
    `kind`. Manifests of an unknown kind are loaded as plain `Resource` objects; they are rejected when they are
    applied.
    """

    KIND: ClassVar[str | None] = None
    """
    The kind identifier of the resource. If not set, this will default to the class name.
    """

    _registry: ClassVar[dict[str, type["Resource"]]] = {}

    manifest: Manifest

    def __init_subclass__(cls, kind: str | None = None, register: bool = True, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if kind is not None or "KIND" not in vars(cls):
            cls.KIND = kind or cls.__name__
        if register:
            assert cls.KIND is not None
            Resource._registry[cls.KIND] = cls

    @staticmethod
    def load(manifest: Manifest) -> "Resource":
        """
        Load a manifest into the `Resource` subclass that is registered for its `kind`.
        """

        subcls = Resource._registry.get(manifest.get("kind", ""), Resource)
        return subcls(Manifest(manifest))

    @staticmethod
    def kinds() -> list[str]:
        """
        Returns the names of all registered resource kinds.
        """

        return sorted(Resource._registry)

    @property
    def kind(self) -> str:
        return cast(str, self.manifest.get("kind", ""))

    @property
    def metadata(self) -> dict[str, Any]:
        return cast(dict[str, Any], self.manifest.setdefault("metadata", {}))

    @property
    def name(self) -> str:
        return self.metadata.get("name") or ""

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace") or None

    @property
    def resource_version(self) -> str | None:
        return self.metadata.get("resourceVersion")

    def with_namespace(self, namespace: str | None) -> Manifest:
        """
        Return a copy of the manifest that has the given *namespace* set in its metadata and no server-assigned
        metadata fields.
        """

        manifest = Manifest(dict(self.manifest))
        metadata = {k: v for k, v in self.metadata.items() if k not in SERVER_METADATA_FIELDS}
        if namespace:
            metadata["namespace"] = namespace
        else:
            metadata.pop("namespace", None)
        manifest["metadata"] = metadata
        manifest.pop("status", None)
        return manifest

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind}/{self.name or '<unnamed>'})"


class PodBearing(Resource, register=False):
    """
    Mixin for resources that embed a pod spec, and thus may reference secrets through volumes.
    """

    def pod_spec(self) -> dict[str, Any] | None:
        spec = self.manifest.get("spec") or {}
        template = spec.get("template") or {}
        return template.get("spec")

    def secret_volume_names(self) -> Iterable[str]:
        """
        Yields the names of all secrets that are mounted as volumes by the pod spec.
        """

        for volume in (self.pod_spec() or {}).get("volumes") or []:
            secret_name = (volume.get("secret") or {}).get("secretName")
            if secret_name:
                yield secret_name


class Pod(PodBearing):
    def pod_spec(self) -> dict[str, Any] | None:
        return self.manifest.get("spec")


class ReplicationController(PodBearing):
    """
    A replication controller, the group of identically configured pods that is scaled as a unit.
    """

    @property
    def selector(self) -> LabelSelector:
        """
        Returns the label selector of the pods managed by this controller. If the spec does not define a selector,
        Kubernetes defaults it to the labels of the pod template.
        """

        spec = self.manifest.get("spec") or {}
        if spec.get("selector"):
            return dict(spec["selector"])
        return dict(((spec.get("template") or {}).get("metadata") or {}).get("labels") or {})


class DeploymentConfig(PodBearing):
    pass


class Service(Resource):
    pass


class Namespace(Resource):
    pass


class Route(Resource):
    pass


class BuildConfig(Resource):
    pass


class ImageStream(Resource):
    pass


class OAuthClient(Resource):
    pass


class ServiceAccount(Resource):
    pass


class Secret(Resource):
    pass


class Template(Resource):
    """
    An OpenShift template: a parameterized list of objects that is expanded before it is applied.
    """

    @property
    def objects(self) -> list[Manifest]:
        return [Manifest(obj) for obj in self.manifest.get("objects") or []]

    @property
    def parameters(self) -> list[dict[str, Any]]:
        return list(self.manifest.get("parameters") or [])

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.manifest.get("labels") or {})


@dataclass(eq=False)
class ResourceList:
    """
    An ordered list of resources or nested resource lists. A list may end up containing itself, which is tolerated
    when applying the list.
    """

    items: list["Resource | ResourceList"] = field(default_factory=list)
    source: str | None = None
    """ Where the list was loaded from, if known. """

    def __iter__(self) -> Iterator["Resource | ResourceList"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def append(self, item: "Resource | ResourceList") -> None:
        self.items.append(item)
