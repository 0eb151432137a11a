from copy import deepcopy
from typing import Iterator

import pytest
from loguru import logger

from kubeconverge.client import ClusterClient
from kubeconverge.errors import ClusterOperationError
from kubeconverge.tools.types import LabelSelector, Manifest

MUTATING_OPERATIONS = ("create", "replace", "delete", "delete_collection")


class RecordingClusterClient(ClusterClient):
    """
    An in-memory cluster that records every call made to it.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str | None, str], Manifest] = {}
        self.calls: list[tuple[str, str, str | None, str]] = []
        self.failing: set[tuple[str, str]] = set()
        self.processed: dict[str, list[Manifest]] = {}
        self.sent: list[Manifest] = []
        self._resource_version = 0

    def add(self, manifest: dict, namespace: str | None = "default") -> Manifest:
        """
        Put an object into the cluster without recording a call.
        """

        stored = self._store(manifest["kind"], namespace, Manifest(deepcopy(manifest)))
        return stored

    def fail(self, operation: str, name: str) -> None:
        """
        Make the given *operation* fail for objects with the given *name*.
        """

        self.failing.add((operation, name))

    @property
    def mutations(self) -> list[tuple[str, str, str | None, str]]:
        return [call for call in self.calls if call[0] in MUTATING_OPERATIONS]

    def _record(self, operation: str, kind: str, namespace: str | None, name: str) -> None:
        self.calls.append((operation, kind, namespace, name))
        if (operation, name) in self.failing:
            raise ClusterOperationError(operation, kind, namespace, name, RuntimeError("injected failure"))

    def _store(self, kind: str, namespace: str | None, manifest: Manifest) -> Manifest:
        self._resource_version += 1
        metadata = manifest.setdefault("metadata", {})
        metadata["resourceVersion"] = str(self._resource_version)
        metadata.setdefault("uid", f"uid-{self._resource_version}")
        if namespace:
            metadata["namespace"] = namespace
        manifest["status"] = {"phase": "Active"}
        self.objects[(kind, namespace, metadata["name"])] = manifest
        return deepcopy(manifest)

    # ClusterClient

    def get(self, kind: str, namespace: str | None, name: str) -> Manifest | None:
        self._record("get", kind, namespace, name)
        obj = self.objects.get((kind, namespace, name))
        return deepcopy(obj) if obj is not None else None

    def create(self, kind: str, namespace: str | None, manifest: Manifest) -> Manifest:
        name = manifest["metadata"]["name"]
        self._record("create", kind, namespace, name)
        self.sent.append(Manifest(deepcopy(manifest)))
        if (kind, namespace, name) in self.objects:
            raise ClusterOperationError("create", kind, namespace, name, RuntimeError("already exists"))
        return self._store(kind, namespace, Manifest(deepcopy(manifest)))

    def replace(self, kind: str, namespace: str | None, name: str, manifest: Manifest) -> Manifest:
        self._record("replace", kind, namespace, name)
        self.sent.append(Manifest(deepcopy(manifest)))
        if (kind, namespace, name) not in self.objects:
            raise ClusterOperationError("replace", kind, namespace, name, RuntimeError("not found"))
        return self._store(kind, namespace, Manifest(deepcopy(manifest)))

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        self._record("delete", kind, namespace, name)
        if self.objects.pop((kind, namespace, name), None) is None:
            raise ClusterOperationError("delete", kind, namespace, name, RuntimeError("not found"))

    def delete_collection(self, kind: str, namespace: str | None, selector: LabelSelector) -> None:
        self._record("delete_collection", kind, namespace, ",".join(f"{k}={v}" for k, v in sorted(selector.items())))
        for key, obj in list(self.objects.items()):
            labels = obj["metadata"].get("labels") or {}
            if key[:2] == (kind, namespace) and all(labels.get(k) == v for k, v in selector.items()):
                del self.objects[key]

    def process_template(self, namespace: str, template: Manifest) -> Manifest:
        name = template["metadata"]["name"]
        self._record("process_template", "Template", namespace, name)
        return Manifest({**template, "objects": self.processed.get(name, template.get("objects", []))})


@pytest.fixture
def cluster() -> RecordingClusterClient:
    return RecordingClusterClient()


@pytest.fixture
def logs() -> Iterator[list[tuple[str, str]]]:
    """
    Captures the (level, message) of every log record emitted during the test.
    """

    records: list[tuple[str, str]] = []
    handler_id = logger.add(lambda m: records.append((m.record["level"].name, m.record["message"])), level="TRACE")
    yield records
    logger.remove(handler_id)
