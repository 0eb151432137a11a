"""
Loads manifests from YAML or JSON into `Resource` and `ResourceList` objects.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from kubeconverge.errors import ManifestError
from kubeconverge.resources import Resource, ResourceList
from kubeconverge.tools.types import Manifest

SUFFIXES = (".json", ".yaml", ".yml")


def parse(data: bytes, source: str | None = None) -> Resource | ResourceList:
    """
    Parse a JSON document into a resource or list of resources.
    """

    try:
        return to_resource(json.loads(data), source)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {source or 'input'}: {exc}") from exc


def parse_yaml(text: str, source: str | None = None) -> Resource | ResourceList:
    """
    Parse a YAML stream into a resource or list of resources. A stream with more than one document is returned as a
    `ResourceList`; empty documents are ignored.
    """

    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML in {source or 'input'}: {exc}") from exc

    if len(documents) == 1:
        return to_resource(documents[0], source)
    return ResourceList([to_resource(doc, source) for doc in documents], source=source)


def to_resource(data: Any, source: str | None = None) -> Resource | ResourceList:
    """
    Convert a deserialized manifest into a resource. A manifest of kind `List` (or any other kind ending with
    `List` that has `items`) and a plain list become a `ResourceList`.
    """

    if isinstance(data, list):
        return ResourceList([to_resource(item, source) for item in data], source=source)
    if not isinstance(data, dict):
        raise ManifestError(f"Expected a mapping in {source or 'input'}, got {type(data).__name__}")
    if str(data.get("kind", "")).endswith("List") and isinstance(data.get("items"), list):
        return ResourceList([to_resource(item, source) for item in data["items"]], source=source)
    return Resource.load(Manifest(data))


def load_file(path: Path) -> Resource | ResourceList:
    """
    Load the manifests in a `.json`, `.yaml` or `.yml` file.
    """

    logger.debug("Loading manifests from '{}'", path)
    if path.suffix == ".json":
        return parse(path.read_bytes(), str(path))
    if path.suffix in (".yaml", ".yml"):
        return parse_yaml(path.read_text(), str(path))
    raise ManifestError(f"Unknown file type {path.suffix!r} of '{path}'")


def load_paths(paths: list[Path]) -> list[tuple[Path, Resource | ResourceList]]:
    """
    Load all manifests from the given files and directories. Directories are not searched recursively; the files
    in a directory are loaded in alphabetical order.
    """

    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(item for item in path.iterdir() if item.is_file() and item.suffix in SUFFIXES))
        else:
            files.append(path)

    logger.trace("Files to load: {}", files)
    return [(file, load_file(file)) for file in files]
