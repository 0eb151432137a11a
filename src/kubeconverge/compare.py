"""
Compares the desired state of a resource with its live state.

The live object returned by the server is always a superset of what the user specified: the server assigns
metadata (`resourceVersion`, `uid`, ...), reports `status` and fills in defaults (e.g. a Service's `clusterIP`).
A resource is therefore considered unchanged if every value the user specified is equal to the live value.
"""

from typing import Any

from kubeconverge.resources import SERVER_METADATA_FIELDS
from kubeconverge.tools.types import Manifest

IGNORED_TOP_LEVEL_FIELDS = frozenset({"status"})


def config_equal(desired: Manifest, live: Manifest) -> bool:
    """
    Check if the user configuration in *desired* matches the *live* object.
    """

    for key, value in desired.items():
        if key in IGNORED_TOP_LEVEL_FIELDS:
            continue
        if key == "metadata":
            if not _metadata_equal(value or {}, live.get("metadata") or {}):
                return False
        elif not is_subset(value, live.get(key)):
            return False
    return True


def _metadata_equal(desired: dict[str, Any], live: dict[str, Any]) -> bool:
    for key, value in desired.items():
        if key in SERVER_METADATA_FIELDS or key == "namespace":
            continue
        if not is_subset(value, live.get(key)):
            return False
    return True


def is_subset(desired: Any, live: Any) -> bool:
    """
    Check if *desired* is contained in *live*. Mappings match if every key in *desired* matches the same key in
    *live*. Lists match element-wise and must be of the same length. Other values must be equal. A desired value of
    `None` matches a missing live value.
    """

    match desired:
        case dict():
            if desired and not isinstance(live, dict):
                return False
            return all(is_subset(value, (live or {}).get(key)) for key, value in desired.items())
        case list():
            if not desired and not live:
                return True
            if not isinstance(live, list) or len(desired) != len(live):
                return False
            return all(is_subset(a, b) for a, b in zip(desired, live))
        case None:
            return live is None or live == {} or live == []
        case _:
            return bool(desired == live)
