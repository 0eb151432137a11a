from typing import Any, NewType

Manifest = NewType("Manifest", dict[str, Any])
""" The JSON representation of a Kubernetes or OpenShift object, as loaded from a file or returned by the API. """

Manifests = NewType("Manifests", list[Manifest])
""" An ordered list of manifests, e.g. the objects of a template. """

LabelSelector = dict[str, str]
""" An equality-based label selector, like the `spec.selector` of a ReplicationController. """
