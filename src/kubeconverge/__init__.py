"""
kubeconverge converges the live state of a Kubernetes or OpenShift cluster towards a set of manifests. For every
resource it looks up the live object and then creates, replaces or re-creates it as needed, leaving unchanged
objects alone.

    from kubeconverge import ApplyContext, Dispatcher, KubernetesClusterClient, ReconcilePolicy
    from kubeconverge.loader import load_file

    dispatcher = Dispatcher.default(KubernetesClusterClient.from_api_client(ApiClient()), ReconcilePolicy())
    result = dispatcher.apply(load_file(Path("app.yaml")), ApplyContext(namespace="my-app", source="app.yaml"))
"""

from .client import ClusterClient, KubernetesClusterClient
from .dispatch import Dispatcher
from .errors import ClusterOperationError, KubeconvergeError, TemplateExpansionError, ValidationError
from .outcome import Action, Applied, ApplyResult, Failed, Skipped
from .policy import ApplyContext, ReconcilePolicy
from .resources import Resource, ResourceList

__all__ = [
    "Action",
    "Applied",
    "ApplyContext",
    "ApplyResult",
    "ClusterClient",
    "ClusterOperationError",
    "Dispatcher",
    "Failed",
    "KubeconvergeError",
    "KubernetesClusterClient",
    "ReconcilePolicy",
    "Resource",
    "ResourceList",
    "Skipped",
    "TemplateExpansionError",
    "ValidationError",
]
