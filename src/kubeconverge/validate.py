from loguru import logger

from kubeconverge.client import ClusterClient
from kubeconverge.errors import ValidationError
from kubeconverge.resources import PodBearing


def validate_dependencies(
    client: ClusterClient,
    resource: PodBearing,
    namespace: str,
    source: str | None = None,
) -> None:
    """
    Verify that every secret that is mounted as a volume by the pod spec of *resource* exists in *namespace*.

    This is checked once before the resource is created. There is no waiting for the secret to appear.

    Raises:
        ValidationError: If a secret does not exist.
        ClusterOperationError: If the lookup of a secret fails.
    """

    for secret_name in resource.secret_volume_names():
        if client.get("Secret", namespace, secret_name) is None:
            raise ValidationError(
                f"{resource.kind} {namespace}/{resource.name} mounts secret {secret_name!r} which does not exist "
                f"in namespace {namespace!r}",
                source,
            )
        logger.trace("Secret {}/{} required by {} {} exists", namespace, secret_name, resource.kind, resource.name)
