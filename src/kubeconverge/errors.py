from dataclasses import dataclass
import textwrap


class KubeconvergeError(Exception):
    """
    Base class for errors raised while converging resources onto a cluster.
    """


@dataclass
class ValidationError(KubeconvergeError):
    """
    Raised when a resource can not be applied because it is invalid or one of its dependencies is missing. This
    error is always raised to the caller, regardless of the `throw_on_error` policy.
    """

    message: str
    source: str | None = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.message} (from {self.source})"
        return self.message


@dataclass
class ClusterOperationError(KubeconvergeError):
    """
    Raised when a call against the cluster API fails.
    """

    operation: str
    kind: str
    namespace: str | None
    name: str
    cause: Exception | None = None
    source: str | None = None

    def __str__(self) -> str:
        target = f"{self.kind} {self.namespace}/{self.name}" if self.namespace else f"{self.kind} {self.name}"
        message = f"Failed to {self.operation} {target}"
        if self.source:
            message += f" from {self.source}"
        if self.cause is not None:
            cause = str(self.cause)
            if "\n" in cause:
                message += ":\n\n" + textwrap.indent(cause, "  ")
            else:
                message += f": {cause}"
        return message


@dataclass
class TemplateExpansionError(KubeconvergeError):
    """
    Raised when a template can not be expanded, e.g. because a parameter has no value.
    """

    template: str
    message: str

    def __str__(self) -> str:
        return f"Failed to expand template {self.template!r}: {self.message}"


class ManifestError(KubeconvergeError):
    """
    Raised when a manifest can not be loaded.
    """
