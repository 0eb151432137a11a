from dataclasses import dataclass, field
from enum import Enum

from kubeconverge.errors import KubeconvergeError
from kubeconverge.tools.types import Manifest


class Action(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    RECREATED = "recreated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ResourceRef:
    """
    Identifies a resource that was applied, and where it came from.
    """

    kind: str
    namespace: str | None
    name: str
    source: str | None = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


@dataclass
class Applied:
    """
    The resource was converged. For `Action.UNCHANGED`, no mutating call was made.
    """

    ref: ResourceRef
    action: Action
    result: Manifest | None = None


@dataclass
class Skipped:
    """
    The resource was not applied because of the reconcile policy.
    """

    ref: ResourceRef
    reason: str


@dataclass
class Failed:
    """
    Applying the resource failed.
    """

    ref: ResourceRef
    error: KubeconvergeError


Outcome = Applied | Skipped | Failed


@dataclass
class ApplyResult:
    """
    The outcomes of applying a batch of resources, in the order the resources were applied.
    """

    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def applied(self) -> list[Applied]:
        return [o for o in self.outcomes if isinstance(o, Applied)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def failed(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        """
        Returns a one-line summary of the outcomes, e.g. `2 created, 1 unchanged, 1 skipped`.
        """

        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            match outcome:
                case Applied(action=action):
                    key = action.value
                case Skipped():
                    key = "skipped"
                case Failed():
                    key = "failed"
            counts[key] = counts.get(key, 0) + 1
        return ", ".join(f"{count} {key}" for key, count in counts.items()) or "nothing to apply"
