from kubeconverge.errors import ValidationError
from kubeconverge.outcome import Action, Applied, ApplyResult, Failed, ResourceRef, Skipped


def test__ResourceRef__str() -> None:
    assert str(ResourceRef("Service", "shop", "web")) == "Service shop/web"
    assert str(ResourceRef("Namespace", None, "shop")) == "Namespace shop"


def test__ApplyResult__summary() -> None:
    ref = ResourceRef("Service", "shop", "web")
    result = ApplyResult(
        [
            Applied(ref, Action.CREATED),
            Applied(ref, Action.UNCHANGED),
            Skipped(ref, "Services are ignored"),
            Applied(ref, Action.CREATED),
            Failed(ref, ValidationError("boom")),
        ]
    )

    assert result.summary() == "2 created, 1 unchanged, 1 skipped, 1 failed"
    assert not result.ok
    assert ApplyResult().summary() == "nothing to apply"
