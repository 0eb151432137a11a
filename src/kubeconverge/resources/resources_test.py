from kubeconverge.resources import (
    DeploymentConfig,
    Pod,
    ReplicationController,
    Resource,
    ResourceList,
    Service,
    Template,
)


def test__Resource__load_returns_registered_subclass() -> None:
    assert type(Resource.load({"kind": "Service", "metadata": {"name": "web"}})) is Service
    assert type(Resource.load({"kind": "Template"})) is Template
    assert type(Resource.load({"kind": "Widget"})) is Resource


def test__Resource__kinds() -> None:
    assert "PodBearing" not in Resource.kinds()
    assert {"Namespace", "OAuthClient", "ReplicationController", "Service", "Template"} <= set(Resource.kinds())


def test__Resource__with_namespace() -> None:
    resource = Resource.load(
        {
            "kind": "Service",
            "metadata": {"name": "web", "namespace": "own", "uid": "1", "resourceVersion": "2"},
            "status": {},
        }
    )

    assert resource.with_namespace("shop") == {"kind": "Service", "metadata": {"name": "web", "namespace": "shop"}}
    assert resource.with_namespace(None) == {"kind": "Service", "metadata": {"name": "web"}}
    assert resource.namespace == "own"
    assert resource.resource_version == "2"


def test__PodBearing__secret_volume_names() -> None:
    volumes = [
        {"name": "a", "secret": {"secretName": "tls"}},
        {"name": "b", "emptyDir": {}},
        {"name": "c", "secret": {"secretName": "db"}},
    ]
    pod = Resource.load({"kind": "Pod", "spec": {"volumes": volumes}})
    dc = Resource.load({"kind": "DeploymentConfig", "spec": {"template": {"spec": {"volumes": volumes}}}})

    assert isinstance(pod, Pod) and list(pod.secret_volume_names()) == ["tls", "db"]
    assert isinstance(dc, DeploymentConfig) and list(dc.secret_volume_names()) == ["tls", "db"]


def test__ReplicationController__selector_defaults_to_template_labels() -> None:
    rc = Resource.load({"kind": "ReplicationController", "spec": {"template": {"metadata": {"labels": {"app": "x"}}}}})

    assert isinstance(rc, ReplicationController)
    assert rc.selector == {"app": "x"}


def test__ResourceList__can_contain_itself() -> None:
    items = ResourceList()
    items.append(items)

    assert len(items) == 1
    assert next(iter(items)) is items
