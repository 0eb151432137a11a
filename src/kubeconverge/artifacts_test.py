import json
from pathlib import Path

from kubeconverge.artifacts import ArtifactLogger
from kubeconverge.tools.types import Manifest

MANIFEST = Manifest({"kind": "Service", "metadata": {"name": "web", "namespace": "shop"}})


def test__ArtifactLogger__writes_json_file(tmp_path: Path) -> None:
    path = ArtifactLogger(tmp_path).log("Created Service: ", "shop", "Service", "web", MANIFEST)

    assert path == tmp_path / "shop" / "service-web.json"
    assert json.loads(path.read_text()) == MANIFEST


def test__ArtifactLogger__never_overwrites_existing_files(tmp_path: Path) -> None:
    logger = ArtifactLogger(tmp_path)

    paths = [logger.log("Updated Service: ", "shop", "Service", "web", MANIFEST) for _ in range(3)]

    assert [p.name for p in paths if p] == ["service-web.json", "service-web-1.json", "service-web-2.json"]


def test__ArtifactLogger__logs_path_relative_to_basedir(tmp_path: Path, logs: list[tuple[str, str]]) -> None:
    ArtifactLogger(tmp_path / "out", basedir=tmp_path).log("Created Service: ", "shop", "Service", "web", MANIFEST)

    assert ("INFO", f"Created Service: {Path('out/shop/service-web.json')}") in logs


def test__ArtifactLogger__does_not_raise_if_writing_fails(tmp_path: Path, logs: list[tuple[str, str]]) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("")

    path = ArtifactLogger(blocker).log("Created Service: ", "shop", "Service", "web", MANIFEST)

    assert path is None
    assert any(level == "WARNING" and "Failed to log Service shop/web" in message for level, message in logs)
