"""
Expands OpenShift templates into the objects they describe.

A template declares a list of `parameters` and a list of `objects`. Every occurrence of `${NAME}` in a string of
an object is substituted with the parameter's value; a string that consists only of `${{NAME}}` is replaced by the
parameter's value parsed as YAML, which allows non-string values (e.g. `replicas: ${{REPLICAS}}`).
"""

from copy import deepcopy
from dataclasses import dataclass
import re
import secrets
import string
from typing import Annotated, Any

import yaml
from databind.core.settings import Alias, ExtraKeys
from databind.json import load as deser
from loguru import logger

from kubeconverge.client import ClusterClient
from kubeconverge.errors import TemplateExpansionError
from kubeconverge.policy import ReconcilePolicy
from kubeconverge.resources import Resource, ResourceList, Template
from kubeconverge.tools.types import Manifest, Manifests

_PARAMETER_REF = re.compile(r"\$\{\{(?P<raw>[A-Za-z0-9_]+)\}\}|\$\{(?P<str>[A-Za-z0-9_]+)\}")
_GENERATOR_TOKEN = re.compile(r"(\[[^\]]+\]|\\[wdaA]|[^\[\\])(?:\{(\d+)\})?")
_GENERATOR_CLASSES = {
    "\\w": string.ascii_letters + string.digits + "_",
    "\\d": string.digits,
    "\\a": string.ascii_letters + string.digits,
    "\\A": string.punctuation,
}


@ExtraKeys()
@dataclass
class TemplateParameter:
    """
    A parameter declared by a template.
    """

    name: str
    value: str | None = None
    displayName: str | None = None
    description: str | None = None
    required: bool = False

    generate: str | None = None
    """ If set to `expression`, a value is generated from the expression in `from_` if no value is given. """

    from_: Annotated[str | None, Alias("from")] = None

    @staticmethod
    def load(data: dict[str, Any], template: str) -> "TemplateParameter":
        data = dict(data)
        if data.get("value") is not None:
            data["value"] = str(data["value"])
        return deser(data, TemplateParameter, filename=f"template {template!r}")


class TemplateProcessor:
    """
    Expands templates, either locally or using the cluster's template processing endpoint, depending on the
    `process_templates_locally` policy option.
    """

    def __init__(self, client: ClusterClient, policy: ReconcilePolicy) -> None:
        self._client = client
        self._policy = policy

    def process(self, template: Template, namespace: str, parameters: dict[str, str], source: str) -> ResourceList:
        """
        Expand the *template* into a list of resources.

        Args:
            template: The template to expand.
            namespace: The namespace that the template is processed in, if it is processed by the cluster.
            parameters: Parameter values that take precedence over the values declared in the template.
            source: Provenance label of the template, used for the resulting list.
        Raises:
            TemplateExpansionError: If a parameter has no value and `fail_on_missing_parameter_value` is enabled.
            ClusterOperationError: If the cluster fails to process the template.
        """

        if self._policy.process_templates_locally:
            logger.debug("Processing template {} locally", template.name)
            objects = self.process_locally(template, parameters)
        else:
            logger.debug("Processing template {} in namespace {}", template.name, namespace)
            if self._policy.fail_on_missing_parameter_value:
                self.check_parameters(template, parameters)
            processed = self._client.process_template(namespace, _with_parameter_values(template, parameters))
            objects = Manifests([Manifest(obj) for obj in processed.get("objects") or []])

        logger.info("Template {} from {} expanded into {} object(s)", template.name, source, len(objects))
        return ResourceList([Resource.load(obj) for obj in objects], source=f"{source} (template {template.name})")

    def process_locally(self, template: Template, parameters: dict[str, str] | None = None) -> Manifests:
        """
        Expand the *template* without calling the cluster.
        """

        values = self.resolve_parameters(template, parameters or {})
        labels = template.labels
        result = Manifests([])
        for obj in template.objects:
            obj = Manifest(_substitute(deepcopy(obj), values))
            if labels:
                metadata = obj.setdefault("metadata", {})
                metadata["labels"] = {**labels, **(metadata.get("labels") or {})}
            result.append(obj)
        return result

    def check_parameters(self, template: Template, overrides: dict[str, str]) -> None:
        """
        Raise a `TemplateExpansionError` for the first parameter of the *template* that neither has a value nor can
        be generated, as the server would expand it to an empty string.
        """

        for data in template.parameters:
            param = TemplateParameter.load(data, template.name)
            if param.name in overrides or param.value is not None:
                continue
            if param.generate == "expression" and param.from_:
                continue
            raise TemplateExpansionError(template.name, f"no value for parameter {param.name!r}")

    def resolve_parameters(self, template: Template, overrides: dict[str, str]) -> dict[str, str]:
        """
        Determine the value of every parameter of the *template*.
        """

        values: dict[str, str] = {}
        for data in template.parameters:
            param = TemplateParameter.load(data, template.name)
            if param.name in overrides:
                values[param.name] = overrides[param.name]
            elif param.value is not None:
                values[param.name] = param.value
            elif param.generate == "expression" and param.from_:
                values[param.name] = generate_from_expression(param.from_)
            elif self._policy.fail_on_missing_parameter_value:
                raise TemplateExpansionError(template.name, f"no value for parameter {param.name!r}")
            else:
                logger.warning("Template {} has no value for parameter {}, using ''", template.name, param.name)
                values[param.name] = ""
        return values


def generate_from_expression(expression: str) -> str:
    """
    Generate a random string from an expression like `[a-zA-Z0-9]{16}`. Supported are character classes with
    ranges, the classes `\\w`, `\\d`, `\\a` (alphanumeric) and `\\A` (punctuation), literal characters and a `{n}`
    repetition of the preceding token.
    """

    result = []
    for match in _GENERATOR_TOKEN.finditer(expression):
        token, count = match.group(1), int(match.group(2) or 1)
        if token.startswith("["):
            alphabet = _expand_character_class(token[1:-1])
        else:
            alphabet = _GENERATOR_CLASSES.get(token, token)
        result.extend(secrets.choice(alphabet) for _ in range(count))
    return "".join(result)


def _expand_character_class(spec: str) -> str:
    chars: list[str] = []
    idx = 0
    while idx < len(spec):
        if spec[idx] == "\\" and spec[idx : idx + 2] in _GENERATOR_CLASSES:
            chars.extend(_GENERATOR_CLASSES[spec[idx : idx + 2]])
            idx += 2
        elif idx + 2 < len(spec) and spec[idx + 1] == "-":
            chars.extend(chr(c) for c in range(ord(spec[idx]), ord(spec[idx + 2]) + 1))
            idx += 3
        else:
            chars.append(spec[idx])
            idx += 1
    return "".join(dict.fromkeys(chars))


def _substitute(value: Any, values: dict[str, str]) -> Any:
    match value:
        case dict():
            return {key: _substitute(item, values) for key, item in value.items()}
        case list():
            return [_substitute(item, values) for item in value]
        case str():
            whole = _PARAMETER_REF.fullmatch(value)
            if whole and whole.group("raw") in values:
                return yaml.safe_load(values[whole.group("raw")])
            return _PARAMETER_REF.sub(lambda m: _replace(m, values), value)
        case _:
            return value


def _replace(match: re.Match[str], values: dict[str, str]) -> str:
    name = match.group("raw") or match.group("str")
    return values.get(name, match.group(0))


def _with_parameter_values(template: Template, overrides: dict[str, str]) -> Manifest:
    manifest = Manifest(deepcopy(template.manifest))
    for param in manifest.get("parameters") or []:
        if param.get("name") in overrides:
            param["value"] = overrides[param["name"]]
    return manifest
