from typing import Any

from typer import Typer


def new_typer(**kwargs: Any) -> Typer:
    return Typer(no_args_is_help=True, pretty_exceptions_enable=False, **kwargs)


def parse_key_value_pairs(values: list[str], option: str) -> dict[str, str]:
    """
    Parse a list of `KEY=VALUE` strings as passed to a repeatable command-line *option* into a dictionary.
    """

    from typer import BadParameter

    result: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint=option)
        result[key] = value
    return result
