from collections.abc import Sequence
from pathlib import Path


def find_config_file(filenames: Sequence[str], cwd: Path | None = None) -> Path | None:
    """
    Find the first of the given *filenames* in *cwd* or the closest of its parent directories. Within a single
    directory, the earlier names in *filenames* take precedence.
    """

    if cwd is None:
        cwd = Path.cwd()

    for directory in [cwd, *cwd.parents]:
        for filename in filenames:
            file = directory / filename
            if file.is_file():
                return file

    return None


def relative_to_basedir(path: Path, basedir: Path | None) -> Path:
    """
    Return *path* relative to *basedir*, or *path* unchanged if there is no base directory or *path* is not
    located inside of it.
    """

    if basedir is None:
        return path
    try:
        return path.absolute().relative_to(basedir.absolute())
    except ValueError:
        return path
