from dataclasses import dataclass
import json
from pathlib import Path

from loguru import logger

from kubeconverge.tools.fs import relative_to_basedir
from kubeconverge.tools.types import Manifest

CLUSTER_SCOPE_DIR = "_cluster"
""" The directory that artifacts of cluster-scoped objects (other than namespaces) are written into. """


@dataclass
class ArtifactLogger:
    """
    Writes every object that was sent to the cluster into a directory as JSON, for auditing and debugging. Files are
    laid out as `<namespace>/<kind>-<name>.json`. An existing file is never overwritten; instead, a numeric suffix is
    appended to the file name (`-1`, `-2`, ...).
    """

    log_dir: Path
    """ The directory to write artifacts into. """

    basedir: Path | None = None
    """ If set, paths are logged relative to this directory. """

    def log(self, message: str, namespace: str, kind: str, name: str, result: Manifest) -> Path | None:
        """
        Write *result* to the log directory and log the *message* along with the path of the file. Failing to write
        the file is logged as a warning and does not raise.

        Returns:
            The path of the file that was written, or `None` if it could not be written.
        """

        if not name:
            logger.warning("Not logging {} without a name", kind)
            return None

        stem = f"{kind.lower()}-{name}" if kind else name
        directory = self.log_dir / namespace
        try:
            text = json.dumps(result, indent=2, default=str)
            directory.mkdir(parents=True, exist_ok=True)
            path = self._write_new(directory, stem, text)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to log {} {}/{} to '{}': {}", kind, namespace, name, directory, exc)
            return None

        logger.info("{}{}", message, relative_to_basedir(path, self.basedir))
        return path

    @staticmethod
    def _write_new(directory: Path, stem: str, text: str) -> Path:
        """
        Write *text* into the first file `<stem>.json`, `<stem>-1.json`, ... that does not exist yet.
        """

        index = 0
        while True:
            path = directory / (f"{stem}.json" if index == 0 else f"{stem}-{index}.json")
            try:
                with path.open("x") as fp:
                    fp.write(text)
                return path
            except FileExistsError:
                index += 1
