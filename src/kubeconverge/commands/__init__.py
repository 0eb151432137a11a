"""
kubeconverge applies Kubernetes and OpenShift manifests to a cluster. Resources that already exist are only updated
if they differ from the manifest, and missing resources are created.
"""

from enum import Enum
import sys

from loguru import logger
from typer import Option

from kubeconverge.tools.typer import new_typer

app = new_typer(help=__doc__)


from . import apply  # noqa: F401,E402


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


LOG_FORMAT = "<level>{level: <8}</level> {message}"
DEBUG_LOG_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> <cyan>{name}:{line}</cyan> {message}"


@app.callback()
def _callback(
    log_level: LogLevel = Option(
        LogLevel.INFO, "--log-level", "-l", envvar="KUBECONVERGE_LOG_LEVEL", help="The log level to use."
    ),
) -> None:
    # Timestamps and source locations only at the debug and trace levels.
    verbose = log_level in (LogLevel.TRACE, LogLevel.DEBUG)
    logger.remove()
    logger.add(sys.stderr, level=log_level.name, format=DEBUG_LOG_FORMAT if verbose else LOG_FORMAT, diagnose=verbose)
