"""
Timoni operator: applies Timoni bundles that are stored in Kubernetes Secrets of type `timoni.sh/bundle` with
`timoni bundle apply`.
"""

from enum import Enum
import sys
from loguru import logger
from typer import Option

from timoni_operator.config import OperatorConfig
from timoni_operator.tools.typer import new_typer


app = new_typer(help=__doc__)


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@app.callback()
def _callback(
    log_level: LogLevel = Option(LogLevel.INFO, "--log-level", "-l", help="The log level to use."),
) -> None:
    logger.remove()
    logger.add(sys.stderr, level=log_level.name)


ConfigOption = Option(
    None,
    "--config",
    "-c",
    envvar="TIMONI_OPERATOR_CONFIG",
    help=f"The operator configuration file. Defaults to the closest '{OperatorConfig.FILENAME}', if any.",
)

InClusterOption = Option(
    False, help="Use the in-cluster Kubernetes configuration. The --kubeconfig and --context options are ignored."
)

KubeconfigOption = Option(None, help="The kubeconfig file to use. Defaults to $KUBECONFIG or ~/.kube/config.")

ContextOption = Option(None, help="The kubeconfig context to use.")


from . import reconcile  # noqa: F401,E402
from . import render  # noqa: F401,E402
from . import run  # noqa: F401,E402
