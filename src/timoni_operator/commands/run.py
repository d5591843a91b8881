from pathlib import Path
from typing import Optional

import kopf
from loguru import logger
from typer import Option

from timoni_operator.config import OperatorConfig
from timoni_operator.controller import run_operator
from timoni_operator.reconciler import BundleReconciler
from timoni_operator.tools.kubeconfig import load_api_client
from timoni_operator.tools.timoni import Timoni

from . import ConfigOption, ContextOption, InClusterOption, KubeconfigOption, app


@app.command()
def run(
    config: Optional[Path] = ConfigOption,
    in_cluster: bool = InClusterOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
    context: Optional[str] = ContextOption,
    workers: Optional[int] = Option(None, min=1, help="Number of concurrent reconciliations. Overrides the config."),
    liveness: Optional[str] = Option(
        None, help="Serve a liveness probe at this URL, e.g. http://0.0.0.0:8080/healthz. Overrides the config."
    ),
    kopf_debug: bool = Option(False, help="Enable the debug logs of the kopf framework."),
) -> None:
    """
    Watch Secrets and apply every Timoni bundle Secret in the control namespace whenever it changes. Stops on
    SIGINT or SIGTERM.
    """

    operator_config = OperatorConfig.load(config)
    settings = operator_config.settings
    if workers is not None:
        settings.workers = workers
    if liveness is not None:
        settings.liveness_endpoint = liveness

    if not Timoni(settings.timoni_binary).is_available():
        logger.warning("'{}' was not found on the PATH, applying bundles will fail", settings.timoni_binary)

    kopf.configure(verbose=True, debug=kopf_debug)
    client = load_api_client(in_cluster=in_cluster, kubeconfig=kubeconfig, context=context)
    run_operator(client, BundleReconciler.create(client, settings), settings)
