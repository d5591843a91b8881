from pathlib import Path
import sys
from typing import Optional

from typer import Argument

from timoni_operator.bundle import NamespacedName
from timoni_operator.config import OperatorConfig
from timoni_operator.reconciler import BundleReconciler
from timoni_operator.tools.kubeconfig import load_api_client

from . import ConfigOption, ContextOption, InClusterOption, KubeconfigOption, app


@app.command()
def reconcile(
    namespace: str = Argument(..., help="The namespace of the Secret."),
    name: str = Argument(..., help="The name of the Secret."),
    config: Optional[Path] = ConfigOption,
    in_cluster: bool = InClusterOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
    context: Optional[str] = ContextOption,
) -> None:
    """
    Reconcile a single Secret once and exit. Exits with status 1 if the reconciliation failed.
    """

    settings = OperatorConfig.load(config).settings
    client = load_api_client(in_cluster=in_cluster, kubeconfig=kubeconfig, context=context)
    result = BundleReconciler.create(client, settings).reconcile(NamespacedName(namespace, name))

    print(result.outcome.value)
    if result.requeue:
        sys.exit(1)
