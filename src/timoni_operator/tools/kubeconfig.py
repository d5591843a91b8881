from pathlib import Path

from kubernetes.client.api_client import ApiClient
from kubernetes.config.incluster_config import load_incluster_config
from kubernetes.config.kube_config import load_kube_config
from loguru import logger


def load_api_client(in_cluster: bool = False, kubeconfig: Path | None = None, context: str | None = None) -> ApiClient:
    """
    Load the Kubernetes client configuration and return an API client for it.

    Args:
        in_cluster: Use the service account of the Pod the process is running in. *kubeconfig* and *context* are
            ignored in that case.
        kubeconfig: Path to a kubeconfig file. Falls back to `KUBECONFIG` or `~/.kube/config`.
        context: The kubeconfig context to use. Defaults to the current context.
    """

    if in_cluster:
        logger.info("Using in-cluster configuration.")
        load_incluster_config()
    else:
        logger.info("Using kubeconfig '{}' (context: {}).", kubeconfig or "<default>", context or "<current>")
        load_kube_config(config_file=str(kubeconfig) if kubeconfig else None, context=context)

    return ApiClient()
