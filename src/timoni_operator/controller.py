"""
Wires the #BundleReconciler into a kopf operator. kopf takes care of watching Secrets, of running handlers in a
bounded thread pool, of never handling the same Secret twice at the same time, of retries and of stopping on
SIGINT/SIGTERM.
"""

from typing import Any, Callable

import kopf
from kubernetes.client.api_client import ApiClient
from loguru import logger

from timoni_operator.bundle import NamespacedName
from timoni_operator.config import OperatorSettings
from timoni_operator.reconciler import BundleReconciler

ANNOTATION_PREFIX = "operator.timoni.sh"
"""
kopf stores its handler progress and the last handled state in annotations with this prefix on each bundle Secret.
"""


def retry_delay(settings: OperatorSettings, retry: int) -> float:
    """
    Returns the delay before retrying a failed reconciliation for the *retry*-th time (starting at zero).
    """

    return min(settings.requeue_max_delay_seconds, settings.requeue_base_delay_seconds * 2**retry)


def bundle_secret_filter(settings: OperatorSettings) -> Callable[..., bool]:
    """
    Returns a kopf `when=` callback that only accepts Secrets of the bundle type.
    """

    def is_bundle_secret(body: kopf.Body, **_: Any) -> bool:
        return body.get("type") == settings.bundle_type

    return is_bundle_secret


def bundle_secret_handler(reconciler: BundleReconciler, settings: OperatorSettings) -> Callable[..., None]:
    """
    Returns the kopf handler that reconciles a single Secret. Failed reconciliations are raised as
    #kopf.TemporaryError so that kopf retries them with an exponential delay.
    """

    def apply_bundle(namespace: str, name: str, retry: int, **_: Any) -> None:
        result = reconciler.reconcile(NamespacedName(namespace, name))
        if result.requeue:
            delay = retry_delay(settings, retry)
            logger.debug("Retrying Secret {}/{} in {}s ({})", namespace, name, delay, result.outcome.value)
            raise kopf.TemporaryError(str(result.error), delay=delay)

    return apply_bundle


def kubernetes_login(client: ApiClient) -> Callable[..., kopf.ConnectionInfo]:
    """
    Returns a kopf login handler that hands kopf the credentials *client* was configured with, so that the watch
    and the reconciler talk to the same cluster as the same user.
    """

    def login(**_: Any) -> kopf.ConnectionInfo:
        config = client.configuration
        # Calls the refresh hook of the in-cluster config, so a rotated service account token is picked up.
        header = config.get_api_key_with_prefix("authorization")
        scheme, _sep, token = header.rpartition(" ") if header else (None, None, None)
        return kopf.ConnectionInfo(
            server=config.host,
            ca_path=config.ssl_ca_cert,
            insecure=not config.verify_ssl,
            username=config.username or None,
            password=config.password or None,
            scheme=scheme or None,
            token=token or None,
            certificate_path=config.cert_file,
            private_key_path=config.key_file,
        )

    return login


def create_registry(
    client: ApiClient, reconciler: BundleReconciler, settings: OperatorSettings
) -> kopf.OperatorRegistry:
    """
    Registers the bundle handler for created, updated and (on operator startup) already existing Secrets. Deleted
    Secrets are not handled, so kopf adds no finalizers.
    """

    registry = kopf.OperatorRegistry()
    handler = bundle_secret_handler(reconciler, settings)
    when = bundle_secret_filter(settings)
    for on in (kopf.on.create, kopf.on.update, kopf.on.resume):
        on("v1", "secrets", registry=registry, when=when)(handler)
    kopf.on.login(registry=registry)(kubernetes_login(client))
    return registry


def create_operator_settings(settings: OperatorSettings) -> kopf.OperatorSettings:
    operator_settings = kopf.OperatorSettings()
    operator_settings.execution.max_workers = settings.workers
    operator_settings.watching.server_timeout = settings.watch_timeout_seconds
    operator_settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=ANNOTATION_PREFIX)
    operator_settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=ANNOTATION_PREFIX)
    return operator_settings


def run_operator(client: ApiClient, reconciler: BundleReconciler, settings: OperatorSettings) -> None:
    """
    Run the operator until it receives SIGINT or SIGTERM. Applies that are in flight at that time run to completion
    or until they time out.
    """

    logger.info("Watching Secrets of type '{}' in namespace '{}'", settings.bundle_type, settings.control_namespace)
    kopf.run(
        registry=create_registry(client, reconciler, settings),
        settings=create_operator_settings(settings),
        namespaces=[settings.control_namespace],
        standalone=True,
        liveness_endpoint=settings.liveness_endpoint,
    )
