"""
The reconciler converges the cluster towards the Timoni bundle described by a single Secret.

It does not watch anything by itself; it is handed the identity of a Secret that changed, and reports back whether
the reconciliation should be retried.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Protocol

import urllib3.exceptions
from kubernetes.client import CoreV1Api
from kubernetes.client.api_client import ApiClient
from kubernetes.client.rest import ApiException
from loguru import logger

from timoni_operator.bundle import BundleSecret, NamespacedName, write_fragments
from timoni_operator.config import OperatorSettings
from timoni_operator.tools.fs import UnsafePathSegmentError
from timoni_operator.tools.timoni import Timoni, TimoniError

TEMPDIR_PREFIX = "timoni-operator"


class ReconcileError(Exception):
    """
    Base class for errors that end a reconciliation.
    """


class NotFound(ReconcileError):
    """
    The Secret does not exist (anymore).
    """


class FetchError(ReconcileError):
    """
    The Secret could not be read from the Kubernetes API.
    """


class WriteError(ReconcileError):
    """
    The bundle could not be written to temporary storage.
    """


class ApplyError(ReconcileError):
    """
    `timoni bundle apply` failed or could not be started.
    """


class ReconcileOutcome(str, Enum):
    SKIP = "skip"
    APPLIED = "applied"
    TRANSIENT_ERROR = "transient-error"
    FATAL_ERROR = "fatal-error"

    @property
    def is_error(self) -> bool:
        return self in (ReconcileOutcome.TRANSIENT_ERROR, ReconcileOutcome.FATAL_ERROR)


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    error: ReconcileError | None = None

    @property
    def requeue(self) -> bool:
        """
        Whether the caller should retry the reconciliation later.
        """

        return self.outcome.is_error


class StateStore(Protocol):
    """
    Read access to the Secrets in the cluster.
    """

    def get(self, identity: NamespacedName) -> BundleSecret:
        """
        Raises:
            NotFound: If the Secret does not exist.
            FetchError: If the Secret could not be retrieved for any other reason.
        """


class KubernetesStateStore:
    """
    Reads Secrets via the Kubernetes API.
    """

    def __init__(self, client: ApiClient) -> None:
        self._api = CoreV1Api(client)

    def get(self, identity: NamespacedName) -> BundleSecret:
        try:
            secret = self._api.read_namespaced_secret(name=identity.name, namespace=identity.namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise NotFound(f"Secret {identity} not found") from exc
            raise FetchError(f"Cannot read Secret {identity}: {exc.status} {exc.reason}") from exc
        except urllib3.exceptions.HTTPError as exc:
            raise FetchError(f"Cannot read Secret {identity}: {exc}") from exc
        return BundleSecret.from_v1_secret(secret)


class BundleReconciler:
    """
    Applies the Timoni bundle contained in a Secret with `timoni bundle apply`.

    Args:
        store: Where to read the Secrets from.
        timoni: The `timoni` CLI wrapper used to apply the bundle.
        settings: Operator settings, for the control namespace, bundle type and manifest suffix.
    """

    def __init__(self, store: StateStore, timoni: Timoni, settings: OperatorSettings | None = None) -> None:
        self._store = store
        self._timoni = timoni
        self._settings = settings or OperatorSettings()

    @staticmethod
    def create(client: ApiClient, settings: OperatorSettings) -> "BundleReconciler":
        """
        Create a reconciler that reads Secrets from the cluster behind *client*.
        """

        timoni = Timoni(
            binary=settings.timoni_binary,
            extra_args=settings.timoni_extra_args,
            timeout=settings.get_apply_timeout(),
        )
        return BundleReconciler(KubernetesStateStore(client), timoni, settings)

    def reconcile(self, identity: NamespacedName) -> ReconcileResult:
        """
        Reconcile the Secret identified by *identity*. Never raises for expected failures, instead the error is
        returned as part of the result.
        """

        if identity.namespace != self._settings.control_namespace:
            return ReconcileResult(ReconcileOutcome.SKIP)

        try:
            secret = self._store.get(identity)
        except NotFound:
            # TODO: Uninstall the bundle once we track which instances a Secret has applied.
            logger.debug("Secret {} no longer exists, nothing to do", identity)
            return ReconcileResult(ReconcileOutcome.SKIP)
        except FetchError as exc:
            logger.error("Cannot reconcile Secret {}: {}", identity, exc)
            return ReconcileResult(ReconcileOutcome.TRANSIENT_ERROR, exc)

        if not secret.is_bundle(self._settings.bundle_type):
            logger.trace("Secret {} is of type '{}', ignoring", identity, secret.type)
            return ReconcileResult(ReconcileOutcome.SKIP)

        fragments = secret.fragments(self._settings.manifest_suffix)
        if not fragments and not self._settings.apply_empty_bundles:
            logger.info(
                "Bundle Secret {} contains no '*{}' entries, skipping", identity, self._settings.manifest_suffix
            )
            return ReconcileResult(ReconcileOutcome.SKIP)

        try:
            tempdir = TemporaryDirectory(prefix=TEMPDIR_PREFIX)
        except OSError as exc:
            logger.error("Cannot create temporary directory to reconcile Secret {}: {}", identity, exc)
            return ReconcileResult(
                ReconcileOutcome.TRANSIENT_ERROR, WriteError(f"Cannot create temporary directory: {exc}")
            )

        with tempdir:
            try:
                files = write_fragments(Path(tempdir.name), fragments)
            except (OSError, UnsafePathSegmentError) as exc:
                logger.error("Cannot write bundle of Secret {}: {}", identity, exc)
                return ReconcileResult(ReconcileOutcome.FATAL_ERROR, WriteError(str(exc)))

            logger.info(
                "Applying bundle from Secret {} ({} file(s): {})",
                identity,
                len(files),
                ", ".join(f.key for f in fragments) or "none",
            )
            try:
                self._timoni.bundle_apply(files)
            except TimoniError as exc:
                logger.error("Failed to apply bundle from Secret {}: {}", identity, exc)
                return ReconcileResult(ReconcileOutcome.FATAL_ERROR, ApplyError(str(exc)))

        logger.info("Applied bundle from Secret {}", identity)
        return ReconcileResult(ReconcileOutcome.APPLIED)
