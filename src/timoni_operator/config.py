from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from timoni_operator.tools.fs import find_config_file


@dataclass
class OperatorSettings:
    """
    Settings for the operator that are stored in a `timoni-operator.yaml` file. Every setting has a default, so an
    empty file (or no file at all) gives the standard behaviour.
    """

    control_namespace: str = "kube-system"
    """
    Only Secrets in this namespace are considered for reconciliation.
    """

    bundle_type: str = "timoni.sh/bundle"
    """
    The Secret `type` that marks a Secret as a Timoni bundle.
    """

    manifest_suffix: str = ".cue"
    """
    Only Secret data keys with this suffix are written out and passed to `timoni bundle apply`.
    """

    timoni_binary: str = "timoni"
    """
    Name or path of the `timoni` executable.
    """

    timoni_extra_args: list[str] = field(default_factory=list)
    """
    Additional arguments appended to every `timoni bundle apply` invocation, e.g. `["--kube-context", "prod"]`.
    """

    apply_timeout_seconds: int | None = 600
    """
    Kill `timoni bundle apply` if it runs longer than this. `None` or `0` disables the timeout.
    """

    apply_empty_bundles: bool = True
    """
    Whether to run `timoni bundle apply` for a bundle Secret that contains no CUE files at all. If disabled, such
    Secrets are skipped.
    """

    workers: int = 4
    """
    Number of Secrets that can be reconciled concurrently. A single Secret is never reconciled twice at the same time.
    """

    requeue_base_delay_seconds: float = 1.0
    """
    Delay before the first retry of a failed reconciliation. Doubles with every consecutive failure of the same
    change to a Secret.
    """

    requeue_max_delay_seconds: float = 300.0
    """
    Upper bound for the retry delay of a failed reconciliation.
    """

    watch_timeout_seconds: int = 300
    """
    Server-side timeout of a single watch request, after which the watch is restarted.
    """

    liveness_endpoint: str | None = None
    """
    If set, serve a liveness probe at this URL, e.g. `http://0.0.0.0:8080/healthz`.
    """

    def get_apply_timeout(self) -> int | None:
        return self.apply_timeout_seconds or None


@dataclass
class OperatorConfig:
    """
    Wrapper for the operator configuration file.
    """

    FILENAME = "timoni-operator.yaml"

    file: Path | None
    settings: OperatorSettings

    @staticmethod
    def load(file: Path | None = None, /) -> "OperatorConfig":
        """
        Load the operator configuration from the given or the default configuration file. If the configuration file
        does not exist, the default settings are returned.
        """

        from databind.json import load as deser
        from yaml import safe_load

        if file is None:
            file = find_config_file(OperatorConfig.FILENAME, required=False)
        if file is None:
            logger.debug("No '{}' found, using default settings", OperatorConfig.FILENAME)
            return OperatorConfig(None, OperatorSettings())

        logger.debug("Loading operator configuration from '{}'", file)
        settings = deser(safe_load(file.read_text()) or {}, OperatorSettings, filename=str(file))

        if settings.workers < 1:
            raise ValueError(f"{file}: 'workers' must be at least 1, got {settings.workers}")
        if settings.requeue_max_delay_seconds < settings.requeue_base_delay_seconds:
            logger.warning(
                "'requeue_max_delay_seconds' ({}) is lower than 'requeue_base_delay_seconds' ({})",
                settings.requeue_max_delay_seconds,
                settings.requeue_base_delay_seconds,
            )

        return OperatorConfig(file, settings)
