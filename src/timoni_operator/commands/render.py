from pathlib import Path
import shlex
import sys
from typing import Optional

import yaml
from loguru import logger
from typer import Argument, Option

from timoni_operator.bundle import BundleSecret, write_fragments
from timoni_operator.config import OperatorConfig
from timoni_operator.tools.fs import UnsafePathSegmentError, check_path_segment
from timoni_operator.tools.timoni import Timoni
from timoni_operator.tools.types import Manifest

from . import ConfigOption, app


@app.command()
def render(
    file: Path = Argument(..., help="A YAML file containing one or more Secret manifests."),
    output: Path = Option(Path("."), "--output", "-o", help="The directory to write the bundles to."),
    config: Optional[Path] = ConfigOption,
) -> None:
    """
    Write the CUE files of every bundle Secret in a YAML file to `<output>/<namespace>/<name>/` and print the
    `timoni bundle apply` command the operator would run for it. Useful to debug bundles without a cluster.
    """

    settings = OperatorConfig.load(config).settings
    timoni = Timoni(binary=settings.timoni_binary, extra_args=settings.timoni_extra_args)

    try:
        secrets = load_bundle_secrets(file)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        logger.error("Cannot load Secrets from '{}': {}", file, exc)
        sys.exit(1)

    bundles = [s for s in secrets if s.is_bundle(settings.bundle_type)]
    if not bundles:
        logger.error("No Secret of type '{}' found in '{}'", settings.bundle_type, file)
        sys.exit(1)

    for secret in bundles:
        if secret.identity.namespace != settings.control_namespace:
            logger.warning(
                "Secret {} is not in namespace '{}', the operator would ignore it",
                secret.identity,
                settings.control_namespace,
            )

        try:
            directory = (
                output / check_path_segment(secret.identity.namespace) / check_path_segment(secret.identity.name)
            )
            directory.mkdir(parents=True, exist_ok=True)
            files = write_fragments(directory, secret.fragments(settings.manifest_suffix))
        except (OSError, UnsafePathSegmentError) as exc:
            logger.error("Cannot write bundle of Secret {}: {}", secret.identity, exc)
            sys.exit(1)

        logger.info("Wrote {} file(s) for Secret {} to '{}'", len(files), secret.identity, directory)
        print(" ".join(map(shlex.quote, timoni.bundle_apply_command(files))))


def load_bundle_secrets(file: Path) -> list[BundleSecret]:
    """
    Load all Secrets from a YAML file. Documents that are not Secrets are skipped.

    Raises:
        ValueError: If a Secret manifest is invalid.
    """

    result = []
    for document in yaml.safe_load_all(file.read_text()):
        if not isinstance(document, dict):
            continue
        manifest = Manifest(document)
        if manifest.get("apiVersion") != "v1" or manifest.get("kind") != "Secret":
            logger.trace("Skipping {}/{} in '{}'", manifest.get("apiVersion"), manifest.get("kind"), file)
            continue
        result.append(BundleSecret.from_manifest(manifest))
    return result
