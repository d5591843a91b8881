"""
Representation of Timoni bundles that are distributed through Kubernetes Secrets, and the helpers to write the CUE
files contained in such a Secret to disk so they can be passed to `timoni bundle apply`.
"""

import base64
import binascii
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from kubernetes.client import V1Secret

from timoni_operator.tools.fs import check_path_segment
from timoni_operator.tools.types import Manifest, SecretData


@dataclass(frozen=True)
class NamespacedName:
    """
    Identifies a namespaced Kubernetes object.
    """

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ManifestFragment:
    """
    A single CUE file of a bundle, named after the Secret data key it was read from.
    """

    key: str
    content: bytes


@dataclass
class BundleSecret:
    """
    The parts of a Kubernetes Secret that are relevant to decide whether it is a bundle and what it contains.
    """

    identity: NamespacedName
    type: str
    data: SecretData

    @staticmethod
    def from_v1_secret(secret: V1Secret) -> "BundleSecret":
        """
        Create a `BundleSecret` from a Secret returned by the Kubernetes API client. The API client returns the data
        values base64 encoded.
        """

        data = {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        return BundleSecret(
            identity=NamespacedName(secret.metadata.namespace, secret.metadata.name),
            type=secret.type or "Opaque",
            data=SecretData(data),
        )

    @staticmethod
    def from_manifest(manifest: Manifest) -> "BundleSecret":
        """
        Create a `BundleSecret` from a Secret manifest, e.g. loaded from a YAML file. Like with `kubectl apply`, keys
        in `stringData` take precedence over the same keys in `data`.

        Raises:
            ValueError: If the manifest is not a Secret, has no name or contains data that is not valid base64.
        """

        if manifest.get("apiVersion") != "v1" or manifest.get("kind") != "Secret":
            raise ValueError(f"Expected a v1/Secret, got {manifest.get('apiVersion')}/{manifest.get('kind')}")

        metadata: dict[str, Any] = manifest.get("metadata") or {}
        if not metadata.get("name"):
            raise ValueError("Secret manifest has no metadata.name")
        identity = NamespacedName(str(metadata.get("namespace") or "default"), str(metadata["name"]))

        try:
            data = {key: base64.b64decode(value, validate=True) for key, value in (manifest.get("data") or {}).items()}
        except binascii.Error as exc:
            raise ValueError(f"Secret {identity} has an invalid base64 value in data: {exc}") from exc
        data.update({key: value.encode("utf-8") for key, value in (manifest.get("stringData") or {}).items()})
        return BundleSecret(
            identity=identity,
            type=manifest.get("type") or "Opaque",
            data=SecretData(data),
        )

    def is_bundle(self, bundle_type: str) -> bool:
        return self.type == bundle_type

    def fragments(self, suffix: str) -> list[ManifestFragment]:
        """
        Return the manifest fragments of the bundle, i.e. all data entries whose key ends with *suffix*, sorted by
        key. Other entries are ignored.
        """

        return [ManifestFragment(key, self.data[key]) for key in sorted(self.data) if key.endswith(suffix)]


def write_fragments(directory: Path, fragments: Iterable[ManifestFragment]) -> list[Path]:
    """
    Write the *fragments* verbatim into *directory*, one file per fragment named after its key. The paths of the
    written files are returned in the same order as the fragments.

    All keys are validated before anything is written, so a bundle with an unsafe key does not leave any files
    behind.

    Raises:
        UnsafePathSegmentError: If a fragment key is not a plain file name.
        OSError: If a file could not be written.
    """

    fragments = list(fragments)
    for fragment in fragments:
        check_path_segment(fragment.key)

    files = []
    for fragment in fragments:
        file = directory / fragment.key
        file.write_bytes(fragment.content)
        files.append(file)

    return files
