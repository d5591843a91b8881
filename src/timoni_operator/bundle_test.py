import base64
from pathlib import Path

import pytest
from kubernetes.client import V1ObjectMeta, V1Secret

from timoni_operator.bundle import BundleSecret, ManifestFragment, NamespacedName, write_fragments
from timoni_operator.tools.fs import UnsafePathSegmentError
from timoni_operator.tools.types import Manifest, SecretData


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def test__NamespacedName__str() -> None:
    assert str(NamespacedName("kube-system", "bundle")) == "kube-system/bundle"


def test__BundleSecret__fragments__filters_by_suffix_and_sorts_by_key() -> None:
    secret = BundleSecret(
        identity=NamespacedName("kube-system", "apps"),
        type="timoni.sh/bundle",
        data=SecretData({"c.cue": b"z", "b.txt": b"y", "a.cue": b"x"}),
    )

    assert secret.fragments(".cue") == [ManifestFragment("a.cue", b"x"), ManifestFragment("c.cue", b"z")]
    assert secret.fragments(".txt") == [ManifestFragment("b.txt", b"y")]


def test__BundleSecret__is_bundle() -> None:
    secret = BundleSecret(NamespacedName("kube-system", "apps"), "Opaque", SecretData({}))
    assert not secret.is_bundle("timoni.sh/bundle")
    secret.type = "timoni.sh/bundle"
    assert secret.is_bundle("timoni.sh/bundle")


def test__BundleSecret__from_v1_secret__decodes_data() -> None:
    secret = V1Secret(
        metadata=V1ObjectMeta(name="apps", namespace="kube-system"),
        type="timoni.sh/bundle",
        data={"bundle.cue": _b64(b"bundle: {}\n")},
    )

    bundle = BundleSecret.from_v1_secret(secret)
    assert bundle.identity == NamespacedName("kube-system", "apps")
    assert bundle.type == "timoni.sh/bundle"
    assert bundle.data == {"bundle.cue": b"bundle: {}\n"}


def test__BundleSecret__from_v1_secret__without_data() -> None:
    secret = V1Secret(metadata=V1ObjectMeta(name="empty", namespace="default"), data=None)

    bundle = BundleSecret.from_v1_secret(secret)
    assert bundle.type == "Opaque"
    assert bundle.data == {}


def test__BundleSecret__from_manifest__string_data_takes_precedence() -> None:
    manifest = Manifest(
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "apps", "namespace": "kube-system"},
            "type": "timoni.sh/bundle",
            "data": {"a.cue": _b64(b"from data"), "b.cue": _b64(b"only data")},
            "stringData": {"a.cue": "from stringData"},
        }
    )

    bundle = BundleSecret.from_manifest(manifest)
    assert bundle.identity == NamespacedName("kube-system", "apps")
    assert bundle.data == {"a.cue": b"from stringData", "b.cue": b"only data"}


def test__BundleSecret__from_manifest__rejects_other_kinds() -> None:
    with pytest.raises(ValueError):
        BundleSecret.from_manifest(Manifest({"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "x"}}))


def test__write_fragments__writes_bytes_verbatim(tmp_path: Path) -> None:
    fragments = [ManifestFragment("a.cue", b"\x00binary\xff"), ManifestFragment("c.cue", b"z")]

    files = write_fragments(tmp_path, fragments)

    assert files == [tmp_path / "a.cue", tmp_path / "c.cue"]
    assert (tmp_path / "a.cue").read_bytes() == b"\x00binary\xff"
    assert (tmp_path / "c.cue").read_bytes() == b"z"


@pytest.mark.parametrize("key", ["../escape.cue", "sub/dir.cue", "..\\escape.cue", "/etc/passwd.cue"])
def test__write_fragments__rejects_unsafe_keys_before_writing(tmp_path: Path, key: str) -> None:
    directory = tmp_path / "bundle"
    directory.mkdir()

    with pytest.raises(UnsafePathSegmentError):
        write_fragments(directory, [ManifestFragment("a.cue", b"x"), ManifestFragment(key, b"y")])

    assert list(directory.iterdir()) == []
    assert sorted(p.name for p in tmp_path.iterdir()) == ["bundle"]


@pytest.mark.parametrize(
    "manifest",
    [
        {"apiVersion": "v1", "kind": "Secret", "metadata": {"namespace": "kube-system"}},
        {"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "apps"}, "data": {"a.cue": "not base64!"}},
    ],
)
def test__BundleSecret__from_manifest__rejects_invalid_secrets(manifest: dict) -> None:
    with pytest.raises(ValueError):
        BundleSecret.from_manifest(Manifest(manifest))
