from pathlib import Path

import pytest

from timoni_operator.config import OperatorConfig, OperatorSettings


def test__OperatorConfig__load__defaults_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = OperatorConfig.load()

    assert config.file is None
    assert config.settings == OperatorSettings()
    assert config.settings.control_namespace == "kube-system"
    assert config.settings.bundle_type == "timoni.sh/bundle"
    assert config.settings.manifest_suffix == ".cue"


def test__OperatorConfig__load__from_file(tmp_path: Path) -> None:
    file = tmp_path / OperatorConfig.FILENAME
    file.write_text(
        "timoni_binary: /usr/local/bin/timoni\n"
        "timoni_extra_args: [--kube-context, prod]\n"
        "apply_timeout_seconds: 0\n"
        "apply_empty_bundles: false\n"
        "workers: 2\n"
        "requeue_base_delay_seconds: 0.5\n"
    )

    config = OperatorConfig.load(file)

    assert config.file == file
    assert config.settings.timoni_binary == "/usr/local/bin/timoni"
    assert config.settings.timoni_extra_args == ["--kube-context", "prod"]
    assert config.settings.get_apply_timeout() is None
    assert config.settings.apply_empty_bundles is False
    assert config.settings.workers == 2
    assert config.settings.requeue_base_delay_seconds == 0.5
    assert config.settings.control_namespace == "kube-system"


def test__OperatorConfig__load__empty_file(tmp_path: Path) -> None:
    file = tmp_path / OperatorConfig.FILENAME
    file.write_text("")

    assert OperatorConfig.load(file).settings == OperatorSettings()


def test__OperatorConfig__load__rejects_zero_workers(tmp_path: Path) -> None:
    file = tmp_path / OperatorConfig.FILENAME
    file.write_text("workers: 0\n")

    with pytest.raises(ValueError):
        OperatorConfig.load(file)
