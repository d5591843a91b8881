from pathlib import Path

import pytest

from timoni_operator.tools.fs import UnsafePathSegmentError, check_path_segment, find_config_file


def test__check_path_segment() -> None:
    assert check_path_segment("bundle.cue") == "bundle.cue"
    assert check_path_segment("..bundle.cue") == "..bundle.cue"
    for name in ("", ".", "..", "a/b.cue", "../b.cue", "a\\b.cue", "a\0.cue"):
        with pytest.raises(UnsafePathSegmentError):
            check_path_segment(name)


def test__find_config_file__searches_parents(tmp_path: Path) -> None:
    (tmp_path / "operator.yaml").write_text("{}")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config_file("operator.yaml", nested) == tmp_path / "operator.yaml"
    assert find_config_file("missing-operator-config.yaml", nested, required=False) is None
    with pytest.raises(FileNotFoundError):
        find_config_file("missing-operator-config.yaml", nested)
