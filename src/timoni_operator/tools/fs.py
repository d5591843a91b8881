from typing import Literal, overload
from pathlib import Path


class UnsafePathSegmentError(ValueError):
    """
    Raised when a name that is supposed to be a single file name would resolve outside of its parent directory.
    """


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[False] = False) -> Path | None: ...


@overload
def find_config_file(filename: str, cwd: Path | None = None, required: Literal[True] = True) -> Path: ...


def find_config_file(filename: str, cwd: Path | None = None, required: bool = True) -> Path | None:
    """
    Find a file with the given *filename* in the given *cwd* or any of its parent directories.
    """

    if cwd is None:
        cwd = Path.cwd()

    for directory in [cwd, *cwd.parents]:
        file = directory / filename
        if file.is_file():
            return file

    if required:
        raise FileNotFoundError(f"Could not find '{filename}' in '{cwd}' or any of its parent directories.")

    return None


def check_path_segment(name: str) -> str:
    """
    Ensure that *name* can be joined to a directory without escaping it, i.e. that it is a single, non-empty path
    segment that is not `.` or `..`. Returns *name* unchanged.

    Raises:
        UnsafePathSegmentError: If *name* contains a path separator or is a relative directory reference.
    """

    if name in ("", ".", "..") or "/" in name or "\\" in name or "\0" in name:
        raise UnsafePathSegmentError(f"{name!r} is not a valid file name")
    return name
