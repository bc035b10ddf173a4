"""Filesystem discovery of DICOM files to use as frame identities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from .config import ExtensionMode


def _matches_extension(name: str, mode: ExtensionMode) -> bool:
    if mode == ExtensionMode.DCM:
        return name.endswith(".dcm")
    if mode == ExtensionMode.ALL_DCM:
        return name.lower().endswith(".dcm")
    if mode == ExtensionMode.NO_EXT:
        return not Path(name).suffix
    return name.lower().endswith(".dcm") or not Path(name).suffix


def _walk(root: Path, mode: ExtensionMode) -> Iterator[Path]:
    for entry in sorted(root.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            yield from _walk(entry, mode)
        elif entry.is_file() and _matches_extension(entry.name, mode):
            yield entry


def discover_dicom_files(root: Path, extension_mode: ExtensionMode = ExtensionMode.ALL) -> list[str]:
    """Return identities (path strings) of DICOM-ish files under *root*, sorted."""

    root = root.resolve()
    if root.is_file():
        return [str(root)]
    return [str(path) for path in _walk(root, ExtensionMode(extension_mode))]
