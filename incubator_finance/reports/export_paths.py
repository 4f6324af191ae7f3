"""
Export File Paths

Derives export file names from certificate numbers. Certificate numbers are
caller supplied, so every character outside ``A-Z a-z 0-9 . _ -`` becomes an
underscore and the result must stay inside the export directory.
"""

import re
from pathlib import Path

from ..grants.exceptions import ExportPathError

UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_file_stem(name: str) -> str:
    """File stem for a certificate number, e.g. ``UC/2024/7`` -> ``UC_2024_7``."""
    stem = UNSAFE_FILE_CHARS.sub("_", name or "").lstrip(".")
    return stem or "certificate"


def export_file_path(output_dir: Path, name: str, suffix: str) -> Path:
    """Path of an export file inside ``output_dir``.

    Raises:
        ExportPathError: The derived path escapes the export directory
    """
    output_dir = Path(output_dir)
    output_path = output_dir / f"{safe_file_stem(name)}{suffix}"

    root = output_dir.resolve()
    if root not in output_path.resolve().parents:
        raise ExportPathError(name)

    return output_path
