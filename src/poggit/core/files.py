from __future__ import annotations

import os
import shutil
from pathlib import Path


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def safe_copy_atomic(src: Path, dst: Path) -> None:
    ensure_directory(dst.parent)
    temp_path = dst.parent / f".{dst.name}.tmp"
    shutil.copyfile(src, temp_path)
    os.replace(temp_path, dst)


def write_bytes_atomic(dst: Path, data: bytes) -> None:
    ensure_directory(dst.parent)
    temp_path = dst.parent / f".{dst.name}.tmp"
    temp_path.write_bytes(data)
    os.replace(temp_path, dst)


def write_text_atomic(dst: Path, text: str) -> None:
    write_bytes_atomic(dst, text.encode("utf-8"))
