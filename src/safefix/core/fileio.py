"""Text file helpers shared by the executor, backups and rollback.

Content is read and written as UTF-8 with ``surrogateescape`` and no newline
translation, so a read followed by a write reproduces the original bytes.
"""

from __future__ import annotations

import hashlib
import os
import random
from pathlib import Path

ENCODING = "utf-8"
ERRORS = "surrogateescape"


def read_text(path: Path) -> str:
    with open(path, "r", encoding=ENCODING, errors=ERRORS, newline="") as f:
        return f.read()


def write_text_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` in a single rename.

    Symlinks are followed: the file they point at is replaced and the link
    itself is left in place.
    """
    path = Path(os.path.realpath(path))
    tmp = path.with_name(f".{path.name}.safefix_tmp_{os.getpid()}_{random.randint(1000, 9999)}")
    try:
        with open(tmp, "w", encoding=ENCODING, errors=ERRORS, newline="") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp, path.stat().st_mode & 0o7777)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def sha256_of(path: Path) -> str:
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()
