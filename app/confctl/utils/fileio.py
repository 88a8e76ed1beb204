"""Atomic file writes.

Persisted records are written to a temporary file in the target's
directory and then moved into place with os.replace(), so readers never
observe a half-written file.
"""

import hashlib
import os
from pathlib import Path
from tempfile import NamedTemporaryFile


def write_atomic(path: Path, data: bytes) -> Path:
    """Write bytes to a file atomically.

    Args:
        path: Destination file. Parent directories are created.
        data: Content to write.

    Returns:
        The destination path.

    Raises:
        OSError: If the file cannot be written. The temporary file is
            removed before the error propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            prefix=f".{path.name}.",
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(data)
        os.replace(str(tmp_path), str(path))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise
    return path


def sha256_file(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file's content.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_tree(path: Path) -> str:
    """Content digest of a file, or of a directory tree.

    Directory digests cover each file's relative path and content, in
    sorted order, so they change when any file is added, removed or edited.

    Raises:
        OSError: If any file cannot be read.
    """
    if not path.is_dir():
        return sha256_file(path)

    digest = hashlib.sha256()
    for child in sorted(p for p in path.rglob("*") if p.is_file()):
        digest.update(str(child.relative_to(path)).encode("utf-8"))
        digest.update(b"\0")
        digest.update(sha256_file(child).encode("ascii"))
    return digest.hexdigest()
