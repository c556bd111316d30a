from __future__ import annotations

import hashlib
import os
import re
import tempfile
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Iterator


UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
SAFE_RESOURCE_ID_RE = re.compile(r"[^A-Za-z0-9_-]")
DEFAULT_BASENAME = "output"
DEFAULT_CHAPTER_PREFIX = "chapter"


def sanitize_path_segment(segment: str, default: str = DEFAULT_BASENAME) -> str:
    """Make ``segment`` usable as a single file or directory name."""
    cleaned = segment.strip().replace("\x00", "")
    cleaned = UNSAFE_FILENAME_RE.sub("_", cleaned)
    cleaned = cleaned.replace("..", "_")
    cleaned = re.sub(r"^[._]+|[._]+$", "", cleaned)
    cleaned = re.sub("_+", "_", cleaned)
    return cleaned or default


def sanitize_output_basename(name: str) -> str:
    return sanitize_path_segment(name, DEFAULT_BASENAME)


def sanitize_chapter_prefix(prefix: str) -> str:
    """Keep the user's prefix as typed, minus characters that would leave the directory."""
    cleaned = UNSAFE_FILENAME_RE.sub("_", prefix.strip()).replace("..", "_")
    return cleaned or DEFAULT_CHAPTER_PREFIX


def safe_resource_name(resource_id: str) -> str:
    return SAFE_RESOURCE_ID_RE.sub("_", resource_id)


def unique_output_basename(path: Path, existing: Iterable[str]) -> str:
    taken = set(existing)
    basename = sanitize_output_basename(path.stem or DEFAULT_BASENAME)
    candidate = basename
    counter = 1
    while candidate in taken:
        candidate = f"{basename}-{counter}"
        counter += 1
    return candidate


def anchor_slug(heading: str) -> str:
    slug = re.sub(r"\s+", "-", heading.lower().strip())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug.strip("-")


def generate_run_id(prefix: str = "run") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def _write_atomically(path: Path, data: str | bytes, **open_kwargs: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = "wb" if isinstance(data, bytes) else "w"
    tmp = tempfile.NamedTemporaryFile(mode, delete=False, dir=path.parent, **open_kwargs)
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    _write_atomically(path, data, encoding=encoding, newline="")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    _write_atomically(path, data)


def iter_epub_files(paths: Iterable[Path]) -> Iterator[Path]:
    seen: set[Path] = set()
    for path in paths:
        if path.is_file():
            candidates = [path]
        elif path.is_dir():
            candidates = sorted(path.rglob("*.epub"))
        else:
            continue
        for candidate in candidates:
            resolved = candidate.resolve()
            if candidate.suffix.lower() == ".epub" and resolved not in seen:
                seen.add(resolved)
                yield candidate
