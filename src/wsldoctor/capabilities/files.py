"""Local filesystem capability with backup-before-overwrite.

Every whole-file rewrite goes through ScopedReplace:

1. the new content is written to a hidden sibling temp file, which is
   flushed, fsynced and closed on every exit path;
2. the previous version is renamed to ``<name>.backup.<UTC timestamp>``;
3. the temp file is renamed over the original.

If step 3 fails the backup is renamed back, so the original is always
recoverable. Failures surface as ConfigWriteFailedError.
"""

from __future__ import annotations

import configparser
import io
import os
import shutil
import time
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import IO

from wsldoctor.capabilities.base import SectionedConfig
from wsldoctor.core.errors import ConfigWriteFailedError, ExternalCallFailedError
from wsldoctor.core.logging import get_logger

_logger = get_logger("capabilities.files")

BACKUP_MARKER = ".backup."


def backup_name(path: Path, now: datetime | None = None) -> Path:
    """Timestamped backup path for ``path`` (not guaranteed unused)."""
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%S%fZ")
    return path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}")


def parse_sections(text: str) -> SectionedConfig:
    """Parse INI-style text, keeping section order and key case.

    A leading UTF-8 byte order mark, as written by Windows editors, is ignored.
    """
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    parser.read_string(text.removeprefix("\ufeff"))
    return SectionedConfig(
        sections={name: dict(parser.items(name, raw=True)) for name in parser.sections()}
    )


def render_sections(config: SectionedConfig) -> str:
    """Render a SectionedConfig as ``key=value`` INI text."""
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    parser.read_dict(config.sections)
    buffer = io.StringIO()
    parser.write(buffer, space_around_delimiters=False)
    return buffer.getvalue()


class ScopedReplace:
    """Context manager owning one whole-file rewrite.

    Example:
        replace = ScopedReplace(path)
        with replace as f:
            f.write(content)
        backup = replace.backup_path
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.tmp_path = path.with_name(f".{path.name}.wsldoctor-tmp")
        self.backup_path: Path | None = None
        self._stream: IO[str] | None = None

    def __enter__(self) -> IO[str]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.tmp_path, "w", encoding="utf-8")
        except OSError as e:
            raise ConfigWriteFailedError(
                f"Cannot open {self.path} for writing", detail=str(e)
            ) from e
        return self._stream

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        stream = self._stream
        assert stream is not None
        try:
            if exc is None:
                stream.flush()
                os.fsync(stream.fileno())
        except OSError as e:
            exc = e
        finally:
            stream.close()

        if exc is not None:
            self.tmp_path.unlink(missing_ok=True)
            if isinstance(exc, OSError):
                raise ConfigWriteFailedError(
                    f"Failed writing {self.path}", detail=str(exc)
                ) from exc
            return  # let the original exception propagate

        self._commit()

    def _commit(self) -> None:
        if self.path.exists() or self.path.is_symlink():
            try:
                self.backup_path = _rename_to_backup(self.path)
            except OSError as e:
                self.tmp_path.unlink(missing_ok=True)
                raise ConfigWriteFailedError(
                    f"Cannot back up {self.path}", detail=str(e)
                ) from e
        try:
            os.replace(self.tmp_path, self.path)
        except OSError as e:
            self.tmp_path.unlink(missing_ok=True)
            if self.backup_path is not None:
                os.replace(self.backup_path, self.path)
                _logger.warning("files.restored_backup", path=str(self.path))
                self.backup_path = None
            raise ConfigWriteFailedError(f"Cannot replace {self.path}", detail=str(e)) from e
        _logger.info(
            "files.replaced",
            path=str(self.path),
            backup=str(self.backup_path) if self.backup_path else None,
        )


def _rename_to_backup(path: Path) -> Path:
    target = backup_name(path)
    counter = 1
    while target.exists() or target.is_symlink():
        target = target.with_name(f"{backup_name(path).name}.{counter}")
        counter += 1
    os.rename(path, target)
    return target


class LocalFileStore:
    """FileStore implementation for the local filesystem.

    Paths are expanded (``~``) on every call.
    """

    def exists(self, path: Path) -> bool:
        return path.expanduser().exists()

    def read_text(self, path: Path) -> str:
        resolved = path.expanduser()
        try:
            return resolved.read_text(encoding="utf-8")
        except OSError as e:
            raise ExternalCallFailedError(f"Cannot read {resolved}", detail=str(e)) from e

    def write_text(self, path: Path, content: str) -> Path | None:
        replace = ScopedReplace(path.expanduser())
        with replace as f:
            f.write(content)
        return replace.backup_path

    def append_text(self, path: Path, content: str) -> Path | None:
        """Append content, rewriting the file a symlink points at rather than the link."""
        resolved = path.expanduser().resolve()
        existing = self.read_text(resolved) if resolved.exists() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        return self.write_text(resolved, existing + content)

    def read_sections(self, path: Path) -> SectionedConfig:
        text = self.read_text(path)
        try:
            return parse_sections(text)
        except configparser.Error as e:
            raise ExternalCallFailedError(
                f"Cannot parse {path.expanduser()}", detail=str(e)
            ) from e

    def write_sections(self, path: Path, config: SectionedConfig) -> Path | None:
        return self.write_text(path, render_sections(config))

    def backup(self, path: Path) -> Path:
        resolved = path.expanduser()
        try:
            target = _rename_to_backup(resolved)
        except OSError as e:
            raise ConfigWriteFailedError(f"Cannot back up {resolved}", detail=str(e)) from e
        _logger.info("files.backed_up", path=str(resolved), backup=str(target))
        return target

    def remove_tree(self, path: Path) -> None:
        resolved = path.expanduser()
        try:
            shutil.rmtree(resolved)
        except FileNotFoundError:
            return
        except OSError as e:
            raise ExternalCallFailedError(f"Cannot remove {resolved}", detail=str(e)) from e

    def iter_stale_files(self, directory: Path, max_age_days: int) -> Iterator[Path]:
        """Yield regular files under directory not accessed in max_age_days."""
        cutoff = time.time() - max_age_days * 86400
        for root, _dirs, files in os.walk(directory.expanduser()):
            for name in files:
                candidate = Path(root) / name
                try:
                    st = candidate.lstat()
                except OSError:
                    continue
                if candidate.is_symlink():
                    continue
                if st.st_atime < cutoff:
                    yield candidate

    def remove_file(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ExternalCallFailedError(f"Cannot remove {path}", detail=str(e)) from e


__all__ = [
    "BACKUP_MARKER",
    "LocalFileStore",
    "ScopedReplace",
    "backup_name",
    "parse_sections",
    "render_sections",
]
