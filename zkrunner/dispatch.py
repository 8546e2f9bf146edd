"""
zkrunner.dispatch
=================

Resolve an inbound reference (deep link, share target, document picker
result) to raw bytes, whatever its origin.

Schemes
-------
- ``file://…`` or a bare absolute path → read the file directly.
- ``content://…`` → opaque platform handle. A `ContentResolver` copies it to
  a private scratch file, the copy is read, and the copy is deleted whether
  or not the read succeeded.
- ``<app scheme>://…`` → reserved for in-app linking; resolves to ``None``.
- anything else → UnsupportedSource.

This module never parses JSON; "can the bytes be read" and "are the bytes a
proof" are separate questions (see zkrunner.codec).
"""

from __future__ import annotations

import asyncio
import inspect
import shutil
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Protocol, Union
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from .errors import RunnerError, SourceUnreadable, UnsupportedSource
from .logging import get_logger

log = get_logger(__name__)

__all__ = [
    "ContentResolver",
    "DirectoryContentResolver",
    "FileImportDispatcher",
    "scheme_of",
]


class ContentResolver(Protocol):
    """Platform hook that materializes a content:// handle at `dest`."""

    def copy(self, uri: str, dest: Path) -> Any: ...


class DirectoryContentResolver:
    """
    Maps ``content://<authority>/<path>`` onto ``<root>/<authority>/<path>``.
    Handles that escape `root` are refused.
    """

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root).resolve()

    def locate(self, uri: str) -> Path:
        parsed = urlparse(uri)
        rel = Path(parsed.netloc) / unquote(parsed.path).lstrip("/")
        p = (self._root / rel).resolve()
        if p != self._root and self._root not in p.parents:
            raise PermissionError(f"content handle outside provider root: {uri}")
        return p

    def copy(self, uri: str, dest: Path) -> None:
        shutil.copyfile(self.locate(uri), dest)


def scheme_of(uri: str) -> str:
    """Lower-case scheme, "" for bare paths."""
    head, sep, _ = uri.partition("://")
    return head.lower() if sep else ""


def _read_bytes(path: Path) -> bytes:
    return path.read_bytes()


class FileImportDispatcher:
    def __init__(
        self,
        *,
        scratch_dir: Union[str, Path],
        content_resolver: Optional[ContentResolver] = None,
        app_scheme: str = "zkrunner",
        temp_file_prefix: str = "temp_proof_",
    ):
        self._scratch_dir = Path(scratch_dir)
        self._resolver = content_resolver
        self._app_scheme = app_scheme.lower().rstrip(":/")
        self._temp_prefix = temp_file_prefix

    @property
    def scratch_dir(self) -> Path:
        return self._scratch_dir

    async def resolve(self, uri: str) -> Optional[bytes]:
        """
        Return the referenced bytes, or None for the (inert) application scheme.

        Raises SourceUnreadable or UnsupportedSource.
        """
        if not isinstance(uri, str) or not uri.strip():
            raise SourceUnreadable("Invalid URL provided", uri=str(uri))
        uri = uri.strip()
        scheme = scheme_of(uri)

        if scheme == "file" or (scheme == "" and uri.startswith("/")):
            data = await self._read_direct(uri)
        elif scheme == "content":
            data = await self._read_content(uri)
        elif scheme == self._app_scheme:
            log.info("import_link_ignored", uri=uri)
            return None
        else:
            log.warning("import_source_unsupported", uri=uri, scheme=scheme)
            raise UnsupportedSource(uri)

        if not data:
            raise SourceUnreadable("File appears to be empty or corrupted", uri=uri)
        log.info("import_source_read", uri=uri, scheme=scheme or "file", size=len(data))
        return data

    # -- file:// ---------------------------------------------------------------

    async def _read_direct(self, uri: str) -> bytes:
        path = Path(url2pathname(urlparse(uri).path)) if uri.lower().startswith("file://") else Path(uri)
        try:
            return await asyncio.to_thread(_read_bytes, path)
        except OSError as e:
            raise SourceUnreadable(f"Cannot read file: {e.strerror or e}", uri=uri, cause=e) from e

    # -- content:// ------------------------------------------------------------

    def _scratch_path(self) -> Path:
        return self._scratch_dir / f"{self._temp_prefix}{int(time.time() * 1000)}.json"

    @asynccontextmanager
    async def _scratch_copy(self, uri: str) -> AsyncIterator[Path]:
        """Copy `uri` into a private scratch file; always delete it on exit."""
        if self._resolver is None:
            raise SourceUnreadable("No content resolver configured", uri=uri)
        self._scratch_dir.mkdir(parents=True, exist_ok=True)
        scratch = self._scratch_path()
        try:
            try:
                result = await asyncio.to_thread(self._resolver.copy, uri, scratch)
                if inspect.isawaitable(result):
                    await result
            except RunnerError:
                raise
            except Exception as e:  # noqa: BLE001 - resolver failures are platform specific
                raise SourceUnreadable(
                    "Cannot access the selected file. Please try selecting the file again "
                    "or save it to your device storage first.",
                    uri=uri,
                    cause=e,
                ) from e
            yield scratch
        finally:
            try:
                scratch.unlink(missing_ok=True)
            except OSError as e:
                log.warning("scratch_cleanup_failed", path=str(scratch), error=str(e))

    async def _read_content(self, uri: str) -> bytes:
        async with self._scratch_copy(uri) as scratch:
            try:
                return await asyncio.to_thread(_read_bytes, scratch)
            except OSError as e:
                raise SourceUnreadable(f"Cannot read file: {e.strerror or e}", uri=uri, cause=e) from e
