"""Local Markdown file access with path safety checks.

Only ``.md`` / ``.markdown`` files are read or written, paths containing
``..`` segments are refused, and when a *root* is configured every
resolved path must stay inside it.
"""

from __future__ import annotations

from pathlib import Path, PurePath

from notiondocs.errors import FileAccessError
from notiondocs.observability import get_logger

log = get_logger("notiondocs.files")

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".markdown")
DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024  # 10 MiB


class LocalFileReader:
    """Read and write Markdown files on the local filesystem.

    Parameters
    ----------
    root:
        Optional base directory.  Relative paths are resolved against it
        and no path may escape it.
    allowed_extensions:
        Lower-case suffixes accepted by :meth:`is_safe_path`.
    max_size_bytes:
        Files larger than this are refused by :meth:`read_text`.
    """

    def __init__(
        self,
        root: str | Path | None = None,
        allowed_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    ) -> None:
        if max_size_bytes <= 0:
            raise ValueError(f"max_size_bytes must be > 0, got {max_size_bytes}")
        self._root = Path(root).expanduser().resolve() if root is not None else None
        self._extensions = tuple(ext.lower() for ext in allowed_extensions)
        self._max_size = max_size_bytes

    def _check(self, path: str | Path) -> tuple[Path | None, str]:
        """Return ``(resolved_path, "")`` or ``(None, reason)``."""
        raw = str(path)
        if not raw.strip():
            return None, "empty path"
        if ".." in PurePath(raw).parts:
            return None, "parent directory traversal"
        if PurePath(raw).suffix.lower() not in self._extensions:
            return None, f"extension must be one of {', '.join(self._extensions)}"

        candidate = Path(raw).expanduser()
        if self._root is not None:
            resolved = (self._root / candidate).resolve()
            if not resolved.is_relative_to(self._root):
                return None, "path escapes base directory"
        else:
            resolved = candidate.resolve()
        return resolved, ""

    def is_safe_path(self, path: str | Path) -> bool:
        """``True`` if *path* passes the extension, traversal and root checks."""
        resolved, _ = self._check(path)
        return resolved is not None

    def resolve(self, path: str | Path) -> Path:
        """Validate *path* and return it resolved.

        Raises
        ------
        FileAccessError
            If the path is rejected.
        """
        resolved, reason = self._check(path)
        if resolved is None:
            raise FileAccessError(
                message=f"Invalid file path: {path} ({reason})",
                context={"path": str(path), "reason": reason},
            )
        return resolved

    def read_text(self, path: str | Path) -> str:
        """Read a Markdown file as UTF-8.

        Raises
        ------
        FileAccessError
            If the path is rejected, missing, too large or unreadable.
        """
        resolved = self.resolve(path)
        if not resolved.is_file():
            raise FileAccessError(
                message=f"File not found: {path}",
                context={"path": str(path), "reason": "not found"},
            )
        size = resolved.stat().st_size
        if size > self._max_size:
            raise FileAccessError(
                message=f"File {path} is {size} bytes, maximum {self._max_size} bytes",
                context={"path": str(path), "reason": "too large", "size": size},
            )
        try:
            text = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileAccessError(
                message=f"Failed to read file: {path}",
                context={"path": str(path), "reason": str(exc)},
                cause=exc,
            ) from exc
        log.debug(
            "Read markdown file",
            extra={"extra_fields": {"path": str(resolved), "size": size}},
        )
        return text

    def write_text(self, path: str | Path, text: str) -> Path:
        """Write *text* as UTF-8, creating parent directories.

        Returns the resolved path written to.
        """
        resolved = self.resolve(path)
        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            resolved.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise FileAccessError(
                message=f"Failed to write file: {path}",
                context={"path": str(path), "reason": str(exc)},
                cause=exc,
            ) from exc
        log.debug(
            "Wrote markdown file",
            extra={"extra_fields": {"path": str(resolved), "size": len(text)}},
        )
        return resolved
