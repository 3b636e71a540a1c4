"""
Obsidian vault document access.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from ..core.exceptions import VaultNotFoundError
from ..utils.io import atomic_write
from .parser import document_newline, match_newlines


# Directories to skip
SKIP_DIRS = {'.obsidian', '.trash', '.git', 'node_modules'}


class VaultDocuments:
    """Reads, writes and enumerates the markdown documents of one vault.

    Documents are addressed by vault-relative paths using forward slashes.
    """

    def __init__(self, vault_path: str, logger: Optional[logging.Logger] = None):
        self.root = Path(os.path.abspath(os.path.expanduser(vault_path)))
        self.logger = logger or logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return self.root.name

    def validate(self) -> None:
        if not self.root.is_dir():
            raise VaultNotFoundError(f"Vault directory not found: {self.root}")

    def abs_path(self, rel_path: str) -> Path:
        return self.root / rel_path

    def relative_path(self, path: str) -> str:
        """Vault-relative form of ``path`` (absolute or already relative)."""
        candidate = Path(os.path.expanduser(path))
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root.resolve())
            except ValueError:
                candidate = Path(os.path.relpath(candidate, self.root))
        return candidate.as_posix()

    def iter_markdown_files(self) -> List[str]:
        """
        List all markdown files in the vault.

        Returns:
            Sorted vault-relative paths
        """
        markdown_files = []
        for root, dirs, files in os.walk(self.root):
            dirs[:] = [d for d in dirs if d not in SKIP_DIRS]
            for file in files:
                if file.endswith('.md'):
                    full_path = Path(root) / file
                    markdown_files.append(full_path.relative_to(self.root).as_posix())
        return sorted(markdown_files)

    def exists(self, rel_path: str) -> bool:
        return self.abs_path(rel_path).is_file()

    def read_text(self, rel_path: str) -> str:
        # newline='' keeps CRLF notes intact through a read/replace/write cycle
        with open(self.abs_path(rel_path), 'r', encoding='utf-8', newline='') as handle:
            return handle.read()

    def write_text(self, rel_path: str, content: str) -> bool:
        """Replace the whole document content; returns False on failure."""
        ok = atomic_write(self.abs_path(rel_path), content)
        if ok:
            self.logger.debug("Wrote %s", rel_path)
        return ok

    def append_text(self, rel_path: str, content: str) -> bool:
        """Append ``content`` (written with ``\\n``) in the note's newline style."""
        existing = self.read_text(rel_path) if self.exists(rel_path) else ""
        content = match_newlines(content, existing)
        if existing and not existing.endswith('\n'):
            existing += document_newline(existing)
        return self.write_text(rel_path, existing + content)

    def modified_time(self, rel_path: str) -> datetime:
        mtime = os.path.getmtime(self.abs_path(rel_path))
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def obsidian_url(self, rel_path: str) -> str:
        """``obsidian://`` deep link used as the linked resource URL."""
        return f"obsidian://open?vault={quote(self.name, safe='')}&file={quote(rel_path, safe='')}"
