"""
Local Task Extractor: finds anchored task blocks across the vault.
"""

import logging
from typing import Dict, Optional, Set

from ..core.models import LocalTaskRecord
from .parser import iter_task_blocks
from .vault import VaultDocuments


class LocalTaskExtractor:
    """Builds the ``anchor -> LocalTaskRecord`` view of a vault.

    When an anchor occurs in several documents the one with the newest
    modification time wins; equal times go to the lexicographically
    smallest vault-relative path.
    """

    def __init__(self, vault: VaultDocuments, logger: Optional[logging.Logger] = None):
        self.vault = vault
        self.logger = logger or logging.getLogger(__name__)

    def extract(self) -> Dict[str, LocalTaskRecord]:
        records: Dict[str, LocalTaskRecord] = {}

        for rel_path in self.vault.iter_markdown_files():
            try:
                text = self.vault.read_text(rel_path)
                modified = self.vault.modified_time(rel_path)
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Skipping unreadable document %s: %s", rel_path, exc)
                continue

            for block in iter_task_blocks(text):
                record = LocalTaskRecord(
                    anchor_id=block.anchor_id,
                    modified_time=modified,
                    raw_text=block.text,
                    path=rel_path,
                    line_number=block.start,
                )
                current = records.get(block.anchor_id)
                if current is None or _supersedes(record, current):
                    if current is not None:
                        self.logger.debug(
                            "Anchor %s found in %s and %s; using %s",
                            block.anchor_id, current.path, rel_path, record.path,
                        )
                    records[block.anchor_id] = record

        self.logger.debug("Extracted %d anchored tasks", len(records))
        return records

    def anchor_ids(self) -> Set[str]:
        return set(self.extract())


def _supersedes(candidate: LocalTaskRecord, current: LocalTaskRecord) -> bool:
    if candidate.modified_time != current.modified_time:
        return candidate.modified_time > current.modified_time
    return candidate.path < current.path
