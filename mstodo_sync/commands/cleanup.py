"""Cleanup command - forget anchors that no longer exist in the vault."""

from typing import Optional

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


class CleanupCommand:
    def __init__(self, config: SyncConfig, config_path: Optional[str] = None,
                 verbose: bool = False, engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config, config_path=config_path)

    def run(self) -> bool:
        try:
            removed = self.engine.cleanup_task_ids()
        finally:
            self.engine.context.close()

        if removed:
            print(f"🧹 Removed {removed} stale task id mapping(s)")
        else:
            print("✅ No stale task id mappings.")
        return True
