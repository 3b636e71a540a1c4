"""Add-missing command - import untracked remote tasks into the vault."""

from typing import Optional

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


class AddMissingCommand:
    """Append anchored blocks for remote tasks that have no local anchor yet."""

    def __init__(self, config: SyncConfig, config_path: Optional[str] = None,
                 verbose: bool = False, engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config, config_path=config_path)

    def run(self, target_path: Optional[str] = None) -> bool:
        target = target_path or self.config.inbox_path
        try:
            count = self.engine.add_missing_local_tasks(target_path)
        finally:
            self.engine.context.close()

        if count:
            print(f"📥 Added {count} task(s) to {target}")
        else:
            print("✅ Every remote task is already tracked.")
        return True
