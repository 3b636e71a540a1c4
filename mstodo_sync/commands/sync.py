"""Sync command - run delta sync and reconcile tracked tasks."""

import logging
from typing import Optional

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


class SyncCommand:
    """Command for synchronizing the vault with Microsoft To Do."""

    def __init__(self, config: SyncConfig, config_path: Optional[str] = None,
                 verbose: bool = False, engine: Optional[SyncEngine] = None):
        self.config = config
        self.config_path = config_path
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)
        self.engine = engine or SyncEngine(config, config_path=config_path, logger=self.logger)

    def run(self, reset: bool = False) -> bool:
        """Run the sync command."""
        if not self.config.vault_path:
            print("No Obsidian vault configured. Set vault.path in the config file.")
            self.engine.context.close()
            return False

        print("\n🔄 Syncing Microsoft To Do" + (" (cache reset)" if reset else ""))
        try:
            result = self.engine.sync_all(force_reset=reset)
        finally:
            self.engine.context.close()

        print(f"✅ Updated {result.updated_count} task(s)")
        print(f"   ⬆️  Pushed:  {result.pushed}")
        print(f"   ⬇️  Pulled:  {result.pulled}")
        print(f"   ⏭️  Skipped: {result.skipped}")
        if result.failed:
            print(f"   ❌ Failed:  {result.failed}")
        if result.failed_lists:
            print(f"⚠️  {len(result.failed_lists)} list(s) could not be fetched: "
                  f"{', '.join(result.failed_lists)}")
        if self.config.summary_path:
            print(f"📝 Summary written to {self.config.summary_path}")

        return not result.failed and not result.failed_lists
