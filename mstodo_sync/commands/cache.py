"""Cache commands - reset the delta cache and show cached lists."""

from typing import Optional

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


class ResetCacheCommand:
    """Delete the delta cache so the next sync starts cold."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config)

    def run(self) -> bool:
        try:
            removed = self.engine.reset_cache()
        finally:
            self.engine.context.close()

        if removed:
            print(f"🗑️  Removed delta cache {self.config.cache_path}")
        else:
            print("No delta cache to remove.")
        print("💡 The next sync will fetch every task again.")
        return True


class ListsCommand:
    """Print the cached task lists and their task counts."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config)

    def run(self) -> bool:
        try:
            collection = self.engine.cached_lists()
        finally:
            self.engine.context.close()

        if not collection.lists:
            print("No cached task lists. Run 'mstodo-sync sync' first.")
            return True

        print(f"📋 {len(collection)} cached list(s), {collection.total_tasks} task(s)")
        for task_list in collection:
            live = [task for task in task_list.tasks.values() if not task.removed]
            open_count = sum(1 for task in live if not task.completed)
            marker = " (default)" if task_list.list_id == self.config.list_id else ""
            print(f"   • {task_list.name}{marker}: {open_count} open / {len(live)} total")
            if self.verbose:
                print(f"     id: {task_list.list_id}")
        return True
