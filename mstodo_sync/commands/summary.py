"""Summary command - render the cached lists into a note."""

from typing import Optional

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


class SummaryCommand:
    def __init__(self, config: SyncConfig, verbose: bool = False,
                 engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config)

    def run(self, output: Optional[str] = None) -> bool:
        try:
            written = self.engine.generate_summary_document(output)
        finally:
            self.engine.context.close()
        print(f"📝 Task summary written to {written}")
        return True


class TodayCommand:
    """Print open tasks and tasks completed today, grouped by list."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config)

    def run(self, output: Optional[str] = None) -> bool:
        try:
            content = self.engine.today_tasks(output)
        finally:
            self.engine.context.close()

        if not content:
            print("No open tasks in the cache. Run 'mstodo-sync sync' first.")
        elif output:
            print(f"📅 Today's tasks written to {output}")
        else:
            print(content, end='')
        return True
