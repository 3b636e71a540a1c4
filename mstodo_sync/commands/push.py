"""Push and pull commands for a single note."""

from typing import Optional, Set

from ..core.models import SyncConfig
from ..sync.engine import SyncEngine


def parse_line_spec(spec: Optional[str]) -> Optional[Set[int]]:
    """Parse ``"3,5-7"`` into ``{3, 5, 6, 7}``; None selects every line."""
    if not spec:
        return None

    lines: Set[int] = set()
    for part in spec.split(','):
        part = part.strip()
        if not part:
            continue
        if '-' in part:
            start, end = part.split('-', 1)
            first, last = int(start), int(end)
            if first > last:
                first, last = last, first
            lines.update(range(first, last + 1))
        else:
            lines.add(int(part))
    return lines


class PushCommand:
    """Create or update remote tasks from the task lines of one note."""

    def __init__(self, config: SyncConfig, config_path: Optional[str] = None,
                 verbose: bool = False, engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config, config_path=config_path)

    def run(self, file_path: str, lines: Optional[str] = None) -> bool:
        try:
            result = self.engine.push_document(file_path, parse_line_spec(lines))
        finally:
            self.engine.context.close()

        print(f"⬆️  {file_path}: {result.created} created, {result.updated} updated, "
              f"{result.unchanged} unchanged")
        if result.failed:
            print(f"   ❌ {result.failed} task(s) failed")
        return result.failed == 0


class PullCommand:
    """Refresh tracked task blocks of one note from the cache."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 engine: Optional[SyncEngine] = None):
        self.config = config
        self.verbose = verbose
        self.engine = engine or SyncEngine(config)

    def run(self, file_path: str, lines: Optional[str] = None) -> bool:
        try:
            updated = self.engine.pull_document(file_path, parse_line_spec(lines))
        finally:
            self.engine.context.close()
        print(f"⬇️  {file_path}: {updated} task(s) updated from Microsoft To Do")
        return True
