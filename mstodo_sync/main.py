#!/usr/bin/env python3
"""
mstodo-sync - Obsidian ↔ Microsoft To Do task synchronization.
"""

import argparse
import logging
import sys

from mstodo_sync.core.config import load_config, get_default_config_path
from mstodo_sync.core.exceptions import AuthenticationError, TodoSyncError
from mstodo_sync.commands import (
    SyncCommand,
    ResetCacheCommand,
    ListsCommand,
    AddMissingCommand,
    SummaryCommand,
    TodayCommand,
    CleanupCommand,
    PushCommand,
    PullCommand,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mstodo-sync",
        description="Bidirectional task sync between an Obsidian vault and Microsoft To Do",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mstodo-sync sync                    # Delta sync and reconcile tracked tasks
  mstodo-sync sync --reset            # Drop the cache and fetch everything again
  mstodo-sync add-missing             # Import untracked remote tasks into the inbox note
  mstodo-sync push Projects/Plan.md --lines 3,5-7
  mstodo-sync summary --output Tasks.md
  mstodo-sync today                   # Open tasks and tasks completed today
        """
    )

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {get_default_config_path()})',
        default=None
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    sync_parser = subparsers.add_parser('sync', help='Sync tasks')
    sync_parser.add_argument(
        '--reset',
        action='store_true',
        help='Delete the delta cache first and fetch every task again'
    )

    subparsers.add_parser('reset-cache', help='Delete the delta cache')

    missing_parser = subparsers.add_parser(
        'add-missing', help='Add remote tasks that have no block in the vault yet'
    )
    missing_parser.add_argument(
        '--file',
        help='Vault note to append to (default: the configured inbox note)'
    )

    summary_parser = subparsers.add_parser('summary', help='Write a summary note of all cached tasks')
    summary_parser.add_argument(
        '--output',
        help='Note to write (default: the configured summary path)'
    )

    today_parser = subparsers.add_parser('today', help='Show open tasks and tasks completed today')
    today_parser.add_argument(
        '--output',
        help='Also write them to this note'
    )

    subparsers.add_parser('cleanup', help='Forget task ids whose block no longer exists')

    push_parser = subparsers.add_parser('push', help='Create or update remote tasks from a note')
    push_parser.add_argument('file', help='Note path (absolute or vault-relative)')
    push_parser.add_argument('--lines', help='Only these 1-based lines, e.g. "3,5-7"')

    pull_parser = subparsers.add_parser('pull', help='Refresh tracked tasks in a note from the cache')
    pull_parser.add_argument('file', help='Note path (absolute or vault-relative)')
    pull_parser.add_argument('--lines', help='Only these 1-based lines, e.g. "3,5-7"')

    subparsers.add_parser('lists', help='Show cached task lists')

    return parser


def main(argv=None):
    """Main entry point for mstodo-sync."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging if verbose mode is enabled
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Show help if no command specified
    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)

    if args.verbose:
        print(f"Using config: {args.config or get_default_config_path()}")

    try:
        if args.command == 'sync':
            success = SyncCommand(config, args.config, verbose=args.verbose).run(reset=args.reset)

        elif args.command == 'reset-cache':
            success = ResetCacheCommand(config, verbose=args.verbose).run()

        elif args.command == 'add-missing':
            success = AddMissingCommand(config, args.config, verbose=args.verbose).run(args.file)

        elif args.command == 'summary':
            success = SummaryCommand(config, verbose=args.verbose).run(args.output)

        elif args.command == 'today':
            success = TodayCommand(config, verbose=args.verbose).run(args.output)

        elif args.command == 'cleanup':
            success = CleanupCommand(config, args.config, verbose=args.verbose).run()

        elif args.command == 'push':
            success = PushCommand(config, args.config, verbose=args.verbose).run(args.file, args.lines)

        elif args.command == 'pull':
            success = PullCommand(config, verbose=args.verbose).run(args.file, args.lines)

        elif args.command == 'lists':
            success = ListsCommand(config, verbose=args.verbose).run()

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except AuthenticationError as e:
        print(f"🔑 Authentication failed: {e}")
        print("Sign in to Microsoft again, or set MSTODO_ACCESS_TOKEN.")
        return 1
    except (TodoSyncError, OSError) as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
