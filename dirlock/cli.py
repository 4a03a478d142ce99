#!/usr/bin/env python3

"""
Command-line interface for dirlock
"""

import sys
import logging
import argparse
from datetime import datetime
from tqdm import tqdm
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape
from .config import Config, LockConfig
from .entry import EntryKind, list_entries
from .errors import DirLockError
from .lock import DirLock, release

logger = logging.getLogger(__name__)

console = Console(stderr=True)
out = Console()


class WaitProgress:
    """Shows how long an acquire has been waiting"""

    def __init__(self, config: LockConfig):
        self.config = config
        self.pbar = None

    def update(self, state, elapsed):
        """update progress bar with the elapsed wait"""
        if self.pbar is None:
            self.pbar = tqdm(
                total=self.config.max_wait,
                desc="waiting",
                unit="s",
                bar_format="{desc:<30} |{bar:50}| {n:.0f}/{total_fmt}s",
                colour="cyan",
                ncols=120,
                position=0,
                leave=False,
                file=sys.stderr,
            )
        self.pbar.set_description(f"{state.value}: {self.config.name[:15]}")
        self.pbar.n = min(elapsed, self.config.max_wait)
        self.pbar.refresh()

    def close(self):
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None


def print_entries(directory):
    """print the request and lock files of a directory"""
    entries = sorted(list_entries(directory), key=lambda e: e.sort_key())

    table = Table(box=box.ROUNDED, border_style="bright_blue")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Node")
    table.add_column("ID")
    table.add_column("Created")

    for entry in entries:
        kind = f"[yellow]{entry.kind.value}[/yellow]" if entry.kind == EntryKind.LOCK else entry.kind.value
        try:
            created = datetime.fromtimestamp(entry.created / 1e9).strftime('%Y-%m-%d %H:%M:%S')
        except (OverflowError, OSError, ValueError):
            created = str(entry.created)
        table.add_row(kind, escape(entry.name), escape(entry.node), entry.id, created)

    panel = Panel(
        table,
        title=f"[bold cyan]{escape(directory)}[/bold cyan]",
        subtitle=f"{len(entries)} entries",
        border_style="bright_blue",
        padding=(1, 2)
    )
    out.print(panel)


def build_parser():
    parser = argparse.ArgumentParser(prog='dirlock', description='Create/Delete locks in a shared directory')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='Increase log verbosity')
    subparsers = parser.add_subparsers(dest='command', required=True)

    acquire_parser = subparsers.add_parser('acquire', help='Acquire the lock')
    acquire_parser.add_argument('-d', '--dir', dest='directory', help='The directory in which to create the lock (default: $HOME)')
    acquire_parser.add_argument('-n', '--name', help='The name to give the lock')
    acquire_parser.add_argument('-i', '--poll-interval', type=float, help='Poll interval between lock checks, in secs')
    acquire_parser.add_argument('-w', '--max-wait', type=float, help='Maximum time to wait for lock, in secs')
    acquire_parser.add_argument('-c', '--config', help=f'Config file (default: {Config.DEFAULT_CONFIG_FILE})')
    acquire_parser.add_argument('--no-progress', action='store_true', help='Do not show the wait progress bar')

    delete_parser = subparsers.add_parser('delete', help='Delete the lock')
    delete_parser.add_argument('lock_id', help='The ID of the lock, as printed by acquire')
    delete_parser.add_argument('-d', '--dir', dest='directory', help='The directory holding the lock')
    delete_parser.add_argument('-c', '--config', help=f'Config file (default: {Config.DEFAULT_CONFIG_FILE})')

    list_parser = subparsers.add_parser('list', help='List request and lock files')
    list_parser.add_argument('-d', '--dir', dest='directory', help='The directory holding the locks')
    list_parser.add_argument('-c', '--config', help=f'Config file (default: {Config.DEFAULT_CONFIG_FILE})')

    return parser


def main(argv=None):
    """main"""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    # Load config from file and merge with CLI args
    file_config = Config.load_config(args.config)
    config = Config.merge_config(file_config, vars(args))
    logger.debug(f"settings: {config}")

    try:
        lock_config = LockConfig.from_dict(config)

        if args.command == 'acquire':
            progress = WaitProgress(lock_config)
            lock = DirLock(
                lock_config,
                progress_callback=None if args.no_progress else progress.update,
            )
            try:
                entry = lock.acquire()
            finally:
                progress.close()
            # the id is the only thing written to stdout, for scripts to capture
            print(entry.id)
        elif args.command == 'delete':
            release(args.lock_id, lock_config.directory)
        elif args.command == 'list':
            print_entries(lock_config.directory)
    except DirLockError as e:
        console.print(f"[bold red]{args.command} failed: {escape(str(e))}[/bold red]")
        sys.exit(1)


if __name__ == '__main__':
    main()
