# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared helpers for CLI commands
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from pending_plugins.classes import RunSummary, UnmatchedEntry

# Default paths
PENDING_PLUGINS_DIR = Path.home() / '.pending-plugins'
CONFIG_FILE = PENDING_PLUGINS_DIR / 'config.json'

# Config keys understood by `fetch`
CONFIG_KEYS = ('github_token', 'repo', 'repo_url', 'branch', 'tracked_file', 'search_query')
SECRET_KEYS = ('github_token',)

TOKEN_ENV_VARS = ('GITHUB_TOKEN', 'GITHUB_PAT')
REPO_ENV_VAR = 'PENDING_PLUGINS_REPO'

console = Console()


def print_success(message: str) -> None:
    """Print a standardized success message."""
    console.print(f'\n  [green]✓[/green] {message}\n')


def print_error(message: str) -> None:
    """Print a standardized error message."""
    console.print(f'\n  [red]✗[/red] {message}\n')


def load_config() -> Dict[str, Any]:
    """
    Load configuration from ~/.pending-plugins/config.json.

    Priority:
    1. CLI arguments (highest - handled by callers)
    2. Environment variables
    3. ~/.pending-plugins/config.json
    4. Defaults

    Manage via: pending-plugins config set <key> <value>
    """
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, 'r') as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
        except (json.JSONDecodeError, IOError):
            pass
    return {}


def resolve_setting(
    cli_value: Optional[str],
    config: Dict[str, Any],
    key: str,
    default: Optional[str] = None,
    env_vars: Sequence[str] = (),
) -> Optional[str]:
    """CLI value > first set env var > config file > default."""
    if cli_value:
        return cli_value
    for name in env_vars:
        value = os.getenv(name)
        if value:
            return value
    if config.get(key):
        return str(config[key])
    return default


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableTheme:
    box_style: box.Box
    header_style: str
    border_style: str
    show_lines: bool
    pad_edge: bool


TABLE_THEMES = {
    # Full wrapped grid
    'square': TableTheme(
        box_style=box.SQUARE,
        header_style='bold magenta',
        border_style='grey35',
        show_lines=True,
        pad_edge=True,
    ),
    # Minimal separators with a heavier header rule
    'minimal': TableTheme(
        box_style=box.MINIMAL_HEAVY_HEAD,
        header_style='bold white',
        border_style='grey50',
        show_lines=False,
        pad_edge=False,
    ),
}

DEFAULT_TABLE_THEME = 'minimal'


def build_table(theme: str = DEFAULT_TABLE_THEME, **kwargs) -> Table:
    """Create a Rich table using a named visual theme."""
    preset = TABLE_THEMES.get(theme, TABLE_THEMES[DEFAULT_TABLE_THEME])
    params = {
        'box': preset.box_style,
        'header_style': preset.header_style,
        'border_style': preset.border_style,
        'show_lines': preset.show_lines,
        'pad_edge': preset.pad_edge,
    }
    params.update(kwargs)
    return Table(**params)


def build_summary_table(summary: RunSummary) -> Table:
    table = build_table(title='Run summary', show_header=False)
    table.add_column('Metric', style='cyan')
    table.add_column('Value', style='green', justify='right')

    rows = [
        ('Open PRs listed', summary.listed_prs),
        ('Open PRs processed', summary.processed_prs),
        ('Skipped', summary.skipped_prs),
        ('Entries extracted', summary.extracted_entries),
        ('Duplicates collapsed', summary.duplicate_entries),
        ('Matched', summary.matched_entries),
        ('Unmatched', summary.unmatched_entries),
        ('Current plugins', summary.baseline_entries),
        ('Pending plugins', summary.pending_entries),
    ]
    if summary.previous_watermark is not None:
        rows.append(('Previous watermark', f'#{summary.previous_watermark}'))
    if summary.new_watermark is not None:
        rows.append(('New watermark', f'#{summary.new_watermark}'))

    for label, value in rows:
        table.add_row(label, str(value))
    return table


def build_unmatched_table(unmatched: List[UnmatchedEntry]) -> Table:
    """Table of entries that need a PR assigned by hand."""
    table = build_table(theme='square', title='Unmatched plugins', show_header=True)
    table.add_column('ID', style='cyan')
    table.add_column('Name', style='green', max_width=40)
    table.add_column('Repo', style='yellow', max_width=50)
    table.add_column('Seen in', style='magenta', justify='right')
    table.add_column('Reason', style='red')

    for item in unmatched:
        source = item.entry.source_pr_number
        table.add_row(
            item.entry.id,
            item.entry.name or 'N/A',
            item.entry.repo or 'N/A',
            f'#{source}' if source is not None else 'N/A',
            item.reason,
        )
    return table
