# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Pending Plugins CLI - Main entry point

Usage:
    pending-plugins fetch          - Fetch pending plugin submissions (alias: f)
    pending-plugins config         - Show/set CLI configuration
"""

import json
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from pending_plugins import __version__
from pending_plugins.classes import RunSummary
from pending_plugins.cli.helpers import (
    CONFIG_FILE,
    CONFIG_KEYS,
    PENDING_PLUGINS_DIR,
    REPO_ENV_VAR,
    SECRET_KEYS,
    TOKEN_ENV_VARS,
    build_summary_table,
    build_table,
    build_unmatched_table,
    console,
    load_config,
    print_error,
    print_success,
    resolve_setting,
)
from pending_plugins.constants import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PR_LIST_LIMIT,
    DEFAULT_PR_SEARCH_QUERY,
    REGISTRY_BRANCH,
    REGISTRY_REPO,
    REGISTRY_REPO_URL,
    TRACKED_FILE,
)
from pending_plugins.runner import FetchSettings, SetupError, run_fetch
from pending_plugins.utils.logging import LOG_LEVELS, setup_logging
from pending_plugins.utils.utils import mask_secret


class AliasGroup(click.Group):
    """Click Group that supports command aliases without duplicate help entries."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._aliases = {}  # alias -> canonical name

    def add_alias(self, name, alias):
        """Register an alias for an existing command."""
        self._aliases[alias] = name

    def get_command(self, ctx, cmd_name):
        canonical = self._aliases.get(cmd_name, cmd_name)
        return super().get_command(ctx, canonical)

    def format_commands(self, ctx, formatter):
        """Write the help text, appending aliases to command descriptions."""
        alias_map = {}
        for alias, canonical in self._aliases.items():
            alias_map.setdefault(canonical, []).append(alias)

        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.commands.get(subcommand)
            if cmd is None or cmd.hidden:
                continue
            help_text = cmd.get_short_help_str(limit=150)
            aliases = alias_map.get(subcommand)
            if aliases:
                subcommand = f'{subcommand}, {", ".join(sorted(aliases))}'
            commands.append((subcommand, help_text))

        if commands:
            with formatter.section('Commands'):
                formatter.write_dl(commands)


@click.group(cls=AliasGroup)
@click.version_option(version=__version__, prog_name='pending-plugins')
def cli():
    """Pending Plugins - Track Obsidian plugin submissions awaiting review"""
    pass


@cli.command('fetch')
@click.option(
    '-o',
    '--output',
    'output_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT_DIR,
    show_default=True,
    help='Output directory for the JSON data files',
)
@click.option(
    '-w',
    '--workdir',
    'work_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Working directory for the git clone (kept and reused; default: temp dir)',
)
@click.option(
    '-s',
    '--state',
    'state_file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='State file for incremental updates (tracks the last processed PR)',
)
@click.option('--token', default=None, help='GitHub token (default: GITHUB_TOKEN / GITHUB_PAT / config)')
@click.option('--repo', default=None, help=f'Registry repository (default: {REGISTRY_REPO})')
@click.option('--repo-url', default=None, help='Clone URL of the registry repository')
@click.option('--branch', default=None, help=f'Registry default branch (default: {REGISTRY_BRANCH})')
@click.option('--search', 'search_query', default=None, help=f'PR search filter (default: "{DEFAULT_PR_SEARCH_QUERY}")')
@click.option('--limit', type=click.IntRange(min=1), default=DEFAULT_PR_LIST_LIMIT, show_default=True)
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default='INFO', show_default=True)
@click.option('--log-file', type=click.Path(dir_okay=False), default=None, help='Also write logs to this file')
def fetch(
    output_dir: Path,
    work_dir: Optional[Path],
    state_file: Optional[Path],
    token: Optional[str],
    repo: Optional[str],
    repo_url: Optional[str],
    branch: Optional[str],
    search_query: Optional[str],
    limit: int,
    log_level: str,
    log_file: Optional[str],
):
    """Fetch pending plugin submissions from open registry PRs.

    \b
    Output files:
        pending-plugins.json    Pending plugins, each with its pr_number
        unmatched-plugins.json  Plugins that could not be matched to a PR
        current-plugins.json    Current plugins from the default branch

    \b
    Examples:
        pending-plugins fetch -o _data
        pending-plugins fetch -o _data -w .cache/work -s .cache/last-pr
    """
    setup_logging(log_level, log_file)
    config = load_config()

    settings = FetchSettings(
        output_dir=output_dir,
        token=resolve_setting(token, config, 'github_token', env_vars=TOKEN_ENV_VARS),
        work_dir=work_dir,
        state_file=state_file,
        repo=resolve_setting(repo, config, 'repo', REGISTRY_REPO, env_vars=(REPO_ENV_VAR,)),
        repo_url=resolve_setting(repo_url, config, 'repo_url', REGISTRY_REPO_URL),
        branch=resolve_setting(branch, config, 'branch', REGISTRY_BRANCH),
        tracked_file=resolve_setting(None, config, 'tracked_file', TRACKED_FILE),
        search_query=resolve_setting(search_query, config, 'search_query', DEFAULT_PR_SEARCH_QUERY),
        limit=limit,
    )

    summary = RunSummary()
    try:
        outcome = run_fetch(settings, summary=summary)
    except SetupError as e:
        raise click.ClickException(str(e))
    finally:
        console.print(build_summary_table(summary))

    if outcome.nothing_new:
        print_success('No new PRs to process.')
        return

    if outcome.unmatched:
        console.print(build_unmatched_table(outcome.unmatched))

    console.print('\n[bold]Output files:[/bold]')
    for path in outcome.written_files:
        console.print(f'  {path}')
    print_success(f'{summary.pending_entries} pending plugins written')


@click.group(name='config', invoke_without_command=True)
@click.pass_context
def config_group(ctx):
    """CLI configuration management.

    Show current configuration (default) or set config values.

    \b
    Subcommands:
        set <key> <value>    Set a config value
    """
    if ctx.invoked_subcommand is None:
        show_config()


def show_config():
    """Show current CLI configuration"""
    console.print('\n[bold]Pending Plugins CLI Configuration[/bold]\n')

    if not CONFIG_FILE.exists():
        console.print(f'[yellow]No config file found at {CONFIG_FILE}[/yellow]')
        console.print('[dim]Run `pending-plugins config set <key> <value>` to create one[/dim]')
        return

    try:
        config = json.loads(CONFIG_FILE.read_text())
    except json.JSONDecodeError:
        print_error('Invalid JSON in config file')
        return

    table = build_table(show_header=True)
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')

    for key, value in config.items():
        str_val = mask_secret(value) if key in SECRET_KEYS else str(value)
        table.add_row(key, str_val)

    console.print(table)
    console.print(f'\n[dim]Config file: {CONFIG_FILE}[/dim]\n')


@config_group.command('set')
@click.argument('key', type=click.Choice(CONFIG_KEYS))
@click.argument('value', type=str)
def config_set(key: str, value: str):
    """Set a configuration value.

    \b
    Keys:
        github_token    GitHub token used to list PRs
        repo            Registry repository (owner/name)
        repo_url        Clone URL of the registry
        branch          Registry default branch
        tracked_file    Registry file holding the plugin list
        search_query    PR search filter

    \b
    Examples:
        pending-plugins config set repo obsidianmd/obsidian-releases
        pending-plugins config set branch master
    """
    PENDING_PLUGINS_DIR.mkdir(parents=True, exist_ok=True)

    config = {}
    if CONFIG_FILE.exists():
        try:
            config = json.loads(CONFIG_FILE.read_text())
        except json.JSONDecodeError:
            console.print('[yellow]Warning: Existing config was invalid, starting fresh[/yellow]')

    old_value = config.get(key)
    config[key] = value
    CONFIG_FILE.write_text(json.dumps(config, indent=2))

    shown = mask_secret(value) if key in SECRET_KEYS else value
    if old_value is not None:
        shown_old = mask_secret(old_value) if key in SECRET_KEYS else old_value
        console.print(f'[green]Updated {key}:[/green] {shown_old} → {shown}')
    else:
        console.print(f'[green]Set {key}:[/green] {shown}')


cli.add_command(config_group)
cli.add_alias('fetch', 'f')


def main():
    """Main entry point for the CLI"""
    load_dotenv()
    cli()


if __name__ == '__main__':
    main()
