#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command-line interface for Kobo highlights.

Provides commands for syncing highlights to Notion, inspecting a Kobo
database snapshot and managing configuration.
"""

import sys
import logging
from typing import Optional

import click
from dotenv import load_dotenv

from .. import __version__
from ..core.database import KoboDatabase, SnapshotError
from ..core.runner import run_sync
from ..core.sync_engine import SyncAction
from ..integrations.notion_directory import NotionDirectory
from ..utils.config import Config
from ..utils.secrets import NOTION_TOKEN_KEY, SecretsManager


def setup_logging(config: Config):
    """Setup logging based on configuration."""
    level = getattr(logging, str(config.get('logging.level', 'INFO')).upper(), logging.INFO)
    format_str = config.get('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    log_file = config.get('logging.file')

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(format_str))
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(format_str))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """Kobo highlights CLI - Sync highlights from a Kobo e-reader to Notion."""

    load_dotenv()

    ctx.ensure_object(dict)
    if 'config' not in ctx.obj:
        ctx.obj['config'] = Config(config)

    if verbose:
        ctx.obj['config'].set('logging.level', 'DEBUG')

    setup_logging(ctx.obj['config'])


@cli.command()
@click.option('--device-database', help='KoboReader.sqlite on the device (overrides config)')
@click.option('--snapshot', help='Local snapshot path (overrides config)')
@click.option('--skip-copy', is_flag=True, help='Sync from the existing snapshot without copying')
@click.pass_context
def sync(ctx, device_database: Optional[str], snapshot: Optional[str], skip_copy: bool):
    """Copy the Kobo database and upload new highlights to Notion."""

    config_obj = ctx.obj['config']
    if device_database:
        config_obj.set('kobo.device_database', device_database)
    if snapshot:
        config_obj.set('kobo.snapshot_path', snapshot)

    issues = config_obj.validate(require_device=not skip_copy, check_device=not skip_copy)
    if not config_obj.get_notion_token():
        issues.append("Notion API token is not configured (NOTION_TOKEN or 'config token set')")
    if issues:
        click.echo("Configuration issues found:", err=True)
        for issue in issues:
            click.echo(f"  - {issue}", err=True)
        sys.exit(1)

    # Callers embedding the CLI may supply their own directory factory
    directory_factory = ctx.obj.get('directory_factory', NotionDirectory.from_config)
    directory = directory_factory(config_obj)

    try:
        summary = run_sync(
            directory,
            config_obj.get('kobo.snapshot_path'),
            device_database=None if skip_copy else config_obj.get('kobo.device_database'),
            title_delimiter=config_obj.get('sync.title_delimiter', ':'),
            review_heading=config_obj.get('sync.review_heading', True),
            nest_highlights=config_obj.get('sync.nest_highlights', True),
        )
    except SnapshotError as e:
        click.echo(f"Failed to set up database file: {e}", err=True)
        sys.exit(1)

    counts = summary.counts()
    click.echo(f"\nBooks processed: {len(summary.results)}")
    click.echo(f"  Created: {counts[SyncAction.CREATED]}")
    click.echo(f"  Updated: {counts[SyncAction.UPDATED]}")
    click.echo(f"  Already synced: {counts[SyncAction.SKIPPED_ALREADY_SYNCED]}")
    click.echo(f"  Ambiguous (skipped): {counts[SyncAction.SKIPPED_AMBIGUOUS]}")
    click.echo(f"  Failed: {counts[SyncAction.FAILED]}")
    click.echo(f"Highlights uploaded: {summary.highlights_uploaded}")

    for result in summary.failed:
        click.echo(f"  ❌ {result.title}: {result.error_message}", err=True)


@cli.command()
@click.option('--snapshot', help='Local snapshot path (overrides config)')
@click.pass_context
def books(ctx, snapshot: Optional[str]):
    """List books with highlights in the local snapshot."""

    config_obj = ctx.obj['config']
    db_path = snapshot or config_obj.get('kobo.snapshot_path')

    try:
        with KoboDatabase(db_path) as source:
            book_list = source.fetch_books()
            stats = source.get_stats()
    except SnapshotError as e:
        click.echo(f"Failed to open snapshot: {e}", err=True)
        sys.exit(1)

    for book in book_list:
        author = f" ({book.author})" if book.author else ""
        click.echo(f"{book.highlight_count:4d}  {book.title}{author}")

    click.echo(f"\n{stats['books']} books, {stats['highlights']} highlights in {stats['database_path']}")


@cli.group()
@click.pass_context
def config(ctx):
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', default='config.yaml', help='Output configuration file path')
@click.pass_context
def config_init(ctx, output: str):
    """Initialize configuration file with example settings."""

    try:
        ctx.obj['config'].create_example_config(output)
    except OSError as e:
        click.echo(f"Failed to create configuration: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration template created: {output}")
    click.echo("\nNext steps:")
    click.echo(f"1. Edit {output} with your Kobo path and Notion database ID")
    click.echo("2. Store your Notion token with 'kobo-highlights config token set'")
    click.echo("3. Run 'kobo-highlights config check' to validate")


@config.command('check')
@click.pass_context
def config_check(ctx):
    """Check configuration for issues."""

    config_obj = ctx.obj['config']
    issues = config_obj.validate()

    if issues:
        click.echo("Configuration issues found:", err=True)
        for issue in issues:
            click.echo(f"  - {issue}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid")
    click.echo("\nKey settings:")
    click.echo(f"  Device database: {config_obj.get('kobo.device_database')}")
    click.echo(f"  Snapshot: {config_obj.get('kobo.snapshot_path')}")
    click.echo(f"  Notion database: {config_obj.get('notion.database_id')}")
    click.echo(f"  Notion token: {'set' if config_obj.get_notion_token() else 'missing'}")

    secrets = config_obj.secrets_manager or SecretsManager()
    if secrets.available:
        stored = bool(secrets.get_secret(NOTION_TOKEN_KEY))
        click.echo(f"  Keyring: {secrets.get_keyring_backend()}")
        click.echo(f"  Token in keyring: {'yes' if stored else 'no'}")
    else:
        click.echo("  Keyring: not available")


@config.command('show')
@click.option('--section', help='Show only specific configuration section')
@click.pass_context
def config_show(ctx, section: Optional[str]):
    """Show current configuration (the token is masked)."""

    config_obj = ctx.obj['config']
    data = config_obj.get_section(section) if section else config_obj.config_data

    if not isinstance(data, dict) or not data:
        click.echo(f"Unknown configuration section: {section}", err=True)
        sys.exit(1)

    _print_config_section(data)


def _print_config_section(data, indent=0):
    """Print configuration section with proper formatting."""
    for key, value in data.items():
        if isinstance(value, dict):
            click.echo("  " * indent + f"{key}:")
            _print_config_section(value, indent + 1)
        else:
            if key == 'api_token' and value:
                value = '*' * 8
            click.echo("  " * indent + f"{key}: {value}")


@config.group()
def token():
    """Manage the Notion token in the system keyring."""
    pass


@token.command('set')
@click.option('--token', 'value', help='Notion token (will prompt securely if not provided)')
def token_set(value: Optional[str]):
    """Store the Notion token in the keyring."""

    if not value:
        value = click.prompt('Notion integration token', hide_input=True)

    if SecretsManager().set_secret(NOTION_TOKEN_KEY, value.strip()):
        click.echo("Notion token stored in the system keyring")
    else:
        click.echo("Could not store the token; set NOTION_TOKEN instead", err=True)
        sys.exit(1)


@token.command('remove')
@click.confirmation_option(prompt='Are you sure you want to remove the stored Notion token?')
def token_remove():
    """Remove the Notion token from the keyring."""

    if SecretsManager().delete_secret(NOTION_TOKEN_KEY):
        click.echo("Notion token removed")
    else:
        click.echo("No Notion token stored")


@cli.command()
def version():
    """Show version information."""
    click.echo(f"Kobo highlights CLI v{__version__}")
    click.echo(f"Python {sys.version}")


def main():
    """Main entry point for the CLI."""
    try:
        cli(standalone_mode=False)
    except (KeyboardInterrupt, click.exceptions.Abort):
        click.echo("\nInterrupted by user")
        sys.exit(0)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        click.echo(f"\nUnexpected error: {e}", err=True)
        logging.exception("Unexpected CLI error")
        sys.exit(1)


if __name__ == '__main__':
    main()
