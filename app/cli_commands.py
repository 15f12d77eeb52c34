"""
Flask CLI commands for local data management.

Commands:
- flask seed-demo: Replace catalogs and orders with demo data
- flask export-backup PATH: Write a JSON backup file
- flask import-backup PATH: Replace all data with a JSON backup file
- flask reset-data: Delete all data and reset usage counters
- flask stats: Print headline sales figures and the platform split
"""
import os
from datetime import datetime

import click
from flask import current_app

from app.database import get_session
from app.exceptions import LedgerError
from app.services import account_service, analytics_service, backup_service, order_service
from app.services.entitlement_service import get_or_create_current_user
from app.utils.formatters import money, percent


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('seed-demo')
    def seed_demo():
        """Load a demo catalog and a few sample orders."""
        session = get_session()
        try:
            catalog = account_service.seed_demo_data(session)
        except LedgerError as e:
            click.echo(click.style(f'Error seeding demo data: {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Demo data loaded', fg='green', bold=True))
        click.echo(f'   Catalog: {catalog.name} ({catalog.configured_count} products)')
        click.echo(f'   Orders: {len(order_service.list_orders(session))}')

    @app.cli.command('export-backup')
    @click.argument('path', required=False)
    def export_backup(path):
        """Write a full JSON backup to PATH (default: BACKUP_DIR/<timestamp>.json)."""
        session = get_session()
        now = datetime.now()
        if not path:
            backup_dir = current_app.config.get('BACKUP_DIR', 'backups')
            os.makedirs(backup_dir, exist_ok=True)
            path = os.path.join(backup_dir, backup_service.default_backup_filename(now))

        document = backup_service.export_state(session, now, current_app.config.get('APP_VERSION'))
        try:
            backup_service.write_backup(path, document)
        except OSError as e:
            click.echo(click.style(f'Could not write {path}: {e}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style(f'Backup written to {path}', fg='green'))
        click.echo(
            f"   {len(document['orders'])} orders, {len(document['catalogs'])} catalogs, "
            f"{len(document['platforms'])} platforms"
        )

    @app.cli.command('import-backup')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    @click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
    def import_backup(path, yes):
        """Replace all orders, catalogs and platforms with the backup at PATH."""
        if not yes:
            click.confirm('This replaces all current data. Continue?', abort=True)

        session = get_session()
        try:
            document = backup_service.read_backup(path)
            contents = backup_service.restore_state(session, document)
        except LedgerError as e:
            click.echo(click.style(f'Restore failed: {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Backup restored', fg='green', bold=True))
        click.echo(
            f'   {len(contents.orders)} orders, {len(contents.catalogs)} catalogs, '
            f'{len(contents.platforms)} platforms'
        )

    @app.cli.command('reset-data')
    @click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
    def reset_data(yes):
        """Delete every order, catalog and custom platform and reset the account."""
        if not yes:
            click.confirm('This deletes ALL data and clears Pro. Continue?', abort=True)

        account_service.delete_all_data(get_session(), current_app.config)
        click.echo(click.style('All data deleted', fg='yellow'))

    @app.cli.command('stats')
    def stats():
        """Print today / week / month sales."""
        session = get_session()
        user = get_or_create_current_user(session, current_app.config.get('DEFAULT_CURRENCY', 'USD ($)'))
        symbol = user.currency_symbol
        orders = order_service.list_orders(session)
        figures = analytics_service.build_stats(orders, datetime.now())

        click.echo(f"Today:      {money(figures['today_sales'], symbol)}")
        click.echo(f"This week:  {money(figures['this_week_sales'], symbol)}")
        click.echo(f"This month: {money(figures['this_month_sales'], symbol)}")
        best = figures['best_day_this_month']
        if best:
            click.echo(f"Best day:   {best['day'].isoformat()} ({money(best['revenue'], symbol)})")
        click.echo(f"Avg order:  {money(figures['average_order_value'], symbol)}")
        click.echo(f"Units sold: {figures['products_sold']}")

        breakdown = analytics_service.platform_breakdown(orders)
        for row, share in zip(breakdown, analytics_service.platform_share(breakdown)):
            click.echo(f"  {row.platform.name:<12} {money(row.revenue, symbol):>12} {percent(share):>7}")
