"""Flask CLI commands for operators (exports, payout watching)."""
import threading
from pathlib import Path

import click
from flask import Flask
from flask.cli import AppGroup

from apps.console.utils.errors import ExportError, UpstreamError, ValidationError
from apps.console.utils.exporters import EXPORTERS
from apps.console.utils.filtering import STATUS_FILTERS, filter_residents
from apps.console.utils.notifier import LoggingNotifier
from apps.console.utils.residents import ResidentDirectory
from apps.console.utils.scheduling import NotificationPoller, PayoutRefreshScheduler
from apps.console.utils.time import resolve_timezone, utc_now
from apps.console.utils.tracking import fetch_tracking
from apps.console.utils.upstream import RecordsClient, create_session


def build_client(app: Flask, token: str | None = None) -> RecordsClient:
    """Client for use outside a request, authenticated with a bearer token."""
    factory = app.extensions.get('records_session_factory') or create_session
    token = token or app.config.get('RECORDS_API_TOKEN')
    return RecordsClient(
        app.config['RECORDS_API_URL'],
        session=factory(),
        timeout=app.config.get('RECORDS_API_TIMEOUT', 15),
        auth_header=f'Bearer {token}' if token else None,
    )


def register_cli(app: Flask) -> None:
    residents_cli = AppGroup('residents', help='Resident list tools.')
    benefits_cli = AppGroup('benefits', help='Benefit tracking tools.')

    @residents_cli.command('export')
    @click.option('--format', 'fmt', type=click.Choice(sorted(EXPORTERS)), default='csv', show_default=True)
    @click.option('--status', default='', type=click.Choice(('',) + STATUS_FILTERS), help='Status filter.')
    @click.option('--search', default='', help='Search name, email or resident ID.')
    @click.option('--role', default='admin', type=click.Choice(('admin', 'staff')), show_default=True)
    @click.option('--output', type=click.Path(dir_okay=False, path_type=Path), default=None,
                  help='Destination file (defaults to the export file name).')
    @click.option('--token', envvar='RECORDS_API_TOKEN', default=None, help='Records API bearer token.')
    def export_residents(fmt, status, search, role, output, token):
        """Export residents as csv, excel or pdf."""
        client = build_client(app, token)
        try:
            now = utc_now()
            residents = ResidentDirectory(client, role=role).refresh(now=now)
            residents = filter_residents(residents, search=search, status_filter=status, now=now)
            export = EXPORTERS[fmt](residents, notifier=LoggingNotifier(app.logger), now=now)
        except (UpstreamError, ValidationError, ExportError) as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            client.close()

        if export is None:
            click.echo('No data to export.')
            return
        target = output or Path(export.filename)
        target.write_bytes(export.content)
        click.echo(f'Wrote {export.rows} residents to {target}')

    @benefits_cli.command('watch')
    @click.argument('beneficiary_id', type=int)
    @click.option('--token', envvar='RECORDS_API_TOKEN', default=None, help='Records API bearer token.')
    def watch_benefit(beneficiary_id, token):
        """Follow a benefit until interrupted, refreshing once the payout is due."""
        client = build_client(app, token)
        tz = resolve_timezone(app.config.get('APP_TIMEZONE'))
        try:
            view = fetch_tracking(client, beneficiary_id, tz=tz)
        except UpstreamError as exc:
            client.close()
            raise click.ClickException(exc.message) from exc

        click.echo(f'Current stage: {view.current_stage}; payout: {view.payout_date or "not scheduled"}')

        def on_refresh(refreshed):
            click.echo(f'Payout reached. Current stage: {refreshed.current_stage}')

        def on_notifications(data):
            click.echo(f"Unread notifications: {data['unread_count']}")

        scheduler = PayoutRefreshScheduler(
            view,
            fetch=lambda: fetch_tracking(client, beneficiary_id, tz=tz),
            on_refresh=on_refresh,
            recheck_seconds=app.config.get('PAYOUT_RECHECK_SECONDS', 60),
        )
        poller = NotificationPoller(
            client.notifications,
            on_update=on_notifications,
            interval=app.config.get('NOTIFICATION_POLL_SECONDS', 30),
        )
        stop = threading.Event()
        scheduler.start()
        poller.start()
        try:
            while not stop.wait(1):
                pass
        except KeyboardInterrupt:
            click.echo('Stopping.')
        finally:
            scheduler.stop()
            poller.stop()
            client.close()

    app.cli.add_command(residents_cli)
    app.cli.add_command(benefits_cli)
