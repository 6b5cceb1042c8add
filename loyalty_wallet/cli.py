# loyalty_wallet/cli.py

"""
Wallet Pass CLI Commands

Flask CLI commands for operating the wallet pass service:
- Configuration health report
- Building an Apple pass from a card JSON file
- Creating a Google save link from a card JSON file
- Inspecting the assembled pass data
"""

import json
import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from loyalty_wallet.wallet_pass.errors import ValidationError, WalletError
from loyalty_wallet.wallet_pass.models import card_record_from_dict


def _service():
    return current_app.extensions['wallet_pass_service']


def _load_card(path):
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path} is not valid JSON: {e}", fields=['card_json'])
    return card_record_from_dict(data)


@click.group()
def wallet():
    """Wallet pass management commands."""
    pass


@wallet.command()
@with_appcontext
def health():
    """Show the wallet configuration health report."""
    report = _service().validator.health_check()

    click.echo(f"\nWallet Health: {report['status'].upper()}")
    click.echo('=' * 60)
    for platform in ('apple', 'google'):
        section = report.get(platform)
        if section is None:
            continue
        state = 'configured' if section['configured'] else 'NOT configured'
        click.echo(f'{platform.title()}: {state}')
        for issue in section['issues']:
            click.echo(f"  [{issue['severity']}] {issue['code']}: {issue['message']}")
    for issue in report.get('environment_issues', []):
        click.echo(f"Environment: {issue['code']}: {issue['message']}")
    if 'error' in report:
        click.echo(f"Error: {report['error']}")

    if report['status'] == 'unhealthy':
        sys.exit(1)


@wallet.command('build-apple')
@click.argument('card_json', type=click.Path(exists=True, dir_okay=False))
@click.option('--out', 'out_path', default=None, help='Output .pkpass path')
@with_appcontext
def build_apple(card_json, out_path):
    """Build a signed Apple Wallet pass from a card JSON file."""
    try:
        bundle = _service().generate_apple_pass(_load_card(card_json))
    except WalletError as e:
        click.echo(f'Error building pass ({e.error_code}): {e.message}', err=True)
        sys.exit(1)

    out_path = out_path or bundle.filename
    with open(out_path, 'wb') as f:
        f.write(bundle.archive)

    click.echo(f'Wrote {out_path} ({len(bundle.archive)} bytes)')
    click.echo(f'  Files: {", ".join(sorted(bundle.manifest))}')
    click.echo(f'  Signed with: {getattr(_service().apple_signer, "last_strategy", None) or "unknown"}')


@wallet.command('google-link')
@click.argument('card_json', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def google_link(card_json):
    """Upsert the Google loyalty object for a card and print its save link."""
    try:
        result = _service().generate_google_pass(_load_card(card_json))
    except WalletError as e:
        click.echo(f'Error creating save link ({e.error_code}): {e.message}', err=True)
        sys.exit(1)

    click.echo(f'Class:  {result.class_id}')
    click.echo(f"Object: {result.object_id} ({'created' if result.created else 'updated'})")
    click.echo(result.save_url)


@wallet.command()
@click.argument('card_json', type=click.Path(exists=True, dir_okay=False))
@click.option('--locale', default=None, help='Display locale, e.g. ko-KR')
@with_appcontext
def describe(card_json, locale):
    """Print the pass data assembled for a card JSON file."""
    try:
        descriptor = _service().describe(_load_card(card_json), locale=locale)
    except WalletError as e:
        click.echo(f'Invalid card ({e.error_code}): {e.message}', err=True)
        sys.exit(1)

    click.echo(f'\n{descriptor.card_name} ({descriptor.card_type.value})')
    click.echo('-' * 60)
    click.echo(f'  Serial:    {descriptor.serial_number}')
    click.echo(f'  State:     {descriptor.state.value}')
    click.echo(f'  Progress:  {descriptor.primary_value} ({descriptor.progress_percent}%)')
    click.echo(f'  Remaining: {descriptor.remaining_count}')
    click.echo(f'  Barcode:   {descriptor.barcode.value}')
    click.echo(f'  Color:     {descriptor.background_color}')
    for group in ('header', 'primary', 'secondary', 'auxiliary', 'back'):
        for display_field in getattr(descriptor.fields, group):
            click.echo(f'  [{group}] {display_field.label}: {display_field.value}')
