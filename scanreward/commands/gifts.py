"""
CLI Commands for gift campaigns.

Run daily from cron:

# Birthday gifts (every morning at 8 AM)
0 8 * * * cd /app && flask gifts birthdays --value="Free dessert"
"""
import click
from flask.cli import with_appcontext

from ..extensions import db
from ..models import Shop
from ..services.gift_service import GiftService
from ..services.notification_service import PushNotificationService


@click.group('gifts')
def gifts_cli():
    """Gift campaign commands."""
    pass


@gifts_cli.command('birthdays')
@click.option('--shop-id', help='Specific shop ID (or all active shops if not specified)')
@click.option('--value', required=True, help='Gift text shown to the client')
@click.option('--description', default=None, help='Optional gift description')
@click.option('--dry-run', is_flag=True, help='Preview without granting gifts')
@with_appcontext
def grant_birthday_gifts(shop_id, value, description, dry_run):
    """
    Grant today's birthday gift to clients with notifications on.

    Safe to run more than once a day: gifts are keyed per shop and date.
    """
    if shop_id:
        shops = [db.session.get(Shop, shop_id)]
        if not shops[0]:
            click.echo(f"Shop {shop_id} not found")
            return
    else:
        shops = Shop.query.filter_by(is_active=True).order_by(Shop.id).all()

    service = GiftService(notifier=PushNotificationService())
    total_eligible = 0
    total_granted = 0

    for shop in shops:
        click.echo(f"\n{'[DRY RUN] ' if dry_run else ''}Processing shop: {shop.shop_name}")

        result = service.grant_birthday_gifts_for_shop(shop.id, value, description, dry_run=dry_run)

        click.echo(f"  Eligible: {result['eligible']} clients")
        click.echo(f"  Granted: {result['granted']}")
        click.echo(f"  Skipped: {result['already_granted']} (already received today)")

        total_eligible += result['eligible']
        total_granted += result['granted']

    click.echo(f"\n{'[DRY RUN] ' if dry_run else ''}TOTAL: {total_granted} granted, {total_eligible} eligible")


def init_app(app):
    """Register gift commands with Flask app."""
    app.cli.add_command(gifts_cli)
