"""
CLI Commands for ScanReward.

Usage:
    flask gifts birthdays --shop-id shop_1 --value "Free coffee"    # Today's birthday gifts
    flask gifts birthdays --value "Free coffee" --dry-run            # Preview for all shops
"""
from .gifts import init_app as init_gift_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_gift_commands(app)
