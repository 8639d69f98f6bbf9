"""
API blueprints for ScanReward.
"""
from .scans import scans_bp
from .registrations import registrations_bp
from .rewards import rewards_bp
from .redemptions import redemptions_bp
from .gifts import gifts_bp

__all__ = ['scans_bp', 'registrations_bp', 'rewards_bp', 'redemptions_bp', 'gifts_bp']
