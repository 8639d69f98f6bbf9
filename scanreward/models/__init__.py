"""
Database models for the ScanReward loyalty engine.
"""
from .shop import Shop, ShopRuleConfig
from .client import Client, REQUIRED_PROFILE_FIELDS
from .registration import Registration, ScanHistory
from .reward import Reward, RedemptionRecord
from .partner import PartnerLink, PartnerLinkStatus
from .gift import Gift, GiftType

__all__ = [
    'Shop',
    'ShopRuleConfig',
    'Client',
    'REQUIRED_PROFILE_FIELDS',
    'Registration',
    'ScanHistory',
    'Reward',
    'RedemptionRecord',
    'PartnerLink',
    'PartnerLinkStatus',
    'Gift',
    'GiftType',
]
