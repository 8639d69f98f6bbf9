"""
Shop model and its scan rule configuration.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional

from ..extensions import db


@dataclass(frozen=True)
class ShopRuleConfig:
    """Immutable view of a shop's visit rules, read once per scan."""
    new_client_points: int
    new_client_rule_active: bool
    standard_client_points: int
    vip_client_points: int
    vip_visit_threshold: Optional[int]
    vip_rule_active: bool
    cooldown_seconds: int
    nfc_tag_ids: FrozenSet[str]


class Shop(db.Model):
    """
    Partner shop running an NFC loyalty program.

    Rule columns are edited by shop administration only; the scan path
    reads them through rule_config().
    """
    __tablename__ = 'shops'

    id = db.Column(db.String(64), primary_key=True)
    shop_name = db.Column(db.String(255), nullable=False)

    # NFC tag UIDs glued in the shop
    nfc_tag_ids = db.Column(db.JSON, default=list)

    # Visit rules
    new_client_points = db.Column(db.Integer, nullable=False, default=0)
    new_client_rule_active = db.Column(db.Boolean, default=True)
    standard_client_points = db.Column(db.Integer, nullable=False, default=0)
    vip_client_points = db.Column(db.Integer, nullable=False, default=0)
    vip_visit_threshold = db.Column(db.Integer)  # None disables VIP
    vip_rule_active = db.Column(db.Boolean, default=False)
    cooldown_seconds = db.Column(db.Integer)  # None = app default

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    rewards = db.relationship('Reward', backref='shop', lazy='dynamic',
                              order_by='Reward.points')

    def __repr__(self):
        return f'<Shop {self.id}>'

    def rule_config(self, default_cooldown_seconds: int = 1800) -> ShopRuleConfig:
        cooldown = self.cooldown_seconds
        if cooldown is None:
            cooldown = default_cooldown_seconds
        return ShopRuleConfig(
            new_client_points=self.new_client_points or 0,
            new_client_rule_active=bool(self.new_client_rule_active),
            standard_client_points=self.standard_client_points or 0,
            vip_client_points=self.vip_client_points or 0,
            vip_visit_threshold=self.vip_visit_threshold,
            vip_rule_active=bool(self.vip_rule_active),
            cooldown_seconds=cooldown,
            nfc_tag_ids=frozenset(str(t) for t in (self.nfc_tag_ids or [])),
        )

    def max_reward_points(self) -> Optional[int]:
        """Highest reward threshold; None when the shop has no rewards."""
        from .reward import Reward
        return db.session.query(db.func.max(Reward.points)).filter(
            Reward.shop_id == self.id
        ).scalar()

    def to_dict(self):
        return {
            'id': self.id,
            'shop_name': self.shop_name,
            'new_client_points': self.new_client_points,
            'new_client_rule_active': self.new_client_rule_active,
            'standard_client_points': self.standard_client_points,
            'vip_client_points': self.vip_client_points,
            'vip_visit_threshold': self.vip_visit_threshold,
            'vip_rule_active': self.vip_rule_active,
            'cooldown_seconds': self.cooldown_seconds,
            'is_active': self.is_active
        }
