"""
Partnership between two shops.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..extensions import db


class PartnerLinkStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'


class PartnerLink(db.Model):
    """
    Agreement between shop A and shop B to gift each other's new customers.

    Each side's settings describe what that shop offers to the OTHER
    shop's customers: reward_selected_a is what shop A gives to clients who
    scan at shop B, and is redeemed at shop A.
    """
    __tablename__ = 'partner_links'

    id = db.Column(db.Integer, primary_key=True)
    shop_a_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)
    shop_b_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=PartnerLinkStatus.PENDING.value)

    active_a = db.Column(db.Boolean, default=False)
    reward_selected_a = db.Column(db.JSON)  # {"text": ..., "description": ...}
    active_b = db.Column(db.Boolean, default=False)
    reward_selected_b = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    shop_a = db.relationship('Shop', foreign_keys=[shop_a_id])
    shop_b = db.relationship('Shop', foreign_keys=[shop_b_id])

    __table_args__ = (
        db.UniqueConstraint('shop_a_id', 'shop_b_id', name='uq_partner_link_pair'),
    )

    def __repr__(self):
        return f'<PartnerLink {self.shop_a_id}<->{self.shop_b_id} ({self.status})>'

    @property
    def is_confirmed(self) -> bool:
        return self.status == PartnerLinkStatus.CONFIRMED.value

    def involves(self, shop_id: str) -> bool:
        return shop_id in (self.shop_a_id, self.shop_b_id)

    def counterpart_of(self, shop_id: str) -> str:
        return self.shop_b_id if shop_id == self.shop_a_id else self.shop_a_id

    def offer_of(self, shop_id: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """(active, reward_selected) configured by shop_id for its partner's clients."""
        if shop_id == self.shop_a_id:
            return bool(self.active_a), self.reward_selected_a
        return bool(self.active_b), self.reward_selected_b

    def to_dict(self):
        return {
            'id': self.id,
            'shop_a_id': self.shop_a_id,
            'shop_b_id': self.shop_b_id,
            'status': self.status,
            'active_a': self.active_a,
            'reward_selected_a': self.reward_selected_a,
            'active_b': self.active_b,
            'reward_selected_b': self.reward_selected_b
        }
