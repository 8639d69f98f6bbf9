"""
One-shot gift model.
"""
from datetime import datetime
from enum import Enum

from ..extensions import db


class GiftType(str, Enum):
    """Where a gift came from."""
    PARTNER = 'partner'         # Partner shop welcome gift
    BIRTHDAY = 'birthday'       # Shop birthday gift
    LAST_VISIT = 'lastVisit'    # Come-back gift after a long absence


class Gift(db.Model):
    """
    Non-point reward consumed at most once.

    collection_id is the deterministic idempotency key (for example
    gift_partners_{shopA}_{shopB}); the unique constraint on
    (client_id, collection_id) guarantees one gift per key even when two
    grants race.
    """
    __tablename__ = 'gifts'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(128), db.ForeignKey('clients.id'), nullable=False)
    collection_id = db.Column(db.String(255), nullable=False)

    shop_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)  # Where it is redeemed
    gift_type = db.Column(db.String(20), nullable=False)
    value = db.Column(db.String(255))
    description = db.Column(db.String(500))
    data = db.Column(db.JSON, default=dict)

    is_used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime)

    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    shop = db.relationship('Shop')

    __table_args__ = (
        db.UniqueConstraint('client_id', 'collection_id', name='uq_gift_client_collection'),
    )

    __mapper_args__ = {
        'version_id_col': version_id
    }

    def __repr__(self):
        return f'<Gift {self.collection_id} for client {self.client_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'collection_id': self.collection_id,
            'shop_id': self.shop_id,
            'gift_type': self.gift_type,
            'value': self.value,
            'description': self.description,
            'is_used': self.is_used,
            'used_at': self.used_at.isoformat() if self.used_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
