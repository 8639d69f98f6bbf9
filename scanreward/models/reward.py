"""
Reward definitions and the append-only redemption history.
"""
from datetime import datetime
from ..extensions import db


class Reward(db.Model):
    """
    Points reward offered by a shop. The highest threshold also caps the
    balance a Registration can hold at that shop.
    """
    __tablename__ = 'rewards'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)

    points = db.Column(db.Integer, nullable=False)  # Threshold / cost
    value = db.Column(db.String(255), nullable=False)  # "Free coffee"
    description = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('points >= 0', name='ck_reward_points_non_negative'),
    )

    def __repr__(self):
        return f'<Reward {self.id}: {self.value} ({self.points} pts)>'

    def to_dict(self):
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'points': self.points,
            'value': self.value,
            'description': self.description
        }


class RedemptionRecord(db.Model):
    """
    Snapshot of a consumed reward or gift. Never updated after insert.
    """
    __tablename__ = 'redemption_records'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(128), db.ForeignKey('clients.id'), nullable=False)
    shop_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)
    shop_name = db.Column(db.String(255))

    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id'))
    gift_id = db.Column(db.Integer, db.ForeignKey('gifts.id'))
    gift_type = db.Column(db.String(20))
    snapshot = db.Column(db.JSON, default=dict)

    # Points redemptions only
    previous_points = db.Column(db.Integer)
    total_points = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_redemption_records_client', 'client_id', 'id'),
    )

    def __repr__(self):
        return f'<RedemptionRecord {self.id}: client {self.client_id} at {self.shop_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'shop_id': self.shop_id,
            'shop_name': self.shop_name,
            'reward_id': self.reward_id,
            'gift_id': self.gift_id,
            'gift_type': self.gift_type,
            'reward': self.snapshot,
            'previous_points': self.previous_points,
            'total_points': self.total_points,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
