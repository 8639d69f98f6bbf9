"""
Registration (per client x shop loyalty membership) and visit history models.
"""
from datetime import datetime
from ..extensions import db


class Registration(db.Model):
    """
    Loyalty membership of one client at one shop.

    Created on the first valid scan, updated on every later valid scan and
    every points redemption, never deleted. version_id makes every
    read-modify-write a compare-and-set: a concurrent writer that read an
    older version gets a StaleDataError and recomputes from a fresh read.
    """
    __tablename__ = 'registrations'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(128), db.ForeignKey('clients.id'), nullable=False)
    shop_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)

    client_num = db.Column(db.Integer)  # Sequential number within the shop

    # Ledger
    points = db.Column(db.Integer, nullable=False, default=0)
    nb_visit = db.Column(db.Integer, nullable=False, default=0)
    last_visit = db.Column(db.DateTime)

    # Demographic snapshot (last write wins)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    gender = db.Column(db.Integer, default=0)
    phone = db.Column(db.String(30))
    postal_code = db.Column(db.String(20))
    address = db.Column(db.String(500))
    email = db.Column(db.String(255))
    birthday = db.Column(db.Date)
    image_url = db.Column(db.String(500))
    image_valid = db.Column(db.Boolean, default=False)

    # Notification flags
    notifications_active = db.Column(db.Boolean, default=True)
    last_visit_notification_received = db.Column(db.Boolean, default=False)

    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    shop = db.relationship('Shop', backref=db.backref('registrations', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('client_id', 'shop_id', name='uq_registration_client_shop'),
        db.UniqueConstraint('shop_id', 'client_num', name='uq_registration_shop_client_num'),
        db.CheckConstraint('points >= 0', name='ck_registration_points_non_negative'),
        db.CheckConstraint('nb_visit >= 0', name='ck_registration_nb_visit_non_negative'),
        db.Index('ix_registrations_shop_birthday', 'shop_id', 'birthday'),
    )

    __mapper_args__ = {
        'version_id_col': version_id
    }

    def __repr__(self):
        return f'<Registration {self.id}: {self.points} pts for client {self.client_id} at {self.shop_id}>'

    def apply_snapshot(self, snapshot: dict) -> None:
        for field, value in snapshot.items():
            setattr(self, field, value)

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'shop_id': self.shop_id,
            'client_num': self.client_num,
            'points': self.points,
            'nb_visit': self.nb_visit,
            'last_visit': self.last_visit.isoformat() if self.last_visit else None,
            'notifications_active': self.notifications_active,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class ScanHistory(db.Model):
    """
    Append-only visit log, one row per accepted scan.
    """
    __tablename__ = 'scan_history'

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.String(64), db.ForeignKey('shops.id'), nullable=False)
    client_id = db.Column(db.String(128), db.ForeignKey('clients.id'), nullable=False)
    tier = db.Column(db.String(20))  # new, standard, vip
    points_awarded = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_scan_history_shop_created', 'shop_id', 'created_at'),
    )

    def __repr__(self):
        return f'<ScanHistory {self.id}: {self.client_id} at {self.shop_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'shop_id': self.shop_id,
            'client_id': self.client_id,
            'tier': self.tier,
            'points_awarded': self.points_awarded,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
