"""
Client (end user) profile model.
"""
from datetime import datetime
from typing import Any, Dict, List

from ..extensions import db

# Fields a profile must fill before any redemption
REQUIRED_PROFILE_FIELDS = (
    'first_name',
    'last_name',
    'gender',
    'phone',
    'postal_code',
    'address',
    'birthday',
)


class Client(db.Model):
    """
    End user of the mobile app. The id is the auth provider's uid.
    """
    __tablename__ = 'clients'

    id = db.Column(db.String(128), primary_key=True)
    email = db.Column(db.String(255))

    # Demographics
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    gender = db.Column(db.Integer, default=0)  # 0 = not set
    phone = db.Column(db.String(30))
    postal_code = db.Column(db.String(20))
    address = db.Column(db.String(500))
    birthday = db.Column(db.Date)
    image_url = db.Column(db.String(500))
    image_valid = db.Column(db.Boolean, default=False)

    # FCM device tokens
    push_tokens = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    registrations = db.relationship('Registration', backref='client', lazy='dynamic')

    def __repr__(self):
        return f'<Client {self.id}>'

    @property
    def missing_profile_fields(self) -> List[str]:
        return [f for f in REQUIRED_PROFILE_FIELDS if not getattr(self, f)]

    @property
    def is_profile_complete(self) -> bool:
        return not self.missing_profile_fields

    def demographic_snapshot(self) -> Dict[str, Any]:
        """Values copied onto a Registration at every ledger write."""
        return {
            'first_name': self.first_name or '',
            'last_name': self.last_name or '',
            'gender': self.gender or 0,
            'phone': self.phone or '',
            'postal_code': self.postal_code or '',
            'address': self.address or '',
            'email': self.email or '',
            'birthday': self.birthday,
            'image_url': self.image_url or '',
            'image_valid': bool(self.image_valid),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'gender': self.gender,
            'phone': self.phone,
            'postal_code': self.postal_code,
            'address': self.address,
            'birthday': self.birthday.isoformat() if self.birthday else None,
            'image_url': self.image_url,
            'profile_complete': self.is_profile_complete
        }
