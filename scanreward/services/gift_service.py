"""
Gift Service.

Creates one-shot gifts under deterministic keys so that granting the same
gift twice is a no-op:
- Partner welcome gifts: gift_partners_{shopA}_{shopB} (see partner_propagation)
- Birthday gifts: birthday_{day}_{month}_{year}_{shopId}
- Come-back gifts: lastVisit_{shopId}

Existence is checked inside the granting transaction and the
(client_id, collection_id) unique constraint settles concurrent grants.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models.client import Client
from ..models.gift import Gift, GiftType
from ..models.registration import Registration
from ..models.shop import Shop
from ..store import run_transaction
from ..utils.exceptions import ClientNotFoundError, DuplicateError, ShopNotFoundError

logger = logging.getLogger(__name__)


def birthday_gift_key(shop_id: str, day: date) -> str:
    return f'birthday_{day.day}_{day.month}_{day.year}_{shop_id}'


def last_visit_gift_key(shop_id: str) -> str:
    return f'lastVisit_{shop_id}'


def create_gift_if_absent(
    session,
    client_id: str,
    collection_id: str,
    shop_id: str,
    gift_type: GiftType,
    value: str,
    description: str = None,
    data: Optional[Dict[str, Any]] = None,
    now: datetime = None
) -> Optional[Gift]:
    """
    Add a gift unless one already exists under collection_id.

    Must run inside a transaction. Returns the new gift, or None when the
    key was already granted.
    """
    existing = Gift.query.filter_by(
        client_id=client_id,
        collection_id=collection_id
    ).first()
    if existing:
        return None

    gift = Gift(
        client_id=client_id,
        collection_id=collection_id,
        shop_id=shop_id,
        gift_type=gift_type.value if isinstance(gift_type, GiftType) else gift_type,
        value=value,
        description=description,
        data=data or {},
        is_used=False,
        created_at=now or datetime.utcnow()
    )
    session.add(gift)
    session.flush()
    return gift


class GiftService:
    """
    Usage:
        service = GiftService()
        gift = service.grant_birthday_gift(client_id, shop_id, 'Free cake', 'Happy birthday!')
        gifts = service.list_unused_gifts(client_id)
    """

    def __init__(self, notifier=None):
        self.notifier = notifier

    def grant_gift(
        self,
        client_id: str,
        shop_id: str,
        collection_id: str,
        gift_type: GiftType,
        value: str,
        description: str = None,
        data: Optional[Dict[str, Any]] = None,
        now: datetime = None
    ) -> Optional[Gift]:
        """
        Idempotently grant a gift.

        Returns:
            The created gift, or None if the key was already granted
        """
        if not db.session.get(Client, client_id):
            raise ClientNotFoundError(client_id)
        if not db.session.get(Shop, shop_id):
            raise ShopNotFoundError(shop_id)

        def _txn(session):
            return create_gift_if_absent(
                session, client_id, collection_id, shop_id, gift_type,
                value, description, data, now
            )

        try:
            gift = run_transaction(_txn)
        except DuplicateError:
            # Concurrent grant won the race
            return None

        if gift:
            logger.info(f"Gift {collection_id} granted to client {client_id}")
        return gift

    def grant_birthday_gift(
        self,
        client_id: str,
        shop_id: str,
        value: str,
        description: str = None,
        today: date = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[Gift]:
        today = today or datetime.utcnow().date()
        return self.grant_gift(
            client_id, shop_id, birthday_gift_key(shop_id, today),
            GiftType.BIRTHDAY, value, description,
            data={'day': today.day, 'month': today.month, 'year': today.year, **(data or {})}
        )

    def grant_last_visit_gift(
        self,
        client_id: str,
        shop_id: str,
        value: str,
        description: str = None
    ) -> Optional[Gift]:
        """
        Grant the come-back gift and flag the registration as notified.

        The flag is cleared again by the next accepted scan.
        """
        collection_id = last_visit_gift_key(shop_id)

        def _txn(session):
            registration = Registration.query.filter_by(
                client_id=client_id,
                shop_id=shop_id
            ).with_for_update().populate_existing().first()
            if registration is None:
                return None
            gift = create_gift_if_absent(
                session, client_id, collection_id, shop_id,
                GiftType.LAST_VISIT, value, description,
                data={'registeredId': registration.id}
            )
            registration.last_visit_notification_received = True
            return gift

        try:
            return run_transaction(_txn)
        except DuplicateError:
            return None

    def grant_birthday_gifts_for_shop(
        self,
        shop_id: str,
        value: str,
        description: str = None,
        today: date = None,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Grant today's birthday gift to every registration at the shop whose
        birthday snapshot matches and whose notifications are on.
        """
        shop = db.session.get(Shop, shop_id)
        if not shop:
            raise ShopNotFoundError(shop_id)

        today = today or datetime.utcnow().date()
        registrations = Registration.query.filter(
            Registration.shop_id == shop_id,
            Registration.notifications_active.is_(True),
            Registration.birthday.isnot(None),
            db.extract('month', Registration.birthday) == today.month,
            db.extract('day', Registration.birthday) == today.day,
        ).all()

        result = {'eligible': len(registrations), 'granted': 0, 'already_granted': 0}
        if dry_run:
            return result

        for registration in registrations:
            gift = self.grant_birthday_gift(
                registration.client_id, shop_id, value, description, today,
                data={'registeredId': registration.id}
            )
            if gift is None:
                result['already_granted'] += 1
                continue

            result['granted'] += 1
            if self.notifier:
                client = db.session.get(Client, registration.client_id)
                self.notifier.send_birthday_gift(
                    client.push_tokens or [], shop.shop_name, value,
                    shop_id, client.id, registration.id
                )

        logger.info(
            f"Birthday gifts for shop {shop_id}: {result['granted']} granted, "
            f"{result['already_granted']} already granted"
        )
        return result

    def list_unused_gifts(self, client_id: str) -> List[Gift]:
        return Gift.query.filter_by(
            client_id=client_id,
            is_used=False
        ).order_by(Gift.created_at.desc()).all()
