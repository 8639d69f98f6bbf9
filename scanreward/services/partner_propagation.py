"""
Partner Propagation Engine.

After an accepted scan, walks the scanning shop's confirmed partner links
and grants the client each partner's one-time welcome gift.

For each link (shop A <-> shop B), with the client scanning at A:
1. Gift key = gift_partners_{min(A,B)}_{max(A,B)}; already granted -> skip.
2. B must have its offer switched on with a reward selected.
3. Clients already registered at B are skipped: the gift is for
   acquiring new customers at the partner.
4. Create the gift (redeemable at B) and push a notification.

Every link is evaluated in its own transaction and its own error boundary:
a malformed or failing link is logged and the others still run.
Propagation never fails the scan that triggered it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import or_

from ..extensions import db
from ..models.client import Client
from ..models.gift import Gift, GiftType
from ..models.partner import PartnerLink, PartnerLinkStatus
from ..models.registration import Registration
from ..models.shop import Shop
from ..store import run_transaction
from ..utils.exceptions import DuplicateError, LoyaltyError, PartnerLinkInconsistentError
from .gift_service import create_gift_if_absent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartnerGiftKey:
    """
    Idempotency key of a partner gift.

    Built from the unordered shop pair, so both shops of a link map to the
    same key whichever one the client scanned at.
    """
    first: str
    second: str

    @classmethod
    def for_pair(cls, shop_a_id: str, shop_b_id: str) -> 'PartnerGiftKey':
        if not shop_a_id or not shop_b_id:
            raise ValueError('Both shop ids are required')
        if shop_a_id == shop_b_id:
            raise ValueError('A shop cannot partner with itself')
        first, second = sorted((str(shop_a_id), str(shop_b_id)))
        return cls(first, second)

    @property
    def collection_id(self) -> str:
        return f'gift_partners_{self.first}_{self.second}'

    @property
    def partner_id(self) -> str:
        return f'partners_{self.first}_{self.second}'

    def __str__(self):
        return self.collection_id


class PropagationStatus(str, Enum):
    GRANTED = 'granted'
    ALREADY_GRANTED = 'already_granted'
    ALREADY_REGISTERED = 'already_registered'
    NO_OFFER = 'no_offer'
    NOT_CONFIRMED = 'not_confirmed'
    ERROR = 'error'


@dataclass
class PropagationOutcome:
    link_id: int
    status: PropagationStatus
    gift_id: Optional[int] = None
    offering_shop_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'link_id': self.link_id,
            'status': self.status.value,
            'gift_id': self.gift_id,
            'offering_shop_id': self.offering_shop_id,
            'error': self.error
        }


class PartnerPropagationService:
    """
    Usage:
        service = PartnerPropagationService(notifier=PushNotificationService())
        outcomes = service.propagate(client_id, shop_id)
    """

    def __init__(self, notifier=None):
        self.notifier = notifier

    def links_for_shop(self, shop_id: str) -> List[PartnerLink]:
        return PartnerLink.query.filter(
            or_(PartnerLink.shop_a_id == shop_id, PartnerLink.shop_b_id == shop_id)
        ).order_by(PartnerLink.id).all()

    def propagate(self, client_id: str, shop_id: str, now: datetime = None) -> List[PropagationOutcome]:
        """
        Evaluate every partner link of the scanning shop for this client.

        Returns one outcome per link; never raises for a single link.
        """
        now = now or datetime.utcnow()
        outcomes = []
        link_ids = [link.id for link in self.links_for_shop(shop_id)]

        for link_id in link_ids:
            outcomes.append(self._propagate_isolated(link_id, client_id, shop_id, now))

        granted = sum(1 for o in outcomes if o.status == PropagationStatus.GRANTED)
        if granted:
            logger.info(f"Partner propagation for client {client_id} at {shop_id}: {granted} gift(s) granted")
        return outcomes

    def _propagate_isolated(self, link_id: int, client_id: str, shop_id: str, now: datetime) -> PropagationOutcome:
        try:
            link = db.session.get(PartnerLink, link_id)
            return self.propagate_link(link, client_id, shop_id, now)
        except PartnerLinkInconsistentError as e:
            logger.warning(f"Skipping partner link: {e.message}")
            return PropagationOutcome(link_id, PropagationStatus.ERROR, error=e.code)
        except LoyaltyError as e:
            logger.warning(f"Partner link {link_id} failed for client {client_id}: {e.message}")
            return PropagationOutcome(link_id, PropagationStatus.ERROR, error=e.code)
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Partner link {link_id} failed for client {client_id}: {e}")
            return PropagationOutcome(link_id, PropagationStatus.ERROR, error=str(e))

    def check_link(self, link: PartnerLink, scanning_shop_id: str) -> PartnerGiftKey:
        """Validate a link's configuration and return its gift key."""
        if link is None:
            raise PartnerLinkInconsistentError(None, 'link no longer exists')
        if link.status not in (PartnerLinkStatus.PENDING.value, PartnerLinkStatus.CONFIRMED.value):
            raise PartnerLinkInconsistentError(link.id, f"unknown status '{link.status}'")
        try:
            key = PartnerGiftKey.for_pair(link.shop_a_id, link.shop_b_id)
        except ValueError as e:
            raise PartnerLinkInconsistentError(link.id, str(e)) from e
        if not link.involves(scanning_shop_id):
            raise PartnerLinkInconsistentError(link.id, f'shop {scanning_shop_id} is not part of the link')

        for shop_id in (link.shop_a_id, link.shop_b_id):
            active, reward = link.offer_of(shop_id)
            if active and reward is not None and not (isinstance(reward, dict) and reward.get('text')):
                raise PartnerLinkInconsistentError(link.id, f'offer of shop {shop_id} has no reward text')
        return key

    def propagate_link(
        self,
        link: PartnerLink,
        client_id: str,
        scanning_shop_id: str,
        now: datetime = None
    ) -> PropagationOutcome:
        """
        Evaluate one link. Raises PartnerLinkInconsistentError on malformed
        configuration; callers iterating several links use propagate().
        """
        now = now or datetime.utcnow()
        key = self.check_link(link, scanning_shop_id)

        if not link.is_confirmed:
            return PropagationOutcome(link.id, PropagationStatus.NOT_CONFIRMED)

        if self._gift_exists(client_id, key):
            return PropagationOutcome(link.id, PropagationStatus.ALREADY_GRANTED)

        offering_shop_id = link.counterpart_of(scanning_shop_id)
        active, reward = link.offer_of(offering_shop_id)
        if not (active and reward):
            return PropagationOutcome(link.id, PropagationStatus.NO_OFFER)

        return self._grant(link, key, client_id, offering_shop_id, reward, now)

    def _gift_exists(self, client_id: str, key: PartnerGiftKey) -> bool:
        return db.session.query(
            Gift.query.filter_by(client_id=client_id, collection_id=key.collection_id).exists()
        ).scalar()

    def _grant(
        self,
        link: PartnerLink,
        key: PartnerGiftKey,
        client_id: str,
        offering_shop_id: str,
        reward: Dict[str, Any],
        now: datetime
    ) -> PropagationOutcome:
        offering_shop = db.session.get(Shop, offering_shop_id)
        if offering_shop is None:
            raise PartnerLinkInconsistentError(link.id, f'shop {offering_shop_id} does not exist')

        shop_a_id, shop_b_id = link.shop_a_id, link.shop_b_id

        def _txn(session):
            # Re-checked at write time: another scan may have registered the
            # client or granted the gift since the first look
            registered = Registration.query.filter_by(
                client_id=client_id,
                shop_id=offering_shop_id
            ).first()
            if registered:
                return PropagationStatus.ALREADY_REGISTERED, None

            gift = create_gift_if_absent(
                session, client_id, key.collection_id, offering_shop_id,
                GiftType.PARTNER, reward.get('text'), reward.get('description'),
                data={'id_shop_1': shop_a_id, 'id_shop_2': shop_b_id, 'partnerId': key.partner_id},
                now=now
            )
            if gift is None:
                return PropagationStatus.ALREADY_GRANTED, None
            return PropagationStatus.GRANTED, gift.id

        try:
            status, gift_id = run_transaction(_txn)
        except DuplicateError:
            return PropagationOutcome(link.id, PropagationStatus.ALREADY_GRANTED)

        if status != PropagationStatus.GRANTED:
            return PropagationOutcome(link.id, status)

        logger.info(f"Partner gift {key.collection_id} granted to client {client_id} (offered by {offering_shop_id})")
        self._notify(client_id, offering_shop.shop_name, reward, key, shop_a_id, shop_b_id)

        return PropagationOutcome(
            link.id, PropagationStatus.GRANTED,
            gift_id=gift_id, offering_shop_id=offering_shop_id
        )

    def _notify(self, client_id, shop_name, reward, key, shop_a_id, shop_b_id) -> None:
        if not self.notifier:
            return
        client = db.session.get(Client, client_id)
        tokens = (client.push_tokens or []) if client else []
        self.notifier.send_partner_gift(
            tokens, shop_name, reward, shop_a_id, shop_b_id, key.partner_id, client_id
        )
