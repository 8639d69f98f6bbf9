"""
Redemption State Machine.

    IDLE -> CONFIRMING -> VALIDATING -> SUCCESS | BLOCKED | REJECTED -> CLOSED

- IDLE -> CONFIRMING: the user completed the swipe-to-confirm gesture.
- CONFIRMING -> VALIDATING: latest Registration / Gift state is read and
  checked inside one transaction.
- BLOCKED (incomplete profile) and REJECTED (insufficient points, gift
  already used) write nothing.
- SUCCESS: points are deducted (never below 0) or the gift is marked
  used, and a RedemptionRecord is appended, all in the same transaction.
- CLOSED is terminal. A new attempt starts from a new IDLE instance.

A redemption never increases points and never turns a used gift back
into an unused one.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models.client import Client
from ..models.gift import Gift
from ..models.registration import Registration
from ..models.reward import RedemptionRecord, Reward
from ..models.shop import Shop
from ..store import fetch_page, run_transaction
from ..utils.exceptions import (
    AlreadyUsedError,
    ClientNotFoundError,
    GiftNotFoundError,
    IncompleteProfileError,
    InsufficientPointsError,
    InvalidStatusTransitionError,
    RewardNotFoundError,
    ShopNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class RedemptionState(str, Enum):
    IDLE = 'idle'
    CONFIRMING = 'confirming'
    VALIDATING = 'validating'
    SUCCESS = 'success'
    BLOCKED = 'blocked'
    REJECTED = 'rejected'
    CLOSED = 'closed'


class RedemptionReason(str, Enum):
    INCOMPLETE_PROFILE = 'INCOMPLETE_PROFILE'
    INSUFFICIENT_POINTS = 'INSUFFICIENT_POINTS'
    ALREADY_USED = 'ALREADY_USED'


TRANSITIONS = {
    RedemptionState.IDLE: {RedemptionState.CONFIRMING},
    RedemptionState.CONFIRMING: {RedemptionState.VALIDATING},
    RedemptionState.VALIDATING: {RedemptionState.SUCCESS, RedemptionState.BLOCKED, RedemptionState.REJECTED},
    RedemptionState.SUCCESS: {RedemptionState.CLOSED},
    RedemptionState.BLOCKED: {RedemptionState.CLOSED},
    RedemptionState.REJECTED: {RedemptionState.CLOSED},
    RedemptionState.CLOSED: set(),
}


@dataclass(frozen=True)
class RedemptionTarget:
    """What is being redeemed: a points reward or a gift (by collection id)."""
    shop_id: Optional[str] = None
    reward_id: Optional[int] = None
    gift_id: Optional[str] = None

    def __post_init__(self):
        if (self.reward_id is None) == (self.gift_id is None):
            raise ValidationError('Exactly one of reward_id or gift_id is required')
        if self.reward_id is not None and not self.shop_id:
            raise ValidationError('shop_id is required to redeem a reward', 'shop_id')

    @property
    def is_gift(self) -> bool:
        return self.gift_id is not None


class RedemptionAttempt:
    """
    One redemption attempt, driven by the user's gestures.

    Usage:
        attempt = RedemptionAttempt(client_id, RedemptionTarget(shop_id='s1', reward_id=3))
        attempt.confirm()
        attempt.validate()
        if attempt.state == RedemptionState.SUCCESS: ...
        attempt.close()
    """

    def __init__(self, client_id: str, target: RedemptionTarget, now: datetime = None):
        self.client_id = client_id
        self.target = target
        self.now = now
        self.state = RedemptionState.IDLE
        self.reason: Optional[RedemptionReason] = None
        self.message: Optional[str] = None
        self.balance_after: Optional[int] = None
        self.record_id: Optional[int] = None
        self.missing_fields: List[str] = []
        self.current_points: Optional[int] = None
        self.required_points: Optional[int] = None

    def _transition(self, to_state: RedemptionState) -> None:
        if to_state not in TRANSITIONS[self.state]:
            raise InvalidStatusTransitionError('redemption', self.state.value, to_state.value)
        self.state = to_state

    def confirm(self) -> 'RedemptionAttempt':
        self._transition(RedemptionState.CONFIRMING)
        return self

    def validate(self) -> 'RedemptionAttempt':
        """
        Check eligibility against fresh state and apply the redemption.

        Business outcomes become states; not-found and persistence errors
        propagate and leave the attempt unfinished (start a new one).
        """
        self._transition(RedemptionState.VALIDATING)
        now = self.now or datetime.utcnow()

        try:
            if self.target.is_gift:
                balance_after, record_id = run_transaction(lambda session: self._redeem_gift(session, now))
            else:
                balance_after, record_id = run_transaction(lambda session: self._redeem_points(session, now))
        except IncompleteProfileError as e:
            self.missing_fields = e.missing_fields
            self._finish(RedemptionState.BLOCKED, RedemptionReason.INCOMPLETE_PROFILE, e.message)
            return self
        except InsufficientPointsError as e:
            self.current_points = e.current
            self.required_points = e.required
            self.balance_after = e.current
            self._finish(RedemptionState.REJECTED, RedemptionReason.INSUFFICIENT_POINTS, e.message)
            return self
        except AlreadyUsedError as e:
            self._finish(RedemptionState.REJECTED, RedemptionReason.ALREADY_USED, e.message)
            return self

        self.balance_after = balance_after
        self.record_id = record_id
        self._transition(RedemptionState.SUCCESS)
        logger.info(
            f"Redemption succeeded: client {self.client_id} "
            f"{'gift ' + self.target.gift_id if self.target.is_gift else 'reward ' + str(self.target.reward_id)}"
            f", balance {balance_after}"
        )
        return self

    def close(self) -> 'RedemptionAttempt':
        self._transition(RedemptionState.CLOSED)
        return self

    def _finish(self, state: RedemptionState, reason: RedemptionReason, message: str) -> None:
        self.reason = reason
        self.message = message
        self._transition(state)
        logger.info(f"Redemption {state.value} for client {self.client_id}: {reason.value}")

    def _load_client(self, session) -> Client:
        client = session.get(Client, self.client_id)
        if not client:
            raise ClientNotFoundError(self.client_id)
        return client

    def _locked_registration(self, shop_id: str) -> Optional[Registration]:
        return Registration.query.filter_by(
            client_id=self.client_id,
            shop_id=shop_id
        ).with_for_update().populate_existing().first()

    def _redeem_points(self, session, now: datetime):
        client = self._load_client(session)
        reward = Reward.query.filter_by(id=self.target.reward_id, shop_id=self.target.shop_id).first()
        if not reward:
            raise RewardNotFoundError(self.target.reward_id)

        if not client.is_profile_complete:
            raise IncompleteProfileError(client.missing_profile_fields)

        registration = self._locked_registration(self.target.shop_id)
        current = registration.points if registration else 0
        if registration is None or current < reward.points:
            raise InsufficientPointsError(current, reward.points)

        new_balance = max(current - reward.points, 0)
        registration.points = new_balance

        shop = session.get(Shop, self.target.shop_id)
        record = RedemptionRecord(
            client_id=self.client_id,
            shop_id=self.target.shop_id,
            shop_name=shop.shop_name if shop else None,
            reward_id=reward.id,
            snapshot=reward.to_dict(),
            previous_points=current,
            total_points=new_balance,
            created_at=now
        )
        session.add(record)
        session.flush()
        return new_balance, record.id

    def _redeem_gift(self, session, now: datetime):
        client = self._load_client(session)
        gift = Gift.query.filter_by(
            client_id=self.client_id,
            collection_id=self.target.gift_id
        ).with_for_update().populate_existing().first()
        if not gift or (self.target.shop_id and gift.shop_id != self.target.shop_id):
            raise GiftNotFoundError(self.target.gift_id)

        if not client.is_profile_complete:
            raise IncompleteProfileError(client.missing_profile_fields)

        if gift.is_used:
            raise AlreadyUsedError(gift.collection_id)

        gift.is_used = True
        gift.used_at = now

        shop = session.get(Shop, gift.shop_id)
        record = RedemptionRecord(
            client_id=self.client_id,
            shop_id=gift.shop_id,
            shop_name=shop.shop_name if shop else None,
            gift_id=gift.id,
            gift_type=gift.gift_type,
            snapshot={
                'collection_id': gift.collection_id,
                'value': gift.value,
                'description': gift.description,
            },
            created_at=now
        )
        session.add(record)
        session.flush()

        registration = Registration.query.filter_by(client_id=self.client_id, shop_id=gift.shop_id).first()
        return (registration.points if registration else None), record.id

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'state': self.state.value,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'balance_after': self.balance_after,
            'record_id': self.record_id,
        }
        if self.reason == RedemptionReason.INCOMPLETE_PROFILE:
            data['missing_fields'] = self.missing_fields
        if self.reason == RedemptionReason.INSUFFICIENT_POINTS:
            data['current_points'] = self.current_points
            data['required_points'] = self.required_points
        return data


class RedemptionService:
    """
    Usage:
        service = RedemptionService()
        attempt = service.confirm_redemption(client_id, shop_id, reward_id=3)
        history = service.get_history(client_id)
    """

    def confirm_redemption(
        self,
        client_id: str,
        shop_id: Optional[str] = None,
        reward_id: Optional[int] = None,
        gift_id: Optional[str] = None,
        now: datetime = None
    ) -> RedemptionAttempt:
        """
        Run a fresh attempt from IDLE through validation.

        Returns the attempt in SUCCESS, BLOCKED or REJECTED state.
        """
        if shop_id and not db.session.get(Shop, shop_id):
            raise ShopNotFoundError(shop_id)

        attempt = RedemptionAttempt(
            client_id,
            RedemptionTarget(shop_id=shop_id, reward_id=reward_id, gift_id=gift_id),
            now=now
        )
        attempt.confirm()
        return attempt.validate()

    def get_history(self, client_id: str, limit: int = 20, before_id: int = None) -> List[RedemptionRecord]:
        query = RedemptionRecord.query.filter_by(client_id=client_id)
        return fetch_page(query, RedemptionRecord.id, limit, before_id)
