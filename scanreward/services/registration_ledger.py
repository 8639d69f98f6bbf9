"""
Registration Ledger.

Per client x shop accumulator. Applies a visit's points with a saturating
cap (the shop's highest reward threshold), bumps the visit count and
overwrites the demographic snapshot with the client's latest profile.

apply_visit() runs inside the caller's transaction so that reading the
registration, evaluating the visit and writing the result commit as one
unit. The visit history row is a separate, best-effort write.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.client import Client
from ..models.registration import Registration, ScanHistory

logger = logging.getLogger(__name__)


def saturating_add(current: int, delta: int, cap: Optional[int]) -> int:
    """current + delta, floored at 0 and capped at cap (no cap when None)."""
    total = max((current or 0) + (delta or 0), 0)
    if cap is not None:
        total = min(total, max(cap, 0))
    return total


@dataclass(frozen=True)
class LedgerEntry:
    registration_id: int
    previous_points: int
    new_points: int
    nb_visit: int
    created: bool

    @property
    def awarded_points(self) -> int:
        """
        Points actually credited after the cap. Zero when a lowered cap
        shrank the balance.
        """
        return max(self.new_points - self.previous_points, 0)


class RegistrationLedger:
    """
    Usage:
        ledger = RegistrationLedger()

        def txn(session):
            registration = ledger.find(client_id, shop_id)
            ...
            return ledger.apply_visit(session, registration, client, shop_id, 10, now, cap)

        entry = run_transaction(txn)
    """

    def find(self, client_id: str, shop_id: str, lock: bool = True) -> Optional[Registration]:
        """Fresh read of a registration, row-locked where the backend supports it."""
        query = Registration.query.filter_by(client_id=client_id, shop_id=shop_id)
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def apply_visit(
        self,
        session,
        registration: Optional[Registration],
        client: Client,
        shop_id: str,
        points_to_award: int,
        now: datetime,
        cap: Optional[int]
    ) -> LedgerEntry:
        """
        Credit a visit to the registration, creating it on the first visit.

        Args:
            session: Transaction session
            registration: Freshly read registration, None on first visit
            client: Client whose profile is snapshotted
            shop_id: Shop being visited
            points_to_award: Points from the visit rules
            now: Visit time
            cap: Highest reward threshold for the shop, None for no cap
        """
        snapshot = client.demographic_snapshot()

        if registration is None:
            # unique per shop; a concurrent first scan taking the same
            # number fails the flush with DuplicateError
            last_num = session.query(func.max(Registration.client_num)).filter(
                Registration.shop_id == shop_id
            ).scalar() or 0

            registration = Registration(
                client_id=client.id,
                shop_id=shop_id,
                client_num=last_num + 1,
                points=saturating_add(0, points_to_award, cap),
                nb_visit=1,
                last_visit=now,
                notifications_active=True,
                last_visit_notification_received=False,
                created_at=now,
            )
            registration.apply_snapshot(snapshot)
            session.add(registration)
            session.flush()

            return LedgerEntry(
                registration_id=registration.id,
                previous_points=0,
                new_points=registration.points,
                nb_visit=1,
                created=True
            )

        previous_points = registration.points or 0
        registration.points = saturating_add(previous_points, points_to_award, cap)
        registration.nb_visit = (registration.nb_visit or 0) + 1
        registration.last_visit = now
        registration.last_visit_notification_received = False
        registration.apply_snapshot(snapshot)
        session.flush()

        return LedgerEntry(
            registration_id=registration.id,
            previous_points=previous_points,
            new_points=registration.points,
            nb_visit=registration.nb_visit,
            created=False
        )

    def append_history(
        self,
        shop_id: str,
        client_id: str,
        tier: str,
        points_awarded: int,
        now: datetime
    ) -> bool:
        """
        Record the visit in the shop's scan history.

        Independent of the ledger write; a failure here is logged and the
        scan still counts.
        """
        try:
            db.session.add(ScanHistory(
                shop_id=shop_id,
                client_id=client_id,
                tier=tier,
                points_awarded=points_awarded,
                created_at=now
            ))
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Scan history write failed for client {client_id} at {shop_id}: {e}")
            return False
