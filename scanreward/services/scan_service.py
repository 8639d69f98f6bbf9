"""
Scan Service.

Entry point for an NFC scan:

    tag -> TagResolver -> Visit rules -> Registration ledger (one transaction)
        -> scan history (best effort) -> partner propagation (best effort)

A cooldown-blocked scan changes nothing and does not trigger partner
propagation. Propagation and history failures are logged and never turn
an accepted scan into a failed one.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app

from ..extensions import db
from ..models.client import Client
from ..models.shop import Shop
from ..store import run_transaction
from ..utils.exceptions import ClientNotFoundError, DuplicateError, ShopNotFoundError
from .partner_propagation import PartnerPropagationService
from .registration_ledger import RegistrationLedger
from .tag_resolver import ResolvedTag, TagResolver
from .visit_rules import VisitState, VisitTier, evaluate_visit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    client_id: str
    shop_id: str
    tier: VisitTier
    awarded_points: int
    new_balance: int
    nb_visit: int
    registration_id: int
    scanned_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'client_id': self.client_id,
            'shop_id': self.shop_id,
            'tier': self.tier.value,
            'awarded_points': self.awarded_points,
            'new_balance': self.new_balance,
            'nb_visit': self.nb_visit,
            'registration_id': self.registration_id,
            'scanned_at': self.scanned_at.isoformat()
        }


class ScanService:
    """
    Usage:
        service = ScanService(propagation=PartnerPropagationService(notifier))

        resolved = service.resolve_tag(records, tag_id)
        result = service.record_scan(client_id, resolved.shop_id)
    """

    def __init__(
        self,
        propagation: Optional[PartnerPropagationService] = None,
        ledger: Optional[RegistrationLedger] = None,
        resolver: Optional[TagResolver] = None
    ):
        self.propagation = propagation
        self.ledger = ledger or RegistrationLedger()
        self.resolver = resolver

    def resolve_tag(self, payload, tag_id: str = None) -> ResolvedTag:
        resolver = self.resolver or TagResolver()
        return resolver.resolve(payload, tag_id)

    def scan_tag(self, client_id: str, payload, tag_id: str = None, now: datetime = None) -> ScanResult:
        """Resolve the tag then record the scan."""
        resolved = self.resolve_tag(payload, tag_id)
        return self.record_scan(client_id, resolved.shop_id, now)

    def record_scan(self, client_id: str, shop_id: str, now: datetime = None) -> ScanResult:
        """
        Record a visit for client_id at shop_id.

        Raises:
            ShopNotFoundError / ClientNotFoundError
            CooldownActiveError: inside the revisit window, nothing written
            PersistenceError: the ledger write failed, nothing written
        """
        now = now or datetime.utcnow()

        shop = db.session.get(Shop, shop_id)
        if not shop or not shop.is_active:
            raise ShopNotFoundError(shop_id)
        client = db.session.get(Client, client_id)
        if not client:
            raise ClientNotFoundError(client_id)

        config = shop.rule_config(current_app.config.get('DEFAULT_COOLDOWN_SECONDS', 1800))

        def _txn(session):
            cap = shop.max_reward_points()
            registration = self.ledger.find(client_id, shop_id)
            state = None
            if registration is not None:
                state = VisitState(nb_visit=registration.nb_visit or 0, last_visit=registration.last_visit)
            decision = evaluate_visit(config, state, now)
            entry = self.ledger.apply_visit(session, registration, client, shop_id, decision.points, now, cap)
            return decision, entry

        try:
            decision, entry = run_transaction(_txn)
        except DuplicateError:
            # A concurrent first scan created the registration or took the
            # next client number; evaluate again against fresh rows
            decision, entry = run_transaction(_txn)

        logger.info(
            f"Scan accepted: client {client_id} at {shop_id} tier={decision.tier.value} "
            f"+{entry.awarded_points} pts, balance {entry.new_points}"
        )

        self.ledger.append_history(shop_id, client_id, decision.tier.value, entry.awarded_points, now)
        self._propagate(client_id, shop_id, now)

        return ScanResult(
            client_id=client_id,
            shop_id=shop_id,
            tier=decision.tier,
            awarded_points=entry.awarded_points,
            new_balance=entry.new_points,
            nb_visit=entry.nb_visit,
            registration_id=entry.registration_id,
            scanned_at=now
        )

    def _propagate(self, client_id: str, shop_id: str, now: datetime) -> None:
        if not self.propagation:
            return
        try:
            self.propagation.propagate(client_id, shop_id, now)
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Partner propagation failed for client {client_id} at {shop_id}: {e}")
