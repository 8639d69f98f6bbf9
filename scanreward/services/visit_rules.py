"""
Visit Rule Evaluator.

Decides the visit tier and the points a scan earns. Pure function of the
shop rules, the client's current registration state and the clock; no
state is kept between calls.

Rules:
- No registration yet: tier NEW, new-client points (standard points when
  the shop switched its new-client rule off). No cooldown applies.
- Registration exists and the last visit is younger than the cooldown:
  CooldownActiveError with the exact retry time.
- Otherwise: tier VIP when the visit count reached the VIP threshold and
  the VIP rule is active, else STANDARD.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from ..models.shop import ShopRuleConfig
from ..utils.exceptions import CooldownActiveError


class VisitTier(str, Enum):
    NEW = 'new'
    STANDARD = 'standard'
    VIP = 'vip'


@dataclass(frozen=True)
class VisitState:
    """The part of a Registration the evaluator looks at."""
    nb_visit: int
    last_visit: Optional[datetime]


@dataclass(frozen=True)
class VisitDecision:
    tier: VisitTier
    points: int

    @property
    def is_first_visit(self) -> bool:
        return self.tier == VisitTier.NEW


def cooldown_retry_at(last_visit: datetime, cooldown_seconds: int) -> datetime:
    return last_visit + timedelta(seconds=cooldown_seconds)


def evaluate_visit(
    config: ShopRuleConfig,
    state: Optional[VisitState],
    now: datetime
) -> VisitDecision:
    """
    Compute tier and points for a scan.

    Args:
        config: Shop rule configuration
        state: Current registration state, None for a first visit
        now: Scan time (naive UTC, like every stored timestamp)

    Raises:
        CooldownActiveError: scan inside the revisit cooldown window
    """
    if state is None:
        points = config.new_client_points if config.new_client_rule_active else config.standard_client_points
        return VisitDecision(tier=VisitTier.NEW, points=max(points, 0))

    if state.last_visit is not None:
        retry_at = cooldown_retry_at(state.last_visit, config.cooldown_seconds)
        if now < retry_at:
            raise CooldownActiveError(retry_at)

    if (
        config.vip_visit_threshold is not None
        and config.vip_rule_active
        and state.nb_visit >= config.vip_visit_threshold
    ):
        return VisitDecision(tier=VisitTier.VIP, points=max(config.vip_client_points, 0))

    return VisitDecision(tier=VisitTier.STANDARD, points=max(config.standard_client_points, 0))
