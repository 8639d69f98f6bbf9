"""
Business logic services for ScanReward.
"""
from .tag_resolver import TagResolver, ResolvedTag
from .visit_rules import VisitTier, VisitDecision, evaluate_visit
from .registration_ledger import RegistrationLedger
from .scan_service import ScanService, ScanResult
from .partner_propagation import PartnerPropagationService, PartnerGiftKey, PropagationStatus
from .redemption_service import RedemptionService, RedemptionAttempt, RedemptionState
from .gift_service import GiftService
from .notification_service import PushNotificationService
from .subscriptions import ChangeSubscription
