"""
Tests for the scan flow: rules, ledger, history and propagation together.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from scanreward.extensions import db
from scanreward.models import Gift, Registration, Reward, ScanHistory
from scanreward.services.partner_propagation import PartnerPropagationService
from scanreward.services.scan_service import ScanService
from scanreward.services.visit_rules import VisitTier
from scanreward.utils.exceptions import (
    ClientNotFoundError,
    CooldownActiveError,
    InvalidTagError,
    ShopNotFoundError,
)

NOW = datetime(2026, 3, 2, 12, 0, 0)


class TestRecordScan:

    def test_first_scan_registers_new_client(self, sample_shop, sample_client):
        result = ScanService().record_scan('client_1', 'shop_cafe', now=NOW)

        assert result.tier == VisitTier.NEW
        assert result.awarded_points == 10
        assert result.new_balance == 10
        assert result.nb_visit == 1

        registration = Registration.query.filter_by(client_id='client_1', shop_id='shop_cafe').one()
        assert registration.points == 10
        assert registration.last_visit == NOW

    def test_scan_inside_cooldown_changes_nothing(self, sample_shop, sample_client, make_registration):
        registration = make_registration('client_1', 'shop_cafe', points=20, nb_visit=2,
                                         last_visit=NOW - timedelta(minutes=10))

        with pytest.raises(CooldownActiveError) as exc:
            ScanService().record_scan('client_1', 'shop_cafe', now=NOW)

        assert exc.value.retry_at == NOW + timedelta(minutes=20)
        assert registration.points == 20
        assert registration.nb_visit == 2
        assert ScanHistory.query.count() == 0

    def test_vip_scan_after_cooldown(self, sample_shop, sample_client, make_registration):
        make_registration('client_1', 'shop_cafe', points=12, nb_visit=6,
                          last_visit=NOW - timedelta(hours=3))

        result = ScanService().record_scan('client_1', 'shop_cafe', now=NOW)

        assert result.tier == VisitTier.VIP
        assert result.awarded_points == 20
        assert result.new_balance == 32
        assert result.nb_visit == 7

    def test_balance_saturates_at_highest_reward(self, sample_shop, sample_client, make_registration):
        make_registration('client_1', 'shop_cafe', points=45, nb_visit=6,
                          last_visit=NOW - timedelta(hours=3))

        result = ScanService().record_scan('client_1', 'shop_cafe', now=NOW)

        assert result.new_balance == 50
        assert result.awarded_points == 5

    def test_no_cap_without_rewards(self, sample_shop, sample_client, make_registration):
        Reward.query.filter_by(shop_id='shop_cafe').delete()
        db.session.commit()
        make_registration('client_1', 'shop_cafe', points=500, nb_visit=2,
                          last_visit=NOW - timedelta(hours=3))

        assert ScanService().record_scan('client_1', 'shop_cafe', now=NOW).new_balance == 505

    def test_history_written_for_accepted_scan(self, sample_shop, sample_client):
        ScanService().record_scan('client_1', 'shop_cafe', now=NOW)

        row = ScanHistory.query.one()
        assert row.tier == 'new'
        assert row.points_awarded == 10

    def test_unknown_shop(self, sample_client):
        with pytest.raises(ShopNotFoundError):
            ScanService().record_scan('client_1', 'shop_missing', now=NOW)

    def test_unknown_client(self, sample_shop):
        with pytest.raises(ClientNotFoundError):
            ScanService().record_scan('nobody', 'shop_cafe', now=NOW)


class TestScanTag:

    def test_scan_tag_resolves_then_records(self, sample_shop, sample_client):
        result = ScanService().scan_tag('client_1', 'shop_cafe', tag_id='04:A2:19:B2:5C:80', now=NOW)
        assert result.shop_id == 'shop_cafe'
        assert result.new_balance == 10

    def test_invalid_tag_writes_nothing(self, sample_shop, sample_client):
        with pytest.raises(InvalidTagError):
            ScanService().scan_tag('client_1', 'shop_cafe', tag_id='00:00', now=NOW)
        assert Registration.query.count() == 0


class TestScanPropagation:

    def test_accepted_scan_triggers_partner_gift(self, partner_shops, sample_client):
        service = ScanService(propagation=PartnerPropagationService())

        service.record_scan('client_1', 'shop_a', now=NOW)

        gift = Gift.query.filter_by(client_id='client_1').one()
        assert gift.collection_id == 'gift_partners_shop_a_shop_b'
        assert gift.shop_id == 'shop_b'

    def test_cooldown_blocked_scan_does_not_propagate(self, partner_shops, sample_client, make_registration):
        make_registration('client_1', 'shop_a', nb_visit=2, last_visit=NOW - timedelta(minutes=5))
        propagation = MagicMock()

        with pytest.raises(CooldownActiveError):
            ScanService(propagation=propagation).record_scan('client_1', 'shop_a', now=NOW)

        propagation.propagate.assert_not_called()

    def test_propagation_failure_does_not_fail_scan(self, sample_shop, sample_client):
        propagation = MagicMock()
        propagation.propagate.side_effect = RuntimeError('boom')

        result = ScanService(propagation=propagation).record_scan('client_1', 'shop_cafe', now=NOW)

        assert result.new_balance == 10
        registration = Registration.query.filter_by(client_id='client_1', shop_id='shop_cafe').one()
        assert registration.points == 10
