"""
Tests for partner gift propagation.

Covers:
- Gift key construction from an unordered shop pair
- One gift per client per partnership, whichever shop is scanned
- Skips (pending link, no offer, already registered at partner)
- Per-link error isolation
- Losing a concurrent grant race
"""
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.orm import Session

from scanreward.extensions import db
from scanreward.models import Gift, PartnerLink, PartnerLinkStatus, Shop
from scanreward.services.partner_propagation import (
    PartnerGiftKey,
    PartnerPropagationService,
    PropagationStatus,
)
from scanreward.utils.exceptions import DuplicateError

NOW = datetime(2026, 3, 2, 12, 0, 0)


class TestPartnerGiftKey:

    def test_key_is_order_independent(self):
        assert PartnerGiftKey.for_pair('shop_b', 'shop_a') == PartnerGiftKey.for_pair('shop_a', 'shop_b')

    def test_key_format(self):
        key = PartnerGiftKey.for_pair('shop_b', 'shop_a')
        assert key.collection_id == 'gift_partners_shop_a_shop_b'
        assert key.partner_id == 'partners_shop_a_shop_b'
        assert str(key) == key.collection_id

    @pytest.mark.parametrize('a,b', [('shop_a', 'shop_a'), ('', 'shop_b'), (None, 'shop_b')])
    def test_invalid_pairs(self, a, b):
        with pytest.raises(ValueError):
            PartnerGiftKey.for_pair(a, b)


class TestPropagate:

    def test_scan_at_a_grants_gift_redeemable_at_b(self, partner_shops, sample_client):
        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert [o.status for o in outcomes] == [PropagationStatus.GRANTED]
        assert outcomes[0].offering_shop_id == 'shop_b'

        gift = Gift.query.filter_by(client_id='client_1').one()
        assert gift.collection_id == 'gift_partners_shop_a_shop_b'
        assert gift.shop_id == 'shop_b'
        assert gift.gift_type == 'partner'
        assert gift.value == '10% off bouquets'
        assert gift.is_used is False
        assert gift.data == {'id_shop_1': 'shop_a', 'id_shop_2': 'shop_b', 'partnerId': 'partners_shop_a_shop_b'}

    def test_second_scan_grants_nothing(self, partner_shops, sample_client):
        service = PartnerPropagationService()
        service.propagate('client_1', 'shop_a', NOW)

        outcomes = service.propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ALREADY_GRANTED
        assert Gift.query.filter_by(client_id='client_1').count() == 1

    def test_scan_at_other_side_reuses_same_key(self, partner_shops, sample_client):
        service = PartnerPropagationService()
        service.propagate('client_1', 'shop_a', NOW)

        outcomes = service.propagate('client_1', 'shop_b', NOW)

        assert outcomes[0].status == PropagationStatus.ALREADY_GRANTED
        assert Gift.query.count() == 1

    def test_client_already_registered_at_partner(self, partner_shops, sample_client, make_registration):
        make_registration('client_1', 'shop_b')

        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ALREADY_REGISTERED
        assert Gift.query.count() == 0

    def test_pending_link_ignored(self, partner_shops, sample_client):
        _, _, link = partner_shops
        link.status = PartnerLinkStatus.PENDING.value
        db.session.commit()

        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.NOT_CONFIRMED
        assert Gift.query.count() == 0

    def test_inactive_offer_ignored(self, partner_shops, sample_client):
        _, _, link = partner_shops
        link.active_b = False
        db.session.commit()

        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.NO_OFFER

    def test_notification_sent_on_grant(self, partner_shops, sample_client):
        notifier = MagicMock()

        PartnerPropagationService(notifier=notifier).propagate('client_1', 'shop_a', NOW)

        notifier.send_partner_gift.assert_called_once()
        args = notifier.send_partner_gift.call_args[0]
        assert args[0] == ['device-token-1']
        assert args[1] == 'Florist B'
        assert args[5] == 'partners_shop_a_shop_b'


class TestErrorIsolation:

    def test_malformed_link_does_not_block_others(self, partner_shops, sample_client):
        db.session.add(Shop(id='shop_c', shop_name='Cobbler C', nfc_tag_ids=['CC:01']))
        db.session.flush()
        broken = PartnerLink(
            shop_a_id='shop_a',
            shop_b_id='shop_c',
            status=PartnerLinkStatus.CONFIRMED.value,
            active_b=True,
            reward_selected_b={'description': 'missing text'}
        )
        db.session.add(broken)
        db.session.commit()

        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)
        by_link = {o.link_id: o for o in outcomes}

        assert by_link[broken.id].status == PropagationStatus.ERROR
        assert by_link[broken.id].error == 'PARTNER_LINK_INCONSISTENT'
        assert PropagationStatus.GRANTED in [o.status for o in outcomes]
        assert Gift.query.count() == 1

    def test_link_to_deleted_shop_is_skipped(self, partner_shops, sample_client):
        _, _, link = partner_shops
        link.shop_b_id = 'shop_gone'
        db.session.commit()

        outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ERROR
        assert Gift.query.count() == 0

    def test_unexpected_error_is_contained(self, partner_shops, sample_client):
        service = PartnerPropagationService()
        with patch.object(service, 'propagate_link', side_effect=RuntimeError('boom')):
            outcomes = service.propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ERROR
        assert outcomes[0].error == 'boom'

    def test_lost_race_counts_as_already_granted(self, partner_shops, sample_client):
        with patch('scanreward.services.partner_propagation.run_transaction',
                   side_effect=DuplicateError('Record')):
            outcomes = PartnerPropagationService().propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ALREADY_GRANTED

    def test_gift_granted_by_other_session_after_check(self, partner_shops, sample_client):
        service = PartnerPropagationService()
        real_gift_exists = service._gift_exists

        def gift_exists_then_rival_grants(client_id, key):
            exists = real_gift_exists(client_id, key)
            with Session(db.engine) as other:
                other.add(Gift(client_id=client_id, collection_id=key.collection_id, shop_id='shop_b',
                               gift_type='partner', value='10% off bouquets', is_used=False))
                other.commit()
            return exists

        with patch.object(service, '_gift_exists', side_effect=gift_exists_then_rival_grants):
            outcomes = service.propagate('client_1', 'shop_a', NOW)

        assert outcomes[0].status == PropagationStatus.ALREADY_GRANTED
        assert Gift.query.filter_by(client_id='client_1').count() == 1
