"""
Tests for the registration ledger.
"""
from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from scanreward.extensions import db
from scanreward.models import Registration, ScanHistory
from scanreward.services.registration_ledger import LedgerEntry, RegistrationLedger, saturating_add
from scanreward.store import run_transaction
from scanreward.utils.exceptions import DuplicateError

NOW = datetime(2026, 3, 2, 12, 0, 0)


class TestSaturatingAdd:

    @pytest.mark.parametrize('current,delta,cap,expected', [
        (10, 5, 50, 15),
        (45, 20, 50, 50),
        (50, 20, 50, 50),
        (10, 5, None, 15),
        (3, -10, 50, 0),
        (0, 0, 0, 0),
    ])
    def test_saturating_add(self, current, delta, cap, expected):
        assert saturating_add(current, delta, cap) == expected


class TestApplyVisit:

    def test_first_visit_creates_registration(self, sample_shop, sample_client):
        ledger = RegistrationLedger()

        entry = run_transaction(lambda session: ledger.apply_visit(
            session, None, sample_client, 'shop_cafe', 10, NOW, 50
        ))

        registration = db.session.get(Registration, entry.registration_id)
        assert entry.created is True
        assert entry.awarded_points == 10
        assert registration.points == 10
        assert registration.nb_visit == 1
        assert registration.last_visit == NOW
        assert registration.client_num == 1
        assert registration.first_name == 'Jane'
        assert registration.postal_code == '75011'

    def test_client_num_is_sequential_per_shop(self, sample_shop, sample_client, incomplete_client):
        ledger = RegistrationLedger()
        run_transaction(lambda s: ledger.apply_visit(s, None, sample_client, 'shop_cafe', 10, NOW, None))
        entry = run_transaction(lambda s: ledger.apply_visit(s, None, incomplete_client, 'shop_cafe', 10, NOW, None))

        assert db.session.get(Registration, entry.registration_id).client_num == 2

    def test_client_num_continues_after_gap(self, sample_shop, sample_client, incomplete_client, make_registration):
        make_registration('client_2', 'shop_cafe').client_num = 7
        db.session.commit()

        ledger = RegistrationLedger()
        entry = run_transaction(lambda s: ledger.apply_visit(s, None, sample_client, 'shop_cafe', 10, NOW, None))

        assert db.session.get(Registration, entry.registration_id).client_num == 8

    def test_client_num_unique_per_shop(self, sample_shop, sample_client, incomplete_client, make_registration):
        make_registration('client_1', 'shop_cafe')

        def txn(session):
            session.add(Registration(client_id='client_2', shop_id='shop_cafe', client_num=1,
                                     points=0, nb_visit=1, last_visit=NOW))

        with pytest.raises(DuplicateError):
            run_transaction(txn)
        assert Registration.query.count() == 1

    def test_lowered_cap_reports_no_award(self, sample_shop, sample_client, make_registration):
        make_registration('client_1', 'shop_cafe', points=80, nb_visit=3)
        ledger = RegistrationLedger()

        def txn(session):
            fresh = ledger.find('client_1', 'shop_cafe')
            return ledger.apply_visit(session, fresh, sample_client, 'shop_cafe', 5, NOW, 50)

        entry = run_transaction(txn)

        assert entry.new_points == 50
        assert entry.awarded_points == 0

    def test_awarded_points_never_negative(self):
        entry = LedgerEntry(registration_id=1, previous_points=80, new_points=50, nb_visit=4, created=False)
        assert entry.awarded_points == 0

    def test_update_caps_and_refreshes_snapshot(self, sample_shop, sample_client, make_registration):
        registration = make_registration('client_1', 'shop_cafe', points=45, nb_visit=3)
        registration.last_visit_notification_received = True
        db.session.commit()
        sample_client.phone = '+33700000000'
        db.session.commit()

        ledger = RegistrationLedger()

        def txn(session):
            fresh = ledger.find('client_1', 'shop_cafe')
            return ledger.apply_visit(session, fresh, sample_client, 'shop_cafe', 20, NOW, 50)

        entry = run_transaction(txn)

        assert entry.previous_points == 45
        assert entry.new_points == 50
        assert entry.awarded_points == 5
        assert entry.nb_visit == 4
        assert registration.phone == '+33700000000'
        assert registration.last_visit_notification_received is False

    def test_version_bumped_on_every_write(self, sample_shop, sample_client, make_registration):
        registration = make_registration('client_1', 'shop_cafe', points=0)
        version = registration.version_id
        ledger = RegistrationLedger()

        run_transaction(lambda s: ledger.apply_visit(
            s, ledger.find('client_1', 'shop_cafe'), sample_client, 'shop_cafe', 5, NOW, None
        ))

        assert registration.version_id == version + 1


class TestAppendHistory:

    def test_history_row_written(self, sample_shop, sample_client):
        assert RegistrationLedger().append_history('shop_cafe', 'client_1', 'new', 10, NOW) is True

        row = ScanHistory.query.one()
        assert row.tier == 'new'
        assert row.points_awarded == 10

    def test_history_failure_is_swallowed(self, sample_shop, sample_client):
        with patch.object(db.session, 'commit', side_effect=OperationalError('INSERT', {}, Exception('disk full'))):
            assert RegistrationLedger().append_history('shop_cafe', 'client_1', 'new', 10, NOW) is False
