"""
Shared fixtures for ScanReward tests.

The app fixture pushes a single application context for the whole test,
so every fixture and the test itself share one database session.
"""
from datetime import date, datetime

import pytest

from scanreward import create_app
from scanreward.extensions import db
from scanreward.models import Client, PartnerLink, PartnerLinkStatus, Registration, Reward, Shop


@pytest.fixture
def app():
    app = create_app('testing')
    ctx = app.app_context()
    ctx.push()
    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_shop(app):
    shop = Shop(
        id='shop_cafe',
        shop_name='Cafe Central',
        nfc_tag_ids=['04:A2:19:B2:5C:80', '04:11:22:33:44:55'],
        new_client_points=10,
        new_client_rule_active=True,
        standard_client_points=5,
        vip_client_points=20,
        vip_visit_threshold=5,
        vip_rule_active=True,
        cooldown_seconds=1800,
        is_active=True
    )
    db.session.add(shop)
    db.session.add_all([
        Reward(shop_id='shop_cafe', points=15, value='Free coffee'),
        Reward(shop_id='shop_cafe', points=50, value='Free lunch', description='Any main course'),
    ])
    db.session.commit()
    return shop


@pytest.fixture
def sample_client(app):
    client = Client(
        id='client_1',
        email='jane@example.com',
        first_name='Jane',
        last_name='Doe',
        gender=2,
        phone='+33612345678',
        postal_code='75011',
        address='12 rue Oberkampf',
        birthday=date(1990, 5, 17),
        push_tokens=['device-token-1']
    )
    db.session.add(client)
    db.session.commit()
    return client


@pytest.fixture
def incomplete_client(app):
    client = Client(id='client_2', email='sam@example.com', first_name='Sam')
    db.session.add(client)
    db.session.commit()
    return client


@pytest.fixture
def partner_shops(app):
    """Shops A and B with a confirmed partnership, both offers active."""
    shop_a = Shop(id='shop_a', shop_name='Bakery A', nfc_tag_ids=['AA:01'],
                  new_client_points=10, standard_client_points=5)
    shop_b = Shop(id='shop_b', shop_name='Florist B', nfc_tag_ids=['BB:01'],
                  new_client_points=10, standard_client_points=5)
    link = PartnerLink(
        shop_a_id='shop_a',
        shop_b_id='shop_b',
        status=PartnerLinkStatus.CONFIRMED.value,
        active_a=True,
        reward_selected_a={'text': 'Free croissant', 'description': 'With any coffee'},
        active_b=True,
        reward_selected_b={'text': '10% off bouquets', 'description': None}
    )
    db.session.add_all([shop_a, shop_b])
    db.session.flush()
    db.session.add(link)
    db.session.commit()
    return shop_a, shop_b, link


@pytest.fixture
def make_registration(app):
    """Factory for a registration in a given state."""
    def next_client_num(shop_id):
        last = db.session.query(db.func.max(Registration.client_num)).filter(
            Registration.shop_id == shop_id
        ).scalar()
        return (last or 0) + 1

    def _make(client_id, shop_id, points=0, nb_visit=1, last_visit=None):
        registration = Registration(
            client_id=client_id,
            shop_id=shop_id,
            client_num=next_client_num(shop_id),
            points=points,
            nb_visit=nb_visit,
            last_visit=last_visit or datetime(2026, 1, 1, 9, 0, 0)
        )
        db.session.add(registration)
        db.session.commit()
        return registration
    return _make


@pytest.fixture
def auth_headers(sample_client):
    return {'X-Client-ID': sample_client.id}
