"""
Registration API endpoints.

The client's loyalty cards: one registration per shop visited.
"""
from flask import Blueprint, g, jsonify

from ..extensions import db
from ..middleware.client_auth import require_client
from ..models import Registration, Shop
from ..utils.errors import not_found

registrations_bp = Blueprint('registrations', __name__)


@registrations_bp.route('', methods=['GET'])
@require_client
def list_registrations():
    rows = Registration.query.filter_by(
        client_id=g.client_id
    ).order_by(Registration.last_visit.desc()).all()

    return jsonify({
        'registrations': [{
            **r.to_dict(),
            'shop_name': r.shop.shop_name if r.shop else None
        } for r in rows],
        'count': len(rows)
    })


@registrations_bp.route('/<shop_id>', methods=['GET'])
@require_client
def get_registration(shop_id):
    """
    Get the client's card at one shop, with the shop's reward ladder.
    """
    registration = Registration.query.filter_by(client_id=g.client_id, shop_id=shop_id).first()
    if not registration:
        return not_found(f'No registration at shop {shop_id}')

    shop = db.session.get(Shop, shop_id)
    return jsonify({
        'registration': registration.to_dict(),
        'shop': shop.to_dict() if shop else None,
        'rewards': [
            {**r.to_dict(), 'can_redeem': registration.points >= r.points}
            for r in shop.rewards
        ] if shop else []
    })
