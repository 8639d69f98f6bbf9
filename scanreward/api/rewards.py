"""
Rewards API endpoints.

Lists a shop's rewards catalog, cheapest first.
"""
from flask import Blueprint, g, jsonify, request

from ..extensions import db
from ..middleware.client_auth import require_client
from ..models import Registration, Reward, Shop
from ..utils.errors import bad_request, not_found

rewards_bp = Blueprint('rewards', __name__)


@rewards_bp.route('', methods=['GET'])
@require_client
def list_rewards():
    """
    List rewards for a shop.

    Query params:
        shop_id: Shop (required)

    Returns:
        Rewards ascending by points, with the client's balance
    """
    shop_id = request.args.get('shop_id')
    if not shop_id:
        return bad_request('shop_id is required')

    shop = db.session.get(Shop, shop_id)
    if not shop:
        return not_found(f'Shop {shop_id} not found')

    rewards = Reward.query.filter_by(shop_id=shop_id).order_by(Reward.points.asc()).all()
    registration = Registration.query.filter_by(client_id=g.client_id, shop_id=shop_id).first()
    balance = registration.points if registration else 0

    return jsonify({
        'shop_id': shop_id,
        'points': balance,
        'rewards': [{**r.to_dict(), 'can_redeem': balance >= r.points} for r in rewards],
        'count': len(rewards)
    })
