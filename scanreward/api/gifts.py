"""
Gift API endpoints.
"""
from flask import Blueprint, g, jsonify

from ..middleware.client_auth import require_client
from ..services.gift_service import GiftService

gifts_bp = Blueprint('gifts', __name__)


@gifts_bp.route('', methods=['GET'])
@require_client
def list_gifts():
    """List the client's unused gifts, newest first."""
    gifts = GiftService().list_unused_gifts(g.client_id)
    return jsonify({
        'gifts': [gift.to_dict() for gift in gifts],
        'count': len(gifts)
    })
