"""
Redemption API endpoints.

Handles:
- Confirming a redemption (points reward or gift)
- Redemption history
"""
from flask import Blueprint, g, jsonify, request

from ..middleware.client_auth import require_client
from ..services.redemption_service import RedemptionReason, RedemptionService, RedemptionState
from ..utils.errors import ErrorCode, bad_request, error_response, incomplete_profile_extra

redemptions_bp = Blueprint('redemptions', __name__)

redemption_service = RedemptionService()


@redemptions_bp.route('', methods=['POST'])
@require_client
def confirm_redemption():
    """
    Redeem a reward or a gift. Called once the swipe-to-confirm completes.

    JSON body:
        shop_id: Shop (required for rewards)
        reward_id: Reward to redeem with points
        gift_id: Gift collection id to consume

    Returns:
        200 with the new balance, 422 when blocked or short on points,
        409 when the gift was already used
    """
    data = request.get_json(silent=True) or {}
    reward_id = data.get('reward_id')
    if reward_id is not None:
        try:
            reward_id = int(reward_id)
        except (TypeError, ValueError):
            return bad_request('reward_id must be an integer', ErrorCode.VALIDATION_ERROR)

    attempt = redemption_service.confirm_redemption(
        g.client_id,
        shop_id=data.get('shop_id'),
        reward_id=reward_id,
        gift_id=data.get('gift_id')
    )

    if attempt.state == RedemptionState.SUCCESS:
        return jsonify({
            'success': True,
            'balance_after': attempt.balance_after,
            'record_id': attempt.record_id
        })

    if attempt.reason == RedemptionReason.INCOMPLETE_PROFILE:
        return error_response(
            attempt.message, ErrorCode.INCOMPLETE_PROFILE, 422, log_error=False,
            extra=incomplete_profile_extra(attempt.missing_fields)
        )
    if attempt.reason == RedemptionReason.INSUFFICIENT_POINTS:
        return error_response(
            attempt.message, ErrorCode.INSUFFICIENT_POINTS, 422, log_error=False,
            extra={'current': attempt.current_points, 'required': attempt.required_points}
        )
    return error_response(attempt.message, ErrorCode.ALREADY_USED, 409, log_error=False)


@redemptions_bp.route('', methods=['GET'])
@require_client
def redemption_history():
    """
    Redemption history, newest first.

    Query params:
        limit: Page size (default 20, max 100)
        before_id: Cursor from the previous page
    """
    limit = max(1, min(request.args.get('limit', 20, type=int), 100))
    before_id = request.args.get('before_id', type=int)

    records = redemption_service.get_history(g.client_id, limit, before_id)
    return jsonify({
        'redemptions': [r.to_dict() for r in records],
        'count': len(records),
        'next_before_id': records[-1].id if len(records) == limit else None
    })
