"""
Scan API endpoints.

Handles:
- Resolving a raw NFC read to the shop it belongs to
- Recording a scan (points, visit count, partner gifts)
"""
from flask import Blueprint, g, jsonify, request

from ..middleware.client_auth import require_client
from ..services.notification_service import PushNotificationService
from ..services.partner_propagation import PartnerPropagationService
from ..services.scan_service import ScanService
from ..utils.errors import bad_request

scans_bp = Blueprint('scans', __name__)


def _scan_service() -> ScanService:
    return ScanService(propagation=PartnerPropagationService(notifier=PushNotificationService()))


@scans_bp.route('/resolve', methods=['POST'])
@require_client
def resolve_tag():
    """
    Resolve an NFC read to a shop.

    JSON body:
        records: NDEF records as read by the device (or a plain string)
        tag_id: Tag UID (optional; when present, records must hold the shop id)

    Returns:
        shop_id and tag_id
    """
    data = request.get_json(silent=True) or {}
    if data.get('records') is None and not data.get('tag_id'):
        return bad_request('records or tag_id is required')

    resolved = _scan_service().resolve_tag(data.get('records'), data.get('tag_id'))
    return jsonify(resolved.to_dict())


@scans_bp.route('', methods=['POST'])
@require_client
def record_scan():
    """
    Record a scan for the authenticated client.

    JSON body (either):
        shop_id: Shop already resolved by /resolve
        records / tag_id: Raw NFC read, resolved here

    Returns:
        Scan result with tier, awarded points and new balance
    """
    data = request.get_json(silent=True) or {}
    service = _scan_service()

    if data.get('shop_id'):
        result = service.record_scan(g.client_id, str(data['shop_id']))
    elif data.get('records') is not None or data.get('tag_id'):
        result = service.scan_tag(g.client_id, data.get('records'), data.get('tag_id'))
    else:
        return bad_request('shop_id or records is required')

    return jsonify({'success': True, 'scan': result.to_dict()})
