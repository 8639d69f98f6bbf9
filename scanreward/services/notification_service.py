"""
Push Notification Service for ScanReward.

Sends push notifications to client devices through an FCM relay gateway:
- Partner gift received after a scan
- Birthday gift

Sending is fire-and-forget from the engine's point of view: every failure
(no tokens, gateway not configured, HTTP error, timeout) is logged and
reported in the returned dict, never raised, so it cannot block a scan or
a gift grant.

Configuration:
- PUSH_GATEWAY_URL: relay endpoint accepting {tokens, notification, data}
- PUSH_GATEWAY_KEY: bearer token for the relay
- PUSH_TIMEOUT_SECONDS: request timeout
"""
import logging
from typing import Any, Dict, Iterable, Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class PushNotificationService:
    """
    Service for sending push notifications to clients.
    """

    TEMPLATES = {
        'gift_partner': {
            'title': '{shop_name} has a gift for you',
            'body': 'Your partner shop offers you: {reward_text}',
        },
        'birthday': {
            'title': 'Happy birthday from {shop_name}!',
            'body': '{reward_text}',
        },
    }

    def __init__(self, gateway_url: str = None, api_key: str = None, timeout: int = None):
        config = current_app.config
        self.gateway_url = gateway_url if gateway_url is not None else config.get('PUSH_GATEWAY_URL', '')
        self.api_key = api_key if api_key is not None else config.get('PUSH_GATEWAY_KEY', '')
        self.timeout = timeout or config.get('PUSH_TIMEOUT_SECONDS', 10)

    def send(
        self,
        tokens: Iterable[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Send one notification to a list of device tokens.

        Args:
            tokens: FCM device tokens
            title: Notification title
            body: Notification body
            data: Payload map; values are sent as strings

        Returns:
            Dict with success flag and status_code or error
        """
        recipients = [t for t in (tokens or []) if t]
        if not recipients:
            logger.info(f"Push skipped, no device tokens: {title}")
            return {'success': False, 'error': 'No recipient tokens'}

        if not self.gateway_url:
            logger.warning('Push gateway not configured, notification not sent')
            return {'success': False, 'error': 'Push gateway not configured'}

        payload = {
            'tokens': recipients,
            'notification': {'title': title, 'body': body},
            'data': {str(k): '' if v is None else str(v) for k, v in (data or {}).items()},
        }
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        try:
            response = requests.post(
                self.gateway_url,
                json=payload,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Push notification failed: {e}")
            return {'success': False, 'error': str(e)}

        if response.status_code >= 400:
            logger.warning(
                f"Push gateway rejected notification ({response.status_code}): {response.text[:200]}"
            )
            return {
                'success': False,
                'status_code': response.status_code,
                'error': response.text[:200]
            }

        logger.info(f"Push sent to {len(recipients)} device(s): {title}")
        return {'success': True, 'status_code': response.status_code}

    def _render(self, template_key: str, **context) -> Dict[str, str]:
        template = self.TEMPLATES[template_key]
        return {key: text.format(**context) for key, text in template.items()}

    def send_partner_gift(
        self,
        tokens: Iterable[str],
        shop_name: str,
        reward: Dict[str, Any],
        shop_a_id: str,
        shop_b_id: str,
        partner_id: str,
        client_id: str
    ) -> Dict[str, Any]:
        """Tell a client a partner shop just gave them a welcome gift."""
        message = self._render(
            'gift_partner',
            shop_name=shop_name,
            reward_text=(reward or {}).get('text', '')
        )
        return self.send(tokens, message['title'], message['body'], {
            'type': 'gift_partner',
            'id_shop_1': shop_a_id,
            'id_shop_2': shop_b_id,
            'partnerId': partner_id,
            'clientId': client_id,
            'fromScan': 'byNFC',
        })

    def send_birthday_gift(
        self,
        tokens: Iterable[str],
        shop_name: str,
        reward_text: str,
        shop_id: str,
        client_id: str,
        registration_id: int
    ) -> Dict[str, Any]:
        message = self._render('birthday', shop_name=shop_name, reward_text=reward_text)
        return self.send(tokens, message['title'], message['body'], {
            'type': 'birthday',
            'shopId': shop_id,
            'clientId': client_id,
            'registeredId': registration_id,
        })
