"""
Tests for PushNotificationService.

All HTTP calls are mocked.
"""
from unittest.mock import MagicMock, patch

import requests

from scanreward.services.notification_service import PushNotificationService


def gateway_response(status_code=200, text='{}'):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


class TestSend:

    def test_no_tokens(self, app):
        service = PushNotificationService(gateway_url='https://push.example.com/send')
        with patch('scanreward.services.notification_service.requests.post') as mock_post:
            result = service.send([], 'Title', 'Body')

        assert result == {'success': False, 'error': 'No recipient tokens'}
        mock_post.assert_not_called()

    def test_gateway_not_configured(self, app):
        result = PushNotificationService().send(['tok'], 'Title', 'Body')
        assert result['success'] is False
        assert result['error'] == 'Push gateway not configured'

    def test_payload_and_headers(self, app):
        service = PushNotificationService(gateway_url='https://push.example.com/send', api_key='secret', timeout=3)

        with patch('scanreward.services.notification_service.requests.post',
                   return_value=gateway_response(200)) as mock_post:
            result = service.send(['tok-1', None, 'tok-2'], 'Title', 'Body', {'registeredId': 7, 'extra': None})

        assert result == {'success': True, 'status_code': 200}
        kwargs = mock_post.call_args.kwargs
        assert kwargs['json']['tokens'] == ['tok-1', 'tok-2']
        assert kwargs['json']['notification'] == {'title': 'Title', 'body': 'Body'}
        assert kwargs['json']['data'] == {'registeredId': '7', 'extra': ''}
        assert kwargs['headers']['Authorization'] == 'Bearer secret'
        assert kwargs['timeout'] == 3

    def test_gateway_error_status(self, app):
        service = PushNotificationService(gateway_url='https://push.example.com/send')
        with patch('scanreward.services.notification_service.requests.post',
                   return_value=gateway_response(502, 'bad gateway')):
            result = service.send(['tok'], 'Title', 'Body')

        assert result['success'] is False
        assert result['status_code'] == 502

    def test_network_error_is_not_raised(self, app):
        service = PushNotificationService(gateway_url='https://push.example.com/send')
        with patch('scanreward.services.notification_service.requests.post',
                   side_effect=requests.Timeout('timed out')):
            result = service.send(['tok'], 'Title', 'Body')

        assert result['success'] is False
        assert 'timed out' in result['error']


class TestTemplates:

    def test_partner_gift_data(self, app):
        service = PushNotificationService(gateway_url='https://push.example.com/send')
        with patch('scanreward.services.notification_service.requests.post',
                   return_value=gateway_response(200)) as mock_post:
            service.send_partner_gift(
                ['tok'], 'Florist B', {'text': '10% off bouquets'},
                'shop_a', 'shop_b', 'partners_shop_a_shop_b', 'client_1'
            )

        payload = mock_post.call_args.kwargs['json']
        assert payload['notification']['title'] == 'Florist B has a gift for you'
        assert '10% off bouquets' in payload['notification']['body']
        assert payload['data'] == {
            'type': 'gift_partner',
            'id_shop_1': 'shop_a',
            'id_shop_2': 'shop_b',
            'partnerId': 'partners_shop_a_shop_b',
            'clientId': 'client_1',
            'fromScan': 'byNFC',
        }
