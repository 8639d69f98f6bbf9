"""
Tests for NFC tag decoding and shop resolution.
"""
import pytest

from scanreward.extensions import db
from scanreward.services.tag_resolver import (
    TagResolver,
    decode_ndef_record,
    parse_tag_payload,
)
from scanreward.utils.exceptions import InvalidTagError


def text_record(value, lang='en'):
    lang_bytes = lang.encode('ascii')
    return {
        'tnf': 1,
        'type': [0x54],
        'payload': [len(lang_bytes)] + list(lang_bytes) + list(value.encode('utf-8'))
    }


def uri_record(code, rest):
    return {'tnf': 1, 'type': b'U', 'payload': bytes([code]) + rest.encode('utf-8')}


class TestDecodeNdefRecord:

    def test_text_record_skips_language_code(self):
        assert decode_ndef_record(text_record('shop_cafe')) == ('text', 'shop_cafe')

    def test_uri_record_expands_prefix(self):
        assert decode_ndef_record(uri_record(0x04, 'scanreward.app/s/1')) == ('uri', 'https://scanreward.app/s/1')

    def test_uri_record_without_prefix(self):
        assert decode_ndef_record(uri_record(0x00, 'shop_cafe')) == ('uri', 'shop_cafe')

    def test_unsupported_tnf(self):
        record = text_record('shop_cafe')
        record['tnf'] = 2
        assert decode_ndef_record(record) == ('unknown', None)

    def test_empty_payload(self):
        assert decode_ndef_record({'tnf': 1, 'type': 'T', 'payload': []}) == ('unknown', None)

    def test_utf16_text_record_is_big_endian(self):
        payload = bytes([0x82]) + b'en' + 'shop_cafe'.encode('utf-16-be')
        record = {'tnf': 1, 'type': b'T', 'payload': payload}
        assert decode_ndef_record(record) == ('text', 'shop_cafe')

    def test_utf16_text_record_honours_byte_order_mark(self):
        payload = bytes([0x82]) + b'en' + 'shop_cafe'.encode('utf-16')
        record = {'tnf': 1, 'type': b'T', 'payload': payload}
        assert decode_ndef_record(record) == ('text', 'shop_cafe')


class TestParseTagPayload:

    def test_plain_string(self):
        assert parse_tag_payload('  shop_cafe ') == 'shop_cafe'

    def test_first_record_wins(self):
        records = [text_record('shop_cafe'), text_record('other')]
        assert parse_tag_payload(records) == 'shop_cafe'

    def test_single_record_dict(self):
        assert parse_tag_payload(text_record('shop_cafe')) == 'shop_cafe'

    @pytest.mark.parametrize('payload', [None, [], '', '   '])
    def test_empty_payload_raises(self, payload):
        with pytest.raises(InvalidTagError) as exc:
            parse_tag_payload(payload)
        assert exc.value.message == 'No tag ID found'


class TestTagResolver:

    def test_resolve_with_tag_uid(self, sample_shop):
        resolved = TagResolver().resolve([text_record('shop_cafe')], tag_id='04:A2:19:B2:5C:80')

        assert resolved.shop_id == 'shop_cafe'
        assert resolved.tag_id == '04:A2:19:B2:5C:80'
        assert resolved.config.new_client_points == 10
        assert resolved.config.cooldown_seconds == 1800

    def test_resolve_by_tag_value_alone(self, sample_shop):
        resolved = TagResolver().resolve('04:11:22:33:44:55')
        assert resolved.shop_id == 'shop_cafe'

    def test_unregistered_tag_rejected(self, sample_shop):
        with pytest.raises(InvalidTagError) as exc:
            TagResolver().resolve('shop_cafe', tag_id='FF:FF:FF:FF')
        assert exc.value.message == 'Invalid tag for this shop'
        assert exc.value.tag_id == 'FF:FF:FF:FF'

    def test_unknown_shop_rejected(self, sample_shop):
        with pytest.raises(InvalidTagError):
            TagResolver().resolve('shop_missing', tag_id='04:A2:19:B2:5C:80')

    def test_shop_without_tags(self, sample_shop):
        sample_shop.nfc_tag_ids = []
        db.session.commit()

        with pytest.raises(InvalidTagError) as exc:
            TagResolver().resolve('shop_cafe', tag_id='04:A2:19:B2:5C:80')
        assert exc.value.message == 'No tag ID configured for this shop'

    def test_inactive_shop_rejected(self, sample_shop):
        sample_shop.is_active = False
        db.session.commit()

        with pytest.raises(InvalidTagError):
            TagResolver().resolve('04:A2:19:B2:5C:80')

    def test_default_cooldown_used_when_shop_has_none(self, sample_shop):
        sample_shop.cooldown_seconds = None
        db.session.commit()

        resolved = TagResolver(default_cooldown_seconds=600).resolve('shop_cafe', tag_id='04:A2:19:B2:5C:80')
        assert resolved.config.cooldown_seconds == 600

    def test_resolve_non_ascii_tag_value(self, sample_shop):
        sample_shop.nfc_tag_ids = ['café-01']
        db.session.commit()

        resolved = TagResolver().resolve('café-01')
        assert resolved.shop_id == 'shop_cafe'
        assert resolved.tag_id == 'café-01'
