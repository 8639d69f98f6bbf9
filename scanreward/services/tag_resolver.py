"""
Tag Resolver.

Maps a scanned NFC tag to the shop that owns it. Tags carry an NDEF
message whose first record holds the shop id (as a Text or URI record);
the tag's hardware UID must belong to that shop's configured tag set.
Resolution has no side effects.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from flask import current_app

from ..extensions import db
from ..models.shop import Shop, ShopRuleConfig
from ..utils.exceptions import InvalidTagError

logger = logging.getLogger(__name__)

TNF_WELL_KNOWN = 0x01
RTD_TEXT = b'T'
RTD_URI = b'U'

# NFC Forum URI Record Type Definition, identifier codes 0x00-0x23
URI_PREFIXES = (
    '', 'http://www.', 'https://www.', 'http://', 'https://', 'tel:', 'mailto:',
    'ftp://anonymous:anonymous@', 'ftp://ftp.', 'ftps://', 'sftp://', 'smb://',
    'nfs://', 'ftp://', 'dav://', 'news:', 'telnet://', 'imap:', 'rtsp://',
    'urn:', 'pop:', 'sip:', 'sips:', 'tftp:', 'btspp://', 'btl2cap://',
    'btgoep://', 'tcpobex://', 'irdaobex://', 'file://', 'urn:epc:id:',
    'urn:epc:tag:', 'urn:epc:pat:', 'urn:epc:raw:', 'urn:epc:', 'urn:nfc:',
)


@dataclass(frozen=True)
class ResolvedTag:
    shop_id: str
    tag_id: str
    config: ShopRuleConfig

    def to_dict(self):
        return {'shop_id': self.shop_id, 'tag_id': self.tag_id}


def _as_bytes(raw: Union[bytes, bytearray, Iterable[int], str, None]) -> bytes:
    if raw is None:
        return b''
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return raw.encode('utf-8')
    try:
        return bytes(raw)
    except (TypeError, ValueError) as e:
        raise InvalidTagError("Unreadable tag payload") from e


def decode_ndef_record(record: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """
    Decode one NDEF record.

    Args:
        record: {'tnf': int, 'type': bytes|list[int]|str, 'payload': bytes|list[int]}

    Returns:
        ('text', value), ('uri', value) or ('unknown', None)
    """
    tnf = record.get('tnf')
    rtd = _as_bytes(record.get('type'))
    payload = _as_bytes(record.get('payload'))

    if tnf != TNF_WELL_KNOWN or not payload:
        return 'unknown', None

    if rtd == RTD_TEXT:
        status = payload[0]
        text = payload[1 + (status & 0x3F):]
        if status & 0x80:
            # big-endian unless a byte order mark says otherwise
            encoding = 'utf-16' if text[:2] in (b'\xfe\xff', b'\xff\xfe') else 'utf-16-be'
        else:
            encoding = 'utf-8'
        try:
            return 'text', text.decode(encoding)
        except UnicodeDecodeError:
            return 'unknown', None

    if rtd == RTD_URI:
        code = payload[0]
        prefix = URI_PREFIXES[code] if code < len(URI_PREFIXES) else ''
        try:
            return 'uri', prefix + payload[1:].decode('utf-8')
        except UnicodeDecodeError:
            return 'unknown', None

    return 'unknown', None


def parse_tag_payload(payload) -> str:
    """
    Extract the scanned value from a tag payload.

    Accepts an already decoded string, a single NDEF record dict, or a
    list of NDEF records (only the first one is considered).
    """
    if isinstance(payload, str):
        value = payload
    else:
        if isinstance(payload, dict):
            payload = [payload]
        if not payload:
            raise InvalidTagError("No tag ID found")
        _, value = decode_ndef_record(payload[0])

    value = (value or '').strip()
    if not value:
        raise InvalidTagError("No tag ID found")
    return value


class TagResolver:
    """
    Usage:
        resolved = TagResolver().resolve(records, tag_id='04:A2:19:...')
        resolved.shop_id, resolved.config
    """

    def __init__(self, default_cooldown_seconds: int = None):
        if default_cooldown_seconds is None:
            default_cooldown_seconds = current_app.config.get('DEFAULT_COOLDOWN_SECONDS', 1800)
        self.default_cooldown_seconds = default_cooldown_seconds

    def resolve(self, payload, tag_id: str = None) -> ResolvedTag:
        """
        Resolve a scanned tag to its shop.

        Args:
            payload: NDEF records or decoded value (see parse_tag_payload)
            tag_id: Hardware UID of the tag. When omitted, the decoded
                value itself is the scanned identifier.

        Raises:
            InvalidTagError: unknown shop, no configured tag set, or a
                tag that is not a member of the set
        """
        value = parse_tag_payload(payload)

        if tag_id is None:
            scanned = value
            shop = self._find_shop_owning(scanned)
        else:
            scanned = str(tag_id)
            shop = db.session.get(Shop, value)

        if not shop or not shop.is_active:
            logger.info(f"Tag scan rejected: no active shop for value {value!r}")
            raise InvalidTagError("Invalid tag for this shop", tag_id=scanned)

        config = shop.rule_config(self.default_cooldown_seconds)

        if not config.nfc_tag_ids:
            raise InvalidTagError("No tag ID configured for this shop", tag_id=scanned)

        if scanned not in config.nfc_tag_ids:
            logger.info(f"Tag scan rejected: tag {scanned} not registered for shop {shop.id}")
            raise InvalidTagError("Invalid tag for this shop", tag_id=scanned)

        return ResolvedTag(shop_id=shop.id, tag_id=scanned, config=config)

    def _find_shop_owning(self, tag_id: str) -> Optional[Shop]:
        # tag sets are JSON lists; match on the decoded values
        for shop in Shop.query.filter(Shop.is_active.is_(True)).order_by(Shop.id):
            if tag_id in (shop.nfc_tag_ids or []):
                return shop
        return None
