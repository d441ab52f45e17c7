"""Signed, time-bound pagination cursors.

A cursor is the keyset position of the last row on a page, wrapped with an
issue timestamp and an HMAC-SHA256 signature so that clients can hold it
opaquely but cannot forge or alter it. Every decode failure surfaces as the
same ``InvalidCursorError``; the specific reason is only logged.
"""

import base64
import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

import logging
logger = logging.getLogger(__name__)

DEFAULT_CURSOR_SECRET = 'default-secret-change-in-production'
CURSOR_MAX_AGE_MS = 24 * 60 * 60 * 1000
# Longest token encode() can emit for a 500-character sort value, with headroom.
MAX_CURSOR_LENGTH = 4096


class InvalidCursorError(ValueError):
    """Cursor is malformed, expired, tampered with or otherwise unusable."""

    def __init__(self) -> None:
        super().__init__("Invalid pagination cursor")


@dataclass(frozen=True)
class CursorConfig:
    """Process-wide cursor settings, read-only after startup."""
    secret: Optional[str] = None
    max_age_ms: int = CURSOR_MAX_AGE_MS


@dataclass(frozen=True)
class KeysetPosition:
    """Sort-key values of the last row returned on a page.

    ``sort_by``/``sort_value`` are only set when the page was ordered by a
    column other than ``created_at``; ``sort_value`` is a JSON scalar.
    """
    created_at: datetime
    id: int
    sort_by: Optional[str] = None
    sort_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'created_at': self.created_at.isoformat(),
            'id': self.id,
        }
        if self.sort_by is not None:
            data['sort_by'] = self.sort_by
            data['sort_value'] = self.sort_value
        return data


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


class CursorCodec:
    """Encode and decode signed keyset cursors."""

    def __init__(
            self,
            config: CursorConfig,
            clock: Callable[[], int] = _now_ms) -> None:
        """Create a codec.

        Args:
            config (CursorConfig): Signing secret and validity window.
            clock (Callable[[], int]): Current time in epoch milliseconds.
        """
        secret = config.secret
        if not secret:
            logger.warning(
                "Using default cursor secret. Set CURSOR_SECRET in production."
            )
            secret = DEFAULT_CURSOR_SECRET
        self._key = secret.encode('utf-8')
        self._max_age_ms = config.max_age_ms
        self._clock = clock

    @property
    def max_age_ms(self) -> int:
        return self._max_age_ms

    def _mac(self, data: Any, timestamp: int) -> hmac.HMAC:
        mac = hmac.HMAC(self._key, hashes.SHA256())
        mac.update(_canonical({'data': data, 'timestamp': timestamp}))
        return mac

    def encode(self, position: KeysetPosition) -> str:
        """Encode a keyset position as an opaque URL-safe cursor.

        Args:
            position (KeysetPosition): Sort values of the last returned row.

        Returns:
            str: Base64 token carrying the position, issue time and signature.
        """
        data = position.to_dict()
        timestamp = self._clock()
        signature = self._mac(data, timestamp).finalize().hex()
        token = {'data': data, 'signature': signature, 'timestamp': timestamp}
        return base64.urlsafe_b64encode(_canonical(token)).decode('ascii')

    def decode(self, cursor: str) -> KeysetPosition:
        """Validate a cursor and return the keyset position it carries.

        Checks run in order: structure, field presence, freshness,
        signature, data shape. The first failure aborts.

        Args:
            cursor (str): Token previously produced by ``encode``.

        Returns:
            KeysetPosition: The signed position.

        Raises:
            InvalidCursorError: For any malformed, expired or forged cursor.
        """
        if not isinstance(cursor, str) or len(cursor) > MAX_CURSOR_LENGTH:
            logger.debug("Cursor rejected: not a string or too long")
            raise InvalidCursorError()

        try:
            token = json.loads(base64.urlsafe_b64decode(cursor.encode('ascii')))
        except (ValueError, TypeError, RecursionError) as e:
            logger.debug("Cursor rejected: undecodable (%s)", e)
            raise InvalidCursorError() from None

        if not isinstance(token, dict):
            logger.debug("Cursor rejected: not an object")
            raise InvalidCursorError()

        data = token.get('data')
        signature = token.get('signature')
        timestamp = token.get('timestamp')
        if not data or not signature or timestamp is None:
            logger.debug("Cursor rejected: missing fields")
            raise InvalidCursorError()
        if not isinstance(timestamp, int) or isinstance(timestamp, bool) or not isinstance(signature, str):
            logger.debug("Cursor rejected: bad field types")
            raise InvalidCursorError()

        if self._clock() - timestamp > self._max_age_ms:
            logger.debug("Cursor rejected: expired (issued at %s)", timestamp)
            raise InvalidCursorError()

        try:
            self._mac(data, timestamp).verify(bytes.fromhex(signature))
        except (ValueError, InvalidSignature):
            logger.debug("Cursor rejected: signature mismatch")
            raise InvalidCursorError() from None

        return self._position_from(data)

    @staticmethod
    def _position_from(data: Any) -> KeysetPosition:
        if not isinstance(data, dict):
            raise InvalidCursorError()
        created_at = data.get('created_at')
        row_id = data.get('id')
        if not created_at or not isinstance(created_at, str):
            logger.debug("Cursor rejected: created_at missing")
            raise InvalidCursorError()
        if not isinstance(row_id, int) or isinstance(row_id, bool):
            logger.debug("Cursor rejected: id is not an integer")
            raise InvalidCursorError()
        try:
            created = datetime.fromisoformat(created_at)
        except ValueError:
            logger.debug("Cursor rejected: created_at not ISO-8601")
            raise InvalidCursorError() from None

        sort_by = data.get('sort_by')
        if sort_by is not None and not isinstance(sort_by, str):
            raise InvalidCursorError()
        return KeysetPosition(
            created_at=created,
            id=row_id,
            sort_by=sort_by,
            sort_value=data.get('sort_value'),
        )
