"""Match the signer against an expected GPG key ID."""
import logging

from . import errors

log = logging.getLogger(__name__)

SHORT_KEY_ID_LENGTH = 8
LONG_KEY_ID_LENGTH = 16


def normalize(key_id):
    """Upper-case hexadecimal key ID, without the '0x' prefix."""
    key_id = key_id.strip().upper()
    if key_id.startswith('0X'):
        key_id = key_id[2:]
    return key_id


def check_length(expected):
    """Validate and normalize an expected key ID (None if unspecified)."""
    if not expected:
        return None
    key_id = normalize(expected)
    if len(key_id) not in (SHORT_KEY_ID_LENGTH, LONG_KEY_ID_LENGTH):
        raise errors.InvalidIdentityLength(expected)
    return key_id


def match(expected, signer_key_id):
    """
    Check that the signer has the expected (short or long) key ID.

    Short key IDs are compared with the last 8 hexadecimal digits of the
    signer's key ID, and long key IDs with all 16 of them.
    """
    expected = check_length(expected)
    if expected is None:
        return True

    actual = normalize(signer_key_id)[-len(expected):]
    if expected != actual:
        raise errors.IdentityMismatch(expected=expected, actual=actual)

    log.info('signed by the expected key %s', expected)
    return True
