"""Decoders for ASCII armor and the cleartext signature framework."""
import base64
import binascii
import collections
import logging
import re

from . import util

log = logging.getLogger(__name__)

_begin_regexp = re.compile(br'^-----BEGIN PGP (?P<type>[A-Z ,/0-9]+)-----$')

SIGNED_MESSAGE = b'-----BEGIN PGP SIGNED MESSAGE-----'
SIGNATURE = b'-----BEGIN PGP SIGNATURE-----'

ClearsignedBlock = collections.namedtuple(
    'ClearsignedBlock', ['headers', 'plaintext', 'signed_text', 'signature'])


def _split_lines(data):
    """Split bytes into lines, dropping LF/CRLF terminators."""
    lines = data.split(b'\n')
    if lines and not lines[-1]:
        lines.pop()
    return [line[:-1] if line.endswith(b'\r') else line for line in lines]


def _parse_headers(lines):
    """Parse "Key: Value" armor headers, up to the separating empty line."""
    headers = {}
    for i, line in enumerate(lines):
        line = line.rstrip()
        if not line:
            return headers, lines[i+1:]
        if b': ' not in line:
            raise ValueError('invalid armor header: {!r}'.format(line))
        key, value = line.split(b': ', 1)
        headers.setdefault(key.decode('ascii', 'replace'), []).append(
            value.decode('utf-8', 'replace'))
    raise ValueError('missing empty line after armor headers')


def is_armored(data):
    """Check whether data starts with an armor header line."""
    return data.lstrip().startswith(b'-----BEGIN PGP ')


def decode(data, type_str=None):
    """
    Decode armored data into its binary form.

    See https://tools.ietf.org/html/rfc4880#section-6.2 for details.
    Returns the block type (e.g. 'SIGNATURE') and its payload.
    """
    lines = [line.rstrip() for line in _split_lines(data)]
    for i, line in enumerate(lines):
        m = _begin_regexp.match(line)
        if m:
            break
    else:
        raise ValueError('armor header line not found')

    block_type = m.group('type').decode('ascii')
    if type_str is not None and block_type != type_str:
        raise ValueError('unexpected armor type: {}'.format(block_type))

    headers, lines = _parse_headers(lines[i+1:])
    log.debug('armor headers: %s', headers)
    tail = '-----END PGP {}-----'.format(block_type).encode('ascii')

    body = []
    checksum = None
    for i, line in enumerate(lines):
        if line == tail:
            break
        if line.startswith(b'=') and len(line) == 5:
            checksum = line[1:]
            if lines[i+1:i+2] != [tail]:
                raise ValueError('armor tail not found after checksum')
        elif checksum is None:
            body.append(line)
        else:
            raise ValueError('unexpected data after armor checksum')
    else:
        raise ValueError('armor tail not found')

    try:
        payload = base64.b64decode(b''.join(body), validate=True)
        if checksum is not None:
            checksum = base64.b64decode(checksum, validate=True)
    except binascii.Error as e:
        raise ValueError('invalid base64 data: {}'.format(e))

    if checksum is not None and util.crc24(payload) != checksum:
        raise ValueError('armor checksum mismatch')
    return block_type, payload


def decode_clearsigned(data):
    """
    Decode a cleartext signed message.

    See https://tools.ietf.org/html/rfc4880#section-7 for details.
    Both the plaintext and the signed text are dash-unescaped, with trailing
    whitespace removed from every line.  The plaintext is LF-terminated,
    while the signed text is canonicalized (CRLF line endings, the last line
    ending excluded) as it is hashed by the signer.
    """
    lines = _split_lines(data)
    for i, line in enumerate(lines):
        if line.rstrip() == SIGNED_MESSAGE:
            break
    else:
        raise ValueError('clearsigned message header not found')

    headers, lines = _parse_headers(lines[i+1:])

    text = []
    for i, line in enumerate(lines):
        if line.rstrip() == SIGNATURE:
            signature_lines = lines[i:]
            break
        if line.startswith(b'- '):
            line = line[2:]
        # trailing whitespace is not covered by the signature
        text.append(line.rstrip(b' \t'))
    else:
        raise ValueError('signature section not found')

    block_type, signature = decode(b'\n'.join(signature_lines))
    if block_type != 'SIGNATURE':
        raise ValueError('unexpected armor type: {}'.format(block_type))
    if not signature:
        raise ValueError('empty signature')

    plaintext = b''.join(line + b'\n' for line in text)
    signed_text = b'\r\n'.join(text)
    log.debug('clearsigned message: %d lines (%s)', len(text), headers)
    return ClearsignedBlock(headers=headers, plaintext=plaintext,
                            signed_text=signed_text, signature=signature)
