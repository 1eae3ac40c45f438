"""Decoders for OpenPGP packets, public keys and signatures."""
import copy
import functools
import hashlib
import io
import logging
import struct

import ecdsa
import ecdsa.errors
import nacl.exceptions
import nacl.signing
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, padding, rsa
from cryptography.hazmat.primitives.asymmetric import utils as asym_utils

from . import util

log = logging.getLogger(__name__)


def parse_subpackets(s):
    """See https://tools.ietf.org/html/rfc4880#section-5.2.3.1 for details."""
    subpackets = []
    total_size = s.readfmt('>H')
    data = s.read(total_size)
    s = util.Reader(io.BytesIO(data))

    while True:
        try:
            first = s.readfmt('B')
        except EOFError:
            break

        if first < 192:
            subpacket_len = first
        elif first < 255:
            subpacket_len = ((first - 192) << 8) + s.readfmt('B') + 192
        else:  # first == 255
            subpacket_len = s.readfmt('>L')

        if subpacket_len == 0:
            raise ValueError('empty subpacket')
        subpackets.append(s.read(subpacket_len))

    return subpackets


def parse_mpi(s):
    """See https://tools.ietf.org/html/rfc4880#section-3.2 for details."""
    bits = s.readfmt('>H')
    blob = bytearray(s.read(int((bits + 7) // 8)))
    return sum(v << (8 * i) for i, v in enumerate(reversed(blob)))


def parse_mpis(s, n):
    """Parse multiple MPIs from stream."""
    return [parse_mpi(s) for _ in range(n)]


HASH_ALGORITHMS = {
    2: 'sha1',
    8: 'sha256',
    9: 'sha384',
    10: 'sha512',
    11: 'sha224',
}

_PREHASHED = {
    'sha1': hashes.SHA1,
    'sha224': hashes.SHA224,
    'sha256': hashes.SHA256,
    'sha384': hashes.SHA384,
    'sha512': hashes.SHA512,
}


def _prehashed(hash_name):
    return asym_utils.Prehashed(_PREHASHED[hash_name]())


def _parse_rsa_verifier(stream):
    n, e = parse_mpis(stream, n=2)
    key = rsa.RSAPublicNumbers(e=e, n=n).public_key()
    size = (n.bit_length() + 7) // 8

    def _rsa_verify(signature, digest, hash_name):
        sig_value, = signature
        key.verify(util.num2bytes(sig_value, size=size), digest,
                   padding.PKCS1v15(), _prehashed(hash_name))
        log.debug('RSA signature is OK')
    return _rsa_verify


def _parse_dsa_verifier(stream):
    p, q, g, y = parse_mpis(stream, n=4)
    params = dsa.DSAParameterNumbers(p=p, q=q, g=g)
    key = dsa.DSAPublicNumbers(y=y, parameter_numbers=params).public_key()

    def _dsa_verify(signature, digest, hash_name):
        r, s = signature
        key.verify(asym_utils.encode_dss_signature(r, s), digest,
                   _prehashed(hash_name))
        log.debug('DSA signature is OK')
    return _dsa_verify


def _ecdsa_verifier(curve, mpi):
    point = util.num2bytes(mpi, size=1 + 2 * curve.baselen)
    if point[:1] != b'\x04':
        raise ValueError('compressed EC points are not supported')
    vk = ecdsa.VerifyingKey.from_string(point, curve=curve)

    def _ecdsa_verify(signature, digest, hash_name):
        result = vk.verify_digest(signature=signature,
                                  digest=digest,
                                  sigdecode=lambda rs, order: rs,
                                  allow_truncate=True)
        log.debug('%s ECDSA signature is OK (%s, %s)',
                  curve.name, hash_name, result)
    return _ecdsa_verify


def _ed25519_verifier(_, mpi):
    prefix, value = util.split_bits(mpi, 8, 256)
    if prefix != 0x40:
        raise ValueError('invalid Ed25519 point prefix: {}'.format(prefix))
    vk = nacl.signing.VerifyKey(util.num2bytes(value, size=32))

    def _ed25519_verify(signature, digest, hash_name):
        sig = b''.join(util.num2bytes(val, size=32)
                       for val in signature)
        vk.verify(digest, sig)
        log.debug('ed25519 EdDSA signature is OK (%s)', hash_name)
    return _ed25519_verify


ECDSA_CURVES = {
    b'\x2A\x86\x48\xCE\x3D\x03\x01\x07': ecdsa.NIST256p,
    b'\x2B\x81\x04\x00\x22': ecdsa.NIST384p,
    b'\x2B\x81\x04\x00\x23': ecdsa.NIST521p,
    b'\x2B\x81\x04\x00\x0A': ecdsa.SECP256k1,
    b'\x2B\x24\x03\x03\x02\x08\x01\x01\x07': ecdsa.BRAINPOOLP256r1,
    b'\x2B\x24\x03\x03\x02\x08\x01\x01\x0B': ecdsa.BRAINPOOLP384r1,
    b'\x2B\x24\x03\x03\x02\x08\x01\x01\x0D': ecdsa.BRAINPOOLP512r1,
}

ED25519_OID = b'\x2B\x06\x01\x04\x01\xDA\x47\x0F\x01'

RSA_ALGO_IDS = {1, 2, 3}
RSA_SIGN_ALGO_IDS = {1, 3}
ELGAMAL_ALGO_IDS = {16, 20}
DSA_ALGO_ID = 17
ECDH_ALGO_ID = 18
ECDSA_ALGO_ID = 19
EDDSA_ALGO_ID = 22

# Number of MPIs in a signature, per public key algorithm
SIGNATURE_MPIS = {1: 1, 3: 1, DSA_ALGO_ID: 2, ECDSA_ALGO_ID: 2,
                  EDDSA_ALGO_ID: 2}

KEY_FLAG_SIGN = 0x02


def _parse_key_material(stream, algo):
    """Parse algorithm-specific public key fields, returning a verifier."""
    if algo in RSA_ALGO_IDS:
        verifier = _parse_rsa_verifier(stream)
        return verifier if algo in RSA_SIGN_ALGO_IDS else None
    if algo == DSA_ALGO_ID:
        return _parse_dsa_verifier(stream)
    if algo in ELGAMAL_ALGO_IDS:
        parse_mpis(stream, n=3)
        return None
    if algo in {ECDH_ALGO_ID, ECDSA_ALGO_ID, EDDSA_ALGO_ID}:
        # https://tools.ietf.org/html/rfc6637#section-11
        oid_size = stream.readfmt('B')
        oid = stream.read(oid_size)
        mpi = parse_mpi(stream)
        log.debug('mpi: %x (%d bits)', mpi, mpi.bit_length())
        if algo == ECDH_ALGO_ID:
            # https://tools.ietf.org/html/rfc6637#section-9 (KDF parameters)
            size = stream.readfmt('B')
            stream.read(size)
            return None
        if algo == EDDSA_ALGO_ID and oid == ED25519_OID:
            return _ed25519_verifier(oid, mpi)
        if algo == ECDSA_ALGO_ID and oid in ECDSA_CURVES:
            return _ecdsa_verifier(ECDSA_CURVES[oid], mpi)
        log.warning('unsupported curve OID: %s', util.hexlify(oid))
        stream.read()
        return None

    log.warning('unsupported public key algorithm: %d', algo)
    stream.read()
    return None


def _parse_signature(stream):
    """See https://tools.ietf.org/html/rfc4880#section-5.2 for details."""
    p = {'type': 'signature'}

    to_hash = io.BytesIO()
    with stream.capture(to_hash):
        p['version'] = stream.readfmt('B')
        if p['version'] != 4:
            log.warning('unsupported signature version: %d', p['version'])
            stream.read()
            p.update(sig_type=None, pubkey_alg=None, hash_alg=None, sig=None,
                     hashed_subpackets=[], unhashed_subpackets=[],
                     hash_prefix=None, _to_hash=b'')
            return p
        p['sig_type'] = stream.readfmt('B')
        p['pubkey_alg'] = stream.readfmt('B')
        p['hash_alg'] = stream.readfmt('B')
        p['hashed_subpackets'] = parse_subpackets(stream)

    # https://tools.ietf.org/html/rfc4880#section-5.2.4
    tail_to_hash = b'\x04\xff' + struct.pack('>L', to_hash.tell())

    p['_to_hash'] = to_hash.getvalue() + tail_to_hash

    p['unhashed_subpackets'] = parse_subpackets(stream)
    p['hash_prefix'] = stream.readfmt('2s')

    mpis = SIGNATURE_MPIS.get(p['pubkey_alg'])
    if mpis is None:
        log.warning('unsupported signature algorithm: %d', p['pubkey_alg'])
        p['sig'] = None
        stream.read()
    else:
        p['sig'] = tuple(parse_mpis(stream, n=mpis))

    if stream.read():
        raise ValueError('trailing data after signature')
    return p


def _parse_pubkey(stream, packet_type='pubkey'):
    """See https://tools.ietf.org/html/rfc4880#section-5.5 for details."""
    p = {'type': packet_type}
    packet = io.BytesIO()
    with stream.capture(packet):
        p['version'] = stream.readfmt('B')
        if p['version'] == 4:
            p['created'] = stream.readfmt('>L')
            p['algo'] = stream.readfmt('B')
            try:
                p['verifier'] = _parse_key_material(stream, p['algo'])
            except (ValueError, ecdsa.errors.MalformedPointError) as e:
                log.warning('invalid public key material: %s', e)
                p['verifier'] = None
        else:
            log.warning('unsupported public key version: %d', p['version'])
            p['verifier'] = None
        leftover = stream.read()
        if leftover and p['verifier'] is not None:
            raise ValueError('trailing data after public key')

    # https://tools.ietf.org/html/rfc4880#section-12.2
    packet_data = packet.getvalue()
    data_to_hash = (b'\x99' + struct.pack('>H', len(packet_data)) +
                    packet_data)
    p['fingerprint'] = hashlib.sha1(data_to_hash).digest()
    p['key_id'] = p['fingerprint'][-8:]
    p['_to_hash'] = data_to_hash
    log.debug('key ID: %s', util.hexlify(p['key_id']))
    return p

_parse_subkey = functools.partial(_parse_pubkey, packet_type='subkey')


def _parse_user_id(stream, packet_type='user_id', prefix=b'\xb4'):
    """See https://tools.ietf.org/html/rfc4880#section-5.11 for details."""
    value = stream.read()
    to_hash = prefix + util.prefix_len('>L', value)
    return {'type': packet_type, 'value': value, '_to_hash': to_hash}

# https://tools.ietf.org/html/rfc4880#section-5.12
_parse_attribute = functools.partial(_parse_user_id,
                                     packet_type='user_attribute',
                                     prefix=b'\xd1')

PACKET_TYPES = {
    2: _parse_signature,
    6: _parse_pubkey,
    13: _parse_user_id,
    14: _parse_subkey,
    17: _parse_attribute,
}


def parse_packets(stream):
    """
    Support iterative parsing of available GPG packets.

    See https://tools.ietf.org/html/rfc4880#section-4.2 for details.
    """
    reader = util.Reader(stream)
    while True:
        try:
            value = reader.readfmt('B')
        except EOFError:
            return

        log.debug('prefix byte: %s', bin(value))
        if util.bit(value, 7) != 1:
            raise ValueError('invalid packet header: {:#04x}'.format(value))

        tag = util.low_bits(value, 6)
        if util.bit(value, 6) == 0:
            length_type = util.low_bits(tag, 2)
            tag = tag >> 2
            if length_type == 3:  # indeterminate length
                packet_size = None
            else:
                fmt = {0: '>B', 1: '>H', 2: '>L'}[length_type]
                packet_size = reader.readfmt(fmt)
        else:
            first = reader.readfmt('B')
            if first < 192:
                packet_size = first
            elif first < 224:
                packet_size = ((first - 192) << 8) + reader.readfmt('B') + 192
            elif first == 255:
                packet_size = reader.readfmt('>L')
            else:
                raise ValueError('partial body lengths are not supported')

        log.debug('packet length: %s', packet_size)
        packet_data = reader.read(packet_size)
        packet_type = PACKET_TYPES.get(tag)

        if packet_type is not None:
            s = util.Reader(io.BytesIO(packet_data))
            p = packet_type(s)
            p['tag'] = tag
        else:
            p = {'type': 'unknown', 'tag': tag, 'raw': packet_data}

        log.debug('packet "%s": %s', p['type'], p)
        yield p


def digest_packets(packets, hasher):
    """Compute digest on specified packets, according to '_to_hash' field."""
    data_to_hash = io.BytesIO()
    for p in packets:
        data_to_hash.write(p['_to_hash'])
    hasher.update(data_to_hash.getvalue())
    return hasher.digest()


def collect_packets(packets, types_to_collect):
    """Collect specified packet types into their leading packet."""
    packet = None
    result = []
    for p in packets:
        if p['type'] in types_to_collect:
            if packet is None:
                raise ValueError('orphan {} packet'.format(p['type']))
            packet.setdefault(p['type'], []).append(p)
        else:
            packet = copy.copy(p)
            result.append(packet)
    return result


def parse_public_keys(stream):
    """Parse GPG public keys into hierarchy of packets."""
    packets = [p for p in parse_packets(stream) if p['type'] != 'unknown']
    packets = collect_packets(packets, {'signature'})
    packets = collect_packets(packets, {'user_id', 'user_attribute'})
    packets = collect_packets(packets, {'subkey'})
    return packets


def subpacket_values(signature, subpacket_type, hashed_only=False):
    """Find values of a specific subpacket type in a signature."""
    subpackets = list(signature['hashed_subpackets'])
    if not hashed_only:
        subpackets.extend(signature['unhashed_subpackets'])
    # https://tools.ietf.org/html/rfc4880#section-5.2.3.1 (critical bit)
    return [s[1:] for s in subpackets if s[0] & 0x7F == subpacket_type]


def issuer_key_ids(signature):
    """Key IDs which may have issued the signature (possibly empty)."""
    # https://tools.ietf.org/html/rfc4880#section-5.2.3.5
    return {v for v in subpacket_values(signature, 16) if len(v) == 8}


def issuer_fingerprints(signature):
    """V4 fingerprints which may have issued the signature (possibly empty)."""
    # https://tools.ietf.org/html/draft-ietf-openpgp-rfc4880bis-10#section-5.2.3.28
    return {v[1:] for v in subpacket_values(signature, 33)
            if len(v) == 21 and v[:1] == b'\x04'}


def key_flags(signature):
    """Return key flags (or None, if not specified)."""
    # https://tools.ietf.org/html/rfc4880#section-5.2.3.21
    values = subpacket_values(signature, 27, hashed_only=True)
    if not values or not values[0]:
        return None
    return bytearray(values[0])[0]


def embedded_signatures(signature):
    """Parse embedded signatures (e.g. primary key binding signatures)."""
    # https://tools.ietf.org/html/rfc4880#section-5.2.3.26
    for value in subpacket_values(signature, 32):
        yield _parse_signature(util.Reader(io.BytesIO(value)))


def digest_signature(signature, prefix_packets):
    """Compute the digest of a signature over its signed packets."""
    hash_alg = HASH_ALGORITHMS.get(signature['hash_alg'])
    if hash_alg is None:
        raise ValueError('unsupported hash algorithm: {}'.format(
            signature['hash_alg']))
    digest = digest_packets(list(prefix_packets) + [signature],
                            hasher=hashlib.new(hash_alg))
    if signature['hash_prefix'] != digest[:2]:
        raise ValueError('hash prefix mismatch')
    return digest, hash_alg


def verify_digest(pubkey, digest, hash_alg, signature, label):
    """Verify a digest signature from a specified public key."""
    verifier = pubkey.get('verifier')
    if verifier is None:
        raise ValueError('{} cannot be verified: unsupported key'.format(label))
    if signature['sig'] is None or signature['pubkey_alg'] != pubkey['algo']:
        raise ValueError('{} cannot be verified: algorithm mismatch'.format(
            label))
    try:
        verifier(signature['sig'], digest, hash_alg)
        log.debug('%s is OK', label)
    except (ecdsa.BadSignatureError, nacl.exceptions.BadSignatureError,
            InvalidSignature, ValueError) as e:
        log.debug('Bad %s: %r', label, e)
        raise ValueError('Invalid signature for {}'.format(label))
