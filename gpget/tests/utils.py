"""Create GPG public keys and signatures for tests (NEVER USE FOR REAL DATA)."""
import base64
import functools
import hashlib
import struct

import ecdsa
import nacl.signing
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, padding, rsa
from cryptography.hazmat.primitives.asymmetric import utils as asym_utils

from .. import decode, util

CREATED = 1234567890


def bytes2num(s):
    """Convert MSB-first bytes to an unsigned integer."""
    res = 0
    for i, c in enumerate(reversed(bytearray(s))):
        res += c << (i * 8)
    return res


def packet(tag, blob):
    """Create small GPG packet."""
    assert len(blob) < 2**32

    if len(blob) < 2**8:
        length_type = 0
    elif len(blob) < 2**16:
        length_type = 1
    else:
        length_type = 2

    fmt = ['>B', '>H', '>L'][length_type]
    leading_byte = 0x80 | (tag << 2) | (length_type)
    return struct.pack('>B', leading_byte) + util.prefix_len(fmt, blob)


def subpacket(subpacket_type, fmt, *values):
    """Create GPG subpacket."""
    blob = struct.pack(fmt, *values) if values else fmt
    return struct.pack('>B', subpacket_type) + blob


def subpacket_time(value):
    """Create GPG subpacket with time in seconds (since Epoch)."""
    return subpacket(2, '>L', value)


def subpacket_prefix_len(item):
    """Prefix subpacket length according to RFC 4880 section-5.2.3.1."""
    n = len(item)
    if n >= 8384:
        prefix = b'\xFF' + struct.pack('>L', n)
    elif n >= 192:
        n = n - 192
        prefix = struct.pack('BB', (n // 256) + 192, n % 256)
    else:
        prefix = struct.pack('B', n)
    return prefix + item


def subpackets(*items):
    """Serialize several GPG subpackets."""
    prefixed = [subpacket_prefix_len(item) for item in items]
    return util.prefix_len('>H', b''.join(prefixed))


def mpi(value):
    """Serialize multipresicion integer using GPG format."""
    bits = value.bit_length()
    return struct.pack('>H', bits) + util.num2bytes(value, (bits + 7) // 8)


def armor(blob, type_str):
    """See https://tools.ietf.org/html/rfc4880#section-6 for details."""
    head = '-----BEGIN PGP {}-----\nVersion: GnuPG v2\n\n'.format(type_str)
    body = base64.b64encode(blob).decode('ascii')
    lines = ''.join(body[i:i+64] + '\n' for i in range(0, len(body), 64))
    checksum = base64.b64encode(util.crc24(blob)).decode('ascii')
    tail = '-----END PGP {}-----\n'.format(type_str)
    return (head + lines + '=' + checksum + '\n' + tail).encode('ascii')


class PublicKey:
    """Test key pair, exported as a GPG v4 public key."""

    algo_id = None

    def __init__(self, created=CREATED):
        self.created = created

    def material(self):
        raise NotImplementedError()

    def sign(self, digest, hash_name):
        raise NotImplementedError()

    def data(self):
        """Data for packet creation."""
        header = struct.pack('>BLB', 4, self.created, self.algo_id)
        return header + self.material()

    def data_to_hash(self):
        """Data for digest computation."""
        return b'\x99' + util.prefix_len('>H', self.data())

    def fingerprint(self):
        return hashlib.sha1(self.data_to_hash()).digest()

    def key_id(self):
        """Long (8 byte) GPG key ID."""
        return self.fingerprint()[-8:]

    def key_id_string(self):
        return util.hexlify(self.key_id())


class EcdsaKey(PublicKey):
    algo_id = 19

    def __init__(self, secexp, curve=ecdsa.NIST256p, created=CREATED):
        super().__init__(created=created)
        self.curve = curve
        self.oid, = [oid for oid, c in decode.ECDSA_CURVES.items()
                     if c is curve]
        self.sk = ecdsa.SigningKey.from_secret_exponent(
            secexp=secexp, curve=curve, hashfunc=hashlib.sha256)
        self.vk = self.sk.get_verifying_key()

    def material(self):
        point = self.vk.pubkey.point
        bits = 8 * self.curve.baselen
        value = (4 << (2 * bits)) | (point.x() << bits) | point.y()
        return util.prefix_len('>B', self.oid) + mpi(value)

    def sign(self, digest, hash_name):
        return self.sk.sign_digest_deterministic(
            digest, hashfunc=getattr(hashlib, hash_name),
            sigencode=lambda r, s, order: (r, s), allow_truncate=True)


class Ed25519Key(PublicKey):
    algo_id = 22
    oid = b'\x2B\x06\x01\x04\x01\xDA\x47\x0F\x01'

    def __init__(self, seed, created=CREATED):
        super().__init__(created=created)
        self.sk = nacl.signing.SigningKey(seed)

    def material(self):
        value = (0x40 << 256) | bytes2num(bytes(self.sk.verify_key))
        return util.prefix_len('>B', self.oid) + mpi(value)

    def sign(self, digest, hash_name):
        sig = self.sk.sign(digest).signature
        return (bytes2num(sig[:32]), bytes2num(sig[32:]))


def _prehashed(hash_name):
    return asym_utils.Prehashed(getattr(hashes, hash_name.upper())())


class RsaKey(PublicKey):
    algo_id = 1

    def __init__(self, created=CREATED):
        super().__init__(created=created)
        self.sk = _private_key(rsa)

    def material(self):
        numbers = self.sk.public_key().public_numbers()
        return mpi(numbers.n) + mpi(numbers.e)

    def sign(self, digest, hash_name):
        sig = self.sk.sign(digest, padding.PKCS1v15(), _prehashed(hash_name))
        return (bytes2num(sig),)


class DsaKey(PublicKey):
    algo_id = 17

    def __init__(self, created=CREATED):
        super().__init__(created=created)
        self.sk = _private_key(dsa)

    def material(self):
        numbers = self.sk.public_key().public_numbers()
        params = numbers.parameter_numbers
        return mpi(params.p) + mpi(params.q) + mpi(params.g) + mpi(numbers.y)

    def sign(self, digest, hash_name):
        sig = self.sk.sign(digest, _prehashed(hash_name))
        return asym_utils.decode_dss_signature(sig)


@functools.lru_cache(maxsize=None)
def _private_key(module):
    """Single (cached) private key per test session."""
    if module is rsa:
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return dsa.generate_private_key(key_size=2048)


def make_signature(key, data_to_sign, sig_type=0x00, hash_alg=8,
                   hashed_subpackets=None, unhashed_subpackets=None):
    """Create new GPG v4 signature (SHA256 by default)."""
    if hashed_subpackets is None:
        hashed_subpackets = [subpacket_time(key.created)]
    if unhashed_subpackets is None:
        unhashed_subpackets = [subpacket(16, key.key_id())]  # issuer key id

    header = struct.pack('>BBBB',
                         4,         # version
                         sig_type,  # rfc4880 (section-5.2.1)
                         key.algo_id,
                         hash_alg)  # rfc4880 (section-9.4)
    hashed = subpackets(*hashed_subpackets)
    unhashed = subpackets(*unhashed_subpackets)
    tail = b'\x04\xff' + struct.pack('>L', len(header) + len(hashed))
    hash_name = decode.HASH_ALGORITHMS[hash_alg]
    digest = hashlib.new(hash_name, data_to_sign + header + hashed + tail)
    digest = digest.digest()
    params = key.sign(digest, hash_name)
    sig = b''.join(mpi(p) for p in params)

    return bytes(header + hashed + unhashed +
                 digest[:2] +  # used for decoder's sanity check
                 sig)


def create_primary(user_id, key):
    """Export primary GPG public key, with a self-signed user ID."""
    user_id_bytes = user_id.encode('utf-8')
    data_to_sign = (key.data_to_hash() + b'\xb4' +
                    util.prefix_len('>L', user_id_bytes))
    hashed_subpackets = [
        subpacket_time(key.created),
        subpacket(0x1B, '>B', 1 | 2),  # key flags (certify & sign)
    ]
    signature = make_signature(key, data_to_sign, sig_type=0x13,
                               hashed_subpackets=hashed_subpackets)
    return (packet(tag=6, blob=key.data()) +
            packet(tag=13, blob=user_id_bytes) +
            packet(tag=2, blob=signature))


def create_subkey(primary, subkey, flags=2, embedded=True):
    """Export a subkey (and its binding signature) for a primary key."""
    data_to_sign = primary.data_to_hash() + subkey.data_to_hash()

    unhashed_subpackets = [subpacket(16, primary.key_id())]
    if embedded:
        embedded_sig = make_signature(subkey, data_to_sign, sig_type=0x19)
        unhashed_subpackets.append(subpacket(32, embedded_sig))

    hashed_subpackets = [
        subpacket_time(subkey.created),
        subpacket(0x1B, '>B', flags)]
    signature = make_signature(primary, data_to_sign, sig_type=0x18,
                               hashed_subpackets=hashed_subpackets,
                               unhashed_subpackets=unhashed_subpackets)
    return (packet(tag=14, blob=subkey.data()) +
            packet(tag=2, blob=signature))


def sign_detached(key, data, **kwargs):
    """Binary detached signature (".sig" file)."""
    return packet(tag=2, blob=make_signature(key, data, **kwargs))


def sign_armored(key, data, **kwargs):
    """Armored detached signature (".asc" file)."""
    return armor(sign_detached(key, data, **kwargs), 'SIGNATURE')


def clearsign(key, text):
    """Create a cleartext signed message (sig_type 0x01)."""
    lines = text.split(b'\n')
    if text.endswith(b'\n'):
        lines.pop()
    signed_text = b'\r\n'.join(line.rstrip(b' \t') for line in lines)
    signature = sign_armored(key, signed_text, sig_type=0x01)
    escaped = [b'- ' + line if line.startswith(b'-') else line
               for line in lines]
    return (b'-----BEGIN PGP SIGNED MESSAGE-----\nHash: SHA256\n\n' +
            b''.join(line + b'\n' for line in escaped) + signature)
