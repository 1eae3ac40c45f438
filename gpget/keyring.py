"""Load trusted public keys from a local GPG keyring."""
import io
import logging
import os

from . import armor, decode, errors, util

log = logging.getLogger(__name__)

SUBKEY_BINDING = 0x18
PRIMARY_KEY_BINDING = 0x19


def default_path(environ=None):
    """Public keyring path, according to GnuPG conventions."""
    environ = os.environ if environ is None else environ
    home_dir = environ.get('GNUPGHOME') or os.path.expanduser('~/.gnupg')
    return os.path.join(home_dir, 'pubring.gpg')


class TrustStore:
    """Read-only collection of trusted public keys (and their subkeys)."""

    def __init__(self, keys):
        self._keys = tuple(keys)

    def __len__(self):
        return len(self._keys)

    def __iter__(self):
        return iter(self._keys)

    def candidates(self, issuers, fingerprints=()):
        """
        Signing keys that may have issued a signature.

        A key matches by its key ID or by its full fingerprint; without
        either, every signing key is a candidate.
        """
        keys = [k for k in self._keys if k['can_sign']]
        if issuers or fingerprints:
            keys = [k for k in keys if k['key_id'] in issuers or
                    k['fingerprint'] in fingerprints]
        return keys

    def __repr__(self):
        ids = ', '.join(util.hexlify(k['key_id']) for k in self._keys)
        return '<TrustStore [{}]>'.format(ids)


def _is_bound(primary, subkey, signature):
    digest, hash_alg = decode.digest_signature(signature, [primary, subkey])
    decode.verify_digest(pubkey=primary, digest=digest, hash_alg=hash_alg,
                         signature=signature, label='subkey binding')

    flags = decode.key_flags(signature)
    if flags is not None and not flags & decode.KEY_FLAG_SIGN:
        return False  # not a signing subkey

    # https://tools.ietf.org/html/rfc4880#section-11.1
    for embedded in decode.embedded_signatures(signature):
        if embedded['sig_type'] != PRIMARY_KEY_BINDING:
            continue
        digest, hash_alg = decode.digest_signature(embedded, [primary, subkey])
        decode.verify_digest(pubkey=subkey, digest=digest, hash_alg=hash_alg,
                             signature=embedded, label='primary key binding')
        return True
    log.warning('signing subkey %s has no primary key binding signature',
                util.hexlify(subkey['key_id']))
    return False


def _signing_subkey(primary, subkey):
    """Check that `subkey` is bound to `primary` and may create signatures."""
    if primary['verifier'] is None or subkey['verifier'] is None:
        return False
    for signature in subkey.get('signature', []):
        if signature['sig_type'] != SUBKEY_BINDING:
            continue
        try:
            return _is_bound(primary, subkey, signature)
        except (ValueError, EOFError) as e:
            log.warning('invalid binding for subkey %s: %s',
                        util.hexlify(subkey['key_id']), e)
    return False


def _entry(key, primary, user_ids, can_sign):
    return {
        'type': key['type'],
        'key_id': key['key_id'],
        'fingerprint': key['fingerprint'],
        'algo': key.get('algo'),
        'verifier': key['verifier'],
        'primary_key_id': primary['key_id'],
        'user_ids': user_ids,
        'can_sign': can_sign,
    }


def parse(data):
    """Parse binary (or armored) public keys into a TrustStore."""
    if armor.is_armored(data):
        _, data = armor.decode(data, type_str='PUBLIC KEY BLOCK')

    keys = []
    for primary in decode.parse_public_keys(io.BytesIO(data)):
        if primary['type'] != 'pubkey':
            raise ValueError('unexpected {} packet outside of a public key'
                             .format(primary['type']))
        user_ids = tuple(u['value'].decode('utf-8', 'replace')
                         for u in primary.get('user_id', []))
        log.debug('loaded public key %s %s',
                  util.hexlify(primary['key_id']), user_ids)
        keys.append(_entry(primary, primary, user_ids,
                           can_sign=primary['verifier'] is not None))

        for subkey in primary.get('subkey', []):
            if _signing_subkey(primary, subkey):
                keys.append(_entry(subkey, primary, user_ids, can_sign=True))
            else:
                log.debug('subkey %s is not used for verification',
                          util.hexlify(subkey['key_id']))

    if not keys:
        raise ValueError('no public keys found')
    return TrustStore(keys)


def load(path):
    """Open and parse the public keyring at `path`."""
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise errors.KeyringUnavailable(
            'could not open public keyring at {}: {}'.format(
                path, e.strerror or e))

    try:
        trust_store = parse(data)
    except (ValueError, EOFError) as e:
        raise errors.KeyringCorrupt(
            'error reading public keyring {}: {}'.format(
                path, str(e) or 'truncated data'))

    log.info('loaded %d public keys from %s', len(trust_store), path)
    return trust_store
