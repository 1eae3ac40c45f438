"""Verify detached OpenPGP signatures against a trust store."""
import collections
import io
import logging

from . import armor, decode, errors, util

log = logging.getLogger(__name__)

VerificationOutcome = collections.namedtuple(
    'VerificationOutcome', ['verified', 'signer_key_id'])

# https://tools.ietf.org/html/rfc4880#section-5.2.1
BINARY_DOCUMENT = 0x00
CANONICAL_TEXT = 0x01


def canonical_text(data):
    """Convert line endings to <CR><LF>."""
    return data.replace(b'\r\n', b'\n').replace(b'\n', b'\r\n')


def load_signatures(signature, signature_is_binary):
    """Parse signature packets, removing their ASCII armor if needed."""
    if not signature_is_binary:
        _, signature = armor.decode(signature, type_str='SIGNATURE')

    packets = list(decode.parse_packets(io.BytesIO(signature)))
    signatures = [p for p in packets if p['type'] == 'signature']
    if not signatures or len(signatures) != len(packets):
        raise ValueError('expected only signature packets')
    return signatures


def find_signer(trust_store, plaintext, signature):
    """Find a trusted key which validates the signature over plaintext."""
    if signature['sig_type'] == CANONICAL_TEXT:
        plaintext = canonical_text(plaintext)
    elif signature['sig_type'] != BINARY_DOCUMENT:
        raise ValueError('unexpected signature type: {}'.format(
            signature['sig_type']))

    digest, hash_alg = decode.digest_signature(
        signature, [{'_to_hash': plaintext}])
    issuers = decode.issuer_key_ids(signature)
    fingerprints = decode.issuer_fingerprints(signature)
    log.debug('signature issuers: %s',
              [util.hexlify(v) for v in issuers | fingerprints])

    for key in trust_store.candidates(issuers, fingerprints):
        try:
            decode.verify_digest(pubkey=key, digest=digest, hash_alg=hash_alg,
                                 signature=signature, label='GPG signature')
        except ValueError:
            continue
        return key
    raise ValueError('no trusted key validates this signature')


def verify(trust_store, plaintext, signature, signature_is_binary, name=None):
    """
    Verify `signature` over `plaintext`, using keys from `trust_store`.

    Missing keys, corrupted signatures and modified data are all reported
    using the same SignatureInvalid error.
    """
    try:
        signatures = load_signatures(signature, signature_is_binary)
    except (ValueError, EOFError) as e:
        log.debug('failed to load signature: %s', e)
        raise errors.SignatureInvalid(name)

    for sig in signatures:
        try:
            key = find_signer(trust_store, plaintext, sig)
        except (ValueError, EOFError) as e:
            log.debug('signature is not valid: %s', e)
            continue

        signer_key_id = util.hexlify(key['primary_key_id'])
        log.info('good signature from %s (using %s key %s)', signer_key_id,
                 key['type'], util.hexlify(key['key_id']))
        return VerificationOutcome(verified=True, signer_key_id=signer_key_id)

    raise errors.SignatureInvalid(name)
