"""Select the plaintext and signature to verify, per signature encoding."""
import collections
import logging

from . import armor, errors
from .config import SignatureEncoding

log = logging.getLogger(__name__)

Resolved = collections.namedtuple(
    'Resolved', ['artifact', 'signature', 'signature_is_binary',
                 'signed_data', 'rewritten'])


def _detached(artifact, encoding):
    return Resolved(artifact=artifact,
                    signature=artifact.signature,
                    signature_is_binary=(encoding == SignatureEncoding.BINARY),
                    signed_data=artifact.content,
                    rewritten=False)


def _clearsigned(artifact):
    try:
        block = armor.decode_clearsigned(artifact.content)
    except (ValueError, EOFError) as e:
        raise errors.MalformedClearsign(
            'problem decoding clearsigned file {}: {}'.format(
                artifact.name, e))

    # Inline signature takes precedence over any detached one
    if artifact.signature:
        log.warning('ignoring detached signature of clearsigned file %s',
                    artifact.name)

    plain = artifact._replace(content=block.plaintext,
                              signature=block.signature)
    return Resolved(artifact=plain,
                    signature=block.signature,
                    signature_is_binary=True,
                    signed_data=block.signed_text,
                    rewritten=True)


def resolve(artifact, encoding):
    """
    Extract the signed data and its signature from a retrieved artifact.

    Detached signatures are passed through unchanged.  Clearsigned files
    are replaced by a new artifact holding only the plaintext, while their
    inline signature is returned in its binary form.
    """
    encoding = SignatureEncoding(encoding)
    if encoding == SignatureEncoding.CLEARSIGNED:
        return _clearsigned(artifact)
    return _detached(artifact, encoding)
