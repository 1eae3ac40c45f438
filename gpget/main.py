"""Retrieve a remote file, and release it only if its signature is valid."""
import logging

from . import fetch, formats, identity, keyring, verify

log = logging.getLogger(__name__)


def run(config, output, fetcher=None, trust_store=None):
    """
    Download, verify and output the file specified by `config`.

    Every failure is raised as an `errors.Error` subclass, and `output` is
    called (exactly once) only after the signature and the signer's identity
    have been verified.
    """
    identity.check_length(config.expected_key_id)

    if trust_store is None:
        trust_store = keyring.load(config.keyring_path)
    if fetcher is None:
        fetcher = fetch.HttpFetcher(timeout=config.timeout)

    artifact = fetch.retrieve(url=config.url, encoding=config.encoding,
                              fetch=fetcher)
    resolved = formats.resolve(artifact, config.encoding)
    outcome = verify.verify(trust_store=trust_store,
                            plaintext=resolved.signed_data,
                            signature=resolved.signature,
                            signature_is_binary=resolved.signature_is_binary,
                            name=artifact.name)
    identity.match(config.expected_key_id, outcome.signer_key_id)

    log.info('%s is signed by %s', config.url, outcome.signer_key_id)
    if outcome.verified:
        output(resolved.artifact)
    return outcome
