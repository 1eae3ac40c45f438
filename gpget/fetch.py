"""Retrieve remote files together with their detached signatures."""
import collections
import logging
import posixpath
import urllib.parse

import requests

from . import errors
from .config import SignatureEncoding

log = logging.getLogger(__name__)

RetrievedArtifact = collections.namedtuple(
    'RetrievedArtifact', ['name', 'content', 'signature'])

SUFFIXES = {
    SignatureEncoding.BINARY: '.sig',
    SignatureEncoding.ARMORED: '.asc',
    SignatureEncoding.CLEARSIGNED: None,  # signature is inlined
}

NOT_FOUND = {404, 410}


class HttpFetcher:
    """Download a URL, distinguishing missing resources from other errors."""

    def __init__(self, timeout=60.0, session=None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, url):
        log.debug('downloading %s', url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise errors.FetchTransportError(url, e)

        if resp.status_code in NOT_FOUND:
            raise errors.FetchNotFound(url)
        if resp.status_code != requests.codes.ok:
            raise errors.FetchTransportError(
                url, 'HTTP {} {}'.format(resp.status_code, resp.reason))

        data = resp.content
        log.info('downloaded %s (%d bytes)', url, len(data))
        return data


def remote_name(url):
    """Local file name for a URL: the last segment of its path."""
    name = posixpath.basename(urllib.parse.urlsplit(url).path)
    if name in ('', '.', '..'):
        name = 'index.html'
    return name


def locate(url, encoding):
    """Return the URL of the detached signature (or None, if inlined)."""
    suffix = SUFFIXES[SignatureEncoding(encoding)]
    if suffix is None:
        return None
    parts = urllib.parse.urlsplit(url)
    return urllib.parse.urlunsplit(parts._replace(path=parts.path + suffix))


def retrieve(url, encoding, fetch):
    """Fetch the remote file, and its detached signature (if required)."""
    content = fetch(url)

    signature = b''
    companion = locate(url, encoding)
    if companion is not None:
        try:
            signature = fetch(companion)
        except errors.FetchNotFound:
            log.error('missing signature for %s', url)
            raise errors.CompanionMissing(
                companion, SUFFIXES[SignatureEncoding(encoding)])

    return RetrievedArtifact(name=remote_name(url), content=content,
                             signature=signature)
