"""Failure categories reported by gpget."""


class Error(Exception):
    """Base class for all gpget failures."""


class FetchNotFound(Error):
    """Remote resource does not exist."""

    def __init__(self, url):
        super().__init__('{} does not exist'.format(url))
        self.url = url


class CompanionMissing(FetchNotFound):
    """Detached signature for the requested resource does not exist."""

    def __init__(self, url, suffix):
        super().__init__(url)
        self.suffix = suffix
        self.args = ('{} does not exist: every file must be signed with a '
                     '"{}" signature'.format(url, suffix),)


class FetchTransportError(Error):
    """Remote resource could not be retrieved."""

    def __init__(self, url, reason):
        super().__init__('failed to retrieve {}: {}'.format(url, reason))
        self.url = url
        self.reason = reason


class KeyringUnavailable(Error):
    """Public keyring could not be opened."""


class KeyringCorrupt(Error):
    """Public keyring could not be parsed."""


class MalformedClearsign(Error):
    """Content is not a valid clearsigned message."""


class SignatureInvalid(Error):
    """No trusted key validates the signature."""

    def __init__(self, name=None):
        msg = 'invalid signature or public key not present'
        if name:
            msg = '{}: {}'.format(name, msg)
        super().__init__(msg)


class InvalidIdentityLength(Error):
    """Expected key ID is neither 8 nor 16 hexadecimal digits long."""

    def __init__(self, expected):
        super().__init__('invalid key ID {!r}: must be 8 or 16 hexadecimal '
                         'characters'.format(expected))
        self.expected = expected


class IdentityMismatch(Error):
    """Signature was made by an unexpected key."""

    def __init__(self, expected, actual):
        super().__init__('not signed by the expected key: expected {} and '
                         'got {}'.format(expected, actual))
        self.expected = expected
        self.actual = actual
