"""Run configuration."""
import collections
import enum

from . import keyring


class SignatureEncoding(enum.Enum):
    """How the signature of a remote file is encoded."""

    BINARY = 'binary'            # detached, "<url>.sig"
    ARMORED = 'armored'          # detached, "<url>.asc"
    CLEARSIGNED = 'clearsigned'  # inline, within "<url>"


_FIELDS = ['url', 'encoding', 'expected_key_id', 'keyring_path', 'output',
           'use_remote_name', 'timeout', 'verbosity', 'log_file']


class Configuration(collections.namedtuple('Configuration', _FIELDS)):
    """Immutable settings, created once per run and passed explicitly."""

    __slots__ = ()

    def __new__(cls, url, encoding=SignatureEncoding.ARMORED,
                expected_key_id=None, keyring_path=None, output=None,
                use_remote_name=False, timeout=60.0, verbosity=0,
                log_file=None):
        # pylint: disable=too-many-arguments
        if keyring_path is None:
            keyring_path = keyring.default_path()
        return super().__new__(
            cls, url=url, encoding=SignatureEncoding(encoding),
            expected_key_id=expected_key_id or None,
            keyring_path=keyring_path, output=output,
            use_remote_name=use_remote_name, timeout=timeout,
            verbosity=verbosity, log_file=log_file)

    @classmethod
    def from_args(cls, args):
        """Create configuration from parsed command-line arguments."""
        if args.binary:
            encoding = SignatureEncoding.BINARY
        elif args.clearsign:
            encoding = SignatureEncoding.CLEARSIGNED
        else:
            encoding = SignatureEncoding.ARMORED

        return cls(url=args.url, encoding=encoding,
                   expected_key_id=args.key_id,
                   keyring_path=args.keyring, output=args.output,
                   use_remote_name=args.remote_name, timeout=args.timeout,
                   verbosity=args.verbose, log_file=args.log_file)
