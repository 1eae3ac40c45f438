#!/usr/bin/env python
"""Securely retrieve files from hostile storage, verifying GPG signatures."""
import argparse
import functools
import logging
import sys

from . import errors, main as _main, util
from .config import Configuration

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_NOT_FOUND = 2
EXIT_TRANSPORT = 3
EXIT_KEYRING = 4
EXIT_SIGNATURE = 5
EXIT_IDENTITY = 6
EXIT_OUTPUT = 7

EXIT_CODES = [
    (errors.InvalidIdentityLength, EXIT_USAGE),
    (errors.FetchNotFound, EXIT_NOT_FOUND),
    (errors.FetchTransportError, EXIT_TRANSPORT),
    (errors.KeyringUnavailable, EXIT_KEYRING),
    (errors.KeyringCorrupt, EXIT_KEYRING),
    (errors.MalformedClearsign, EXIT_SIGNATURE),
    (errors.SignatureInvalid, EXIT_SIGNATURE),
    (errors.IdentityMismatch, EXIT_IDENTITY),
]


def exit_code(error):
    """Stable process exit status for each failure category."""
    for error_type, code in EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return EXIT_USAGE


def write_output(config, artifact, stdout=None):
    """Save verified content to a file, or write it to stdout."""
    path = config.output or (artifact.name if config.use_remote_name else None)
    if path is None:
        stream = stdout or sys.stdout.buffer
        stream.write(artifact.content)
        stream.flush()
        return

    with open(path, 'wb') as f:
        f.write(artifact.content)
    log.info('saved %d bytes to %s', len(artifact.content), path)


def create_parser():
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument('url', help='URL of the file to retrieve')

    dst = p.add_mutually_exclusive_group()
    dst.add_argument('-O', '--remote-name', default=False,
                     action='store_true',
                     help='save the file using its original name')
    dst.add_argument('-o', '--output', default=None,
                     help='save the file to the specified path '
                          '(default: write to stdout)')

    p.add_argument('-k', '--key-id', default=None,
                   help='GPG key ID (8 or 16 hexadecimal digits) '
                        'expected to sign the remote file')

    sig = p.add_mutually_exclusive_group()
    sig.add_argument('-b', '--binary', default=False, action='store_true',
                     help='use a binary signature (".sig") instead of '
                          'armored ASCII (".asc")')
    sig.add_argument('-c', '--clearsign', default=False, action='store_true',
                     help='the remote file is clearsigned armored ASCII')

    p.add_argument('--keyring', default=None,
                   help='public keyring path (default: ~/.gnupg/pubring.gpg)')
    p.add_argument('--timeout', type=float, default=60.0,
                   help='network timeout in seconds')
    p.add_argument('-v', '--verbose', default=0, action='count')
    p.add_argument('--log-file', default=None,
                   help='append log messages to this file')
    return p


def main(argv=None):
    """Main function, returning the process exit status."""
    try:
        args = create_parser().parse_args(argv)
    except SystemExit as e:  # argparse exits with 2 on usage errors
        return EXIT_USAGE if e.code else EXIT_OK
    try:
        util.setup_logging(verbosity=args.verbose, filename=args.log_file)
    except OSError as e:
        log.error('failed to open log file %s: %s', args.log_file, e)
        return EXIT_USAGE

    config = Configuration.from_args(args)
    try:
        _main.run(config, output=functools.partial(write_output, config))
    except errors.Error as e:
        log.error('%s', e)
        return exit_code(e)
    except OSError as e:
        log.error('failed to save %s: %s', config.url, e)
        return EXIT_OUTPUT
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
