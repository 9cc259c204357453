'''
What to run when you try to run the package as a program:

    python -m sshcli -s https://server.example.com/ -user alice [-i ~/.ssh/id_rsa] COMMAND...
'''

import argparse
import logging
import os
import sys

from . import (KeyProvider, KNOWN_HOSTS, ENDPOINT_UNAVAILABLE, PROPERTY_FLAG, configure_logging,
               run)



# ssh(1) uses 255 for its own failures, as opposed to the remote command's.
ERROR_STATUS = 255


def parse_args(argv):
    parser = argparse.ArgumentParser(prog='sshcli', description="Run a command on a server over "
                                     "the SSH endpoint it advertises.",
                                     allow_abbrev=False)
    parser.add_argument('-s', dest='url', default=os.environ.get('SSHCLI_URL'),
                        help="server URL (default: $SSHCLI_URL)")
    parser.add_argument('-user', required=True, help="user to log in as")
    parser.add_argument('-i', dest='keys', action='append', default=[], metavar='KEY',
                        help="private key file; may be repeated (default: ~/.ssh/id_*)")
    parser.add_argument('-strictHostKey', dest='strict', action='store_true',
                        help="refuse unknown host keys")
    parser.add_argument('-knownHosts', dest='known_hosts', default=KNOWN_HOSTS,
                        help=f"known_hosts file (default: {KNOWN_HOSTS})")
    parser.add_argument('-logger', dest='level', default=None, help="log level, e.g. DEBUG")
    # Registered so that it is never read as -s with a glued-on value.
    parser.add_argument(PROPERTY_FLAG, dest='properties', action='append', default=[],
                        metavar='KEY=VALUE', help="SSH client property, e.g. auth_timeout=30; "
                        "may be repeated, also after the command")
    parser.add_argument('args', nargs=argparse.REMAINDER,
                        help=f"command to run; {PROPERTY_FLAG} pairs in it are taken out "
                        "and applied as SSH client properties")
    options = parser.parse_args(argv)
    if not options.url:
        parser.error("a server URL is required (-s or $SSHCLI_URL)")
    if not options.args:
        parser.error("no command given")
    options.args = [word for prop in options.properties for word in (PROPERTY_FLAG, prop)] + \
        options.args
    return options


def main(argv=None):
    options = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(options.level)

    provider = KeyProvider()
    try:
        for path in options.keys:
            provider.add_file(path)
        if not options.keys:
            provider.read_from_default_locations()
        if not provider.has_keys():
            logging.error("No private keys to authenticate with; pass one with -i")
            return ERROR_STATUS

        status = run(options.url, options.user, options.args, provider,
                     strict_host_key=options.strict, known_hosts=options.known_hosts)
    except (OSError, ValueError) as err:
        logging.error(err)
        return ERROR_STATUS

    if status == ENDPOINT_UNAVAILABLE:
        logging.error(f"{options.url} does not offer SSH")
        return ERROR_STATUS
    return status


if __name__ == '__main__':
    sys.exit(main())
