'''
Runs one command on the server over SSH: find the endpoint, connect, authenticate, execute.
'''

import logging

from . import KNOWN_HOSTS, PROPERTY_FLAG
from .command import build_command
from .endpoint import resolve_endpoint, verify_server_connection
from .hostkeys import HostKeyVerifier, warn_unknown_host
from .session import SSHSession
from .settings import apply_properties, default_settings



__all__ = ['run', 'ENDPOINT_UNAVAILABLE']


# Returned instead of an exit status when the server doesn't offer SSH.
ENDPOINT_UNAVAILABLE = -1


def run(base_url, user, args, key_provider, strict_host_key=False, known_hosts=KNOWN_HOSTS,
        settings=None, verify=verify_server_connection, stdin=None, stdout=None, stderr=None):
    '''
    Runs args as a command on the server at base_url and returns the remote exit status, or
    ENDPOINT_UNAVAILABLE if the server doesn't advertise an SSH endpoint.
    base_url -- root URL of the server; its login page advertises the SSH endpoint
    user -- user to log in as
    args -- command and arguments; `-sshprop key=value` pairs tune the SSH client instead
    key_provider -- a KeyProvider with the keys to offer
    strict_host_key -- refuse unknown host keys instead of trusting them with a warning
    known_hosts -- known_hosts file to check and update
    settings -- SessionSettings to start from before -sshprop overrides
    verify -- check applied to the HTTP response, see resolve_endpoint
    stdin, stdout, stderr -- local streams; default to this process's own
    '''
    endpoint = resolve_endpoint(base_url, verify=verify)
    if endpoint is None:
        return ENDPOINT_UNAVAILABLE

    command, properties = build_command(args, property_flag=PROPERTY_FLAG)
    settings = apply_properties(settings or default_settings(), properties)
    verifier = HostKeyVerifier(warn_unknown_host(strict_host_key), known_hosts=known_hosts)

    with SSHSession(endpoint, user, key_provider.get_keys(), verifier, settings) as session:
        status = session.execute(command, stdin=stdin, stdout=stdout, stderr=stderr)
    logging.debug(f"{command} on {endpoint} returned {status}")
    return status
