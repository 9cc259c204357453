'''
Provides HostKeyVerifier, a trust-on-first-use check of SSH server keys against a known_hosts file.

How much to trust an unknown key is up to the trust_unknown callable handed to the verifier;
warn_unknown_host builds the usual one.

The known_hosts file is usually the user's own ~/.ssh/known_hosts, so it is only ever appended
to. Lines we can't use (comments, @cert-authority, key types paramiko doesn't know) are left
alone.
'''

import logging
import os

from paramiko import HostKeys
from paramiko.hostkeys import HostKeyEntry

from . import KNOWN_HOSTS
from .utils import ConnectError, HostKeyRejectedError



__all__ = ['HostKeyVerifier', 'warn_unknown_host', 'host_key_name']


REVOKED_MARKER = '@revoked'


def host_key_name(hostname, port):
    '''The name a host is filed under in known_hosts: "host" on port 22, "[host]:port" otherwise.'''
    if port == 22:
        return hostname
    return f"[{hostname}]:{port}"


def warn_unknown_host(strict):
    '''
    Returns a trust_unknown callable that logs a warning for every unknown key and trusts it
    unless strict is set.
    '''
    def trust_unknown(hostname, key):
        logging.warning(f"Unknown host key for {hostname}")
        return not strict
    return trust_unknown


def _parse_line(line, lineno):
    '''Returns a HostKeyEntry, or None for lines paramiko can't turn into a key.'''
    try:
        return HostKeyEntry.from_line(line, lineno)
    except Exception as err:
        # InvalidHostKey for bad base64; SSHException, ValueError and friends for truncated blobs
        logging.debug(f"Ignoring known_hosts line {lineno}: {err}")
        return None


class HostKeyVerifier:
    '''Checks server keys against a known_hosts file and records newly trusted ones.'''
    def __init__(self, trust_unknown, known_hosts=KNOWN_HOSTS):
        self.trust_unknown = trust_unknown
        self.known_hosts = os.path.expanduser(known_hosts)
        self.host_keys = HostKeys()
        self.revoked = []
        if os.path.isfile(self.known_hosts):
            self.load()


    def load(self):
        '''
        Reads the known_hosts file. Keys marked @revoked are kept aside; other marker lines and
        lines with unsupported or corrupt keys are skipped.
        '''
        try:
            with open(self.known_hosts) as known_hosts_file:
                lines = known_hosts_file.readlines()
        except OSError as err:
            raise ConnectError(f"Can't read {self.known_hosts}: {err}") from err

        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if line.startswith('@'):
                marker, _, rest = line.partition(' ')
                if marker == REVOKED_MARKER:
                    entry = _parse_line(rest, lineno)
                    if entry is not None:
                        self.revoked.append(entry.key)
                continue
            entry = _parse_line(line, lineno)
            if entry is None:
                continue
            for hostname in entry.hostnames:
                self.host_keys.add(hostname, entry.key.get_name(), entry.key)


    def verify(self, hostname, port, key):
        '''
        Raises HostKeyRejectedError unless key is acceptable for the host.
        hostname, port -- where we connected to
        key -- the paramiko PKey the server presented
        '''
        name = host_key_name(hostname, port)
        if key in self.revoked:
            raise HostKeyRejectedError(f"Host key for {name} is marked {REVOKED_MARKER} in "
                                       f"{self.known_hosts}")

        known = self.host_keys.lookup(name)
        if known is not None and key.get_name() in known:
            if known[key.get_name()] == key:
                logging.debug(f"Host key for {name} matches {self.known_hosts}")
                return
            raise HostKeyRejectedError(f"Host key for {name} does not match the one in "
                                       f"{self.known_hosts}. Refusing to connect.")

        if not self.trust_unknown(name, key):
            raise HostKeyRejectedError(f"Unknown {key.get_name()} host key for {name} "
                                       f"(fingerprint {key.get_fingerprint().hex()}) and "
                                       f"strict host key checking is on")
        self.remember(name, key)


    def remember(self, name, key):
        '''Appends key to known_hosts, creating the file and its directory if needed.'''
        self.host_keys.add(name, key.get_name(), key)
        line = HostKeyEntry([name], key).to_line()
        try:
            directory = os.path.dirname(self.known_hosts)
            if directory:
                os.makedirs(directory, exist_ok=True)
            # Don't glue our entry onto a last line that has no newline.
            if os.path.isfile(self.known_hosts) and os.path.getsize(self.known_hosts):
                with open(self.known_hosts, 'rb') as known_hosts_file:
                    known_hosts_file.seek(-1, os.SEEK_END)
                    if known_hosts_file.read(1) != b'\n':
                        line = '\n' + line
            with open(self.known_hosts, 'a') as known_hosts_file:
                known_hosts_file.write(line)
        except OSError as err:
            raise ConnectError(f"Can't record host key for {name} in {self.known_hosts}: "
                               f"{err}") from err
        logging.info(f"Added {key.get_name()} host key for {name} to {self.known_hosts}")
