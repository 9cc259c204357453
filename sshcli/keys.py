'''
Provides KeyProvider, which collects the private keys offered during public key authentication.
'''

import logging
import os
from io import StringIO

from paramiko import ECDSAKey, Ed25519Key, PasswordRequiredException, RSAKey
from paramiko.ssh_exception import SSHException

from .utils import KeyLoadError



__all__ = ['KeyProvider', 'load_private_key', 'DEFAULT_KEY_NAMES']


# Same order as ssh(1) tries them.
DEFAULT_KEY_NAMES = ['id_rsa', 'id_ecdsa', 'id_ed25519']

KEY_CLASSES = [RSAKey, ECDSAKey, Ed25519Key]


def _load(loader, source):
    for key_class in KEY_CLASSES:
        try:
            return loader(key_class)
        except PasswordRequiredException as err:
            raise KeyLoadError(f"{source} is encrypted; a passphrase is required") from err
        except SSHException:
            # Not this kind of key; try the next one.
            continue
    raise KeyLoadError(f"{source} is not a supported private key (tried "
                       f"{', '.join(cls.__name__ for cls in KEY_CLASSES)})")


def load_private_key(path, passphrase=None):
    '''
    Reads a PEM/OpenSSH private key file of any supported type.
    path -- file to read
    passphrase -- for encrypted keys
    '''
    path = os.path.expanduser(path)
    if not os.path.isfile(path):
        raise KeyLoadError(f"No private key at {path}")
    try:
        return _load(lambda cls: cls.from_private_key_file(path, password=passphrase), path)
    except OSError as err:
        raise KeyLoadError(f"Can't read private key {path}: {err}") from err


class KeyProvider:
    '''Holds key pairs in the order they should be offered to the server.'''
    def __init__(self, keys=None):
        self.keys = list(keys or [])


    def add_key(self, key):
        '''Adds an already loaded paramiko key.'''
        self.keys.append(key)


    def add_file(self, path, passphrase=None):
        '''Loads a private key file and adds it.'''
        key = load_private_key(path, passphrase)
        logging.debug(f"Loaded {key.get_name()} key from {path}")
        self.add_key(key)


    def add_string(self, text, passphrase=None):
        '''Loads a private key from its text (e.g. from an environment variable) and adds it.'''
        key = _load(lambda cls: cls.from_private_key(StringIO(text), password=passphrase),
                    'private key string')
        self.add_key(key)


    def read_from_default_locations(self, ssh_dir=None):
        '''
        Adds whichever of ~/.ssh/id_rsa, id_ecdsa and id_ed25519 exist. Encrypted or unreadable
        keys are skipped with a warning.
        ssh_dir -- look here instead of ~/.ssh
        '''
        ssh_dir = ssh_dir or os.path.expanduser(os.path.join('~', '.ssh'))
        for name in DEFAULT_KEY_NAMES:
            path = os.path.join(ssh_dir, name)
            if not os.path.isfile(path):
                continue
            try:
                self.add_file(path)
            except KeyLoadError as err:
                logging.warning(f"Skipping {path}: {err}")


    def has_keys(self):
        return bool(self.keys)


    def get_keys(self):
        return list(self.keys)

