'''
Provides structures, custom errors, and global helper functions for the rest of the code.
'''

from typing import NamedTuple



__all__ = ['Endpoint', 'RemoteError', 'ServerConnError', 'ConnectError', 'HostKeyRejectedError',
           'AuthFailureError', 'AuthTimeoutError', 'ExecTimeoutError', 'MalformedEndpointError',
           'SSHPropertyError', 'KeyLoadError', 'parse_endpoint', 'parse_bool']


class Endpoint(NamedTuple):
    '''Use Endpoint to keep the address of an SSH server'''
    hostname: str
    port: int

    def __str__(self):
        return f"{self.hostname}:{self.port}"


class RemoteError(OSError):
    '''Something went wrong talking to the remote server.'''


class ServerConnError(RemoteError):
    '''We can't get a usable answer from the server over HTTP.'''


class ConnectError(RemoteError):
    '''We can't open an SSH connection to the endpoint.'''


class HostKeyRejectedError(ConnectError):
    '''The server's host key is not trusted.'''


class AuthFailureError(RemoteError):
    '''None of the offered keys were accepted.'''


class AuthTimeoutError(AuthFailureError, TimeoutError):
    '''Authentication did not finish in time.'''


class ExecTimeoutError(RemoteError, TimeoutError):
    '''The remote command did not finish in time.'''


class MalformedEndpointError(ValueError):
    '''The advertised SSH endpoint isn't of the form host:port.'''


class SSHPropertyError(ValueError):
    '''Unknown SSH client property, or a value of the wrong type.'''


class KeyLoadError(ValueError):
    '''A private key could not be loaded.'''


def parse_endpoint(description):
    '''
    Parses a "host:port" string into an Endpoint, splitting on the first colon.
    description -- the string to parse, e.g. "build.example.com:2222"
    '''
    hostname, sep, port = description.strip().partition(':')
    if not sep or not hostname:
        raise MalformedEndpointError(f"Expected host:port but got {description!r}")
    try:
        return Endpoint(hostname=hostname, port=int(port))
    except ValueError as err:
        raise MalformedEndpointError(f"Bad port in SSH endpoint {description!r}") from err


_TRUE = {'1', 'yes', 'true', 'on'}
_FALSE = {'0', 'no', 'false', 'off'}


def parse_bool(value):
    '''Reads a boolean the way configparser does.'''
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")
