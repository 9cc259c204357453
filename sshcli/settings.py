'''
Tunable SSH client settings, and the glue that applies -sshprop overrides to them.
'''

import logging
import math
from typing import NamedTuple

from paramiko.common import DEFAULT_MAX_PACKET_SIZE, DEFAULT_WINDOW_SIZE

from . import AUTH_TIMEOUT, CONNECT_TIMEOUT, EXEC_TIMEOUT
from .utils import SSHPropertyError, parse_bool



__all__ = ['SessionSettings', 'default_settings', 'apply_properties']


class SessionSettings(NamedTuple):
    '''
    Everything about an SSH session that can be tuned. Timeouts are in seconds; an auth_timeout
    or exec_timeout of 0 means no deadline. None leaves paramiko's default alone.
    '''
    connect_timeout: float = CONNECT_TIMEOUT
    auth_timeout: float = AUTH_TIMEOUT
    exec_timeout: float = EXEC_TIMEOUT
    banner_timeout: float = None
    handshake_timeout: float = None
    channel_timeout: float = None
    keepalive: int = 0
    compress: bool = False
    window_size: int = DEFAULT_WINDOW_SIZE
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE


def default_settings():
    '''Returns the settings described by the config files.'''
    return SessionSettings()


def _convert(name, value):
    field_type = SessionSettings.__annotations__[name]
    if field_type is bool:
        return parse_bool(value)
    number = field_type(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be a finite number")
    if number < 0:
        raise ValueError(f"{name} can't be negative")
    return number


def apply_properties(settings, properties):
    '''
    Returns a copy of settings with each property applied by name.
    settings -- the SessionSettings to start from
    properties -- mapping of property name to string value, e.g. {'auth_timeout': '30'}
    '''
    updates = {}
    for name, value in properties.items():
        if name not in SessionSettings._fields:
            raise SSHPropertyError(f"Unknown SSH client property {name!r}. Known properties: "
                                   f"{', '.join(SessionSettings._fields)}")
        try:
            updates[name] = _convert(name, value)
        except ValueError as err:
            raise SSHPropertyError(f"Bad value {value!r} for SSH client property {name}: "
                                   f"{err}") from err
        logging.debug(f"Setting SSH client property {name} to {updates[name]!r}")
    return settings._replace(**updates)
