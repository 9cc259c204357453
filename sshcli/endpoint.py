'''
Discovers where the server's SSH port is by asking it over HTTP.
'''

import logging

import requests
import requests.exceptions

from . import ENDPOINT_HEADER, HTTP_TIMEOUT, LOGIN_PATH
from .utils import ServerConnError, parse_endpoint



__all__ = ['login_url', 'verify_server_connection', 'resolve_endpoint']


def login_url(base_url):
    '''Joins base_url and the login path with exactly one slash.'''
    return f"{base_url.rstrip('/')}/{LOGIN_PATH}"


def verify_server_connection(response):
    '''
    Default check that the HTTP response came from a working server. Raises ServerConnError if
    it did not.
    '''
    try:
        response.raise_for_status()
    except requests.exceptions.HTTPError as err:
        raise ServerConnError(f"Server at {response.url} answered {response.status_code}; "
                              f"is the URL right?") from err


def resolve_endpoint(base_url, verify=verify_server_connection, session=None):
    '''
    Looks up the SSH endpoint advertised by the server at base_url.
    Returns an Endpoint, or None if the server doesn't advertise one (SSH isn't available there).
    base_url -- root URL of the server
    verify -- called with the response before we trust it; should raise if it's bad
    session -- a requests.Session to use instead of a one-off request
    '''
    url = login_url(base_url)
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, timeout=HTTP_TIMEOUT)
    except requests.exceptions.RequestException as err:
        raise ServerConnError(f"Could not reach {url}: {err}") from err
    verify(response)

    description = response.headers.get(ENDPOINT_HEADER)
    if description is None:
        logging.warning(f"No header '{ENDPOINT_HEADER}' returned by {url}")
        return None

    logging.debug(f"Connecting via SSH to: {description}")
    return parse_endpoint(description)
