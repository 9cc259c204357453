'''
Provides tests for run(), the whole resolve, connect, authenticate, execute sequence.
'''

import io
import logging

import pytest
from paramiko import ECDSAKey, HostKeys

import sshcli.endpoint as endpoint_module
import sshcli.runner as runner_module
import sshcli.session as session_module
from sshcli.keys import KeyProvider
from sshcli.runner import ENDPOINT_UNAVAILABLE, run
from sshcli.utils import Endpoint, HostKeyRejectedError, SSHPropertyError

from fakes import FakeChannel, FakeResponse, FakeSocket, FakeTransport



URL = 'http://server.example.com/'


@pytest.fixture(scope='module')
def host_key():
    return ECDSAKey.generate()


@pytest.fixture(scope='module')
def user_key():
    return ECDSAKey.generate()


@pytest.fixture
def provider(user_key):
    return KeyProvider([user_key])


@pytest.fixture
def server(monkeypatch, host_key, user_key):
    '''A server advertising SSH on build.example.com:2222 whose command exits with 1.'''
    channel = FakeChannel(stdout=b'Started build #7\n', status=1)
    transport = FakeTransport(host_key, accepted_key=user_key, channel=channel)
    monkeypatch.setattr(endpoint_module.requests, 'get', lambda url, **kwargs: FakeResponse(
        {'X-SSH-Endpoint': 'build.example.com:2222'}))
    monkeypatch.setattr(session_module.socket, 'create_connection',
                        lambda address, timeout=None: FakeSocket(address))
    monkeypatch.setattr(session_module, 'Transport', transport.attach)
    return transport


def test_run_end_to_end(server, provider, tmp_path, caplog):
    '''
    Test that run quotes the command, trusts the new host with a warning, and returns the remote
    exit status
    '''
    known_hosts = str(tmp_path / 'known_hosts')
    stdout = io.BytesIO()
    with caplog.at_level(logging.WARNING):
        status = run(URL, 'alice', ['build', 'my job', '-s'], provider, strict_host_key=False,
                     known_hosts=known_hosts, stdin=io.BytesIO(), stdout=stdout,
                     stderr=io.BytesIO())
    assert status == 1
    assert server.channel.command == "build 'my job' -s"
    assert stdout.getvalue() == b'Started build #7\n'
    assert 'Unknown host key for [build.example.com]:2222' in caplog.text
    assert HostKeys(known_hosts).lookup('[build.example.com]:2222') is not None
    assert server.closed


def test_run_strict_unknown_host(server, provider, tmp_path):
    '''
    Test that strict host key checking refuses a host we haven't seen
    '''
    with pytest.raises(HostKeyRejectedError):
        run(URL, 'alice', ['who-am-i'], provider, strict_host_key=True,
            known_hosts=str(tmp_path / 'known_hosts'), stdin=io.BytesIO(),
            stdout=io.BytesIO(), stderr=io.BytesIO())
    assert server.offered == []
    assert server.closed


def test_run_applies_properties(server, provider, tmp_path):
    '''
    Test that -sshprop pairs tune the client and stay out of the command
    '''
    run(URL, 'alice', ['-sshprop', 'compress=yes', 'who-am-i'], provider,
        known_hosts=str(tmp_path / 'known_hosts'), stdin=io.BytesIO(), stdout=io.BytesIO(),
        stderr=io.BytesIO())
    assert server.compression is True
    assert server.channel.command == 'who-am-i'


def test_run_bad_property(server, provider, tmp_path):
    '''
    Test that an unknown property stops us before connecting
    '''
    with pytest.raises(SSHPropertyError):
        run(URL, 'alice', ['-sshprop', 'bogus=1', 'who-am-i'], provider,
            known_hosts=str(tmp_path / 'known_hosts'))
    assert server.sock is None


def test_run_without_endpoint(monkeypatch, provider):
    '''
    Test that a server without SSH gives the unavailable sentinel and never opens a session
    '''
    monkeypatch.setattr(runner_module, 'resolve_endpoint', lambda url, verify=None: None)

    def no_session(*args, **kwargs):
        raise AssertionError("should not connect")
    monkeypatch.setattr(runner_module, 'SSHSession', no_session)

    assert run(URL, 'alice', ['help'], provider) == ENDPOINT_UNAVAILABLE == -1


def test_run_hands_everything_to_the_session(monkeypatch, provider, user_key, tmp_path):
    '''
    Test that run passes the endpoint, user, keys and command on to the session
    '''
    calls = {}

    class Session:
        def __init__(self, endpoint, username, keys, verifier, settings):
            calls.update(endpoint=endpoint, username=username, keys=keys, settings=settings)

        def __enter__(self):
            return self

        def __exit__(self, *args):
            calls['closed'] = True

        def execute(self, command, stdin=None, stdout=None, stderr=None):
            calls['command'] = command
            return 0

    monkeypatch.setattr(runner_module, 'resolve_endpoint',
                        lambda url, verify=None: Endpoint('localhost', 2022))
    monkeypatch.setattr(runner_module, 'SSHSession', Session)

    status = run(URL, 'bob', ['-sshprop', 'exec_timeout=60', 'console', 'job'], provider,
                 known_hosts=str(tmp_path / 'known_hosts'))
    assert status == 0
    assert calls['endpoint'] == Endpoint('localhost', 2022)
    assert calls['username'] == 'bob'
    assert calls['keys'] == [user_key]
    assert calls['settings'].exec_timeout == 60
    assert calls['command'] == 'console job'
    assert calls['closed']
