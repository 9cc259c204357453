'''
Provides SSHSession, which owns one SSH connection to an endpoint.

Entering the session connects, checks the host key and authenticates; execute() then runs a
command with the local standard streams attached, and leaving the session closes everything.
'''

import logging
import socket
import sys
import threading
import time

from paramiko import Transport
from paramiko.ssh_exception import AuthenticationException, SSHException

from .settings import default_settings
from .utils import AuthFailureError, AuthTimeoutError, ConnectError, ExecTimeoutError, RemoteError



__all__ = ['SSHSession', 'BUFFER_SIZE', 'POLL_INTERVAL']


BUFFER_SIZE = 32768
# Seconds to sleep when the channel has nothing for us.
POLL_INTERVAL = 0.02


def _binary(stream):
    '''Text streams like sys.stdout wrap a binary buffer; use that.'''
    return getattr(stream, 'buffer', stream)


def _copy(data, stream):
    stream.write(data)
    stream.flush()


def _feed_stdin(channel, stdin):
    '''Copies stdin to the channel until EOF, then tells the remote end there's no more input.'''
    read = getattr(stdin, 'read1', stdin.read)
    try:
        while True:
            data = read(BUFFER_SIZE)
            if not data:
                break
            channel.sendall(data)
        channel.shutdown_write()
    except (OSError, EOFError, SSHException) as err:
        # The channel closed first; the remote command doesn't want more input.
        logging.debug(f"Stopped forwarding stdin: {err}")


class SSHSession:
    '''Does everything with one SSH connection. Use it as a context manager.'''
    def __init__(self, endpoint, username, keys, verifier, settings=None):
        '''
        endpoint -- Endpoint to connect to
        username -- user to authenticate as
        keys -- paramiko keys, offered in this order
        verifier -- a HostKeyVerifier (or anything with verify(hostname, port, key))
        settings -- SessionSettings; defaults come from the config files
        '''
        self.endpoint = endpoint
        self.username = username
        self.keys = list(keys)
        self.verifier = verifier
        self.settings = settings or default_settings()
        self.transport = None


    def __enter__(self):
        try:
            self.connect()
            self.authenticate()
        except BaseException:
            self.close()
            raise
        return self


    def __exit__(self, *args):
        # Make sure you kill the connection when you're done
        self.close()


    def close(self):
        if self.transport is not None:
            self.transport.close()
            self.transport = None


    def connect(self):
        '''
        Opens the TCP connection, negotiates SSH and checks the server's host key.
        '''
        settings = self.settings
        logging.info(f"Connecting to {self.endpoint} as {self.username}...")
        try:
            sock = socket.create_connection((self.endpoint.hostname, self.endpoint.port),
                                            timeout=settings.connect_timeout)
        except OSError as err:
            raise ConnectError(f"Can't connect to {self.endpoint}: {err}") from err

        try:
            self.transport = Transport(sock, default_window_size=settings.window_size,
                                       default_max_packet_size=settings.max_packet_size)
        except Exception:
            sock.close()
            raise
        if settings.banner_timeout is not None:
            self.transport.banner_timeout = settings.banner_timeout
        if settings.handshake_timeout is not None:
            self.transport.handshake_timeout = settings.handshake_timeout
        self.transport.use_compression(settings.compress)
        if settings.keepalive:
            self.transport.set_keepalive(settings.keepalive)

        try:
            self.transport.start_client(timeout=settings.handshake_timeout)
        except (SSHException, OSError, EOFError) as err:
            raise ConnectError(f"SSH negotiation with {self.endpoint} failed: {err}") from err

        self.verifier.verify(self.endpoint.hostname, self.endpoint.port,
                             self.transport.get_remote_server_key())


    def authenticate(self):
        '''
        Offers each key in turn until the server accepts one. Gives up with AuthTimeoutError once
        settings.auth_timeout seconds have passed; an auth_timeout of 0 waits as long as the server
        does.
        '''
        if not self.keys:
            raise AuthFailureError(f"No private keys to offer for {self.username}")

        timeout = self.settings.auth_timeout
        deadline = time.monotonic() + timeout if timeout else None
        for key in self.keys:
            if deadline is None:
                self.transport.auth_timeout = None
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.transport.auth_timeout = remaining
            logging.debug(f"Offering {key.get_name()} private key")
            try:
                self.transport.auth_publickey(self.username, key)
            except AuthenticationException as err:
                logging.debug(f"{key.get_name()} key not accepted: {err}")
                continue
            except (SSHException, EOFError) as err:
                raise AuthFailureError(f"Authentication with {self.endpoint} broke off: "
                                       f"{err}") from err
            if self.transport.is_authenticated():
                logging.info(f"Authenticated as {self.username}")
                return

        if deadline is not None and time.monotonic() >= deadline:
            raise AuthTimeoutError(f"Authentication as {self.username} on {self.endpoint} did "
                                   f"not complete within {timeout} seconds")
        raise AuthFailureError(f"{self.endpoint} accepted none of the {len(self.keys)} keys "
                               f"offered for {self.username}")


    def execute(self, command, stdin=None, stdout=None, stderr=None):
        '''
        Runs command on an exec channel with the streams attached and returns its exit status
        (-1 if the server never sent one). The streams are flushed but never closed.
        command -- the complete shell command line
        stdin, stdout, stderr -- local streams; default to this process's own
        '''
        stdin = sys.stdin if stdin is None else stdin
        stdout = sys.stdout if stdout is None else stdout
        stderr = sys.stderr if stderr is None else stderr

        try:
            channel = self.transport.open_session(timeout=self.settings.channel_timeout)
        except (SSHException, EOFError) as err:
            raise RemoteError(f"Could not open a channel on {self.endpoint}: {err}") from err
        try:
            logging.debug(f"Running {command!r}")
            channel.exec_command(command)
            return self._forward(channel, command, _binary(stdin), _binary(stdout),
                                 _binary(stderr))
        except SSHException as err:
            raise RemoteError(f"Running {command!r} on {self.endpoint} failed: {err}") from err
        finally:
            channel.close()


    def _forward(self, channel, command, stdin, stdout, stderr):
        feeder = threading.Thread(target=_feed_stdin, args=(channel, stdin),
                                  name='sshcli-stdin', daemon=True)
        feeder.start()

        timeout = self.settings.exec_timeout
        deadline = time.monotonic() + timeout if timeout else None
        while True:
            if deadline is not None and time.monotonic() >= deadline:
                raise ExecTimeoutError(f"Failed to retrieve command result in time: {command}")
            if channel.recv_ready():
                _copy(channel.recv(BUFFER_SIZE), stdout)
                continue
            if channel.recv_stderr_ready():
                _copy(channel.recv_stderr(BUFFER_SIZE), stderr)
                continue
            # The exit status can arrive before the last of the output, so also wait for EOF.
            if channel.closed or (channel.exit_status_ready() and channel.eof_received):
                break
            time.sleep(POLL_INTERVAL)

        status = channel.recv_exit_status()
        logging.debug(f"Remote command exited with {status}")
        return status
