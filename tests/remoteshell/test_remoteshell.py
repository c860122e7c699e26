#!/usr/bin/python

import sys
import os

try:
    import pytest
except ImportError:
    print('Unable to import pytest.  Is pytest installed?')
    sys.exit(1)

# Find visaje
prefix = '.'
for i in range(0,3):
    if os.path.isdir(os.path.join(prefix, 'visaje')):
        sys.path.insert(0, prefix)
        break
    else:
        prefix = '../' + prefix

import paramiko

try:
    import visaje.RemoteShell
except ImportError:
    print('Unable to import visaje.  Is visaje installed?')
    sys.exit(1)


class FakeStream(object):
    def __init__(self, data, retcode=0):
        self.data = data
        self.channel = self
        self.retcode = retcode

    def read(self):
        return self.data

    def close(self):
        pass

    def recv_exit_status(self):
        return self.retcode


class FakeClient(object):
    def __init__(self, connect_error=None):
        self.connect_error = connect_error
        self.connect_kwargs = None
        self.commands = []
        self.closed = False

    def connect(self, host, **kwargs):
        self.connect_kwargs = kwargs
        if self.connect_error is not None:
            raise self.connect_error

    def get_transport(self):
        return None

    def exec_command(self, command):
        self.commands.append(command)
        return FakeStream(b''), FakeStream(b'yes\n', 0), FakeStream(b'', 0)

    def close(self):
        self.closed = True


def session_with(client):
    return visaje.RemoteShell.Session('10.0.0.5', 'root', 'pw', 22, client)


def test_open_session():
    shell = visaje.RemoteShell.RemoteShell()
    session = shell.open_session('10.0.0.5', 'root', 'pw')
    assert(session.host == '10.0.0.5')
    assert(session.user == 'root')
    assert(session.port == 22)
    assert(isinstance(session.client, paramiko.SSHClient))
    assert(not shell.is_connected(session))
    shell.close_session(session)

def test_connect_ssh_failure():
    shell = visaje.RemoteShell.RemoteShell()
    client = FakeClient(paramiko.SSHException('no banner'))
    assert(shell.connect(session_with(client), 5000) is False)
    assert(client.connect_kwargs['timeout'] == 5.0)
    assert(client.connect_kwargs['password'] == 'pw')
    assert(client.connect_kwargs['look_for_keys'] is False)

def test_connect_auth_failure():
    shell = visaje.RemoteShell.RemoteShell()
    client = FakeClient(paramiko.AuthenticationException('denied'))
    assert(shell.connect(session_with(client), 5000) is False)

def test_connect_socket_failure():
    shell = visaje.RemoteShell.RemoteShell()
    client = FakeClient(OSError(113, 'No route to host'))
    assert(shell.connect(session_with(client), 5000) is False)

def test_execute():
    shell = visaje.RemoteShell.RemoteShell()
    client = FakeClient()
    retcode, stdout, stderr = shell.execute(session_with(client), 'echo yes')
    assert(retcode == 0)
    assert(stdout == 'yes\n')
    assert(stderr == '')
    assert(client.commands == ['echo yes'])

def test_close_session():
    shell = visaje.RemoteShell.RemoteShell()
    client = FakeClient()
    shell.close_session(session_with(client))
    assert(client.closed)
