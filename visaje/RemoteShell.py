# Copyright (C) 2012-2018  The Visaje developers

# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation;
# version 2.1 of the License.

# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.

# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301  USA

"""
Remote login to the guest over SSH.
"""

import logging

import paramiko


class Session(object):
    """
    Class that represents a single SSH session to a guest.  Objects of this
    type contain the connection parameters and the paramiko client.
    """
    def __init__(self, host, user, password, port, client):
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.client = client


class _IgnoreHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """
    Accept any host key without remembering it; install guests are
    throwaway machines that regenerate their keys on every build.
    """
    def missing_host_key(self, client, hostname, key):
        pass


class RemoteShell(object):
    """
    Class to open SSH sessions to a guest and run commands in them.
    """
    def __init__(self, port=22):
        self.port = port
        self.log = logging.getLogger('%s.%s' % (__name__,
                                                self.__class__.__name__))

    def open_session(self, host, user, password, host_key_check=False):
        """
        Method to prepare (but not connect) a session to host.
        """
        client = paramiko.SSHClient()
        if host_key_check:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(_IgnoreHostKeyPolicy())

        return Session(host, user, password, self.port, client)

    def connect(self, session, timeout_ms):
        """
        Method to connect a session, giving up after timeout_ms
        milliseconds.  Returns True if the session is connected and
        authenticated, False otherwise.
        """
        timeout = timeout_ms / 1000.0
        try:
            session.client.connect(session.host, port=session.port,
                                   username=session.user,
                                   password=session.password,
                                   timeout=timeout,
                                   banner_timeout=timeout,
                                   auth_timeout=timeout,
                                   look_for_keys=False,
                                   allow_agent=False)
        except (paramiko.SSHException, OSError) as err:
            self.log.debug("Could not connect to %s@%s: %s", session.user,
                           session.host, err)
            return False

        return self.is_connected(session)

    def is_connected(self, session):
        transport = session.client.get_transport()
        return transport is not None and transport.is_active() and transport.is_authenticated()

    def execute(self, session, command):
        """
        Method to execute a command in a connected session.  Returns a tuple
        of (exit code, stdout, stderr).
        """
        self.log.debug("Executing '%s' on %s", command, session.host)
        stdin, stdout, stderr = session.client.exec_command(command)
        stdin.close()
        out = stdout.read().decode('utf-8')
        err = stderr.read().decode('utf-8')
        retcode = stdout.channel.recv_exit_status()

        return (retcode, out, err)

    def close_session(self, session):
        session.client.close()
