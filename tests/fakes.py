"""
Test doubles shared by the visaje tests.
"""

import visaje.Provider
import visaje.VisajeException


class FakeClock(object):
    """
    A clock that only moves when something sleeps (or the test moves it).
    """
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeShell(object):
    """
    A RemoteShell whose guest either accepts logins or not, and whose marker
    check prints stdout.
    """
    def __init__(self, connects=True, stdout=''):
        self.connects = connects
        self.stdout = stdout
        self.commands = []
        self.hosts = []
        self.opened = 0
        self.closed = 0
        self.host_key_check = None
        self.timeout_ms = None

    def open_session(self, host, user, password, host_key_check=False):
        self.opened += 1
        self.hosts.append(host)
        self.host_key_check = host_key_check
        return {'host': host, 'user': user, 'password': password,
                'connected': False}

    def connect(self, session, timeout_ms):
        self.timeout_ms = timeout_ms
        session['connected'] = self.connects
        return self.connects

    def is_connected(self, session):
        return session['connected']

    def execute(self, session, command):
        self.commands.append(command)
        stdout = self.stdout
        if callable(stdout):
            stdout = stdout()
        return (0, stdout, '')

    def close_session(self, session):
        self.closed += 1


class RecordingProvider(visaje.Provider.Provider):
    """
    A Provider that records every call.  get_ip is answered by ip_fn, which
    may return an address or raise.
    """
    def __init__(self, ip_fn=None, known_media=(), fail_on=None):
        self.calls = []
        self.ip_fn = ip_fn
        self.known_media = list(known_media)
        self.fail_on = fail_on
        self.hardware_spec = None
        self.sequence = None
        self.delete_disks = None

    def _record(self, name, *args):
        self.calls.append(name)
        if name == self.fail_on:
            raise visaje.VisajeException.ProviderError("%s failed" % (name))

    def create_disk(self, location, size):
        self._record('create_disk', location, size)

    def find_medium(self, location):
        self._record('find_medium', location)
        if location in self.known_media:
            return visaje.Provider.Medium(location, 'dvd')
        return None

    def open_medium(self, location, kind):
        self._record('open_medium', location, kind)
        return visaje.Provider.Medium(location, kind)

    def create_instance(self, name, metadata, hardware_spec):
        self._record('create_instance', name)
        self.hardware_spec = hardware_spec
        self.metadata = metadata
        return visaje.Provider.MachineHandle(name, '1234')

    def start(self, handle):
        self._record('start', handle)

    def send_keyboard(self, handle, sequence):
        self._record('send_keyboard', handle)
        self.sequence = sequence

    def stop(self, handle):
        self._record('stop', handle)

    def power_down(self, handle):
        self._record('power_down', handle)

    def destroy(self, handle, delete_disks):
        self._record('destroy', handle)
        self.delete_disks = delete_disks

    def compact_to_immutable(self, location):
        self._record('compact_to_immutable', location)

    def get_ip(self, handle, slot):
        self._record('get_ip', handle, slot)
        self.slot = slot
        return self.ip_fn()
