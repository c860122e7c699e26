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

import time

import monotonic

try:
    import visaje.Installer
    import visaje.InstallConfig
    import visaje.KeySequence
    import visaje.VisajeException
except ImportError:
    print('Unable to import visaje.  Is visaje installed?')
    sys.exit(1)

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..'))
from fakes import FakeClock, FakeShell, RecordingProvider


@pytest.fixture
def clock(monkeypatch):
    c = FakeClock()
    monkeypatch.setattr(monotonic, 'monotonic', c.monotonic)
    monkeypatch.setattr(time, 'sleep', c.sleep)
    return c


def options(**kwargs):
    opts = {
        'name': 'debian-test',
        'disk-location': '/tmp/debian-test.qcow2',
        'os-iso-location': '/isos/debian-6.0.2.1-amd64-netinst.iso',
        'tools-iso-location': '/isos/VBoxGuestAdditions.iso',
        'boot-key-sequence': [visaje.KeySequence.Key('esc'), 500,
                              'auto url=http://10.0.2.2/deb-preseed.cfg',
                              visaje.KeySequence.Key('enter')],
        'user': 'visaje',
        'password': 'visaje',
    }
    opts.update(kwargs)
    return opts


def test_install_os(clock):
    provider = RecordingProvider(lambda: '192.168.56.101',
                                 known_media=['/isos/VBoxGuestAdditions.iso'])
    shell = FakeShell(stdout='')
    image = visaje.Installer.install_os(provider, options(), shell)

    assert(image == '/tmp/debian-test.qcow2')
    assert(provider.calls == ['create_disk', 'find_medium', 'open_medium',
                              'find_medium', 'create_instance', 'start',
                              'send_keyboard', 'get_ip', 'stop', 'power_down',
                              'destroy', 'compact_to_immutable'])
    assert(provider.delete_disks is False)
    assert(provider.metadata == {})
    # wait_start, wait_boot, post_install_wait, shut_down_wait
    assert(clock.sleeps == [5, 180, 30, 30])

def test_install_os_key_sequence(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    visaje.Installer.install_os(provider, options(), FakeShell())
    assert(list(provider.sequence) == [visaje.KeySequence.Key('esc'),
                                       visaje.KeySequence.Delay(500),
                                       visaje.KeySequence.Text('auto url=http://10.0.2.2/deb-preseed.cfg'),
                                       visaje.KeySequence.Key('enter')])

def test_install_os_hardware(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    visaje.Installer.install_os(provider, options(**{'memory-size': 1024}),
                                FakeShell())
    spec = provider.hardware_spec
    assert(spec.memory_size == 1024)
    devices = spec.storage[0].devices
    assert(devices[0].location == '/tmp/debian-test.qcow2')
    assert(devices[1] is None)
    assert(devices[2].location == '/isos/debian-6.0.2.1-amd64-netinst.iso')
    assert(devices[3].location == '/isos/VBoxGuestAdditions.iso')

def test_installer_opened_media(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    installer = visaje.Installer.Installer(provider, options(), FakeShell())
    installer.install()
    assert(installer.opened_media == ['/isos/debian-6.0.2.1-amd64-netinst.iso',
                                      '/isos/VBoxGuestAdditions.iso'])

def test_installer_media_already_known(clock):
    provider = RecordingProvider(lambda: '192.168.56.101',
                                 known_media=['/isos/debian-6.0.2.1-amd64-netinst.iso',
                                              '/isos/VBoxGuestAdditions.iso'])
    installer = visaje.Installer.Installer(provider, options(), FakeShell())
    installer.install()
    assert(installer.opened_media == [])
    assert('open_medium' not in provider.calls)

def test_install_os_custom_waits(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    opts = options(**{'wait-start': 1, 'wait-boot': 2,
                      'post-install-wait': 3, 'shut-down-wait': 4})
    visaje.Installer.install_os(provider, opts, FakeShell())
    assert(clock.sleeps == [1, 2, 3, 4])

def test_install_os_with_install_config(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    config = visaje.InstallConfig.merge(options())
    assert(visaje.Installer.install_os(provider, config, FakeShell()) == '/tmp/debian-test.qcow2')

def test_install_os_timeout(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    shell = FakeShell(stdout='yes\n')
    opts = options(**{'install-poll-interval': 1, 'install-timeout': 3})
    with pytest.raises(visaje.VisajeException.InstallationTimeout):
        visaje.Installer.install_os(provider, opts, shell)
    # no clean up is attempted
    assert(provider.calls[-1] == 'get_ip')
    assert('stop' not in provider.calls)
    assert('destroy' not in provider.calls)

def test_install_os_provider_failure(clock):
    provider = RecordingProvider(lambda: '192.168.56.101',
                                 fail_on='create_instance')
    with pytest.raises(visaje.VisajeException.ProviderError):
        visaje.Installer.install_os(provider, options(), FakeShell())
    assert(provider.calls[-1] == 'create_instance')
    assert(clock.sleeps == [])

def test_install_os_bad_config(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    opts = options()
    del opts['disk-location']
    with pytest.raises(visaje.VisajeException.ConfigurationError):
        visaje.Installer.install_os(provider, opts, FakeShell())
    assert(provider.calls == [])

def test_install_os_untypeable_boot_keys(clock):
    provider = RecordingProvider(lambda: '192.168.56.101')
    opts = options(**{'boot-key-sequence': ['caf\u00e9']})
    with pytest.raises(visaje.VisajeException.ConfigurationError):
        visaje.Installer.install_os(provider, opts, FakeShell())
    assert(provider.calls == [])
    assert(clock.sleeps == [])

def test_install_os_waits_for_network(clock):
    def _ip():
        if clock.now < 195:
            return ''
        return '192.168.56.101'
    provider = RecordingProvider(_ip)
    shell = FakeShell()
    visaje.Installer.install_os(provider, options(), shell)
    # three polls with no address, then one login
    assert(provider.calls.count('get_ip') == 3)
    assert(clock.sleeps == [5, 180, 5, 5, 30, 30])
