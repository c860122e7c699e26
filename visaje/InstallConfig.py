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
Install configuration.

An InstallConfig is built once per install run by merging the caller's
options over a set of named defaults, validated, and never modified
afterwards.
"""

import collections
import numbers
import types

import visaje.KeySequence
import visaje.VisajeException
import visaje.visajeutil

_fields = ('name', 'disk_location', 'disk_size', 'os_iso_location',
           'tools_iso_location', 'boot_key_sequence', 'user', 'password',
           'memory_size', 'wait_start', 'wait_boot', 'install_poll_interval',
           'install_timeout', 'post_install_wait', 'shut_down_wait',
           'hostonly_network', 'marker_path', 'ip_slot')

_required = ('name', 'disk_location', 'os_iso_location', 'tools_iso_location',
             'boot_key_sequence', 'user', 'password')

_durations = ('wait_start', 'wait_boot', 'install_poll_interval',
              'install_timeout', 'post_install_wait', 'shut_down_wait')

# sizes are in megabytes, durations in seconds
DEFAULTS = types.MappingProxyType({
    'disk_size': 8 * 1024,
    'memory_size': 2 * 1024,
    'wait_start': 5,
    'wait_boot': 3 * 60,
    'install_poll_interval': 5,
    'install_timeout': 5 * 60,
    'post_install_wait': 30,
    'shut_down_wait': 30,
    'hostonly_network': 'vboxnet0',
    'marker_path': '/etc/init.d/vbox',
    'ip_slot': 1,
})

# (section, key) in the configuration file -> InstallConfig field
_config_file_keys = {
    ('install', 'disk_size'): 'disk_size',
    ('install', 'memory_size'): 'memory_size',
    ('install', 'hostonly_network'): 'hostonly_network',
    ('install', 'marker_path'): 'marker_path',
    ('timeouts', 'start'): 'wait_start',
    ('timeouts', 'boot'): 'wait_boot',
    ('timeouts', 'install_poll_interval'): 'install_poll_interval',
    ('timeouts', 'install'): 'install_timeout',
    ('timeouts', 'post_install'): 'post_install_wait',
    ('timeouts', 'shutdown'): 'shut_down_wait',
}


class InstallConfig(collections.namedtuple('InstallConfig', _fields)):
    """
    Immutable configuration for a single install run.  The fields are:

    name                  - Name of the VM used for the install.
    disk_location         - Where the disk image is created.  This is also
                            where the finished base image ends up.
    disk_size             - Size of the disk image, in megabytes.
    os_iso_location       - The operating system install media.
    tools_iso_location    - The guest tooling media.
    boot_key_sequence     - Tuple of KeySequence items typed at boot.
    user, password        - Credentials used to log in to the guest.
    memory_size           - Guest memory, in megabytes.
    wait_start            - Seconds to wait after starting the VM before
                            typing the boot key sequence.
    wait_boot             - Seconds to wait before polling for completion.
    install_poll_interval - Seconds between completion probes.
    install_timeout       - Seconds to poll before giving up.
    post_install_wait     - Seconds to let the installed OS settle.
    shut_down_wait        - Seconds to wait for a clean shutdown.
    hostonly_network      - Name of the host-only virtual network.
    marker_path           - Guest file whose presence means the post-install
                            step has not run yet.
    ip_slot               - Network adapter slot polled for an IP address.
    """
    __slots__ = ()


def defaults_from_config(config):
    """
    Function to build a set of defaults from the built-in ones, overridden by
    anything found in config (a ConfigParser object, possibly None).  A new
    dictionary is returned; DEFAULTS itself is never modified.
    """
    defaults = dict(DEFAULTS)
    for (section, key), field in _config_file_keys.items():
        value = visaje.visajeutil.config_get_key(config, section, key, None)
        if value is None:
            continue
        if field in ('hostonly_network', 'marker_path'):
            defaults[field] = value
            continue
        try:
            if field in _durations:
                defaults[field] = float(value)
            else:
                defaults[field] = int(value)
        except ValueError:
            raise visaje.VisajeException.ConfigurationError("Configuration key '%s' in section '%s' must be a number, got '%s'" % (key, section, value))

    return defaults


def _check_number(key, value, allow_zero):
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise visaje.VisajeException.ConfigurationError("Option '%s' must be a number, got %r" % (key, value))
    if value < 0 or (value == 0 and not allow_zero):
        raise visaje.VisajeException.ConfigurationError("Option '%s' must be %s, got %r" % (key, "non-negative" if allow_zero else "positive", value))


def merge(options, defaults=None):
    """
    Function to merge the options dictionary over defaults (DEFAULTS if None)
    and produce a validated InstallConfig.  Option names may use hyphens or
    underscores, so 'disk-size' and 'disk_size' are the same option.
    """
    if defaults is None:
        defaults = DEFAULTS

    values = dict((field, None) for field in _fields)
    values.update(defaults)
    for key, value in options.items():
        field = key.replace('-', '_')
        if field not in _fields:
            raise visaje.VisajeException.ConfigurationError("Unknown install option '%s'" % (key))
        values[field] = value

    for field in _required:
        if values[field] is None:
            raise visaje.VisajeException.ConfigurationError("Required install option '%s' is missing" % (field))

    for field in ('name', 'disk_location', 'os_iso_location',
                  'tools_iso_location', 'user'):
        if not isinstance(values[field], str) or not values[field].strip():
            raise visaje.VisajeException.ConfigurationError("Install option '%s' must be a non-empty string" % (field))

    for field in ('disk_size', 'memory_size'):
        _check_number(field, values[field], False)
    for field in _durations:
        _check_number(field, values[field], True)
    _check_number('ip_slot', values['ip_slot'], True)
    if not isinstance(values['ip_slot'], numbers.Integral):
        raise visaje.VisajeException.ConfigurationError("Option 'ip_slot' must be an integer, got %r" % (values['ip_slot']))
    if not isinstance(values['password'], str):
        raise visaje.VisajeException.ConfigurationError("Install option 'password' must be a string")

    sequence = tuple(visaje.KeySequence.normalize(values['boot_key_sequence']))
    if not sequence:
        raise visaje.VisajeException.ConfigurationError("The boot key sequence must not be empty")
    # fail before anything is created if a key cannot be sent
    for item in sequence:
        visaje.KeySequence.keycodes_for(item)
    values['boot_key_sequence'] = sequence

    return InstallConfig(**values)
