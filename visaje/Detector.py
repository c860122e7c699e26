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
Detection of a finished guest installation.

The install guest is polled in two stages that share one retry path: first
the provider is asked for the guest's IP address, then the guest is logged
into over SSH to check whether the post-install marker file is still there.
"""

import logging
import shlex

import visaje.RemoteShell
import visaje.VisajeException
import visaje.visajeutil

log = logging.getLogger(__name__)

CONNECT_TIMEOUT_MS = 5000

SENTINEL = "yes\n"

DEFAULT_MARKER_PATH = "/etc/init.d/vbox"


def marker_command(marker_path):
    """
    The command that prints "yes" only if marker_path exists on the guest.
    """
    return 'if [ -e %s ] ; then echo "yes"; fi' % (shlex.quote(marker_path))


def get_ip(provider, machine, slot):
    """
    Function to get the IP address of the network adapter in slot of
    machine.  Returns None when the machine is not running yet, cannot be
    queried right now, or has no address yet; other provider failures are
    raised.
    """
    log.debug("get_ip: getting IP Address for %s", machine.name)
    try:
        ip = provider.get_ip(machine, slot)
    except visaje.VisajeException.ProviderError as err:
        if err.status == visaje.VisajeException.STATUS_NOT_RUNNING:
            log.debug("get_ip: Machine %s not started.", machine.name)
            return None
        if err.status == visaje.VisajeException.STATUS_INACCESSIBLE:
            log.debug("get_ip: Machine %s not accessible.", machine.name)
            return None
        raise

    if ip is None or not ip.strip():
        return None

    return ip.strip()


def is_installed(shell, ip, user, password, marker_path=DEFAULT_MARKER_PATH):
    """
    Function to check whether the guest at ip has finished installing.
    Returns PENDING if we could not log in, or if the marker file is still
    present; Ready(True) otherwise.
    """
    session = shell.open_session(ip, user, password, host_key_check=False)
    try:
        if not shell.is_connected(session):
            shell.connect(session, CONNECT_TIMEOUT_MS)
        if not shell.is_connected(session):
            return visaje.visajeutil.PENDING

        retcode, stdout, stderr = shell.execute(session,
                                                marker_command(marker_path))
        if stdout == SENTINEL:
            log.debug("Guest tooling not fully installed yet at %s", ip)
            return visaje.visajeutil.PENDING

        return visaje.visajeutil.Ready(True)
    finally:
        shell.close_session(session)


def wait_for_installation_finished(provider, shell, machine, user, password,
                                   interval, timeout, slot=1,
                                   marker_path=DEFAULT_MARKER_PATH):
    """
    Function to poll machine every interval seconds until its installation
    has finished, raising InstallationTimeout if that does not happen within
    timeout seconds.

    This assumes the unattended install reboots the machine when it is done.
    """
    if shell is None:
        shell = visaje.RemoteShell.RemoteShell()

    def _installed_cb():
        ip = get_ip(provider, machine, slot)
        if ip is None:
            return visaje.visajeutil.PENDING
        return is_installed(shell, ip, user, password, marker_path)

    try:
        return visaje.visajeutil.wait_for(_installed_cb, interval, timeout,
                                          "Waiting for %s to finish installing" % (machine.name))
    except visaje.VisajeException.Timeout as err:
        raise visaje.VisajeException.InstallationTimeout("Timed out waiting for %s to finish installing after %s seconds" % (machine.name, timeout)) from err
