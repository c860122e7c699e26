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
Main class for unattended OS installation into a base image
"""

import logging
import pprint

import visaje.Detector
import visaje.HardwareSpec
import visaje.InstallConfig
import visaje.RemoteShell
import visaje.visajeutil


class Installer(object):
    """
    Class that drives a single install run: it builds the VM, types the boot
    key sequence, waits for the unattended install to finish, shuts the VM
    down and leaves an immutable base image behind.

    Nothing is rolled back on failure; a failed run leaves the VM and disk
    in whatever state the last successful step produced.
    """
    def __init__(self, provider, config, shell=None):
        self.provider = provider
        if isinstance(config, visaje.InstallConfig.InstallConfig):
            self.config = config
        else:
            self.config = visaje.InstallConfig.merge(config)
        self.shell = shell
        if self.shell is None:
            self.shell = visaje.RemoteShell.RemoteShell()
        self.log = logging.getLogger('%s.%s' % (__name__,
                                                self.__class__.__name__))
        # media we registered ourselves; they are left registered
        self.opened_media = []

    def _resolve_medium(self, location):
        """
        Internal method to find the optical medium at location, registering
        it with the provider if it is not known yet.
        """
        medium = self.provider.find_medium(location)
        if medium is None:
            self.log.debug("Registering %s with the provider", location)
            medium = self.provider.open_medium(location, 'dvd')
            self.opened_media.append(location)
        return medium

    def hardware_spec(self):
        """
        The HardwareSpec of the install VM.
        """
        return visaje.HardwareSpec.install_machine_spec(self.config.disk_location,
                                                        self.config.os_iso_location,
                                                        self.config.tools_iso_location,
                                                        self.config.memory_size,
                                                        self.config.hostonly_network)

    def install(self):
        """
        Method to run the whole install.  Returns the location of the
        finished image.
        """
        config = self.config
        name = config.name
        self.log.debug("Building image for %s based on:\n%s", name,
                       pprint.pformat(dict(config._asdict())))

        # create the image file where the OS will be installed
        self.provider.create_disk(config.disk_location, config.disk_size)

        self._resolve_medium(config.os_iso_location)
        self._resolve_medium(config.tools_iso_location)
        if self.opened_media:
            self.log.info("%s: Registered media %s", name,
                          ", ".join(self.opened_media))

        vm = self.provider.create_instance(name, {}, self.hardware_spec())
        self.log.info("%s: Starting VM...", name)
        self.provider.start(vm)
        # give the boot loader time to come up
        visaje.visajeutil.wait_sec(config.wait_start)
        self.provider.send_keyboard(vm, config.boot_key_sequence)

        self.log.info("%s: Waiting for installation to finish.", name)
        # the install takes a good while; no need to start polling right away
        visaje.visajeutil.wait_sec(config.wait_boot)
        visaje.Detector.wait_for_installation_finished(self.provider,
                                                       self.shell, vm,
                                                       config.user,
                                                       config.password,
                                                       config.install_poll_interval,
                                                       config.install_timeout,
                                                       config.ip_slot,
                                                       config.marker_path)
        self.log.info("%s: Installation has finished successfully.", name)

        self.log.info("%s: Waiting for the boot to settle", name)
        visaje.visajeutil.wait_sec(config.post_install_wait)
        self.provider.stop(vm)
        self.log.info("%s: Waiting for the OS to shut down cleanly", name)
        visaje.visajeutil.wait_sec(config.shut_down_wait)
        self.log.info("%s: Powering the VM down", name)
        self.provider.power_down(vm)
        self.log.info("%s: Destroying the VM and leaving the image in %s",
                      name, config.disk_location)
        self.provider.destroy(vm, delete_disks=False)
        self.log.info("%s: Compacting image at %s", name, config.disk_location)
        self.provider.compact_to_immutable(config.disk_location)
        self.log.info("%s: Done; the new image is at %s", name,
                      config.disk_location)

        return config.disk_location


def install_os(provider, config, shell=None):
    """
    Function to install an operating system with provider according to
    config (an InstallConfig, or a dictionary of options merged over the
    defaults) and return the location of the finished base image.
    """
    return Installer(provider, config, shell).install()
