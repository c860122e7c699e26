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
Interface to the virtualization provider.
"""

import visaje.VisajeException


class Medium(object):
    """
    Class that represents a disk or optical medium known to the provider.
    Objects of this type contain 2 pieces of information:

    location - Where the medium lives (a path or URI).
    kind     - Either "hard-disk" or "dvd".
    """
    def __init__(self, location, kind):
        self.location = location
        self.kind = kind


class MachineHandle(object):
    """
    Class that represents a VM instance owned by the provider.  Callers only
    use the name and uuid; the data member is for the provider's own use.
    """
    def __init__(self, name, uuid, data=None):
        self.name = name
        self.uuid = uuid
        self.data = data

    def __repr__(self):
        return "<MachineHandle %s (%s)>" % (self.name, self.uuid)


class Provider(object):
    """
    Base class for virtualization providers.  Every method either succeeds
    or raises a VisajeException.ProviderError whose status tells the caller
    what went wrong; see VisajeException.ProviderError.
    """
    def _not_implemented(self, what):
        raise visaje.VisajeException.ProviderError("%s is not implemented by %s" % (what, self.__class__.__name__))

    def create_disk(self, location, size):
        """
        Create a new, empty disk image of size megabytes at location.
        """
        self._not_implemented("create_disk")

    def find_medium(self, location):
        """
        Return the Medium registered at location, or None if there is none.
        """
        self._not_implemented("find_medium")

    def open_medium(self, location, kind):
        """
        Register the file at location as a medium of the given kind and
        return the new Medium.
        """
        self._not_implemented("open_medium")

    def create_instance(self, name, metadata, hardware_spec):
        """
        Create (but do not start) a VM and return its MachineHandle.
        """
        self._not_implemented("create_instance")

    def start(self, handle):
        self._not_implemented("start")

    def send_keyboard(self, handle, sequence):
        """
        Type a normalized boot key sequence on the VM's keyboard.
        """
        self._not_implemented("send_keyboard")

    def stop(self, handle):
        """
        Ask the guest to shut down (ACPI power button).
        """
        self._not_implemented("stop")

    def power_down(self, handle):
        """
        Turn the VM off, whether or not it is still running.
        """
        self._not_implemented("power_down")

    def destroy(self, handle, delete_disks):
        self._not_implemented("destroy")

    def compact_to_immutable(self, location):
        """
        Compact the disk image at location and turn it into a read-only base
        image.
        """
        self._not_implemented("compact_to_immutable")

    def get_ip(self, handle, slot):
        """
        Return the IP address of the network adapter at slot, or an empty
        string if it has none yet.  A machine that is not running raises a
        ProviderError with STATUS_NOT_RUNNING.
        """
        self._not_implemented("get_ip")
