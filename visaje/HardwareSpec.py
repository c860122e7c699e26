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
Hardware description of the install VM.
"""

import collections

import lxml.etree

import visaje.VisajeException
import visaje.visajeutil

HOSTONLY_NETWORK = "vboxnet0"

HardwareSpec = collections.namedtuple('HardwareSpec',
                                      ['cpu_count', 'network', 'storage',
                                       'memory_size'])

NetworkAdapter = collections.namedtuple('NetworkAdapter',
                                        ['attachment_type', 'network'])

StorageController = collections.namedtuple('StorageController',
                                           ['name', 'bus', 'devices'])

StorageDevice = collections.namedtuple('StorageDevice',
                                       ['device_type', 'location',
                                        'attachment_type'])


def install_machine_spec(disk_location, os_iso_location, tools_iso_location,
                         memory_size, hostonly_network=HOSTONLY_NETWORK):
    """
    Function to build the hardware of the install VM: one CPU, a NAT adapter
    plus a host-only adapter, and a single IDE controller whose four slots
    hold, in order, the target disk, nothing, the OS install media and the
    guest tooling media.
    """
    devices = (StorageDevice('hard-disk', disk_location, 'normal'),
               None,
               StorageDevice('dvd', os_iso_location, None),
               StorageDevice('dvd', tools_iso_location, None))

    return HardwareSpec(cpu_count=1,
                        network=(NetworkAdapter('nat', None),
                                 NetworkAdapter('host-only', hostonly_network)),
                        storage=(StorageController('IDE Controller', 'ide',
                                                   devices),),
                        memory_size=memory_size)


def _target_dev(bus, index):
    if bus == 'ide':
        prefix = 'hd'
    elif bus == 'virtio':
        prefix = 'vd'
    elif bus in ('sata', 'scsi'):
        prefix = 'sd'
    else:
        raise visaje.VisajeException.VisajeException("Unknown storage bus %s" % (bus))

    return prefix + chr(ord('a') + index)


def generate_domain_xml(spec, name, libvirt_type, uuid, image_type='qcow2',
                        nat_network="default",
                        metadata=None):
    """
    Function to render a HardwareSpec as libvirt domain XML.  Empty device
    slots still use up a target name, so the install media always land on
    the same devices.
    """
    domain = lxml.etree.Element("domain", type=libvirt_type)
    visaje.visajeutil.lxml_subelement(domain, "name", name)
    # the memory in the spec is in megabytes, libvirt wants kilobytes
    visaje.visajeutil.lxml_subelement(domain, "memory", str(int(spec.memory_size) * 1024))
    visaje.visajeutil.lxml_subelement(domain, "currentMemory", str(int(spec.memory_size) * 1024))
    visaje.visajeutil.lxml_subelement(domain, "uuid", str(uuid))
    visaje.visajeutil.lxml_subelement(domain, "vcpu", str(spec.cpu_count))
    if metadata:
        meta = visaje.visajeutil.lxml_subelement(domain, "metadata")
        extra = lxml.etree.SubElement(meta, "{http://visaje.github.io/xmlns/1.0}extra",
                                      nsmap={'visaje': 'http://visaje.github.io/xmlns/1.0'})
        for key in sorted(metadata):
            visaje.visajeutil.lxml_subelement(extra, "{http://visaje.github.io/xmlns/1.0}entry",
                                       str(metadata[key]), {'key': str(key)})
    features = visaje.visajeutil.lxml_subelement(domain, "features")
    visaje.visajeutil.lxml_subelement(features, "acpi")
    visaje.visajeutil.lxml_subelement(features, "apic")
    # os
    osNode = visaje.visajeutil.lxml_subelement(domain, "os")
    visaje.visajeutil.lxml_subelement(osNode, "type", "hvm")
    visaje.visajeutil.lxml_subelement(osNode, "boot", None, {'dev': 'hd'})
    visaje.visajeutil.lxml_subelement(osNode, "boot", None, {'dev': 'cdrom'})
    # the installer reboots into the new system; that must not kill the domain
    visaje.visajeutil.lxml_subelement(domain, "on_poweroff", "destroy")
    visaje.visajeutil.lxml_subelement(domain, "on_reboot", "restart")
    visaje.visajeutil.lxml_subelement(domain, "on_crash", "destroy")
    devices = visaje.visajeutil.lxml_subelement(domain, "devices")
    visaje.visajeutil.lxml_subelement(devices, "graphics", None, {'port': '-1', 'type': 'vnc'})
    # network
    for adapter in spec.network:
        if adapter.attachment_type == 'nat':
            network = nat_network
        elif adapter.attachment_type == 'host-only':
            network = adapter.network
        else:
            raise visaje.VisajeException.VisajeException("Unknown network attachment type %s" % (adapter.attachment_type))
        interface = visaje.visajeutil.lxml_subelement(devices, "interface", None, {'type': 'network'})
        visaje.visajeutil.lxml_subelement(interface, "source", None, {'network': network})
    # input
    visaje.visajeutil.lxml_subelement(devices, "input", None, {'bus': 'ps2', 'type': 'mouse'})
    # serial console pseudo TTY
    console = visaje.visajeutil.lxml_subelement(devices, "serial", None, {'type': 'pty'})
    visaje.visajeutil.lxml_subelement(console, "target", None, {'port': '0'})
    # storage
    for controller in spec.storage:
        visaje.visajeutil.lxml_subelement(devices, "controller", None,
                                   {'type': controller.bus, 'index': '0'})
        for index, device in enumerate(controller.devices):
            if device is None:
                continue
            if device.device_type == 'hard-disk':
                disk = visaje.visajeutil.lxml_subelement(devices, "disk", None, {'device': 'disk', 'type': 'file'})
                visaje.visajeutil.lxml_subelement(disk, "driver", None, {'name': 'qemu', 'type': image_type})
            elif device.device_type == 'dvd':
                disk = visaje.visajeutil.lxml_subelement(devices, "disk", None, {'device': 'cdrom', 'type': 'file'})
                visaje.visajeutil.lxml_subelement(disk, "driver", None, {'name': 'qemu', 'type': 'raw'})
                visaje.visajeutil.lxml_subelement(disk, "readonly")
            else:
                raise visaje.VisajeException.VisajeException("Unknown storage device type %s" % (device.device_type))
            visaje.visajeutil.lxml_subelement(disk, "source", None, {'file': device.location})
            visaje.visajeutil.lxml_subelement(disk, "target", None, {'dev': _target_dev(controller.bus, index), 'bus': controller.bus})

    return lxml.etree.tostring(domain, pretty_print=True, encoding="unicode")
