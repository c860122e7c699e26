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
Virtualization provider backed by libvirt.
"""

import contextlib
import logging
import os
import time
import uuid

import libvirt

import lxml.etree

import visaje.HardwareSpec
import visaje.KeySequence
import visaje.Provider
import visaje.VisajeException
import visaje.visajeutil


def _status_for(err):
    """
    Map a libvirt error onto a ProviderError status.
    """
    code = err.get_error_code()
    if code == libvirt.VIR_ERR_OPERATION_INVALID:
        # libvirt reports "domain is not running" this way
        return visaje.VisajeException.STATUS_NOT_RUNNING
    if code in (libvirt.VIR_ERR_AGENT_UNRESPONSIVE,
                libvirt.VIR_ERR_OPERATION_TIMEOUT):
        return visaje.VisajeException.STATUS_INACCESSIBLE
    return visaje.VisajeException.STATUS_FAILED


@contextlib.contextmanager
def _libvirt_errors(msg):
    try:
        yield
    except libvirt.libvirtError as err:
        raise visaje.VisajeException.ProviderError("%s: %s" % (msg, err.get_error_message()),
                                                   _status_for(err)) from err


class LibvirtProvider(visaje.Provider.Provider):
    """
    Provider that creates disks through libvirt storage pools, runs the VM as
    a libvirt domain and compacts images with qemu-img.
    """
    def __init__(self, uri='qemu:///system', libvirt_type=None,
                 image_type='qcow2', nat_network='default'):
        self.log = logging.getLogger('%s.%s' % (__name__,
                                                self.__class__.__name__))
        self.libvirt_uri = uri
        self.libvirt_type = libvirt_type
        self.image_type = image_type
        self.nat_network = nat_network
        self.connect_to_libvirt()

    def connect_to_libvirt(self):
        """
        Method to connect to libvirt and detect the virtualization type.
        """
        def _libvirt_error_handler(ctxt, err):
            """
            Error callback to suppress libvirt printing to stderr by default.
            """
            pass

        libvirt.registerErrorHandler(_libvirt_error_handler, 'context')
        with _libvirt_errors("Failed to connect to %s" % (self.libvirt_uri)):
            self.libvirt_conn = libvirt.open(self.libvirt_uri)
        self._discover_libvirt_type()

    def _discover_libvirt_type(self):
        """
        Internal method to discover the libvirt type (qemu, kvm, etc) that
        we should use, if not specified by the user.
        """
        if self.libvirt_type is None:
            with _libvirt_errors("Failed to get host capabilities"):
                doc = lxml.etree.fromstring(self.libvirt_conn.getCapabilities())

            # Libvirt calls the old intel 32-bit architecture i686
            libvirtarch = os.uname()[4]
            if libvirtarch in ['i386', 'i586']:
                libvirtarch = 'i686'

            if len(doc.xpath("/capabilities/guest/arch[@name='%s']/domain[@type='kvm']" % (libvirtarch))) > 0:
                self.libvirt_type = 'kvm'
            elif len(doc.xpath("/capabilities/guest/arch[@name='%s']/domain[@type='qemu']" % (libvirtarch))) > 0:
                self.libvirt_type = 'qemu'
            else:
                raise visaje.VisajeException.ProviderError("This host does not support virtualization type kvm or qemu for arch %s" % (libvirtarch))

        self.log.debug("Libvirt type is %s", self.libvirt_type)

    def _storage_pool(self, directory):
        """
        Internal method to find the storage pool that manages directory,
        starting or creating one as necessary.  Returns a tuple of the pool
        and whether we had to start it.
        """
        # sigh.  Yes, this is racy; if a pool is defined during this loop, we
        # might miss it.
        with _libvirt_errors("Failed to look up storage pool for %s" % (directory)):
            for poolname in self.libvirt_conn.listDefinedStoragePools() + self.libvirt_conn.listStoragePools():
                pool = self.libvirt_conn.storagePoolLookupByName(poolname)
                doc = lxml.etree.fromstring(pool.XMLDesc(0))
                res = doc.xpath('/pool/target/path')
                if len(res) != 1:
                    continue
                if res[0].text == directory:
                    if not pool.isActive():
                        pool.create(0)
                        return pool, True
                    return pool, False

            pool = lxml.etree.Element("pool", type="dir")
            visaje.visajeutil.lxml_subelement(pool, "name", "visajetempdir" + str(uuid.uuid4()))
            target = visaje.visajeutil.lxml_subelement(pool, "target")
            visaje.visajeutil.lxml_subelement(target, "path", directory)
            pool_xml = lxml.etree.tostring(pool, pretty_print=True, encoding="unicode")

            return self.libvirt_conn.storagePoolCreateXML(pool_xml, 0), True

    def create_disk(self, location, size):
        self.log.info("Generating %s disk image at %s",
                      visaje.visajeutil.sizeof_fmt(size * 1024 * 1024), location)

        directory = os.path.dirname(os.path.abspath(location))
        filename = os.path.basename(location)
        visaje.visajeutil.mkdir_p(directory)

        vol = lxml.etree.Element("volume", type="file")
        visaje.visajeutil.lxml_subelement(vol, "name", filename)
        visaje.visajeutil.lxml_subelement(vol, "allocation", "0")
        visaje.visajeutil.lxml_subelement(vol, "capacity", str(int(size)), {'unit': 'M'})
        target = visaje.visajeutil.lxml_subelement(vol, "target")
        visaje.visajeutil.lxml_subelement(target, "format", None, {"type": self.image_type})
        # FIXME: this makes the permissions insecure, but is needed since
        # libvirt launches guests as qemu:qemu
        permissions = visaje.visajeutil.lxml_subelement(target, "permissions")
        visaje.visajeutil.lxml_subelement(permissions, "mode", "0666")
        vol_xml = lxml.etree.tostring(vol, pretty_print=True, encoding="unicode")

        pool, started = self._storage_pool(directory)

        def _vol_create_cb():
            """
            The probe used for waiting on volume creation to complete.
            """
            try:
                pool.refresh(0)
            except libvirt.libvirtError as e:
                if e.get_error_code() == libvirt.VIR_ERR_INTERNAL_ERROR:
                    # libvirt returns a VIR_ERR_INTERNAL_ERROR while another
                    # operation is running on the pool
                    return visaje.visajeutil.PENDING
                raise

            # an existing volume with that name is replaced
            try:
                pool.storageVolLookupByName(filename).delete(0)
            except libvirt.libvirtError as e:
                if e.get_error_code() != libvirt.VIR_ERR_NO_STORAGE_VOL:
                    raise

            pool.createXML(vol_xml, 0)

            return visaje.visajeutil.Ready(location)

        try:
            with _libvirt_errors("Failed to create disk image %s" % (location)):
                visaje.visajeutil.wait_for(_vol_create_cb, 1, 90,
                                           "Waiting for volume to be created")
        except visaje.VisajeException.Timeout as err:
            raise visaje.VisajeException.ProviderError(str(err)) from err
        finally:
            if started:
                with _libvirt_errors("Failed to stop storage pool"):
                    pool.destroy()

    @staticmethod
    def _guess_kind(location):
        if location.lower().endswith('.iso'):
            return 'dvd'
        return 'hard-disk'

    def find_medium(self, location):
        try:
            vol = self.libvirt_conn.storageVolLookupByPath(location)
        except libvirt.libvirtError as err:
            if err.get_error_code() == libvirt.VIR_ERR_NO_STORAGE_VOL:
                return None
            raise visaje.VisajeException.ProviderError("Failed to look up medium %s: %s" % (location, err.get_error_message()),
                                                       _status_for(err)) from err

        return visaje.Provider.Medium(vol.path(), self._guess_kind(location))

    def open_medium(self, location, kind):
        if not os.access(location, os.R_OK):
            raise visaje.VisajeException.ProviderError("Medium %s does not exist or is not readable" % (location))

        # the pool stays active so the medium remains registered
        pool, started = self._storage_pool(os.path.dirname(os.path.abspath(location)))
        if started:
            self.log.debug("Started storage pool for %s", location)
        with _libvirt_errors("Failed to register medium %s" % (location)):
            pool.refresh(0)
            pool.storageVolLookupByName(os.path.basename(location))

        return visaje.Provider.Medium(location, kind)

    def create_instance(self, name, metadata, hardware_spec):
        instance_uuid = uuid.uuid4()
        xml = visaje.HardwareSpec.generate_domain_xml(hardware_spec, name,
                                                      self.libvirt_type,
                                                      instance_uuid,
                                                      self.image_type,
                                                      self.nat_network,
                                                      metadata)
        self.log.debug("Generated XML:\n%s", xml)
        with _libvirt_errors("Failed to define domain %s" % (name)):
            dom = self.libvirt_conn.defineXML(xml)

        return visaje.Provider.MachineHandle(name, str(instance_uuid), dom)

    def start(self, handle):
        with _libvirt_errors("Failed to start %s" % (handle.name)):
            handle.data.create()

    def send_keyboard(self, handle, sequence):
        for item in visaje.KeySequence.normalize(sequence):
            if isinstance(item, visaje.KeySequence.Delay):
                time.sleep(item.milliseconds / 1000.0)
                continue
            self.log.debug("Sending %r to %s", item, handle.name)
            for chord in visaje.KeySequence.keycodes_for(item):
                with _libvirt_errors("Failed to send keys to %s" % (handle.name)):
                    handle.data.sendKey(libvirt.VIR_KEYCODE_SET_LINUX, 50,
                                        chord, len(chord), 0)

    def stop(self, handle):
        with _libvirt_errors("Failed to shut down %s" % (handle.name)):
            handle.data.shutdown()

    def power_down(self, handle):
        try:
            handle.data.destroy()
        except libvirt.libvirtError as err:
            if err.get_error_code() != libvirt.VIR_ERR_OPERATION_INVALID:
                raise visaje.VisajeException.ProviderError("Failed to power down %s: %s" % (handle.name, err.get_error_message()),
                                                           _status_for(err)) from err
            self.log.debug("%s was already powered off", handle.name)

    def _disk_paths(self, dom):
        doc = lxml.etree.fromstring(dom.XMLDesc(0))
        return [source.get('file') for source in doc.xpath("/domain/devices/disk[@device='disk']/source")
                if source.get('file')]

    def destroy(self, handle, delete_disks):
        with _libvirt_errors("Failed to destroy %s" % (handle.name)):
            if delete_disks:
                for path in self._disk_paths(handle.data):
                    self.log.info("Deleting disk %s of %s", path, handle.name)
                    try:
                        self.libvirt_conn.storageVolLookupByPath(path).delete(0)
                    except libvirt.libvirtError as err:
                        if err.get_error_code() != libvirt.VIR_ERR_NO_STORAGE_VOL:
                            raise
                        os.unlink(path)
            handle.data.undefine()

    def compact_to_immutable(self, location):
        self.log.info("Compacting %s", location)
        compacted = location + ".compact"
        try:
            visaje.visajeutil.subprocess_check_output(["qemu-img", "convert",
                                                       "-c", "-O", "qcow2",
                                                       location, compacted],
                                                      printfn=self.log.debug)
        except visaje.visajeutil.SubprocessException as err:
            raise visaje.VisajeException.ProviderError("Failed to compact %s: %s" % (location, err)) from err

        os.rename(compacted, location)
        os.chmod(location, 0o444)

    def get_ip(self, handle, slot):
        dom = handle.data
        with _libvirt_errors("Failed to query %s" % (handle.name)):
            if not dom.isActive():
                raise visaje.VisajeException.ProviderError("%s is not running" % (handle.name),
                                                           visaje.VisajeException.STATUS_NOT_RUNNING)

            doc = lxml.etree.fromstring(dom.XMLDesc(0))
            macs = doc.xpath("/domain/devices/interface/mac")
            if slot >= len(macs):
                raise visaje.VisajeException.ProviderError("%s has no network adapter in slot %d" % (handle.name, slot))
            mac = macs[slot].get('address').lower()

            addresses = dom.interfaceAddresses(libvirt.VIR_DOMAIN_INTERFACE_ADDRESSES_SRC_LEASE, 0)

        for iface in addresses.values():
            if (iface.get('hwaddr') or '').lower() != mac:
                continue
            for addr in iface.get('addrs') or []:
                if addr['type'] == libvirt.VIR_IP_ADDR_TYPE_IPV4:
                    return addr['addr']

        return ""
