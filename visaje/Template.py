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
Install description XML.

An install description names the VM, the disk to create, the install and
guest tooling media, the boot key sequence and the guest login:

<install>
  <name>debian-6</name>
  <disk location='/var/lib/visaje/debian-6.qcow2' size='8192'/>
  <media os='/isos/debian-6.0.2.1-amd64-netinst.iso'
         tools='/isos/VBoxGuestAdditions.iso'/>
  <bootkeys>
    <key>esc</key>
    <delay>500</delay>
    <text>auto url=http://10.0.2.2/preseed.cfg netcfg/choose_interface=eth0</text>
    <key>enter</key>
  </bootkeys>
  <login user='visaje' password='visaje'/>
  <memory>2048</memory>
</install>

The size attribute and the memory element are optional.
"""

from io import StringIO

import lxml.etree

import visaje.KeySequence
import visaje.VisajeException


def _xml_get_value(doc, xmlstring, component, optional=False):
    """
    Function to get the contents from an XML node.  Returns the text of the
    node, or None if the node is absent and optional is True.
    """
    res = doc.xpath(xmlstring)
    if len(res) == 1:
        return res[0].text
    elif not res:
        if optional:
            return None
        raise visaje.VisajeException.ConfigurationError("Failed to find %s in install description" % (component))
    else:
        raise visaje.VisajeException.ConfigurationError("Expected 0 or 1 %s in install description, saw %d" % (component, len(res)))


def _xml_get_attr(doc, xmlstring, attr, component, optional=False):
    """
    Function to get an attribute of a single XML node.
    """
    res = doc.xpath(xmlstring)
    if len(res) != 1:
        if not res and optional:
            return None
        raise visaje.VisajeException.ConfigurationError("Expected 1 %s in install description, saw %d" % (component, len(res)))

    value = res[0].get(attr)
    if value is None and not optional:
        raise visaje.VisajeException.ConfigurationError("Failed to find %s %s in install description" % (component, attr))
    return value


def _to_int(value, component):
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise visaje.VisajeException.ConfigurationError("%s must be a number, got '%s'" % (component, value))


class Template(object):
    """
    Class that represents a parsed install description.  Objects of this
    kind contain the options needed to build an InstallConfig; see
    options().
    """
    def __init__(self, xmlstring):
        try:
            tree = lxml.etree.parse(StringIO(xmlstring))
        except lxml.etree.XMLSyntaxError as err:
            raise visaje.VisajeException.ConfigurationError("Invalid install description: %s" % (err))
        self.doc = tree.getroot()

        if self.doc.tag != 'install':
            raise visaje.VisajeException.ConfigurationError("Expected an <install> document, saw <%s>" % (self.doc.tag))

        self.name = _xml_get_value(self.doc, '/install/name', 'name')

        self.disk_location = _xml_get_attr(self.doc, '/install/disk',
                                           'location', 'disk')
        self.disk_size = _to_int(_xml_get_attr(self.doc, '/install/disk',
                                               'size', 'disk', optional=True),
                                 'disk size')

        self.os_iso_location = _xml_get_attr(self.doc, '/install/media', 'os',
                                             'media')
        self.tools_iso_location = _xml_get_attr(self.doc, '/install/media',
                                                'tools', 'media')

        self.user = _xml_get_attr(self.doc, '/install/login', 'user', 'login')
        self.password = _xml_get_attr(self.doc, '/install/login', 'password',
                                      'login')

        self.memory_size = _to_int(_xml_get_value(self.doc, '/install/memory',
                                                  'memory', optional=True),
                                   'memory')

        self.boot_key_sequence = self._parse_bootkeys()

    def _parse_bootkeys(self):
        bootkeys = self.doc.xpath('/install/bootkeys')
        if len(bootkeys) != 1:
            raise visaje.VisajeException.ConfigurationError("Expected 1 bootkeys section in install description, saw %d" % (len(bootkeys)))

        sequence = []
        for element in bootkeys[0].iterchildren(tag=lxml.etree.Element):
            text = element.text
            if element.tag == 'key':
                sequence.append(visaje.KeySequence.Key((text or '').strip()))
            elif element.tag == 'text':
                # text is typed verbatim, whitespace included
                sequence.append(visaje.KeySequence.Text(text or ''))
            elif element.tag == 'delay':
                sequence.append(visaje.KeySequence.Delay(_to_int(text or '', 'delay')))
            else:
                raise visaje.VisajeException.ConfigurationError("Unknown element <%s> in bootkeys" % (element.tag))

        return sequence

    def options(self):
        """
        Method to get the install options from this description, suitable
        for InstallConfig.merge().  Optional values that were not given are
        left out so that the defaults apply.
        """
        opts = {}
        for key in ('name', 'disk_location', 'disk_size', 'os_iso_location',
                    'tools_iso_location', 'boot_key_sequence', 'user',
                    'password', 'memory_size'):
            value = getattr(self, key)
            if value is not None:
                opts[key] = value
        return opts
