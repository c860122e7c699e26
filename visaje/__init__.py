"""
Automated installation of operating systems into reusable base images.

Visaje boots a virtual machine from an install ISO, types a boot key
sequence to start an unattended install, waits until it can log into the
finished guest, and then shuts the machine down and turns its disk into an
immutable base image.

The simplest Visaje program (without error handling) would look something
like:

import visaje.Installer
import visaje.KeySequence
import visaje.LibvirtProvider

provider = visaje.LibvirtProvider.LibvirtProvider('qemu:///system')
image = visaje.Installer.install_os(provider, {
    'name': 'debian-6',
    'disk-location': '/var/lib/visaje/debian-6.qcow2',
    'os-iso-location': '/isos/debian-6.0.2.1-amd64-netinst.iso',
    'tools-iso-location': '/isos/VBoxGuestAdditions.iso',
    'boot-key-sequence': [visaje.KeySequence.Key('esc'), 500,
                          'auto url=http://10.0.2.2/preseed.cfg',
                          visaje.KeySequence.Key('enter')],
    'user': 'visaje',
    'password': 'visaje',
})
"""
