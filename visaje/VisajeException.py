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
Exception classes for Visaje.
"""


class VisajeException(Exception):
    """
    Base class for all Visaje exceptions.
    """
    def __init__(self, msg):
        Exception.__init__(self, msg)


class ConfigurationError(VisajeException):
    """
    Raised when an install configuration is missing a required value, or
    carries a value that cannot be used.
    """
    pass


# status codes reported by a provider alongside a ProviderError
STATUS_FAILED = "failed"
STATUS_NOT_RUNNING = "not-running"
STATUS_INACCESSIBLE = "inaccessible"


class ProviderError(VisajeException):
    """
    Raised when a call into the virtualization provider fails.  The status
    member tells the caller what kind of failure happened:

    STATUS_NOT_RUNNING  - the machine is not started
    STATUS_INACCESSIBLE - the machine exists but cannot be queried right now
    STATUS_FAILED       - anything else
    """
    def __init__(self, msg, status=STATUS_FAILED):
        VisajeException.__init__(self, msg)
        self.status = status


class Timeout(VisajeException):
    """
    Raised when a bounded wait expires before its probe became ready.
    """
    pass


class InstallationTimeout(Timeout):
    """
    Raised when the guest did not finish installing within the install
    timeout.
    """
    pass
