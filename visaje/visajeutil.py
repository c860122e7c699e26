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
Miscellaneous utility functions.
"""

import configparser
import errno
import logging
import os
import select
import subprocess
import time

import lxml.etree

import monotonic

import visaje.VisajeException


def executable_exists(program):
    """
    Function to find out whether an executable exists in the PATH
    of the user.  If so, the absolute path to the executable is returned.
    If not, an exception is raised.
    """
    def is_exe(fpath):
        """
        Helper method to check if a file exists and is executable
        """
        return os.path.exists(fpath) and os.access(fpath, os.X_OK)

    if program is None:
        raise Exception("Invalid program name passed")

    fpath, fname = os.path.split(program)
    if fpath:
        if is_exe(program):
            return program
    else:
        for path in os.environ["PATH"].split(os.pathsep):
            exe_file = os.path.join(path, program)
            if is_exe(exe_file):
                return exe_file

    raise Exception("Could not find %s" % (program))


class SubprocessException(Exception):
    """
    Class for subprocess exceptions.  In addition to a error message, it
    also has a retcode member that has the returncode from the command.
    """
    def __init__(self, msg, retcode):
        Exception.__init__(self, msg)
        self.retcode = retcode


def subprocess_check_output(*popenargs, **kwargs):
    """
    Function to call a subprocess and gather the output.
    """
    if 'stdout' in kwargs:
        raise ValueError('stdout argument not allowed, it will be overridden.')
    if 'stderr' in kwargs:
        raise ValueError('stderr argument not allowed, it will be overridden.')

    printfn = None
    if 'printfn' in kwargs:
        printfn = kwargs['printfn']
        del kwargs['printfn']

    executable_exists(popenargs[0][0])

    process = subprocess.Popen(stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                               *popenargs, **kwargs)

    poller = select.poll()
    select_POLLIN_POLLPRI = select.POLLIN | select.POLLPRI
    poller.register(process.stdout.fileno(), select_POLLIN_POLLPRI)
    poller.register(process.stderr.fileno(), select_POLLIN_POLLPRI)

    stdout = ''
    stderr = ''
    retcode = process.poll()
    while retcode is None:
        try:
            ready = poller.poll(1000)
        except InterruptedError:
            continue

        for fd, mode in ready:
            if mode & select_POLLIN_POLLPRI:
                data = os.read(fd, 4096)
                if not data:
                    poller.unregister(fd)
                else:
                    data = data.decode('utf-8')
                    if printfn is not None:
                        printfn(data)
                    if fd == process.stdout.fileno():
                        stdout += data
                    else:
                        stderr += data
            else:
                # Ignore hang up or errors.
                poller.unregister(fd)

        retcode = process.poll()

    tmpout, tmperr = process.communicate()

    stdout += tmpout.decode('utf-8')
    stderr += tmperr.decode('utf-8')

    if retcode:
        cmd = str(popenargs)
        raise SubprocessException("'%s' failed(%d): %s" % (cmd, retcode, stderr + stdout), retcode)

    return (stdout, stderr, retcode)


def mkdir_p(path):
    """
    Function to make a directory and all intermediate directories as
    necessary.  The functionality differs from os.makedirs slightly, in
    that this function does *not* raise an error if the directory already
    exists.
    """
    if path is None:
        raise Exception("Path cannot be None")

    if path == '':
        # os.path.dirname() of a bare filename
        return

    try:
        os.makedirs(path)
    except OSError as err:
        if err.errno != errno.EEXIST or not os.path.isdir(path):
            raise


def config_get_key(config, section, key, default):
    """
    Function to retrieve config parameters out of the config file.
    """
    if config is not None and config.has_section(section) and config.has_option(section, key):
        return config.get(section, key)
    return default


def parse_config(config_file):
    """
    Function to parse the configuration file.  If the passed in config_file is
    None, then the default configuration file is used.
    """
    config = configparser.ConfigParser()
    if config_file is not None:
        # an explicitly requested config file has to exist, so open it
        # ourselves instead of letting read() skip it silently
        with open(os.path.expanduser(config_file)) as f:
            config.read_file(f)
    else:
        # First we check to see if a ~/.visaje/visaje.cfg exists; if it does,
        # we use that.  Otherwise we fall back to the system-wide version in
        # /etc/visaje/visaje.cfg.  If neither of those exist, the built-in
        # defaults are used.
        parsed = config.read(os.path.expanduser("~/.visaje/visaje.cfg"))
        if not parsed and os.geteuid() == 0:
            config.read("/etc/visaje/visaje.cfg")

    return config


def lxml_subelement(root, name, text=None, attributes=None):
    """
    Function to add a new element to an LXML tree, optionally include text
    and a dictionary of attributes.
    """
    tmp = lxml.etree.SubElement(root, name)
    if text is not None:
        tmp.text = text
    if attributes is not None:
        for k, v in attributes.items():
            tmp.set(k, v)
    return tmp


class ProbeResult(object):
    """
    Outcome of a single probe attempt.  A probe is either still pending
    (keep polling), ready with a value, or failed with an exception that
    should stop the polling.
    """
    def __init__(self, value=None, error=None, pending=False):
        self.value = value
        self.error = error
        self.pending = pending

    @property
    def ready(self):
        return not self.pending and self.error is None

    def __repr__(self):
        if self.pending:
            return "<ProbeResult pending>"
        if self.error is not None:
            return "<ProbeResult failed: %r>" % (self.error)
        return "<ProbeResult ready: %r>" % (self.value)


PENDING = ProbeResult(pending=True)


def Ready(value):
    """
    Build a ProbeResult that carries value.
    """
    return ProbeResult(value=value)


def Failed(error):
    """
    Build a ProbeResult that makes wait_for() raise error.
    """
    return ProbeResult(error=error)


def wait_for(probe, interval, timeout, msg):
    '''
    A function to poll for an event to occur.  The probe is called with no
    arguments and must return a ProbeResult:

    1.  If the result is ready, its value is returned immediately.
    2.  If the result failed, its error is raised immediately.
    3.  If the result is pending and the deadline (now + timeout, computed
        once on entry) has passed, a VisajeException.Timeout is raised.
        Otherwise we sleep for interval seconds, or whatever is left before
        the deadline if that is less, and go around again.

    A progress message is logged at most every 10 seconds.
    '''
    if interval < 0:
        raise ValueError("Wait interval must not be negative")
    if timeout < 0:
        raise ValueError("Wait timeout must not be negative")

    log = logging.getLogger('%s' % (__name__))
    now = monotonic.monotonic()
    end = now + timeout
    next_print = now
    while True:
        if now >= next_print:
            left = max(int(end - now), 0)
            log.debug("%s, %d/%d", msg, left, timeout)
            next_print = now + 10

        result = probe()
        if result.error is not None:
            raise result.error
        if not result.pending:
            return result.value

        now = monotonic.monotonic()
        if now >= end:
            break

        sleep_time = min(interval, end - now)
        if sleep_time > 0:
            time.sleep(sleep_time)
        now = monotonic.monotonic()

    raise visaje.VisajeException.Timeout("%s: timed out after %s seconds" % (msg, timeout))


def wait_sec(seconds):
    """
    Block the calling thread for the given number of seconds.
    """
    if seconds > 0:
        time.sleep(seconds)


def sizeof_fmt(num, suffix="B"):
    """
    Give a convenient human-readable representation of a large size in
    bytes. Initially by Fred Cirera:
    https://web.archive.org/web/20111010015624/http://blogmag.net/blog/read/38/Print_human_readable_file_size
    edited by multiple contributors at:
    https://stackoverflow.com/questions/1094841
    """
    for unit in ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"):
        if abs(num) < 1024.0:
            return "%3.1f%s%s" % (num, unit, suffix)
        num /= 1024.0
    return "%.1f%s%s" % (num, 'Yi', suffix)
