from setuptools import setup, Command
import subprocess

VERSION = '0.3.0'

datafiles = [('share/doc/visaje', ['visaje.cfg.example'])]


class pytest(Command):
    user_options = []
    def initialize_options(self): pass
    def finalize_options(self): pass
    def run(self):
        try:
            errno = subprocess.call('py.test-3 tests --verbose --tb=short --junitxml=tests/results.xml'.split())
        except OSError as e:
            if e.errno == 2:
                raise OSError(2, "No such file or directory: py.test")
            raise
        raise SystemExit(errno)

setup(name='visaje',
      version=VERSION,
      description='Visaje unattended base image builder',
      license='LGPLv2',
      package_dir={'visaje': 'visaje'},
      packages=['visaje'],
      scripts=['visaje-install'],
      install_requires=['libvirt-python', 'lxml', 'monotonic', 'paramiko'],
      extras_require={'test': ['pytest']},
      cmdclass={'test': pytest},
      data_files=datafiles,
      )
