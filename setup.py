#!/usr/bin/python
# vim:fileencoding=utf-8
# (c) 2011 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

from setuptools import setup, find_packages

from kexecreboot import __version__

setup(
    name='kexec-reboot',
    version=__version__,
    description='Load a bootloader-configured kernel via kexec',

    packages=find_packages(exclude=['test']),
    entry_points={
        'console_scripts': [
            'kexec-reboot=kexecreboot.__main__:setuptools_main',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: BSD License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: System :: Boot'
    ]
)
