# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import os.path
import re
import typing

from pathlib import Path


# pseudo-device of the initial ramfs root, never a real block device
ROOTFS = 'rootfs'

_escape_re = re.compile(r'\\([0-7]{3})')


def unescape(field: str) -> str:
    """Decode octal escapes (e.g. '\\040' for space) used in mtab"""
    return _escape_re.sub(lambda m: chr(int(m.group(1), 8)), field)


def canonical_device(device: str) -> str:
    """
    Return the canonical path of `device`

    Resolve all symlinks in `device`.  If it is not an absolute path
    or it can not be resolved, return it unchanged.
    """

    if not os.path.isabs(device):
        return device
    try:
        return str(Path(device).resolve(strict=True))
    except (OSError, RuntimeError):
        return device


class MountTable(object):
    """A snapshot of device-special file to mount point mapping"""

    mounts: typing.Dict[str, str]

    def __init__(self,
                 mounts: typing.Dict[str, str]
                 ) -> None:
        self.mounts = mounts

    @classmethod
    def from_lines(cls,
                   lines: typing.Iterable[str]
                   ) -> 'MountTable':
        """
        Build the table from mtab-style `lines`

        Only the first two fields of each line are used.  The rootfs
        pseudo-device is skipped, device keys are canonicalized
        and the root mount point is stored as an empty string, so that
        it can be prepended to absolute paths directly.  If the same
        device is mounted multiple times, the first mount wins.
        """

        mounts: typing.Dict[str, str] = {}
        for line in lines:
            fields = line.split()
            if len(fields) < 2:
                continue
            device, mountpoint = (unescape(x) for x in fields[:2])
            if device == ROOTFS:
                continue
            device = canonical_device(device)
            if mountpoint == '/':
                mountpoint = ''
            mounts.setdefault(device, mountpoint)
        return cls(mounts)

    @classmethod
    def from_file(cls,
                  path: str = '/proc/mounts'
                  ) -> 'MountTable':
        with open(path) as f:
            logging.debug(f'reading mounts from {path}')
            return cls.from_lines(f)

    def get_mountpoint(self,
                       device: str
                       ) -> typing.Optional[str]:
        """Return the mount point for `device`, or None if not mounted"""
        canonical = canonical_device(device)
        mountpoint = self.mounts.get(canonical)
        if mountpoint is None:
            logging.debug(f'{device} ({canonical}) is not mounted')
        else:
            logging.debug(f'{device} is mounted on {mountpoint or "/"}')
        return mountpoint

    def __repr__(self) -> str:
        return f'MountTable({self.mounts!r})'
