# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import os
import os.path
import re
import typing


class RootSpec(typing.NamedTuple):
    """A parsed GRUB1 root device, e.g. (hd0,1)"""

    handle: str
    partition: typing.Optional[int]


root_spec_re = re.compile(
    r'^\s*\((?P<handle>[^,)\s]+)(?:,(?P<partition>\d+))?\)')
device_path_re = re.compile(r'^(?P<device>\([^)]*\))?(?P<path>.*)$')
device_map_re = re.compile(r'^\s*\((?P<handle>[^)]+)\)\s+(?P<device>\S+)')


def parse_root_spec(spec: str) -> typing.Optional[RootSpec]:
    """Parse GRUB1 `spec` into a RootSpec, return None if malformed"""
    m = root_spec_re.match(spec)
    if m is None:
        return None
    partition = m.group('partition')
    return RootSpec(m.group('handle'),
                    int(partition) if partition is not None else None)


def split_device_path(path: str
                      ) -> typing.Tuple[typing.Optional[str], str]:
    """
    Split the GRUB device prefix from `path`

    Return a tuple of (device, path), where device is e.g. '(hd0,0)'
    or None if `path` had no device prefix.  The returned path always
    starts with a slash.
    """

    m = device_path_re.match(path)
    assert m is not None
    rest = m.group('path')
    if not rest.startswith('/'):
        rest = '/' + rest
    return m.group('device'), rest


class DeviceMap(object):
    """GRUB1 BIOS disk handle to device prefix mapping"""

    devices: typing.Dict[str, str]

    def __init__(self,
                 devices: typing.Dict[str, str]
                 ) -> None:
        self.devices = devices

    @classmethod
    def from_lines(cls,
                   lines: typing.Iterable[str]
                   ) -> 'DeviceMap':
        devices: typing.Dict[str, str] = {}
        for line in lines:
            if line.lstrip().startswith('#'):
                continue
            m = device_map_re.match(line)
            if m is not None:
                devices[m.group('handle')] = m.group('device')
        return cls(devices)

    @classmethod
    def from_file(cls,
                  path: str = '/boot/grub/device.map'
                  ) -> 'DeviceMap':
        with open(path) as f:
            logging.debug(f'{path} found')
            return cls.from_lines(f)

    def partition_device(self,
                         handle: str,
                         partition: typing.Optional[int]
                         ) -> typing.Optional[str]:
        """
        Find device-special file for a partition on BIOS disk `handle`

        `partition` is the 0-based GRUB1 partition number, or None for
        the whole disk.  Both the separator form (/dev/nvme0n1p1)
        and the bare form (/dev/sda1) are probed, in this order.
        Return the first path that exists, or None.
        """

        prefix = self.devices.get(handle)
        if prefix is None:
            logging.debug(f'({handle}) not found in device map')
            return None
        if partition is None:
            candidates = [prefix]
        else:
            candidates = [f'{prefix}p{partition + 1}',
                          f'{prefix}{partition + 1}']
        for candidate in candidates:
            if os.path.exists(candidate):
                logging.debug(f'({handle},{partition}) is {candidate}')
                return candidate
        logging.debug(f'none of {", ".join(candidates)} exist')
        return None


def uuid_to_device(uuid: str,
                   uuid_dir: str = '/dev/disk/by-uuid'
                   ) -> typing.Optional[str]:
    """Find device-special file for filesystem `uuid`, or None"""
    link = os.path.join(uuid_dir, uuid)
    if not os.path.islink(link):
        logging.debug(f'{link} does not exist')
        return None
    device = os.path.realpath(link)
    logging.debug(f'UUID {uuid} is {device}')
    return device
