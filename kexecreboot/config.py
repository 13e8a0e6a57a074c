# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import typing


class SystemConfig(typing.NamedTuple):
    """
    Run-time configuration passed to the bootloader parsers

    `mounts`, `device_map` and `uuid_dir` locate the live system tables
    used to resolve device references.  `search_dirs` are the prefixes
    probed for GRUB1 kernel paths before falling back to the device map.
    `verbose` requests that skipped entries are reported at INFO level
    rather than DEBUG.
    """

    mounts: str = '/proc/mounts'
    device_map: str = '/boot/grub/device.map'
    uuid_dir: str = '/dev/disk/by-uuid'
    search_dirs: typing.Tuple[str, ...] = ('', '/boot')
    verbose: bool = False
