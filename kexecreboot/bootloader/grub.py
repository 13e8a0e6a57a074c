# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import os.path
import re
import typing

from kexecreboot.bootloader import Bootloader, RawEntry, Resolver
from kexecreboot.device import DeviceMap, parse_root_spec, split_device_path


class GRUB(Bootloader):
    name = 'grub'
    def_path = ('/boot/grub/menu.lst', '/boot/grub/grub.conf')

    directive_re = re.compile(
        r'^\s*(?P<key>[a-z]+)(?:\s*=\s*|\s+|$)(?P<value>.*)$',
        re.IGNORECASE)

    _device_map: typing.Optional[DeviceMap] = None

    @property
    def device_map(self) -> DeviceMap:
        """The GRUB1 device map, read on first use (empty if missing)"""
        if self._device_map is None:
            try:
                self._device_map = DeviceMap.from_file(
                    self.config.device_map)
            except OSError as e:
                logging.debug(f'unable to read device map: {e}')
                self._device_map = DeviceMap({})
        return self._device_map

    def _get_raw_entries(self,
                         content: str
                         ) -> typing.Iterable[RawEntry]:
        block: typing.Optional[typing.Dict[str, str]] = None

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            m = self.directive_re.match(line)
            if m is None:
                continue
            key = m.group('key').lower()
            value = m.group('value').strip()

            if key == 'title':
                if block is not None:
                    raw = self._make_raw_entry(block)
                    if raw is not None:
                        yield raw
                logging.debug(f'found entry {value!r}')
                block = {'name': value}
            elif block is None:
                # global directive (default, timeout...)
                continue
            elif key in ('root', 'rootnoverify'):
                block['root'] = value
            elif key == 'kernel' and value:
                path, *args = value.split(None, 1)
                device, block['kernel'] = split_device_path(path)
                block['cmdline'] = args[0].strip() if args else ''
                if device is not None:
                    block['root'] = device
            elif key == 'initrd' and value:
                device, block['initrd'] = split_device_path(
                    value.split()[0])
                if device is not None and 'root' not in block:
                    block['root'] = device

        if block is not None:
            raw = self._make_raw_entry(block)
            if raw is not None:
                yield raw

    def resolvers(self) -> typing.List[Resolver]:
        return [self._search_dirs_prefix, self._device_map_prefix]

    def _search_dirs_prefix(self,
                            raw: RawEntry
                            ) -> typing.Optional[str]:
        for prefix in self.config.search_dirs:
            if os.path.exists(prefix + raw.kernel):
                return prefix
        return None

    def _device_map_prefix(self,
                           raw: RawEntry
                           ) -> typing.Optional[str]:
        if raw.root is None:
            return None
        spec = parse_root_spec(raw.root)
        if spec is None:
            logging.debug(f'unable to parse root device {raw.root}')
            return None
        device = self.device_map.partition_device(spec.handle,
                                                  spec.partition)
        if device is None:
            return None
        return self.mounts.get_mountpoint(device)
