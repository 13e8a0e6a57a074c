# (c) 2020 Michał Górny <mgorny@gentoo.org>
# SPDX-License-Identifier: GPL-2.0-or-later

import abc
import logging
import os
import os.path
import typing

from kexecreboot.config import SystemConfig
from kexecreboot.mount import MountTable


class BootEntry(typing.NamedTuple):
    """A bootable entry with verified kernel and initrd paths"""

    name: str
    kernel: str
    initrd: str
    cmdline: str


class RawEntry(typing.NamedTuple):
    """Unresolved fields of a single bootloader config entry"""

    name: str
    root: typing.Optional[str]
    kernel: str
    initrd: str
    cmdline: str


Resolver = typing.Callable[[RawEntry], typing.Optional[str]]


def validate_entry(entry: BootEntry) -> typing.Optional[str]:
    """
    Check whether kernel and initrd of `entry` are readable files

    Return None if the entry is usable, or the reason why it is not.
    """

    for kind, path in (('kernel', entry.kernel),
                       ('initrd', entry.initrd)):
        if not os.path.isfile(path):
            return f'{kind} {path} does not exist'
        if not os.access(path, os.R_OK):
            return f'{kind} {path} is not readable'
    return None


class Bootloader(abc.ABC):
    """A class used to represent a bootloader config format"""

    name: str
    def_path: typing.Tuple[str, ...]

    def __init__(self,
                 config: SystemConfig = SystemConfig()
                 ) -> None:
        self.config = config
        self._mounts: typing.Optional[MountTable] = None

    @property
    def mounts(self) -> MountTable:
        """The system mount table, read on first use (empty if missing)"""
        if self._mounts is None:
            try:
                self._mounts = MountTable.from_file(self.config.mounts)
            except OSError as e:
                logging.debug(f'unable to read mount table: {e}')
                self._mounts = MountTable({})
        return self._mounts

    @abc.abstractmethod
    def _get_raw_entries(self,
                         content: str
                         ) -> typing.Iterable[RawEntry]:
        """Extract entries from config file `content`, in order"""
        pass

    @abc.abstractmethod
    def resolvers(self) -> typing.List[Resolver]:
        """
        Get path prefix resolvers

        Return the list of callables that are tried in order to obtain
        the path prefix for an entry.  Each of them returns the prefix
        (which may be an empty string) or None if it did not apply.
        """
        pass

    def skip(self,
             name: str,
             reason: str
             ) -> None:
        """Report that entry `name` is skipped"""
        level = logging.INFO if self.config.verbose else logging.DEBUG
        logging.log(level, f'Skipping {name!r}: {reason}')

    def _make_raw_entry(self,
                        block: typing.Dict[str, str]
                        ) -> typing.Optional[RawEntry]:
        """Build RawEntry from a finished parser `block`"""
        name = block.get('name', '')
        for key in ('kernel', 'initrd'):
            if key not in block:
                self.skip(name, f'no {key} specified')
                return None
        return RawEntry(name=name,
                        root=block.get('root'),
                        kernel=block['kernel'],
                        initrd=block['initrd'],
                        cmdline=block.get('cmdline', ''))

    def resolve_prefix(self,
                       raw: RawEntry
                       ) -> typing.Optional[str]:
        for resolver in self.resolvers():
            prefix = resolver(raw)
            if prefix is not None:
                logging.debug(f'{raw.name!r}: prefix {prefix!r} '
                              f'from {resolver.__name__}')
                return prefix
        return None

    def parse(self,
              content: str
              ) -> typing.List[BootEntry]:
        """
        Get list of usable entries from config file `content`

        Resolve the paths of every entry found in `content` and return
        those whose kernel and initrd are readable, in config order.
        Entries that can not be resolved or validated are skipped.
        """

        entries = []
        for raw in self._get_raw_entries(content):
            prefix = self.resolve_prefix(raw)
            if prefix is None:
                self.skip(raw.name,
                          f'unable to resolve device {raw.root}')
                continue

            entry = BootEntry(name=raw.name,
                              kernel=prefix + raw.kernel,
                              initrd=prefix + raw.initrd,
                              cmdline=raw.cmdline)
            reason = validate_entry(entry)
            if reason is not None:
                self.skip(raw.name, reason)
                continue
            logging.debug(f'accepted {entry}')
            entries.append(entry)
        return entries
