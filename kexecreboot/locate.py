# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import typing

from kexecreboot.bootloader import Bootloader, BootEntry
from kexecreboot.bootloader.grub import GRUB
from kexecreboot.bootloader.grub2 import GRUB2
from kexecreboot.config import SystemConfig


Candidate = typing.Tuple[str, typing.Type[Bootloader]]

bootloaders: typing.List[typing.Type[Bootloader]] = [GRUB2, GRUB]


class ConfigPermissionError(Exception):
    def __init__(self,
                 path: str
                 ) -> None:
        self.path = path
        Exception.__init__(
            self, f'{path} not readable, refusing to proceed.')

    @property
    def friendly_desc(self) -> str:
        return f'''The following bootloader config is not readable:
  {self.path}

This usually indicates that you have insufficient permissions to run
kexec-reboot. The program needs to read the bootloader configuration
and load the kernel, therefore it needs to be run as root.'''


class NoConfigurationFound(Exception):
    def __init__(self,
                 paths: typing.List[str]
                 ) -> None:
        self.paths = paths
        Exception.__init__(
            self, 'No usable bootloader entries found.')

    @property
    def friendly_desc(self) -> str:
        tried = '\n'.join(f'  {x}' for x in self.paths)
        return f'''No usable boot entries were found. The following bootloader
configuration files were tried:
{tried}

Either none of them exists, or none of their entries could be resolved
to a readable kernel and initrd. Please rerun with --verbose to see
why the individual entries were skipped.'''


def default_candidates(
        bootloader_classes: typing.Iterable[typing.Type[Bootloader]]
        = bootloaders,
        path: typing.Optional[str] = None
        ) -> typing.List[Candidate]:
    """
    Get (path, bootloader class) pairs to try

    If `path` is specified, pair it with every class
    in `bootloader_classes`.  Otherwise, use the default paths for each
    bootloader.
    """

    return [(p, cls)
            for cls in bootloader_classes
            for p in ((path,) if path is not None else cls.def_path)]


def find_entries(candidates: typing.Iterable[Candidate],
                 config: SystemConfig = SystemConfig()
                 ) -> typing.List[BootEntry]:
    """
    Find usable boot entries in the first suitable config file

    Try `candidates` in order and return the entries of the first one
    that exists and yields any entries.  Raise ConfigPermissionError
    if a config file can not be read, or NoConfigurationFound if none
    of the candidates provided any entries.
    """

    tried = []
    for path, bootloader_cls in candidates:
        tried.append(path)
        try:
            with open(path) as f:
                content = f.read()
        except FileNotFoundError:
            logging.debug(f'{path} not found')
            continue
        except PermissionError:
            raise ConfigPermissionError(path)

        logging.debug(f'{path} found, parsing as {bootloader_cls.name}')
        entries = bootloader_cls(config).parse(content)
        if entries:
            return entries
        logging.debug(f'{path}: no usable entries')

    raise NoConfigurationFound(tried)
