# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import shlex
import typing

from kexecreboot.bootloader import Bootloader, RawEntry, Resolver
from kexecreboot.device import split_device_path, uuid_to_device


class GRUB2(Bootloader):
    name = 'grub2'
    def_path = ('/boot/grub/grub.cfg', '/boot/grub2/grub.cfg')

    kernel_cmds = ('linux', 'linux16', 'linuxefi')
    initrd_cmds = ('initrd', 'initrd16', 'initrdefi')

    @staticmethod
    def _entry_name(line: str) -> str:
        try:
            words = shlex.split(line)
        except ValueError:
            words = line.split()
        return words[1] if len(words) > 1 else ''

    @staticmethod
    def _search_uuid(words: typing.List[str]
                     ) -> typing.Optional[str]:
        """Get filesystem UUID from search command `words`"""
        if words[0] == 'search.fs_uuid':
            return words[1] if len(words) > 1 else None
        options = [x for x in words[1:] if x.startswith('-')]
        args = [x for x in words[1:] if not x.startswith('-')]
        if not args or not any(x in ('--fs-uuid', '-u') for x in options):
            return None
        return args[-1]

    @staticmethod
    def _split_statements(line: str) -> typing.Iterable[str]:
        """
        Split config `line` into statements and braces

        Statements are separated by semicolons.  A brace
        is yielded on its own when it forms a separate word, so that
        `${var}` stays within its statement.  Quoted text and comments
        are respected.
        """

        def boundary(pos: int) -> bool:
            return (pos < 0 or pos >= len(line)
                    or line[pos].isspace() or line[pos] == ';')

        quote: typing.Optional[str] = None
        current = ''
        for i, c in enumerate(line):
            if quote is not None:
                current += c
                if c == quote:
                    quote = None
            elif c in '\'"':
                quote = c
                current += c
            elif c == '#' and boundary(i - 1):
                break
            elif c == ';':
                if current.strip():
                    yield current.strip()
                current = ''
            elif c in '{}' and boundary(i - 1) and boundary(i + 1):
                if current.strip():
                    yield current.strip()
                current = ''
                yield c
            else:
                current += c
        if current.strip():
            yield current.strip()

    def _get_raw_entries(self,
                         content: str
                         ) -> typing.Iterable[RawEntry]:
        block: typing.Optional[typing.Dict[str, str]] = None
        depth = 0
        entry_depth = 0

        for line in content.splitlines():
            for stmt in self._split_statements(line):
                if stmt == '{':
                    depth += 1
                    continue
                if stmt == '}':
                    depth = max(depth - 1, 0)
                    if block is not None and depth == entry_depth:
                        raw = self._make_raw_entry(block)
                        if raw is not None:
                            yield raw
                        block = None
                    continue

                words = stmt.split()
                cmd = words[0]

                if cmd == 'menuentry':
                    if block is not None:
                        self.skip(block['name'], 'entry is not terminated')
                    block = {'name': self._entry_name(stmt)}
                    entry_depth = depth
                    logging.debug(f'found entry {block["name"]!r}')
                elif block is None or len(words) < 2:
                    pass
                elif cmd in ('search', 'search.fs_uuid'):
                    uuid = self._search_uuid(words)
                    if uuid is not None:
                        block.setdefault('root', uuid)
                elif cmd in self.kernel_cmds:
                    _, path, *args = stmt.split(None, 2)
                    _, block['kernel'] = split_device_path(path)
                    block['cmdline'] = args[0].strip() if args else ''
                elif cmd in self.initrd_cmds:
                    # the main initramfs follows early images (microcode)
                    _, block['initrd'] = split_device_path(words[-1])

    def resolvers(self) -> typing.List[Resolver]:
        return [self._uuid_prefix]

    def _uuid_prefix(self,
                     raw: RawEntry
                     ) -> typing.Optional[str]:
        if raw.root is None:
            return None
        device = uuid_to_device(raw.root, self.config.uuid_dir)
        if device is None:
            return None
        return self.mounts.get_mountpoint(device)
