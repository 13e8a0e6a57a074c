# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import argparse
import logging
import os
import os.path
import shlex
import sys
import typing

from pathlib import Path

from kexecreboot import __version__
from kexecreboot.bootloader import BootEntry
from kexecreboot.config import SystemConfig
from kexecreboot.kexec import load_kernel, reboot
from kexecreboot.locate import bootloaders, default_candidates, find_entries

kexecreboot_desc = '''
Load a kernel referenced by the bootloader configuration using kexec,
and optionally reboot into it.
'''


def select_entry(entries: typing.List[BootEntry],
                 spec: str
                 ) -> typing.Optional[BootEntry]:
    """Select entry by index or exact name `spec`"""
    if spec.isdigit():
        idx = int(spec)
        if idx < len(entries):
            return entries[idx]
    for e in entries:
        if e.name == spec:
            return e
    return None


def ask_entry(entries: typing.List[BootEntry]
              ) -> BootEntry:
    for i, e in enumerate(entries):
        print(f'{i}) {e.name}')
    while True:
        ans = input(f'Select kernel to load [0-{len(entries) - 1}, '
                    f'default 0]: ').strip()
        if not ans:
            return entries[0]
        e = select_entry(entries, ans)
        if e is not None:
            return e
        print(f'Unknown answer ({ans}).')


def main(argv: typing.List[str]) -> int:
    argp = argparse.ArgumentParser(description=kexecreboot_desc.strip())
    argp.add_argument('-V', '--version',
                      action='version',
                      version=__version__)

    group = argp.add_argument_group('action control')
    group.add_argument('-A', '--ask',
                       action='store_true',
                       help='Ask which kernel to load')
    group.add_argument('-e', '--entry',
                       help='Load the entry with specified index or name '
                            '(default: the first entry)')
    group.add_argument('-l', '--list',
                       action='store_true',
                       help='List boot entries and exit')
    group.add_argument('-p', '--pretend',
                       action='store_true',
                       help='Print the commands that would be run '
                            'and exit')
    group.add_argument('-r', '--reboot',
                       action='store_true',
                       help='Reboot into the loaded kernel')

    group = argp.add_argument_group('system configuration')
    group.add_argument('-b', '--bootloader',
                       default='auto',
                       help=f'Bootloader used (auto, '
                            f'{", ".join(b.name for b in bootloaders)})')
    group.add_argument('-c', '--config',
                       type=Path,
                       help='Bootloader config file to use')

    group = argp.add_argument_group('misc options')
    group.add_argument('-D', '--debug',
                       action='store_true',
                       help='Enable debugging output')
    group.add_argument('-v', '--verbose',
                       action='store_true',
                       help='Report why boot entries were skipped')

    all_args = []
    config_dirs = os.environ.get('XDG_CONFIG_DIRS', '/etc/xdg').split(':')
    config_dirs.insert(0, os.environ.get('XDG_CONFIG_HOME', '~/.config'))
    for x in reversed(config_dirs):
        try:
            with open(Path(os.path.expanduser(x)) / 'kexec-reboot.rc',
                      'r') as f:
                all_args.extend(shlex.split(f.read(), comments=True))
        except FileNotFoundError:
            pass
        except NotADirectoryError:
            # XDG_CONFIG_* does not have to be correct
            pass

    all_args.extend(argv)
    args = argp.parse_args(all_args)

    logging.basicConfig(format='%(message)s')
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)

    if args.bootloader == 'auto':
        bootloader_classes = bootloaders
    else:
        bootloader_classes = [b for b in bootloaders
                              if b.name == args.bootloader]
        if not bootloader_classes:
            argp.error(f'Invalid bootloader: {args.bootloader}')

    config = SystemConfig(verbose=args.verbose or args.debug)
    logging.debug(f'Config: {config}')

    try:
        candidates = default_candidates(
            bootloader_classes,
            str(args.config) if args.config is not None else None)
        entries = find_entries(candidates, config)

        if args.list:
            for i, e in enumerate(entries):
                print(f'{i}) {e.name}')
                print(f'- kernel: {e.kernel}')
                print(f'- initrd: {e.initrd}')
                print(f'- cmdline: {e.cmdline}')
            return 0

        if args.entry is not None:
            entry = select_entry(entries, args.entry)
            if entry is None:
                argp.error(f'No such entry: {args.entry}')
        elif args.ask:
            entry = ask_entry(entries)
        else:
            entry = entries[0]

        print(f'Loading {entry.name}')
        load_kernel(entry, pretend=args.pretend)
        if args.reboot:
            reboot(pretend=args.pretend)
        return 0
    except Exception as e:
        if args.debug:
            raise
        print('kexec-reboot has met the following issue:\n')

        if hasattr(e, 'friendly_desc'):
            print(getattr(e, 'friendly_desc'))
        else:
            print(f'  {e!r}')

        print('''
If you believe that the mentioned issue is a bug, please report it,
attaching the output of 'kexec-reboot --list' and your regular
kexec-reboot call with additional '--debug' argument.''')
        return 1


def setuptools_main() -> None:
    sys.exit(main(sys.argv[1:]))


if __name__ == '__main__':
    setuptools_main()
