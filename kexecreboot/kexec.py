# vim:fileencoding=utf-8
# (c) 2011-2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import logging
import shlex
import subprocess
import typing

from kexecreboot.bootloader import BootEntry


class KexecNotFound(Exception):
    def __init__(self,
                 command: str
                 ) -> None:
        self.command = command
        Exception.__init__(self, f'{command} not found')

    @property
    def friendly_desc(self) -> str:
        return f'''The {self.command} program could not be found.

Please install kexec-tools (and systemd for --reboot) and make sure
the programs are available in PATH.'''


class KexecError(Exception):
    def __init__(self,
                 cmd: typing.List[str],
                 returncode: int
                 ) -> None:
        self.cmd = cmd
        self.returncode = returncode
        Exception.__init__(
            self, f'{cmd[0]} exited with {returncode} status')

    @property
    def friendly_desc(self) -> str:
        return f'''The following command failed with exit status {self.returncode}:
  {shlex.join(self.cmd)}

This usually indicates that you have insufficient permissions to run
kexec-reboot, or that the kernel does not support kexec.'''


def load_commands(entry: BootEntry) -> typing.List[typing.List[str]]:
    """Get commands unloading the current target and loading `entry`"""
    return [
        ['kexec', '-u'],
        ['kexec', '-l', entry.kernel,
         f'--initrd={entry.initrd}',
         f'--command-line={entry.cmdline}'],
    ]


def reboot_commands() -> typing.List[typing.List[str]]:
    return [['systemctl', 'kexec']]


def run_commands(cmds: typing.Iterable[typing.List[str]],
                 pretend: bool = False
                 ) -> None:
    """
    Run `cmds` in order, stopping at the first failure

    If `pretend` is True, only print the commands.  Raise KexecError
    if a command fails, or KexecNotFound if it does not exist.
    """

    for cmd in cmds:
        if pretend:
            print(shlex.join(cmd))
            continue
        logging.debug(f'running: {cmd}')
        try:
            p = subprocess.Popen(cmd)
        except FileNotFoundError:
            raise KexecNotFound(cmd[0])
        if p.wait() != 0:
            raise KexecError(cmd, p.returncode)


def load_kernel(entry: BootEntry,
                pretend: bool = False
                ) -> None:
    run_commands(load_commands(entry), pretend=pretend)


def reboot(pretend: bool = False) -> None:
    run_commands(reboot_commands(), pretend=pretend)
