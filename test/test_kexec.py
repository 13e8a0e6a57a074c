# vim:fileencoding=utf-8
# (c) 2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import io
import unittest

from unittest.mock import MagicMock, call, patch

from kexecreboot.bootloader import BootEntry
from kexecreboot.kexec import (
    KexecError,
    KexecNotFound,
    load_commands,
    load_kernel,
    reboot,
    )


ENTRY = BootEntry(name='Ubuntu',
                  kernel='/boot/vmlinuz-2',
                  initrd='/boot/initrd-2',
                  cmdline='ro quiet')


class KexecTests(unittest.TestCase):
    def test_load_commands(self) -> None:
        self.assertEqual(
            load_commands(ENTRY),
            [['kexec', '-u'],
             ['kexec', '-l', '/boot/vmlinuz-2',
              '--initrd=/boot/initrd-2',
              '--command-line=ro quiet'],
             ])

    @patch('kexecreboot.kexec.subprocess.Popen')
    def test_load_kernel(self, popen: MagicMock) -> None:
        popen.return_value.wait.return_value = 0
        load_kernel(ENTRY)
        self.assertEqual(
            popen.call_args_list,
            [call(['kexec', '-u']),
             call(['kexec', '-l', '/boot/vmlinuz-2',
                   '--initrd=/boot/initrd-2',
                   '--command-line=ro quiet']),
             ])

    @patch('kexecreboot.kexec.subprocess.Popen')
    def test_load_kernel_failure(self, popen: MagicMock) -> None:
        popen.return_value.wait.return_value = 1
        popen.return_value.returncode = 1
        with self.assertRaises(KexecError) as cm:
            load_kernel(ENTRY)
        self.assertEqual(cm.exception.cmd, ['kexec', '-u'])
        self.assertEqual(cm.exception.returncode, 1)
        self.assertEqual(popen.call_count, 1)

    @patch('kexecreboot.kexec.subprocess.Popen')
    def test_kexec_missing(self, popen: MagicMock) -> None:
        popen.side_effect = FileNotFoundError()
        with self.assertRaises(KexecNotFound) as cm:
            load_kernel(ENTRY)
        self.assertEqual(cm.exception.command, 'kexec')

    @patch('kexecreboot.kexec.subprocess.Popen')
    def test_reboot(self, popen: MagicMock) -> None:
        popen.return_value.wait.return_value = 0
        reboot()
        popen.assert_called_once_with(['systemctl', 'kexec'])

    @patch('kexecreboot.kexec.subprocess.Popen')
    @patch('sys.stdout', new_callable=io.StringIO)
    def test_pretend(self,
                     sout: io.StringIO,
                     popen: MagicMock
                     ) -> None:
        load_kernel(ENTRY, pretend=True)
        reboot(pretend=True)
        popen.assert_not_called()
        self.assertEqual(sout.getvalue(), '''kexec -u
kexec -l /boot/vmlinuz-2 --initrd=/boot/initrd-2 '--command-line=ro quiet'
systemctl kexec
''')
