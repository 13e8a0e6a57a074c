# vim:fileencoding=utf-8
# (c) 2020 Michał Górny <mgorny@gentoo.org>
# Released under the terms of the 2-clause BSD license.

import os
import tempfile
import unittest

from pathlib import Path

from kexecreboot.bootloader import BootEntry, RawEntry
from kexecreboot.bootloader.grub2 import GRUB2
from kexecreboot.config import SystemConfig


UUID = '3b9c2d5e-8f1a-4c6b-9d7e-0a1b2c3d4e5f'

GRUB_CFG = f'''
#
# DO NOT EDIT THIS FILE
#
set default="0"

function load_video {{
  if [ x$feature_all_video_module = xy ]; then
    insmod all_video
  else
    insmod efi_gop
  fi
}}

menuentry 'Ubuntu' --class ubuntu --class gnu-linux $menuentry_id_option 'gnulinux-simple-{UUID}' {{
\trecordfail
\tload_video
\tinsmod ext2
\tif [ x$feature_platform_search_hint = xy ]; then
\t  search --no-floppy --fs-uuid --set=root --hint-bios=hd0,msdos1 {UUID}
\telse
\t  search --no-floppy --fs-uuid --set=root {UUID}
\tfi
\tlinux\t/vmlinuz-2 ro quiet
\tinitrd\t/initrd-2
}}
submenu 'Advanced options for Ubuntu' $menuentry_id_option 'gnulinux-advanced-{UUID}' {{
\tmenuentry "Ubuntu, with Linux 5.4.0-42-generic" --class ubuntu {{
\t\tsearch.fs_uuid {UUID} root
\t\tlinuxefi\t(hd0,gpt2)/vmlinuz-3 root=UUID={UUID} ro\tsplash
\t\tinitrdefi\t/intel-ucode.img /initrd-3
\t}}
\tmenuentry 'No search' {{
\t\tlinux /vmlinuz-4
\t\tinitrd /initrd-4
\t}}
}}
menuentry 'Memory test' {{
\tsearch --no-floppy --fs-uuid --set=root {UUID}
\tlinux16 /memtest86+.bin
}}
menuentry 'Unknown UUID' {{
\tsearch --no-floppy --fs-uuid --set=root 0000-0000
\tlinux /vmlinuz-2
\tinitrd /initrd-2
}}
menuentry 'Missing' {{
\tsearch --no-floppy --fs-uuid --set=root {UUID}
\tlinux /vmlinuz-missing
\tinitrd /initrd-missing
}}
'''


class GRUB2ParseTests(unittest.TestCase):
    def test_raw_entries(self) -> None:
        self.assertEqual(
            list(GRUB2()._get_raw_entries(GRUB_CFG)),
            [RawEntry(name='Ubuntu',
                      root=UUID,
                      kernel='/vmlinuz-2',
                      initrd='/initrd-2',
                      cmdline='ro quiet'),
             RawEntry(name='Ubuntu, with Linux 5.4.0-42-generic',
                      root=UUID,
                      kernel='/vmlinuz-3',
                      initrd='/initrd-3',
                      cmdline=f'root=UUID={UUID} ro\tsplash'),
             RawEntry(name='No search',
                      root=None,
                      kernel='/vmlinuz-4',
                      initrd='/initrd-4',
                      cmdline=''),
             RawEntry(name='Unknown UUID',
                      root='0000-0000',
                      kernel='/vmlinuz-2',
                      initrd='/initrd-2',
                      cmdline=''),
             RawEntry(name='Missing',
                      root=UUID,
                      kernel='/vmlinuz-missing',
                      initrd='/initrd-missing',
                      cmdline=''),
             ])

    def test_search_by_label_ignored(self) -> None:
        self.assertEqual(
            list(GRUB2()._get_raw_entries('''
menuentry 'Label' {
  search --no-floppy --label --set=root BOOT
  linux /vmlinuz
  initrd /initrd
}
''')),
            [RawEntry(name='Label',
                      root=None,
                      kernel='/vmlinuz',
                      initrd='/initrd',
                      cmdline='')])

    def test_unquoted_name(self) -> None:
        self.assertEqual(
            [x.name for x in GRUB2()._get_raw_entries('''
menuentry Gentoo {
  linux /vmlinuz
  initrd /initrd
}
''')],
            ['Gentoo'])

    def test_one_line_entry(self) -> None:
        self.assertEqual(
            list(GRUB2()._get_raw_entries('''
menuentry 'One' { search --fs-uuid --set=root abcd ; linux /vmlinuz-1 ; initrd /initrd-1 ; }
menuentry 'Two' {
  search --fs-uuid --set=root ef01
  linux /vmlinuz-2
  initrd /initrd-2
}
''')),
            [RawEntry(name='One',
                      root='abcd',
                      kernel='/vmlinuz-1',
                      initrd='/initrd-1',
                      cmdline=''),
             RawEntry(name='Two',
                      root='ef01',
                      kernel='/vmlinuz-2',
                      initrd='/initrd-2',
                      cmdline=''),
             ])

    def test_braces_in_words(self) -> None:
        self.assertEqual(
            list(GRUB2()._get_raw_entries('''
menuentry 'Odd {name}' {
  linux /vmlinuz ro ${extra_cmdline}
  initrd /initrd
}
''')),
            [RawEntry(name='Odd {name}',
                      root=None,
                      kernel='/vmlinuz',
                      initrd='/initrd',
                      cmdline='ro ${extra_cmdline}')])

    def test_unterminated_entry_dropped(self) -> None:
        self.assertEqual(
            [x.name for x in GRUB2()._get_raw_entries('''
menuentry 'Broken' {
  linux /vmlinuz-1
  initrd /initrd-1
menuentry 'Next' {
  linux /vmlinuz-2
  initrd /initrd-2
}
''')],
            ['Next'])

    def test_initramfs_after_microcode(self) -> None:
        raw = list(GRUB2()._get_raw_entries('''
menuentry 'Arch Linux' {
  linux /vmlinuz-linux root=UUID=abcd rw
  initrd /intel-ucode.img /amd-ucode.img /initramfs-linux.img
}
'''))
        self.assertEqual([x.initrd for x in raw], ['/initramfs-linux.img'])


class GRUB2ResolveTests(unittest.TestCase):
    def setUp(self) -> None:
        self.td = tempfile.TemporaryDirectory()
        self.path = Path(self.td.name).resolve()
        os.makedirs(self.path / 'dev/disk/by-uuid')
        os.makedirs(self.path / 'boot')
        with open(self.path / 'dev/sda1', 'w'):
            pass
        os.symlink('../../sda1', self.path / 'dev/disk/by-uuid' / UUID)
        with open(self.path / 'mounts', 'w') as f:
            f.write('rootfs / rootfs rw 0 0\n'
                    f'{self.path}/dev/sda1 {self.path}/boot ext4 rw 0 0\n')
        for fn in ('vmlinuz-2', 'initrd-2', 'vmlinuz-3', 'initrd-3'):
            with open(self.path / 'boot' / fn, 'w'):
                pass
        self.config = SystemConfig(
            mounts=str(self.path / 'mounts'),
            uuid_dir=str(self.path / 'dev/disk/by-uuid'))

    def tearDown(self) -> None:
        self.td.cleanup()

    def test_parse(self) -> None:
        self.assertEqual(
            GRUB2(self.config).parse(GRUB_CFG),
            [BootEntry(name='Ubuntu',
                       kernel=f'{self.path}/boot/vmlinuz-2',
                       initrd=f'{self.path}/boot/initrd-2',
                       cmdline='ro quiet'),
             BootEntry(name='Ubuntu, with Linux 5.4.0-42-generic',
                       kernel=f'{self.path}/boot/vmlinuz-3',
                       initrd=f'{self.path}/boot/initrd-3',
                       cmdline=f'root=UUID={UUID} ro\tsplash'),
             ])

    def test_missing_file_does_not_affect_others(self) -> None:
        os.unlink(self.path / 'boot/vmlinuz-2')
        self.assertEqual(
            [e.name for e in GRUB2(self.config).parse(GRUB_CFG)],
            ['Ubuntu, with Linux 5.4.0-42-generic'])

    def test_not_mounted(self) -> None:
        with open(self.path / 'mounts', 'w') as f:
            f.write('/dev/sdz2 / ext4 rw 0 0\n')
        self.assertEqual(GRUB2(self.config).parse(GRUB_CFG), [])

    def test_mounts_unreadable(self) -> None:
        os.unlink(self.path / 'mounts')
        self.assertEqual(GRUB2(self.config).parse(GRUB_CFG), [])
