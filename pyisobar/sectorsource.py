# Copyright (C) 2015-2020  Chris Lalancette <clalancette@gmail.com>

# This library is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation;
# version 2.1 of the License.

# This library is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.

# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301  USA

"""Sector-addressable sources (image files and CD-ROM devices)."""

import logging
import os
import stat
import sys
from typing import BinaryIO, Optional  # NOQA pylint: disable=unused-import

from pyisobar import pyisobarexception
from pyisobar import utils

win32_has_pywin32 = False
if sys.platform == 'win32':
    try:
        import win32api  # pylint: disable=import-error
        import win32con  # pylint: disable=import-error
        import win32file  # pylint: disable=import-error
        import winioctlcon  # pylint: disable=import-error
        win32_has_pywin32 = True
    except ImportError:
        pass

logger = logging.getLogger(__name__)

# Conventional device nodes for the first CD-ROM drive on POSIX systems.
POSIX_CDROM_DEVICES = ('/dev/cdrom', '/dev/sr0')


class SectorSource(object):
    """
    The base class for everything that can be read a whole number of 2048-byte
    sectors at a time.  Subclasses implement _read(), which takes a byte length
    and a byte offset; read() takes care of the sector arithmetic and turns a
    short read into a PyIsobarReadError.
    """
    __slots__ = ('name',)

    def __init__(self, name):
        # type: (str) -> None
        self.name = name

    def __enter__(self):
        return self

    def __exit__(self, *_, **__):
        self.close()

    def _read(self, length, offset):
        # type: (int, int) -> bytes
        raise NotImplementedError('_read')

    def read(self, sector_count, start_sector):
        # type: (int, int) -> bytes
        """
        Read a number of contiguous sectors from the source.

        Parameters:
         sector_count - The number of sectors to read; must be at least 1.
         start_sector - The logical block address of the first sector.
        Returns:
         Exactly sector_count * 2048 bytes.
        """
        if sector_count < 1:
            raise pyisobarexception.PyIsobarInternalError('Must read at least one sector')

        logger.debug('Reading %d sector(s) at LBA 0x%x from %s',
                     sector_count, start_sector, self.name)

        length = sector_count * utils.SECTOR_SIZE
        try:
            data = self._read(length, start_sector * utils.SECTOR_SIZE)
        except OSError as e:
            raise pyisobarexception.PyIsobarReadError('Read error at sector 0x%x: %s' % (start_sector, e)) from e

        if len(data) != length:
            raise pyisobarexception.PyIsobarReadError('Read error at sector 0x%x: wanted %d bytes, got %d' % (start_sector, length, len(data)))

        return data

    def close(self):
        # type: () -> None
        """
        Release the underlying file or device.

        Parameters:
         None.
        Returns:
         Nothing.
        """
        raise NotImplementedError('close')


class FileSectorSource(SectorSource):
    """
    A sector source backed by a binary file object, where logical sector N
    starts at byte N * 2048.  The end of the previous read is remembered so
    that sequential reads don't seek.
    """
    __slots__ = ('_fp', '_pos', '_managing_fp')

    def __init__(self, fp, name=None, managing_fp=False):
        # type: (BinaryIO, Optional[str], bool) -> None
        if not utils.file_object_supports_binary(fp):
            raise pyisobarexception.PyIsobarInvalidInput("The file to open must be in binary mode (add 'b' to the open flags)")

        if name is None:
            name = getattr(fp, 'name', '<file>')
        super(FileSectorSource, self).__init__(str(name))
        self._fp = fp
        # Unknown until the first read, so that read always seeks.
        self._pos = None  # type: Optional[int]
        self._managing_fp = managing_fp

    def _read(self, length, offset):
        # type: (int, int) -> bytes
        if offset != self._pos:
            self._fp.seek(offset)
        data = self._fp.read(length)
        self._pos = offset + len(data)
        return data

    def close(self):
        # type: () -> None
        if self._managing_fp:
            self._fp.close()


class PosixDeviceSectorSource(SectorSource):
    """
    A sector source backed by a POSIX block device (e.g. /dev/sr0).  Each read
    is a single positioned read, so there is no file position to track.
    """
    __slots__ = ('_fd',)

    def __init__(self, path):
        # type: (str) -> None
        super(PosixDeviceSectorSource, self).__init__(path)
        self._fd = os.open(path, os.O_RDONLY)

    def _read(self, length, offset):
        # type: (int, int) -> bytes
        return os.pread(self._fd, length, offset)

    def close(self):
        # type: () -> None
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1


class Win32DeviceSectorSource(SectorSource):
    """
    A sector source backed by a raw Windows CD-ROM device (e.g. \\\\.\\D:).
    Raw devices only allow sector-aligned seeks and reads; since every
    request here is a whole number of 2048-byte sectors, that always holds.
    """
    __slots__ = ('_handle', '_pos')

    def __init__(self, target):
        # type: (str) -> None
        if not win32_has_pywin32:  # type: ignore
            raise pyisobarexception.PyIsobarInvalidInput("The 'pywin32' module is missing, which is needed to access raw devices on Windows")

        super(Win32DeviceSectorSource, self).__init__(win32_device_target(target))
        self._pos = None  # type: Optional[int]
        self._handle = None
        self._check_cdrom()
        self._handle = self._get_handle()

    def _check_cdrom(self):
        # type: () -> None
        """Make sure the drive named by the UNC target is a CD-ROM drive."""
        letter = self.name[4]
        if win32file.GetDriveType('%s:\\' % (letter)) != win32file.DRIVE_CDROM:  # type: ignore
            raise pyisobarexception.PyIsobarNotElTorito('%s: is not a CD-ROM drive' % (letter))

    def _get_handle(self):
        # type: () -> int
        """Get a direct handle to the raw UNC target, and unlock its IO capabilities."""
        try:
            handle = win32file.CreateFile(  # type: ignore
                self.name,
                win32con.GENERIC_READ,  # type: ignore
                win32con.FILE_SHARE_READ | win32con.FILE_SHARE_WRITE,  # type: ignore
                None,  # security attributes
                win32con.OPEN_EXISTING,  # type: ignore
                win32con.FILE_FLAG_SEQUENTIAL_SCAN,  # type: ignore
                None  # template file
            )
        except win32file.error as e:  # type: ignore
            raise pyisobarexception.PyIsobarNotElTorito('Cannot open %s' % (self.name)) from e

        try:
            # Without this the last few sectors of the disc are not readable.
            win32file.DeviceIoControl(handle, winioctlcon.FSCTL_ALLOW_EXTENDED_DASD_IO, None, None)  # type: ignore
        except win32file.error as e:  # type: ignore
            win32file.CloseHandle(handle)  # type: ignore
            raise pyisobarexception.PyIsobarNotElTorito('Cannot open %s' % (self.name)) from e

        return handle

    def _read(self, length, offset):
        # type: (int, int) -> bytes
        try:
            if offset != self._pos:
                win32file.SetFilePointer(self._handle, offset, win32file.FILE_BEGIN)  # type: ignore
            res, data = win32file.ReadFile(self._handle, length, None)  # type: ignore
        except win32file.error as e:  # type: ignore
            # read() reports OSErrors as PyIsobarReadError.
            self._pos = None
            raise OSError(e.winerror, e.strerror) from e
        if res != 0:
            raise OSError(res, 'ReadFile failed')
        self._pos = offset + len(data)
        return bytes(data)

    def close(self):
        # type: () -> None
        if self._handle is not None:
            win32file.CloseHandle(self._handle)  # type: ignore
            self._handle = None


def is_win32_drive(target):
    # type: (str) -> bool
    """
    A function to determine whether a target names a Windows drive rather
    than a file; 'd', 'D:' and '\\\\.\\D:' all qualify.

    Parameters:
     target - The target name to check.
    Returns:
     True if the target is a drive, False otherwise.
    """
    if target.startswith('\\\\.\\'):
        return True
    return len(target) == 1 or (len(target) == 2 and target[1] == ':')


def win32_device_target(target):
    # type: (str) -> str
    """
    Get the UNC device name for a Windows drive target.

    Parameters:
     target - A drive letter, 'D:' or an already-qualified '\\\\.\\D:'.
    Returns:
     The '\\\\.\\D:' form of the target.
    """
    if target.startswith('\\\\.\\'):
        return target
    return '\\\\.\\%s:' % (target[0].upper())


def find_cdrom():
    # type: () -> Optional[str]
    """
    A function to find the first CD-ROM drive on this machine.

    Parameters:
     None.
    Returns:
     The name of the first CD-ROM drive, or None if there isn't one.
    """
    if sys.platform == 'win32':
        if not win32_has_pywin32:  # type: ignore
            return None
        for drive in win32api.GetLogicalDriveStrings().split('\x00'):  # type: ignore
            if drive and win32file.GetDriveType(drive) == win32file.DRIVE_CDROM:  # type: ignore
                return drive[:2]
        return None

    for path in POSIX_CDROM_DEVICES:
        if os.path.exists(path):
            return path
    return None


def open_source(target):
    # type: (str) -> SectorSource
    """
    A function to open the right kind of sector source for a target.  Raw
    Windows drives and POSIX block devices get a device source, and anything
    else is opened as an image file.

    Parameters:
     target - The image file, block device, or drive to open.
    Returns:
     An open SectorSource; the caller is responsible for closing it.
    """
    if sys.platform == 'win32' and is_win32_drive(target):
        return Win32DeviceSectorSource(target)

    try:
        st = os.stat(target)
        if stat.S_ISBLK(st.st_mode):
            return PosixDeviceSectorSource(target)
        fp = open(target, 'rb')  # pylint: disable=consider-using-with
    except OSError as e:
        raise pyisobarexception.PyIsobarNotElTorito('Cannot open %s' % (target)) from e

    return FileSectorSource(fp, target, managing_fp=True)
