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

"""
Working out how big the boot image really is.

The sector count in the catalog is only the number of virtual sectors the BIOS
loads at boot time; for emulated floppies and hard disks that is usually 1.
The real size has to come from the boot image itself: a floppy image starts
with a BIOS Parameter Block, and a hard disk image starts with an MBR whose
first partition entry gives the size.  Each of those is a 'size hint' below,
and exactly one of them is chosen for any given catalog entry.
"""

import logging
import struct
from typing import Tuple  # NOQA pylint: disable=unused-import

from pyisobar import eltorito
from pyisobar import pyisobarexception
from pyisobar import utils

logger = logging.getLogger(__name__)


class CatalogSizeHint(object):
    """
    The size hint for a no emulation image; the catalog sector count is the
    real size, in 512-byte virtual sectors.
    """
    __slots__ = ('sector_count',)

    def __init__(self, sector_count):
        # type: (int) -> None
        self.sector_count = sector_count

    def geometry(self):
        # type: () -> Tuple[int, int]
        """
        Get the block size and block count of the image.

        Parameters:
         None.
        Returns:
         A tuple of (block size, block count).
        """
        return utils.VIRTUAL_SECTOR_SIZE, self.sector_count


class MasterBootRecord(object):
    """
    The first sector of an emulated hard disk.  Only the start and size of the
    first partition entry are used.
    """
    __slots__ = ('_initialized', 'partition_start', 'partition_sectors')

    # The first partition entry is at 0x1BE; its LBA of first sector is at
    # 0x1C6 and its number of sectors at 0x1CA, both in 512-byte sectors.
    PARTITION_OFFSET = 0x1c6
    FMT = '<LL'

    def __init__(self):
        # type: () -> None
        self._initialized = False

    def parse(self, probe):
        # type: (bytes) -> None
        """
        Parse the partition fields out of the first sector of the image.

        Parameters:
         probe - The first sector of the boot image.
        Returns:
         Nothing.
        """
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This MasterBootRecord object is already initialized')

        (self.partition_start,
         self.partition_sectors) = struct.unpack_from(self.FMT, probe,
                                                      self.PARTITION_OFFSET)

        self._initialized = True

    def partition_extent_offset(self):
        # type: () -> int
        """
        Get the offset of the first partition from the start of the image, in
        CD sectors.

        Parameters:
         None.
        Returns:
         The partition offset in 2048-byte sectors.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This MasterBootRecord object is not initialized')

        return self.partition_start >> 2

    def geometry(self):
        # type: () -> Tuple[int, int]
        """
        Get the block size and block count of the image.

        Parameters:
         None.
        Returns:
         A tuple of (block size, block count).
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This MasterBootRecord object is not initialized')

        return utils.VIRTUAL_SECTOR_SIZE, self.partition_sectors


class BiosParameterBlock(object):
    """The BIOS Parameter Block at the start of a FAT boot sector."""
    __slots__ = ('_initialized', 'bytes_per_sector', 'total_sectors',
                 'large_sector_count')

    # Offset 11-12: Bytes per logical sector
    # Offset 19-20: Total logical sectors (0 if it doesn't fit in 16 bits)
    # Offset 32-35: Large total logical sectors
    BYTES_PER_SECTOR_OFFSET = 11
    TOTAL_SECTORS_OFFSET = 19
    LARGE_SECTOR_COUNT_OFFSET = 32

    def __init__(self):
        # type: () -> None
        self._initialized = False

    def parse(self, probe):
        # type: (bytes) -> None
        """
        Parse the BIOS Parameter Block out of a boot sector.  Nothing about
        the sector is validated; a boot image that isn't really a FAT volume
        just gives a meaningless size.

        Parameters:
         probe - The boot sector.
        Returns:
         Nothing.
        """
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This BiosParameterBlock object is already initialized')

        self.bytes_per_sector, = struct.unpack_from('<H', probe, self.BYTES_PER_SECTOR_OFFSET)
        self.total_sectors, = struct.unpack_from('<H', probe, self.TOTAL_SECTORS_OFFSET)
        self.large_sector_count, = struct.unpack_from('<L', probe, self.LARGE_SECTOR_COUNT_OFFSET)

        self._initialized = True

    def geometry(self):
        # type: () -> Tuple[int, int]
        """
        Get the block size and block count of the volume.

        Parameters:
         None.
        Returns:
         A tuple of (block size, block count).
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This BiosParameterBlock object is not initialized')

        if self.total_sectors == 0:
            return self.bytes_per_sector, self.large_sector_count
        return self.bytes_per_sector, self.total_sectors


class ResolvedBootImage(object):
    """
    Where the boot image starts and how long it is.  The length is fixed when
    the object is created.
    """
    __slots__ = ('start_extent', 'block_size', 'sector_count', 'length')

    def __init__(self, start_extent, block_size, sector_count):
        # type: (int, int, int) -> None
        self.start_extent = start_extent
        self.block_size = block_size
        self.sector_count = sector_count
        self.length = sector_count * block_size

    def __repr__(self):
        return 'ResolvedBootImage(start_extent=0x%x, block_size=%d, sector_count=%d, length=%d)' % (self.start_extent, self.block_size, self.sector_count, self.length)


def select_size_hint(source, entry, strip_mbr=False):
    """
    A function to pick, and read if necessary, the structure that gives the
    size of the boot image described by an El Torito entry.

    Parameters:
     source - The SectorSource to read from.
     entry - The parsed EltoritoEntry.
     strip_mbr - For hard disk emulation, skip past the MBR to the first
                 partition.
    Returns:
     A tuple of (size hint, start extent of the image).
    """
    start = entry.load_rba
    media = entry.media_type()

    if media == eltorito.MEDIA_NO_EMUL:
        logger.debug('No emulation; using the catalog sector count')
        return CatalogSizeHint(entry.sector_count), start

    probe = source.read(1, start)

    if media == eltorito.MEDIA_HD_EMUL:
        mbr = MasterBootRecord()
        mbr.parse(probe)
        if not strip_mbr:
            logger.debug('Hard disk emulation; using the partition table')
            return mbr, start

        start += mbr.partition_extent_offset()
        logger.debug('Hard disk emulation; stripping the MBR, partition is at 0x%x', start)
        probe = source.read(1, start)

    # Floppies, stripped hard disks, and media types we don't know about all
    # start with a boot sector.
    logger.debug('Using the BIOS Parameter Block at 0x%x', start)
    bpb = BiosParameterBlock()
    bpb.parse(probe)
    return bpb, start


def resolve_boot_image(source, entry, strip_mbr=False):
    """
    A function to work out where the boot image starts and how many bytes long
    it is.

    Parameters:
     source - The SectorSource to read from.
     entry - The parsed EltoritoEntry.
     strip_mbr - For hard disk emulation, resolve just the first partition
                 rather than the whole disk.
    Returns:
     A ResolvedBootImage.
    """
    hint, start = select_size_hint(source, entry, strip_mbr)
    block_size, sector_count = hint.geometry()
    image = ResolvedBootImage(start, block_size, sector_count)
    logger.debug('Resolved %r', image)
    return image
