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

"""Various utilities for PyIsobar."""

import io
import logging
from typing import Any, BinaryIO  # NOQA pylint: disable=unused-import

from pyisobar import pyisobarexception

logger = logging.getLogger(__name__)

# The most sectors moved by a single read while extracting (64KiB).
DEFAULT_MAX_BATCH = 32

# Logical sectors on a CD are always 2048 bytes; El Torito 'virtual' sectors
# (sector counts in the catalog, partition tables) are 512 bytes.
SECTOR_SIZE = 2048
VIRTUAL_SECTOR_SIZE = 512


def ceiling_div(numer, denom):
    # type: (int, int) -> int
    """
    A function to do ceiling division; that is, dividing numerator by denominator
    and taking the ceiling.

    Parameters:
     numer - The numerator for the division.
     denom - The denominator for the division.
    Returns:
     The ceiling after dividing numerator by denominator.
    """
    # Doing division and then getting the ceiling is tricky; we do upside-down
    # floor division to make this happen.
    # See https://stackoverflow.com/questions/14822184/is-there-a-ceiling-equivalent-of-operator-in-python.
    return -(-numer // denom)


def file_object_supports_binary(fp):
    # type: (BinaryIO) -> bool
    """
    A function to check whether a file-like object supports binary mode.

    Parameters:
     fp - The file-like object to check for binary mode support.
    Returns:
     True if the file-like object supports binary mode, False otherwise.
    """
    if hasattr(fp, 'mode'):
        return 'b' in fp.mode

    return isinstance(fp, (io.RawIOBase, io.BufferedIOBase))


def copy_sectors(source, start_extent, data_length, outfp,
                 max_batch=DEFAULT_MAX_BATCH):
    # type: (Any, int, int, BinaryIO, int) -> int
    """
    A utility function to copy a run of bytes, starting on a sector boundary,
    from a sector source to an output file object.  Reads are whole sectors;
    the padding after the last byte of data in the last sector is not
    written.

    Parameters:
     source - The SectorSource to copy data from.
     start_extent - The sector the data starts at.
     data_length - The number of bytes to copy.
     outfp - The file object to copy data to.
     max_batch - The most sectors to read at once.
    Returns:
     The number of bytes written.
    """
    if max_batch < 1:
        raise pyisobarexception.PyIsobarInvalidInput('The maximum batch must be at least one sector')

    left = data_length
    extent = start_extent
    written = 0
    while left > 0:
        count = min(ceiling_div(left, SECTOR_SIZE), max_batch)
        data = source.read(count, extent)

        chunk = data[:left]
        try:
            num = outfp.write(chunk)
        except OSError as e:
            raise pyisobarexception.PyIsobarWriteError('Write error: %s' % (e)) from e
        # Raw file objects may write less than they are given; buffered ones
        # raise instead, and some file-likes return None.
        if num is not None and num != len(chunk):
            raise pyisobarexception.PyIsobarWriteError('Write error: wrote %d of %d bytes' % (num, len(chunk)))

        logger.debug('Copied %d bytes from sector 0x%x', len(chunk), extent)
        extent += count
        left -= len(chunk)
        written += len(chunk)

    return written
