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

"""Main class for PyIsobar."""

import logging
from typing import BinaryIO, List, Optional, Tuple  # NOQA pylint: disable=unused-import

from pyisobar import bootimage
from pyisobar import eltorito
from pyisobar import pyisobarexception
from pyisobar import sectorsource
from pyisobar import utils

logger = logging.getLogger(__name__)


class PyIsobar(object):
    """
    The main class for pulling the boot image out of a bootable CD or ISO.

    Using it is a three-step affair: open() finds and decodes the El Torito
    Boot Catalog, resolve() works out where the boot image is and how long it
    is, and extract() copies it out.  Everything learned about the current
    disc lives on this object and is forgotten by close().
    """
    __slots__ = ('_initialized', '_source', '_managing_source', 'catalog',
                 'boot_image')

    def __init__(self):
        # type: () -> None
        self._initialize()

    def _initialize(self):
        # type: () -> None
        """
        An internal method to re-initialize the object.  Called from
        both __init__ and close.

        Parameters:
         None.
        Returns:
         Nothing.
        """
        self._source = None  # type: Optional[sectorsource.SectorSource]
        self._managing_source = False
        self.catalog = None  # type: Optional[eltorito.EltoritoBootCatalog]
        self.boot_image = None  # type: Optional[bootimage.ResolvedBootImage]
        self._initialized = False

    def _open_source(self, source):
        # type: (sectorsource.SectorSource) -> None
        """
        An internal method to find and parse the Boot Catalog on a source.

        Parameters:
         source - The SectorSource to read from.
        Returns:
         Nothing.
        """
        extent = eltorito.locate_boot_catalog(source)
        self.catalog = eltorito.parse_boot_catalog(source, extent)
        self._source = source
        self._initialized = True

    def open(self, target):
        # type: (str) -> None
        """
        Open up a bootable CD image, block device, or Windows CD drive and
        parse its El Torito Boot Catalog.

        Parameters:
         target - The image file, device, or drive to open.
        Returns:
         Nothing.
        """
        if self._initialized:
            raise pyisobarexception.PyIsobarInvalidInput('This object already has a disc; either close it or create a new object')

        source = sectorsource.open_source(target)
        try:
            self._open_source(source)
        except Exception:
            source.close()
            self._initialize()
            raise
        self._managing_source = True

    def open_fp(self, fp):
        # type: (BinaryIO) -> None
        """
        Open up a bootable CD image from a file object and parse its El Torito
        Boot Catalog.  The file object must stay open until this object is
        closed.

        Parameters:
         fp - The binary file object containing the image.
        Returns:
         Nothing.
        """
        if self._initialized:
            raise pyisobarexception.PyIsobarInvalidInput('This object already has a disc; either close it or create a new object')

        self._open_source(sectorsource.FileSectorSource(fp))

    def open_source(self, source):
        # type: (sectorsource.SectorSource) -> None
        """
        Parse the El Torito Boot Catalog from an already open SectorSource.
        The source stays owned by the caller.

        Parameters:
         source - The SectorSource to read from.
        Returns:
         Nothing.
        """
        if self._initialized:
            raise pyisobarexception.PyIsobarInvalidInput('This object already has a disc; either close it or create a new object')

        self._open_source(source)

    def resolve(self, strip_mbr=False):
        # type: (bool) -> bootimage.ResolvedBootImage
        """
        Work out where the boot image starts and how long it is.  This may
        read the first sector of the boot image (and, when stripping the MBR,
        the first sector of its partition).

        Parameters:
         strip_mbr - For a hard disk image, resolve just the first partition
                     instead of the whole disk, MBR included.
        Returns:
         The ResolvedBootImage, which is also kept as self.boot_image.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This object is not initialized; call open() first')

        self.boot_image = bootimage.resolve_boot_image(self._source,
                                                       self.catalog.initial_entry,
                                                       strip_mbr)
        return self.boot_image

    def extract_fp(self, outfp, max_batch=utils.DEFAULT_MAX_BATCH):
        # type: (BinaryIO, int) -> int
        """
        Write the resolved boot image out to a file object.

        Parameters:
         outfp - The binary file object to write the boot image to.
         max_batch - The most sectors to read from the disc at once.
        Returns:
         The number of bytes written.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This object is not initialized; call open() first')
        if self.boot_image is None:
            raise pyisobarexception.PyIsobarInternalError('The boot image has not been resolved; call resolve() first')
        if not utils.file_object_supports_binary(outfp):
            raise pyisobarexception.PyIsobarInvalidInput("The file to write to must be in binary mode (add 'b' to the open flags)")

        return utils.copy_sectors(self._source, self.boot_image.start_extent,
                                  self.boot_image.length, outfp, max_batch)

    def extract(self, local_path, max_batch=utils.DEFAULT_MAX_BATCH):
        # type: (str, int) -> int
        """
        Write the resolved boot image out to a local file, creating or
        truncating it.  If the copy fails part way the file is left as it is.

        Parameters:
         local_path - The file to write the boot image to.
         max_batch - The most sectors to read from the disc at once.
        Returns:
         The number of bytes written.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This object is not initialized; call open() first')
        if self.boot_image is None:
            raise pyisobarexception.PyIsobarInternalError('The boot image has not been resolved; call resolve() first')

        try:
            outfp = open(local_path, 'wb')  # pylint: disable=consider-using-with
        except OSError as e:
            raise pyisobarexception.PyIsobarSinkCreateError('Cannot create %s' % (local_path)) from e

        with outfp:
            written = self.extract_fp(outfp, max_batch)
            try:
                outfp.flush()
            except OSError as e:
                raise pyisobarexception.PyIsobarWriteError('Write error: %s' % (e)) from e

        logger.debug('Wrote %d bytes to %s', written, local_path)
        return written

    def report(self):
        # type: () -> List[Tuple[str, str]]
        """
        Describe the boot catalog (and, once resolved, the boot image) the
        same way the isobar tool always has.

        Parameters:
         None.
        Returns:
         A list of (label, text) tuples, in display order.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('This object is not initialized; call open() first')

        val = self.catalog.validation_entry
        entry = self.catalog.initial_entry

        manufacturer = val.manufacturer()
        if manufacturer is None:
            manufacturer = 'not recorded'

        out = [
            ('Catalog Sector', '%x' % (self.catalog.extent)),
            ('Platform', '%s (%02x)' % (val.platform_name(), val.platform_id)),
            ('ID String', manufacturer),
            ('Bootable', '%s (%02x)' % ('yes' if entry.bootable() else 'no', entry.boot_indicator)),
            ('Boot Type', '%s (%02x)' % (entry.media_name(), entry.boot_media_type)),
            ('Load Segment', '%04x' % (entry.effective_load_segment())),
            ('System Type', '%02x' % (entry.system_type)),
            ('Sector Count', '%02x (%d)' % (entry.sector_count, entry.sector_count)),
            ('Image Sector', '%x' % (entry.load_rba)),
        ]
        if self.boot_image is not None:
            out.append(('Image Size', '%d bytes' % (self.boot_image.length)))

        return out

    def close(self):
        # type: () -> None
        """
        Close the PyIsobar object, and re-initialize the object to the
        defaults.  The object can then be re-used for another disc.

        Parameters:
         None.
        Returns:
         Nothing.
        """
        if not self._initialized:
            raise pyisobarexception.PyIsobarInvalidInput('This object is not initialized; call open() first')

        if self._managing_source:
            self._source.close()

        self._initialize()
