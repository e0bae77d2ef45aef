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

'''
Classes to find and decode the El Torito Boot Catalog.
'''

import logging
import struct

from pyisobar import pyisobarexception

logger = logging.getLogger(__name__)

# According to the El Torito specification, section 2.0, the Boot Record
# Volume Descriptor is always at extent 17.
BOOT_RECORD_EXTENT = 0x11

# The standard identifier, the descriptor version, and the boot system
# identifier, run together the way they appear starting at byte 1.
EL_TORITO_SIGNATURE = b'CD001\x01EL TORITO SPECIFICATION'

# A load segment of 0 means the traditional BIOS segment.
DEFAULT_LOAD_SEGMENT = 0x7c0

PLATFORM_X86 = 0
PLATFORM_PPC = 1
PLATFORM_MAC = 2

PLATFORM_NAMES = {
    PLATFORM_X86: 'x86',
    PLATFORM_PPC: 'PowerPC',
    PLATFORM_MAC: 'Mac',
}

MEDIA_NO_EMUL = 0
MEDIA_12FLOPPY = 1
MEDIA_144FLOPPY = 2
MEDIA_288FLOPPY = 3
MEDIA_HD_EMUL = 4

MEDIA_NAMES = {
    MEDIA_NO_EMUL: 'no emulation',
    MEDIA_12FLOPPY: '1.2M floppy',
    MEDIA_144FLOPPY: '1.44M floppy',
    MEDIA_288FLOPPY: '2.88M floppy',
    MEDIA_HD_EMUL: 'hard disk',
}

UNKNOWN = 'unknown'


class EltoritoBootRecord(object):
    '''
    A class that represents the El Torito Boot Record Volume Descriptor.  The
    only thing we need out of it is the extent of the Boot Catalog.
    '''
    __slots__ = ('_initialized', 'catalog_extent')

    # A Boot Record Volume Descriptor consists of:
    # Offset 0x0:       Boot Record Indicator (0)
    # Offset 0x1-0x5:   ISO-9660 Identifier ('CD001')
    # Offset 0x6:       Version of this descriptor (1)
    # Offset 0x7-0x26:  Boot System Identifier ('EL TORITO SPECIFICATION'
    #                   padded with zeros)
    # Offset 0x27-0x46: Unused, must be 0
    # Offset 0x47-0x4a: Absolute pointer to the first sector of the Boot Catalog
    FMT = '<B30s40sL'

    def __init__(self):
        self._initialized = False

    def parse(self, vd):
        '''
        A method to parse an El Torito Boot Record out of a string.

        Parameters:
         vd - The 2048-byte sector to parse the Boot Record out of.
        Returns:
         Nothing.
        '''
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Boot Record already initialized')

        (descriptor_type_unused, ident, unused,
         self.catalog_extent) = struct.unpack_from(self.FMT, vd, 0)

        # The identifier has to match exactly, including the zero byte that
        # terminates it; the descriptor type byte is not checked.
        if ident != EL_TORITO_SIGNATURE + b'\x00':
            raise pyisobarexception.PyIsobarNotElTorito('Boot Record does not carry the El Torito signature')

        self._initialized = True


class EltoritoValidationEntry(object):
    '''
    A class that represents an El Torito Validation Entry.  El Torito requires
    that the first entry in the El Torito Boot Catalog be a validation entry.
    '''
    __slots__ = ('_initialized', 'header_id', 'platform_id', 'id_string',
                 'checksum')

    # An El Torito validation entry consists of:
    # Offset 0x0:       Header ID (0x1)
    # Offset 0x1:       Platform ID (0 for x86, 1 for PPC, 2 for Mac)
    # Offset 0x2-0x3:   Reserved, must be 0
    # Offset 0x4-0x1b:  ID String for manufacturer of CD
    # Offset 0x1c-0x1d: Checksum of all bytes.
    # Offset 0x1e:      Key byte 0x55
    # Offset 0x1f:      Key byte 0xaa
    FMT = '<BBH24sHBB'

    def __init__(self):
        self._initialized = False

    def parse(self, valstr):
        '''
        A method to parse an El Torito Validation Entry out of a string.  Only
        the key bytes are verified; the checksum is kept but not checked, and
        an unknown platform is not an error.

        Parameters:
         valstr - The string to parse the El Torito Validation Entry out of.
        Returns:
         Nothing.
        '''
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Validation Entry already initialized')

        (self.header_id, self.platform_id, reserved_unused, self.id_string,
         self.checksum, keybyte1,
         keybyte2) = struct.unpack_from(self.FMT, valstr, 0)

        if keybyte1 != 0x55 or keybyte2 != 0xaa:
            raise pyisobarexception.PyIsobarInvalidCatalog('El Torito Validation entry key bytes not 0x55, 0xaa')

        self._initialized = True

    def platform_name(self):
        '''
        A method to get the name of the platform this catalog is for.

        Parameters:
         None.
        Returns:
         One of 'x86', 'PowerPC', 'Mac', or 'unknown'.
        '''
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Validation Entry not initialized')

        return PLATFORM_NAMES.get(self.platform_id, UNKNOWN)

    def manufacturer(self):
        '''
        A method to get the manufacturer ID string.

        Parameters:
         None.
        Returns:
         The ID string up to the first zero byte, or None if it was not
         recorded.
        '''
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Validation Entry not initialized')

        if self.id_string[0] == 0:
            return None
        return self.id_string.split(b'\x00', 1)[0].decode('ascii', 'replace')


class EltoritoEntry(object):
    '''
    A class that represents the El Torito Initial/Default Entry.
    '''
    __slots__ = ('_initialized', 'boot_indicator', 'boot_media_type',
                 'load_segment', 'system_type', 'sector_count', 'load_rba')

    # An El Torito entry consists of:
    # Offset 0x0:      Boot indicator (0x88 for bootable, 0x00 for
    #                  non-bootable)
    # Offset 0x1:      Boot media type.  The low nibble is one of 0x0 for no
    #                  emulation, 0x1 for 1.2M diskette emulation, 0x2 for
    #                  1.44M diskette emulation, 0x3 for 2.88M diskette
    #                  emulation, or 0x4 for Hard Disk emulation.
    # Offset 0x2-0x3:  Load Segment - if 0, use traditional 0x7C0.
    # Offset 0x4:      System Type - copy of Partition Table byte 5
    # Offset 0x5:      Unused
    # Offset 0x6-0x7:  Sector Count - Number of virtual sectors to store
    #                  during initial boot.
    # Offset 0x8-0xb:  Load RBA - Start address of virtual disk.
    # Offset 0xc-0x1f: Unused
    FMT = '<BBHBBHL20s'

    BOOTABLE = 0x88

    def __init__(self):
        self._initialized = False

    def parse(self, valstr):
        '''
        A method to parse an El Torito Entry out of a string.  Values that
        can't be classified (a boot indicator other than 0x88, a media type
        above 4) are kept as-is rather than rejected.

        Parameters:
         valstr - The string to parse the El Torito Entry out of.
        Returns:
         Nothing.
        '''
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Entry already initialized')

        (self.boot_indicator, self.boot_media_type, self.load_segment,
         self.system_type, unused1, self.sector_count, self.load_rba,
         unused2) = struct.unpack_from(self.FMT, valstr, 0)

        self._initialized = True

    def _check_initialized(self):
        if not self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Entry not initialized')

    def bootable(self):
        '''
        A method to determine whether this entry is marked bootable.

        Parameters:
         None.
        Returns:
         True if the boot indicator is 0x88, False otherwise.
        '''
        self._check_initialized()
        return self.boot_indicator == self.BOOTABLE

    def media_type(self):
        '''
        A method to get the emulation type of this entry; only the low nibble
        of the media byte counts.

        Parameters:
         None.
        Returns:
         The emulation type as an integer between 0 and 15.
        '''
        self._check_initialized()
        return self.boot_media_type & 0xf

    def media_name(self):
        '''
        A method to get the name of the emulation type of this entry.

        Parameters:
         None.
        Returns:
         The emulation name, or 'unknown' for types above 4.
        '''
        return MEDIA_NAMES.get(self.media_type(), UNKNOWN)

    def effective_load_segment(self):
        '''
        A method to get the segment the BIOS will load this image at.

        Parameters:
         None.
        Returns:
         The load segment, with 0 replaced by the traditional 0x7C0.
        '''
        self._check_initialized()
        if self.load_segment == 0:
            return DEFAULT_LOAD_SEGMENT
        return self.load_segment


class EltoritoBootCatalog(object):
    '''
    A class that represents an El Torito Boot Catalog.  Only the validation
    entry and the initial/default entry are decoded; any section entries
    after them are ignored.
    '''
    __slots__ = ('_initialized', 'extent', 'validation_entry', 'initial_entry')

    def __init__(self, extent):
        self._initialized = False
        self.extent = extent
        self.validation_entry = EltoritoValidationEntry()
        self.initial_entry = EltoritoEntry()

    def parse(self, sector):
        '''
        A method to parse an El Torito Boot Catalog out of its sector.

        Parameters:
         sector - The sector holding the Boot Catalog.
        Returns:
         Nothing.
        '''
        if self._initialized:
            raise pyisobarexception.PyIsobarInternalError('El Torito Boot Catalog already initialized')

        self.validation_entry.parse(sector[:32])
        self.initial_entry.parse(sector[32:64])

        self._initialized = True


def locate_boot_catalog(source):
    '''
    A function to read the Boot Record Volume Descriptor and find out where the
    Boot Catalog lives.

    Parameters:
     source - The SectorSource to read from.
    Returns:
     The extent of the Boot Catalog.
    '''
    try:
        vd = source.read(1, BOOT_RECORD_EXTENT)
    except pyisobarexception.PyIsobarReadError as e:
        raise pyisobarexception.PyIsobarNotElTorito('%s is not EL TORITO' % (source.name)) from e

    br = EltoritoBootRecord()
    try:
        br.parse(vd)
    except pyisobarexception.PyIsobarNotElTorito as e:
        raise pyisobarexception.PyIsobarNotElTorito('%s is not EL TORITO' % (source.name)) from e

    logger.debug('Boot Catalog is at sector 0x%x', br.catalog_extent)
    return br.catalog_extent


def parse_boot_catalog(source, extent):
    '''
    A function to read and decode the Boot Catalog.

    Parameters:
     source - The SectorSource to read from.
     extent - The extent of the Boot Catalog, from locate_boot_catalog().
    Returns:
     The parsed EltoritoBootCatalog.
    '''
    sector = source.read(1, extent)

    catalog = EltoritoBootCatalog(extent)
    try:
        catalog.parse(sector)
    except pyisobarexception.PyIsobarInvalidCatalog as e:
        raise pyisobarexception.PyIsobarInvalidCatalog('%s has an invalid boot catalog' % (source.name)) from e

    entry = catalog.initial_entry
    logger.debug('Boot image: %s, %d virtual sector(s) at 0x%x',
                 entry.media_name(), entry.sector_count, entry.load_rba)
    return catalog
