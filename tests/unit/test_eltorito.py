import pytest
import os
import sys
from io import BytesIO
import struct

prefix = '.'
for i in range(0, 3):
    if os.path.isdir(os.path.join(prefix, 'pyisobar')):
        sys.path.insert(0, prefix)
        break
    else:
        prefix = '../' + prefix

import pyisobar.eltorito
import pyisobar.pyisobarexception
import pyisobar.sectorsource


class CountingSource(pyisobar.sectorsource.FileSectorSource):
    def __init__(self, fp):
        super(CountingSource, self).__init__(fp)
        self.reads = []

    def read(self, sector_count, start_sector):
        self.reads.append((sector_count, start_sector))
        return super(CountingSource, self).read(sector_count, start_sector)


def boot_record(catalog_extent, ident=b'CD001\x01EL TORITO SPECIFICATION'):
    vd = bytearray(2048)
    vd[1:1 + len(ident)] = ident
    struct.pack_into('<L', vd, 0x47, catalog_extent)
    return bytes(vd)

def validation_entry(platform=0, id_string=b'', checksum=0, key1=0x55, key2=0xaa):
    return struct.pack('<BBH24sHBB', 1, platform, 0, id_string, checksum, key1, key2)

def initial_entry(indicator=0x88, media=0, load_seg=0, system_type=0, count=4, rba=20):
    return struct.pack('<BBHBBHL20s', indicator, media, load_seg, system_type,
                       0, count, rba, b'\x00' * 20)

def catalog_sector(**kwargs):
    val_args = {}
    for key in ('platform', 'id_string', 'checksum', 'key1', 'key2'):
        if key in kwargs:
            val_args[key] = kwargs.pop(key)
    return (validation_entry(**val_args) + initial_entry(**kwargs)).ljust(2048, b'\x00')

def disc(catalog_extent=0x13, catalog=None):
    data = bytearray(0x14 * 2048)
    data[0x11 * 2048:0x12 * 2048] = boot_record(catalog_extent)
    if catalog is not None:
        data[catalog_extent * 2048:(catalog_extent + 1) * 2048] = catalog
    return BytesIO(bytes(data))

# Boot Record
def test_eltorito_boot_record_parse():
    br = pyisobar.eltorito.EltoritoBootRecord()
    br.parse(boot_record(0x1234))
    assert(br.catalog_extent == 0x1234)

def test_eltorito_boot_record_parse_initialized_twice():
    br = pyisobar.eltorito.EltoritoBootRecord()
    br.parse(boot_record(0x13))
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        br.parse(boot_record(0x13))
    assert(str(excinfo.value) == 'El Torito Boot Record already initialized')

def test_eltorito_boot_record_parse_bad_signature():
    br = pyisobar.eltorito.EltoritoBootRecord()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarNotElTorito) as excinfo:
        br.parse(boot_record(0x13, b'CD001\x01EL TORITO SPECIFICATIOX'))
    assert(str(excinfo.value) == 'Boot Record does not carry the El Torito signature')

def test_eltorito_boot_record_parse_lowercase_signature():
    br = pyisobar.eltorito.EltoritoBootRecord()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarNotElTorito):
        br.parse(boot_record(0x13, b'CD001\x01el torito specification'))

def test_eltorito_boot_record_parse_unterminated_signature():
    br = pyisobar.eltorito.EltoritoBootRecord()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarNotElTorito):
        br.parse(boot_record(0x13, b'CD001\x01EL TORITO SPECIFICATIONS'))

def test_eltorito_boot_record_parse_ignores_descriptor_type():
    vd = bytearray(boot_record(0x20))
    vd[0] = 0xff
    br = pyisobar.eltorito.EltoritoBootRecord()
    br.parse(bytes(vd))
    assert(br.catalog_extent == 0x20)

def test_eltorito_locate_boot_catalog():
    source = CountingSource(disc(0xabcdef))
    assert(pyisobar.eltorito.locate_boot_catalog(source) == 0xabcdef)
    assert(source.reads == [(1, 0x11)])

def test_eltorito_locate_boot_catalog_not_eltorito():
    data = BytesIO(b'\x00' * (0x12 * 2048))
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarNotElTorito) as excinfo:
        pyisobar.eltorito.locate_boot_catalog(pyisobar.sectorsource.FileSectorSource(data, 'plain.iso'))
    assert(str(excinfo.value) == 'plain.iso is not EL TORITO')

def test_eltorito_locate_boot_catalog_too_small():
    data = BytesIO(b'\x00' * (0x11 * 2048 + 100))
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarNotElTorito) as excinfo:
        pyisobar.eltorito.locate_boot_catalog(pyisobar.sectorsource.FileSectorSource(data, 'tiny.iso'))
    assert(str(excinfo.value) == 'tiny.iso is not EL TORITO')

# Validation Entry
def test_eltorito_validation_entry_parse():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry(platform=1, id_string=b'ACME', checksum=0x1234))
    assert(val.header_id == 1)
    assert(val.platform_id == 1)
    assert(val.platform_name() == 'PowerPC')
    assert(val.manufacturer() == 'ACME')
    assert(val.checksum == 0x1234)

def test_eltorito_validation_entry_parse_initialized_twice():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry())
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        val.parse(validation_entry())
    assert(str(excinfo.value) == 'El Torito Validation Entry already initialized')

def test_eltorito_validation_entry_parse_bad_keybyte1():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInvalidCatalog) as excinfo:
        val.parse(validation_entry(key1=0x54))
    assert(str(excinfo.value) == 'El Torito Validation entry key bytes not 0x55, 0xaa')

def test_eltorito_validation_entry_parse_bad_keybyte2():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInvalidCatalog):
        val.parse(validation_entry(key2=0x00))

def test_eltorito_validation_entry_parse_swapped_keybytes():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInvalidCatalog):
        val.parse(validation_entry(key1=0xaa, key2=0x55))

def test_eltorito_validation_entry_parse_bad_checksum_accepted():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry(checksum=0xdead))
    assert(val.checksum == 0xdead)

def test_eltorito_validation_entry_unknown_platform():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry(platform=0xef))
    assert(val.platform_name() == 'unknown')

def test_eltorito_validation_entry_platform_names():
    for platform_id, name in ((0, 'x86'), (1, 'PowerPC'), (2, 'Mac')):
        val = pyisobar.eltorito.EltoritoValidationEntry()
        val.parse(validation_entry(platform=platform_id))
        assert(val.platform_name() == name)

def test_eltorito_validation_entry_manufacturer_not_recorded():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry(id_string=b'\x00HIDDEN'))
    assert(val.manufacturer() is None)

def test_eltorito_validation_entry_manufacturer_full_width():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    val.parse(validation_entry(id_string=b'X' * 24))
    assert(val.manufacturer() == 'X' * 24)

def test_eltorito_validation_entry_platform_name_not_initialized():
    val = pyisobar.eltorito.EltoritoValidationEntry()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        val.platform_name()
    assert(str(excinfo.value) == 'El Torito Validation Entry not initialized')

# Entry
def test_eltorito_entry_parse():
    entry = pyisobar.eltorito.EltoritoEntry()
    entry.parse(initial_entry(indicator=0x88, media=2, load_seg=0x1000,
                              system_type=6, count=1, rba=0x1234))
    assert(entry.bootable())
    assert(entry.media_type() == 2)
    assert(entry.media_name() == '1.44M floppy')
    assert(entry.load_segment == 0x1000)
    assert(entry.effective_load_segment() == 0x1000)
    assert(entry.system_type == 6)
    assert(entry.sector_count == 1)
    assert(entry.load_rba == 0x1234)

def test_eltorito_entry_parse_initialized_twice():
    entry = pyisobar.eltorito.EltoritoEntry()
    entry.parse(initial_entry())
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        entry.parse(initial_entry())
    assert(str(excinfo.value) == 'El Torito Entry already initialized')

def test_eltorito_entry_not_bootable():
    for indicator in (0x00, 0x12, 0x89):
        entry = pyisobar.eltorito.EltoritoEntry()
        entry.parse(initial_entry(indicator=indicator))
        assert(not entry.bootable())

def test_eltorito_entry_media_high_nibble_ignored():
    entry = pyisobar.eltorito.EltoritoEntry()
    entry.parse(initial_entry(media=0x44))
    assert(entry.media_type() == 4)
    assert(entry.media_name() == 'hard disk')
    assert(entry.boot_media_type == 0x44)

def test_eltorito_entry_media_unknown():
    entry = pyisobar.eltorito.EltoritoEntry()
    entry.parse(initial_entry(media=7))
    assert(entry.media_type() == 7)
    assert(entry.media_name() == 'unknown')

def test_eltorito_entry_default_load_segment():
    entry = pyisobar.eltorito.EltoritoEntry()
    entry.parse(initial_entry(load_seg=0))
    assert(entry.load_segment == 0)
    assert(entry.effective_load_segment() == 0x7c0)

def test_eltorito_entry_bootable_not_initialized():
    entry = pyisobar.eltorito.EltoritoEntry()
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        entry.bootable()
    assert(str(excinfo.value) == 'El Torito Entry not initialized')

# Boot Catalog
def test_eltorito_boot_catalog_parse_initialized_twice():
    catalog = pyisobar.eltorito.EltoritoBootCatalog(0x13)
    catalog.parse(catalog_sector())
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInternalError) as excinfo:
        catalog.parse(catalog_sector())
    assert(str(excinfo.value) == 'El Torito Boot Catalog already initialized')

def test_eltorito_parse_boot_catalog():
    source = CountingSource(disc(0x13, catalog_sector(platform=0, id_string=b'ISOBAR', media=0, count=4, rba=0x200)))
    catalog = pyisobar.eltorito.parse_boot_catalog(source, 0x13)
    assert(source.reads == [(1, 0x13)])
    assert(catalog.extent == 0x13)
    assert(catalog.validation_entry.manufacturer() == 'ISOBAR')
    assert(catalog.initial_entry.sector_count == 4)
    assert(catalog.initial_entry.load_rba == 0x200)

def test_eltorito_parse_boot_catalog_bad_key_bytes():
    # Everything else in the catalog is sane; only the key bytes are wrong.
    source = pyisobar.sectorsource.FileSectorSource(disc(0x13, catalog_sector(key1=0, key2=0)), 'bad.iso')
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarInvalidCatalog) as excinfo:
        pyisobar.eltorito.parse_boot_catalog(source, 0x13)
    assert(str(excinfo.value) == 'bad.iso has an invalid boot catalog')

def test_eltorito_parse_boot_catalog_past_end():
    source = pyisobar.sectorsource.FileSectorSource(disc(0x13, catalog_sector()))
    with pytest.raises(pyisobar.pyisobarexception.PyIsobarReadError):
        pyisobar.eltorito.parse_boot_catalog(source, 0x100)
