# This is a simple program to show how to use PyIsobar to print the El Torito
# boot information of a bootable ISO and extract its boot image.

# Import standard python modules.
import sys

# Import pyisobar itself.
import pyisobar

# Check that there are enough command-line arguments.
if len(sys.argv) != 3:
    print('Usage: %s <iso> <outfile>' % (sys.argv[0]))
    sys.exit(1)

# Create a new PyIsobar object.
iso = pyisobar.PyIsobar()

# Open up the ISO; this finds and decodes the El Torito Boot Catalog.
iso.open(sys.argv[1])

# Work out where the boot image is and how long it is.  For a hard disk image,
# pass strip_mbr=True to get just the first partition.
image = iso.resolve()

# Print out the same information the pyisobar tool does.
for label, text in iso.report():
    print('%s:\t%s' % (label, text))

# Copy the boot image out to the requested file.
iso.extract(sys.argv[2])

# Close the PyIsobar object.  After this call, the object has forgotten
# everything about the previous ISO, and can be re-used.
iso.close()

print('Wrote %d bytes starting at sector %d' % (image.length, image.start_extent))
