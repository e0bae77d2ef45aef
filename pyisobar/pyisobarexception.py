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
The custom exceptions that PyIsobar throws.  Every exception carries a stable
'ident' string and the process exit code that the command-line tool uses for
it, so callers never have to match on message text.
"""


class PyIsobarException(Exception):
    """The custom Exception class for PyIsobar."""
    ident = 'error'
    exit_code = 1

    def __init__(self, msg):
        # type: (str) -> None
        Exception.__init__(self, msg)


class PyIsobarInvalidInput(PyIsobarException):
    """
    The user passed an option or argument that can't be used (for example, a
    maximum batch of zero sectors).
    """
    ident = 'invalid-input'
    exit_code = 1


class PyIsobarNotElTorito(PyIsobarException):
    """
    The source could not be opened, or its Boot Record Volume Descriptor does
    not carry the El Torito signature.
    """
    ident = 'not-el-torito'
    exit_code = 3


class PyIsobarInvalidCatalog(PyIsobarException):
    """The boot catalog key bytes are not 0x55, 0xAA."""
    ident = 'invalid-catalog'
    exit_code = 3


class PyIsobarSinkCreateError(PyIsobarException):
    """The output file could not be created."""
    ident = 'sink-create'
    exit_code = 4


class PyIsobarReadError(PyIsobarException):
    """A read from the source returned fewer bytes than requested."""
    ident = 'read-error'
    exit_code = 5


class PyIsobarWriteError(PyIsobarException):
    """A write to the output accepted fewer bytes than requested."""
    ident = 'write-error'
    exit_code = 5


class PyIsobarInternalError(PyIsobarException):
    """The PyIsobar object was used out of order."""
    ident = 'internal-error'
    exit_code = 70
