"""
The basic error definitions, and the bounds checked view of the raw file bytes
which every offset computation runs through.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from typing import Union

logger = logging.getLogger(__name__)


class NITFRepairError(Exception):
    """The base exception for all errors discovered by this package."""


class UsageError(NITFRepairError):
    """Bad command-line arguments."""


class FileOpenError(NITFRepairError):
    """The input file can not be opened or read."""


class TruncatedInput(NITFRepairError):
    """The file is too short to contain the header fields."""


class BoundsError(NITFRepairError):
    """An offset or length computed from the file contents lies outside the buffer."""


class InvalidHeaderField(NITFRepairError):
    """A header field holds a value which can not describe an image, such as negative blocking."""


class CodecDecodeFailure(NITFRepairError):
    """The image codec failed to decode a compressed block stream."""


class CodecEncodeFailure(NITFRepairError):
    """The image codec failed to encode the composite image."""


class ByteView(object):
    """
    An immutable, bounds checked view of a byte buffer. Every access is
    validated against the buffer length, and raises a :class:`BoundsError`
    rather than silently returning short data.
    """

    __slots__ = ('_data', )

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        """

        Parameters
        ----------
        data : bytes|bytearray|memoryview
        """

        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, bytes):
            raise TypeError('data is required to be bytes, got type {}'.format(type(data)))
        self._data = data

    def __len__(self) -> int:
        return len(self._data)

    @property
    def data(self) -> bytes:
        """
        bytes: The underlying bytes.
        """

        return self._data

    def in_bounds(self, start: int, length: int) -> bool:
        """
        Does the range `[start, start+length)` lie within the buffer?

        Parameters
        ----------
        start : int
        length : int

        Returns
        -------
        bool
        """

        return start >= 0 and length >= 0 and start + length <= len(self._data)

    def read(self, start: int, length: int) -> bytes:
        """
        Fetch `length` bytes starting at `start`.

        Parameters
        ----------
        start : int
        length : int

        Returns
        -------
        bytes

        Raises
        ------
        BoundsError
        """

        if not self.in_bounds(start, length):
            raise BoundsError(
                'Requested {} bytes at offset {},\n\t'
                'but the buffer has length {}'.format(length, start, len(self._data)))
        return self._data[start:start + length]

    def tail(self, start: int) -> bytes:
        """
        Fetch everything from `start` to the end of the buffer.

        Parameters
        ----------
        start : int

        Returns
        -------
        bytes

        Raises
        ------
        BoundsError
        """

        return self.read(start, len(self._data) - start)
