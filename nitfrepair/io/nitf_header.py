"""
Reading the header fields of a JPEG blocked NITF 2.1 file, for the one layout
variant handled here: a single band, blocked image segment with a mask
subheader holding one 4-byte block mask record per block.

The fields are read at fixed byte offsets, there is no general NITF parsing.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from typing import Tuple

from nitfrepair.io.base import ByteView, TruncatedInput, InvalidHeaderField
from nitfrepair.io.utils import ascii_to_int, big_endian_uint32, is_nitf

logger = logging.getLogger(__name__)

MINIMUM_FILE_LENGTH = 1697
"""
The extent of the file header and image subheader fields which are required.
"""

# (byte count, start offset) for the ascii encoded fields
HL_FIELD = (6, 354)
LISH_FIELD = (6, 363)
LI_FIELD = (10, 369)
NBPR_FIELD = (4, 859)
NBPC_FIELD = (4, 863)
NPPBH_FIELD = (4, 867)
NPPBV_FIELD = (4, 871)
IXSHDL_FIELD = (5, 902)

# the extended subheader data (if any) starts here, and the image data follows it
_IXSHD_START = 907
# BMRLNTH, TMRLNTH, and TPXCDLNTH, each 2 bytes, follow IMDATOFF
_MASK_LENGTH_FIELDS_SIZE = 2*3


def read_ascii_field(view: ByteView, field: Tuple[int, int]) -> int:
    """
    Read an ascii encoded integer field.

    Parameters
    ----------
    view : ByteView
    field : Tuple[int, int]
        Of the form `(byte_count, start_offset)`.

    Returns
    -------
    int
    """

    byte_count, start = field
    return ascii_to_int(view.read(start, byte_count))


def read_big_endian_field(view: ByteView, start: int) -> int:
    """
    Read a 4-byte big-endian unsigned integer field.

    Parameters
    ----------
    view : ByteView
    start : int

    Returns
    -------
    int
    """

    return big_endian_uint32(view.read(start, 4))


class HeaderFields(object):
    """
    The header values driving the block index extraction and image assembly.
    """

    __slots__ = (
        '_file_header_length', '_image_subheader_length', '_image_length',
        '_blocks_per_row', '_blocks_per_column',
        '_pixels_per_block_horizontal', '_pixels_per_block_vertical',
        '_extended_subheader_length', '_blocked_image_data_offset')

    def __init__(
            self,
            file_header_length: int,
            image_subheader_length: int,
            image_length: int,
            blocks_per_row: int,
            blocks_per_column: int,
            pixels_per_block_horizontal: int,
            pixels_per_block_vertical: int,
            extended_subheader_length: int,
            blocked_image_data_offset: int):
        self._file_header_length = int(file_header_length)
        self._image_subheader_length = int(image_subheader_length)
        self._image_length = int(image_length)
        self._blocks_per_row = int(blocks_per_row)
        self._blocks_per_column = int(blocks_per_column)
        self._pixels_per_block_horizontal = int(pixels_per_block_horizontal)
        self._pixels_per_block_vertical = int(pixels_per_block_vertical)
        self._extended_subheader_length = int(extended_subheader_length)
        self._blocked_image_data_offset = int(blocked_image_data_offset)

    @property
    def file_header_length(self) -> int:
        """
        int: The NITF file header length, `HL`.
        """

        return self._file_header_length

    @property
    def image_subheader_length(self) -> int:
        """
        int: The length of the image subheader, `LISH001`.
        """

        return self._image_subheader_length

    @property
    def image_length(self) -> int:
        """
        int: The length of the image segment data, `LI001`.
        """

        return self._image_length

    @property
    def blocks_per_row(self) -> int:
        """
        int: `NBPR`
        """

        return self._blocks_per_row

    @property
    def blocks_per_column(self) -> int:
        """
        int: `NBPC`
        """

        return self._blocks_per_column

    @property
    def pixels_per_block_horizontal(self) -> int:
        """
        int: `NPPBH`
        """

        return self._pixels_per_block_horizontal

    @property
    def pixels_per_block_vertical(self) -> int:
        """
        int: `NPPBV`
        """

        return self._pixels_per_block_vertical

    @property
    def extended_subheader_length(self) -> int:
        """
        int: The image extended subheader data length, `IXSHDL`.
        """

        return self._extended_subheader_length

    @property
    def blocked_image_data_offset(self) -> int:
        """
        int: The offset from the start of the image data to the first block,
        `IMDATOFF` from the mask subheader.
        """

        return self._blocked_image_data_offset

    @property
    def num_blocks(self) -> int:
        """
        int: The number of blocks, and so index table entries.
        """

        return self._blocks_per_row*self._blocks_per_column

    @property
    def block_shape(self) -> Tuple[int, int]:
        """
        Tuple[int, int]: The `(rows, columns)` of a single block.
        """

        return self._pixels_per_block_vertical, self._pixels_per_block_horizontal

    @property
    def image_shape(self) -> Tuple[int, int]:
        """
        Tuple[int, int]: The `(rows, columns)` of the composite image, including
        any pad pixels.
        """

        return (self._blocks_per_column*self._pixels_per_block_vertical,
                self._blocks_per_row*self._pixels_per_block_horizontal)

    @property
    def mask_subheader_offset(self) -> int:
        """
        int: The file offset of the mask subheader, i.e. of `IMDATOFF`.
        """

        return mask_subheader_offset(self._extended_subheader_length)

    @property
    def index_table_offset(self) -> int:
        """
        int: The file offset of the block mask records.
        """

        return self.mask_subheader_offset + 4 + _MASK_LENGTH_FIELDS_SIZE

    @property
    def data_offset(self) -> int:
        """
        int: The file offset of the start of the compressed block data.
        """

        return self._image_subheader_length + self._file_header_length + self._blocked_image_data_offset

    def __eq__(self, other):
        if not isinstance(other, HeaderFields):
            return NotImplemented
        return all(getattr(self, entry) == getattr(other, entry) for entry in self.__slots__)

    def __repr__(self):
        return '{}({})'.format(
            self.__class__.__name__,
            ', '.join('{}={}'.format(entry[1:], getattr(self, entry)) for entry in self.__slots__))


def mask_subheader_offset(extended_subheader_length: int) -> int:
    """
    The file offset of the mask subheader, which immediately follows any image
    extended subheader data.

    Parameters
    ----------
    extended_subheader_length : int

    Returns
    -------
    int
    """

    return _IXSHD_START + extended_subheader_length


def read_header_fields(view: ByteView) -> HeaderFields:
    """
    Decode the header fields from the raw file bytes.

    Parameters
    ----------
    view : ByteView

    Returns
    -------
    HeaderFields

    Raises
    ------
    TruncatedInput
        If the buffer is shorter than :const:`MINIMUM_FILE_LENGTH`.
    BoundsError
        If the mask subheader lies beyond the buffer.
    InvalidHeaderField
        If any of the blocking fields is negative.
    """

    if len(view) < MINIMUM_FILE_LENGTH:
        raise TruncatedInput(
            'Got {} bytes, but at least {} are required to reach the header fields'.format(
                len(view), MINIMUM_FILE_LENGTH))

    nitf_file, version = is_nitf(view.read(0, 9), return_version=True)
    if nitf_file:
        logger.info('NITF version {}'.format(version))
    else:
        logger.warning('The buffer does not begin with `NITF`, proceeding regardless.')

    extended_subheader_length = read_ascii_field(view, IXSHDL_FIELD)
    header = HeaderFields(
        read_ascii_field(view, HL_FIELD),
        read_ascii_field(view, LISH_FIELD),
        read_ascii_field(view, LI_FIELD),
        read_ascii_field(view, NBPR_FIELD),
        read_ascii_field(view, NBPC_FIELD),
        read_ascii_field(view, NPPBH_FIELD),
        read_ascii_field(view, NPPBV_FIELD),
        extended_subheader_length,
        read_big_endian_field(view, mask_subheader_offset(extended_subheader_length)))

    logger.info(
        'Blocking is {} x {} blocks of {} x {} pixels'.format(
            header.blocks_per_row, header.blocks_per_column,
            header.pixels_per_block_horizontal, header.pixels_per_block_vertical))
    if min(header.blocks_per_row, header.blocks_per_column,
           header.pixels_per_block_horizontal, header.pixels_per_block_vertical) < 0:
        raise InvalidHeaderField('The stated blocking {} has a negative field'.format(header))
    if header.num_blocks == 0 or header.pixels_per_block_horizontal == 0 or \
            header.pixels_per_block_vertical == 0:
        logger.warning('The stated blocking {} is empty'.format(header))
    return header
