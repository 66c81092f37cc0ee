"""
Helpers for constructing synthetic jpeg blocked NITF files for the unit tests.
"""

import struct
from io import BytesIO
from typing import Optional, Sequence, Tuple

import numpy
from PIL import Image as PIL_Image

from nitfrepair.io.nitf_header import MINIMUM_FILE_LENGTH, HL_FIELD, LISH_FIELD, LI_FIELD, \
    NBPR_FIELD, NBPC_FIELD, NPPBH_FIELD, NPPBV_FIELD, IXSHDL_FIELD

FILE_HEADER_LENGTH = 404


def _put_ascii(buffer: bytearray, field: Tuple[int, int], value: int) -> None:
    byte_count, start = field
    frm_str = '{0:0' + str(byte_count) + 'd}'
    buffer[start:start+byte_count] = frm_str.format(value).encode('utf-8')


def make_jpeg_block(value: int, shape: Tuple[int, int] = (256, 256), quality: int = 95) -> bytes:
    """
    Encode a constant valued grayscale block as a jpeg stream.
    """

    img = PIL_Image.fromarray(numpy.full(shape, value, dtype='uint8'))
    out = BytesIO()
    img.save(out, format='JPEG', quality=quality)
    return out.getvalue()


def stream_offsets(streams: Sequence[bytes]) -> list:
    """
    The offsets of the streams, when laid out consecutively.
    """

    out = []
    location = 0
    for entry in streams:
        out.append(location)
        location += len(entry)
    return out


def make_nitf_bytes(
        streams: Sequence[bytes],
        blocks_per_row: int,
        blocks_per_column: int,
        block_shape: Tuple[int, int] = (256, 256),
        offsets: Optional[Sequence[Optional[int]]] = None,
        extended_subheader_length: int = 0) -> bytes:
    """
    Construct a NITF file in the expected layout. The streams are laid out
    consecutively after the block mask table.

    Parameters
    ----------
    streams : Sequence[bytes]
        The compressed block streams.
    blocks_per_row : int
    blocks_per_column : int
    block_shape : Tuple[int, int]
        The `(rows, columns)` of a block.
    offsets : None|Sequence[None|int]
        The index table to write, if not the true offsets of the streams. `None`
        entries are written as the not recorded value.
    extended_subheader_length : int

    Returns
    -------
    bytes
    """

    num_blocks = blocks_per_row*blocks_per_column
    if offsets is None:
        offsets = stream_offsets(streams)
    if len(offsets) != num_blocks:
        raise ValueError('Requires {} offsets, got {}'.format(num_blocks, len(offsets)))

    mask_start = 907 + extended_subheader_length
    table_start = mask_start + 4 + 6
    # put the compressed data beyond the minimum header extent
    data_start = max(table_start + 4*num_blocks, MINIMUM_FILE_LENGTH)
    data = b''.join(streams)

    buffer = bytearray(b' '*data_start)
    buffer[:9] = b'NITF02.10'
    _put_ascii(buffer, HL_FIELD, FILE_HEADER_LENGTH)
    _put_ascii(buffer, LISH_FIELD, mask_start - FILE_HEADER_LENGTH)
    _put_ascii(buffer, LI_FIELD, data_start - mask_start + len(data))
    _put_ascii(buffer, NBPR_FIELD, blocks_per_row)
    _put_ascii(buffer, NBPC_FIELD, blocks_per_column)
    _put_ascii(buffer, NPPBH_FIELD, block_shape[1])
    _put_ascii(buffer, NPPBV_FIELD, block_shape[0])
    _put_ascii(buffer, IXSHDL_FIELD, extended_subheader_length)
    buffer[907:mask_start] = b'X'*extended_subheader_length
    buffer[mask_start:table_start] = struct.pack('>IHHH', data_start - mask_start, 4, 0, 0)
    for i, entry in enumerate(offsets):
        value = 0xFFFFFFFF if entry is None else entry
        buffer[table_start+4*i:table_start+4*(i+1)] = struct.pack('>I', value)
    return bytes(buffer) + data
