"""
Assembly of the decoded blocks into the composite image.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from typing import Sequence, Tuple, Iterator, Optional

import numpy

from nitfrepair.io.base import CodecDecodeFailure, InvalidHeaderField
from nitfrepair.io.codec import JPEGCodec
from nitfrepair.io.index_table import IndexEntry
from nitfrepair.io.nitf_header import HeaderFields

logger = logging.getLogger(__name__)


def create_canvas(header: HeaderFields) -> numpy.ndarray:
    """
    Create the zero initialized composite image.

    Parameters
    ----------
    header : HeaderFields

    Returns
    -------
    numpy.ndarray

    Raises
    ------
    InvalidHeaderField
        If the image shape is negative.
    """

    rows, cols = header.image_shape
    if rows < 0 or cols < 0:
        raise InvalidHeaderField('Got invalid image shape {}'.format((rows, cols)))
    return numpy.zeros((rows, cols), dtype='uint8')


def block_origin(header: HeaderFields, block_position: int) -> Tuple[int, int]:
    """
    The `(row, column)` of the upper left pixel of the given block.

    Parameters
    ----------
    header : HeaderFields
    block_position : int
        The position in row-major block order.

    Returns
    -------
    Tuple[int, int]
    """

    block_row, block_col = divmod(block_position, header.blocks_per_row)
    return header.pixels_per_block_vertical*block_row, header.pixels_per_block_horizontal*block_col


def iterate_block_streams(data: bytes, entries: Sequence[IndexEntry]) -> Iterator[Tuple[IndexEntry, bytes]]:
    """
    Yields each entry with its jpeg stream, which runs to the offset of the
    following entry, or the end of the data for the final entry.

    Parameters
    ----------
    data : bytes
    entries : Sequence[IndexEntry]

    Yields
    ------
    Tuple[IndexEntry, bytes]
    """

    for k, entry in enumerate(entries):
        end = len(data) if k == len(entries) - 1 else entries[k+1].stream_offset
        yield entry, data[entry.stream_offset:end]


def assemble_blocks(
        header: HeaderFields,
        data: bytes,
        entries: Sequence[IndexEntry],
        codec: Optional[JPEGCodec] = None) -> numpy.ndarray:
    """
    Decode each block stream, and place it into the composite image.

    Parameters
    ----------
    header : HeaderFields
    data : bytes
        The compressed block data.
    entries : Sequence[IndexEntry]
        The repaired index table.
    codec : None|JPEGCodec
        Anything with a `decode` method will serve.

    Returns
    -------
    numpy.ndarray

    Raises
    ------
    CodecDecodeFailure
        If any block fails to decode, or decodes to the wrong shape.
    """

    if codec is None:
        codec = JPEGCodec()

    canvas = create_canvas(header)
    block_shape = header.block_shape
    for entry, the_bytes in iterate_block_streams(data, entries):
        try:
            block = codec.decode(the_bytes)
        except CodecDecodeFailure:
            logger.error(
                'Block {} at offset {} failed to decode'.format(entry.block_position, entry.stream_offset))
            raise
        if block.shape != block_shape:
            raise CodecDecodeFailure(
                'Block {} decoded with shape {}, expected {}'.format(
                    entry.block_position, block.shape, block_shape))
        row, col = block_origin(header, entry.block_position)
        canvas[row:row+block_shape[0], col:col+block_shape[1]] = block
    logger.info('Assembled {} of {} blocks'.format(len(entries), header.num_blocks))
    return canvas
