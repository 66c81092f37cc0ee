"""
Extraction of the block index table (the block mask records of the mask
subheader), and the JPEG start of image marker primitives used to check and
repair it.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from typing import List, NamedTuple, Optional

import numpy

from nitfrepair.io.base import ByteView

logger = logging.getLogger(__name__)

JPEG_SOI = b'\xff\xd8'
"""
The jpeg start of image marker.
"""

EXCLUDE_VALUE = 0xFFFFFFFF
"""
The block mask record value for a block which is not recorded.
"""


class IndexEntry(NamedTuple):
    """
    A single block index table entry.
    """

    stream_offset: int
    """
    The offset of the block jpeg stream, relative to the start of the compressed
    block data.
    """
    block_position: int
    """
    The position of the block in row-major block order.
    """


def extract_index_table(view: ByteView, start: int, num_blocks: int) -> List[IndexEntry]:
    """
    Read `num_blocks` big-endian 4-byte offsets starting at `start`. Entries
    with the exclude value are omitted, and the remaining entries keep their
    scan position as block position.

    Parameters
    ----------
    view : ByteView
    start : int
        The file offset of the first block mask record.
    num_blocks : int

    Returns
    -------
    List[IndexEntry]

    Raises
    ------
    BoundsError
        If the table extends beyond the buffer.
    """

    if num_blocks <= 0:
        return []

    raw_offsets = numpy.frombuffer(view.read(start, 4*num_blocks), dtype='>u4')
    out = [IndexEntry(int(value), position) for position, value in enumerate(raw_offsets)
           if value < EXCLUDE_VALUE]
    if len(out) < num_blocks:
        logger.info('{} of {} blocks are marked as not recorded'.format(num_blocks - len(out), num_blocks))
    return out


def has_jpeg_marker(data: bytes, offset: int) -> bool:
    """
    Does a jpeg start of image marker begin at `offset`? An offset outside of
    the data is never a marker.

    Parameters
    ----------
    data : bytes
    offset : int

    Returns
    -------
    bool
    """

    if offset < 0 or offset + 2 > len(data):
        return False
    return data[offset:offset+2] == JPEG_SOI


def search_sub_region(data: bytes, start: Optional[int], end: int) -> Optional[int]:
    """
    Find the first jpeg start of image marker at position `p` with
    `start < p < end`. The marker bytes may extend beyond `end`, but not
    beyond the data.

    Parameters
    ----------
    data : bytes
    start : None|int
        The known lower boundary, which is itself excluded from the search. If
        `None`, there is no known lower boundary and the search begins at 0.
    end : int

    Returns
    -------
    None|int
        `None` if no marker is found.
    """

    first = 0 if start is None else max(start + 1, 0)
    # the marker must start before end, and fit in the data
    stop = min(end + 1, len(data))
    if first >= stop:
        return None
    location = data.find(JPEG_SOI, first, stop)
    return None if location == -1 else location


def find_all_markers(data: bytes, start: Optional[int], end: int) -> List[int]:
    """
    Find every jpeg start of image marker position `p` with `start < p < end`,
    with the same conventions as :func:`search_sub_region`.

    Parameters
    ----------
    data : bytes
    start : None|int
    end : int

    Returns
    -------
    List[int]
    """

    out = []
    location = search_sub_region(data, start, end)
    while location is not None:
        out.append(location)
        location = search_sub_region(data, location, end)
    return out
