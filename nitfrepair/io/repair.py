"""
Repair of a corrupted block index table.

The true block offsets increase with block position, since the jpeg streams
are laid out block by block, and each offset must point at a jpeg start of
image marker. There is no checksum, so the neighbouring entries are the only
ground truth. Two passes are made over the table. The monotonicity pass finds
entries which break the ordering, and the marker pass finds entries which keep
the ordering but do not point at a marker. A suspect entry is replaced by the
first marker found strictly between its neighbours, or dropped if there is none.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from typing import List, Optional, Sequence, Tuple

from nitfrepair.io.index_table import IndexEntry, has_jpeg_marker, search_sub_region, \
    find_all_markers

logger = logging.getLogger(__name__)


class RepairAction(object):
    """
    A record of a single replaced or dropped index table entry.
    """

    __slots__ = ('pass_name', 'block_position', 'old_offset', 'new_offset')

    def __init__(self, pass_name: str, block_position: int, old_offset: int, new_offset: Optional[int]):
        self.pass_name = pass_name
        self.block_position = block_position
        self.old_offset = old_offset
        self.new_offset = new_offset

    @property
    def erased(self) -> bool:
        """
        bool: Was the entry dropped?
        """

        return self.new_offset is None

    def __str__(self):
        if self.erased:
            return '{} pass: block {} at offset {} dropped'.format(
                self.pass_name, self.block_position, self.old_offset)
        return '{} pass: block {} offset {} -> {}'.format(
            self.pass_name, self.block_position, self.old_offset, self.new_offset)


class IndexRepairReport(object):
    """
    The collection of actions taken while repairing an index table.
    """

    __slots__ = ('actions', )

    def __init__(self):
        self.actions = []  # type: List[RepairAction]

    def record(self, pass_name: str, entry: IndexEntry, new_offset: Optional[int]) -> None:
        action = RepairAction(pass_name, entry.block_position, entry.stream_offset, new_offset)
        if action.erased:
            logger.warning(
                'Unrecoverable index entry ({}),\n\t'
                'block {} will be left empty'.format(action, entry.block_position))
        else:
            logger.info('Repaired index entry ({})'.format(action))
        self.actions.append(action)

    @property
    def replaced(self) -> List[RepairAction]:
        return [entry for entry in self.actions if not entry.erased]

    @property
    def erased(self) -> List[RepairAction]:
        return [entry for entry in self.actions if entry.erased]

    def __len__(self):
        return len(self.actions)


def _replace_or_erase(
        entries: List[IndexEntry],
        index: int,
        new_offset: Optional[int],
        report: IndexRepairReport,
        pass_name: str) -> bool:
    """
    Overwrite the offset of `entries[index]`, or remove the entry if
    `new_offset` is `None`.

    Returns
    -------
    bool
        `True` if the entry was replaced, `False` if it was removed.
    """

    entry = entries[index]
    report.record(pass_name, entry, new_offset)
    if new_offset is None:
        del entries[index]
        return False
    entries[index] = entry._replace(stream_offset=new_offset)
    return True


def _left_offset(entries: Sequence[IndexEntry], index: int) -> Optional[int]:
    return None if index == 0 else entries[index-1].stream_offset


def _right_offset(entries: Sequence[IndexEntry], index: int, data_length: int) -> int:
    return data_length if index == len(entries) - 1 else entries[index+1].stream_offset


def _repair_pair(data: bytes, entries: List[IndexEntry], index: int, report: IndexRepairReport) -> bool:
    """
    Attempt to repair `entries[index]` and `entries[index+1]` together, using
    the markers strictly between the offsets of `entries[index-1]` (or from 0,
    for the leading pair) and `entries[index+2]`. This succeeds only if there
    are exactly two markers.
    """

    markers = find_all_markers(data, _left_offset(entries, index), entries[index+2].stream_offset)
    if len(markers) != 2:
        return False
    for shift, marker in enumerate(markers):
        report.record('monotonicity', entries[index+shift], marker)
        entries[index+shift] = entries[index+shift]._replace(stream_offset=marker)
    return True


def monotonicity_pass(
        data: bytes,
        entries: Sequence[IndexEntry],
        report: Optional[IndexRepairReport] = None) -> List[IndexEntry]:
    """
    Repair the entries which break the increasing order of the offsets. The
    scan of consecutive pairs includes the leading pair, so a low second entry
    is repaired even when the first entry is below the third.

    Parameters
    ----------
    data : bytes
        The compressed block data.
    entries : Sequence[IndexEntry]
    report : None|IndexRepairReport

    Returns
    -------
    List[IndexEntry]
        The new table, the input is not modified.
    """

    if report is None:
        report = IndexRepairReport()
    out = list(entries)

    # the first entry, if it is beyond both of the following entries
    if len(out) >= 3 and out[0].stream_offset > out[1].stream_offset and \
            out[0].stream_offset > out[2].stream_offset:
        _replace_or_erase(out, 0, search_sub_region(data, None, out[1].stream_offset), report, 'monotonicity')

    # consecutive pairs, everything before index i is resolved
    i = 0
    while i < len(out) - 2:
        if out[i].stream_offset <= out[i+1].stream_offset:
            i += 1
            continue

        if out[i].stream_offset > out[i+2].stream_offset:
            suspect = i  # entry i is too large
        else:
            suspect = i + 1  # entry i+1 is too small, or i and i+1 are both wrong
        new_offset = search_sub_region(data, _left_offset(out, suspect), out[suspect+1].stream_offset)
        if new_offset is None and suspect == i + 1 and _repair_pair(data, out, i, report):
            i += 2
        elif _replace_or_erase(out, suspect, new_offset, report, 'monotonicity'):
            i = suspect + 1
        else:
            # the former neighbours are now adjacent, check them
            i = max(suspect - 1, 0)

    # the last entry, if it is before the second to last entry
    if len(out) >= 2 and out[-2].stream_offset > out[-1].stream_offset:
        _replace_or_erase(
            out, len(out) - 1, search_sub_region(data, out[-2].stream_offset, len(data)), report, 'monotonicity')
    return out


def marker_pass(
        data: bytes,
        entries: Sequence[IndexEntry],
        report: Optional[IndexRepairReport] = None) -> List[IndexEntry]:
    """
    Repair the entries whose offset does not point at a jpeg start of image
    marker.

    Parameters
    ----------
    data : bytes
        The compressed block data.
    entries : Sequence[IndexEntry]
    report : None|IndexRepairReport

    Returns
    -------
    List[IndexEntry]
        The new table, the input is not modified.
    """

    if report is None:
        report = IndexRepairReport()
    out = list(entries)

    i = 0
    while i < len(out):
        if has_jpeg_marker(data, out[i].stream_offset):
            i += 1
            continue
        new_offset = search_sub_region(data, _left_offset(out, i), _right_offset(out, i, len(data)))
        if _replace_or_erase(out, i, new_offset, report, 'marker'):
            i += 1
        # otherwise, the entry which moved into position i is checked next
    return out


def repair_index_table(
        data: bytes,
        entries: Sequence[IndexEntry]) -> Tuple[List[IndexEntry], IndexRepairReport]:
    """
    Repair the block index table, using the monotonicity pass followed by the
    marker pass.

    Parameters
    ----------
    data : bytes
        The compressed block data, which the offsets are relative to.
    entries : Sequence[IndexEntry]
        The extracted table, ordered by block position.

    Returns
    -------
    entries : List[IndexEntry]
        The repaired table. Dropped entries are simply absent, and the block
        position of each remaining entry is unchanged.
    report : IndexRepairReport
    """

    report = IndexRepairReport()
    out = monotonicity_pass(data, entries, report=report)
    out = marker_pass(data, out, report=report)
    if len(report) > 0:
        logger.warning(
            'Repaired {} and dropped {} of {} index table entries'.format(
                len(report.replaced), len(report.erased), len(entries)))
    return out, report
