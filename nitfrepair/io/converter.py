"""
The reader for a JPEG blocked NITF file with a corrupted block index, and the
utility converting such a file into a single grayscale jpeg.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
import os
from typing import Callable, List, Optional, Tuple

import numpy

from nitfrepair.io.base import ByteView, BoundsError, FileOpenError, NITFRepairError, UsageError
from nitfrepair.io.nitf_header import HeaderFields, read_header_fields
from nitfrepair.io.index_table import IndexEntry, extract_index_table
from nitfrepair.io.repair import IndexRepairReport, repair_index_table
from nitfrepair.io.assembly import assemble_blocks
from nitfrepair.io.codec import JPEGCodec

logger = logging.getLogger(__name__)

_JPEG_EXTENSIONS = ('.jpg', '.JPG')


def resolve_output_path(input_file: str, output_file: Optional[str] = None) -> str:
    """
    Determine the output path. If `output_file` is not provided, this is the
    input path with `.jpg` appended. Otherwise, `.jpg` is appended to
    `output_file` unless it already ends with `.jpg` or `.JPG`.

    Parameters
    ----------
    input_file : str
    output_file : None|str

    Returns
    -------
    str

    Raises
    ------
    UsageError
        If `input_file` is empty.
    """

    if not input_file:
        raise UsageError('An input file path is required')
    if output_file is None:
        return input_file + '.jpg'
    if len(output_file) < 5 or not output_file.endswith(_JPEG_EXTENSIONS):
        return output_file + '.jpg'
    return output_file


class CorruptedNITFReader(object):
    """
    Reads the blocked jpeg image of a NITF file, repairing the block index table
    along the way. The whole file is held in memory until :meth:`close`.
    """

    __slots__ = (
        '_file_name', '_view', '_header', '_compressed_data', '_index_table', '_repaired', '_report',
        '_closed')

    def __init__(self, file_name: str):
        """

        Parameters
        ----------
        file_name : str

        Raises
        ------
        FileOpenError
        TruncatedInput
        BoundsError
        """

        self._closed = True
        self._file_name = file_name
        self._view = None  # type: Optional[ByteView]
        self._header = None  # type: Optional[HeaderFields]
        self._compressed_data = None  # type: Optional[bytes]
        self._index_table = None  # type: Optional[List[IndexEntry]]
        self._repaired = None  # type: Optional[List[IndexEntry]]
        self._report = None  # type: Optional[IndexRepairReport]

        try:
            with open(file_name, 'rb') as fi:
                the_bytes = fi.read()
        except OSError as e:
            raise FileOpenError('File failed to open: {}'.format(file_name)) from e
        self._view = ByteView(the_bytes)
        self._closed = False

        try:
            self._header = read_header_fields(self._view)
            logger.info('Header fields for {}: {}'.format(file_name, self._header))
            if self._header.data_offset > len(self._view):
                raise BoundsError(
                    'The compressed block data offset {} is beyond the end of file {},\n\t'
                    'which has length {}'.format(self._header.data_offset, file_name, len(self._view)))
            self._compressed_data = self._view.tail(self._header.data_offset)
            self._index_table = extract_index_table(
                self._view, self._header.index_table_offset, self._header.num_blocks)
        except NITFRepairError:
            self.close()
            raise

    @property
    def file_name(self) -> str:
        """
        str: The input file name.
        """

        return self._file_name

    @property
    def closed(self) -> bool:
        """
        bool: Is the reader closed?
        """

        return self._closed

    def _validate_closed(self):
        if self._closed:
            raise ValueError('I/O operation of closed reader')

    @property
    def header(self) -> HeaderFields:
        """
        HeaderFields: The decoded header fields.
        """

        self._validate_closed()
        return self._header

    @property
    def compressed_data(self) -> bytes:
        """
        bytes: The compressed block data, which the index table offsets are
        relative to.
        """

        self._validate_closed()
        return self._compressed_data

    @property
    def index_table(self) -> List[IndexEntry]:
        """
        List[IndexEntry]: The index table as extracted, before repair.
        """

        self._validate_closed()
        return list(self._index_table)

    def repair(self) -> Tuple[List[IndexEntry], IndexRepairReport]:
        """
        Repair the index table. This is performed once, and the result is
        cached.

        Returns
        -------
        entries : List[IndexEntry]
        report : IndexRepairReport
        """

        self._validate_closed()
        if self._repaired is None:
            self._repaired, self._report = repair_index_table(self._compressed_data, self._index_table)
        return list(self._repaired), self._report

    def read(self, codec: Optional[JPEGCodec] = None) -> numpy.ndarray:
        """
        Read the composite image, using the repaired index table.

        Parameters
        ----------
        codec : None|JPEGCodec

        Returns
        -------
        numpy.ndarray

        Raises
        ------
        CodecDecodeFailure
        """

        entries, _ = self.repair()
        return assemble_blocks(self._header, self._compressed_data, entries, codec=codec)

    def close(self) -> None:
        """
        Release the file contents.
        """

        self._closed = True
        self._view = None
        self._compressed_data = None
        self._index_table = None
        self._repaired = None

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, traceback):
        self.close()
        if exception_type is not None:
            logger.error(
                'The {} generated an exception during processing of {}'.format(
                    self.__class__.__name__, self._file_name))
            # The exception will be reraised.

    def __del__(self):
        self.close()


def open_corrupted_nitf(file_name: str) -> CorruptedNITFReader:
    """
    Open the given file for reading.

    Parameters
    ----------
    file_name : str

    Returns
    -------
    CorruptedNITFReader

    Raises
    ------
    FileOpenError
    """

    if not os.path.isfile(file_name):
        raise FileOpenError('File failed to open: {} is not a file'.format(file_name))
    return CorruptedNITFReader(file_name)


def conversion_utility(
        input_file: str,
        output_file: Optional[str] = None,
        quality: int = 95,
        codec: Optional[JPEGCodec] = None,
        report_func: Optional[Callable[[CorruptedNITFReader], None]] = None) -> str:
    """
    Repair the block index of the NITF file, and write the reassembled image as
    a grayscale jpeg. Nothing is written if processing fails.

    Parameters
    ----------
    input_file : str
    output_file : None|str
        Resolved by :func:`resolve_output_path`.
    quality : int
        The jpeg quality, ignored if `codec` is provided.
    codec : None|JPEGCodec
    report_func : None|Callable
        If provided, this is called with the open reader before the image is
        read.

    Returns
    -------
    str
        The output file path.

    Raises
    ------
    NITFRepairError
    """

    if codec is None:
        codec = JPEGCodec(quality=quality)
    out_path = resolve_output_path(input_file, output_file)

    with open_corrupted_nitf(input_file) as reader:
        if report_func is not None:
            report_func(reader)
        canvas = reader.read(codec=codec)
    the_bytes = codec.encode(canvas)

    with open(out_path, 'wb') as fi:
        fi.write(the_bytes)
    logger.info('Wrote {} x {} image to {}'.format(canvas.shape[1], canvas.shape[0], out_path))
    return out_path

