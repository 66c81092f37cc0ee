import os

import pytest

from nitfrepair.io import open as open_nitf
from nitfrepair.io.base import FileOpenError, TruncatedInput, BoundsError, UsageError, \
    CodecDecodeFailure
from nitfrepair.io.codec import JPEGCodec
from nitfrepair.io.converter import resolve_output_path, conversion_utility, \
    CorruptedNITFReader, open_corrupted_nitf
from nitfrepair.io.index_table import IndexEntry
from nitfrepair.io.nitf_header import MINIMUM_FILE_LENGTH

from tests import make_nitf_bytes, stream_offsets

QUADRANT_VALUES = (40, 100, 160, 220)
QUADRANTS = ((slice(0, 256), slice(0, 256)), (slice(0, 256), slice(256, 512)),
             (slice(256, 512), slice(0, 256)), (slice(256, 512), slice(256, 512)))


def _write(path, the_bytes):
    with open(str(path), 'wb') as fi:
        fi.write(the_bytes)
    return str(path)


def _check_quadrants(canvas, values=QUADRANT_VALUES):
    assert canvas.shape == (512, 512)
    for quadrant, value in zip(QUADRANTS, values):
        assert abs(float(canvas[quadrant].mean()) - value) < 3


@pytest.mark.parametrize(
    'input_file,output_file,expected',
    [('image.r0', None, 'image.r0.jpg'),
     ('image.r0', 'result', 'result.jpg'),
     ('image.r0', 'result.jpg', 'result.jpg'),
     ('image.r0', 'result.JPG', 'result.JPG'),
     ('image.r0', 'result.jpeg', 'result.jpeg.jpg'),
     ('image.r0', '.jpg', '.jpg.jpg')])
def test_resolve_output_path(input_file, output_file, expected):
    assert resolve_output_path(input_file, output_file) == expected


def test_resolve_output_path_requires_input():
    with pytest.raises(UsageError):
        resolve_output_path('')


def test_clean_file(tmp_path, quadrant_streams):
    in_file = _write(tmp_path / 'clean.r0', make_nitf_bytes(quadrant_streams, 2, 2))
    with open_nitf(in_file) as reader:
        assert reader.header.num_blocks == 4
        assert reader.index_table == [
            IndexEntry(offset, i) for i, offset in enumerate(stream_offsets(quadrant_streams))]
        entries, report = reader.repair()
        assert entries == reader.index_table
        assert len(report) == 0
        _check_quadrants(reader.read())
    assert reader.closed


def test_swapped_entries(tmp_path, quadrant_streams):
    offsets = stream_offsets(quadrant_streams)
    swapped = [offsets[0], offsets[2], offsets[1], offsets[3]]
    in_file = _write(tmp_path / 'swapped.r0', make_nitf_bytes(quadrant_streams, 2, 2, offsets=swapped))
    with CorruptedNITFReader(in_file) as reader:
        entries, _ = reader.repair()
        assert [entry.stream_offset for entry in entries] == offsets
        _check_quadrants(reader.read())


def test_shifted_and_missing_entries(tmp_path, quadrant_streams):
    offsets = stream_offsets(quadrant_streams)
    corrupted = [offsets[0], offsets[1] + 7, None, 0xFFFFF]
    in_file = _write(
        tmp_path / 'corrupted.r0',
        make_nitf_bytes(quadrant_streams, 2, 2, offsets=corrupted, extended_subheader_length=50))
    with CorruptedNITFReader(in_file) as reader:
        assert [entry.block_position for entry in reader.index_table] == [0, 1, 3]
        entries, report = reader.repair()
        assert entries == [IndexEntry(offsets[0], 0), IndexEntry(offsets[1], 1), IndexEntry(offsets[2], 3)]
        assert len(report.erased) == 0
        canvas = reader.read()
    # block 3 takes the stream of block 2, block 2 is left empty
    assert abs(float(canvas[QUADRANTS[0]].mean()) - 40) < 3
    assert abs(float(canvas[QUADRANTS[1]].mean()) - 100) < 3
    assert float(canvas[QUADRANTS[2]].max()) == 0


def test_compressed_data_cached(tmp_path, quadrant_streams):
    in_file = _write(tmp_path / 'clean.r0', make_nitf_bytes(quadrant_streams, 2, 2))
    with CorruptedNITFReader(in_file) as reader:
        data = reader.compressed_data
        assert reader.compressed_data is data
        assert data == b''.join(quadrant_streams)


def test_report_func(tmp_path, quadrant_streams):
    offsets = stream_offsets(quadrant_streams)
    swapped = [offsets[0], offsets[2], offsets[1], offsets[3]]
    in_file = _write(tmp_path / 'input.r0', make_nitf_bytes(quadrant_streams, 2, 2, offsets=swapped))
    reports = []

    def report_func(reader):
        reports.append(reader.repair()[1])

    conversion_utility(in_file, report_func=report_func)
    assert len(reports) == 1
    assert len(reports[0].replaced) == 2
    assert os.path.isfile(in_file + '.jpg')


def test_conversion_utility(tmp_path, quadrant_streams):
    offsets = stream_offsets(quadrant_streams)
    swapped = [offsets[0], offsets[2], offsets[1], offsets[3]]
    in_file = _write(tmp_path / 'input.r0', make_nitf_bytes(quadrant_streams, 2, 2, offsets=swapped))
    out_file = conversion_utility(in_file, str(tmp_path / 'result'))
    assert out_file == str(tmp_path / 'result.jpg')
    assert os.path.isfile(out_file)
    with open(out_file, 'rb') as fi:
        the_bytes = fi.read()
    _check_quadrants(JPEGCodec().decode(the_bytes))


def test_default_output(tmp_path, quadrant_streams):
    in_file = _write(tmp_path / 'input.r0', make_nitf_bytes(quadrant_streams, 2, 2))
    assert conversion_utility(in_file) == in_file + '.jpg'
    assert os.path.isfile(in_file + '.jpg')


def test_truncated_file(tmp_path):
    in_file = _write(tmp_path / 'short.r0', b'NITF02.10' + b' '*(MINIMUM_FILE_LENGTH - 10))
    assert os.path.getsize(in_file) == 1696
    with pytest.raises(TruncatedInput):
        conversion_utility(in_file, str(tmp_path / 'short.jpg'))
    assert not os.path.exists(str(tmp_path / 'short.jpg'))


def test_missing_file(tmp_path):
    with pytest.raises(FileOpenError):
        open_corrupted_nitf(str(tmp_path / 'missing.r0'))
    with pytest.raises(FileOpenError):
        CorruptedNITFReader(str(tmp_path / 'missing.r0'))
    with pytest.raises(FileOpenError):
        conversion_utility(str(tmp_path))


def test_table_beyond_file(tmp_path):
    the_bytes = bytearray(make_nitf_bytes([b'\xff\xd8\x00'], 1, 1))
    the_bytes[859:863] = b'9999'
    the_bytes[863:867] = b'9999'
    in_file = _write(tmp_path / 'bad_table.r0', bytes(the_bytes))
    with pytest.raises(BoundsError):
        CorruptedNITFReader(in_file)


def test_decode_failure(tmp_path, quadrant_streams):
    streams = list(quadrant_streams)
    streams[3] = streams[3][:300]
    in_file = _write(tmp_path / 'broken.r0', make_nitf_bytes(streams, 2, 2))
    with pytest.raises(CodecDecodeFailure):
        conversion_utility(in_file, str(tmp_path / 'broken.jpg'))
    assert not os.path.exists(str(tmp_path / 'broken.jpg'))


def test_closed_reader(tmp_path, quadrant_streams):
    in_file = _write(tmp_path / 'clean.r0', make_nitf_bytes(quadrant_streams, 2, 2))
    reader = CorruptedNITFReader(in_file)
    reader.close()
    with pytest.raises(ValueError):
        _ = reader.header
    with pytest.raises(ValueError):
        reader.read()
