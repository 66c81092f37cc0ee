"""
Convert a JPEG blocked NITF file with a corrupted block index into a single
grayscale jpeg image.

>>> python -m nitfrepair.utils.nitf_to_jpeg <path to nitf file> <optional output path>

For a basic help on the command-line, check

>>> python -m nitfrepair.utils.nitf_to_jpeg --help

"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import argparse
import logging
import sys

from nitfrepair.io.base import NITFRepairError
from nitfrepair.io.codec import JPEGCodec
from nitfrepair.io.converter import conversion_utility


# Custom print function
print_func = print


def print_index_report(reader):
    """
    Print the extracted index table, and the repair actions, for the open reader.

    Parameters
    ----------
    reader : nitfrepair.io.converter.CorruptedNITFReader
    """

    print_func('{} = {}'.format('header', reader.header))
    entries = reader.index_table
    print_func('extracted {} index table entries'.format(len(entries)))
    for entry in entries:
        print_func('  block {} at offset {}'.format(entry.block_position, entry.stream_offset))
    repaired, report = reader.repair()
    print_func('repaired table has {} entries'.format(len(repaired)))
    for action in report.actions:
        print_func('  {}'.format(action))


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Repair the block index of a jpeg blocked NITF file, and write "
                    "the image as a single grayscale jpeg.",
        formatter_class=argparse.RawTextHelpFormatter)
    parser.add_argument(
        'input_file', metavar='input_file', help='Path to the input NITF file.')
    parser.add_argument(
        'output_file', metavar='output_file', nargs='?', default=None,
        help='Path to the output jpeg file.\n'
             '* If omitted, this will be `<input_file>.jpg`.\n'
             '* `.jpg` is appended, unless the path ends with `.jpg` or `.JPG`.')
    parser.add_argument(
        '-q', '--quality', default=95, type=int, help='The jpeg quality, in the range [1, 95].')
    parser.add_argument(
        '-r', '--report', action='store_true', help='Print the index table and repair actions?')
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='Verbose (level="INFO") logging?')

    args = parser.parse_args(args)

    level = 'INFO' if args.verbose else 'WARNING'
    logging.basicConfig(level=level)
    logger = logging.getLogger('nitfrepair')
    logger.setLevel(level)

    try:
        codec = JPEGCodec(quality=args.quality)
    except ValueError as e:
        parser.error(str(e))

    try:
        out_path = conversion_utility(
            args.input_file, args.output_file, codec=codec,
            report_func=print_index_report if args.report else None)
    except NITFRepairError as e:
        print('{}: {}'.format(e.__class__.__name__, e), file=sys.stderr)
        return 1
    print_func('Wrote {}'.format(out_path))
    return 0


if __name__ == '__main__':
    sys.exit(main())
