"""
Common functionality for decoding the fixed width header fields.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import re
import struct
from typing import Union, Tuple, Optional

_LEADING_INTEGER = re.compile(br'^[ \t\n\v\f\r]*([+-]?[0-9]+)')


def ascii_to_int(value: bytes) -> int:
    """
    Interpret the bytes as a base 10 integer in the manner of C `atoi`. Leading
    whitespace is skipped, and parsing stops at the first non-digit byte. Input
    without any leading digits is interpreted as 0.

    Parameters
    ----------
    value : bytes

    Returns
    -------
    int
    """

    match = _LEADING_INTEGER.match(value)
    if match is None:
        return 0
    return int(match.group(1))


def big_endian_uint32(value: bytes) -> int:
    """
    Interpret exactly four bytes as a big-endian unsigned integer.

    Parameters
    ----------
    value : bytes

    Returns
    -------
    int
    """

    if len(value) != 4:
        raise ValueError('Requires 4 bytes, got {}'.format(len(value)))
    return struct.unpack('>I', value)[0]


def is_nitf(
        header: bytes,
        return_version=False) -> Union[bool, Tuple[bool, Optional[str]]]:
    """
    Test whether the given initial bytes belong to a NITF file.

    Parameters
    ----------
    header : bytes
        The initial bytes of the file, at least 9 are examined.
    return_version : bool

    Returns
    -------
    is_nitf_file: bool
        Is the file a NITF file, based solely on checking initial bytes.
    nitf_version: None|str
        Only returned is `return_version=True`. Will be `None` in the event that
        `is_nitf_file=False`.
    """

    ihead = header[:4]
    vers = header[4:9]
    if ihead == b'NITF':
        try:
            vers = vers.decode('utf-8')
            return (True, vers) if return_version else True
        except ValueError:
            pass

    return (False, None) if return_version else False
