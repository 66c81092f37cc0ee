"""
The jpeg codec used for decoding the block streams and encoding the composite
image. This is a thin layer over Pillow.
"""

__classification__ = "UNCLASSIFIED"
__author__ = "Grace Vesom"

import logging
from io import BytesIO

import numpy
from PIL import Image as PIL_Image

from nitfrepair.io.base import CodecDecodeFailure, CodecEncodeFailure

logger = logging.getLogger(__name__)

# the composite image can be far larger than Pillow considers reasonable
PIL_Image.MAX_IMAGE_PIXELS = None


class JPEGCodec(object):
    """
    Decodes single jpeg streams into 8-bit grayscale arrays, and encodes an
    8-bit grayscale array as a jpeg file.
    """

    __slots__ = ('_quality', )

    def __init__(self, quality: int = 95):
        """

        Parameters
        ----------
        quality : int
            The jpeg quality used for encoding, in the range `[1, 95]`.
        """

        quality = int(quality)
        if not (1 <= quality <= 95):
            raise ValueError('quality must be in the range [1, 95], got {}'.format(quality))
        self._quality = quality

    @property
    def quality(self) -> int:
        """
        int: The jpeg encoding quality.
        """

        return self._quality

    def decode(self, the_bytes: bytes) -> numpy.ndarray:
        """
        Decode a single jpeg stream.

        Parameters
        ----------
        the_bytes : bytes

        Returns
        -------
        numpy.ndarray
            Two dimensional array of dtype `uint8`.

        Raises
        ------
        CodecDecodeFailure
        """

        try:
            img = PIL_Image.open(BytesIO(the_bytes))
            img.load()
            if img.mode != 'L':
                img = img.convert('L')
            return numpy.asarray(img, dtype='uint8')
        except (OSError, ValueError, SyntaxError) as e:
            raise CodecDecodeFailure(
                'Failed decoding jpeg stream of {} bytes: {}'.format(len(the_bytes), e)) from e

    def encode(self, canvas: numpy.ndarray) -> bytes:
        """
        Encode the two dimensional 8-bit grayscale array as jpeg file bytes.

        Parameters
        ----------
        canvas : numpy.ndarray

        Returns
        -------
        bytes

        Raises
        ------
        CodecEncodeFailure
            If the array is empty, or Pillow fails to encode it.
        """

        if canvas.ndim != 2:
            raise ValueError('Requires a two dimensional array, got shape {}'.format(canvas.shape))
        if canvas.size == 0:
            raise CodecEncodeFailure('Can not encode an empty image of shape {}'.format(canvas.shape))

        try:
            img = PIL_Image.fromarray(numpy.ascontiguousarray(canvas, dtype='uint8'))
            out = BytesIO()
            img.save(out, format='JPEG', quality=self._quality)
        except (OSError, ValueError) as e:
            raise CodecEncodeFailure('Failed encoding image of shape {}: {}'.format(canvas.shape, e)) from e
        return out.getvalue()
