import pytest

from tests import make_jpeg_block


@pytest.fixture(scope='module')
def quadrant_streams():
    # one constant valued 256 x 256 block for each quadrant of a 2 x 2 grid
    return [make_jpeg_block(value) for value in (40, 100, 160, 220)]
