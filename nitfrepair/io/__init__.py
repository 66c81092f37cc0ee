
__classification__ = "UNCLASSIFIED"


def open(file_name):
    """
    Given a file, open the reader for the blocked jpeg image with corrupted
    block index.

    Parameters
    ----------
    file_name : str

    Returns
    -------
    nitfrepair.io.converter.CorruptedNITFReader

    Raises
    ------
    FileOpenError
    """

    from .converter import open_corrupted_nitf
    return open_corrupted_nitf(file_name)
