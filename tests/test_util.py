from pngx.util import file_extension, guess_extension


def test_guess_extension():
    assert guess_extension("application/pdf") == "pdf"
    assert guess_extension("application/pdf; charset=binary") == "pdf"
    assert guess_extension("image/TIFF") == "tiff"
    assert guess_extension(None) == "bin"
    assert guess_extension("application/unknown") == "bin"


def test_file_extension():
    assert file_extension("scan.PDF") == "pdf"
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension("README") is None
    assert file_extension(None) is None
