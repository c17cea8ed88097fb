import gzip

import pytest

from svcplug.util.compress import unzip_bytes, zip_bytes

SAMPLE = (
    "%5B%7B%22service%22%3A%22AttrDict%22%2C%22service_address%22%3A%22udp%40127.0.0.1"
    "%3A5353%22%7D%2C%7B%22service%22%3A%22BrasInfo%22%2C%22service_address%22%3A%22udp"
    "%40127.0.0.1%3A5353%22%7D%5D"
)


def test_zip_roundtrip():
    data = zip_bytes(SAMPLE.encode())
    assert unzip_bytes(data).decode() == SAMPLE


def test_zip_is_gzip():
    data = zip_bytes(SAMPLE.encode())
    assert data[:2] == b"\x1f\x8b"
    assert gzip.decompress(data) == SAMPLE.encode()


def test_unzip_stdlib_output():
    assert unzip_bytes(gzip.compress(b"payload")) == b"payload"


def test_empty_roundtrip():
    assert unzip_bytes(zip_bytes(b"")) == b""


def test_unzip_empty_input_fails():
    with pytest.raises(ValueError):
        unzip_bytes(b"")


def test_unzip_garbage_fails():
    with pytest.raises(ValueError):
        unzip_bytes(b"not gzip at all")


def test_unzip_truncated_fails():
    data = zip_bytes(SAMPLE.encode())
    with pytest.raises(ValueError):
        unzip_bytes(data[: len(data) // 2])