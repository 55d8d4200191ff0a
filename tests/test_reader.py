import pytest
import zstandard

from rexkit.reader import (
    CompressedSeeker,
    FileReadSeeker,
    new_compressed_file_seeker,
)


def _make_file(tmp_path, contents: bytes, name: str = "blob") -> str:
    path = tmp_path / name
    path.write_bytes(contents)
    return str(path)


def _decompress(data: bytes) -> bytes:
    return zstandard.ZstdDecompressor().decompressobj().decompress(data)


def _read_all(reader, chunk: int) -> bytes:
    parts = []
    while True:
        data = reader.read(chunk)
        if not data:
            return b"".join(parts)
        assert len(data) <= chunk
        parts.append(data)


@pytest.mark.parametrize(
    "io_buff_size,data_buff_size,blob,seek_offset",
    [
        (10, 3, b"1234567", 2),  # smaller data buffer
        (1, 3, b"1234567", 2),  # smaller io buffer
    ],
)
def test_file_reader_seeks(tmp_path, io_buff_size, data_buff_size, blob, seek_offset):
    path = _make_file(tmp_path, blob)
    with FileReadSeeker(path, io_buff_size) as r:
        with pytest.raises(RuntimeError):
            r.read(data_buff_size)
        r.initialize()
        assert r.is_initialized() is True
        assert r.read(data_buff_size) == blob[:data_buff_size]

        r.seek_offset(seek_offset)
        assert r.is_initialized() is False
        with pytest.raises(RuntimeError):
            r.read(data_buff_size)
        r.initialize()
        end = min(seek_offset + data_buff_size, len(blob))
        assert r.read(data_buff_size) == blob[seek_offset:end]


def test_file_reader_seeks_past_offset(tmp_path):
    path = _make_file(tmp_path, b"12345")
    r = FileReadSeeker(path, 10)
    r.seek_offset(10)
    r.initialize()
    assert r.read(1) == b""
    r.close()


def test_double_initialize_fails(tmp_path):
    path = _make_file(tmp_path, b"abc")
    with FileReadSeeker(path, 4) as r:
        r.initialize()
        with pytest.raises(RuntimeError, match="Already initialized"):
            r.initialize()


def test_close_then_reinitialize_rereads(tmp_path):
    path = _make_file(tmp_path, b"abcdef")
    r = FileReadSeeker(path, 4)
    r.initialize()
    assert r.read(2) == b"ab"
    r.close()
    assert r.is_initialized() is False
    r.initialize()
    assert r.read() == b"abcdef"
    r.close()


def test_negative_offset_fails_at_initialize(tmp_path):
    path = _make_file(tmp_path, b"abc")
    r = FileReadSeeker(path, 4)
    r.seek_offset(-1)
    with pytest.raises(ValueError):
        r.initialize()


def test_missing_file_fails_at_initialize(tmp_path):
    r = FileReadSeeker(str(tmp_path / "missing"), 4)
    with pytest.raises(FileNotFoundError):
        r.initialize()


def test_invalid_buffer_size():
    with pytest.raises(ValueError):
        FileReadSeeker("whatever", 0)


@pytest.mark.parametrize(
    "blob",
    [
        b"12345",
        b"Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod "
        b"tempor incididunt ut labore et dolore magna aliqua.",
        b"",
        bytes(1024 * 1024),
    ],
    ids=["basic", "looong", "empty blob", "1MB zero blob"],
)
def test_compressed_reader(tmp_path, blob):
    path = _make_file(tmp_path, blob)
    r = new_compressed_file_seeker(path, 10)
    r.initialize()
    compressed = _read_all(r, 5)
    assert compressed[:4] == b"\x28\xb5\x2f\xfd"  # zstd frame magic
    assert _decompress(compressed) == blob
    assert r.read(5) == b""
    r.close()


def test_compressed_reader_zero_blob_is_smaller(tmp_path):
    blob = bytes(1024 * 1024)
    path = _make_file(tmp_path, blob)
    with new_compressed_file_seeker(path, 4096) as r:
        r.initialize()
        compressed = _read_all(r, 1000)
    assert len(compressed) < len(blob)


def test_compressed_seek_restarts_from_offset(tmp_path):
    blob = b"0123456789abcdefghij"
    path = _make_file(tmp_path, blob)
    with new_compressed_file_seeker(path, 3) as r:
        r.initialize()
        assert _decompress(_read_all(r, 4)) == blob
        r.seek_offset(5)
        assert r.is_initialized() is False
        r.initialize()
        assert r.is_initialized() is True
        assert _decompress(_read_all(r, 4)) == blob[5:]


def test_compressed_seek_midway(tmp_path):
    blob = b"x" * 500 + b"y" * 500
    path = _make_file(tmp_path, blob)
    with new_compressed_file_seeker(path, 16) as r:
        r.initialize()
        r.read(3)
        r.seek_offset(500)
        r.initialize()
        assert _decompress(_read_all(r, 7)) == b"y" * 500


def test_double_compression_rejected(tmp_path):
    path = _make_file(tmp_path, b"abc")
    inner = new_compressed_file_seeker(path, 4)
    with pytest.raises(ValueError, match="double compress"):
        CompressedSeeker(inner)


def test_compressed_read_uninitialized_error_is_sticky(tmp_path):
    path = _make_file(tmp_path, b"abc")
    r = new_compressed_file_seeker(path, 4)
    with pytest.raises(RuntimeError, match="Not yet initialized"):
        r.read(5)
    r.initialize()
    with pytest.raises(RuntimeError, match="Not yet initialized"):
        r.read(5)


def test_compressed_read_all_at_once(tmp_path):
    blob = b"hello world" * 10
    path = _make_file(tmp_path, blob)
    with new_compressed_file_seeker(path, 8) as r:
        r.initialize()
        data = r.read()
        assert _decompress(data) == blob
        assert r.read() == b""