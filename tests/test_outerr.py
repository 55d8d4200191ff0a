import io
import logging

from rexkit.outerr import RecordingOutErr, StreamOutErr, system_out_err


class BrokenWriter:
    def write(self, data):
        raise OSError("broken pipe")


def test_recording_out_err():
    o = RecordingOutErr()
    o.write_out(b"hello")
    o.write_err(b"world")
    assert o.stdout() == b"hello"
    assert o.stderr() == b"world"


def test_recording_out_err_accumulates():
    o = RecordingOutErr()
    o.write_out(b"ab")
    o.write_out(b"cd")
    assert o.stdout() == b"abcd"
    assert o.stderr() == b""


def test_system_out_err(capsysbinary):
    s = system_out_err()
    s.write_out(b"hello ")
    s.write_err(b"world")
    captured = capsysbinary.readouterr()
    assert captured.out + captured.err == b"hello world"


def test_stream_out_err_shared_writer():
    buf = io.BytesIO()
    s = StreamOutErr(buf, buf)
    s.write_out(b"hello ")
    s.write_err(b"world")
    assert buf.getvalue() == b"hello world"


def test_write_failure_is_logged(caplog):
    s = StreamOutErr(BrokenWriter(), BrokenWriter())
    with caplog.at_level(logging.ERROR, logger="rexkit.outerr"):
        s.write_out(b"x")
        s.write_err(b"y")
    assert "error writing to stdout stream" in caplog.text
    assert "error writing to stderr stream" in caplog.text