import io
import os
import threading

import pytest

import common
import console as con

def test_buffer_console():
    c = con.BufferConsole("ab")
    assert c.key_ready()
    assert c.read_char() == ord("a")
    c.write_char(0x141)
    assert c.text() == "A"
    assert c.n_flushed == 0
    c.flush()
    assert c.n_flushed == 1
    assert c.read_char() == ord("b")
    assert not c.key_ready()
    with pytest.raises(common.ConsoleClosed):
        c.read_char()

def test_buffer_console_feed():
    c = con.BufferConsole()
    c.feed("z")
    assert c.read_char() == ord("z")

def test_buffer_console_keeps_high_bytes():
    c = con.BufferConsole(b"\xe9")
    x = c.read_char()
    assert x == 0xE9
    c.write_char(x)
    assert bytes(c.output) == b"\xe9"

def test_queue_console_output_on_flush():
    got = []
    c = con.QueueConsole(on_output=got.append)
    c.write_char(ord("h"))
    c.write_char(ord("i"))
    assert got == []
    c.flush()
    assert got == ["hi"]
    c.flush()
    assert got == ["hi"]

def test_queue_console_read_after_put():
    c = con.QueueConsole()
    assert not c.key_ready()
    c.put_key(ord("x"))
    assert c.key_ready()
    assert c.read_char() == ord("x")

def test_queue_console_close_wakes_reader():
    c = con.QueueConsole()
    errors = []

    def reader():
        try:
            c.read_char()
        except common.ConsoleClosed as e:
            errors.append(e)

    t = threading.Thread(target=reader)
    t.start()
    c.close()
    t.join(timeout=5)
    assert not t.is_alive()
    assert len(errors) == 1
    with pytest.raises(common.ConsoleClosed):
        c.read_char()

def test_terminal_console_on_pipe():
    r, w = os.pipe()
    try:
        out = io.BytesIO()
        c = con.TerminalConsole(in_fd=r, out=out)
        assert not c.key_ready()
        os.write(w, b"q")
        assert c.key_ready()
        assert c.read_char() == ord("q")
        c.write_char(ord("!"))
        c.flush()
        assert out.getvalue() == b"!"
        os.close(w)
        w = None
        with pytest.raises(common.ConsoleClosed):
            c.read_char()
    finally:
        os.close(r)
        if w is not None:
            os.close(w)

def test_terminal_mode_is_a_no_op_off_a_terminal():
    mode = con.TerminalMode(io.StringIO())
    mode.enable_raw_mode()
    assert mode.saved is None
    mode.restore_original_mode()
    mode.restore_original_mode()

def test_terminal_mode_context_manager_on_pipe():
    r, w = os.pipe()
    try:
        with os.fdopen(r, "rb", closefd=False) as f:
            with con.TerminalMode(f) as mode:
                assert mode.saved is None
    finally:
        os.close(r)
        os.close(w)

def test_queue_console_reopen_keeps_typed_keys():
    c = con.QueueConsole()
    c.close()
    c.put_key(ord("y"))
    c.reopen()
    assert not c.closed
    assert c.read_char() == ord("y")
    assert not c.key_ready()
