"""Running a command in a pseudo-terminal while relaying its I/O through a terminal."""

from __future__ import annotations

import errno
import fcntl
import functools
import os
import select
import signal
import struct
import termios
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence

from castrec.tty import Theme, Tty, TtySize, set_non_blocking

BUF_SIZE = 128 * 1024

_SIGNALS = (
    signal.SIGWINCH,
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGQUIT,
    signal.SIGHUP,
    signal.SIGALRM,
    signal.SIGCHLD,
)

_KILL_SIGNALS = frozenset({signal.SIGINT, signal.SIGTERM, signal.SIGQUIT, signal.SIGHUP})


class Handler(ABC):
    """Receives a session's events; times are microseconds since the session started.

    The output, input and resize callbacks return whether the data should be passed on.
    """

    @abstractmethod
    def start(self, tty_size: TtySize, theme: Theme | None) -> None:
        """Called once, before the command starts."""

    @abstractmethod
    def output(self, time: int, data: bytes) -> bool:
        """Output produced by the command."""

    @abstractmethod
    def input(self, time: int, data: bytes) -> bool:
        """Input typed at the terminal."""

    @abstractmethod
    def resize(self, time: int, tty_size: TtySize) -> bool:
        """The terminal changed size."""


def _noop_handler(signum, frame) -> None:
    return None


class _SignalPipe:
    """Turns the given signals into bytes readable from a pipe.

    Outside the main thread signals cannot be handled and fd stays None.
    """

    def __init__(self, signals: Sequence[int]) -> None:
        self._signals = tuple(signals)
        self.fd: int | None = None
        self._tx: int | None = None
        self._old_wakeup = -1
        self._old_handlers: dict[int, object] = {}

    def __enter__(self) -> _SignalPipe:
        if threading.current_thread() is not threading.main_thread():
            return self
        rx, tx = os.pipe()
        set_non_blocking(rx)
        set_non_blocking(tx)
        self.fd, self._tx = rx, tx
        self._old_wakeup = signal.set_wakeup_fd(tx, warn_on_full_buffer=False)
        for signum in self._signals:
            self._old_handlers[signum] = signal.signal(signum, _noop_handler)
        return self

    def drain(self) -> set[int]:
        received: set[int] = set()
        if self.fd is None:
            return received
        while True:
            try:
                chunk = os.read(self.fd, 256)
            except OSError:
                break
            if not chunk:
                break
            received.update(chunk)
        return received

    def __exit__(self, *exc_info) -> None:
        if self.fd is None:
            return
        for signum, handler in self._old_handlers.items():
            signal.signal(signum, signal.SIG_DFL if handler is None else handler)
        signal.set_wakeup_fd(self._old_wakeup)
        os.close(self.fd)
        os.close(self._tx)
        self.fd = None
        self._tx = None


def _pack_winsize(size: TtySize) -> bytes:
    return struct.pack("HHHH", size.rows, size.cols, 0, 0)


def _set_pty_size(fd: int, size: TtySize) -> None:
    try:
        fcntl.ioctl(fd, termios.TIOCSWINSZ, _pack_winsize(size))
    except OSError:
        pass


def _read_non_blocking(read: Callable[[int], bytes], size: int) -> bytes | None:
    """None when nothing is available; b"" at end of input (including EIO)."""
    try:
        return read(size)
    except BlockingIOError:
        return None
    except OSError as e:
        if e.errno == errno.EIO:
            return b""
        raise


def _write_non_blocking(write: Callable[[bytes], int], data: bytes) -> int | None:
    try:
        return write(data)
    except BlockingIOError:
        return None
    except OSError as e:
        if e.errno == errno.EIO:
            return 0
        raise


def _drain(write: Callable[[bytes], int], buf: bytearray) -> None:
    """Write as much of buf as possible without blocking, removing what was written."""
    while buf:
        written = _write_non_blocking(write, bytes(buf))
        if not written:
            break
        del buf[:written]


def _run_child(command: Sequence[str], extra_env: Mapping[str, str], size: TtySize) -> None:
    try:
        fcntl.ioctl(0, termios.TIOCSWINSZ, _pack_winsize(size))
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
        env = {**os.environ, **extra_env}
        os.execvpe(command[0], list(command), env)
    except BaseException:
        pass
    os._exit(1)


def _copy(master: int, child: int, tty: Tty, handler: Handler, epoch: float) -> int | None:
    """Relay data until the session ends; returns the child's wait status if it was reaped."""

    def elapsed() -> int:
        return int((time.monotonic() - epoch) * 1_000_000)

    read_master = functools.partial(os.read, master)
    write_master = functools.partial(os.write, master)
    input_buf = bytearray()
    output_buf = bytearray()
    master_closed = False
    tty_fd = tty.fileno()

    set_non_blocking(master)

    with _SignalPipe(_SIGNALS) as signals:
        while True:
            rlist = [tty_fd]
            wlist = []
            if signals.fd is not None:
                rlist.append(signals.fd)
            if not master_closed:
                rlist.append(master)
                if input_buf:
                    wlist.append(master)
            if output_buf:
                wlist.append(tty_fd)

            readable, writable, _ = select.select(rlist, wlist, [])

            if not master_closed and master in readable:
                while (data := _read_non_blocking(read_master, BUF_SIZE)) is not None:
                    if data:
                        if handler.output(elapsed(), data):
                            output_buf += data
                    elif not output_buf:
                        return None
                    else:
                        master_closed = True
                        break

            if not master_closed and master in writable:
                _drain(write_master, input_buf)

            if tty_fd in writable:
                _drain(tty.write, output_buf)
                if not output_buf and master_closed:
                    return None

            if tty_fd in readable:
                while (data := _read_non_blocking(tty.read, BUF_SIZE)) is not None:
                    if not data:
                        return None
                    if handler.input(elapsed(), data):
                        input_buf += data

            if signals.fd is None or signals.fd not in readable:
                continue

            received = signals.drain()

            if signal.SIGWINCH in received:
                size = tty.get_size()
                if handler.resize(elapsed(), size):
                    _set_pty_size(master, size)

            if signal.SIGCHLD in received:
                try:
                    pid, status = os.waitpid(child, os.WNOHANG)
                except ChildProcessError:
                    pid, status = 0, 0
                if pid != 0:
                    return status

            if received & _KILL_SIGNALS:
                try:
                    os.kill(child, signal.SIGTERM)
                except OSError:
                    pass
                return None


def _wait(pid: int) -> int:
    _, status = os.waitpid(pid, 0)
    return status


def _exit_code(status: int) -> int:
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        return 128 + os.WTERMSIG(status)
    return 1


def exec_command(
    command: Sequence[str],
    extra_env: Mapping[str, str],
    tty: Tty,
    handler: Handler,
) -> int:
    """Run command in a new pseudo-terminal, relaying through tty; returns its exit code.

    A command killed by a signal yields 128 plus the signal number.
    """
    if not command:
        raise ValueError("empty command")

    size = tty.get_size()
    epoch = time.monotonic()
    handler.start(size, tty.get_theme())

    pid, master = os.forkpty()
    if pid == 0:
        _run_child(command, extra_env, size)

    try:
        try:
            status = _copy(master, pid, tty, handler, epoch)
        except BaseException:
            try:
                _wait(pid)
            except ChildProcessError:
                pass
            raise
        if status is None:
            status = _wait(pid)
    finally:
        os.close(master)

    return _exit_code(status)