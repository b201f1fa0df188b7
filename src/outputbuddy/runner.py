"""Child process launching and stream pumping.

Two modes:
- pipes: stdout and stderr are separate pipes, each read by its own thread
  and dispatched under its own stream identity. stdin is inherited.
- PTY: the child gets a pseudo-terminal so it keeps colors and progress
  bars. Everything it prints arrives as ``Stream.OUT``. Our stdin is put in
  raw mode and forwarded, and window size changes are relayed.

Signals are not handled here. The caller feeds them in through a
``ControlChannel`` (see ``install_signal_handlers``).
"""

from __future__ import annotations

import os
import queue
import shutil
import signal
import struct
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import READ_CHUNK_SIZE
from .errors import LaunchError
from .log import get_logger
from .router import Router, Stream

logger = get_logger(__name__)

PTY_SUPPORTED = sys.platform != "win32"


@dataclass
class ControlChannel:
    """Out-of-band notifications for a running child.

    ``resize`` holds at most one pending notification; extra ones are
    dropped because only the latest geometry matters.
    """

    interrupt: threading.Event = field(default_factory=threading.Event)
    resize: "queue.Queue[None]" = field(default_factory=lambda: queue.Queue(maxsize=1))

    def request_interrupt(self) -> None:
        self.interrupt.set()

    def notify_resize(self) -> None:
        try:
            self.resize.put_nowait(None)
        except queue.Full:
            pass


def install_signal_handlers(controls: ControlChannel) -> Dict[int, object]:
    """Route SIGINT/SIGTERM/SIGWINCH into ``controls``.

    Returns the previous handlers for ``restore_signal_handlers``. Must be
    called from the main thread.
    """
    previous: Dict[int, object] = {}

    def on_interrupt(signum, frame) -> None:
        controls.request_interrupt()

    def on_resize(signum, frame) -> None:
        controls.notify_resize()

    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, on_interrupt)
    if hasattr(signal, "SIGWINCH"):
        previous[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, on_resize)
    return previous


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def exit_code_from_returncode(returncode: int) -> int:
    """Map a Popen-style return code to a shell exit code (signal N -> 128+N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def copy_winsize(src_fd: int, dst_fd: int) -> bool:
    """Copy the terminal window size from ``src_fd`` to ``dst_fd``."""
    import fcntl
    import termios

    try:
        winsize = fcntl.ioctl(src_fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
        fcntl.ioctl(dst_fd, termios.TIOCSWINSZ, winsize)
    except OSError:
        return False
    return True


@dataclass
class ChildRunner:
    command: List[str]
    router: Router
    controls: ControlChannel = field(default_factory=ControlChannel)
    chunk_size: int = READ_CHUNK_SIZE
    pid: Optional[int] = None
    _done: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _send_interrupt: Optional[Callable[[], None]] = field(default=None, init=False, repr=False)

    def run(self, use_pty: bool = True) -> int:
        """Run the command to completion and return its exit code.

        Raises:
            LaunchError: the command cannot be started.
        """
        if not self.command:
            raise LaunchError("no command given")
        if shutil.which(self.command[0]) is None:
            raise LaunchError(f"command not found: {self.command[0]}")
        if use_pty and PTY_SUPPORTED:
            return self._run_with_pty()
        return self._run_with_pipes()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    def _pump(self, fd: int, stream: Stream) -> None:
        """Read ``fd`` until EOF, handing each chunk to the router."""
        while True:
            try:
                data = os.read(fd, self.chunk_size)
            except OSError:
                # EIO on a PTY master once the child side is gone
                break
            if not data:
                break
            self.router.dispatch(stream, data)
        logger.debug("%s reached end of stream", stream.value)

    def _start(self, target: Callable[..., None], *args, name: str, daemon: bool = False) -> threading.Thread:
        thread = threading.Thread(target=target, args=args, name=name, daemon=daemon)
        thread.start()
        return thread

    def _watch_interrupt(self) -> None:
        """Forward the first interrupt request to the child, then stop."""
        while not self._done.is_set():
            if self.controls.interrupt.wait(0.05):
                logger.info("forwarding interrupt to child %s", self.pid)
                if self._send_interrupt is not None:
                    try:
                        self._send_interrupt()
                    except OSError as exc:
                        logger.debug("could not signal child: %s", exc)
                return

    # ------------------------------------------------------------------
    # Pipe mode
    # ------------------------------------------------------------------
    def _run_with_pipes(self) -> int:
        try:
            proc = subprocess.Popen(self.command, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as exc:
            raise LaunchError(f"failed to start {self.command[0]}: {exc}") from exc

        self.pid = proc.pid
        self._send_interrupt = lambda: proc.send_signal(signal.SIGINT)
        logger.debug("started %s (pid %s) with pipes", self.command, proc.pid)

        readers = [
            self._start(self._pump, proc.stdout.fileno(), Stream.OUT, name="outputbuddy-stdout"),
            self._start(self._pump, proc.stderr.fileno(), Stream.ERR, name="outputbuddy-stderr"),
        ]
        watcher = self._start(self._watch_interrupt, name="outputbuddy-signals", daemon=True)
        try:
            for reader in readers:
                reader.join()
            returncode = proc.wait()
        finally:
            self._done.set()
            watcher.join()
            proc.stdout.close()
            proc.stderr.close()
        return exit_code_from_returncode(returncode)

    # ------------------------------------------------------------------
    # PTY mode
    # ------------------------------------------------------------------
    def _forward_input(self, stdin_fd: int, master_fd: int) -> None:
        while not self._done.is_set():
            try:
                data = os.read(stdin_fd, 1024)
                if not data:
                    break
                os.write(master_fd, data)
            except OSError:
                break

    def _relay_resize(self, stdin_fd: int, master_fd: int) -> None:
        while not self._done.is_set():
            try:
                self.controls.resize.get(timeout=0.1)
            except queue.Empty:
                continue
            copy_winsize(stdin_fd, master_fd)

    def _run_with_pty(self) -> int:
        import pty
        import termios
        import tty

        stdin_fd = sys.stdin.fileno()
        try:
            pid, master_fd = pty.fork()
        except OSError as exc:
            raise LaunchError(f"failed to allocate a terminal: {exc}") from exc

        if pid == 0:
            try:
                os.execvp(self.command[0], self.command)
            except OSError as exc:
                os.write(2, f"outputbuddy: failed to exec {self.command[0]}: {exc}\n".encode())
            os._exit(127)

        self.pid = pid
        self._send_interrupt = lambda: os.kill(pid, signal.SIGINT)
        logger.debug("started %s (pid %s) in a pty", self.command, pid)
        copy_winsize(stdin_fd, master_fd)

        saved_attrs = None
        if os.isatty(stdin_fd):
            saved_attrs = termios.tcgetattr(stdin_fd)
            tty.setraw(stdin_fd)

        watcher = None
        try:
            self._start(self._forward_input, stdin_fd, master_fd, name="outputbuddy-stdin", daemon=True)
            self._start(self._relay_resize, stdin_fd, master_fd, name="outputbuddy-resize", daemon=True)
            watcher = self._start(self._watch_interrupt, name="outputbuddy-signals", daemon=True)
            reader = self._start(self._pump, master_fd, Stream.OUT, name="outputbuddy-pty")
            reader.join()
            _, status = os.waitpid(pid, 0)
        finally:
            self._done.set()
            if watcher is not None:
                watcher.join()
            if saved_attrs is not None:
                termios.tcsetattr(stdin_fd, termios.TCSADRAIN, saved_attrs)
            os.close(master_fd)
        return exit_code_from_returncode(os.waitstatus_to_exitcode(status))
