"""
Scoped resources for a single run.

RunSession owns everything that has to be released however the run ends:
the temporary scan listing, the termination signal handlers and the
keep-awake helper process.
"""

import os
import shutil
import signal
import subprocess
import tempfile
from typing import TextIO

# Signals that should stop the run the same way Ctrl-C does
TERMINATION_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGHUP", "SIGQUIT", "SIGTERM") if hasattr(signal, name)
)

KEEP_AWAKE_COMMAND = ["caffeinate", "-sim", "-t", "3600"]


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"Received signal {signum}")


class KeepAwake:
    """
    Keeps the machine from sleeping while the run is in progress.

    Uses caffeinate where it exists (macOS) and does nothing elsewhere.
    """

    def __init__(self, command: list[str] | None = None):
        self.command = command or KEEP_AWAKE_COMMAND
        self.process: subprocess.Popen | None = None

    @property
    def available(self) -> bool:
        return shutil.which(self.command[0]) is not None

    def start(self) -> bool:
        if self.process is not None or not self.available:
            return False
        try:
            self.process = subprocess.Popen(
                self.command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            print(f"[WARN] Could not start {self.command[0]}: {e}")
            return False
        return True

    def stop(self) -> None:
        if self.process is None:
            return
        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
        self.process = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


class RunSession:
    """
    Context manager for one scan/relocate run.

    On enter: creates the temporary listing file, routes SIGHUP/SIGQUIT/SIGTERM
    to KeyboardInterrupt and starts the keep-awake helper. On exit all three
    are undone, whether the run finished, failed or was interrupted.
    """

    def __init__(self, keep_awake: bool = True, install_signal_handlers: bool = True):
        self.keep_awake = KeepAwake() if keep_awake else None
        self.install_signal_handlers = install_signal_handlers
        self.listing: TextIO | None = None
        self.listing_path: str | None = None
        self._previous_handlers: dict[int, object] = {}

    def __enter__(self):
        fd, self.listing_path = tempfile.mkstemp(prefix="fix_lfp-", suffix=".lst")
        self.listing = os.fdopen(fd, 'w+', encoding='utf-8', errors='surrogateescape', newline='')

        if self.install_signal_handlers:
            for signum in TERMINATION_SIGNALS:
                try:
                    self._previous_handlers[signum] = signal.signal(signum, _raise_interrupt)
                except ValueError:
                    # Not in the main thread
                    break

        if self.keep_awake is not None:
            self.keep_awake.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        """Release everything the session holds. Safe to call twice."""
        if self.keep_awake is not None:
            self.keep_awake.stop()

        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

        if self.listing is not None:
            self.listing.close()
            self.listing = None
        if self.listing_path is not None:
            try:
                os.remove(self.listing_path)
            except FileNotFoundError:
                pass
            self.listing_path = None
