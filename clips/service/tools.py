"""
Child process runner for the external tools.

Commands are always argument lists handed straight to the OS, never shell
strings, so URLs and paths cannot be interpreted by a shell.
"""

import subprocess
import threading
from collections import deque
from dataclasses import dataclass
from typing import List, Optional

# Lines of output kept for diagnostics
OUTPUT_TAIL_LINES = 200


@dataclass
class ToolInvocation:
    """Record of one external tool run"""

    argv: List[str]
    returncode: Optional[int] = None
    stdout: str = ''
    stderr: str = ''
    timed_out: bool = False
    error: Optional[str] = None
    timeout: Optional[float] = None

    @property
    def program(self):
        return self.argv[0] if self.argv else ''

    @property
    def ok(self):
        return self.returncode == 0 and not self.timed_out and self.error is None

    def diagnostic(self, max_lines=5):
        """
        Summarize why the run failed.

        Returns:
            str: Spawn error, timeout notice, or exit code plus stderr tail
        """
        if self.error:
            return f'could not start {self.program}: {self.error}'
        if self.timed_out:
            return f'{self.program} timed out after {self.timeout}s'
        tail = [line for line in self.stderr.strip().splitlines() if line.strip()][-max_lines:]
        message = f'{self.program} exited with code {self.returncode}'
        if tail:
            message += ': ' + ' | '.join(tail)
        return message


def run_tool(argv, timeout=None, logger=None):
    """
    Run a tool to completion and capture its output.

    Args:
        argv: Command as a list of arguments
        timeout: Seconds before the process is killed (None = no limit)
        logger: Optional callable(str) for logging

    Returns:
        ToolInvocation (never raises for spawn failures or timeouts)
    """

    def log(message):
        if logger:
            logger(message)

    invocation = ToolInvocation(argv=[str(arg) for arg in argv], timeout=timeout)
    log(f'Running: {subprocess.list2cmdline(invocation.argv)}')

    try:
        result = subprocess.run(
            invocation.argv,
            capture_output=True,
            text=True,
            errors='replace',
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        invocation.timed_out = True
        invocation.stdout = _as_text(e.stdout)
        invocation.stderr = _as_text(e.stderr)
        return invocation
    except OSError as e:
        invocation.error = str(e)
        return invocation

    invocation.returncode = result.returncode
    invocation.stdout = result.stdout or ''
    invocation.stderr = result.stderr or ''
    return invocation


def run_tool_streaming(argv, timeout=None, on_line=None, logger=None):
    """
    Run a tool while handing each stdout line to a callback.

    Used for tools that report progress on stdout. The callback only observes
    the run: anything it raises is logged and ignored. stderr is drained on a
    separate thread and only its tail is kept.

    Args:
        argv: Command as a list of arguments
        timeout: Seconds before the process is killed (None = no limit)
        on_line: Optional callable(str) called for every stdout line
        logger: Optional callable(str) for logging

    Returns:
        ToolInvocation (never raises for spawn failures or timeouts)
    """

    def log(message):
        if logger:
            logger(message)

    invocation = ToolInvocation(argv=[str(arg) for arg in argv], timeout=timeout)
    log(f'Running: {subprocess.list2cmdline(invocation.argv)}')

    try:
        proc = subprocess.Popen(
            invocation.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors='replace',
        )
    except OSError as e:
        invocation.error = str(e)
        return invocation

    stdout_tail = deque(maxlen=OUTPUT_TAIL_LINES)
    stderr_tail = deque(maxlen=OUTPUT_TAIL_LINES)

    def drain_stderr():
        for line in proc.stderr:
            stderr_tail.append(line)

    def kill():
        invocation.timed_out = True
        proc.kill()

    stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
    stderr_thread.start()

    killer = None
    if timeout is not None:
        killer = threading.Timer(timeout, kill)
        killer.daemon = True
        killer.start()

    try:
        for line in proc.stdout:
            stdout_tail.append(line)
            if on_line:
                try:
                    on_line(line.rstrip('\n'))
                except Exception as e:
                    log(f'Progress callback failed: {e}')
        proc.wait()
    finally:
        if killer:
            killer.cancel()
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        stderr_thread.join(timeout=5)
        proc.stdout.close()
        proc.stderr.close()

    if not invocation.timed_out:
        invocation.returncode = proc.returncode
    invocation.stdout = ''.join(stdout_tail)
    invocation.stderr = ''.join(stderr_tail)
    return invocation


def _as_text(value):
    if value is None:
        return ''
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value
