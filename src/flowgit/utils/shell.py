"""Shell execution utilities for flowgit."""

import shlex
import subprocess
import sys
from typing import Optional

from flowgit.utils.errors import PortExecutionFailure
from flowgit.utils.logging import debug
from flowgit.utils.types import CmdArgs


def _check_returncode(sp: subprocess.CompletedProcess, cmd: CmdArgs):
    """Raise PortExecutionFailure if the subprocess exited non-zero."""
    rc = sp.returncode
    if rc == 0:
        return
    stderr = sp.stderr.decode("UTF-8") if sp.stderr else ""
    raise PortExecutionFailure(shlex.join(cmd), rc, stderr.strip())


def run_multiline(
    cmd: CmdArgs, *, check: bool = True, out: bool = False, cwd: Optional[str] = None
) -> Optional[str]:
    """Run a command and return its output (with newlines preserved).

    With check=False a failing command yields None instead of raising.
    With out=True stdout goes straight to the terminal and "" is returned.
    """
    debug("Running: {}", shlex.join(cmd))
    sys.stdout.flush()
    sys.stderr.flush()
    sp = subprocess.run(
        cmd,
        stdout=1 if out else subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd,
    )
    if check:
        _check_returncode(sp, cmd)
    if sp.returncode != 0:
        return None
    if sp.stdout is None:
        return ""
    return sp.stdout.decode("UTF-8")


def run_always_return(cmd: CmdArgs, **kwargs) -> str:
    """Run a command that must succeed and return its stripped output."""
    out = run(cmd, **kwargs)
    assert out is not None
    return out


def run(cmd: CmdArgs, **kwargs) -> Optional[str]:
    """Run a command and return stripped output."""
    out = run_multiline(cmd, **kwargs)
    return None if out is None else out.strip()


def succeeds(cmd: CmdArgs, **kwargs) -> bool:
    """Run a command for its exit status only."""
    return run_multiline(cmd, check=False, **kwargs) is not None


def remove_prefix(s: str, prefix: str) -> str:
    """Remove a prefix from a string if present."""
    if s.startswith(prefix):
        return s[len(prefix):]
    return s
