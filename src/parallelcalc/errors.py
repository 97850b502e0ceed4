"""
Errors raised at the leaves of a calculation. Parse errors of the wire format live with the codec.

`ConfigurationError` means the invocation or environment is wrong and retrying won't help; `ProcessError` is an
operational failure of an external tool, which the caller may report or retry.
"""

from enum import Enum
from typing import Optional


class ConfigurationError(Exception):
    pass


class Termination(Enum):
    EXITED = "exited"
    SIGNALED = "signaled"
    SPAWN_FAILED = "spawn failed"


class ProcessError(RuntimeError):
    def __init__(self, what: str, termination: Termination, returncode: Optional[int], stderr: str):
        self.what = what
        self.termination = termination
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip()
        super().__init__(f"{what} {termination.value} (returncode {returncode})" + (f": {detail}" if detail else ""))


class ResourceError(OSError):
    """Pipes or streams to a child could not be set up."""
