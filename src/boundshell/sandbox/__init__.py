"""
Executor backends.
"""

from boundshell.sandbox._base import Sandbox
from boundshell.sandbox.local import LocalSandbox

__all__ = ["Sandbox", "LocalSandbox"]
