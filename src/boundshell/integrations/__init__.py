"""Framework integrations for boundshell.

Import the submodule for the framework you use; each one needs its optional
extra installed.
"""

from boundshell.integrations.langchain import HAS_LANGCHAIN, create_langchain_tools

__all__ = ["HAS_LANGCHAIN", "create_langchain_tools"]
