"""
Terminal front-ends implementing :class:`tarpipe.plugins.protocols.PipelineUI`.
"""

__all__ = ["ConsoleUI"]

from .console import ConsoleUI
