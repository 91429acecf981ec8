# paylink/cli/commands: Command modules for the paylink CLI.
#
# Each module in this package provides one CLI command.

from .classify import classify
from .fetch import fetch
from .watch import watch

__all__ = [
    "classify",
    "fetch",
    "watch",
]
