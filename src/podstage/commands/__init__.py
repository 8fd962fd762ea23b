"""CLI command implementations for podstage.

Each command lives in its own module, separate from the Typer setup in
cli.py.
"""

from .gc import gc
from .init import init
from .list import list_cmd
from .run_prepared import run_prepared
from .status import status

__all__ = [
    "gc",
    "init",
    "list_cmd",
    "run_prepared",
    "status",
]
