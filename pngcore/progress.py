"""
Progress observer contract.

The codec reports coarse stage names and increments; it must behave the
same whether or not anything is listening.
"""

from typing import Protocol


class ProgressObserver(Protocol):
    """
    Receives stage-name + increment events from decode and encode.

    Implementations shared between worker threads must make update()
    thread-safe themselves.
    """

    def update(self, stage: str, increment: int = 1) -> None:
        ...


class NullProgressObserver:
    """Observer that ignores every event."""

    def update(self, stage: str, increment: int = 1) -> None:
        pass


# Stage counts per file, for sizing progress bars
DECODE_STAGES = 4
ENCODE_STAGES = 5
