"""
Owned output buffer for assembled programs.
"""

from typing import Iterator, List

from .instructions import INSTRUCTION_WIDTH


class ProgramBuffer:
    """
    Assembled machine code handed to the caller.

    Holds little-endian 32-bit words back to back. The caller owns the buffer
    and releases it exactly once when done with it, either by calling
    release() or by using the buffer as a context manager. Releasing drops the
    data; any later access raises ValueError.
    """

    def __init__(self, data: bytes = b""):
        self._data = bytes(data)
        self._released = False

    @classmethod
    def from_words(cls, words: List[int]) -> "ProgramBuffer":
        """Build a buffer from 32-bit words in instruction order."""
        return cls(b"".join(w.to_bytes(INSTRUCTION_WIDTH, "little") for w in words))

    @property
    def data(self) -> bytes:
        self._check()
        return self._data

    @property
    def released(self) -> bool:
        return self._released

    def words(self) -> List[int]:
        """Return the program as a list of 32-bit words."""
        data = self.data
        return [
            int.from_bytes(data[i:i + INSTRUCTION_WIDTH], "little")
            for i in range(0, len(data), INSTRUCTION_WIDTH)
        ]

    def hex_words(self) -> List[str]:
        return [f"{word:08x}" for word in self.words()]

    def release(self) -> None:
        """Drop the buffer contents. A second call does nothing."""
        self._data = b""
        self._released = True

    def _check(self) -> None:
        if self._released:
            raise ValueError("operation forbidden on released ProgramBuffer")

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        self._check()
        return len(self._data)

    def __iter__(self) -> Iterator[int]:
        return iter(self.data)

    def __eq__(self, other) -> bool:
        if isinstance(other, ProgramBuffer):
            return self.data == other.data
        if isinstance(other, (bytes, bytearray)):
            return self.data == bytes(other)
        return NotImplemented

    __hash__ = None

    def __enter__(self) -> "ProgramBuffer":
        self._check()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._released:
            return "ProgramBuffer(<released>)"
        return f"ProgramBuffer({len(self._data)} bytes)"
