import logging
from typing import BinaryIO, Iterator

TRACE = 5  #: Log level below DEBUG for per-element messages
logging.addLevelName(TRACE, "TRACE")


class BitAccumulator:
    """Single-byte bit accumulator.

    Collects individual bits MSB first until a full byte has been
    assembled. Once full, further pushes are ignored until ``clear`` is
    called.

    :ivar bits: 8-bit register holding the bits pushed so far.
    :type bits: int
    :ivar filled: Number of valid high-order bits in ``bits`` (0-8).
    :type filled: int
    """

    def __init__(self):
        """Initialize an empty accumulator.

        :returns: None
        :rtype: None
        """
        self.bits = 0
        self.filled = 0

    def push(self, bit: bool):
        """Append ``bit`` at the next free position, MSB first.

        Pushing into a complete accumulator is a no-op.

        :param bit: Bit value to store.
        :type bit: bool
        :returns: None
        :rtype: None
        """
        if self.filled < 8:
            mask = 0x80 >> self.filled
            if bit:
                self.bits |= mask
            else:
                self.bits &= ~mask & 0xFF
            self.filled += 1

    def is_complete(self) -> bool:
        """Return ``True`` once all 8 bits have been pushed."""
        return self.filled == 8

    def clear(self):
        """Reset the register and fill count to zero."""
        self.bits = 0
        self.filled = 0

    def __str__(self) -> str:
        """Render the filled bits as a ``0``/``1`` string, MSB first.

        :returns: ``filled`` characters; empty when nothing is pushed.
        :rtype: str
        """
        return "".join(
            "1" if (self.bits >> (7 - i)) & 1 else "0"
            for i in range(self.filled)
        )


def read_blocks(fp: BinaryIO, size: int) -> Iterator[bytes]:
    """Yield consecutive ``size``-byte blocks read from ``fp``.

    A trailing block shorter than ``size`` is dropped.

    :param fp: Readable binary stream.
    :type fp: BinaryIO
    :param size: Block size in bytes (>= 1).
    :type size: int
    :returns: Iterator over full blocks, in stream order.
    :rtype: Iterator[bytes]
    :raises ValueError: If ``size`` is less than 1.
    """
    if size < 1:
        raise ValueError(f"Block size must be at least 1 byte, got {size}")
    while True:
        block = fp.read(size)
        # Raw streams may return short reads before EOF.
        while block and len(block) < size:
            more = fp.read(size - len(block))
            if not more:
                return
            block += more
        if len(block) < size:
            return
        yield block


def format_bits(data: bytes) -> str:
    """Render ``data`` as a string of ``0``/``1`` characters, MSB first."""
    return "".join(f"{b:08b}" for b in data)


def format_word(value: int, width: int = 16) -> str:
    """Render ``value`` as a zero-padded binary string.

    :param value: Unsigned integer to format.
    :type value: int
    :param width: Minimum number of digits.
    :type width: int
    :returns: Binary digits, MSB first.
    :rtype: str
    """
    return f"{value:0{width}b}"
