import logging
from typing import BinaryIO, List, Optional, TextIO

from bitops import format_bits, read_blocks, TRACE

logger = logging.getLogger(__name__)

DEFAULT_SEP = "\t"  #: Default bit and byte separator for rendered counts
DEFAULT_BLOCK_BYTES = 1  #: Default counter block size


class BitFrequencyCounter:
    """Per-bit-position set-bit counter over fixed-size byte blocks.

    Bit positions are numbered big-endian: position ``j * 8 + k`` is bit
    ``k`` (0 = most significant) of byte ``j`` within a block.

    A counter built with ``block_size_bytes == 0`` has no bit positions
    and only accepts empty blocks.

    :ivar counts: Number of blocks, since the last reset, in which each
                  bit position was set.
    :type counts: List[int]
    :ivar blocks_seen: Number of blocks accumulated since the last reset.
    :type blocks_seen: int
    """

    def __init__(self, block_size_bytes: int = DEFAULT_BLOCK_BYTES):
        """Create a zeroed counter for ``block_size_bytes``-byte blocks.

        :param block_size_bytes: Size of every block passed to ``update``.
        :type block_size_bytes: int
        :returns: None
        :rtype: None
        """
        self._block_size = block_size_bytes
        self.counts: List[int] = [0] * (block_size_bytes * 8)
        self.blocks_seen = 0

    @property
    def n_bytes(self) -> int:
        """Block size in bytes, fixed for the counter's lifetime."""
        return self._block_size

    def update(self, block: bytes):
        """Add the set bits of one ``block`` to the per-position counts.

        :param block: Exactly ``n_bytes`` bytes.
        :type block: bytes
        :returns: None
        :rtype: None
        :raises ValueError: If ``block`` is not exactly ``n_bytes`` long.
        """
        if len(block) != self._block_size:
            raise ValueError(
                f"Expected a {self._block_size}-byte block, got {len(block)}"
            )
        counts = self.counts
        for byte_i, byte in enumerate(block):
            if not byte:
                continue
            offset = byte_i * 8
            for bit in range(8):
                if byte & (0x80 >> bit):
                    counts[offset + bit] += 1
        self.blocks_seen += 1

    def clear(self):
        """Zero every count and the block counter."""
        self.blocks_seen = 0
        self.counts = [0] * (self._block_size * 8)

    def count(self) -> int:
        """Return the number of blocks accumulated since the last reset."""
        return self.blocks_seen

    def render(
        self, bit_sep: str = DEFAULT_SEP, byte_sep: str = DEFAULT_SEP
    ) -> str:
        """Format the counts as one group of 8 numbers per block byte.

        Numbers within a group are joined by ``bit_sep`` and groups by
        ``byte_sep``.

        :param bit_sep: Separator between counts of the same byte.
        :type bit_sep: str
        :param byte_sep: Separator between byte groups.
        :type byte_sep: str
        :returns: The rendered counts line (without newline).
        :rtype: str
        """
        groups = []
        for start in range(0, len(self.counts), 8):
            chunk = self.counts[start:start + 8]
            groups.append(bit_sep.join(str(c) for c in chunk))
        return byte_sep.join(groups)

    def __str__(self) -> str:
        return self.render()


def report_counts(
    fp: BinaryIO,
    counter: BitFrequencyCounter,
    out: TextIO,
    chunks: Optional[int] = None,
    bit_sep: str = DEFAULT_SEP,
    byte_sep: str = DEFAULT_SEP,
) -> int:
    """Stream ``fp`` through ``counter`` and write rendered count lines.

    With ``chunks`` set, a line is written and the counter cleared every
    time ``chunks`` blocks have accumulated. Any blocks left unreported at
    end of input are written as one final line. A trailing partial block
    is never counted.

    :param fp: Readable binary input stream.
    :type fp: BinaryIO
    :param counter: Counter to accumulate into; its block size drives
                    the reads.
    :type counter: BitFrequencyCounter
    :param out: Text stream receiving one line per reporting cycle.
    :type out: TextIO
    :param chunks: Optional reporting cadence, in blocks.
    :type chunks: Optional[int]
    :param bit_sep: Separator between counts of the same byte.
    :type bit_sep: str
    :param byte_sep: Separator between byte groups.
    :type byte_sep: str
    :returns: Number of full blocks read from ``fp``.
    :rtype: int
    """
    n_blocks = 0
    trace = logger.isEnabledFor(TRACE)
    for block in read_blocks(fp, counter.n_bytes):
        n_blocks += 1
        if trace:
            logger.log(TRACE, "read %s", format_bits(block))
        counter.update(block)
        if chunks is not None and counter.count() >= chunks:
            logger.debug(
                "reporting full block (%d elements)", counter.count()
            )
            out.write(counter.render(bit_sep, byte_sep) + "\n")
            counter.clear()
    # Final, possibly partial, reporting cycle
    if counter.count() > 0:
        logger.debug("reporting partial block (%d elements)", counter.count())
        out.write(counter.render(bit_sep, byte_sep) + "\n")
        counter.clear()
    return n_blocks
