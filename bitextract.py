import logging
import struct
from typing import BinaryIO, NamedTuple

from bitops import BitAccumulator, format_word, read_blocks, TRACE

logger = logging.getLogger(__name__)

ELEMENT_BITS = 16  #: Width of each source element
ELEMENT_BYTES = ELEMENT_BITS // 8


class ExtractionStats(NamedTuple):
    """Summary of one ``extract_stream`` run.

    :ivar elements_read: Number of 16-bit elements consumed.
    :ivar bytes_written: Number of packed bytes written to the output.
    :ivar dropped_bits: Bits left in the accumulator at end of input and
                        discarded (0-7).
    """

    elements_read: int
    bytes_written: int
    dropped_bits: int


def _check_bit(report_bit: int):
    if not 0 <= report_bit < ELEMENT_BITS:
        raise ValueError(
            f"Report bit must be in 0..{ELEMENT_BITS - 1}, got {report_bit}"
        )


def report_mask(report_bit: int) -> int:
    """Return the 16-bit mask selecting ``report_bit`` (0 = MSB)."""
    _check_bit(report_bit)
    return 0x8000 >> report_bit


def extract_bit(element: int, report_bit: int) -> bool:
    """Return bit ``report_bit`` of a 16-bit ``element``.

    Bit 0 is the most significant bit, bit 15 the least significant.

    :param element: Unsigned 16-bit value.
    :type element: int
    :param report_bit: Bit index in ``0..15``.
    :type report_bit: int
    :returns: ``True`` if the selected bit is set.
    :rtype: bool
    """
    return (element >> (ELEMENT_BITS - 1 - report_bit)) & 1 == 1


def extract_stream(
    input_fp: BinaryIO, output_fp: BinaryIO, report_bit: int
) -> ExtractionStats:
    """Pack bit ``report_bit`` of every big-endian 16-bit input element.

    Eight consecutive extracted bits form one output byte, first bit in
    the MSB. A trailing odd input byte is never read, and a trailing
    partial output byte is discarded.

    :param input_fp: Readable binary stream of 16-bit big-endian elements.
    :type input_fp: BinaryIO
    :param output_fp: Writable binary stream for the packed bytes.
    :type output_fp: BinaryIO
    :param report_bit: Bit index in ``0..15`` (0 = MSB).
    :type report_bit: int
    :returns: Counts of elements read, bytes written and bits dropped.
    :rtype: ExtractionStats
    :raises ValueError: If ``report_bit`` is outside ``0..15``.
    """
    mask = report_mask(report_bit)
    logger.debug("report bit mask is %s", format_word(mask))
    trace = logger.isEnabledFor(TRACE)

    acc = BitAccumulator()
    n_elements = 0
    n_output = 0
    for raw in read_blocks(input_fp, ELEMENT_BYTES):
        value = struct.unpack(">H", raw)[0]
        bit = extract_bit(value, report_bit)
        if trace:
            logger.log(TRACE, "read value %s (%s)", format_word(value), bit)
        acc.push(bit)
        n_elements += 1
        # Emit before the next push; a full accumulator ignores pushes.
        if acc.is_complete():
            output_fp.write(bytes((acc.bits,)))
            acc.clear()
            n_output += 1
            if trace:
                logger.log(TRACE, "wrote output byte")

    if acc.filled and trace:
        logger.log(TRACE, "discarding partial byte %s", acc)
    return ExtractionStats(n_elements, n_output, acc.filled)
