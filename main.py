import argparse
import logging
import sys

from typing import Optional, TextIO
from bitextract import ELEMENT_BITS, ExtractionStats, extract_stream
from bitfreq import (
    BitFrequencyCounter,
    DEFAULT_BLOCK_BYTES,
    DEFAULT_SEP,
    report_counts,
)
from bitops import TRACE

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

#: Log level per ``-v`` count; anything beyond the last entry uses it.
VERBOSITY_LEVELS = [
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
    TRACE,
]
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

_log_handler: Optional[logging.Handler] = None


def _positive_int(value: str) -> int:
    """Argparse type accepting integers >= 1.

    :param value: Raw command-line value.
    :type value: str
    :returns: Parsed integer.
    :rtype: int
    :raises argparse.ArgumentTypeError: If ``value`` is not a positive int.
    """
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def _non_negative_int(value: str) -> int:
    """Argparse type accepting integers >= 0.

    :param value: Raw command-line value.
    :type value: str
    :returns: Parsed integer.
    :rtype: int
    :raises argparse.ArgumentTypeError: If ``value`` is negative or not
        an int.
    """
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {n}")
    return n


def _unescape(sep: str) -> str:
    """Expand backslash escapes such as ``\\t`` in a separator argument.

    A literal backslash must be written as ``\\\\``.

    :param sep: Separator as typed on the command line.
    :type sep: str
    :returns: Separator with escapes decoded.
    :rtype: str
    :raises argparse.ArgumentTypeError: If ``sep`` holds an incomplete
        escape such as a lone trailing backslash.
    """
    try:
        return sep.encode("latin-1", "backslashreplace").decode(
            "unicode_escape"
        )
    except UnicodeDecodeError:
        raise argparse.ArgumentTypeError(
            f"invalid escape in separator {sep!r} (write a backslash as \\\\)"
        )


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Bit-level statistics and extraction for raw binary files"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show log messages. Multiple -v options increase the verbosity",
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    counts = subparsers.add_parser(
        "counts",
        aliases=["c"],
        parents=[common],
        help="Show per-bit-position set-bit counts for a binary file",
    )
    counts.add_argument("input", metavar="FILE", help="Input raw data file")
    counts.add_argument(
        "-b",
        "--block-bytes",
        metavar="B",
        type=_positive_int,
        default=DEFAULT_BLOCK_BYTES,
        help=f"Block size in bytes (default: {DEFAULT_BLOCK_BYTES})",
    )
    counts.add_argument(
        "-c",
        "--chunks",
        metavar="N",
        type=_non_negative_int,
        default=None,
        help="Report counts every N blocks (default: once, at the end)",
    )
    counts.add_argument(
        "--bit-sep",
        metavar="SEP",
        type=_unescape,
        default=DEFAULT_SEP,
        help=(
            "Output separator between bit counts (default: tab). "
            "Escapes like \\t are decoded, so write a backslash as \\\\"
        ),
    )
    counts.add_argument(
        "--byte-sep",
        metavar="SEP",
        type=_unescape,
        default=DEFAULT_SEP,
        help=(
            "Output separator between byte groups (default: tab). "
            "Escapes like \\t are decoded, so write a backslash as \\\\"
        ),
    )

    extract = subparsers.add_parser(
        "extract",
        aliases=["x"],
        parents=[common],
        help="Pack one bit of every 16-bit big-endian word into bytes",
    )
    extract.add_argument(
        "bit",
        metavar="BIT",
        type=int,
        choices=range(ELEMENT_BITS),
        help=f"Bit to report, 0 (MSB) to {ELEMENT_BITS - 1} (LSB)",
    )
    extract.add_argument("input", metavar="FILE", help="Input raw data file")
    extract.add_argument("output", metavar="OUTPUT", help="Output data file")

    return parser


def setup_logging(verbosity: int) -> None:
    """Route log records to stderr at a level chosen by ``verbosity``.

    :param verbosity: Number of ``-v`` flags given.
    :type verbosity: int
    :returns: None
    :rtype: None
    """
    global _log_handler
    level = VERBOSITY_LEVELS[min(verbosity, len(VERBOSITY_LEVELS) - 1)]
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    root = logging.getLogger()
    # Replace the handler from an earlier call instead of stacking another
    if _log_handler is not None:
        root.removeHandler(_log_handler)
        _log_handler.close()
    root.addHandler(handler)
    root.setLevel(level)
    _log_handler = handler


def count_file(
    input_path: str,
    block_bytes: int = DEFAULT_BLOCK_BYTES,
    chunks: Optional[int] = None,
    bit_sep: str = DEFAULT_SEP,
    byte_sep: str = DEFAULT_SEP,
    out: Optional[TextIO] = None,
) -> int:
    """Print bit-position counts of ``input_path``, one line per cycle.

    :param input_path: Binary file to analyze.
    :type input_path: str
    :param block_bytes: Block size in bytes.
    :type block_bytes: int
    :param chunks: Report and reset every ``chunks`` blocks when set.
    :type chunks: Optional[int]
    :param bit_sep: Separator between counts of the same byte.
    :type bit_sep: str
    :param byte_sep: Separator between byte groups.
    :type byte_sep: str
    :param out: Destination text stream (default: stdout).
    :type out: Optional[TextIO]
    :returns: Number of full blocks read.
    :rtype: int
    :raises OSError: If the input cannot be opened or read.
    """
    out = sys.stdout if out is None else out
    logger.info("counter size is %d bytes", block_bytes)
    if chunks is not None:
        logger.info("reporting counts every %d elements", chunks)
    counter = BitFrequencyCounter(block_bytes)
    logger.info("reading from %s", input_path)
    with open(input_path, "rb") as f:
        n_blocks = report_counts(
            f, counter, out, chunks=chunks, bit_sep=bit_sep, byte_sep=byte_sep
        )
    logger.info(
        "%d blocks (%d bytes) read from file",
        n_blocks,
        n_blocks * counter.n_bytes,
    )
    return n_blocks


def extract_file(
    report_bit: int, input_path: str, output_path: str
) -> ExtractionStats:
    """Write bit ``report_bit`` of each 16-bit word of ``input_path``,
    packed into bytes, to ``output_path`` (created or truncated).

    :param report_bit: Bit index in ``0..15`` (0 = MSB).
    :type report_bit: int
    :param input_path: Source file of big-endian 16-bit words.
    :type input_path: str
    :param output_path: Destination file.
    :type output_path: str
    :returns: Extraction summary.
    :rtype: ExtractionStats
    :raises OSError: If either file cannot be opened, read or written.
    """
    logger.info("reading from %s", input_path)
    with open(input_path, "rb") as src:
        logger.info("writing to %s", output_path)
        with open(output_path, "wb") as dst:
            stats = extract_stream(src, dst, report_bit)
    logger.info("read %d 16bit blocks", stats.elements_read)
    logger.info("returned %d bytes", stats.bytes_written)
    if stats.dropped_bits == 0:
        logger.info("all bits returned")
    elif stats.dropped_bits == 1:
        logger.info("1 hanging bit dropped")
    else:
        logger.info("%d hanging bits dropped", stats.dropped_bits)
    return stats


def main(argv=None):
    """Entry point for the CLI tool.

    Exits with status 1 after printing a diagnostic on I/O errors.

    :param argv: Argument list (default: ``sys.argv[1:]``).
    :type argv: Optional[List[str]]
    :returns: None
    :rtype: None
    """
    parser = get_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.cmd in ["counts", "c"]:
            count_file(
                args.input,
                block_bytes=args.block_bytes,
                chunks=args.chunks,
                bit_sep=args.bit_sep,
                byte_sep=args.byte_sep,
            )
        elif args.cmd in ["extract", "x"]:
            extract_file(args.bit, args.input, args.output)
    except OSError as e:
        print(f"[!] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
