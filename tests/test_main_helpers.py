import argparse
import io
import logging

import pytest


def test_unescape_separators(m):
    assert m._unescape("\\t") == "\t"
    assert m._unescape("\\n") == "\n"
    assert m._unescape(", ") == ", "
    assert m._unescape("é") == "é"


def test_positive_int(m):
    assert m._positive_int("4") == 4
    with pytest.raises(argparse.ArgumentTypeError):
        m._positive_int("0")
    with pytest.raises(argparse.ArgumentTypeError):
        m._positive_int("four")


def test_cli_parser_defaults(m):
    parser = m.get_parser()
    ns = parser.parse_args(["counts", "data.bin"])
    assert ns.cmd == "counts"
    assert ns.block_bytes == 1
    assert ns.chunks is None
    assert ns.bit_sep == "\t" and ns.byte_sep == "\t"
    assert ns.verbose == 0

    ns2 = parser.parse_args(["x", "7", "in.bin", "out.bin", "-vvv"])
    assert ns2.cmd in ("extract", "x")
    assert ns2.bit == 7
    assert ns2.verbose == 3


def test_cli_parser_rejects_zero_block_size(m):
    with pytest.raises(SystemExit):
        m.get_parser().parse_args(["counts", "data.bin", "-b", "0"])


@pytest.mark.parametrize(
    "verbosity, level",
    [(0, logging.ERROR), (1, logging.WARNING), (2, logging.INFO),
     (3, logging.DEBUG), (4, 5), (9, 5)],
)
def test_setup_logging_levels(verbosity, level, m):
    m.setup_logging(verbosity)
    assert logging.getLogger().level == level


def test_count_file_returns_block_count(write_bin, m):
    path = write_bin(b"\x0f" * 5)
    out = io.StringIO()
    assert m.count_file(str(path), chunks=3, out=out) == 5
    assert out.getvalue().splitlines() == [
        "0\t0\t0\t0\t3\t3\t3\t3",
        "0\t0\t0\t0\t2\t2\t2\t2",
    ]


def test_extract_file_returns_stats(write_bin, words_fn, tmp_path, m):
    src = write_bin(words_fn(*[0x0100] * 11))
    stats = m.extract_file(7, str(src), str(tmp_path / "o.bin"))
    assert stats.elements_read == 11
    assert stats.bytes_written == 1
    assert stats.dropped_bits == 3


def test_cli_parser_rejects_negative_chunks(m):
    parser = m.get_parser()
    with pytest.raises(SystemExit) as exc:
        parser.parse_args(["counts", "data.bin", "-c", "-3"])
    assert exc.value.code == 2
    assert parser.parse_args(["counts", "data.bin", "-c", "0"]).chunks == 0


def test_non_negative_int(m):
    assert m._non_negative_int("0") == 0
    assert m._non_negative_int("12") == 12
    with pytest.raises(argparse.ArgumentTypeError):
        m._non_negative_int("-1")
    with pytest.raises(argparse.ArgumentTypeError):
        m._non_negative_int("x")


def test_separator_backslash_must_be_doubled(m):
    parser = m.get_parser()
    ns = parser.parse_args(["counts", "data.bin", "--bit-sep", "\\\\"])
    assert ns.bit_sep == "\\"
    with pytest.raises(SystemExit) as exc:
        parser.parse_args(["counts", "data.bin", "--byte-sep", "\\"])
    assert exc.value.code == 2
    with pytest.raises(argparse.ArgumentTypeError):
        m._unescape("\\")


def test_separator_help_mentions_doubled_backslash(m, capsys):
    with pytest.raises(SystemExit):
        m.get_parser().parse_args(["counts", "--help"])
    out = " ".join(capsys.readouterr().out.split())
    assert "write a backslash as \\\\" in out


def test_setup_logging_replaces_previous_handler(m):
    root = logging.getLogger()
    m.setup_logging(2)
    first = m._log_handler
    n_handlers = len(root.handlers)
    m.setup_logging(3)
    assert len(root.handlers) == n_handlers
    assert first not in root.handlers
    assert m._log_handler in root.handlers
    assert root.level == logging.DEBUG


def test_repeated_main_logs_once(write_bin, capsys, m):
    path = write_bin(b"\x01")
    m.main(["counts", str(path), "-vv"])
    m.main(["counts", str(path), "-vv"])
    err = capsys.readouterr().err
    assert err.count("counter size is 1 bytes") == 2
