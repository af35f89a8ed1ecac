import logging
import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def write_bin(tmp_path: Path):
    """Provide a helper writing ``data`` to a fresh file under tmp_path."""
    counter = [0]

    def _write(data: bytes, name: str = None) -> Path:
        counter[0] += 1
        path = tmp_path / (name or f"input{counter[0]}.bin")
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo root logger changes made by ``main.setup_logging``."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def words(*values: int) -> bytes:
    """Pack ``values`` as consecutive big-endian 16-bit words."""
    return b"".join(v.to_bytes(2, "big") for v in values)


@pytest.fixture()
def words_fn():
    """Fixture that provides the words helper without importing conftest."""
    return words
