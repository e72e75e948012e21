"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides a scripted instrumentation driver so recording can be tested without
touching the interpreter's real tracing hooks.
"""

import sys
from collections.abc import Iterable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from unitcov.core.errors import DriverUnavailableError  # noqa: E402


class FakeDriver:
    """Driver that replays scripted line hits, one script per recording.

    Each ``start()``/``stop()`` pair pops the next script; scripts are
    ``{path: lines}`` mappings.
    """

    def __init__(
        self,
        scripts: Iterable[dict[str, Iterable[int]]] = (),
        *,
        available: bool = True,
    ) -> None:
        self._scripts = [dict(s) for s in scripts]
        self.available = available
        self.acquired = False
        self.running = False
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake"

    def script(self, hits: dict[str, Iterable[int]]) -> None:
        self._scripts.append(dict(hits))

    def acquire(self) -> None:
        self.calls.append("acquire")
        if not self.available:
            raise DriverUnavailableError.no_backend(self.name, "disabled for test")
        self.acquired = True

    def release(self) -> None:
        self.calls.append("release")
        self.acquired = False

    def start(self) -> None:
        self.calls.append("start")
        assert self.acquired, "start() before acquire()"
        self.running = True

    def stop(self) -> dict[str, set[int]]:
        self.calls.append("stop")
        self.running = False
        hits = self._scripts.pop(0) if self._scripts else {}
        return {path: set(lines) for path, lines in hits.items()}


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def make_driver() -> type[FakeDriver]:
    """The FakeDriver class, for tests that script hits up front."""
    return FakeDriver


@pytest.fixture
def write_source(tmp_path: Path):
    """Write a source file under tmp_path and return its absolute POSIX path."""

    def _write(rel: str, body: str) -> str:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
        return path.resolve().as_posix()

    return _write
