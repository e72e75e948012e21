"""unitcov - per-test line coverage with merged, multi-format reports."""

__version__ = "0.1.0"

from unitcov.session import CoverageSession, SessionState  # noqa: E402

__all__ = ["CoverageSession", "SessionState", "__version__"]
