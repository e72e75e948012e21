"""Include/exclude rules deciding which source files count toward coverage.

Pattern syntax:
- Standard glob patterns (fnmatch); ``*`` also crosses ``/``
- Relative patterns are anchored at the filter's base directory
- Directory patterns (ending in /, or naming a directory) match all contents
- Leading ``**/`` matches at any depth

Precedence: an exclude rule that matches always wins, whatever the order the
rules were added in. Without include rules every non-excluded file is eligible.
"""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath

__all__ = ["Filter", "normalize_file_id", "matches_glob", "is_synthetic_filename"]


def is_synthetic_filename(filename: str) -> bool:
    """Code object filenames with no file behind them, e.g. ``<frozen runpy>``."""
    return filename.startswith("<") and filename.endswith(">")


def normalize_file_id(path: str | os.PathLike[str], base: Path | None = None) -> str:
    """Normalize a path to the absolute POSIX string used as a file key."""
    p = Path(path)
    if not p.is_absolute():
        p = (base or Path.cwd()) / p
    return Path(os.path.normpath(p)).as_posix()


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a path matches a glob pattern, with ** support."""
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    # Handle **/pattern for any-depth matching
    if pattern.startswith("**/"):
        return fnmatch.fnmatchcase(rel_path, pattern[3:])
    return False


class Filter:
    """Answers whether a file is eligible for coverage accounting.

    Rules added later only affect files checked later; data that was already
    merged is never re-filtered.
    """

    def __init__(
        self,
        base: Path | None = None,
        *,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
    ) -> None:
        self._base = Path(normalize_file_id(base or Path.cwd()))
        self._include: list[str] = []
        self._exclude: list[str] = []
        for pattern in include:
            self.add_include_path(pattern)
        for pattern in exclude:
            self.add_exclude_path(pattern)

    @property
    def base(self) -> Path:
        return self._base

    @property
    def include_patterns(self) -> tuple[str, ...]:
        return tuple(self._include)

    @property
    def exclude_patterns(self) -> tuple[str, ...]:
        return tuple(self._exclude)

    def add_include_path(self, pattern: str) -> None:
        self._include.append(self._normalize_pattern(pattern))

    def add_exclude_path(self, pattern: str) -> None:
        self._exclude.append(self._normalize_pattern(pattern))

    def is_eligible(self, path: str | os.PathLike[str]) -> bool:
        if is_synthetic_filename(os.fspath(path)):
            return False
        file_id = normalize_file_id(path, self._base)
        if any(self._matches(file_id, pattern) for pattern in self._exclude):
            return False
        if not self._include:
            return True
        return any(self._matches(file_id, pattern) for pattern in self._include)

    def discover(self, root: Path | None = None) -> Iterator[str]:
        """Yield eligible files reachable from the include patterns, sorted.

        Yields nothing when no include patterns are configured.
        """
        root = Path(normalize_file_id(root or self._base))
        found: set[str] = set()
        for pattern in self._include:
            anchor = pattern if not PurePosixPath(pattern).is_absolute() else None
            if anchor is None:
                try:
                    anchor = PurePosixPath(pattern).relative_to(root.as_posix()).as_posix()
                except ValueError:
                    continue
            glob_pattern = anchor + "**" if anchor.endswith("/") else anchor
            for match in root.glob(glob_pattern):
                candidates = match.rglob("*") if match.is_dir() else (match,)
                for candidate in candidates:
                    if candidate.is_file():
                        file_id = normalize_file_id(candidate)
                        if self.is_eligible(file_id):
                            found.add(file_id)
        yield from sorted(found)

    def _normalize_pattern(self, pattern: str) -> str:
        pattern = pattern.replace("\\", "/").strip()
        if pattern.startswith("./"):
            pattern = pattern[2:]
        return pattern

    def _matches(self, file_id: str, pattern: str) -> bool:
        if pattern.endswith("/"):
            pattern = f"{pattern}*"

        if PurePosixPath(pattern).is_absolute():
            target = file_id
        else:
            try:
                target = PurePosixPath(file_id).relative_to(self._base.as_posix()).as_posix()
            except ValueError:
                # Outside the base: only unanchored ** patterns can match
                if not pattern.startswith("**/"):
                    return False
                target = file_id

        if matches_glob(target, pattern):
            return True

        # A pattern naming a directory covers everything below it
        for parent in PurePosixPath(target).parents:
            parent_str = parent.as_posix()
            if parent_str not in (".", "/") and matches_glob(parent_str, pattern):
                return True
        return False
