from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Set, Tuple

log = logging.getLogger(__name__)


def parse_participant_ids(lines: Iterable[str], source: str) -> Iterator[int]:
    """
    Yield the integer IDs found in a one-ID-per-line text file.
    Blank lines and '#' comments are ignored; anything else that is not an
    integer is skipped with a warning.
    """
    for lineno, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        try:
            yield int(text)
        except ValueError:
            log.warning("%s:%d: not a participant ID: %r, skipped.", source, lineno, text)


class BlacklistStore:
    """Participant IDs that can never win a common prize."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.ids: Set[int] = set()

    def __contains__(self, participant_id: int) -> bool:
        return participant_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def load(self, min_id: int, max_id: int) -> Set[int]:
        """
        Rebuild ``self.ids`` from the blacklist file, keeping only IDs within
        [min_id, max_id]. A missing file is created empty.
        """
        self.ids.clear()

        if not self.path.exists():
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text("", encoding="utf-8")
                log.info("Blacklist file not found, created: %s", self.path)
            except OSError as e:
                log.error("Could not create blacklist %s: %s", self.path, e)
            return self.ids

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for participant_id in parse_participant_ids(f, str(self.path)):
                    if min_id <= participant_id <= max_id:
                        self.ids.add(participant_id)
                    else:
                        log.warning(
                            "Blacklisted ID %d is outside the participant range (%d - %d), ignored.",
                            participant_id,
                            min_id,
                            max_id,
                        )
        except OSError as e:
            log.error("Failed to read blacklist %s: %s", self.path, e)

        log.debug("Blacklist loaded: %d IDs", len(self.ids))
        return self.ids


class MustWinStore:
    """
    Operator-maintained list of IDs that take priority in common draws.

    The file is edited between draws, so callers re-read it every time
    instead of keeping the result around.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[int]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return list(parse_participant_ids(f, str(self.path)))
        except OSError as e:
            log.error("Failed to read must-win list %s: %s", self.path, e)
            return []


def filter_must_win(
    candidates: Iterable[int],
    min_id: int,
    max_id: int,
    excluded: Tuple[Set[int], ...],
) -> List[int]:
    """Keep in-range candidates missing from every set in ``excluded``, in order, once each."""
    seen: Set[int] = set()
    eligible: List[int] = []
    for participant_id in candidates:
        if participant_id in seen:
            continue
        seen.add(participant_id)
        if not min_id <= participant_id <= max_id:
            continue
        if any(participant_id in s for s in excluded):
            continue
        eligible.append(participant_id)
    return eligible
