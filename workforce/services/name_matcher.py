"""
Biometric name matching.

Devices store a short, operator-typed name per person ("Rosel",
"Cabarliza A", "Robinios Je", "Dela Cruz, Juan"). This module maps such a
raw name to an employee using a lookup index built from the stored name
parts. It is pure: callers pass the candidates in and get a NameMatch back.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from workforce.services.attendance_parser import normalize_name


@dataclass(frozen=True)
class NameCandidate:
    employee_id: int
    first_name: str
    last_name: str
    middle_name: Optional[str] = None

    @classmethod
    def from_employee(cls, employee) -> "NameCandidate":
        return cls(
            employee_id=employee.id,
            first_name=employee.first_name or "",
            last_name=employee.last_name or "",
            middle_name=employee.middle_name,
        )

    def patterns(self) -> List[str]:
        """Lookup keys for this person, most specific first."""
        last = normalize_name(self.last_name)
        first = normalize_name(self.first_name)
        middle = normalize_name(self.middle_name or "")
        if not last:
            return []

        keys = []
        if first:
            keys += [f"{last} {first[:2]}", f"{last} {first}", f"{first} {last}"]
        if first and middle:
            keys += [
                f"{last} {first} {middle}",
                f"{first} {middle} {last}",
                f"{first} {middle[0]} {last}",
                f"{last} {first} {middle[0]}",
            ]
        if " " in first:
            first_word = first.split(" ")[0]
            keys += [f"{last} {first_word}", f"{first_word} {last}"]
        if first:
            keys.append(f"{last} {first[0]}")
        keys.append(last)

        # dict.fromkeys keeps order while dropping repeats
        return list(dict.fromkeys(keys))


@dataclass(frozen=True)
class NameMatch:
    raw_name: str
    normalized_name: str
    employee_id: Optional[int] = None
    candidates: Tuple[int, ...] = ()
    # unique | shift | initial | first
    resolved_by: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.employee_id is not None

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


def shift_band(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    return "night"


class NameIndex:
    """Pattern -> candidates lookup over a fixed employee list."""

    def __init__(self):
        self._index: Dict[str, List[NameCandidate]] = {}

    @classmethod
    def from_candidates(cls, candidates: Iterable[NameCandidate]) -> "NameIndex":
        index = cls()
        for candidate in candidates:
            index.add(candidate)
        return index

    def add(self, candidate: NameCandidate) -> None:
        for key in candidate.patterns():
            self._index.setdefault(key, []).append(candidate)

    def match(
        self,
        raw_name: str,
        earliest_scan_hour: Optional[int] = None,
        schedule_hours: Optional[Mapping[int, int]] = None,
    ) -> NameMatch:
        """
        Resolve a device name to a single employee.

        When several employees share the pattern:
        1. pick the first whose schedule start hour falls in the same shift
           band as the earliest scan (needs ``earliest_scan_hour`` and
           ``schedule_hours``: employee_id -> scheduled time-in hour);
        2. for "Last X" patterns, pick the alphabetically first two-letter
           first-name prefix, since the device gives the bare initial to
           that person;
        3. otherwise the first candidate.
        """
        normalized = normalize_name(raw_name)
        matches = self._index.get(normalized, [])
        ids = tuple(c.employee_id for c in matches)

        if not matches:
            return NameMatch(raw_name=raw_name, normalized_name=normalized)
        if len(matches) == 1:
            return NameMatch(raw_name, normalized, matches[0].employee_id, ids, "unique")

        if earliest_scan_hour is not None and schedule_hours:
            band = shift_band(earliest_scan_hour)
            for candidate in matches:
                hour = schedule_hours.get(candidate.employee_id)
                if hour is not None and shift_band(hour) == band:
                    return NameMatch(raw_name, normalized, candidate.employee_id, ids, "shift")

        parts = normalized.split(" ")
        if len(parts) >= 2 and len(parts[-1]) == 1:
            chosen = min(matches, key=lambda c: normalize_name(c.first_name)[:2])
            return NameMatch(raw_name, normalized, chosen.employee_id, ids, "initial")

        return NameMatch(raw_name, normalized, matches[0].employee_id, ids, "first")


def match_employee(
    raw_name: str,
    candidates: Iterable[NameCandidate],
    earliest_scan_hour: Optional[int] = None,
    schedule_hours: Optional[Mapping[int, int]] = None,
) -> NameMatch:
    return NameIndex.from_candidates(candidates).match(raw_name, earliest_scan_hour, schedule_hours)
