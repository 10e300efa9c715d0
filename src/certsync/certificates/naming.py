"""Slot naming — the compound remote identifier of a rotating certificate.

A slot name joins a stable *family* with the date the certificate was
rotated in, e.g. ``web_05032024``. The date suffix uses a fixed
day-month-year layout (``ddmmyyyy``).

An undated name whose family itself ends in ``_`` plus eight digits
forming a valid date (``web_01012020``) cannot round-trip: parsing it
yields family ``web`` dated 2020-01-01. Such families are not supported.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

SEPARATOR = "_"
DATE_LENGTH = 8


def _parse_date(suffix: str) -> datetime.date | None:
    """Return the date encoded as ``ddmmyyyy``, or None if *suffix* is not one."""
    if len(suffix) != DATE_LENGTH or not (suffix.isascii() and suffix.isdigit()):
        return None
    day, month, year = int(suffix[0:2]), int(suffix[2:4]), int(suffix[4:8])
    try:
        return datetime.date(year, month, day)
    except ValueError:
        return None


@dataclass(frozen=True)
class SlotName:
    """A certificate slot identifier split into its two fields.

    Parameters
    ----------
    family:
        Stable logical name of the certificate.
    rotation_date:
        Date the certificate was imported, or None for an undated name.
    """

    family: str
    rotation_date: datetime.date | None = None

    @classmethod
    def parse(cls, name: str) -> "SlotName":
        """Split *name* at its last separator.

        The suffix must be exactly eight digits forming a valid calendar
        date; otherwise the whole name is the family and no date is set.
        """
        idx = name.rfind(SEPARATOR)
        if idx <= 0 or idx == len(name) - 1:
            return cls(family=name)
        rotation_date = _parse_date(name[idx + 1 :])
        if rotation_date is None:
            return cls(family=name)
        return cls(family=name[:idx], rotation_date=rotation_date)

    def compose(self) -> str:
        """Return the remote identifier for this slot."""
        if self.rotation_date is None:
            return self.family
        return f"{self.family}{SEPARATOR}{self.rotation_date:%d%m%Y}"

    def __str__(self) -> str:
        return self.compose()

    @staticmethod
    def matches(name: str, family: str) -> bool:
        """Return True if remote identifier *name* belongs to *family*.

        A name matches when it is the family itself or parses to it.
        Comparison ignores case, like the appliance does.
        """
        wanted = family.casefold()
        if name.casefold() == wanted:
            return True
        return SlotName.parse(name).family.casefold() == wanted


def compose(family: str, rotation_date: datetime.date) -> str:
    """Shorthand for ``SlotName(family, rotation_date).compose()``."""
    return SlotName(family, rotation_date).compose()
