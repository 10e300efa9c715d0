#!/usr/bin/env python3
"""Example: Slot names and decisions offline

Shows how dated slot identifiers are parsed and composed, and how the
inventory comparator decides between a remote and a local certificate.
No appliance is needed.

Usage:
    python examples/02_offline_slots.py
"""
from __future__ import annotations

import datetime

from certsync import CertificateInventoryComparator, CertificateRecord, SlotName


def _record(identifier: str, expiry: datetime.datetime) -> CertificateRecord:
    return CertificateRecord(
        identifier=identifier,
        subject_cn="www.example.net",
        issuer_cn="Example Issuing CA",
        issuer_o="Example Trust",
        expiry=expiry,
    )


def main() -> None:
    utc = datetime.timezone.utc

    # Step 1: Slot names
    slot = SlotName.parse("web_05032024")
    print(f"family={slot.family} date={slot.rotation_date}")
    print(f"next slot: {SlotName(slot.family, datetime.date(2024, 6, 1))}")
    print(f"undated: {SlotName.parse('web_legacy')}")

    # Step 2: Decisions
    comparator = CertificateInventoryComparator()
    remote = [_record("web_05032024", datetime.datetime(2024, 12, 1, tzinfo=utc))]
    newer = _record("C:/certs/web/www.pem", datetime.datetime(2025, 3, 1, tzinfo=utc))
    today = datetime.date(2024, 6, 1)
    now = datetime.datetime(2024, 6, 1, tzinfo=utc)

    for label, local, force in (
        ("newer local", newer, False),
        ("no local", None, False),
        ("same certificate, forced", _record("x", remote[0].expiry), True),
    ):
        decision = comparator.decide("web", remote, local, force=force, today=today, now=now)
        print(f"{label}: {decision.action.value} ({decision.reason.value}) -> {decision.new_identifier}")

    decision = comparator.decide("mail", remote, newer, today=today, now=now)
    print(f"uninventoried family: manual import required={decision.manual_import_required}")


if __name__ == "__main__":
    main()
