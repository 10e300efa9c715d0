#!/usr/bin/env python3
"""Example: Dry run

Loads a configuration, connects to the appliance and prints the rotation
decision of every certificate family without changing anything.

Usage:
    python examples/01_dry_run.py certsync.ini

Requirements:
    pip install certsync
"""
from __future__ import annotations

import sys
from pathlib import Path

import certsync
from certsync import (
    CertificateInventoryComparator,
    FilesystemCertificateSource,
    RemoteApplianceClient,
    SlotName,
    load_settings,
)


def main(config: str) -> None:
    print(f"certsync version: {certsync.__version__}")

    # Step 1: Load settings and check the credential
    settings = load_settings(Path(config))
    client = RemoteApplianceClient(settings.remote)
    client.verify_auth()
    source = FilesystemCertificateSource(settings.local.store_root)
    comparator = CertificateInventoryComparator()

    for family_settings in settings.families:
        family = SlotName.parse(family_settings.family).family

        # Step 2: Inventory the family on the appliance
        records = client.list_certificates(
            settings.remote.scope, predicate=lambda name: SlotName.matches(name, family)
        )
        current = comparator.select_current(family, records)

        # Step 3: Find the local candidate
        local = None
        if current is not None:
            local = source.find_newest_certificate(
                family_settings.store,
                family_settings.subject or current.subject_cn,
                family_settings.issuer or current.issuer_o or None,
            )

        # Step 4: Decide
        decision = comparator.decide(family, records, local, force=family_settings.force)
        print(
            f"{family}: {decision.action.value} ({decision.reason.value}) "
            f"{decision.old_identifier or '-'} -> {decision.new_identifier or '-'}"
        )

    print("\nDry run complete.")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "certsync.ini")
