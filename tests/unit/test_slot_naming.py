"""Tests for certsync.certificates.naming — SlotName parse/compose."""
from __future__ import annotations

import datetime

import pytest

from certsync.certificates.naming import SlotName, compose


class TestParse:
    def test_undated_name_is_whole_family(self) -> None:
        assert SlotName.parse("web") == SlotName("web", None)

    def test_dated_name_splits_family_and_date(self) -> None:
        slot = SlotName.parse("web_05032024")
        assert slot.family == "web"
        assert slot.rotation_date == datetime.date(2024, 3, 5)

    def test_splits_at_last_separator(self) -> None:
        slot = SlotName.parse("vpn_portal_31122025")
        assert slot.family == "vpn_portal"
        assert slot.rotation_date == datetime.date(2025, 12, 31)

    @pytest.mark.parametrize(
        "name",
        [
            "web_2024",  # too short
            "web_050320240",  # too long
            "web_32012024",  # day out of range
            "web_29022023",  # not a leap year
            "web_0503202x",  # not digits
            "web_",  # separator at end
            "_05032024",  # separator at start
            "web_ab032024",
        ],
    )
    def test_non_date_suffix_keeps_whole_name(self, name: str) -> None:
        slot = SlotName.parse(name)
        assert slot.family == name
        assert slot.rotation_date is None

    def test_leap_day_is_valid(self) -> None:
        assert SlotName.parse("web_29022024").rotation_date == datetime.date(2024, 2, 29)


class TestCompose:
    def test_compose_uses_day_month_year(self) -> None:
        assert compose("web", datetime.date(2024, 3, 5)) == "web_05032024"

    def test_undated_slot_composes_to_family(self) -> None:
        assert SlotName("web").compose() == "web"
        assert str(SlotName("web")) == "web"

    def test_round_trip(self) -> None:
        date = datetime.date(2024, 3, 5)
        assert SlotName.parse(compose("web", date)) == SlotName("web", date)

    def test_round_trip_family_with_separator(self) -> None:
        date = datetime.date(2030, 11, 1)
        assert SlotName.parse(compose("mail_gw", date)) == SlotName("mail_gw", date)

    def test_undated_family_ending_in_date_does_not_round_trip(self) -> None:
        # Documented limitation: a date-like family suffix is read as the date.
        parsed = SlotName.parse(SlotName("web_01012020").compose())
        assert parsed == SlotName("web", datetime.date(2020, 1, 1))

    def test_dated_family_ending_in_date_round_trips(self) -> None:
        date = datetime.date(2024, 3, 5)
        assert SlotName.parse(compose("web_01012020", date)).family == "web_01012020"


class TestMatches:
    def test_exact_name_matches(self) -> None:
        assert SlotName.matches("web", "web")

    def test_dated_name_matches_family(self) -> None:
        assert SlotName.matches("web_05032024", "web")

    def test_match_ignores_case(self) -> None:
        assert SlotName.matches("WEB_05032024", "web")

    def test_other_family_does_not_match(self) -> None:
        assert not SlotName.matches("webmail_05032024", "web")
        assert not SlotName.matches("web_backup", "web")
