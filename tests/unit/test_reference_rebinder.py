"""Tests for certsync.rotation.rebinder — ReferenceRebinder."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from certsync.errors import RemoteRequestError
from certsync.rotation.rebinder import ReferenceRebinder, member_names, replace_member
from certsync.rotation.resolver import UsageReference

PROFILE = ("firewall", "ssl-ssh-profile", "deep")
SETTINGS = ("vpn.ssl", "settings", "root")

TABLE_REF = UsageReference(*PROFILE, attribute="server-cert", multi_valued=True)
SCALAR_REF = UsageReference(*SETTINGS, attribute="servercert", multi_valued=False)


@pytest.fixture()
def rebinder(appliance) -> ReferenceRebinder:
    appliance.objects[PROFILE] = {
        "server-cert": [{"name": "other"}, {"name": "web_01012024"}],
    }
    appliance.objects[SETTINGS] = {"servercert": "web_01012024"}
    return ReferenceRebinder(appliance)


class TestHelpers:
    def test_member_names_skips_blank_and_malformed(self) -> None:
        snapshot = {"members": [{"name": "a"}, {"name": " "}, "b", {"id": 3}, {"name": "c"}]}
        assert member_names(snapshot, "members") == ["a", "c"]

    def test_member_names_of_scalar_is_empty(self) -> None:
        assert member_names({"members": "a"}, "members") == []

    def test_replace_member_case_insensitive(self) -> None:
        assert replace_member(["a", "WEB_OLD", "web_new"], "web_old", "web_new") == ["a", "web_new"]


class TestRebind:
    def test_multi_valued_full_replacement(self, rebinder, appliance) -> None:
        assert rebinder.rebind(TABLE_REF, "web_01012024", "web_01062024") is True
        target, payload = appliance.puts[-1]
        assert target == PROFILE
        assert payload == {
            "name": "deep",
            "server-cert": [{"name": "other"}, {"name": "web_01062024"}],
            "server-cert-mode": "replace",
        }

    def test_multi_valued_rebind_is_idempotent(self, rebinder, appliance) -> None:
        rebinder.rebind(TABLE_REF, "web_01012024", "web_01062024")
        rebinder.rebind(TABLE_REF, "web_01012024", "web_01062024")
        names = [m["name"] for m in appliance.objects[PROFILE]["server-cert"]]
        assert names.count("web_01062024") == 1
        assert "web_01012024" not in names
        assert names == ["other", "web_01062024"]

    def test_scalar_overwrite(self, rebinder, appliance) -> None:
        assert rebinder.rebind(SCALAR_REF, "web_01012024", "web_01062024") is True
        assert appliance.puts[-1][1] == {"name": "root", "servercert": "web_01062024"}
        assert appliance.objects[SETTINGS]["servercert"] == "web_01062024"

    def test_exactly_one_write_per_reference(self, rebinder, appliance) -> None:
        rebinder.rebind(TABLE_REF, "web_01012024", "web_01062024")
        rebinder.rebind(SCALAR_REF, "web_01012024", "web_01062024")
        assert len(appliance.puts) == 2

    @pytest.mark.parametrize(
        "reference,new",
        [
            (UsageReference(*SETTINGS, attribute="", multi_valued=False), "web_01062024"),
            (UsageReference(*SETTINGS, attribute="  ", multi_valued=True), "web_01062024"),
            (SCALAR_REF, ""),
        ],
    )
    def test_guard_is_no_op_without_remote_contact(self, reference, new: str) -> None:
        client = MagicMock()
        assert ReferenceRebinder(client).rebind(reference, "web_01012024", new) is False
        assert client.method_calls == []

    def test_failed_write_raises(self, rebinder, appliance) -> None:
        appliance.fail_put.add(PROFILE)
        with pytest.raises(RemoteRequestError, match="server-cert"):
            rebinder.rebind(TABLE_REF, "web_01012024", "web_01062024")
