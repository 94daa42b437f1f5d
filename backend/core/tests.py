import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.test import override_settings
from django.urls import reverse

from core import flags
from core.models import FeatureFlag

pytestmark = pytest.mark.django_db


def _flag(key="new_checkout", enabled=True, **rules):
    return FeatureFlag.objects.create(key=key, description="test flag", enabled=enabled, rules_json=rules)


# ---- simple_hash ----
def test_simple_hash_matches_rolling_formula():
    assert flags.simple_hash("") == 0
    assert flags.simple_hash("a") == 97
    assert flags.simple_hash("ab") == 97 * 31 + 98


def test_simple_hash_wraps_to_32_bits():
    # known-good values for long and mixed input
    assert flags.simple_hash("new_checkout:" + "x" * 200) == 1783449899
    assert flags.simple_hash("dark_mode:12345") == 2102032379


def test_simple_hash_counts_utf16_code_units():
    # U+1F600 is a surrogate pair: two code units
    h1 = (0xD83D * 31 + 0xDE00) & 0xFFFFFFFF
    expected = abs(h1 - 2 ** 32 if h1 >= 2 ** 31 else h1)
    assert flags.simple_hash("\U0001F600") == expected


# ---- evaluation ----
def test_unknown_flag_is_off():
    assert flags.is_enabled("does_not_exist") is False


def test_disabled_flag_is_off():
    _flag(enabled=False)
    assert flags.is_enabled("new_checkout") is False


def test_no_targeting_means_everyone():
    _flag()
    assert flags.is_enabled("new_checkout") is True


@override_settings(APP_ENV="production")
def test_environment_gate():
    _flag(environments=["development"])
    assert flags.is_enabled("new_checkout") is False
    assert flags.is_enabled("new_checkout", {"environment": "development"}) is True


def test_template_tenant_and_user_lists():
    _flag(templates=["restaurant"], tenants=["t-1"], users=["u-1"])
    assert flags.is_enabled("new_checkout", {"tenant_template": "restaurant"})
    assert flags.is_enabled("new_checkout", {"tenant_id": "t-1"})
    assert flags.is_enabled("new_checkout", {"user_id": "u-1"})
    assert not flags.is_enabled("new_checkout", {"tenant_id": "t-2", "tenant_template": "gallery"})


def test_percentage_rollout_buckets_by_user_then_tenant():
    _flag(percentage=50)
    for uid in ("u-1", "u-2", "u-3", "u-4"):
        expected = flags.simple_hash(f"new_checkout:{uid}") % 100 < 50
        assert flags.is_enabled("new_checkout", {"user_id": uid, "tenant_id": "t-9"}) is expected
    expected = flags.simple_hash("new_checkout:t-9") % 100 < 50
    assert flags.is_enabled("new_checkout", {"tenant_id": "t-9"}) is expected


def test_percentage_without_identifier_is_off():
    _flag(percentage=100)
    assert flags.is_enabled("new_checkout", {}) is False


def test_percentage_edges():
    _flag(key="all", percentage=100)
    _flag(key="none", percentage=0)
    assert flags.is_enabled("all", {"user_id": "anyone"}) is True
    assert flags.is_enabled("none", {"user_id": "anyone"}) is False


def test_flag_is_cached_and_evicted_on_save():
    flag = _flag()
    assert flags.is_enabled("new_checkout") is True
    FeatureFlag.objects.filter(pk=flag.pk).update(enabled=False)  # bypasses signals
    assert flags.is_enabled("new_checkout") is True
    flag.enabled = False
    flag.save()
    assert flags.is_enabled("new_checkout") is False


def test_renamed_flag_evicts_old_key():
    flag = _flag(key="old_key")
    assert flags.is_enabled("old_key") is True
    flag.key = "new_key"
    flag.save()
    assert flags.is_enabled("old_key") is False
    assert flags.is_enabled("new_key") is True


def test_misses_are_not_cached():
    assert flags.get_flag("late") is None
    _flag(key="late")
    assert flags.get_flag("late")["key"] == "late"


# ---- endpoints ----
def test_flag_check_endpoint(client):
    _flag(tenants=["t-1"])
    url = reverse("core-flags")
    assert client.get(url).status_code == 400
    r = client.get(url, {"key": "new_checkout", "tenantId": "t-1"})
    assert r.status_code == 200
    assert r.data["enabled"] is True
    assert r.data["flag"]["key"] == "new_checkout"
    r = client.get(url, {"key": "missing"})
    assert r.data == {"enabled": False, "flag": None}


def test_flag_batch_endpoint(client):
    _flag(key="dark_mode")
    url = reverse("core-flags-batch")
    assert client.get(url).status_code == 400
    r = client.get(url, {"keys": ["dark_mode", "missing"]})
    assert r.data["flags"] == {"dark_mode": True, "missing": False}


def test_flag_rules_validation(client, owner):
    owner.is_staff = True
    owner.save()
    client.force_authenticate(owner)
    url = reverse("core-flag-list")
    r = client.post(url, {"key": "x", "rules_json": {"percentage": 120}}, format="json")
    assert r.status_code == 400
    r = client.post(url, {"key": "x", "rules_json": {"bogus": 1}}, format="json")
    assert r.status_code == 400
    r = client.post(url, {"key": "x", "rules_json": {"users": ["u"], "percentage": 10}}, format="json")
    assert r.status_code == 201


def test_flag_writes_need_staff(client, stranger):
    client.force_authenticate(stranger)
    r = client.post(reverse("core-flag-list"), {"key": "x"}, format="json")
    assert r.status_code == 403


def test_health_endpoints(client):
    assert client.get(reverse("core-healthz")).status_code == 200
    r = client.get(reverse("core-deep-health"))
    assert r.status_code == 200
    assert r.data["ok"] is True


def test_core_check_command_reports_json():
    out = StringIO()
    call_command("core_check", "--db", "--cache", "--json", stdout=out)
    report = json.loads(out.getvalue())
    assert report["ok"] is True
    assert set(report["checks"]) == {"db", "cache:default", "cache:flags", "cache:tenants"}
