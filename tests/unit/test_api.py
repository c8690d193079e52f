"""
Module: tests/unit/test_api.py

What:
    Validate status codes and bodies produced by the settings endpoints'
    handlers.

Why:
    Clients distinguish their own mistakes (400) from server failures (500)
    and branch on the exact success envelope to decide whether to prompt for
    a restart.
"""

import json

import pytest

from mailsettings.api import handle_get_settings, handle_update_settings
from mailsettings.config.schema import EncodeError, Settings
from mailsettings.core.activity import StaticActivityProbe
from mailsettings.core.reload import ReloadCoordinator


SECRET_UPDATE = {
    "app.root_url": "https://lists.example.com",
    "smtp": [{"enabled": True, "host": "mx.example.com", "password": "hunter2"}],
    "upload.s3.aws_secret_access_key": "s3-secret",
}


def test_get_returns_scrubbed_document(coordinator):
    coordinator.apply_update(SECRET_UPDATE)

    response = handle_get_settings(coordinator)

    assert response.status_code == 200
    data = response.body["data"]
    assert data["app.root_url"] == "https://lists.example.com"
    assert data["smtp"][0]["password"] == ""
    assert data["upload.s3.aws_secret_access_key"] == ""
    assert "hunter2" not in json.dumps(response.body)


def test_get_reports_storage_failure(coordinator, store):
    store.fail_get = "database is locked"

    response = handle_get_settings(coordinator)

    assert response.status_code == 500
    assert response.body == {"message": "Error fetching settings: database is locked"}


def test_get_reports_unparseable_blob(coordinator, store):
    store.blob = b"[]"

    response = handle_get_settings(coordinator)

    assert response.status_code == 500
    assert response.body["message"].startswith("Error parsing settings: ")


def test_update_while_idle_schedules_reload(coordinator, signaler):
    response = handle_update_settings(coordinator, SECRET_UPDATE)

    assert response.status_code == 200
    assert response.body == {"data": True}
    assert signaler.calls == 1


def test_update_while_campaigns_run_requests_restart(store, signaler, logger):
    coordinator = ReloadCoordinator(store, StaticActivityProbe(active=True), signaler, logger=logger)

    response = handle_update_settings(coordinator, SECRET_UPDATE)

    assert response.status_code == 200
    assert response.body == {"data": {"needs_restart": True}}
    assert signaler.calls == 0


def test_update_without_enabled_smtp_is_rejected(coordinator, store, signaler):
    before = store.blob

    response = handle_update_settings(coordinator, {"smtp": [{"enabled": False, "host": "mx"}]})

    assert response.status_code == 400
    assert response.body == {"message": "At least one SMTP block should be enabled"}
    assert store.blob == before
    assert signaler.calls == 0


def test_malformed_body_is_rejected(coordinator, store):
    response = handle_update_settings(coordinator, b'{"smtp": ')

    assert response.status_code == 400
    assert response.body["message"].startswith("Invalid settings: ")
    assert store.puts == []


def test_storage_failure_on_update_is_server_error(coordinator, store, signaler):
    store.fail_put = "disk full"

    response = handle_update_settings(coordinator, SECRET_UPDATE)

    assert response.status_code == 500
    assert response.body == {"message": "Error updating settings: disk full"}
    assert signaler.calls == 0
    assert coordinator.needs_restart is False
    expected = Settings.minimal().sanitized_for_read().model_dump(mode="json", by_alias=True)
    assert handle_get_settings(coordinator).body == {"data": expected}


def test_encode_failure_is_server_error(coordinator, monkeypatch):
    def broken(settings):
        raise EncodeError("unserialisable")

    monkeypatch.setattr("mailsettings.core.reload.canonicalize", broken)

    response = handle_update_settings(coordinator, SECRET_UPDATE)

    assert response.status_code == 500
    assert response.body == {"message": "Error encoding settings: unserialisable"}


def test_update_then_get_round_trip_keeps_non_secret_fields(coordinator):
    handle_update_settings(coordinator, SECRET_UPDATE)

    data = handle_get_settings(coordinator).body["data"]

    assert data["smtp"][0]["host"] == "mx.example.com"
    assert data["smtp"][0]["enabled"] is True


@pytest.mark.parametrize("body", [[{"smtp": []}], None, 42])
def test_non_object_bodies_are_rejected(coordinator, store, signaler, log_stream, body):
    response = handle_update_settings(coordinator, body)

    assert response.status_code == 400
    assert response.body == {"message": "Invalid settings: settings must be a JSON object"}
    assert store.puts == []
    assert signaler.calls == 0
    assert "settings_update_rejected" in log_stream.getvalue()


@pytest.mark.parametrize(
    "block",
    [
        {"enabled": "yes", "host": "mx"},
        {"enabled": 1, "host": "mx"},
        {"enabled": True, "host": "mx", "port": "25"},
    ],
)
def test_mistyped_smtp_fields_are_rejected(coordinator, store, block):
    response = handle_update_settings(coordinator, {"smtp": [block]})

    assert response.status_code == 400
    assert response.body["message"].startswith("Invalid settings: smtp.0.")
    assert store.puts == []
