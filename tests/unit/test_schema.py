"""
Module: tests/unit/test_schema.py

What:
    Exercise decoding, secret scrubbing and canonicalisation of the settings
    document.

Why:
    Decode-then-encode is the only thing standing between an operator payload
    and storage, and the read-path scrub is the only thing standing between
    stored secrets and API responses.

Invariants & Safety Rules:
    - Unknown keys never survive canonicalisation.
    - ``sanitized_for_read`` clears exactly the SMTP passwords and the S3
      secret and nothing else.
    - Canonicalisation is idempotent.
"""

import json

import pytest

from mailsettings.config.loader import canonicalize, decode_settings
from mailsettings.config.schema import (
    ParseError,
    PostbackMessenger,
    Settings,
    WebhookMessenger,
)
from mailsettings.config.validation import validate_settings


FULL_PAYLOAD = {
    "app.root_url": "https://lists.example.com",
    "app.from_email": "News <news@example.com>",
    "app.notify_emails": ["ops@example.com"],
    "app.batch_size": 500,
    "app.concurrency": 4,
    "messengers": [
        {"name": "legacy", "enabled": True, "root_url": "https://hooks.example.com", "password": "pb-secret"},
        {"kind": "webhook", "name": "chat", "url": "https://chat.example.com/in", "headers": [{"X-Token": "t"}]},
    ],
    "privacy.allow_export": True,
    "privacy.exportable": ["profile"],
    "smtp": [
        {"enabled": True, "host": "mx1.example.com", "port": 587, "password": "first-secret", "tls_enabled": True},
        {"enabled": False, "host": "mx2.example.com", "password": "second-secret"},
    ],
    "upload.provider": "s3",
    "upload.s3.aws_access_key_id": "AKIDEXAMPLE",
    "upload.s3.aws_secret_access_key": "s3-secret",
    "upload.s3.bucket": "assets",
}


def test_decode_drops_unknown_keys_at_every_level():
    """Keys the schema does not describe are absent from the canonical blob."""

    payload = dict(FULL_PAYLOAD)
    payload["app.injected"] = "<script>"
    payload["smtp"] = [dict(FULL_PAYLOAD["smtp"][0], debug_dump="yes")]

    blob = canonicalize(decode_settings(json.dumps(payload).encode("utf-8")))
    stored = json.loads(blob)

    assert "app.injected" not in stored
    assert "debug_dump" not in stored["smtp"][0]
    assert stored["smtp"][0]["host"] == "mx1.example.com"


def test_decode_fills_defaults_for_partial_documents():
    settings = decode_settings(b'{"smtp": [{"enabled": true, "host": "a"}]}')

    assert settings.app_root_url == ""
    assert settings.app_batch_size == 0
    assert settings.messengers == []
    assert settings.smtp[0].port == 0
    assert settings.smtp[0].email_headers == []


def test_decode_accepts_null_lists():
    settings = decode_settings('{"smtp": null, "messengers": null, "app.notify_emails": null}')

    assert settings.smtp == []
    assert settings.messengers == []
    assert settings.app_notify_emails == []


def test_decode_accepts_bound_mapping():
    settings = decode_settings(FULL_PAYLOAD)

    assert settings.upload_s3_bucket == "assets"
    assert settings.smtp[1].host == "mx2.example.com"


def test_messengers_are_tagged_by_kind():
    """
    What:
        Messengers without ``kind`` decode as postback; ``webhook`` selects
        the webhook schema.

    Why:
        Stored documents predate the ``kind`` tag and must keep loading.
    """

    settings = decode_settings(FULL_PAYLOAD)

    legacy, chat = settings.messengers
    assert isinstance(legacy, PostbackMessenger)
    assert legacy.root_url == "https://hooks.example.com"
    assert isinstance(chat, WebhookMessenger)
    assert chat.headers == [{"X-Token": "t"}]
    assert json.loads(canonicalize(settings))["messengers"][0]["kind"] == "postback"


def test_unknown_messenger_kind_is_a_parse_error():
    with pytest.raises(ParseError) as excinfo:
        decode_settings({"messengers": [{"kind": "carrier-pigeon"}]})
    assert "messengers" in str(excinfo.value)


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[1, 2, 3]",
        b'"just a string"',
        b"\xff\xfe",
        b'{"smtp": "mx.example.com"}',
    ],
)
def test_structurally_invalid_payloads_raise_parse_error(raw):
    with pytest.raises(ParseError):
        decode_settings(raw)


def test_parse_error_does_not_echo_input_values():
    """Error text names the failing field but never the submitted value."""

    raw = json.dumps({"smtp": [{"port": "hunter2", "password": "hunter2"}]})

    with pytest.raises(ParseError) as excinfo:
        decode_settings(raw)

    message = str(excinfo.value)
    assert "smtp.0.port" in message
    assert "hunter2" not in message


def test_sanitized_for_read_clears_only_secret_fields():
    settings = decode_settings(FULL_PAYLOAD)
    original = settings.model_dump(by_alias=True)

    cleared = settings.sanitized_for_read()

    assert [block.password for block in cleared.smtp] == ["", ""]
    assert cleared.upload_s3_aws_secret_access_key == ""
    expected = json.loads(json.dumps(original))
    for block in expected["smtp"]:
        block["password"] = ""
    expected["upload.s3.aws_secret_access_key"] = ""
    assert cleared.model_dump(by_alias=True) == expected
    assert cleared.messengers[0].password == "pb-secret"


def test_sanitized_for_read_leaves_receiver_untouched():
    settings = decode_settings(FULL_PAYLOAD)

    settings.sanitized_for_read()

    assert settings.smtp[0].password == "first-secret"
    assert settings.upload_s3_aws_secret_access_key == "s3-secret"


@pytest.mark.parametrize(
    "payload",
    [
        FULL_PAYLOAD,
        {"smtp": [{"enabled": True, "host": "a"}], "unexpected": {"nested": [1, 2]}},
        {},
    ],
)
def test_canonicalize_is_idempotent(payload):
    once = canonicalize(decode_settings(payload))
    twice = canonicalize(decode_settings(once))

    assert once == twice


def test_canonical_blob_uses_wire_names():
    stored = json.loads(canonicalize(decode_settings(FULL_PAYLOAD)))

    assert stored["app.root_url"] == "https://lists.example.com"
    assert stored["upload.s3.aws_secret_access_key"] == "s3-secret"
    assert "app_root_url" not in stored


def test_minimal_document_is_valid():
    settings = Settings.minimal()

    validate_settings(settings)
    assert settings.smtp[0].enabled is True
    assert decode_settings(canonicalize(settings)) == settings


@pytest.mark.parametrize("source", [[{"smtp": []}], None, 42, 4.2])
def test_non_object_sources_raise_parse_error(source):
    with pytest.raises(ParseError, match="JSON object"):
        decode_settings(source)


@pytest.mark.parametrize(
    "payload, location",
    [
        ({"smtp": [{"enabled": "yes"}]}, "smtp.0.enabled"),
        ({"smtp": [{"enabled": 1}]}, "smtp.0.enabled"),
        ({"smtp": [{"port": "25"}]}, "smtp.0.port"),
        ({"app.batch_size": "1000"}, "app.batch_size"),
        ({"privacy.allow_export": "true"}, "privacy.allow_export"),
    ],
)
def test_values_are_not_coerced_across_types(payload, location):
    with pytest.raises(ParseError) as excinfo:
        decode_settings(payload)
    assert location in str(excinfo.value)


def test_null_scalars_keep_their_defaults():
    """
    What:
        ``null`` in a scalar field decodes to the zero value instead of failing.

    Why:
        Stored documents and older clients write ``null`` for unset values.
    """

    settings = decode_settings(
        b'{"app.root_url": null, "app.batch_size": null, "privacy.allow_wipe": null,'
        b' "smtp": [{"enabled": true, "host": null, "port": null, "email_headers": null}]}'
    )

    assert settings.app_root_url == ""
    assert settings.app_batch_size == 0
    assert settings.privacy_allow_wipe is False
    assert settings.smtp[0].host == ""
    assert settings.smtp[0].port == 0
    assert settings.smtp[0].email_headers == []
