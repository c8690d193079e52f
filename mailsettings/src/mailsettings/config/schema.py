"""Pydantic models describing the mail service settings document.

What:
  Define the typed shape of the single settings document (application
  metadata, messengers, privacy flags, SMTP blocks, upload providers) together
  with the runtime configuration consumed by the settings service itself, and
  the error hierarchy shared by every layer.

Why:
  The settings blob is replaced wholesale by operators through the API. Binding
  it to a strict model is what strips unexpected keys before persistence and
  gives the read path a single place to scrub secrets.

How:
  The document keeps its deployed wire format: a flat JSON object whose keys
  carry dotted group prefixes (``app.root_url``, ``upload.s3.bucket``). Fields
  are declared with aliases and ``populate_by_name`` so Python code uses
  ``snake_case`` while serialisation emits the wire names. Unknown keys are
  ignored at every nesting level; messengers are a discriminated union keyed
  by ``kind``.

Interfaces:
  - :class:`Settings`, :class:`SmtpBlock`, :class:`PostbackMessenger`,
    :class:`WebhookMessenger`.
  - :class:`RuntimeConfig` and its sections.
  - :class:`SettingsError` and subclasses :class:`ParseError`,
    :class:`ValidationError`, :class:`EncodeError`.

Invariants:
  - Every settings field has a zero-value default so partial documents decode.
  - Scalars are never coerced across types; ``null`` decodes to the default.
  - :meth:`Settings.sanitized_for_read` never mutates the receiver.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class SettingsError(Exception):
    """Base class for every failure raised while handling settings."""


class ParseError(SettingsError):
    """Raised when a payload cannot be decoded into :class:`Settings`."""


class ValidationError(SettingsError, ValueError):
    """Raised when a decoded document violates a structural invariant.

    The message is operator facing and is surfaced verbatim to API callers.
    """


class EncodeError(SettingsError):
    """Raised when a document cannot be re-serialised for persistence."""


class _DocumentModel(BaseModel):
    """Base for every object inside the settings document.

    Validation is strict: ``"enabled": "yes"`` or ``"port": "25"`` is a
    decode failure, not a coerced value. ``null`` in any optional field decodes
    to that field's default, matching how stored documents wrote empty values.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, strict=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name is not None:
            field = cls.model_fields[info.field_name]
            if not field.is_required():
                return field.get_default(call_default_factory=True)
        return value


class SmtpBlock(_DocumentModel):
    """One outbound SMTP transport."""

    enabled: bool = False
    host: str = ""
    hello_hostname: str = ""
    port: int = 0
    auth_protocol: str = ""
    username: str = ""
    password: str = ""
    email_headers: List[Dict[str, str]] = Field(default_factory=list)
    max_conns: int = 0
    max_msg_retries: int = 0
    idle_timeout: str = ""
    wait_timeout: str = ""
    tls_enabled: bool = False
    tls_skip_verify: bool = False


class PostbackMessenger(_DocumentModel):
    """HTTP postback messenger, the historical messenger shape."""

    kind: Literal["postback"] = "postback"
    enabled: bool = False
    name: str = ""
    root_url: str = ""
    username: str = ""
    password: str = ""
    timeout: str = ""
    max_conns: int = 0
    retries: int = 0


class WebhookMessenger(_DocumentModel):
    """Messenger posting rendered messages to an arbitrary webhook."""

    kind: Literal["webhook"]
    enabled: bool = False
    name: str = ""
    url: str = ""
    headers: List[Dict[str, str]] = Field(default_factory=list)
    timeout: str = ""
    max_conns: int = 0
    retries: int = 0


Messenger = Annotated[Union[PostbackMessenger, WebhookMessenger], Field(discriminator="kind")]


class Settings(_DocumentModel):
    """The settings document exchanged through the API and persisted as JSON."""

    app_root_url: str = Field(default="", alias="app.root_url")
    app_logo_url: str = Field(default="", alias="app.logo_url")
    app_favicon_url: str = Field(default="", alias="app.favicon_url")
    app_from_email: str = Field(default="", alias="app.from_email")
    app_notify_emails: List[str] = Field(default_factory=list, alias="app.notify_emails")
    app_batch_size: int = Field(default=0, alias="app.batch_size")
    app_concurrency: int = Field(default=0, alias="app.concurrency")
    app_max_send_errors: int = Field(default=0, alias="app.max_send_errors")
    app_message_rate: int = Field(default=0, alias="app.message_rate")

    messengers: List[Messenger] = Field(default_factory=list)

    privacy_allow_blacklist: bool = Field(default=False, alias="privacy.allow_blacklist")
    privacy_allow_export: bool = Field(default=False, alias="privacy.allow_export")
    privacy_allow_wipe: bool = Field(default=False, alias="privacy.allow_wipe")
    privacy_exportable: List[str] = Field(default_factory=list, alias="privacy.exportable")

    smtp: List[SmtpBlock] = Field(default_factory=list)

    upload_provider: str = Field(default="", alias="upload.provider")
    upload_filesystem_upload_path: str = Field(default="", alias="upload.filesystem.upload_path")
    upload_filesystem_upload_uri: str = Field(default="", alias="upload.filesystem.upload_uri")
    upload_s3_aws_access_key_id: str = Field(default="", alias="upload.s3.aws_access_key_id")
    upload_s3_aws_default_region: str = Field(default="", alias="upload.s3.aws_default_region")
    upload_s3_aws_secret_access_key: str = Field(default="", alias="upload.s3.aws_secret_access_key")
    upload_s3_bucket: str = Field(default="", alias="upload.s3.bucket")
    upload_s3_bucket_domain: str = Field(default="", alias="upload.s3.bucket_domain")
    upload_s3_bucket_path: str = Field(default="", alias="upload.s3.bucket_path")
    upload_s3_bucket_type: str = Field(default="", alias="upload.s3.bucket_type")
    upload_s3_expiry: int = Field(default=0, alias="upload.s3.expiry")

    @field_validator("messengers", mode="before")
    @classmethod
    def _default_messenger_kind(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [
            {**item, "kind": "postback"} if isinstance(item, dict) and "kind" not in item else item
            for item in value
        ]

    def sanitized_for_read(self) -> "Settings":
        """Return a deep copy with SMTP passwords and the S3 secret cleared.

        What:
          Produce the representation that may leave the service boundary.

        Why:
          Secrets are persisted so transports can authenticate, but no read
          response may ever echo them back.

        How:
          Deep-copy the model, then blank ``password`` on every SMTP block and
          ``upload.s3.aws_secret_access_key``. All other fields are untouched.

        Returns:
          A new :class:`Settings` instance; ``self`` is left unchanged.
        """

        clone = self.model_copy(deep=True)
        for block in clone.smtp:
            block.password = ""
        clone.upload_s3_aws_secret_access_key = ""
        return clone

    @classmethod
    def minimal(cls) -> "Settings":
        """Default document written when the settings table is first created."""

        return cls(
            app_root_url="http://localhost:9000",
            app_logo_url="http://localhost:9000/public/static/logo.png",
            app_favicon_url="http://localhost:9000/public/static/favicon.png",
            app_from_email="mailer <noreply@localhost>",
            app_notify_emails=["admin@localhost"],
            app_batch_size=1000,
            app_concurrency=10,
            app_max_send_errors=1000,
            app_message_rate=10,
            privacy_allow_blacklist=True,
            privacy_allow_export=True,
            privacy_allow_wipe=True,
            privacy_exportable=["profile", "subscriptions", "campaign_views", "link_clicks"],
            smtp=[
                SmtpBlock(
                    enabled=True,
                    host="localhost",
                    port=25,
                    auth_protocol="none",
                    max_conns=10,
                    max_msg_retries=2,
                    idle_timeout="15s",
                    wait_timeout="5s",
                )
            ],
            upload_provider="filesystem",
            upload_filesystem_upload_path="uploads",
            upload_filesystem_upload_uri="/uploads",
            upload_s3_bucket_type="public",
        )


class DatabaseConfig(BaseModel):
    """Location of the settings database."""

    model_config = ConfigDict(extra="forbid")

    path: str
    key_path: Optional[str] = None


class ReloadConfig(BaseModel):
    """How a successful update is turned into a process reload."""

    model_config = ConfigDict(extra="forbid")

    grace_seconds: float = Field(default=0.5, ge=0)
    target: Literal["channel", "signal"] = "channel"


class LoggingConfig(BaseModel):
    """Structured logging defaults."""

    model_config = ConfigDict(extra="forbid")

    component: str = "mailsettings"


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    database: DatabaseConfig
    reload: ReloadConfig = Field(default_factory=ReloadConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
