"""Integration snapshot data model, section merge and document form."""

from __future__ import annotations

import base64
import binascii
import enum
import time
from typing import Any, Mapping, Optional, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


class WalledGardenMask(enum.IntFlag):
    BY_IP = 1
    BY_DOMAIN = 2
    WITH_WILDCARD = 4
    BY_PROTOCOL = 8
    BY_PORT = 16


class PasswordAuthenticationMask(enum.IntFlag):
    PAP = 1
    CHAP = 2
    MS_CHAP_V2 = 4


class ProfileModel(BaseModel):
    """Base for snapshot models.

    Documents use camelCase keys; unknown keys and wrongly typed values are
    rejected on construction and on attribute assignment.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
    )


class Attachment(ProfileModel):
    """File attached to a snapshot section. Content is raw bytes; base64 in documents."""

    filename: StrictStr
    content_type: StrictStr = "application/octet-stream"
    content: bytes = b""
    size: StrictInt = 0
    upload_date: Optional[StrictInt] = None  # epoch millis
    description: StrictStr = ""

    @field_validator("content_type", "description", mode="before")
    @classmethod
    def _missing_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value: Any) -> Any:
        if value is None:
            return b""
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"Attachment content is not valid base64: {e}") from e
        return value

    @field_serializer("content", when_used="json")
    def _encode_content(self, content: bytes) -> str:
        return base64.b64encode(content).decode("ascii")


class CaptivePortal(ProfileModel):
    redirection_url: Optional[StrictStr] = None
    login_url: Optional[StrictStr] = None
    logout_url: Optional[StrictStr] = None
    # Parameter name -> example value seen in the wild
    query_string_parameters: Optional[dict[StrictStr, StrictStr]] = None
    # Parameter name -> standard parameter name
    query_string_mapping: Optional[dict[StrictStr, StrictStr]] = None
    notes: Optional[StrictStr] = None
    attachments: Optional[list[Attachment]] = None


class Radius(ProfileModel):
    access_request: Optional[StrictStr] = None
    accounting_start: Optional[StrictStr] = None
    accounting_update: Optional[StrictStr] = None
    accounting_stop: Optional[StrictStr] = None
    auth_attributes: Optional[dict[StrictStr, StrictStr]] = None
    acct_attributes: Optional[dict[StrictStr, StrictStr]] = None
    support_coa: Optional[StrictBool] = None
    support_mac_authentication: Optional[StrictBool] = None
    support_roaming: Optional[StrictBool] = None
    authentication_mask: Optional[StrictInt] = None
    packet_source: Optional[StrictStr] = None
    notes: Optional[StrictStr] = None
    attachments: Optional[list[Attachment]] = None


class WalledGarden(ProfileModel):
    mask: Optional[StrictInt] = None
    welcome_page: Optional[StrictBool] = None
    notes: Optional[StrictStr] = None
    attachments: Optional[list[Attachment]] = None


class LoginMethods(ProfileModel):
    support_https: Optional[StrictBool] = None
    support_logout: Optional[StrictBool] = None
    support_mail_surf: Optional[StrictBool] = None
    support_sms_surf: Optional[StrictBool] = None
    support_social: Optional[StrictBool] = None
    notes: Optional[StrictStr] = None
    attachments: Optional[list[Attachment]] = None


class IntegrationSnapshot(ProfileModel):
    """Structured payload of one configuration version.

    Every leaf field is optional: None means "unknown", never false/empty.
    """

    operator: Optional[StrictStr] = None
    model: Optional[StrictStr] = None
    firmware_version: Optional[StrictStr] = None
    timestamp: Optional[StrictInt] = None  # epoch millis
    captive_portal: CaptivePortal = Field(default_factory=CaptivePortal)
    radius: Radius = Field(default_factory=Radius)
    walled_garden: WalledGarden = Field(default_factory=WalledGarden)
    login_methods: LoginMethods = Field(default_factory=LoginMethods)


S = TypeVar("S", bound=ProfileModel)


def now_millis() -> int:
    return int(time.time() * 1000)


def merge_section(existing: S, patch: Union[Mapping[str, Any], S]) -> S:
    """Shallow-merge ``patch`` into ``existing`` and return a new object.

    A mapping patch contributes all of its keys; a model patch of the same
    type contributes only its non-None fields. Fields not named by the patch
    keep their existing value. Every patched value is validated.
    """
    if isinstance(patch, BaseModel):
        if type(patch) is not type(existing):
            raise TypeError(
                f"Cannot merge {type(patch).__name__} into {type(existing).__name__}"
            )
        changes = {
            name: getattr(patch, name)
            for name in type(patch).model_fields
            if getattr(patch, name) is not None
        }
    else:
        changes = dict(patch)

    unknown = sorted(set(changes) - set(type(existing).model_fields))
    if unknown:
        raise ValueError(
            f"Unknown field(s) for {type(existing).__name__}: {', '.join(unknown)}"
        )
    merged = existing.model_copy()
    for name, value in changes.items():
        setattr(merged, name, value)
    return merged


def default_snapshot(name: str = "") -> IntegrationSnapshot:
    """Empty snapshot with every section present; ``name`` seeds the operator."""
    return IntegrationSnapshot(
        operator=name,
        model="",
        firmware_version="",
        timestamp=now_millis(),
    )


def snapshot_to_dict(snapshot: IntegrationSnapshot) -> dict:
    """JSON-compatible camelCase document; unknown (None) fields are omitted."""
    return snapshot.model_dump(mode="json", by_alias=True, exclude_none=True)


def snapshot_from_dict(data: Any) -> IntegrationSnapshot:
    """Decode a bare snapshot document. Raises ValueError on any shape error."""
    return IntegrationSnapshot.model_validate(data)
