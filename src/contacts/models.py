"""Contact payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from src.errors import ValidationCollector
from src.models import BaseResponse, CustomParam, PaginatedResponse, WatiModel, page_query

MIN_PHONE_LENGTH = 10
MAX_BULK_CONTACTS = 100


class Contact(WatiModel):
    id: str = ""
    wa_id: str = Field(default="", alias="wAid")
    first_name: str = ""
    last_name: str | None = None
    full_name: str = ""
    phone: str = ""
    email: str | None = None
    source: Any = None
    contact_status: str = ""
    photo: Any = None
    created: str = ""
    tags: list[Any] = Field(default_factory=list)
    custom_params: list[CustomParam] = Field(default_factory=list)
    opted_in: bool = False
    is_deleted: bool = False
    last_updated: str = ""
    allow_broadcast: bool = False
    allow_sms: bool = Field(default=False, alias="allowSMS")
    team_ids: list[str] = Field(default_factory=list)
    is_in_flow: bool = False
    last_flow_id: str | None = None
    current_flow_node_id: str | None = None


class ContactResponse(BaseResponse):
    contact: Contact = Field(default_factory=Contact)


class ContactsResponse(PaginatedResponse):
    contacts: list[Contact] = Field(default_factory=list)


class GetContactsParams(WatiModel):
    page_size: int = 0
    page_number: int = 0
    name: str = ""
    attribute: str = ""
    created_date: str = ""

    def to_query(self) -> dict[str, Any]:
        query = page_query(self.page_size, self.page_number)
        if self.name:
            query["name"] = self.name
        if self.attribute:
            query["attribute"] = self.attribute
        if self.created_date:
            query["createdDate"] = self.created_date
        return query


class CreateContactRequest(WatiModel):
    first_name: str
    phone: str
    last_name: str | None = None
    email: str | None = None
    custom_params: list[CustomParam] | None = None
    tags: list[str] | None = None
    allow_broadcast: bool = False
    allow_sms: bool = Field(default=False, alias="allowSMS")

    def validate_request(self, prefix: str = "") -> None:
        errors = ValidationCollector()
        self.collect_errors(errors, prefix)
        errors.raise_if_any()

    def collect_errors(self, errors: ValidationCollector, prefix: str = "") -> None:
        if not self.first_name:
            errors.add(f"{prefix}firstName", "firstName is required")
        if not self.phone:
            errors.add(f"{prefix}phone", "phone is required")
        elif len(self.phone) < MIN_PHONE_LENGTH:
            errors.add(
                f"{prefix}phone", "phone number must be at least 10 digits", self.phone,
            )


class UpdateContactRequest(WatiModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    custom_params: list[CustomParam] | None = None
    tags: list[str] | None = None
    allow_broadcast: bool | None = None
    allow_sms: bool | None = Field(default=None, alias="allowSMS")


class ContactFilter(WatiModel):
    name: str = ""
    phone: str = ""
    email: str = ""
    tags: list[str] = Field(default_factory=list)
    contact_status: str = ""
    created_after: datetime | None = None
    created_before: datetime | None = None
    opted_in: bool | None = None
    allow_broadcast: bool | None = None


class BulkContactError(WatiModel):
    index: int = 0
    error: str = ""
    contact: dict[str, Any] | None = None


class BulkContactResponse(BaseResponse):
    success_count: int = 0
    failure_count: int = 0
    contacts: list[Contact] = Field(default_factory=list)
    errors: list[BulkContactError] = Field(default_factory=list)
