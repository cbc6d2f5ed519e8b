"""Contacts API: listing, lookup, creation and updates."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from src.contacts.models import (
    MAX_BULK_CONTACTS,
    BulkContactResponse,
    Contact,
    ContactFilter,
    ContactResponse,
    ContactsResponse,
    CreateContactRequest,
    GetContactsParams,
    UpdateContactRequest,
)
from src.errors import APIError, ValidationCollector, ValidationError
from src.http.executor import Requester
from src.models import BaseResponse, CustomParam

_ALL_CONTACTS_PAGE_SIZE = 50


def _require(field: str, value: str, message: str) -> None:
    if not value:
        raise ValidationError(field, message)


class ContactsService:
    def __init__(self, requester: Requester) -> None:
        self._requester = requester

    async def get_contacts(
        self, params: GetContactsParams | None = None, *, timeout: float | None = None,
    ) -> ContactsResponse:
        params = params or GetContactsParams()
        path = f"/api/v1/getContacts?{urlencode(params.to_query())}"
        return await self._requester.execute_request(
            "GET", path, result_type=ContactsResponse, timeout=timeout,
        )

    async def get_contact(self, contact_id: str, *, timeout: float | None = None) -> Contact:
        _require("id", contact_id, "contact ID is required")
        response: ContactResponse = await self._requester.execute_request(
            "GET",
            f"/api/v1/getContact/{quote(contact_id, safe='')}",
            result_type=ContactResponse,
            timeout=timeout,
        )
        return response.contact

    async def add_contact(
        self, contact: CreateContactRequest, *, timeout: float | None = None,
    ) -> Contact:
        contact.validate_request()
        response: ContactResponse = await self._requester.execute_request(
            "POST", "/api/v1/addContact", contact, ContactResponse, timeout=timeout,
        )
        return response.contact

    async def update_contact(
        self,
        contact_id: str,
        update: UpdateContactRequest,
        *,
        timeout: float | None = None,
    ) -> Contact:
        _require("id", contact_id, "contact ID is required")
        response: ContactResponse = await self._requester.execute_request(
            "PUT",
            f"/api/v1/updateContact/{quote(contact_id, safe='')}",
            update,
            ContactResponse,
            timeout=timeout,
        )
        return response.contact

    async def delete_contact(self, contact_id: str, *, timeout: float | None = None) -> None:
        _require("id", contact_id, "contact ID is required")
        await self._requester.execute_request(
            "DELETE",
            f"/api/v1/deleteContact/{quote(contact_id, safe='')}",
            result_type=BaseResponse,
            timeout=timeout,
        )

    async def search_contacts(
        self, query: str, *, timeout: float | None = None,
    ) -> ContactsResponse:
        _require("query", query, "search query is required")
        return await self.get_contacts(GetContactsParams(name=query), timeout=timeout)

    async def filter_contacts(
        self, contact_filter: ContactFilter, *, timeout: float | None = None,
    ) -> ContactsResponse:
        """Filter contacts server-side by name and creation date.

        The API only understands ``name`` and ``createdDate``; the remaining
        filter fields are carried for callers that post-filter locally.
        """
        params = GetContactsParams(name=contact_filter.name)
        if contact_filter.created_after is not None:
            params = params.model_copy(
                update={"created_date": contact_filter.created_after.strftime("%Y-%m-%d")},
            )
        return await self.get_contacts(params, timeout=timeout)

    async def add_contacts(
        self, contacts: list[CreateContactRequest], *, timeout: float | None = None,
    ) -> BulkContactResponse:
        if not contacts:
            raise ValidationError("contacts", "at least one contact is required")
        if len(contacts) > MAX_BULK_CONTACTS:
            raise ValidationError(
                "contacts",
                f"maximum {MAX_BULK_CONTACTS} contacts allowed per request, got {len(contacts)}",
            )
        errors = ValidationCollector()
        for i, contact in enumerate(contacts):
            contact.collect_errors(errors, prefix=f"contacts[{i}].")
        errors.raise_if_any()

        return await self._requester.execute_request(
            "POST",
            "/api/v1/addContacts",
            {"contacts": contacts},
            BulkContactResponse,
            timeout=timeout,
        )

    async def get_contacts_by_page(
        self, page: int, page_size: int, *, timeout: float | None = None,
    ) -> ContactsResponse:
        return await self.get_contacts(
            GetContactsParams(page_number=page, page_size=page_size), timeout=timeout,
        )

    async def get_all_contacts(self, *, timeout: float | None = None) -> list[Contact]:
        """Walk every page of contacts; ``timeout`` applies per page."""
        contacts: list[Contact] = []
        page = 1
        while True:
            response = await self.get_contacts_by_page(
                page, _ALL_CONTACTS_PAGE_SIZE, timeout=timeout,
            )
            contacts.extend(response.contacts)
            if page >= response.total_pages or not response.contacts:
                return contacts
            page += 1

    async def get_contact_by_phone(
        self, phone: str, *, timeout: float | None = None,
    ) -> Contact:
        _require("phone", phone, "phone number is required")
        query = urlencode({"phone": phone, "pageSize": 1})
        response: ContactsResponse = await self._requester.execute_request(
            "GET",
            f"/api/v1/getContacts?{query}",
            result_type=ContactsResponse,
            timeout=timeout,
        )
        if not response.contacts:
            raise APIError(404, f"contact with phone {phone} not found")
        return response.contacts[0]

    async def update_contact_tags(
        self, contact_id: str, tags: list[str], *, timeout: float | None = None,
    ) -> Contact:
        return await self.update_contact(
            contact_id, UpdateContactRequest(tags=tags), timeout=timeout,
        )

    async def update_contact_custom_params(
        self,
        contact_id: str,
        custom_params: list[CustomParam],
        *,
        timeout: float | None = None,
    ) -> Contact:
        return await self.update_contact(
            contact_id, UpdateContactRequest(custom_params=custom_params), timeout=timeout,
        )
