"""Tests for the contacts service."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from src.contacts.models import (
    BulkContactResponse,
    Contact,
    ContactFilter,
    ContactResponse,
    ContactsResponse,
    CreateContactRequest,
    GetContactsParams,
)
from src.contacts.service import ContactsService
from src.errors import APIError, MultiValidationError, ValidationError
from src.models import CustomParam


def _make_contact_request(**kwargs: object) -> CreateContactRequest:
    defaults: dict[str, object] = {"first_name": "Ann", "phone": "15551234567"}
    defaults.update(kwargs)
    return CreateContactRequest(**defaults)  # type: ignore[arg-type]


class TestGetContacts:
    @pytest.mark.asyncio
    async def test_default_pagination(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactsResponse()
        await ContactsService(mock_requester).get_contacts()
        path = mock_requester.execute_request.call_args.args[1]
        assert path == "/api/v1/getContacts?pageSize=20&pageNumber=1"

    @pytest.mark.asyncio
    async def test_filters_in_query(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactsResponse()
        params = GetContactsParams(page_size=5, page_number=2, name="Ann Lee")
        await ContactsService(mock_requester).get_contacts(params)
        path = mock_requester.execute_request.call_args.args[1]
        assert path == "/api/v1/getContacts?pageSize=5&pageNumber=2&name=Ann+Lee"

    @pytest.mark.asyncio
    async def test_filter_contacts_maps_created_after(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactsResponse()
        await ContactsService(mock_requester).filter_contacts(
            ContactFilter(name="Ann", created_after=datetime(2026, 3, 1)),
        )
        path = mock_requester.execute_request.call_args.args[1]
        assert "name=Ann" in path
        assert "createdDate=2026-03-01" in path

    @pytest.mark.asyncio
    async def test_get_all_contacts_walks_pages(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.side_effect = [
            ContactsResponse(total_pages=2, contacts=[Contact(id="1")]),
            ContactsResponse(total_pages=2, contacts=[Contact(id="2")]),
        ]
        contacts = await ContactsService(mock_requester).get_all_contacts()
        assert [c.id for c in contacts] == ["1", "2"]
        second_path = mock_requester.execute_request.call_args_list[1].args[1]
        assert "pageSize=50" in second_path
        assert "pageNumber=2" in second_path


class TestSingleContact:
    @pytest.mark.asyncio
    async def test_get_contact_escapes_id(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactResponse(contact=Contact(id="a/b"))
        contact = await ContactsService(mock_requester).get_contact("a/b")
        assert contact.id == "a/b"
        assert mock_requester.execute_request.call_args.args[1] == "/api/v1/getContact/a%2Fb"

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, mock_requester: MagicMock) -> None:
        service = ContactsService(mock_requester)
        with pytest.raises(ValidationError):
            await service.get_contact("")
        with pytest.raises(ValidationError):
            await service.delete_contact("")
        mock_requester.execute_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_contact_by_phone_not_found(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactsResponse()
        with pytest.raises(APIError) as exc_info:
            await ContactsService(mock_requester).get_contact_by_phone("15551234567")
        assert exc_info.value.is_not_found_error

    @pytest.mark.asyncio
    async def test_update_custom_params(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ContactResponse()
        await ContactsService(mock_requester).update_contact_custom_params(
            "c1", [CustomParam(name="city", value="Oslo")],
        )
        method, path, body, _ = mock_requester.execute_request.call_args.args
        assert (method, path) == ("PUT", "/api/v1/updateContact/c1")
        assert body.custom_params == [CustomParam(name="city", value="Oslo")]
        assert body.tags is None


class TestAddContact:
    @pytest.mark.asyncio
    async def test_short_phone_rejected_locally(self, mock_requester: MagicMock) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await ContactsService(mock_requester).add_contact(_make_contact_request(phone="123"))
        assert exc_info.value.field == "phone"
        mock_requester.execute_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_name_and_phone_aggregate(self, mock_requester: MagicMock) -> None:
        with pytest.raises(MultiValidationError) as exc_info:
            await ContactsService(mock_requester).add_contact(
                _make_contact_request(first_name="", phone=""),
            )
        assert [e.field for e in exc_info.value.errors] == ["firstName", "phone"]

    @pytest.mark.asyncio
    async def test_bulk_limits(self, mock_requester: MagicMock) -> None:
        service = ContactsService(mock_requester)
        with pytest.raises(ValidationError):
            await service.add_contacts([])
        with pytest.raises(ValidationError, match="maximum 100"):
            await service.add_contacts([_make_contact_request()] * 101)
        mock_requester.execute_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_bulk_errors_are_indexed(self, mock_requester: MagicMock) -> None:
        contacts = [_make_contact_request(), _make_contact_request(phone="1")]
        with pytest.raises(ValidationError) as exc_info:
            await ContactsService(mock_requester).add_contacts(contacts)
        assert exc_info.value.field == "contacts[1].phone"

    @pytest.mark.asyncio
    async def test_bulk_sends_wrapped_list(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = BulkContactResponse(success_count=1)
        response = await ContactsService(mock_requester).add_contacts([_make_contact_request()])
        method, path, body, _ = mock_requester.execute_request.call_args.args
        assert (method, path) == ("POST", "/api/v1/addContacts")
        assert len(body["contacts"]) == 1
        assert response.success_count == 1
