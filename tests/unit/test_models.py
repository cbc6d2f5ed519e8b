"""Tests for shared wire models."""

from __future__ import annotations

import json

from src.contacts.models import Contact, CreateContactRequest
from src.http.executor import encode_body
from src.messages.models import MessageDetailResponse
from src.models import AuditEvent, AuditEventType, PaginatedResponse, RiskLevel, page_query


def test_camel_case_on_the_wire() -> None:
    response = PaginatedResponse.model_validate(
        {"result": True, "pageSize": 10, "totalPages": 3, "totalCount": 25},
    )
    assert response.page_size == 10
    assert response.total_pages == 3


def test_unknown_fields_ignored() -> None:
    contact = Contact.model_validate({"id": "1", "somethingNew": 42})
    assert contact.id == "1"


def test_contact_special_aliases() -> None:
    contact = Contact.model_validate({"wAid": "15551234567", "allowSMS": True})
    assert contact.wa_id == "15551234567"
    assert contact.allow_sms


def test_request_omits_unset_optionals() -> None:
    body = encode_body(CreateContactRequest(first_name="Ann", phone="15551234567"))
    assert body == {
        "firstName": "Ann",
        "phone": "15551234567",
        "allowBroadcast": False,
        "allowSMS": False,
    }


def test_message_detail_reads_nested_message() -> None:
    detail = MessageDetailResponse.model_validate(
        {"result": True, "message": {"id": "m1", "from": "1555"}},
    )
    assert detail.message.id == "m1"
    assert detail.message.from_ == "1555"


def test_page_query_defaults() -> None:
    assert page_query(0, 0) == {"pageSize": 20, "pageNumber": 1}
    assert page_query(5, 3) == {"pageSize": 5, "pageNumber": 3}


def test_audit_event_serializes() -> None:
    event = AuditEvent(
        event_type=AuditEventType.WEBHOOK_RECEIVED,
        source_ip="10.0.0.1",
        event_id="evt-1",
        action="dispatch",
        result="success",
        risk_level=RiskLevel.INFO,
    )
    data = json.loads(event.model_dump_json())
    assert data["event_type"] == "webhook_received"
    assert data["risk_level"] == "info"
    assert data["timestamp"]
