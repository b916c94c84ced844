"""apply_changes() is the single writer: guards, field whitelist and audit trail."""

import datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from orderflow.models.order import Order
from orderflow.services import workflow

NOW = datetime.datetime(2025, 10, 4, 12, 0, tzinfo=datetime.timezone.utc)


def make_order(**fields):
    values = {
        "invoice_code": "INV-7",
        "client_name": "Ana",
        "delivery_method": "local-delivery",
        "payment_method": "cash",
        "total_amount": Decimal("50000.00"),
        "status": "pending_wallet",
        "payment_status": "pending",
        "billed_by": "bill",
        "version": 1,
    }
    values.update(fields)
    return Order(**values)


class TestRenderValue:
    def test_values_are_stored_as_strings(self):
        assert workflow.render_value(None) is None
        assert workflow.render_value(Decimal("50000.00")) == "50000"
        assert workflow.render_value(Decimal("12.50")) == "12.5"
        assert workflow.render_value(NOW) == "2025-10-04T12:00:00+00:00"
        assert workflow.render_value(7) == "7"


class TestApplyChanges:
    def test_one_history_row_per_changed_field(self):
        order = make_order()
        entries = workflow.apply_changes(
            order, {"client_name": "Ana Maria", "phone": "555-1234", "address": None}, "bill", NOW
        )

        assert [(e.field, e.old_value, e.new_value) for e in entries] == [
            ("client_name", "Ana", "Ana Maria"),
            ("phone", None, "555-1234"),
        ]
        assert order.client_name == "Ana Maria"
        assert order.history == entries
        assert all(e.user == "bill" and e.changed_at == NOW for e in entries)

    def test_equal_numbers_are_not_a_change(self):
        order = make_order()
        assert workflow.apply_changes(order, {"total_amount": 50000}, "bill", NOW) == []
        assert order.history == []

    def test_status_change_is_audited(self):
        order = make_order()
        entries = workflow.apply_changes(order, {"status": "pending_logistics"}, "wally", NOW)
        assert [(e.field, e.old_value, e.new_value) for e in entries] == [
            ("status", "pending_wallet", "pending_logistics")
        ]

    def test_illegal_transition_changes_nothing(self):
        order = make_order()
        with pytest.raises(HTTPException) as exc_info:
            workflow.apply_changes(order, {"status": "delivered", "notes": "skip"}, "bill", NOW)
        assert exc_info.value.status_code == 409
        assert order.status == "pending_wallet"
        assert order.notes is None
        assert order.history == []

    def test_untracked_fields_are_refused(self):
        order = make_order()
        with pytest.raises(HTTPException) as exc_info:
            workflow.apply_changes(order, {"version": 9}, "bill", NOW)
        assert exc_info.value.status_code == 400
        assert order.version == 1

    def test_history_replays_to_current_state(self):
        order = make_order(status=None)
        workflow.apply_changes(order, {"status": "pending_wallet"}, "bill", NOW)
        workflow.apply_changes(order, {"status": "pending_logistics", "payment_status": "paid"}, "wally", NOW)
        workflow.apply_changes(order, {"status": "pending", "recipient": "Local-A"}, "logan", NOW)

        replayed = {}
        for entry in order.history:
            replayed[entry.field] = entry.new_value
        assert replayed == {"status": "pending", "payment_status": "paid", "recipient": "Local-A"}
        assert [e.old_value for e in order.history if e.field == "status"] == [
            None, "pending_wallet", "pending_logistics"
        ]
