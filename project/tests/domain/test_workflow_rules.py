"""Role actions and status guards, on orders that never touch a database."""

import datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from orderflow.models.order import Order, OrderStatus, PaymentStatus
from orderflow.services import workflow

NOW = datetime.datetime(2025, 10, 4, 12, 0, tzinfo=datetime.timezone.utc)
LOCAL = ["Local-A", "Picap"]
NATIONAL = ["Interrapidisimo"]


def make_order(**fields):
    values = {
        "invoice_code": "INV-1",
        "client_name": "Ana",
        "delivery_method": "local-delivery",
        "payment_method": "cash",
        "total_amount": Decimal("50000"),
        "status": OrderStatus.PENDING_WALLET.value,
        "payment_status": PaymentStatus.PENDING.value,
        "billed_by": "bill",
        "version": 1,
    }
    values.update(fields)
    return Order(**values)


def status_code(exc_info):
    return exc_info.value.status_code


class TestCheckTransition:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending_wallet", "pending_logistics"),
            ("pending_logistics", "pending"),
            ("pending", "delivered"),
        ],
    )
    def test_single_step_forward_is_allowed(self, current, target):
        workflow.check_transition(make_order(status=current), target)

    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending_wallet", "pending"),
            ("pending_wallet", "delivered"),
            ("pending_logistics", "delivered"),
            ("pending", "pending_wallet"),
            ("pending_logistics", "pending_wallet"),
        ],
    )
    def test_skipping_or_going_back_conflicts(self, current, target):
        with pytest.raises(HTTPException) as exc_info:
            workflow.check_transition(make_order(status=current), target)
        assert status_code(exc_info) == 409

    def test_delivered_is_terminal(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.check_transition(make_order(status="delivered"), "pending")
        assert status_code(exc_info) == 409
        assert "already delivered" in exc_info.value.detail

    def test_store_pickup_goes_straight_to_delivered(self):
        order = make_order(status="pending_logistics", delivery_method="store-pickup")
        workflow.check_transition(order, "delivered")

    def test_new_order_only_starts_at_pending_wallet(self):
        workflow.check_transition(make_order(status=None), "pending_wallet")
        with pytest.raises(HTTPException) as exc_info:
            workflow.check_transition(make_order(status=None), "pending")
        assert status_code(exc_info) == 409

    def test_unknown_status_is_bad_request(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.check_transition(make_order(), "shipped")
        assert status_code(exc_info) == 400


class TestVersion:
    def test_matching_or_missing_version_passes(self):
        order = make_order(version=3)
        workflow.check_version(order, 3)
        workflow.check_version(order, None)

    def test_stale_version_conflicts(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.check_version(make_order(version=3), 2)
        assert status_code(exc_info) == 409


class TestVerifyPayment:
    def test_local_delivery_may_leave_unpaid(self):
        changes = workflow.verify_payment_changes(make_order(), PaymentStatus.PENDING)
        assert changes["status"] == "pending_logistics"
        assert changes["payment_status"] == "pending"

    def test_paid_requires_proof(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.verify_payment_changes(make_order(), PaymentStatus.PAID)
        assert status_code(exc_info) == 400

        changes = workflow.verify_payment_changes(make_order(), PaymentStatus.PAID, payment_proof="tx-1.pdf")
        assert changes["payment_proof"] == "tx-1.pdf"

    def test_store_pickup_must_be_paid(self):
        order = make_order(delivery_method="store-pickup")
        with pytest.raises(HTTPException) as exc_info:
            workflow.verify_payment_changes(order, PaymentStatus.PENDING)
        assert status_code(exc_info) == 400

    def test_store_pickup_with_credit_is_rejected(self):
        order = make_order(delivery_method="store-pickup")
        with pytest.raises(HTTPException):
            workflow.verify_payment_changes(order, PaymentStatus.PENDING, credit_approved=True)

    @pytest.mark.parametrize("method", ["domestic-shipment", "international-shipment"])
    def test_shipment_needs_payment_or_credit(self, method):
        order = make_order(delivery_method=method)
        with pytest.raises(HTTPException):
            workflow.verify_payment_changes(order, PaymentStatus.PENDING)

        changes = workflow.verify_payment_changes(order, PaymentStatus.PENDING, credit_approved=True)
        assert changes["payment_status"] == "credit-approved"

    def test_only_from_pending_wallet(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.verify_payment_changes(make_order(status="pending"), PaymentStatus.PENDING)
        assert status_code(exc_info) == 409


class TestProcess:
    def order(self, **fields):
        return make_order(status="pending_logistics", **fields)

    def test_assigns_local_carrier(self):
        changes = workflow.process_changes(
            self.order(), "logan", NOW, LOCAL, NATIONAL, weight=Decimal("500"), recipient="Local-A"
        )
        assert changes["status"] == "pending"
        assert changes["recipient"] == "Local-A"
        assert changes["weight"] == Decimal("500")

    def test_weight_or_no_weight_is_required(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.process_changes(self.order(), "logan", NOW, LOCAL, NATIONAL, recipient="Local-A")
        assert status_code(exc_info) == 400

    def test_weight_and_no_weight_exclude_each_other(self):
        with pytest.raises(HTTPException):
            workflow.process_changes(
                self.order(), "logan", NOW, LOCAL, NATIONAL, weight=Decimal("1"), no_weight=True, recipient="Local-A"
            )

    def test_no_weight_clears_weight(self):
        changes = workflow.process_changes(
            self.order(), "logan", NOW, LOCAL, NATIONAL, no_weight=True, recipient="Picap"
        )
        assert changes["weight"] is None

    def test_recipient_must_match_delivery_method(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.process_changes(
                self.order(), "logan", NOW, LOCAL, NATIONAL, weight=Decimal("1"), recipient="Interrapidisimo"
            )
        assert status_code(exc_info) == 400

        changes = workflow.process_changes(
            self.order(delivery_method="domestic-shipment"),
            "logan", NOW, LOCAL, NATIONAL, weight=Decimal("1"), recipient="Interrapidisimo",
        )
        assert changes["recipient"] == "Interrapidisimo"

    def test_missing_recipient_is_rejected(self):
        with pytest.raises(HTTPException):
            workflow.process_changes(self.order(), "logan", NOW, LOCAL, NATIONAL, weight=Decimal("1"))

    def test_store_pickup_is_delivered_without_recipient(self):
        changes = workflow.process_changes(
            self.order(delivery_method="store-pickup", recipient="stale"),
            "logan", NOW, LOCAL, NATIONAL, no_weight=True,
        )
        assert changes["status"] == "delivered"
        assert changes["recipient"] is None
        assert changes["delivered_by"] == "logan"
        assert changes["delivery_date"] == NOW


class TestDeliver:
    def order(self, **fields):
        return make_order(status="pending", recipient="Local-A", **fields)

    def test_requires_proof(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.deliver_changes(self.order(), "Local-A", NOW, amount_collected=Decimal("50000"))
        assert status_code(exc_info) == 400

    @pytest.mark.parametrize("amount", [None, Decimal("0")])
    def test_cash_requires_positive_amount(self, amount):
        with pytest.raises(HTTPException):
            workflow.deliver_changes(self.order(), "Local-A", NOW, delivery_proof="p.jpg", amount_collected=amount)

    def test_non_cash_needs_no_amount(self):
        changes = workflow.deliver_changes(
            self.order(payment_method="bank-transfer"), "Local-A", NOW, delivery_proof="p.jpg"
        )
        assert changes["status"] == "delivered"
        assert "amount_collected" not in changes

    def test_records_who_and_when(self):
        changes = workflow.deliver_changes(
            self.order(), "Local-A", NOW, delivery_proof="p.jpg", amount_collected=Decimal("50000")
        )
        assert changes["delivered_by"] == "Local-A"
        assert changes["delivery_date"] == NOW
        assert changes["amount_collected"] == Decimal("50000")

    def test_delivered_order_cannot_be_delivered_again(self):
        with pytest.raises(HTTPException) as exc_info:
            workflow.deliver_changes(
                make_order(status="delivered"), "Local-A", NOW, delivery_proof="p.jpg", amount_collected=Decimal("1")
            )
        assert status_code(exc_info) == 409


class TestCarriers:
    def test_carriers_per_delivery_method(self):
        assert workflow.carriers_for("local-delivery", LOCAL, NATIONAL) == LOCAL
        assert workflow.carriers_for("international-shipment", LOCAL, NATIONAL) == NATIONAL
        assert workflow.carriers_for("store-pickup", LOCAL, NATIONAL) == []
