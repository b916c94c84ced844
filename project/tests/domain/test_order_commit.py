"""How a failed commit on an order is reported."""

import asyncio

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from orderflow.models.order import Order
from orderflow.services.order import _commit


class FailingSession:
    def __init__(self, message):
        self.message = message
        self.rolled_back = False

    async def commit(self):
        raise IntegrityError("INSERT INTO orders ...", {}, Exception(self.message))

    async def rollback(self):
        self.rolled_back = True


class SilentLog:
    async def log_warning(self, target="", message="", data=None, is_console=None):
        pass


def commit_with(message):
    db = FailingSession(message)
    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(_commit(db, SilentLog(), Order(id=1, invoice_code="INV-1")))
    assert db.rolled_back
    return exc_info.value


def test_invoice_code_clash_is_a_conflict():
    exc = commit_with("UNIQUE constraint failed: orders.invoice_code")
    assert exc.status_code == 409
    assert exc.detail == "Invoice code already exists"


def test_other_constraint_failure_is_bad_request():
    exc = commit_with("NOT NULL constraint failed: orders.client_name")
    assert exc.status_code == 400
    assert "Invoice code" not in exc.detail
