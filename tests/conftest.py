"""Shared fixtures for the import pipeline tests."""

import pytest

from bank_import.audit import AuditLogger
from bank_import.models.transaction import ColumnMapping, DateFormat, ImportConfig
from bank_import.orchestrator import ImportBatchProcessor
from bank_import.services.storage import InMemoryAuditStorage, InMemoryTransactionStore


STATEMENT = (
    "Date,Description,Amount,Balance,Reference\n"
    "01/03/2024,EFTPOS COUNTDOWN PONSONBY 4412,-45.67,954.33,\n"
    "02/03/2024,SALARY ACME LTD,2500.00,3454.33,PAY0324\n"
    '03/03/2024,"Mercury Energy",-120.50,3333.83,INV-889\n'
)

# Accounts the in-memory store knows about
ACCOUNTS = ("acc-cheque-01", "acc-1", "acc-savings")


@pytest.fixture
def statement_text() -> str:
    return STATEMENT


@pytest.fixture
def mapping() -> ColumnMapping:
    return ColumnMapping(
        date="Date",
        description="Description",
        amount="Amount",
        balance="Balance",
        reference="Reference",
    )


@pytest.fixture
def config(mapping) -> ImportConfig:
    return ImportConfig(
        target_account_id="acc-cheque-01",
        column_mapping=mapping,
        date_format=DateFormat.DD_MM_YYYY,
    )


@pytest.fixture
def store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore(accounts=ACCOUNTS)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def processor(store, audit_storage) -> ImportBatchProcessor:
    return ImportBatchProcessor(
        store=store,
        audit_logger=AuditLogger(audit_storage),
    )
