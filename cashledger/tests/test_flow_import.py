"""Service-level tests for the CSV cash-flow import and the running-balance chain."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cashledger.app.core.errors import (
    EmptyInputError,
    ImportValidationError,
    PersistenceError,
    UnsupportedImportKindError,
)
from cashledger.app.models.account import Account
from cashledger.app.models.cash_flow import CashFlow, FlowSource
from cashledger.app.models.ledger import AccountTransaction
from cashledger.app.services.imports import importer
from cashledger.app.services.imports.importer import import_csv
from cashledger.tests.conftest import flows_csv


# ─── Helpers ─────────────────────────────────────────────────────────────────


def _ledger(db: Session, account: Account) -> list[AccountTransaction]:
    return (
        db.query(AccountTransaction)
        .filter(AccountTransaction.account_id == account.id)
        .order_by(AccountTransaction.transaction_date, AccountTransaction.sequence)
        .all()
    )


def _flow_count(db: Session) -> int:
    return db.query(CashFlow).count()


# ─── Happy path ──────────────────────────────────────────────────────────────


class TestImportFlows:
    def test_income_then_expense_chain(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},100.00,V-1,cash,opening float",
            f"2024-01-02,expense,{cash_account.id},50.00,V-2,cash,stationery",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 2
        assert summary.failed == 0
        ledger = _ledger(db, cash_account)
        assert [(t.balance_before_cents, t.balance_after_cents) for t in ledger] == [
            (0, 10000),
            (10000, 5000),
        ]
        assert [t.amount_cents for t in ledger] == [10000, -5000]
        assert [t.sequence for t in ledger] == [1, 2]

    def test_every_row_gets_flow_and_transaction(self, db: Session, cash_account: Account) -> None:
        lines = [f"2024-02-{day:02d},income,{cash_account.id},1.00,,," for day in range(1, 11)]

        summary = import_csv(db, "flows", flows_csv(*lines), None)

        assert summary.inserted == 10
        flows = db.query(CashFlow).filter(CashFlow.account_id == cash_account.id).all()
        assert len(flows) == 10
        assert all(f.transaction is not None for f in flows)
        assert all(f.source == FlowSource.IMPORT for f in flows)

    def test_chain_is_continuous(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},10.00,,,",
            f"2024-01-01,expense,{cash_account.id},3.50,,,",
            f"2024-01-03,income,{cash_account.id},0.25,,,",
            f"2024-01-04,expense,{cash_account.id},100.00,,,",
        )

        import_csv(db, "flows", text, None)

        ledger = _ledger(db, cash_account)
        for previous, current in zip(ledger, ledger[1:]):
            assert current.balance_before_cents == previous.balance_after_cents
        for txn in ledger:
            assert txn.balance_after_cents == txn.balance_before_cents + txn.amount_cents
        # Imports may overdraw the account
        assert ledger[-1].balance_after_cents == 1000 - 350 + 25 - 10000

    def test_optional_columns_are_stored(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},5.00,V-9,,",
        )
        import_csv(db, "flows", text, None)
        flow = db.query(CashFlow).one()
        assert flow.voucher_no == "V-9"
        assert flow.method is None
        assert flow.memo is None

    def test_counterparty_column_is_optional(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"{cash_account.id},20.00,2024-01-01,income,ACME",
            header="account_id,amount,biz_date,type,counterparty",
        )
        summary = import_csv(db, "flows", text, None)
        assert summary.inserted == 1
        assert db.query(CashFlow).one().counterparty == "ACME"

    def test_rows_are_posted_in_date_order(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-05,expense,{cash_account.id},1.00,late,,",
            f"2024-01-01,income,{cash_account.id},10.00,early,,",
            f"2024-01-05,income,{cash_account.id},2.00,late-2,,",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 3
        vouchers = [db.get(CashFlow, t.flow_id).voucher_no for t in _ledger(db, cash_account)]
        # Stable: same-day rows keep file order
        assert vouchers == ["early", "late", "late-2"]

    def test_accounts_have_independent_chains(
        self, db: Session, cash_account: Account, bank_account: Account
    ) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},1.00,,,",
            f"2024-01-01,expense,{bank_account.id},100.00,,,",
            f"2024-01-02,income,{cash_account.id},2.00,,,",
        )

        import_csv(db, "flows", text, None)

        assert [t.balance_after_cents for t in _ledger(db, cash_account)] == [100, 300]
        assert [t.balance_after_cents for t in _ledger(db, bank_account)] == [40000]


# ─── Seeding from existing state ─────────────────────────────────────────────


class TestChainSeeding:
    def test_seeds_from_opening_balance(self, db: Session, bank_account: Account) -> None:
        import_csv(db, "flows", flows_csv(f"2024-01-01,income,{bank_account.id},1.00,,,"), None)
        txn = _ledger(db, bank_account)[0]
        assert txn.balance_before_cents == 50000
        assert txn.balance_after_cents == 50100

    def test_second_import_continues_chain(self, db: Session, cash_account: Account) -> None:
        import_csv(db, "flows", flows_csv(f"2024-01-01,income,{cash_account.id},100.00,,,"), None)
        import_csv(db, "flows", flows_csv(f"2024-01-02,expense,{cash_account.id},40.00,,,"), None)

        ledger = _ledger(db, cash_account)
        assert [(t.balance_before_cents, t.balance_after_cents) for t in ledger] == [
            (0, 10000),
            (10000, 6000),
        ]
        assert [t.sequence for t in ledger] == [1, 2]

    def test_reimport_duplicates(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(f"2024-01-01,income,{cash_account.id},100.00,V-1,,")

        import_csv(db, "flows", text, None)
        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 1
        assert _flow_count(db) == 2
        assert _ledger(db, cash_account)[-1].balance_after_cents == 20000

    def test_backdated_row_is_rejected(self, db: Session, cash_account: Account) -> None:
        import_csv(db, "flows", flows_csv(f"2024-03-01,income,{cash_account.id},10.00,,,"), None)

        summary = import_csv(
            db,
            "flows",
            flows_csv(
                f"2024-02-01,income,{cash_account.id},1.00,,,",
                f"2024-03-01,income,{cash_account.id},2.00,,,",
            ),
            None,
        )

        assert summary.inserted == 1
        assert summary.failed == 1
        failure = summary.failures[0]
        assert failure.row == 2
        assert failure.field == "biz_date"
        assert "2024-02-01" in failure.error.render("en")


# ─── Row failures ────────────────────────────────────────────────────────────


class TestRowFailures:
    def test_unknown_account_does_not_block_other_rows(
        self, db: Session, cash_account: Account
    ) -> None:
        missing = uuid.uuid4()
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},100.00,,,",
            f"2024-01-01,income,{missing},5.00,,,",
            f"2024-01-02,expense,{cash_account.id},50.00,,,",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 2
        assert summary.failed == 1
        out = summary.to_out("en")
        assert out.errors[0].row == 3
        assert out.errors[0].field == "account_id"
        assert str(missing) in out.errors[0].reason
        # The rejected row does not break the chain of the valid ones
        assert _ledger(db, cash_account)[-1].balance_after_cents == 5000

    def test_inactive_account_is_rejected(
        self, db: Session, cash_account: Account, closed_account: Account
    ) -> None:
        text = flows_csv(f"2024-01-01,income,{closed_account.id},1.00,,,")
        summary = import_csv(db, "flows", text, None)
        assert summary.inserted == 0
        assert summary.failed == 1
        assert _flow_count(db) == 0

    def test_failures_are_reported_in_row_order(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,bogus,{cash_account.id},1.00,,,",
            f"2024-01-01,income,{cash_account.id},-1,,,",
            f"not-a-date,income,{cash_account.id},1.00,,,",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 0
        out = summary.to_out("en")
        assert [(e.row, e.field) for e in out.errors] == [
            (2, "type"),
            (3, "amount"),
            (4, "biz_date"),
        ]

    def test_reasons_follow_language(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(f"2024-01-01,income,{cash_account.id},,,,")
        summary = import_csv(db, "flows", text, None)
        assert summary.to_out("en").errors[0].reason == "amount is required"
        assert summary.to_out("zh").errors[0].reason == "amount 不能为空"

    def test_blank_lines_do_not_shift_row_numbers(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},1.00,,,",
            f"2024-01-01,income,{cash_account.id},oops,,,",
        )
        summary = import_csv(db, "flows", text.replace("\n", "\n\n", 1), None)
        assert summary.failures[0].row == 3


# ─── Whole-import failures ───────────────────────────────────────────────────


class TestImportRejected:
    def test_header_only(self, db: Session) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            import_csv(db, "flows", flows_csv(), None)
        assert str(exc_info.value) == "CSV file has no data rows"
        assert exc_info.value.render("zh") == "CSV文件没有数据行"

    def test_empty_body(self, db: Session) -> None:
        with pytest.raises(EmptyInputError):
            import_csv(db, "flows", "  \n\n", None)

    def test_unsupported_kind(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(f"2024-01-01,income,{cash_account.id},1.00,,,")
        with pytest.raises(UnsupportedImportKindError) as exc_info:
            import_csv(db, "payroll", text, None)
        assert "payroll" in str(exc_info.value)
        assert _flow_count(db) == 0

    def test_missing_required_columns(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(f"2024-01-01,{cash_account.id}", header="biz_date,account_id")
        with pytest.raises(ImportValidationError) as exc_info:
            import_csv(db, "flows", text, None)
        assert "type, amount" in str(exc_info.value)
        assert _flow_count(db) == 0

    def test_storage_fault_rolls_back_everything(
        self, db: Session, cash_account: Account, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_post_flow = importer.post_flow
        calls = {"n": 0}

        def _failing_post_flow(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise OperationalError("INSERT INTO cash_flows", {}, Exception("disk I/O error"))
            return real_post_flow(*args, **kwargs)

        monkeypatch.setattr(importer, "post_flow", _failing_post_flow)
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},1.00,,,",
            f"2024-01-02,income,{cash_account.id},2.00,,,",
            f"2024-01-03,income,{cash_account.id},3.00,,,",
        )

        with pytest.raises(PersistenceError):
            import_csv(db, "flows", text, None)

        assert _flow_count(db) == 0
        assert db.query(AccountTransaction).count() == 0
        assert db.get(Account, cash_account.id) is not None


# ─── Oversized values stay row failures ──────────────────────────────────────


class TestOversizedRows:
    def test_huge_amount_does_not_sink_the_import(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},1.00,,,",
            f"2024-01-02,income,{cash_account.id},100000000000000000,,,",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 1
        assert [(f.row, f.field) for f in summary.failures] == [(3, "amount")]
        assert _flow_count(db) == 1

    def test_over_long_memo_is_a_row_failure(self, db: Session, cash_account: Account) -> None:
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},1.00,V-1,cash,{'x' * 1001}",
            f"2024-01-01,income,{cash_account.id},2.00,V-2,cash,ok",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 1
        assert [(f.row, f.field) for f in summary.failures] == [(2, "memo")]
        assert db.query(CashFlow).one().voucher_no == "V-2"

    def test_balance_overflow_is_a_row_failure(self, db: Session, cash_account: Account) -> None:
        near_max = "92233720368547758.00"
        text = flows_csv(
            f"2024-01-01,income,{cash_account.id},{near_max},,,",
            f"2024-01-02,income,{cash_account.id},1.00,,,",
            f"2024-01-03,expense,{cash_account.id},5.00,,,",
        )

        summary = import_csv(db, "flows", text, None)

        assert summary.inserted == 2
        assert [(f.row, f.field) for f in summary.failures] == [(3, "amount")]
        assert _ledger(db, cash_account)[-1].balance_after_cents == 9223372036854775800 - 500
