from decimal import Decimal

import pytest

from schoolmaster.core.exceptions import BusinessRuleException, NotFoundException, ValidationException
from schoolmaster.models.balance import BalanceAccount, BalanceTransactionType
from schoolmaster.services.balance_service import BalanceService, to_money


class TestBalanceService:
    def test_to_money_rounds_half_up(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(7) == Decimal("7.00")

    def test_credit_writes_ledger(self, unit_db, student):
        service = BalanceService(unit_db)

        entry = service.credit(student.id, Decimal("50"), BalanceTransactionType.DEPOSIT, "Wpłata")

        assert entry.amount == Decimal("50.00")
        assert entry.balance_before == Decimal("300.00")
        assert entry.balance_after == Decimal("350.00")
        assert service.get_balance(student.id)["balance"] == Decimal("350.00")

    def test_credit_to_loyalty_account(self, unit_db, student):
        service = BalanceService(unit_db)

        entry = service.credit(
            student.id,
            Decimal("10"),
            BalanceTransactionType.LOYALTY_BONUS,
            "Bonus",
            account=BalanceAccount.LOYALTY,
        )

        assert entry.account == "loyalty_balance"
        balances = service.get_balance(student.id)
        assert balances["balance"] == Decimal("300.00")
        assert balances["loyalty_balance"] == Decimal("10.00")

    def test_credit_must_be_positive(self, unit_db, student):
        with pytest.raises(ValidationException):
            BalanceService(unit_db).credit(student.id, Decimal("0"), BalanceTransactionType.DEPOSIT, "x")

    def test_debit_stores_negative_amount(self, unit_db, student):
        entry = BalanceService(unit_db).debit(
            student.id, Decimal("120"), BalanceTransactionType.PAYMENT, "Lekcja"
        )

        assert entry.amount == Decimal("-120.00")
        assert student.balance == Decimal("180.00")

    def test_debit_rejects_overdraft(self, unit_db, student):
        with pytest.raises(BusinessRuleException) as exc:
            BalanceService(unit_db).debit(student.id, Decimal("300.01"), BalanceTransactionType.PAYMENT, "x")

        assert exc.value.code == "INSUFFICIENT_FUNDS"
        assert exc.value.details == {"balance": "300.00", "required": "300.01"}
        assert student.balance == Decimal("300.00")

    def test_partial_debit_floors_at_zero(self, unit_db, make_user):
        user = make_user(balance=Decimal("15.00"))
        service = BalanceService(unit_db)

        entry = service.debit(
            user.id, Decimal("25"), BalanceTransactionType.WITHDRAWAL, "Opłata", allow_partial=True
        )

        assert entry.amount == Decimal("-15.00")
        assert user.balance == Decimal("0.00")
        assert service.debit(
            user.id, Decimal("25"), BalanceTransactionType.WITHDRAWAL, "Opłata", allow_partial=True
        ) is None

    def test_list_transactions_newest_first(self, unit_db, student):
        service = BalanceService(unit_db)
        service.credit(student.id, Decimal("1"), BalanceTransactionType.DEPOSIT, "pierwsza")
        service.credit(student.id, Decimal("2"), BalanceTransactionType.DEPOSIT, "druga")

        rows = service.list_transactions(student.id, limit=1)

        assert len(rows) == 1
        assert rows[0].balance_after == Decimal("303.00")

    def test_unknown_user(self, unit_db):
        with pytest.raises(NotFoundException):
            BalanceService(unit_db).get_balance("01UNKNOWNUSER")
