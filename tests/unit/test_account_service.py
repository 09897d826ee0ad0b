"""AccountService withdrawal paths that the HTTP tests do not reach."""

import threading

import pytest

from fd_accounts.core.enums import AccountStatus, BalanceType, TransactionType
from fd_accounts.core.errors import AccountStateError, UpstreamUnavailable


@pytest.fixture
def service(container):
    return container.accounts


def _types(ledger, number: str) -> list[TransactionType]:
    return [t.transaction_type for t in ledger.list_transactions(number)]


class TestWithdraw:
    def test_interrupted_withdrawal_can_be_retried(
        self, service, ledger, make_account, fail_posting_once,
    ):
        account = make_account()
        number = account.account_number
        quote = service.withdrawal_inquiry(number)
        fail_posting_once(TransactionType.PREMATURE_WITHDRAWAL)

        with pytest.raises(UpstreamUnavailable):
            service.withdraw(number, "medical")
        assert ledger.get_account(number).status == AccountStatus.ACTIVE

        closed = service.withdraw(number, "medical")

        assert closed.status == AccountStatus.PREMATURELY_CLOSED
        assert _types(ledger, number) == [
            TransactionType.PRINCIPAL_DEPOSIT,
            TransactionType.PENALTY_DEBIT,
            TransactionType.PREMATURE_WITHDRAWAL,
        ]
        assert ledger.get_balance(number, BalanceType.PENALTY) == quote.penalty_amount

    def test_concurrent_withdrawals_close_once(self, service, ledger, make_account):
        number = make_account().account_number
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker():
            try:
                service.withdraw(number)
                outcome = "closed"
            except AccountStateError:
                outcome = "rejected"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["closed", "rejected", "rejected", "rejected"]
        assert _types(ledger, number).count(TransactionType.PENALTY_DEBIT) == 1
