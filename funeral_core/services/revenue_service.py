"""Revenue recognition math (pure, no I/O).

A contract's service and product lines are grouped by revenue GL account
number. The journal entry debits receivables for the total and credits each
revenue account for its sum, so debits equal credits by construction.
"""

from dataclasses import dataclass
from decimal import Decimal

from funeral_core.core.errors import ValidationError
from funeral_core.schemas.contract import Contract, GLAccount, JournalEntryLineInput

ZERO = Decimal("0")


@dataclass(frozen=True)
class RevenueLine:
    account_number: str
    amount: Decimal


@dataclass(frozen=True)
class RevenueBreakdown:
    total: Decimal
    credits: tuple[RevenueLine, ...]

    @property
    def account_numbers(self) -> list[str]:
        return [line.account_number for line in self.credits]


def compute_revenue_breakdown(contract: Contract) -> RevenueBreakdown:
    """
    Sum line totals per GL account number, in account-number order.

    Accounts summing to zero get no credit line.

    Raises:
        ValidationError: the contract has nothing billable
    """
    sums: dict[str, Decimal] = {}
    for item in contract.line_items:
        sums[item.gl_account_id] = sums.get(item.gl_account_id, ZERO) + item.total_price

    credits = tuple(
        RevenueLine(account_number=number, amount=amount)
        for number, amount in sorted(sums.items())
        if amount > ZERO
    )
    if not credits:
        raise ValidationError(
            f"Contract {contract.id} has no billable line items", field="line_items"
        )
    return RevenueBreakdown(total=sum((line.amount for line in credits), ZERO), credits=credits)


def build_journal_lines(
    breakdown: RevenueBreakdown,
    ar_account: GLAccount,
    revenue_accounts: dict[str, GLAccount],
    case_business_key: str,
) -> list[JournalEntryLineInput]:
    """One DR line to receivables, one CR line per revenue account."""
    lines = [
        JournalEntryLineInput(
            account_id=ar_account.id,
            account_number=ar_account.account_number,
            debit=breakdown.total,
            description=f"AR - Case {case_business_key}",
        )
    ]
    for credit in breakdown.credits:
        account = revenue_accounts[credit.account_number]
        lines.append(
            JournalEntryLineInput(
                account_id=account.id,
                account_number=account.account_number,
                credit=credit.amount,
                description=f"Revenue {account.name or account.account_number} - Case {case_business_key}",
            )
        )
    return lines
