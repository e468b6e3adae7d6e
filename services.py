from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from analytics import (
    BudgetProgress,
    budget_progress,
    calculate_cash_flow_data,
    calculate_spending_data,
    calculate_subscription_cost,
    compare_months,
    filter_by_date_range,
    get_monthly_stats,
    savings_rate,
)
from config import get_settings
from csv_utils import parse_amount, parse_date
from entities import (
    Budget as BudgetRecord,
    Subscription as SubscriptionRecord,
    Transaction as TransactionRecord,
)
from lookups import LOOKUP_VERSION
from models import Budget, Subscription, Transaction
from periods import Period, previous_period
from recurrence import next_occurrence, recurring_statistics
from reports import default_filename, generate_report
from schemas import BudgetIn, ReportOptions, SubscriptionIn, TransactionIn
from workbook import Workbook

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"


def get_current_user_id() -> int:
    return 1


def to_transaction(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        type=row.type,
        amount=parse_amount(row.amount),
        category=row.category,
        description=row.description or "",
        date=parse_date(row.date),
        recurring=bool(row.recurring),
        frequency=row.frequency if row.recurring else None,
    )


def to_subscription(row: Subscription) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=row.id,
        name=row.name,
        category=row.category,
        cost=parse_amount(row.cost),
        billing_cycle=row.billing_cycle,
        next_billing_date=parse_date(row.next_billing_date),
        last_used=parse_date(row.last_used) if row.last_used else None,
        status=row.status,
    )


def to_budget(row: Budget) -> BudgetRecord:
    return BudgetRecord(
        id=row.id,
        category=row.category,
        limit=parse_amount(row.limit_amount),
        period=row.period,
    )


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _get_row(self, transaction_id: str) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn or txn.user_id != self.user_id:
            raise ValueError("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> TransactionRecord:
        txn = Transaction(
            user_id=self.user_id,
            type=data.type,
            amount=data.amount,
            category=data.category.strip(),
            description=data.description.strip(),
            date=data.date,
            recurring=data.recurring,
            frequency=data.frequency if data.recurring else None,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return to_transaction(txn)

    def get(self, transaction_id: str) -> TransactionRecord:
        return to_transaction(self._get_row(transaction_id))

    def update(self, transaction_id: str, data: TransactionIn) -> TransactionRecord:
        txn = self._get_row(transaction_id)
        for field, value in data.model_dump().items():
            setattr(txn, field, value)
        txn.category = data.category.strip()
        txn.description = data.description.strip()
        if not data.recurring:
            txn.frequency = None
        self.session.commit()
        self.session.refresh(txn)
        return to_transaction(txn)

    def delete(self, transaction_id: str) -> None:
        txn = self._get_row(transaction_id)
        self.session.delete(txn)
        self.session.commit()

    def list_all(self) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        )
        return [to_transaction(row) for row in self.session.scalars(stmt)]

    def all_for_period(self, period: Period) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.date.between(period.start, period.end),
            )
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        )
        return [to_transaction(row) for row in self.session.scalars(stmt)]


class SubscriptionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _get_row(self, subscription_id: str) -> Subscription:
        sub = self.session.get(Subscription, subscription_id)
        if not sub or sub.user_id != self.user_id:
            raise ValueError("Subscription not found")
        return sub

    def create(self, data: SubscriptionIn) -> SubscriptionRecord:
        sub = Subscription(user_id=self.user_id, **data.model_dump())
        self.session.add(sub)
        self.session.commit()
        self.session.refresh(sub)
        return to_subscription(sub)

    def get(self, subscription_id: str) -> SubscriptionRecord:
        return to_subscription(self._get_row(subscription_id))

    def update(self, subscription_id: str, data: SubscriptionIn) -> SubscriptionRecord:
        sub = self._get_row(subscription_id)
        for field, value in data.model_dump().items():
            setattr(sub, field, value)
        self.session.commit()
        self.session.refresh(sub)
        return to_subscription(sub)

    def mark_used(self, subscription_id: str, used_on: date) -> SubscriptionRecord:
        sub = self._get_row(subscription_id)
        sub.last_used = used_on
        self.session.commit()
        self.session.refresh(sub)
        return to_subscription(sub)

    def delete(self, subscription_id: str) -> None:
        sub = self._get_row(subscription_id)
        self.session.delete(sub)
        self.session.commit()

    def list_all(self) -> list[SubscriptionRecord]:
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == self.user_id)
            .order_by(Subscription.created_at.desc())
        )
        return [to_subscription(row) for row in self.session.scalars(stmt)]


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _get_row(self, budget_id: str) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise ValueError("Budget not found")
        return budget

    def create(self, data: BudgetIn) -> BudgetRecord:
        budget = Budget(
            user_id=self.user_id,
            category=data.category.strip(),
            limit_amount=data.limit,
            period=data.period,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return to_budget(budget)

    def get(self, budget_id: str) -> BudgetRecord:
        return to_budget(self._get_row(budget_id))

    def update(self, budget_id: str, data: BudgetIn) -> BudgetRecord:
        budget = self._get_row(budget_id)
        budget.category = data.category.strip()
        budget.limit_amount = data.limit
        budget.period = data.period
        self.session.commit()
        self.session.refresh(budget)
        return to_budget(budget)

    def delete(self, budget_id: str) -> None:
        budget = self._get_row(budget_id)
        self.session.delete(budget)
        self.session.commit()

    def list_all(self) -> list[BudgetRecord]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.created_at.desc())
        )
        return [to_budget(row) for row in self.session.scalars(stmt)]

    def progress(self, today: date) -> list[BudgetProgress]:
        transactions = TransactionService(self.session, self.user_id).list_all()
        return budget_progress(self.list_all(), transactions, today=today)


class AnalyticsService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.txn_service = TransactionService(session, self.user_id)
        self.subscription_service = SubscriptionService(session, self.user_id)
        self.budget_service = BudgetService(session, self.user_id)

    def dashboard(self, period: Period, today: date) -> dict[str, object]:
        transactions = self.txn_service.list_all()
        subscriptions = self.subscription_service.list_all()
        budgets = self.budget_service.list_all()

        prev = previous_period(period)
        current_stats = get_monthly_stats(transactions, period.start, period.end)
        previous_stats = get_monthly_stats(transactions, prev.start, prev.end)
        in_period = filter_by_date_range(transactions, period.start, period.end)

        active = [sub for sub in subscriptions if sub.is_active]
        recurring = recurring_statistics(transactions, upcoming_from=today)
        return {
            "period": period,
            "previous_period": prev,
            "stats": current_stats,
            "previous_stats": previous_stats,
            "comparison": compare_months(current_stats, previous_stats),
            "savings_rate": savings_rate(
                current_stats.total_income, current_stats.net_cash_flow
            ),
            # Trailing months always end at today, whatever period is selected.
            "cash_flow": calculate_cash_flow_data(transactions, today=today),
            "spending": calculate_spending_data(in_period),
            "budgets": budget_progress(budgets, transactions, today=today),
            "subscriptions": {
                "active": len(active),
                "unused": sum(1 for sub in active if sub.is_unused(today)),
                "monthly_cost": calculate_subscription_cost(active, "monthly"),
                "yearly_cost": calculate_subscription_cost(active, "yearly"),
            },
            "recurring": recurring,
            "lookup_version": LOOKUP_VERSION,
        }

    def upcoming_recurring(self) -> list[dict[str, object]]:
        return [
            {"transaction": txn, "next_date": next_occurrence(txn)}
            for txn in self.txn_service.list_all()
            if txn.recurring
        ]


class ReportService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.txn_service = TransactionService(session, self.user_id)
        self.subscription_service = SubscriptionService(session, self.user_id)
        self.budget_service = BudgetService(session, self.user_id)

    def build_workbook(self, options: ReportOptions, now: datetime) -> Workbook:
        settings = get_settings()
        generated_at = options.generated_at or now
        options = options.model_copy(
            update={
                "title": options.title or settings.report_title,
                "currency_format": options.currency_format or settings.currency_format,
                "filename": options.filename
                or default_filename(generated_at, settings.export_prefix),
            }
        )
        period = Period("report", options.start, options.end)
        workbook = generate_report(
            options,
            self.txn_service.all_for_period(period),
            self.subscription_service.list_all(),
            self.budget_service.list_all(),
            generated_at=generated_at,
        )
        logger.info(
            f"report_service: user_id={self.user_id} filename={workbook.filename} "
            f"sheets={','.join(workbook.sheet_names)}"
        )
        return workbook


class DataExportService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def export_user_data(self, now: datetime) -> dict[str, object]:
        transactions = TransactionService(self.session, self.user_id).list_all()
        subscriptions = SubscriptionService(self.session, self.user_id).list_all()
        budgets = BudgetService(self.session, self.user_id).list_all()
        logger.info(
            f"data_export: user_id={self.user_id} transactions={len(transactions)} "
            f"subscriptions={len(subscriptions)} budgets={len(budgets)}"
        )
        return {
            "user": {"id": self.user_id},
            "transactions": [
                {
                    "id": t.id,
                    "type": t.type.value,
                    "amount": str(t.amount),
                    "category": t.category,
                    "description": t.description,
                    "date": t.date.isoformat(),
                    "recurring": t.recurring,
                    "frequency": t.frequency.value if t.frequency else None,
                }
                for t in transactions
            ],
            "budgets": [
                {
                    "id": b.id,
                    "category": b.category,
                    "limit_amount": str(b.limit),
                    "period": b.period.value,
                }
                for b in budgets
            ],
            "subscriptions": [
                {
                    "id": s.id,
                    "name": s.name,
                    "category": s.category,
                    "cost": str(s.cost),
                    "billing_cycle": s.billing_cycle.value,
                    "next_billing_date": s.next_billing_date.isoformat(),
                    "last_used": s.last_used.isoformat() if s.last_used else None,
                    "status": s.status.value,
                }
                for s in subscriptions
            ],
            "exported_at": now.isoformat(),
            "export_format_version": EXPORT_FORMAT_VERSION,
        }


class AccountService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def delete_all_data(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for model in (Transaction, Subscription, Budget):
            result = self.session.execute(
                delete(model).where(model.user_id == self.user_id)
            )
            counts[model.__tablename__] = int(result.rowcount or 0)
        self.session.commit()
        logger.info(f"account_purge: user_id={self.user_id} deleted={counts}")
        return counts
