from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from errors import BadRequestError, NotFoundError, StorageError
from models import (
    AssetGoal,
    Attachment,
    Budget,
    Category,
    ExpenditureRatio,
    LedgerEntry,
    LedgerType,
    MoneyLog,
)
from periods import Period, resolve_month
from schemas import (
    AssetGoalIn,
    BudgetIn,
    CategoryIn,
    ExpenditureRatioIn,
    LedgerEntryIn,
    MoneyLogIn,
    PageParams,
)
from storage import Uploader, filename_from_url


logger = logging.getLogger(__name__)

MONEY_LOG_PREFIX = "moneyLog"


def upsert(
    session: Session, model: type, keys: dict[str, Any], values: dict[str, Any]
) -> Any:
    """
    Insert-or-update a row identified by ``keys`` in a single statement.

    ``keys`` must match a unique constraint on ``model`` so two concurrent
    callers cannot both insert. Returns the row as stored after the write.
    """
    dialect = session.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        stmt = insert(model).values(**keys, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(keys),
            set_={**values, "updated_at": datetime.utcnow()},
        )
        session.execute(stmt)
    else:
        _select_then_write(session, model, keys, values)

    stmt = select(model).filter_by(**keys).execution_options(populate_existing=True)
    return session.scalars(stmt).one()


def _select_then_write(
    session: Session, model: type, keys: dict[str, Any], values: dict[str, Any]
) -> None:
    existing = session.scalar(select(model).filter_by(**keys))
    if existing is None:
        try:
            with session.begin_nested():
                session.add(model(**keys, **values))
            return
        except IntegrityError:
            # another request inserted the row between our read and write
            existing = session.scalars(select(model).filter_by(**keys)).one()
    for name, value in values.items():
        setattr(existing, name, value)
    session.flush()


@dataclass(frozen=True)
class EntryPage:
    items: list[LedgerEntry]
    page: int
    limit: int
    sort: str
    total: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


@dataclass(frozen=True)
class MonthlySummary:
    month: str
    revenue_total: int
    expenditure_total: int
    remaining_budget: int
    entries: EntryPage


@dataclass(frozen=True)
class UploadedFile:
    content: bytes
    filename: Optional[str] = None


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def create(self, data: CategoryIn) -> Category:
        category = Category(
            user_id=self.user_id, type=data.type, name=data.name.strip()
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(
            f"category_created: user_id={self.user_id} id={category.id} "
            f"type={category.type.value}"
        )
        return category

    def list_names(self, category_type: LedgerType) -> list[str]:
        stmt = (
            select(Category.name)
            .where(Category.user_id == self.user_id, Category.type == category_type)
            .order_by(Category.id)
        )
        return list(self.session.scalars(stmt).all())

    def delete(self, category_id: int) -> None:
        category = self.session.get(Category, category_id)
        if not category or category.user_id != self.user_id:
            raise NotFoundError("Category not found")
        self.session.delete(category)
        self.session.commit()
        logger.info(f"category_deleted: user_id={self.user_id} id={category_id}")


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def upsert(self, data: BudgetIn) -> Budget:
        budget = upsert(
            self.session,
            Budget,
            keys={"user_id": self.user_id},
            values={"amount": data.amount},
        )
        self.session.commit()
        logger.info(
            f"budget_set: user_id={self.user_id} id={budget.id} amount={data.amount}"
        )
        return budget

    def get(self) -> Budget:
        budget = self.session.scalar(
            select(Budget).where(Budget.user_id == self.user_id)
        )
        if not budget:
            raise NotFoundError("Budget not found")
        return budget


class ExpenditureRatioService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def upsert(self, data: ExpenditureRatioIn) -> ExpenditureRatio:
        if data.fixed + data.variable != 100:
            raise BadRequestError(
                "Fixed and variable expenditure ratios must add up to 100 "
                f"(got {data.fixed} + {data.variable})"
            )
        ratio = upsert(
            self.session,
            ExpenditureRatio,
            keys={"user_id": self.user_id},
            values={"fixed_percent": data.fixed, "variable_percent": data.variable},
        )
        self.session.commit()
        logger.info(
            f"expenditure_ratio_set: user_id={self.user_id} id={ratio.id} "
            f"fixed={data.fixed} variable={data.variable}"
        )
        return ratio

    def get(self) -> ExpenditureRatio:
        ratio = self.session.scalar(
            select(ExpenditureRatio).where(ExpenditureRatio.user_id == self.user_id)
        )
        if not ratio:
            raise NotFoundError("Expenditure ratio not found")
        return ratio


class LedgerService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def create(self, data: LedgerEntryIn) -> LedgerEntry:
        entry = LedgerEntry(
            user_id=self.user_id,
            type=data.type,
            content=data.content,
            cost=data.cost,
            date=data.date,
            category_name=data.category_name,
            payment_method=data.payment_method,
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            f"ledger_entry_created: user_id={self.user_id} id={entry.id} "
            f"type={entry.type.value} cost={entry.cost} date={entry.date}"
        )
        return entry

    def _month_filter(self, period: Period) -> tuple:
        return (
            LedgerEntry.user_id == self.user_id,
            LedgerEntry.date.between(period.start, period.end),
        )

    def list_page(self, period: Period, params: PageParams) -> EntryPage:
        where = self._month_filter(period)
        if params.sort == "oldest":
            order = (LedgerEntry.date.asc(), LedgerEntry.id.asc())
        else:
            order = (LedgerEntry.date.desc(), LedgerEntry.id.desc())
        items = self.session.scalars(
            select(LedgerEntry)
            .where(*where)
            .order_by(*order)
            .limit(params.limit)
            .offset((params.page - 1) * params.limit)
        ).all()
        total = self.session.execute(
            select(func.count(LedgerEntry.id)).where(*where)
        ).scalar_one()
        return EntryPage(
            items=list(items),
            page=params.page,
            limit=params.limit,
            sort=params.sort,
            total=int(total or 0),
        )

    def totals(self, period: Period) -> dict[LedgerType, int]:
        rows = self.session.execute(
            select(LedgerEntry.type, func.coalesce(func.sum(LedgerEntry.cost), 0))
            .where(*self._month_filter(period))
            .group_by(LedgerEntry.type)
        ).all()
        return {LedgerType(row[0]): int(row[1] or 0) for row in rows}

    def monthly_summary(
        self, month: str, params: Optional[PageParams] = None
    ) -> MonthlySummary:
        period = resolve_month(month)
        entries = self.list_page(period, params or PageParams())
        budget = BudgetService(self.session, self.user_id).get()

        # totals cover the whole month, not only the requested page
        totals = self.totals(period)
        revenue = totals.get(LedgerType.revenue, 0)
        expenditure = totals.get(LedgerType.expenditure, 0)

        return MonthlySummary(
            month=period.slug,
            revenue_total=revenue,
            expenditure_total=expenditure,
            remaining_budget=budget.amount - expenditure,
            entries=entries,
        )


class GoalService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def upsert(self, data: AssetGoalIn) -> AssetGoal:
        goal = upsert(
            self.session,
            AssetGoal,
            keys={"user_id": self.user_id, "date": data.date},
            values={"content": data.content},
        )
        self.session.commit()
        logger.info(f"goal_set: user_id={self.user_id} id={goal.id} date={data.date}")
        return goal

    def get(self, on_date: date) -> AssetGoal:
        goal = self.session.scalar(
            select(AssetGoal).where(
                AssetGoal.user_id == self.user_id, AssetGoal.date == on_date
            )
        )
        if not goal:
            raise NotFoundError("Goal not found")
        return goal

    def list_for_month(self, month: str) -> list[AssetGoal]:
        period = resolve_month(month)
        stmt = (
            select(AssetGoal)
            .where(
                AssetGoal.user_id == self.user_id,
                AssetGoal.date.between(period.start, period.end),
            )
            .order_by(AssetGoal.date)
        )
        return list(self.session.scalars(stmt).all())


class MoneyLogService:
    def __init__(self, session: Session, user_id: int, uploader: Uploader) -> None:
        self.session = session
        self.user_id = user_id
        self.uploader = uploader

    def create(
        self, data: MoneyLogIn, files: Sequence[UploadedFile] = ()
    ) -> MoneyLog:
        """
        Store a money log and its images as one unit.

        Images are uploaded in input order. If any upload (or the final
        commit) fails, the log is rolled back and images already uploaded
        for it are removed from storage before the error propagates.
        """
        log = MoneyLog(user_id=self.user_id, date=data.date, content=data.content)
        self.session.add(log)
        self.session.flush()

        uploaded: list[str] = []
        try:
            for position, upload in enumerate(files):
                url = self.uploader.upload(
                    upload.content, MONEY_LOG_PREFIX, upload.filename
                )
                uploaded.append(url)
                log.attachments.append(
                    Attachment(
                        position=position,
                        image_url=url,
                        store_filename=filename_from_url(url),
                    )
                )
            self.session.commit()
        except Exception:
            self.session.rollback()
            self._discard_uploads(uploaded)
            raise

        logger.info(
            f"money_log_created: user_id={self.user_id} id={log.id} "
            f"attachments={len(uploaded)}"
        )
        return log

    def _discard_uploads(self, urls: list[str]) -> None:
        for url in urls:
            try:
                self.uploader.delete(url)
            except StorageError:
                logger.exception(f"money_log_cleanup_failed: url={url}")

    def get(self, money_log_id: int) -> MoneyLog:
        log = self.session.scalar(
            select(MoneyLog)
            .options(selectinload(MoneyLog.attachments))
            .where(MoneyLog.id == money_log_id, MoneyLog.user_id == self.user_id)
        )
        if not log:
            raise NotFoundError("Money log not found")
        return log
