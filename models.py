from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class LedgerType(str, Enum):
    revenue = "REVENUE"
    expenditure = "EXPENDITURE"


LEDGER_TYPE_ENUM = SAEnum(
    LedgerType,
    name="ledgertype",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[LedgerType] = mapped_column(LEDGER_TYPE_ENUM, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (Index("ix_categories_user_type", "user_id", "type"),)


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("user_id", name="uq_budget_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)


class ExpenditureRatio(Base, TimestampMixin):
    __tablename__ = "expenditure_ratios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    fixed_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    variable_percent: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_expenditure_ratio_user"),
        CheckConstraint(
            "fixed_percent + variable_percent = 100",
            name="ck_expenditure_ratio_sum",
        ),
    )


class LedgerEntry(Base, TimestampMixin):
    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[LedgerType] = mapped_column(LEDGER_TYPE_ENUM, nullable=False)
    content: Mapped[str] = mapped_column(String(200), nullable=False)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # free text on purpose: entries keep their label after a category is deleted
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (Index("ix_ledger_entries_user_date", "user_id", "date"),)


class AssetGoal(Base, TimestampMixin):
    __tablename__ = "asset_goals"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_asset_goal_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)


class MoneyLog(Base, TimestampMixin):
    __tablename__ = "money_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment",
        back_populates="money_log",
        cascade="all, delete-orphan",
        order_by="Attachment.position",
    )

    __table_args__ = (Index("ix_money_logs_user_date", "user_id", "date"),)


class Attachment(Base, TimestampMixin):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    money_log_id: Mapped[int] = mapped_column(
        ForeignKey("money_logs.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    store_filename: Mapped[str] = mapped_column(String(255), nullable=False)

    money_log: Mapped["MoneyLog"] = relationship(
        "MoneyLog", back_populates="attachments"
    )

    __table_args__ = (
        UniqueConstraint(
            "money_log_id", "position", name="uq_attachment_log_position"
        ),
    )
