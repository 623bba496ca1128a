from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from rapidfuzz.distance import Levenshtein

from calculations import (
    GoalProgress,
    ReportTotals,
    aggregate_transactions,
    compute_goal_progress,
)
from errors import (
    AuthenticationError,
    BadRequestError,
    CategoryInUseError,
    ConflictError,
    ForbiddenError,
    InvalidAmountError,
    InvalidCategoryError,
    InvalidDateError,
    InvalidDateRangeError,
    NotFoundError,
)
from models import (
    CENTS,
    MAX_AMOUNT,
    Category,
    Goal,
    Transaction,
    TransactionType,
    User,
)
from periods import Period, local_today, month_period, year_period
from schemas import (
    CategoryIn,
    GoalIn,
    GoalUpdateIn,
    RegisterIn,
    TransactionIn,
    TransactionUpdateIn,
)
from security import hash_password, verify_password


DEFAULT_CATEGORIES: tuple[tuple[str, TransactionType], ...] = (
    ("Salary", TransactionType.income),
    ("Food", TransactionType.expense),
    ("Rent", TransactionType.expense),
    ("Transportation", TransactionType.expense),
    ("Entertainment", TransactionType.expense),
    ("Healthcare", TransactionType.expense),
    ("Utilities", TransactionType.expense),
)


def _require_positive_amount(amount: Decimal, label: str = "Amount") -> Decimal:
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"{label} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"{label} cannot exceed {MAX_AMOUNT}")
    if amount != amount.quantize(CENTS):
        raise InvalidAmountError(f"{label} cannot have more than two decimal places")
    return amount


def seed_default_categories(session: Session) -> int:
    """Create any missing default category. Safe to call on every startup."""
    created = 0
    for name, kind in DEFAULT_CATEGORIES:
        if CategoryService.default_exists_in(session, name):
            continue
        session.add(Category(name=name, type=kind, is_custom=False, user_id=None))
        created += 1
    session.commit()
    return created


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, data: RegisterIn) -> User:
        username = data.username.strip()
        taken = self.session.scalar(select(User.id).where(User.username == username))
        if taken is not None:
            raise ConflictError("Username already exists")

        user = User(
            username=username,
            password_hash=hash_password(data.password),
            full_name=data.full_name.strip(),
            phone_number=data.phone_number.strip(),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self.session.scalar(
            select(User).where(User.username == username.strip())
        )
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)


class CategoryScope(str, Enum):
    default = "default"
    custom = "custom"


@dataclass(frozen=True)
class CategoryMatch:
    category: Category
    scope: CategoryScope

    @property
    def type(self) -> TransactionType:
        return self.category.type


class CategoryService:
    # Defaults and a user's custom names never collide, so the order only
    # decides which query runs first.
    SEARCH_ORDER = (CategoryScope.default, CategoryScope.custom)

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    @staticmethod
    def default_exists_in(session: Session, name: str) -> bool:
        stmt = select(
            exists().where(Category.name == name, Category.is_custom.is_(False))
        )
        return bool(session.scalar(stmt))

    def default_exists(self, name: str) -> bool:
        return self.default_exists_in(self.session, name)

    def _find_in_scope(self, name: str, scope: CategoryScope) -> Optional[Category]:
        stmt = select(Category).where(Category.name == name)
        if scope == CategoryScope.default:
            stmt = stmt.where(Category.is_custom.is_(False))
        else:
            stmt = stmt.where(
                Category.is_custom.is_(True), Category.user_id == self.user_id
            )
        return self.session.scalar(stmt)

    def match(self, name: str) -> Optional[CategoryMatch]:
        for scope in self.SEARCH_ORDER:
            category = self._find_in_scope(name, scope)
            if category is not None:
                return CategoryMatch(category=category, scope=scope)
        return None

    def find_visible(self, name: str) -> Optional[Category]:
        found = self.match(name)
        return found.category if found else None

    def list_visible(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(
                (Category.is_custom.is_(False)) | (Category.user_id == self.user_id)
            )
            .order_by(Category.is_custom, Category.type, Category.name)
        )
        return list(self.session.scalars(stmt).all())

    def resolve(self, name: str) -> CategoryMatch:
        found = self.match(name)
        if found is None:
            message = f"Invalid category: {name}"
            suggestion = self._suggest(name)
            if suggestion:
                message += f" (did you mean '{suggestion}'?)"
            raise InvalidCategoryError(message)
        return found

    def _suggest(self, name: str) -> Optional[str]:
        needle = name.strip().lower()
        best_distance: Optional[int] = None
        best: list[str] = []
        for category in self.list_visible():
            dist = int(Levenshtein.distance(needle, category.name.lower()))
            if best_distance is None or dist < best_distance:
                best_distance = dist
                best = [category.name]
            elif dist == best_distance:
                best.append(category.name)
        if best_distance is not None and best_distance <= 1 and len(best) == 1:
            return best[0]
        return None

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        if not name:
            raise BadRequestError("Category name cannot be empty")
        if self.default_exists(name):
            raise ConflictError("Category with this name already exists")
        if self._find_in_scope(name, CategoryScope.custom) is not None:
            raise ConflictError("Category with this name already exists")

        category = Category(
            user_id=self.user_id,
            name=name,
            type=data.type,
            is_custom=True,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete(self, name: str) -> None:
        if self.default_exists(name):
            raise ForbiddenError("Cannot delete default categories")

        category = self._find_in_scope(name, CategoryScope.custom)
        if category is None:
            raise NotFoundError("Category not found")

        if TransactionService(self.session, self.user_id).category_in_use(name):
            raise CategoryInUseError(
                "Cannot delete category that is in use by transactions"
            )

        self.session.delete(category)
        self.session.commit()


class TransactionService:
    def __init__(
        self, session: Session, user_id: int, *, today: Optional[date] = None
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.today = today

    def _today(self) -> date:
        return self.today or local_today()

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.scalar(
            select(Transaction).where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        if not txn:
            raise NotFoundError("Transaction not found")
        return txn

    def list(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.user_id == self.user_id)
        if start_date is not None:
            stmt = stmt.where(Transaction.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Transaction.date <= end_date)
        if category is not None:
            stmt = stmt.where(Transaction.category == category)
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.id.desc())
        return list(self.session.scalars(stmt).all())

    def list_since(self, start_date: date) -> list[Transaction]:
        return self.list(start_date=start_date)

    def list_in_period(self, period: Optional[Period]) -> list[Transaction]:
        if period is None:
            return []
        return self.list(start_date=period.start, end_date=period.end)

    def list_for_month(self, year: int, month: int) -> list[Transaction]:
        return self.list_in_period(month_period(year, month))

    def list_for_year(self, year: int) -> list[Transaction]:
        return self.list_in_period(year_period(year))

    def category_in_use(self, category: str) -> bool:
        stmt = select(
            exists().where(
                Transaction.user_id == self.user_id,
                Transaction.category == category,
            )
        )
        return bool(self.session.scalar(stmt))

    def create(self, data: TransactionIn) -> Transaction:
        if data.date > self._today():
            raise InvalidDateError("Transaction date cannot be in the future")
        amount = _require_positive_amount(data.amount)
        match = CategoryService(self.session, self.user_id).resolve(data.category)

        txn = Transaction(
            user_id=self.user_id,
            date=data.date,
            category=match.category.name,
            type=match.type,
            description=data.description,
        )
        txn.amount = amount
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: int, data: TransactionUpdateIn) -> Transaction:
        txn = self.get(transaction_id)

        amount = None
        if data.amount is not None:
            amount = _require_positive_amount(data.amount)
        match = None
        if data.category is not None:
            match = CategoryService(self.session, self.user_id).resolve(data.category)

        if amount is not None:
            txn.amount = amount
        if match is not None:
            txn.category = match.category.name
            txn.type = match.type
        if data.description is not None:
            txn.description = data.description

        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()


@dataclass(frozen=True)
class GoalStatus:
    goal: Goal
    progress: GoalProgress


class GoalService:
    def __init__(
        self, session: Session, user_id: int, *, today: Optional[date] = None
    ) -> None:
        self.session = session
        self.user_id = user_id
        self.today = today

    def _today(self) -> date:
        return self.today or local_today()

    def _get_goal(self, goal_id: int) -> Goal:
        goal = self.session.scalar(
            select(Goal).where(Goal.user_id == self.user_id, Goal.id == goal_id)
        )
        if not goal:
            raise NotFoundError("Goal not found")
        return goal

    def _require_future_target(self, target_date: date) -> date:
        if target_date <= self._today():
            raise InvalidDateError("Target date must be in the future")
        return target_date

    def progress_for(self, goal: Goal) -> GoalProgress:
        txns = TransactionService(self.session, self.user_id).list_since(
            goal.start_date
        )
        return compute_goal_progress(goal.target_amount, txns)

    def _status(self, goal: Goal) -> GoalStatus:
        return GoalStatus(goal=goal, progress=self.progress_for(goal))

    def create(self, data: GoalIn) -> GoalStatus:
        name = data.goal_name.strip()
        if not name:
            raise BadRequestError("Goal name cannot be empty")
        target_amount = _require_positive_amount(data.target_amount, "Target amount")
        target_date = self._require_future_target(data.target_date)
        start_date = data.start_date or self._today()
        if start_date >= target_date:
            raise InvalidDateRangeError("Start date must be before target date")

        goal = Goal(
            user_id=self.user_id,
            name=name,
            start_date=start_date,
            target_date=target_date,
        )
        goal.target_amount = target_amount
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return self._status(goal)

    def list(self) -> list[GoalStatus]:
        goals = self.session.scalars(
            select(Goal).where(Goal.user_id == self.user_id).order_by(Goal.id)
        ).all()
        return [self._status(goal) for goal in goals]

    def get(self, goal_id: int) -> GoalStatus:
        return self._status(self._get_goal(goal_id))

    def update(self, goal_id: int, data: GoalUpdateIn) -> GoalStatus:
        goal = self._get_goal(goal_id)

        target_amount = None
        if data.target_amount is not None:
            target_amount = _require_positive_amount(
                data.target_amount, "Target amount"
            )
        target_date = None
        if data.target_date is not None:
            target_date = self._require_future_target(data.target_date)
            if goal.start_date >= target_date:
                raise InvalidDateRangeError("Start date must be before target date")

        if target_amount is not None:
            goal.target_amount = target_amount
        if target_date is not None:
            goal.target_date = target_date

        self.session.commit()
        self.session.refresh(goal)
        return self._status(goal)

    def delete(self, goal_id: int) -> None:
        goal = self._get_goal(goal_id)
        self.session.delete(goal)
        self.session.commit()


@dataclass(frozen=True)
class Report:
    year: int
    month: Optional[int]
    totals: ReportTotals


class ReportService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def monthly(self, year: int, month: int) -> Report:
        # month_period validates the month before any query runs
        txns = TransactionService(self.session, self.user_id).list_for_month(
            year, month
        )
        return Report(year=year, month=month, totals=aggregate_transactions(txns))

    def yearly(self, year: int) -> Report:
        txns = TransactionService(self.session, self.user_id).list_for_year(year)
        return Report(year=year, month=None, totals=aggregate_transactions(txns))
