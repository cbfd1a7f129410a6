"""
Quota Management Service

One entry point, QuotaService.consume(), gates every billable operation before
any external call is made. The policy depends on the user's plan:

- FixedWindowCounterPolicy (free, basic): count events per calendar day and
  month; reject with DAILY_LIMIT_REACHED / MONTHLY_LIMIT_REACHED at the cap.
- CreditBalancePolicy (pro, elite): take the operation's credit cost from the
  balance; reject with INSUFFICIENT_CREDITS when it is too low.

Counter users who bought one-off credits spend them once a counter is full.
Both policies run as single conditional SQL statements, so concurrent
requests cannot exceed a cap or overdraw a balance.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional
from uuid import UUID
from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from docuchat.config import settings
from docuchat.core.exceptions import InsufficientCreditsError, RateLimitError, ValidationError
from docuchat.models.usage_counter import UsageCounter
from docuchat.models.user import User
from docuchat.services.credit_ledger import CreditLedger
import logging

logger = logging.getLogger(__name__)

WINDOWS = ("day", "month")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def window_start(window: str, today: date) -> date:
    """First day of the day or month window containing today"""
    if window == "day":
        return today
    if window == "month":
        return today.replace(day=1)
    raise ValueError(f"Unknown usage window: {window}")


def parse_operation(operation: str) -> tuple:
    """
    Split "summary:brief" into its counter event and credit cost key

    Returns:
        (event_type, cost_key), e.g. ("summary", "summary_brief") or ("chat", "chat")
    """
    event_type, _, variant = operation.partition(":")
    cost_key = f"{event_type}_{variant}" if variant else event_type
    return event_type, cost_key


class QuotaPolicy(ABC):
    """How one class of plan pays for operations"""

    @abstractmethod
    def consume(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        """Record the usage or raise without recording anything"""
        pass

    @abstractmethod
    def refund(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        """Undo a consume() whose operation failed upstream"""
        pass


class FixedWindowCounterPolicy(QuotaPolicy):
    """Calendar day/month event counters capped per plan"""

    def __init__(self, db: Session, limits: Dict[str, Dict[str, int]], today: Callable[[], date] = utc_today):
        self.db = db
        self.limits = limits
        self.today = today

    def consume(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        caps = self.limits.get(event_type)
        if not caps:
            return

        today = self.today()
        applied = []
        for window in WINDOWS:
            cap = caps.get(window)
            if cap is None:
                continue
            start = window_start(window, today)
            if not self._increment(user.id, event_type, window, start, cap, quantity):
                for done_window, done_start in applied:
                    self._decrement(user.id, event_type, done_window, done_start, quantity)
                self.db.commit()
                code = RateLimitError.DAILY if window == "day" else RateLimitError.MONTHLY
                logger.info(f"User {user.id} reached {window} {event_type} limit ({cap})")
                raise RateLimitError(code, event_type, cap)
            applied.append((window, start))

        self.db.commit()

    def refund(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        caps = self.limits.get(event_type)
        if not caps:
            return
        today = self.today()
        for window in WINDOWS:
            if window in caps:
                self._decrement(user.id, event_type, window, window_start(window, today), quantity)
        self.db.commit()

    def _increment(self, user_id: UUID, event_type: str, window: str, start: date, cap: int, quantity: int) -> bool:
        """
        Add quantity to the window counter unless that would pass cap

        Single INSERT ... ON CONFLICT DO UPDATE ... WHERE used + quantity <= cap,
        so zero affected rows means the cap is reached.
        """
        if quantity > cap:
            return False

        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert(UsageCounter).values(
            user_id=user_id,
            event_type=event_type,
            period=window,
            window_start=start,
            used=quantity,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "event_type", "period", "window_start"],
            set_={"used": UsageCounter.used + quantity},
            where=UsageCounter.used + quantity <= cap,
        )
        return self.db.execute(stmt).rowcount == 1

    def _decrement(self, user_id: UUID, event_type: str, window: str, start: date, quantity: int) -> None:
        self.db.execute(
            update(UsageCounter)
            .where(
                UsageCounter.user_id == user_id,
                UsageCounter.event_type == event_type,
                UsageCounter.period == window,
                UsageCounter.window_start == start,
                UsageCounter.used >= quantity,
            )
            .values(used=UsageCounter.used - quantity)
            .execution_options(synchronize_session=False)
        )


class CreditBalancePolicy(QuotaPolicy):
    """Operations paid from the credit balance"""

    def __init__(self, ledger: CreditLedger):
        self.ledger = ledger

    def consume(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        total = cost * quantity
        if total > 0:
            self.ledger.deduct(user.id, total)

    def refund(self, user: User, event_type: str, cost: int, quantity: int) -> None:
        total = cost * quantity
        if total > 0:
            self.ledger.add(user.id, total)


class QuotaService:
    """
    Gate billable operations by plan

    Operations: "chat", "upload", "ocr_page", "summary:<type>".
    """

    def __init__(self, db: Session, today: Callable[[], date] = utc_today):
        self.db = db
        self.today = today
        self.ledger = CreditLedger(db)
        self.credit_policy = CreditBalancePolicy(self.ledger)

    def cost_of(self, operation: str) -> int:
        _, cost_key = parse_operation(operation)
        return settings.CREDIT_COSTS.get(cost_key, 0)

    def uses_credits(self, user: User) -> bool:
        return user.plan in settings.CREDIT_PLANS

    def counter_policy(self, user: User) -> FixedWindowCounterPolicy:
        limits = settings.PLAN_LIMITS.get(user.plan) or settings.PLAN_LIMITS["free"]
        return FixedWindowCounterPolicy(self.db, limits, self.today)

    def consume(self, user: User, operation: str, quantity: int = 1) -> str:
        """
        Charge one operation (or quantity units of it) to the user

        Returns:
            "credits" or "counter", the policy that accepted the charge

        Raises:
            RateLimitError: counter plan at its cap with no spare credits
            InsufficientCreditsError: credit plan balance below the cost
        """
        if quantity < 1:
            raise ValidationError(f"Quantity must be at least 1, got {quantity}")

        event_type, _ = parse_operation(operation)
        cost = self.cost_of(operation)

        if self.uses_credits(user):
            self.credit_policy.consume(user, event_type, cost, quantity)
            return "credits"

        try:
            self.counter_policy(user).consume(user, event_type, cost, quantity)
            return "counter"
        except RateLimitError as limit_error:
            if cost <= 0:
                raise
            try:
                self.credit_policy.consume(user, event_type, cost, quantity)
            except InsufficientCreditsError:
                raise limit_error
            logger.info(f"User {user.id} paid for {operation} with purchased credits")
            return "credits"

    def refund(self, user: User, operation: str, charged_with: str, quantity: int = 1) -> None:
        """Reverse a charge after the operation failed upstream"""
        event_type, _ = parse_operation(operation)
        cost = self.cost_of(operation)
        policy = self.credit_policy if charged_with == "credits" else self.counter_policy(user)
        policy.refund(user, event_type, cost, quantity)
        logger.info(f"Refunded {operation} x{quantity} to user {user.id} ({charged_with})")

    def get_usage(self, user: User) -> Dict[str, Dict[str, Optional[int]]]:
        """Current day and month counts per event type, with the plan's caps"""
        today = self.today()
        rows = self.db.query(UsageCounter).filter(
            UsageCounter.user_id == user.id,
            (
                ((UsageCounter.period == "day") & (UsageCounter.window_start == window_start("day", today)))
                | ((UsageCounter.period == "month") & (UsageCounter.window_start == window_start("month", today)))
            ),
        ).all()

        limits = {} if self.uses_credits(user) else self.counter_policy(user).limits
        usage = {}
        for event_type in set(limits) | {row.event_type for row in rows}:
            caps = limits.get(event_type, {})
            usage[event_type] = {
                "day": 0,
                "month": 0,
                "day_limit": caps.get("day"),
                "month_limit": caps.get("month"),
            }
        for row in rows:
            usage[row.event_type][row.period] = row.used
        return usage
