"""
Credit Ledger

Per-user credit balance kept on the users row. Every change is one UPDATE
statement evaluated by the database, so concurrent requests from the same user
cannot overdraw the balance:

    UPDATE users SET credit_balance = credit_balance - :cost
    WHERE id = :user_id AND credit_balance >= :cost

A decrement that matches no row is rejected, never clamped.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy import update
from sqlalchemy.orm import Session
from docuchat.core.exceptions import InsufficientCreditsError, ResourceNotFoundError, ValidationError
from docuchat.models.user import User
import logging

logger = logging.getLogger(__name__)


class CreditLedger:
    """Atomic credit balance operations"""

    def __init__(self, db: Session):
        self.db = db

    def balance(self, user_id: UUID) -> int:
        value = self._current_balance(user_id)
        if value is None:
            raise ResourceNotFoundError("user", user_id)
        return value

    def deduct(self, user_id: UUID, cost: int, commit: bool = True) -> None:
        """
        Atomically take cost credits from the user's balance

        Args:
            user_id: User UUID
            cost: Credits to take (must be positive)
            commit: Commit immediately so no row lock is held across slow calls

        Raises:
            InsufficientCreditsError: balance is below cost
            ResourceNotFoundError: user does not exist
        """
        if cost <= 0:
            raise ValidationError(f"Credit cost must be positive, got {cost}")

        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.credit_balance >= cost)
            .values(credit_balance=User.credit_balance - cost)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            balance = self._current_balance(user_id)
            if balance is None:
                raise ResourceNotFoundError("user", user_id)
            logger.info(f"Credit deduction of {cost} rejected for user {user_id} (balance {balance})")
            raise InsufficientCreditsError(cost, balance)

        if commit:
            self.db.commit()
        self._expire(user_id)
        logger.debug(f"Deducted {cost} credits from user {user_id}")

    def add(self, user_id: UUID, credits: int, commit: bool = True) -> None:
        """Atomically add credits (refunds, one-off purchases)"""
        if credits <= 0:
            raise ValidationError(f"Credits to add must be positive, got {credits}")

        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(credit_balance=User.credit_balance + credits)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ResourceNotFoundError("user", user_id)

        if commit:
            self.db.commit()
        self._expire(user_id)
        logger.info(f"Added {credits} credits to user {user_id}")

    def set_balance(self, user_id: UUID, credits: int, commit: bool = True) -> None:
        """Reset the balance to a plan allowance"""
        if credits < 0:
            raise ValidationError(f"Credit balance cannot be negative, got {credits}")

        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(credit_balance=credits)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ResourceNotFoundError("user", user_id)

        if commit:
            self.db.commit()
        self._expire(user_id)

    def _current_balance(self, user_id: UUID) -> Optional[int]:
        row = self.db.query(User.credit_balance).filter(User.id == user_id).first()
        return row[0] if row else None

    def _expire(self, user_id: UUID) -> None:
        # Loaded User objects hold the old balance until refreshed
        user = self.db.identity_map.get(self.db.identity_key(User, user_id))
        if user is not None:
            self.db.expire(user, ["credit_balance"])
