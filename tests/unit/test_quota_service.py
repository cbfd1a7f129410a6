"""
Unit tests for QuotaService

Tests:
- Fixed-window counters for free and basic plans
- Credit balance for pro and elite plans
- Purchased credits once a counter is full
- Refunds and window rollover
"""

from datetime import date

import pytest

from docuchat.core.exceptions import InsufficientCreditsError, RateLimitError, ValidationError
from docuchat.models.usage_counter import UsageCounter
from docuchat.services.quota_service import QuotaService, parse_operation, window_start


class Today:
    def __init__(self, value: date):
        self.value = value

    def __call__(self):
        return self.value


@pytest.fixture
def today():
    return Today(date(2024, 3, 15))


@pytest.fixture
def quota(db_session, today):
    return QuotaService(db_session, today=today)


@pytest.mark.unit
class TestHelpers:

    @pytest.mark.parametrize("operation,expected", [
        ("chat", ("chat", "chat")),
        ("ocr_page", ("ocr_page", "ocr_page")),
        ("summary:detailed", ("summary", "summary_detailed")),
    ])
    def test_parse_operation(self, operation, expected):
        assert parse_operation(operation) == expected

    def test_window_start(self):
        assert window_start("day", date(2024, 3, 15)) == date(2024, 3, 15)
        assert window_start("month", date(2024, 3, 15)) == date(2024, 3, 1)
        with pytest.raises(ValueError):
            window_start("year", date(2024, 3, 15))

    def test_costs(self, quota):
        assert quota.cost_of("chat") == 1
        assert quota.cost_of("ocr_page") == 2
        assert quota.cost_of("summary:brief") == 5
        assert quota.cost_of("upload") == 0


@pytest.mark.unit
class TestCounterPlans:

    def test_free_daily_chat_cap(self, quota, make_user):
        user = make_user("free", 0)

        for _ in range(5):
            assert quota.consume(user, "chat") == "counter"

        with pytest.raises(RateLimitError) as exc_info:
            quota.consume(user, "chat")

        assert exc_info.value.code == "DAILY_LIMIT_REACHED"
        assert exc_info.value.details == {"event_type": "chat", "limit": 5}
        assert quota.get_usage(user)["chat"]["day"] == 5

    def test_counter_resets_next_day(self, quota, make_user, today):
        user = make_user("free", 0)
        for _ in range(5):
            quota.consume(user, "chat")

        today.value = date(2024, 3, 16)

        assert quota.consume(user, "chat") == "counter"
        assert quota.get_usage(user)["chat"]["day"] == 1

    def test_basic_monthly_cap_leaves_day_counter_untouched(self, db_session, quota, make_user):
        user = make_user("basic", 0)
        db_session.add(UsageCounter(
            user_id=user.id, event_type="chat", period="month",
            window_start=date(2024, 3, 1), used=300,
        ))
        db_session.commit()

        with pytest.raises(RateLimitError) as exc_info:
            quota.consume(user, "chat")

        assert exc_info.value.code == "MONTHLY_LIMIT_REACHED"
        usage = quota.get_usage(user)["chat"]
        assert usage["day"] == 0
        assert usage["month"] == 300
        assert usage["month_limit"] == 300

    def test_ocr_pages_count_as_quantity(self, quota, make_user):
        user = make_user("free", 0)

        quota.consume(user, "ocr_page", 7)
        with pytest.raises(RateLimitError):
            quota.consume(user, "ocr_page", 4)

        assert quota.get_usage(user)["ocr_page"]["day"] == 7

    def test_full_counter_spends_purchased_credits(self, quota, make_user):
        user = make_user("free", 3)
        for _ in range(5):
            quota.consume(user, "chat")

        assert quota.consume(user, "chat") == "credits"
        assert user.credit_balance == 2

    def test_free_operation_never_falls_back_to_credits(self, quota, make_user):
        user = make_user("free", 100)
        for _ in range(3):
            quota.consume(user, "upload")

        with pytest.raises(RateLimitError):
            quota.consume(user, "upload")
        assert user.credit_balance == 100

    def test_not_enough_credits_reports_limit(self, quota, make_user):
        user = make_user("free", 1)
        quota.consume(user, "summary:brief")
        quota.consume(user, "summary:brief")

        with pytest.raises(RateLimitError):
            quota.consume(user, "summary:brief")
        assert user.credit_balance == 1

    def test_counter_refund(self, quota, make_user):
        user = make_user("free", 0)
        charged_with = quota.consume(user, "chat")

        quota.refund(user, "chat", charged_with)

        assert quota.get_usage(user)["chat"]["day"] == 0

    def test_invalid_quantity(self, quota, test_user):
        with pytest.raises(ValidationError):
            quota.consume(test_user, "ocr_page", 0)


@pytest.mark.unit
class TestCreditPlans:

    def test_cost_is_deducted(self, quota, make_user):
        user = make_user("pro", 30)

        assert quota.consume(user, "summary:detailed") == "credits"
        assert user.credit_balance == 5

    def test_ocr_cost_per_page(self, quota, make_user):
        user = make_user("elite", 10)

        quota.consume(user, "ocr_page", 3)

        assert user.credit_balance == 4

    def test_zero_balance_is_rejected(self, db_session, quota, make_user):
        user = make_user("pro", 0)

        with pytest.raises(InsufficientCreditsError):
            quota.consume(user, "chat")

        db_session.rollback()
        assert db_session.query(UsageCounter).count() == 0

    def test_zero_cost_operation_is_free(self, quota, make_user):
        user = make_user("pro", 0)

        assert quota.consume(user, "upload") == "credits"

    def test_credit_refund(self, quota, make_user):
        user = make_user("pro", 10)
        charged_with = quota.consume(user, "summary:standard")

        quota.refund(user, "summary:standard", charged_with)

        assert user.credit_balance == 10

    def test_usage_has_no_caps(self, quota, make_user):
        user = make_user("pro", 10)

        assert quota.get_usage(user) == {}
