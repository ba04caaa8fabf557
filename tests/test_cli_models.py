"""Tests for CLI parameter models."""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conduit.models.cli import DateRangeParams


class TestDateRangeParams:
    """Test DateRangeParams validation."""

    def test_valid_past_dates(self):
        params = DateRangeParams(from_date="2024-01-01", to_date="2024-01-31")

        assert params.from_date == date(2024, 1, 1)
        assert params.to_date == date(2024, 1, 31)

    def test_none_dates(self):
        params = DateRangeParams()

        assert params.from_date is None
        assert params.from_epoch is None
        assert params.to_epoch is None

    def test_today_is_allowed(self):
        params = DateRangeParams(to_date=date.today())

        assert params.to_date == date.today()

    def test_future_date_rejected(self):
        tomorrow = date.today() + timedelta(days=1)

        with pytest.raises(ValidationError) as exc_info:
            DateRangeParams(from_date=tomorrow)

        assert "date cannot be in the future" in str(exc_info.value)

    def test_invalid_date_format(self):
        with pytest.raises(ValidationError):
            DateRangeParams(from_date="01/15/2024")

    def test_from_after_to_rejected(self):
        with pytest.raises(ValidationError):
            DateRangeParams(from_date="2024-02-01", to_date="2024-01-01")

    def test_from_epoch_is_start_of_day_utc(self):
        params = DateRangeParams(from_date="2024-01-01")

        assert params.from_epoch == 1704067200

    def test_to_epoch_is_end_of_day_utc(self):
        params = DateRangeParams(to_date="2024-01-01")

        assert params.to_epoch == 1704067200 + 86399

    def test_to_epoch_capped_at_now(self):
        params = DateRangeParams(to_date=date.today())

        assert params.to_epoch <= int(datetime.now(timezone.utc).timestamp())
