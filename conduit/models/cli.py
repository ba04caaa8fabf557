"""CLI parameter models with Pydantic validation."""

from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class DateRangeParams(BaseModel):
    """Transaction date range given on the command line.

    Attributes:
        from_date: First day of transactions to fetch
        to_date: Last day of transactions to fetch
    """

    from_date: Optional[date] = Field(default=None)
    to_date: Optional[date] = Field(default=None)

    @field_validator('from_date', 'to_date')
    @classmethod
    def validate_date_not_future(cls, v):
        """Ensure dates are not in the future.

        Raises:
            ValueError: If date is in the future
        """
        if v is not None and v > date.today():
            raise ValueError(
                f"date cannot be in the future. Got {v}, today is {date.today()}"
            )
        return v

    @model_validator(mode='after')
    def validate_order(self):
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError(f"from_date {self.from_date} is after to_date {self.to_date}")
        return self

    @staticmethod
    def _epoch(day: Optional[date], end_of_day: bool = False) -> Optional[int]:
        if day is None:
            return None
        moment = datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        return int(moment.timestamp())

    @property
    def from_epoch(self) -> Optional[int]:
        return self._epoch(self.from_date)

    @property
    def to_epoch(self) -> Optional[int]:
        """End of the last day, capped at now so Finicity accepts it."""
        value = self._epoch(self.to_date, end_of_day=True)
        if value is None:
            return None
        return min(value, int(datetime.now(timezone.utc).timestamp()))
