# Overview: Daily exchange rate lookups and updates.

from decimal import Decimal, InvalidOperation

from ..errors import BadRequestError
from ..extensions import db
from ..models import ExchangeRate
from furnipos.time_utils import today
from .concurrency import run_with_retry
from .notification_service import notify, ROOM_BOSS, ROOM_SALES, ROOM_SERVICE


HISTORY_LIMIT = 30


class CurrencyError(BadRequestError):
    pass


def parse_rate(value) -> Decimal:
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise CurrencyError("rate must be a number")
    if not rate.is_finite() or rate <= 0:
        raise CurrencyError("rate must be greater than 0")
    return rate.quantize(Decimal("0.01"))


def get_today_rate() -> ExchangeRate | None:
    return db.session.query(ExchangeRate).filter_by(rate_date=today()).first()


def get_current_rate() -> ExchangeRate | None:
    """Latest rate on file (today's when set, otherwise the most recent day)."""
    return db.session.query(ExchangeRate).order_by(ExchangeRate.rate_date.desc()).first()


def set_rate(actor, value):
    """
    Upsert today's rate.

    Returns (rate, notifications).
    """
    rate_value = parse_rate(value)

    def _op():
        row = get_today_rate()
        if row is None:
            row = ExchangeRate(rate_date=today(), rate=rate_value, set_by_user_id=actor.id)
            db.session.add(row)
        else:
            row.rate = rate_value
            row.set_by_user_id = actor.id
        db.session.commit()
        return row

    row = run_with_retry(_op)
    events = [
        notify(
            (ROOM_BOSS, ROOM_SALES, ROOM_SERVICE),
            "currency:rateChanged",
            {"rate": float(row.rate), "rate_date": row.rate_date.isoformat()},
        )
    ]
    return row, events


def get_history(limit: int = HISTORY_LIMIT) -> list[ExchangeRate]:
    return (
        db.session.query(ExchangeRate)
        .order_by(ExchangeRate.rate_date.desc())
        .limit(limit)
        .all()
    )
