from datetime import datetime, timedelta, timezone
from random import Random


MYT = timezone(timedelta(hours=8))

WHEEL_PRIZES = [
    {"id": "cash", "name": "CashVoucher", "category": "voucher", "value": "RM 10", "probability": 25},
    {"id": "food", "name": "FoodVoucher", "category": "voucher", "value": "RM 20", "probability": 20},
    {"id": "p100", "name": "Points100", "category": "points", "value": "100 pts", "probability": 30},
    {"id": "coffee", "name": "CoffeeVoucher", "category": "voucher", "value": "RM 15", "probability": 15},
    {"id": "p500", "name": "Points500", "category": "points", "value": "500 pts", "probability": 5},
    {"id": "shop", "name": "ShopVoucher", "category": "gift", "value": "RM 30", "probability": 3},
    {"id": "retry", "name": "Retry", "category": "points", "value": "5 pts", "probability": 2},
]


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedRandom(Random):
    """Returns queued values from random(), then falls back to 0.5."""

    def __init__(self, values=()):
        super().__init__(0)
        self.values = list(values)

    def random(self):
        return self.values.pop(0) if self.values else 0.5


def roll_for(u: float) -> float:
    """random() value that makes the lottery roll equal ``u``."""
    return u / 100


