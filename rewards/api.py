from typing import Optional
from uuid import UUID
from fastapi import FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dashboard import build_dashboard
from dashboard.models import BudgetRow, DashboardSnapshot, TransactionRow

from .config import EconomySettings, get_settings
from .exceptions import (
    RewardsEngineError, ValidationError, NotFoundError, ItemInactiveError,
    InsufficientResourcesError, InvariantViolationError,
)
from .logging_config import setup_logging
from .models import (
    AdjustPointsRequest, AdjustmentResult, AllowanceResult, ContributeRequest,
    ContributionResult, CreateGoalRequest, EditGoalRequest, Goal, GoalResult,
    GoalStatus, LedgerHistoryResponse, PointsBalance, Prize, RedeemResult,
    RedemptionRecord, ShopCategory, ShopItem, SpinRecord, SpinResult,
)
from .service import RewardsService
from .storage import InMemoryStorage, JsonFileStorage


class DashboardRequest(BaseModel):
    transactions: list[TransactionRow] = []
    budgets: list[BudgetRow] = []


def build_service(settings: Optional[EconomySettings] = None) -> RewardsService:
    settings = settings or get_settings()
    storage = JsonFileStorage(settings.state_file) if settings.state_file else InMemoryStorage()
    return RewardsService(storage=storage, settings=settings)


settings = get_settings()
setup_logging(settings.log_level)

app = FastAPI(
    title="Rewards Economy API",
    description="Points ledger, lucky draw, rewards shop and savings goals",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

rewards_service = build_service(settings)

_STATUS_BY_ERROR = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ItemInactiveError, status.HTTP_409_CONFLICT),
    (InsufficientResourcesError, status.HTTP_409_CONFLICT),
    (InvariantViolationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


@app.exception_handler(RewardsEngineError)
async def rewards_error_handler(request: Request, exc: RewardsEngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": type(exc).__name__},
    )


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "rewards-economy"}


@app.get("/points/balance", response_model=PointsBalance, tags=["Points"])
def get_balance() -> PointsBalance:
    return rewards_service.get_balance()


@app.get("/points/ledger", response_model=LedgerHistoryResponse, tags=["Points"])
def get_ledger(limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
    return rewards_service.get_ledger_history(limit, offset)


@app.post("/points/adjust", response_model=AdjustmentResult, tags=["Points"])
def adjust_points(request: AdjustPointsRequest) -> AdjustmentResult:
    return rewards_service.adjust_points(request.delta, request.reason)


@app.get("/lottery/prizes", response_model=list[Prize], tags=["Lottery"])
def list_prizes() -> list[Prize]:
    return list(rewards_service.prize_table)


@app.get("/lottery/allowance", response_model=AllowanceResult, tags=["Lottery"])
def get_allowance() -> AllowanceResult:
    return rewards_service.get_allowance()


@app.post("/lottery/spin", response_model=SpinResult, tags=["Lottery"])
def spin() -> SpinResult:
    return rewards_service.spin()


@app.get("/lottery/history", response_model=list[SpinRecord], tags=["Lottery"])
def spin_history(limit: int = 5) -> list[SpinRecord]:
    return rewards_service.get_spin_history(limit)


@app.get("/shop/items", response_model=list[ShopItem], tags=["Shop"])
def list_shop_items(category: Optional[ShopCategory] = None) -> list[ShopItem]:
    return rewards_service.list_shop_items(category)


@app.get("/shop/items/{item_id}", response_model=ShopItem, tags=["Shop"])
def get_shop_item(item_id: str) -> ShopItem:
    return rewards_service.get_shop_item(item_id)


@app.post("/shop/items/{item_id}/redeem", response_model=RedeemResult, tags=["Shop"])
def redeem_item(item_id: str) -> RedeemResult:
    return rewards_service.redeem(item_id)


@app.get("/shop/redemptions", response_model=list[RedemptionRecord], tags=["Shop"])
def redemption_history() -> list[RedemptionRecord]:
    return rewards_service.get_redemption_history()


@app.post("/goals", response_model=GoalResult, status_code=status.HTTP_201_CREATED, tags=["Goals"])
def create_goal(request: CreateGoalRequest) -> GoalResult:
    return rewards_service.create_goal(request)


@app.get("/goals", response_model=list[Goal], tags=["Goals"])
def list_goals(
    goal_status: Optional[GoalStatus] = Query(default=None, alias="status"),
) -> list[Goal]:
    return rewards_service.list_goals(goal_status)


@app.get("/goals/{goal_id}", response_model=Goal, tags=["Goals"])
def get_goal(goal_id: UUID) -> Goal:
    return rewards_service.get_goal(goal_id)


@app.patch("/goals/{goal_id}", response_model=GoalResult, tags=["Goals"])
def edit_goal(goal_id: UUID, request: EditGoalRequest) -> GoalResult:
    return rewards_service.edit_goal(goal_id, request)


@app.delete("/goals/{goal_id}", response_model=GoalResult, tags=["Goals"])
def delete_goal(goal_id: UUID) -> GoalResult:
    return rewards_service.delete_goal(goal_id)


@app.post("/goals/{goal_id}/contribute", response_model=ContributionResult, tags=["Goals"])
def contribute(goal_id: UUID, request: ContributeRequest) -> ContributionResult:
    return rewards_service.contribute(goal_id, request.amount)


@app.post("/dashboard", response_model=DashboardSnapshot, tags=["Dashboard"])
def dashboard(request: DashboardRequest) -> DashboardSnapshot:
    rewards_service.get_allowance()
    return build_dashboard(
        rewards_service.snapshot(),
        rewards_service.clock(),
        rewards_service.rules.tz,
        transactions=request.transactions,
        budgets=request.budgets,
        histogram_days=settings.histogram_days,
        activity_limit=settings.recent_activity_limit,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
