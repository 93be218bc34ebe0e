import logging
import sys
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

SRC_DIR = Path(__file__).resolve().parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

SERVICES_ROOT = SRC_DIR.parents[1]
if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICES_ROOT))

from analytics import (
    DEFAULT_LANGUAGE,
    CATEGORY_LABELS,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BudgetUtilization,
    DashboardView,
    Transaction,
    build_dashboard,
    build_year_overview,
    category_label,
    coerce_budget,
    coerce_transaction,
    normalize_language,
    sort_recent,
    top_categories,
)
from middleware.rate_limit import SimpleRateLimiter, build_rate_limiter
from persistence.database import Database, get_session
from persistence.repository import BudgetRepository, TransactionRepository, normalize_record_id
from schemas import (
    BudgetCreate,
    BudgetModel,
    BudgetUpdate,
    BudgetUtilizationModel,
    CategoriesResponseModel,
    CategoryOptionModel,
    CategoryTotalModel,
    DashboardResponseModel,
    DeleteResultModel,
    RecentTransactionModel,
    TransactionCreate,
    TransactionModel,
    TransactionUpdate,
    YearOverviewResponseModel,
)
from shared.observability import (
    bind_request_context,
    ensure_request_id,
    log_event,
    redact_fields,
    reset_request_context,
    setup_telemetry,
)
from shared.settings import load_service_settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "ledger-api"
DEFAULT_RECENT_LIMIT = 8

SETTINGS = load_service_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the record store for the lifetime of the process."""
    database = Database(load_service_settings().database_url)
    database.init_schema()
    app.state.database = database
    log_event(logger, "database_opened", dialect=database.engine.dialect.name)
    try:
        yield
    finally:
        database.dispose()
        app.state.database = None


app = FastAPI(title="MoneyMap Ledger API", lifespan=lifespan)
setup_telemetry(app, service_name=SERVICE_NAME)
app.state.rate_limiter = build_rate_limiter(SETTINGS.rate_limit)


# Starlette wraps later registrations around earlier ones: the request id is
# bound first, then CORS, then the rate limiter.
@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    limiter: SimpleRateLimiter = app.state.rate_limiter
    client_id = _client_ip(request) or "unknown"
    allowed, retry_after = await limiter.allow(client_id)
    if allowed:
        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(limiter.remaining(client_id))
        return response

    retry_after_header = str(max(1, int(retry_after or 1)))
    log_event(logger, "rate_limited", logging.WARNING, client_ip=client_id, retry_after_seconds=retry_after)
    response = error_response(
        429,
        "rate_limit_exceeded",
        "Too many requests. Please retry shortly.",
    )
    response.headers["Retry-After"] = retry_after_header
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = ensure_request_id(request)
    token = bind_request_context(request_id)
    try:
        response = await call_next(request)
        response.headers.setdefault("x-request-id", request_id)
        return response
    finally:
        reset_request_context(token)


def error_response(status_code: int, error_code: str, details: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "details": details},
    )


def _client_ip(request: Request) -> str | None:
    client = request.client
    if client:
        return client.host
    return None


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    log_event(logger, "payload_rejected", path=request.url.path, problem_count=len(problems))
    return error_response(422, "invalid_payload", "; ".join(problems) or "Request payload is invalid.")


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log_event(logger, "store_error", logging.ERROR, method=request.method, path=request.url.path, error=str(exc))
    return error_response(500, "store_error", "The record store failed to complete the request.")


@app.get("/health")
def health_check() -> dict:
    """Reports ledger API uptime so orchestrators can confirm this entrypoint is available."""
    return {"status": "ok", "service": SERVICE_NAME}


# Transactions


@app.get("/transactions", response_model=List[TransactionModel])
def list_transactions(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1, le=9999),
    category: Optional[str] = None,
    sort: Literal["insertion", "recent"] = "insertion",
    db: Session = Depends(get_session),
) -> List[TransactionModel]:
    """
    Lists stored transactions, optionally narrowed to a period or category.

    `sort=recent` returns them newest first, with same-day entries in insertion order.
    """
    records = TransactionRepository(db).list(month=month, year=year, category=category)
    if sort == "recent":
        by_id = {record.id: record for record in records}
        ordered = sort_recent(coerce_transaction(record.to_document()) for record in records)
        records = [by_id[tx.id] for tx in ordered]
    return [TransactionModel.model_validate(record) for record in records]


@app.get("/transactions/{transaction_id}", response_model=None)
def get_transaction(transaction_id: str, db: Session = Depends(get_session)) -> TransactionModel | JSONResponse:
    record_id = normalize_record_id(transaction_id)
    if record_id is None:
        return _invalid_id_response()

    record = TransactionRepository(db).get(record_id)
    if record is None:
        return error_response(404, "transaction_not_found", "Transaction not found.")
    return TransactionModel.model_validate(record)


@app.post("/transactions", status_code=201, response_model=None)
def create_transaction(
    payload: TransactionCreate,
    request: Request,
    db: Session = Depends(get_session),
) -> TransactionModel:
    record = TransactionRepository(db).create(payload.to_fields())
    log_event(
        logger,
        "transaction_created",
        request_id=ensure_request_id(request),
        record=redact_fields(record.to_document()),
    )
    return TransactionModel.model_validate(record)


@app.put("/transactions/{transaction_id}", response_model=None)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    request: Request,
    db: Session = Depends(get_session),
) -> TransactionModel | JSONResponse:
    """Replaces the provided fields of a transaction; omitted fields keep their stored values."""
    record_id = normalize_record_id(transaction_id)
    if record_id is None:
        return _invalid_id_response()

    repo = TransactionRepository(db)
    record = repo.get(record_id)
    if record is None:
        return error_response(404, "transaction_not_found", "Transaction not found.")

    fields = payload.to_fields()
    record = repo.update(record, fields)
    log_event(
        logger,
        "transaction_updated",
        request_id=ensure_request_id(request),
        transaction_id=record_id,
        fields=sorted(fields),
    )
    return TransactionModel.model_validate(record)


@app.delete("/transactions/{transaction_id}", response_model=None)
def delete_transaction(
    transaction_id: str,
    request: Request,
    db: Session = Depends(get_session),
) -> DeleteResultModel | JSONResponse:
    record_id = normalize_record_id(transaction_id)
    if record_id is None:
        return _invalid_id_response()

    repo = TransactionRepository(db)
    record = repo.get(record_id)
    if record is None:
        return error_response(404, "transaction_not_found", "Transaction not found.")

    repo.delete(record)
    log_event(logger, "transaction_deleted", request_id=ensure_request_id(request), transaction_id=record_id)
    return DeleteResultModel(id=record_id, deleted=True)


# Budgets


@app.get("/budgets", response_model=List[BudgetModel])
def list_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1, le=9999),
    category: Optional[str] = None,
    db: Session = Depends(get_session),
) -> List[BudgetModel]:
    """Lists stored budgets; several budgets may share a category and period."""
    records = BudgetRepository(db).list(month=month, year=year, category=category)
    return [BudgetModel.model_validate(record) for record in records]


@app.get("/budgets/{budget_id}", response_model=None)
def get_budget(budget_id: str, db: Session = Depends(get_session)) -> BudgetModel | JSONResponse:
    record_id = normalize_record_id(budget_id)
    if record_id is None:
        return _invalid_id_response()

    record = BudgetRepository(db).get(record_id)
    if record is None:
        return error_response(404, "budget_not_found", "Budget not found.")
    return BudgetModel.model_validate(record)


@app.post("/budgets", status_code=201, response_model=None)
def create_budget(
    payload: BudgetCreate,
    request: Request,
    db: Session = Depends(get_session),
) -> BudgetModel:
    record = BudgetRepository(db).create(payload.to_fields())
    log_event(
        logger,
        "budget_created",
        request_id=ensure_request_id(request),
        record=redact_fields(record.to_document()),
    )
    return BudgetModel.model_validate(record)


@app.put("/budgets/{budget_id}", response_model=None)
def update_budget(
    budget_id: str,
    payload: BudgetUpdate,
    request: Request,
    db: Session = Depends(get_session),
) -> BudgetModel | JSONResponse:
    record_id = normalize_record_id(budget_id)
    if record_id is None:
        return _invalid_id_response()

    repo = BudgetRepository(db)
    record = repo.get(record_id)
    if record is None:
        return error_response(404, "budget_not_found", "Budget not found.")

    fields = payload.to_fields()
    record = repo.update(record, fields)
    log_event(
        logger,
        "budget_updated",
        request_id=ensure_request_id(request),
        budget_id=record_id,
        fields=sorted(fields),
    )
    return BudgetModel.model_validate(record)


@app.delete("/budgets/{budget_id}", response_model=None)
def delete_budget(
    budget_id: str,
    request: Request,
    db: Session = Depends(get_session),
) -> DeleteResultModel | JSONResponse:
    record_id = normalize_record_id(budget_id)
    if record_id is None:
        return _invalid_id_response()

    repo = BudgetRepository(db)
    record = repo.get(record_id)
    if record is None:
        return error_response(404, "budget_not_found", "Budget not found.")

    repo.delete(record)
    log_event(logger, "budget_deleted", request_id=ensure_request_id(request), budget_id=record_id)
    return DeleteResultModel(id=record_id, deleted=True)


# Reports


@app.get("/reports/dashboard", response_model=DashboardResponseModel)
def dashboard_report(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1, le=9999),
    language: str = DEFAULT_LANGUAGE,
    recent: int = Query(DEFAULT_RECENT_LIMIT, ge=0, le=500),
    db: Session = Depends(get_session),
) -> DashboardResponseModel:
    """
    Dashboard figures for one month: balance, income, expenses, category spend,
    budget utilization, and the most recent transactions. Defaults to the current month.
    """
    today = date.today()
    month = month or today.month
    year = year or today.year
    lang = normalize_language(language)

    transactions = [coerce_transaction(record.to_document()) for record in TransactionRepository(db).list()]
    budgets = [coerce_budget(record.to_document()) for record in BudgetRepository(db).list()]
    view = build_dashboard(transactions, budgets, month, year, recent_limit=recent)
    return _dashboard_to_response(view, lang)


@app.get("/reports/year", response_model=YearOverviewResponseModel)
def year_report(
    year: Optional[int] = Query(None, ge=1, le=9999),
    db: Session = Depends(get_session),
) -> YearOverviewResponseModel:
    """Twelve-month income, expense, and running balance series for one year (default: this year)."""
    year = year or date.today().year
    transactions = [coerce_transaction(record.to_document()) for record in TransactionRepository(db).list()]
    overview = build_year_overview(transactions, year)
    return YearOverviewResponseModel(
        year=overview.year,
        months=list(range(1, len(overview.income) + 1)),
        income=overview.income,
        expenses=overview.expenses,
        balance=overview.balance,
    )


@app.get("/categories", response_model=CategoriesResponseModel)
def categories(language: str = DEFAULT_LANGUAGE) -> CategoriesResponseModel:
    lang = normalize_language(language)
    return CategoriesResponseModel(
        language=lang,
        labels=dict(CATEGORY_LABELS[lang]),
        income=[CategoryOptionModel(key=key, label=category_label(key, lang)) for key in INCOME_CATEGORIES],
        expense=[CategoryOptionModel(key=key, label=category_label(key, lang)) for key in EXPENSE_CATEGORIES],
    )


def _invalid_id_response() -> JSONResponse:
    return error_response(404, "invalid_id", "Invalid ID.")


def _dashboard_to_response(view: DashboardView, language: str) -> DashboardResponseModel:
    return DashboardResponseModel(
        month=view.month,
        year=view.year,
        language=language,
        total_balance=view.total_balance,
        income=view.income,
        expenses=view.expenses,
        categories=[
            CategoryTotalModel(
                category=entry.category,
                label=category_label(entry.category, language),
                amount=entry.amount,
                share=entry.share,
            )
            for entry in top_categories(view.category_breakdown)
        ],
        budgets=[_utilization_to_model(entry, language) for entry in view.budgets],
        recent_transactions=[_recent_to_model(tx, language) for tx in view.recent_transactions],
    )


def _utilization_to_model(entry: BudgetUtilization, language: str) -> BudgetUtilizationModel:
    budget = entry.budget
    return BudgetUtilizationModel(
        budget=BudgetModel(
            id=budget.id,
            category=budget.category,
            amount=budget.amount,
            notes=budget.notes,
            month=budget.month,
            year=budget.year,
        ),
        label=category_label(budget.category, language),
        spent=entry.spent,
        percentage=entry.percentage,
        display_percentage=entry.display_percentage,
        over_budget=entry.over_budget,
    )


def _recent_to_model(tx: Transaction, language: str) -> RecentTransactionModel:
    payload: Dict[str, Any] = {
        "id": tx.id,
        "amount": tx.amount,
        "category": tx.category,
        "category_key": tx.category_key,
        "label": category_label(tx.category, language),
        "notes": tx.notes,
        "day": tx.day,
        "month": tx.month,
        "year": tx.year,
    }
    return RecentTransactionModel(**payload)
