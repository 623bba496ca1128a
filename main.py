import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db, init_db, session_scope
from errors import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from models import User
from schemas import (
    AuthOut,
    CategoryIn,
    CategoryListOut,
    CategoryOut,
    GoalIn,
    GoalListOut,
    GoalOut,
    GoalUpdateIn,
    LoginIn,
    MessageOut,
    MonthlyReportOut,
    RegisterIn,
    TransactionIn,
    TransactionListOut,
    TransactionOut,
    TransactionUpdateIn,
    YearlyReportOut,
)
from security import (
    SESSION_COOKIE,
    issue_session_token,
    read_session_token,
    session_max_age_seconds,
)
from services import (
    AuthService,
    CategoryService,
    GoalService,
    ReportService,
    TransactionService,
    seed_default_categories,
)


logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Personal Finance Tracker")


ERROR_STATUS: dict[type[Exception], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
}


def _register_error_handler(error_type: type[Exception], status_code: int) -> None:
    def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"message": str(exc)})

    app.add_exception_handler(error_type, handler)


# Subclasses (InvalidMonthError, CategoryInUseError, ...) resolve to their
# base class handler.
for _error_type, _status_code in ERROR_STATUS.items():
    _register_error_handler(_error_type, _status_code)


@app.exception_handler(RequestValidationError)
def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        errors[field] = error.get("msg", "Invalid value")
    errors["message"] = "Validation failed"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=errors)


@app.on_event("startup")
def startup_event():
    init_db()
    with session_scope() as session:
        created = seed_default_categories(session)
    logger.info(f"default_categories: created={created}")


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user_id = read_session_token(request.cookies.get(SESSION_COOKIE))
    user = AuthService(db).get_user(user_id) if user_id is not None else None
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/auth/register", response_model=AuthOut, status_code=201)
def register(data: RegisterIn, db: Session = Depends(get_db)):
    user = AuthService(db).register(data)
    logger.info(f"user_registered: user_id={user.id}")
    return AuthOut(message="User registered successfully", user_id=user.id)


@app.post("/api/auth/login", response_model=MessageOut)
def login(data: LoginIn, response: Response, db: Session = Depends(get_db)):
    try:
        user = AuthService(db).authenticate(data.username, data.password)
    except AuthenticationError:
        logger.info(f"login_failed: username={data.username!r}")
        raise
    response.set_cookie(
        SESSION_COOKIE,
        issue_session_token(user.id),
        max_age=session_max_age_seconds(),
        httponly=True,
        samesite="lax",
    )
    logger.info(f"login: user_id={user.id}")
    return MessageOut(message="Login successful")


@app.post("/api/auth/logout", response_model=MessageOut)
def logout(request: Request, response: Response):
    user_id = read_session_token(request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE)
    logger.info(f"logout: user_id={user_id}")
    return MessageOut(message="Logout successful")


@app.get("/api/transactions", response_model=TransactionListOut)
def list_transactions(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    category: Optional[str] = Query(default=None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    txns = TransactionService(db, user.id).list(start_date, end_date, category)
    return TransactionListOut(
        transactions=[TransactionOut.from_model(txn) for txn in txns]
    )


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    data: TransactionIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    txn = TransactionService(db, user.id).create(data)
    return TransactionOut.from_model(txn)


@app.put("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    data: TransactionUpdateIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    txn = TransactionService(db, user.id).update(transaction_id, data)
    return TransactionOut.from_model(txn)


@app.delete("/api/transactions/{transaction_id}", response_model=MessageOut)
def delete_transaction(
    transaction_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    TransactionService(db, user.id).delete(transaction_id)
    return MessageOut(message="Transaction deleted successfully")


@app.get("/api/categories", response_model=CategoryListOut)
def list_categories(user: User = Depends(current_user), db: Session = Depends(get_db)):
    categories = CategoryService(db, user.id).list_visible()
    return CategoryListOut(categories=[CategoryOut.from_model(c) for c in categories])


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user.id).create(data)
    return CategoryOut.from_model(category)


@app.delete("/api/categories/{name}", response_model=MessageOut)
def delete_category(
    name: str,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    CategoryService(db, user.id).delete(name)
    return MessageOut(message="Category deleted successfully")


@app.post("/api/goals", response_model=GoalOut, status_code=201)
def create_goal(
    data: GoalIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return GoalOut.from_status(GoalService(db, user.id).create(data))


@app.get("/api/goals", response_model=GoalListOut)
def list_goals(user: User = Depends(current_user), db: Session = Depends(get_db)):
    statuses = GoalService(db, user.id).list()
    return GoalListOut(goals=[GoalOut.from_status(s) for s in statuses])


@app.get("/api/goals/{goal_id}", response_model=GoalOut)
def get_goal(
    goal_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return GoalOut.from_status(GoalService(db, user.id).get(goal_id))


@app.put("/api/goals/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: int,
    data: GoalUpdateIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return GoalOut.from_status(GoalService(db, user.id).update(goal_id, data))


@app.delete("/api/goals/{goal_id}", response_model=MessageOut)
def delete_goal(
    goal_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    GoalService(db, user.id).delete(goal_id)
    return MessageOut(message="Goal deleted successfully")


@app.get("/api/reports/monthly/{year}/{month}", response_model=MonthlyReportOut)
def monthly_report(
    year: int,
    month: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return MonthlyReportOut.from_report(ReportService(db, user.id).monthly(year, month))


@app.get("/api/reports/yearly/{year}", response_model=YearlyReportOut)
def yearly_report(
    year: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return YearlyReportOut.from_report(ReportService(db, user.id).yearly(year))
