import logging
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db
from errors import AuthenticationError, NotFoundError, StorageError
from identity import resolve_user_id
from models import LedgerType, MoneyLog
from schemas import (
    AssetGoalIn,
    BudgetIn,
    CategoryIn,
    ExpenditureRatioIn,
    LedgerEntryIn,
    LedgerEntryOut,
    MoneyLogIn,
    PageParams,
)
from services import (
    BudgetService,
    CategoryService,
    ExpenditureRatioService,
    GoalService,
    LedgerService,
    MoneyLogService,
    UploadedFile,
)
from storage import Uploader, build_uploader


settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Money Ledger")

bearer = HTTPBearer(auto_error=False)


def current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> int:
    token = credentials.credentials if credentials else None
    try:
        return resolve_user_id(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=401,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_uploader() -> Uploader:
    return build_uploader()


def page_params_from_request(request: Request) -> PageParams:
    page = int(request.query_params.get("page", "1"))
    page = max(page, 1)
    limit = int(request.query_params.get("limit", str(settings.page_size_default)))
    limit = min(max(limit, 1), settings.page_size_max)
    sort = request.query_params.get("sort", "newest")
    if sort not in ("newest", "oldest"):
        sort = "newest"
    return PageParams(page=page, limit=limit, sort=sort)


def money_log_payload(log: MoneyLog) -> dict[str, object]:
    return {
        "id": log.id,
        "date": log.date.isoformat(),
        "content": log.content,
        "image_urls": [a.image_url for a in log.attachments],
    }


@app.post("/api/categories", status_code=201)
def create_category(
    data: CategoryIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user_id).create(data)
    return {"id": category.id}


@app.get("/api/categories")
def list_categories(
    type: LedgerType,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return {"type": type.value, "names": CategoryService(db, user_id).list_names(type)}


@app.delete("/api/categories/{category_id}")
def delete_category(
    category_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        CategoryService(db, user_id).delete(category_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.put("/api/budget")
def set_budget(
    data: BudgetIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    budget = BudgetService(db, user_id).upsert(data)
    return {"id": budget.id}


@app.get("/api/budget")
def get_budget(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    try:
        budget = BudgetService(db, user_id).get()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"id": budget.id, "amount": budget.amount}


@app.put("/api/expenditure-ratio")
def set_expenditure_ratio(
    data: ExpenditureRatioIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        ratio = ExpenditureRatioService(db, user_id).upsert(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": ratio.id}


@app.get("/api/expenditure-ratio")
def get_expenditure_ratio(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    try:
        ratio = ExpenditureRatioService(db, user_id).get()
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "id": ratio.id,
        "fixed": ratio.fixed_percent,
        "variable": ratio.variable_percent,
    }


@app.post("/api/entries", status_code=201)
def create_entry(
    data: LedgerEntryIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    entry = LedgerService(db, user_id).create(data)
    return {"id": entry.id}


@app.get("/api/entries")
def monthly_entries(
    request: Request,
    month: str,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        params = page_params_from_request(request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        summary = LedgerService(db, user_id).monthly_summary(month, params)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    page = summary.entries
    return {
        "month": summary.month,
        "revenue_total": summary.revenue_total,
        "expenditure_total": summary.expenditure_total,
        "remaining_budget": summary.remaining_budget,
        "entries": {
            "items": [
                LedgerEntryOut.model_validate(entry).model_dump(mode="json")
                for entry in page.items
            ],
            "page": page.page,
            "limit": page.limit,
            "sort": page.sort,
            "total": page.total,
            "has_more": page.has_more,
        },
    }


@app.put("/api/goals")
def set_goal(
    data: AssetGoalIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    goal = GoalService(db, user_id).upsert(data)
    return {"id": goal.id}


@app.get("/api/goals")
def list_goals(
    month: str,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        goals = GoalService(db, user_id).list_for_month(month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "items": [
            {"id": g.id, "date": g.date.isoformat(), "content": g.content}
            for g in goals
        ]
    }


@app.get("/api/goals/{goal_date}")
def get_goal(
    goal_date: date,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        goal = GoalService(db, user_id).get(goal_date)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"id": goal.id, "date": goal.date.isoformat(), "content": goal.content}


@app.post("/api/money-logs", status_code=201)
async def create_money_log(
    log_date: date = Form(..., alias="date"),
    content: str = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    uploader: Uploader = Depends(get_uploader),
):
    try:
        data = MoneyLogIn(date=log_date, content=content)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    files = [
        UploadedFile(content=await image.read(), filename=image.filename)
        for image in images or []
    ]
    try:
        log = MoneyLogService(db, user_id, uploader).create(data, files)
    except StorageError as exc:
        logger.error(f"money_log_upload_failed: user_id={user_id} error={exc}")
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return money_log_payload(log)


@app.get("/api/money-logs/{money_log_id}")
def get_money_log(
    money_log_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    uploader: Uploader = Depends(get_uploader),
):
    try:
        log = MoneyLogService(db, user_id, uploader).get(money_log_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return money_log_payload(log)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
