import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from analytics import calculate_cash_flow_data, calculate_spending_data
from csv_utils import export_sheet
from database import SessionLocal, init_db
from periods import Period, resolve_period
from recurrence import local_now, local_today
from schemas import BudgetIn, ReportOptions, SubscriptionIn, TransactionIn
from services import (
    AccountService,
    AnalyticsService,
    BudgetService,
    DataExportService,
    ReportService,
    SubscriptionService,
    TransactionService,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="FinFlow")


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    init_db()


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    try:
        return resolve_period(period_slug, start, end, today=local_today())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def http_error(exc: ValueError) -> HTTPException:
    message = str(exc)
    status = 404 if message.lower().endswith("not found") else 400
    return HTTPException(status_code=status, detail=message)


@app.get("/api/health")
def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/transactions")
def list_transactions(request: Request, db: Session = Depends(get_db)):
    service = TransactionService(db)
    if request.query_params.get("period"):
        return service.all_for_period(period_from_request(request))
    return service.list_all()


@app.post("/api/transactions", status_code=201)
def create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    return TransactionService(db).create(data)


@app.get("/api/transactions/{transaction_id}")
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    try:
        return TransactionService(db).get(transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str, data: TransactionIn, db: Session = Depends(get_db)
):
    try:
        return TransactionService(db).update(transaction_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/recurring")
def recurring_transactions(db: Session = Depends(get_db)):
    return AnalyticsService(db).upcoming_recurring()


@app.get("/api/subscriptions")
def list_subscriptions(db: Session = Depends(get_db)):
    return SubscriptionService(db).list_all()


@app.post("/api/subscriptions", status_code=201)
def create_subscription(data: SubscriptionIn, db: Session = Depends(get_db)):
    return SubscriptionService(db).create(data)


@app.put("/api/subscriptions/{subscription_id}")
def update_subscription(
    subscription_id: str, data: SubscriptionIn, db: Session = Depends(get_db)
):
    try:
        return SubscriptionService(db).update(subscription_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.post("/api/subscriptions/{subscription_id}/used")
def mark_subscription_used(subscription_id: str, db: Session = Depends(get_db)):
    try:
        return SubscriptionService(db).mark_used(subscription_id, local_today())
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/subscriptions/{subscription_id}", status_code=204)
def delete_subscription(subscription_id: str, db: Session = Depends(get_db)):
    try:
        SubscriptionService(db).delete(subscription_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/budgets")
def list_budgets(db: Session = Depends(get_db)):
    return BudgetService(db).progress(local_today())


@app.post("/api/budgets", status_code=201)
def create_budget(data: BudgetIn, db: Session = Depends(get_db)):
    return BudgetService(db).create(data)


@app.put("/api/budgets/{budget_id}")
def update_budget(budget_id: str, data: BudgetIn, db: Session = Depends(get_db)):
    try:
        return BudgetService(db).update(budget_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: str, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/api/dashboard")
def dashboard(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    return AnalyticsService(db).dashboard(period, local_today())


@app.get("/api/cash-flow")
def cash_flow(request: Request, db: Session = Depends(get_db)):
    try:
        months = int(request.query_params.get("months", "6"))
    except ValueError:
        months = 6
    months = min(max(months, 1), 24)
    transactions = TransactionService(db).list_all()
    return calculate_cash_flow_data(
        transactions, today=local_today(), months_back=months
    )


@app.get("/api/spending")
def spending(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    return calculate_spending_data(TransactionService(db).all_for_period(period))


@app.post("/api/reports/workbook")
def report_workbook(options: ReportOptions, db: Session = Depends(get_db)):
    workbook = ReportService(db).build_workbook(options, local_now())
    return JSONResponse(jsonable_encoder(workbook))


@app.post("/api/reports/sheets/{sheet_name}.csv")
def report_sheet_csv(
    sheet_name: str, options: ReportOptions, db: Session = Depends(get_db)
):
    workbook = ReportService(db).build_workbook(options, local_now())
    try:
        sheet = workbook.get(sheet_name)
    except ValueError as exc:
        raise http_error(exc) from exc
    csv_text = export_sheet(sheet)
    stem = workbook.filename.rsplit(".", 1)[0]
    filename = f"{stem}_{sheet.name.replace(' ', '_')}.csv"
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/export-data")
def export_data(db: Session = Depends(get_db)):
    now = local_now()
    try:
        payload = DataExportService(db).export_user_data(now)
    except Exception:
        logger.exception("Error exporting user data")
        raise HTTPException(status_code=500, detail="Failed to export data")
    filename = f"finflow-data-export-{now.date().isoformat()}.json"
    return JSONResponse(
        payload,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.delete("/api/account")
def delete_account(confirm: Optional[str] = None, db: Session = Depends(get_db)):
    if confirm != "DELETE":
        raise HTTPException(status_code=400, detail="Confirmation required")
    return {"deleted": AccountService(db).delete_all_data()}


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
