"""Reports: borrowing (weekly/monthly/yearly) and inventory, as JSON, CSV or PDF.

Non-admins only ever see their own borrowing.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_current_user, get_db
from borrowtrack.core.exceptions import BusinessError, InvalidInputError
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services import report_service
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.pdf_service import generate_report_pdf

router = APIRouter()

PERIOD_PATTERN = "^(weekly|monthly|yearly)$"
TYPE_PATTERN = "^(all|tool|material|apd)$"


def _borrowing_report(db, cache, current_user: UserRecord, period: str, user_email: Optional[str]) -> dict:
    if current_user.role != "admin":
        user_email = current_user.email
    try:
        return report_service.borrowing_report(db, cache, period, user_email)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)


def _inventory_report(db, cache, item_type: str) -> dict:
    try:
        return report_service.inventory_report(db, cache, item_type)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)


def _period_subtitle(report: dict) -> str:
    return (f"{report['period'].capitalize()} report: "
            f"{report_service.format_date(report['start'])} - {report_service.format_date(report['end'])}")


@router.get("/borrowing")
def borrowing_report(
    period: str = Query("monthly", pattern=PERIOD_PATTERN),
    user_email: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Borrowing records of the period with item/user details and summary stats."""
    return _borrowing_report(db, cache, current_user, period, user_email)


@router.get("/borrowing.csv")
def borrowing_report_csv(
    period: str = Query("monthly", pattern=PERIOD_PATTERN),
    user_email: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Export the borrowing report as CSV. Admins get user details in extra columns."""
    report = _borrowing_report(db, cache, current_user, period, user_email)
    table = report_service.borrowing_table(report["rows"], admin=current_user.role == "admin")

    return StreamingResponse(
        iter([report_service.to_csv(table)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=borrowing-{period}-{date.today()}.csv"}
    )


@router.get("/borrowing.pdf")
def borrowing_report_pdf(
    period: str = Query("monthly", pattern=PERIOD_PATTERN),
    user_email: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    report = _borrowing_report(db, cache, current_user, period, user_email)
    pdf = generate_report_pdf(
        "Borrowing Report",
        report_service.borrowing_table(report["rows"]),
        subtitle=_period_subtitle(report),
        summary={
            "Records": report["stats"]["totalRecords"],
            "Active": report["stats"]["activeRecords"],
            "Returned": report["stats"]["returnedRecords"],
            "Units borrowed": report["stats"]["totalItems"],
        },
    )

    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=borrowing-{period}-{date.today()}.pdf"}
    )


@router.get("/inventory")
def inventory_report(
    type: str = Query("all", pattern=TYPE_PATTERN),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    return _inventory_report(db, cache, type)


@router.get("/inventory.csv")
def inventory_report_csv(
    type: str = Query("all", pattern=TYPE_PATTERN),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    report = _inventory_report(db, cache, type)

    return StreamingResponse(
        iter([report_service.to_csv(report_service.inventory_table(report["items"]))]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=inventory-{type}-{date.today()}.csv"}
    )


@router.get("/inventory.pdf")
def inventory_report_pdf(
    type: str = Query("all", pattern=TYPE_PATTERN),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    report = _inventory_report(db, cache, type)
    pdf = generate_report_pdf(
        "Inventory Report",
        report_service.inventory_table(report["items"]),
        subtitle=f"Type: {type}",
        summary={
            "Items": report["stats"]["totalItems"],
            "Quantity": report["stats"]["totalQuantity"],
            "Available": report["stats"]["totalAvailable"],
        },
    )

    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=inventory-{type}-{date.today()}.pdf"}
    )
