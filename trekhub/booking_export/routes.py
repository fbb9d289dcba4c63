"""
Booking export API. Prefix: /api/admin.
Endpoint: GET /bookings/export (admin session cookie required).
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Cookie, Query
from fastapi.responses import JSONResponse, Response

from trekhub.admin_auth.access import can_user_access_admin
from trekhub.booking_export.cohorts import apply_cohort_filter
from trekhub.booking_export.db import fetch_export_source
from trekhub.booking_export.enrichment import build_export_records, parse_datetime
from trekhub.booking_export.errors import BookingExportError, InvalidExportRequest
from trekhub.booking_export.renderers import ReportContext, render_export
from trekhub.booking_export.schema import CohortFilter, ExportFilters, ExportFormat
from trekhub.booking_export.summary import compute_summary
from trekhub.database import init_db
from trekhub.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Booking Export"])


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def parse_format(value: Optional[str]) -> ExportFormat:
    try:
        return ExportFormat((value or "csv").lower())
    except ValueError:
        raise InvalidExportRequest("Invalid format") from None


def parse_cohort(value: Optional[str]) -> CohortFilter:
    try:
        return CohortFilter(value or "all")
    except ValueError:
        raise InvalidExportRequest("Invalid user filter") from None


def _check_date(name: str, value: Optional[str]) -> None:
    if value and parse_datetime(value) is None:
        raise InvalidExportRequest(f"Invalid {name}")


@router.get("/bookings/export")
def export_bookings(
    export_format: Optional[str] = Query(default="csv", alias="format"),
    status: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    trek_slug: Optional[str] = Query(default=None, alias="trekSlug"),
    user_filter: Optional[str] = Query(default=None, alias="userFilter"),
    specific_user: Optional[str] = Query(default=None, alias="specificUser"),
    auth_session: Optional[str] = Cookie(default=None),
):
    """
    Download bookings as csv, json, excel or pdf (plain-text guide report).
    Database filters: status, startDate, endDate, trekSlug, specificUser.
    userFilter narrows the enriched records to a cohort (high_risk,
    medical_concerns, first_time, experienced).
    """
    if not auth_session:
        return _error(401, "Unauthorized")

    access = can_user_access_admin(auth_session)
    if not access.can_access:
        logger.warning("Export denied: %s", access.error)
        return _error(403, "Forbidden", redirect=access.redirect_url)

    settings = get_settings()
    try:
        # Reject bad parameters before touching the data store
        fmt = parse_format(export_format)
        cohort = parse_cohort(user_filter)
        _check_date("startDate", start_date)
        _check_date("endDate", end_date)

        filters = ExportFilters(
            status=status,
            start_date=start_date,
            end_date=end_date,
            trek_slug=trek_slug,
            specific_user=specific_user,
        )
        logger.info("Booking export requested: format=%s cohort=%s filters=%s",
                    fmt.value, cohort.value, filters.model_dump(exclude_none=True))

        init_db()
        source = fetch_export_source(filters)

        now = datetime.now(timezone.utc)
        records = build_export_records(
            source,
            now=now,
            number_prefix=settings.booking_number_prefix,
            tz=settings.display_timezone,
        )
        records = apply_cohort_filter(records, cohort)
        summary = compute_summary(records)

        rendered = render_export(
            fmt,
            records,
            summary,
            ReportContext(
                generated_at=now,
                file_prefix=settings.export_file_prefix,
                exported_by=settings.exported_by,
                tz=settings.display_timezone,
            ),
        )
    except BookingExportError as e:
        if e.status_code >= 500:
            logger.error("Booking export failed: %s", e.message)
        else:
            logger.info("Booking export rejected (%d): %s", e.status_code, e.message)
        return _error(e.status_code, e.message)
    except sqlite3.Error as e:
        logger.error("Booking export failed: %s", e)
        return _error(500, str(e))
    except Exception:
        logger.exception("Booking export failed")
        return _error(500, "Export failed")

    logger.info("Exported %d of %d bookings as %s",
                len(records), len(source.bookings), rendered.filename)
    return Response(
        content=rendered.content,
        media_type=rendered.media_type,
        headers={"Content-Disposition": f'attachment; filename="{rendered.filename}"'},
    )
