"""
Export renderers: detailed CSV, JSON with summary and guide insights,
"Excel" (compact CSV under a spreadsheet MIME type) and the plain-text guide
report used in place of a PDF.
Each renderer is pure: records + summary + context -> RenderedExport.
"""

import json
import re
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Tuple

import pandas as pd

from trekhub.booking_export.classification import age_out_of_range
from trekhub.booking_export.enrichment import NONE_REPORTED, format_datetime, round_half_up
from trekhub.booking_export.schema import ExportFormat, ExportRecord, ExportSummary

EXPORT_VERSION = "2.0 - Enhanced for Guides"

RULE = "=" * 80
THIN_RULE = "-" * 60
SECTION_RULE = "-" * 50
BOOKING_RULE = "=" * 70


class RenderedExport(NamedTuple):
    content: bytes
    filename: str
    media_type: str


class ReportContext(NamedTuple):
    generated_at: datetime  # aware, UTC
    file_prefix: str = "trek-hub-india"
    exported_by: str = "Trek Hub India Admin"
    tz: str = "Asia/Kolkata"

    @property
    def stamp(self) -> str:
        return self.generated_at.date().isoformat()


# (header, ExportRecord field)
DETAILED_COLUMNS: List[Tuple[str, str]] = [
    # Basic
    ("Booking Number", "booking_number"),
    ("Booking Reference", "booking_reference"),
    ("Booking Date", "booking_date"),
    ("Booking Time", "booking_time"),
    ("Status", "status"),
    ("Payment Status", "payment_status"),
    # Customer
    ("Customer Name", "customer_name"),
    ("Customer Email", "customer_email"),
    ("Customer Phone", "customer_phone"),
    ("Customer Age", "customer_age"),
    ("Customer Gender", "customer_gender"),
    ("Date of Birth", "customer_date_of_birth"),
    ("Residential Address", "residential_address"),
    # Trek
    ("Trek Name", "trek_name"),
    ("Trek Slug", "trek_slug"),
    ("Trek Region", "trek_region"),
    ("Trek Difficulty", "trek_difficulty"),
    ("Trek Duration", "trek_duration"),
    ("Trek Date", "trek_date"),
    ("Trek Start Location", "trek_start_location"),
    ("Trek End Location", "trek_end_location"),
    ("Season Type", "season_type"),
    # Booking
    ("Participants", "participants"),
    ("Participant Names", "participant_names"),
    ("Group Size Category", "group_size"),
    ("Total Amount (₹)", "total_amount"),
    ("Base Amount (₹)", "base_amount"),
    ("GST Amount (₹)", "gst_amount"),
    ("Amount Per Person (₹)", "amount_per_person"),
    # Health & safety
    ("Medical Conditions", "medical_conditions"),
    ("Current Medications", "current_medications"),
    ("Recent Illnesses", "recent_illnesses"),
    ("Trekking Experience", "trekking_experience"),
    ("Experience Level", "experience_level"),
    ("Fitness Level", "fitness_level"),
    ("Risk Assessment", "risk_assessment"),
    ("Dietary Restrictions", "dietary_restrictions"),
    ("Allergies", "allergies"),
    # Emergency contact
    ("Emergency Contact Name", "emergency_contact_name"),
    ("Emergency Contact Phone", "emergency_contact_phone"),
    ("Emergency Contact Relation", "emergency_contact_relation"),
    # Logistics
    ("Pickup Location", "pickup_location"),
    ("Needs Transportation", "needs_transportation"),
    ("Accommodation Preferences", "accommodation_preferences"),
    ("Special Requirements", "special_requirements"),
    ("Gear Rental Required", "gear_rental"),
    ("Porter Services Required", "porter_services"),
    ("Equipment Needed", "equipment_needed"),
    # Slot
    ("Slot Date", "slot_date"),
    ("Slot Capacity", "slot_capacity"),
    ("Slot Booked", "slot_booked"),
    ("Slot Available", "slot_available"),
    ("Slot Utilization", "slot_utilization"),
    # Guide
    ("Guide Notes", "guide_notes"),
    ("Weather Conditions", "weather_conditions"),
    # Administrative
    ("Created By", "created_by"),
    ("Last Modified", "last_modified"),
    ("Approved By", "approved_by"),
    ("Approval Date", "approval_date"),
]

# Compact booking sheet for the spreadsheet download
COMPACT_COLUMNS: List[Tuple[str, str]] = [
    ("Booking Number", "booking_number"),
    ("Customer Name", "customer_name"),
    ("Email", "customer_email"),
    ("Phone", "customer_phone"),
    ("Trek Name", "trek_name"),
    ("Region", "trek_region"),
    ("Difficulty", "trek_difficulty"),
    ("Trek Date", "trek_date"),
    ("Participants", "participants"),
    ("Total Amount", "total_amount"),
    ("Base Amount", "base_amount"),
    ("GST Amount", "gst_amount"),
    ("Status", "status"),
    ("Payment Status", "payment_status"),
    ("Booking Date", "booking_date"),
    ("Special Requirements", "special_requirements"),
    ("Medical Conditions", "medical_conditions"),
    ("Trekking Experience", "trekking_experience"),
    ("Emergency Contact", "emergency_contact_name"),
    ("Emergency Phone", "emergency_contact_phone"),
]


def csv_content(records: List[ExportRecord], columns: List[Tuple[str, str]]) -> str:
    """
    Header row plus one row per record. Text containing commas, quotes or
    newlines is double-quoted; numbers are written bare.
    """
    fields = [field for _, field in columns]
    # object dtype: each cell keeps its own int or float
    df = pd.DataFrame(
        [r.model_dump(include=set(fields)) for r in records], columns=fields, dtype=object
    )
    df.columns = [header for header, _ in columns]
    return df.to_csv(index=False, lineterminator="\n")


def format_inr(amount: float) -> str:
    """Indian digit grouping: 1250000 -> 12,50,000"""
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):.2f}".rstrip("0").rstrip(".")
    whole, _, fraction = text.partition(".")
    if len(whole) > 3:
        head = re.sub(r"(\d)(?=(\d{2})+$)", r"\1,", whole[:-3])
        whole = f"{head},{whole[-3:]}"
    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def _percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole else 0


# ---- CSV / Excel ----

def render_csv(records: List[ExportRecord], summary: ExportSummary, ctx: ReportContext) -> RenderedExport:
    return RenderedExport(
        content=csv_content(records, DETAILED_COLUMNS).encode("utf-8"),
        filename=f"{ctx.file_prefix}-detailed-bookings-{ctx.stamp}.csv",
        media_type="text/csv",
    )


def render_excel(records: List[ExportRecord], summary: ExportSummary, ctx: ReportContext) -> RenderedExport:
    # CSV under the legacy Excel MIME type; spreadsheet apps open it directly
    return RenderedExport(
        content=csv_content(records, COMPACT_COLUMNS).encode("utf-8"),
        filename=f"{ctx.file_prefix}-bookings-{ctx.stamp}.xls",
        media_type="application/vnd.ms-excel",
    )


# ---- JSON ----

def guide_insights(records: List[ExportRecord]) -> dict:
    """High-risk bookings, special requirements and the emergency contact roster."""
    return {
        "highRiskBookings": [
            {
                "bookingNumber": r.booking_number,
                "customerName": r.customer_name,
                "trekName": r.trek_name,
                "riskFactors": {
                    "medicalConditions": r.medical_conditions != NONE_REPORTED,
                    "age": age_out_of_range(r.customer_age),
                    "inexperienced": r.experience_level == "Beginner",
                },
            }
            for r in records
            if r.risk_assessment == "High"
        ],
        "specialRequirements": [
            {
                "bookingNumber": r.booking_number,
                "customerName": r.customer_name,
                "requirements": r.special_requirements,
            }
            for r in records
            if r.special_requirements != "None"
        ],
        "emergencyContacts": [
            {
                "bookingNumber": r.booking_number,
                "customerName": r.customer_name,
                "emergencyContact": r.emergency_contact_name,
                "emergencyPhone": r.emergency_contact_phone,
            }
            for r in records
        ],
    }


def render_json(records: List[ExportRecord], summary: ExportSummary, ctx: ReportContext) -> RenderedExport:
    document = {
        "exportInfo": {
            "generatedAt": ctx.generated_at.isoformat(),
            "totalBookings": len(records),
            "exportedBy": ctx.exported_by,
            "format": "JSON",
            "version": EXPORT_VERSION,
        },
        "summary": summary.model_dump(by_alias=True),
        "guideInsights": guide_insights(records),
        "bookings": [r.model_dump(by_alias=True) for r in records],
    }
    return RenderedExport(
        content=json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8"),
        filename=f"{ctx.file_prefix}-detailed-bookings-{ctx.stamp}.json",
        media_type="application/json",
    )


# ---- Plain-text guide report ----

def _heading(title: str) -> List[str]:
    return [RULE, title, RULE, ""]


def _high_risk_block(r: ExportRecord) -> List[str]:
    return [
        f"!! HIGH RISK BOOKING: {r.booking_number}",
        f"Customer: {r.customer_name} (Age: {r.customer_age})",
        f"Trek: {r.trek_name}",
        f"Experience: {r.experience_level}",
        f"Medical: {r.medical_conditions}",
        f"Risk Factors: {r.risk_assessment}",
        f"Emergency Contact: {r.emergency_contact_name} ({r.emergency_contact_phone})",
        THIN_RULE,
        "",
    ]


def _booking_block(position: int, r: ExportRecord) -> List[str]:
    return [
        f"BOOKING #{position} - {r.booking_number}",
        SECTION_RULE,
        "",
        "BASIC INFORMATION:",
        f"Booking Reference: {r.booking_reference}",
        f"Customer: {r.customer_name} ({r.customer_age} years, {r.customer_gender})",
        f"Email: {r.customer_email}",
        f"Phone: {r.customer_phone}",
        f"Address: {r.residential_address}",
        f"Booking Date: {r.booking_date} at {r.booking_time}",
        f"Status: {r.status} | Payment: {r.payment_status}",
        "",
        "TREK DETAILS:",
        f"Trek: {r.trek_name}",
        f"Region: {r.trek_region} | Difficulty: {r.trek_difficulty}",
        f"Duration: {r.trek_duration} | Season: {r.season_type}",
        f"Trek Date: {r.trek_date}",
        f"Start Location: {r.trek_start_location}",
        f"End Location: {r.trek_end_location}",
        "",
        "GROUP INFORMATION:",
        f"Participants: {r.participants} ({r.group_size})",
        f"Participant Names: {r.participant_names}",
        f"Experience Level: {r.experience_level}",
        f"Trekking Experience: {r.trekking_experience}",
        "",
        "FINANCIAL DETAILS:",
        f"Total Amount: ₹{format_inr(r.total_amount)}",
        f"Base Amount: ₹{format_inr(r.base_amount)}",
        f"GST: ₹{format_inr(r.gst_amount)}",
        f"Per Person: ₹{format_inr(r.amount_per_person)}",
        "",
        "HEALTH & SAFETY:",
        f"Risk Assessment: {r.risk_assessment}",
        f"Medical Conditions: {r.medical_conditions}",
        f"Current Medications: {r.current_medications}",
        f"Recent Illnesses: {r.recent_illnesses}",
        f"Fitness Level: {r.fitness_level}",
        "",
        "EMERGENCY CONTACT:",
        f"Name: {r.emergency_contact_name}",
        f"Phone: {r.emergency_contact_phone}",
        f"Relation: {r.emergency_contact_relation}",
        "",
        "LOGISTICS:",
        f"Pickup Location: {r.pickup_location}",
        f"Transportation Needed: {r.needs_transportation}",
        f"Accommodation: {r.accommodation_preferences}",
        f"Special Requirements: {r.special_requirements}",
        "",
        "EQUIPMENT & SERVICES:",
        f"Gear Rental: {r.gear_rental}",
        f"Porter Services: {r.porter_services}",
        f"Equipment Needed: {r.equipment_needed}",
        "",
        "SLOT INFORMATION:",
        f"Slot Date: {r.slot_date}",
        f"Capacity: {r.slot_capacity} | Booked: {r.slot_booked} | Available: {r.slot_available}",
        f"Utilization: {r.slot_utilization}",
        "",
        "GUIDE NOTES:",
        r.guide_notes,
        "",
        "WEATHER:",
        r.weather_conditions,
        "",
        "ADMINISTRATIVE:",
        f"Created By: {r.created_by}",
        f"Last Modified: {r.last_modified}",
        f"Approved By: {r.approved_by}",
        f"Approval Date: {r.approval_date}",
        "",
        BOOKING_RULE,
        "",
    ]


def guide_report_text(records: List[ExportRecord], summary: ExportSummary, ctx: ReportContext) -> str:
    total = summary.total_bookings
    high_risk = [r for r in records if r.risk_assessment == "High"]
    health = summary.health_concerns
    logistics = summary.logistics

    lines = [
        "Trek Hub India - DETAILED BOOKING REPORT FOR GUIDES",
        f"Generated: {format_datetime(ctx.generated_at.isoformat(), ctx.tz)}",
        f"Report Date: {ctx.stamp}",
        "",
        *_heading("EXECUTIVE SUMMARY"),
        f"Total Bookings: {total}",
        f"Total Participants: {summary.total_participants}",
        f"Total Revenue: ₹{format_inr(summary.total_revenue)}",
        f"Average Group Size: {summary.average_group_size}",
        "",
        "SAFETY OVERVIEW:",
        f"* High Risk Bookings: {health.high_risk} ({_percent(health.high_risk, total)}%)",
        f"* Medical Concerns: {health.with_medical_conditions} bookings",
        f"* Transportation Needed: {logistics.need_transportation} bookings",
        f"* Gear Rental Required: {logistics.need_gear_rental} bookings",
        "",
        *_heading("HIGH PRIORITY - GUIDE ATTENTION REQUIRED"),
    ]
    if high_risk:
        for r in high_risk:
            lines.extend(_high_risk_block(r))
    else:
        lines.extend(["No high-risk bookings identified.", ""])

    lines.extend(_heading("DETAILED BOOKING INFORMATION"))
    if records:
        for position, r in enumerate(records, 1):
            lines.extend(_booking_block(position, r))
    else:
        lines.extend(["No bookings in this export.", ""])

    lines.extend(_heading("GUIDE CHECKLIST SUMMARY"))
    lines.extend([
        f"[ ] Review all high-risk bookings ({health.high_risk} total)",
        "[ ] Confirm emergency contacts for all participants",
        f"[ ] Prepare equipment for gear rentals ({logistics.need_gear_rental} bookings)",
        f"[ ] Arrange porter services ({logistics.need_porter_services} bookings)",
        f"[ ] Coordinate transportation ({logistics.need_transportation} bookings)",
        "[ ] Review medical conditions and medications",
        "[ ] Check weather forecast for trek dates",
        "[ ] Prepare group management for different experience levels",
        "[ ] Confirm pickup locations and times",
        "[ ] Review special requirements and accommodations",
        "",
    ])

    lines.extend(_heading("EMERGENCY CONTACT QUICK REFERENCE"))
    lines.extend(
        f"{r.booking_number}: {r.customer_name} -> "
        f"{r.emergency_contact_name} ({r.emergency_contact_phone})"
        for r in records
    )
    lines.extend([
        "",
        RULE,
        "End of Detailed Guide Report",
        "Generated by Trek Hub India Admin System",
        RULE,
    ])
    return "\n".join(lines) + "\n"


def render_pdf(records: List[ExportRecord], summary: ExportSummary, ctx: ReportContext) -> RenderedExport:
    return RenderedExport(
        content=guide_report_text(records, summary, ctx).encode("utf-8"),
        filename=f"{ctx.file_prefix}-guide-report-{ctx.stamp}.txt",
        media_type="text/plain",
    )


Renderer = Callable[[List[ExportRecord], ExportSummary, ReportContext], RenderedExport]

RENDERERS: Dict[ExportFormat, Renderer] = {
    ExportFormat.CSV: render_csv,
    ExportFormat.JSON: render_json,
    ExportFormat.EXCEL: render_excel,
    ExportFormat.PDF: render_pdf,
}


def render_export(
    fmt: ExportFormat,
    records: List[ExportRecord],
    summary: ExportSummary,
    ctx: ReportContext,
) -> RenderedExport:
    return RENDERERS[ExportFormat(fmt)](records, summary, ctx)
