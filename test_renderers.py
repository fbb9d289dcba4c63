import csv
import io
import json
from datetime import datetime, timezone

import pytest

from trekhub.booking_export.enrichment import build_export_record
from trekhub.booking_export.renderers import (
    COMPACT_COLUMNS,
    DETAILED_COLUMNS,
    ReportContext,
    format_inr,
    render_export,
)
from trekhub.booking_export.schema import Booking, ExportFormat
from trekhub.booking_export.summary import compute_summary

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
CTX = ReportContext(generated_at=NOW)


def _render(fmt, records):
    return render_export(fmt, records, compute_summary(records), CTX)


def _rows(content: bytes):
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


@pytest.fixture
def records():
    return [
        build_export_record(
            Booking(
                id="a1b2c3d4-0001",
                trek_slug="kedarkantha",
                customer_name="Sharma, Anil",
                customer_age=30,
                participants=1,
                total_amount=25000,
                status="confirmed",
                trekking_experience="Advanced",
                special_requirements='Needs "vegan" meals',
                emergency_contact_name="Kavita Sharma",
                emergency_contact_phone="+91 90000 00001",
                created_at="2026-04-02T06:00:00Z",
            ),
            0,
            now=NOW,
        ),
        build_export_record(
            Booking(
                id="e5f6a7b8-0002",
                trek_slug="roopkund",
                customer_name="Old Timer",
                customer_age=67,
                participants=5,
                total_amount=1250000,
                medical_conditions="Hypertension",
                trekking_experience="beginner",
                trek_gear_rental=True,
                emergency_contact_name="Son",
                emergency_contact_phone="+91 90000 00002",
                created_at="2026-04-01T06:00:00Z",
            ),
            1,
            now=NOW,
        ),
    ]


@pytest.mark.parametrize("fmt", list(ExportFormat))
def test_empty_export_renders_valid_document(fmt):
    rendered = _render(fmt, [])
    text = rendered.content.decode("utf-8")
    if fmt is ExportFormat.JSON:
        doc = json.loads(text)
        assert doc["bookings"] == []
        assert doc["summary"]["totalBookings"] == 0
        assert doc["summary"]["totalRevenue"] == 0
        assert doc["summary"]["averageGroupSize"] == 0
        assert doc["guideInsights"]["emergencyContacts"] == []
    elif fmt is ExportFormat.PDF:
        assert "EXECUTIVE SUMMARY" in text
        assert "Total Bookings: 0" in text
        assert "High Risk Bookings: 0 (0%)" in text
        assert "No high-risk bookings identified." in text
    else:
        rows = _rows(rendered.content)
        columns = DETAILED_COLUMNS if fmt is ExportFormat.CSV else COMPACT_COLUMNS
        assert rows == [[header for header, _ in columns]]


def test_csv_layout_and_quoting(records):
    rendered = _render(ExportFormat.CSV, records)
    assert rendered.media_type == "text/csv"
    assert rendered.filename == "trek-hub-india-detailed-bookings-2026-10-18.csv"

    text = rendered.content.decode("utf-8")
    assert '"Sharma, Anil"' in text
    assert '"Needs ""vegan"" meals"' in text

    rows = _rows(rendered.content)
    headers = rows[0]
    assert len(headers) == len(DETAILED_COLUMNS)
    assert headers[0] == "Booking Number"
    assert "Risk Assessment" in headers
    assert len(rows) == 3

    first = dict(zip(headers, rows[1]))
    assert first["Booking Number"] == "NMD-0001"
    assert first["Customer Name"] == "Sharma, Anil"
    assert first["Customer Age"] == "30"
    assert first["Amount Per Person (₹)"] == "25000"
    assert first["Special Requirements"] == 'Needs "vegan" meals'
    second = dict(zip(headers, rows[2]))
    assert second["Risk Assessment"] == "High"
    assert second["Group Size Category"] == "Large Group"


def test_excel_is_compact_csv_under_spreadsheet_type(records):
    rendered = _render(ExportFormat.EXCEL, records)
    assert rendered.media_type == "application/vnd.ms-excel"
    assert rendered.filename == "trek-hub-india-bookings-2026-10-18.xls"
    rows = _rows(rendered.content)
    assert rows[0] == [header for header, _ in COMPACT_COLUMNS]
    assert rows[1][1] == "Sharma, Anil"
    assert len(rows) == 3


def test_json_document(records):
    rendered = _render(ExportFormat.JSON, records)
    assert rendered.media_type == "application/json"
    assert rendered.filename == "trek-hub-india-detailed-bookings-2026-10-18.json"

    doc = json.loads(rendered.content)
    assert doc["exportInfo"]["totalBookings"] == 2
    assert doc["exportInfo"]["format"] == "JSON"
    assert doc["exportInfo"]["exportedBy"] == "Trek Hub India Admin"
    assert doc["exportInfo"]["generatedAt"].startswith("2026-10-18T09:30:00")

    summary = doc["summary"]
    assert summary["totalRevenue"] == 1275000
    assert summary["totalParticipants"] == 6
    assert summary["averageGroupSize"] == 3.0
    assert summary["riskAssessmentBreakdown"] == {"Low": 1, "High": 1}
    assert summary["experienceBreakdown"] == {"Advanced": 1, "Beginner": 1}
    assert summary["seasonBreakdown"] == {"Spring": 2}
    assert summary["logistics"]["needGearRental"] == 1

    insights = doc["guideInsights"]
    assert insights["highRiskBookings"] == [{
        "bookingNumber": "NMD-0002",
        "customerName": "Old Timer",
        "trekName": "Roopkund",
        "riskFactors": {"medicalConditions": True, "age": True, "inexperienced": True},
    }]
    assert [s["bookingNumber"] for s in insights["specialRequirements"]] == ["NMD-0001"]
    assert len(insights["emergencyContacts"]) == 2

    booking = doc["bookings"][0]
    assert booking["bookingNumber"] == "NMD-0001"
    assert booking["riskAssessment"] == "Low"
    assert booking["amountPerPerson"] == 25000
    assert "customer_name" not in booking


def test_guide_report_sections(records):
    rendered = _render(ExportFormat.PDF, records)
    assert rendered.media_type == "text/plain"
    assert rendered.filename == "trek-hub-india-guide-report-2026-10-18.txt"

    text = rendered.content.decode("utf-8")
    assert text.startswith("Trek Hub India - DETAILED BOOKING REPORT FOR GUIDES")
    assert "Generated: 18/10/2026, 3:00:00 pm" in text
    assert "Total Revenue: ₹12,75,000" in text
    assert "High Risk Bookings: 1 (50%)" in text
    assert "!! HIGH RISK BOOKING: NMD-0002" in text
    assert "BOOKING #1 - NMD-0001" in text
    assert "BOOKING #2 - NMD-0002" in text
    assert "Per Person: ₹2,50,000" in text
    assert "[ ] Prepare equipment for gear rentals (1 bookings)" in text
    assert "NMD-0001: Sharma, Anil -> Kavita Sharma (+91 90000 00001)" in text
    for section in ("EXECUTIVE SUMMARY", "HIGH PRIORITY - GUIDE ATTENTION REQUIRED",
                    "DETAILED BOOKING INFORMATION", "GUIDE CHECKLIST SUMMARY",
                    "EMERGENCY CONTACT QUICK REFERENCE"):
        assert section in text


def test_format_inr_groups_indian_style():
    assert format_inr(999) == "999"
    assert format_inr(25000) == "25,000"
    assert format_inr(100000) == "1,00,000"
    assert format_inr(1250000) == "12,50,000"
    assert format_inr(1234.5) == "1,234.5"
    assert format_inr(0) == "0"


def test_csv_amounts_keep_their_own_precision():
    whole = build_export_record(
        Booking(id="w1", total_amount=21000.0, created_at="2026-04-02T06:00:00Z"), 0, now=NOW
    )
    part = build_export_record(
        Booking(id="p1", total_amount=1250.5, created_at="2026-04-01T06:00:00Z"), 1, now=NOW
    )
    rows = _rows(_render(ExportFormat.CSV, [whole, part]).content)
    column = rows[0].index("Total Amount (₹)")
    assert [row[column] for row in rows[1:]] == ["21000", "1250.5"]
