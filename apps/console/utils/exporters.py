"""
Resident and activity-log exports (CSV, demographic CSV, PDF).

Every exporter shares the same rules:
- empty input -> informational notice, no file
- a row that is not a mapping -> validation error, no partial file
- names and update statuses come from utils.resident_status

Exporters return an ExportFile (bytes + filename + mimetype); callers decide
whether to stream it (routes) or write it to disk (CLI).
"""
from __future__ import annotations

import csv
import io
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Sequence
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from apps.console.utils.errors import ExportError, ExportValidationError
from apps.console.utils.notifier import Notifier, LoggingNotifier
from apps.console.utils.resident_status import (
    format_resident_name,
    resident_code,
    resolve_update_status,
)
from apps.console.utils.time import parse_timestamp, utc_now


logger = logging.getLogger(__name__)

CSV_MIMETYPE = 'text/csv'
PDF_MIMETYPE = 'application/pdf'
UTF8_BOM = '\ufeff'
NO_DATA_MESSAGE = 'No data to export.'

RESIDENT_HEADERS = ['Resident ID', 'Name', 'Update Status', 'Verification', 'Last Modified', 'For Review']
ACTIVITY_LOG_HEADERS = ['Date', 'User', 'Action', 'Model', 'Description', 'IP Address']

AGE_BRACKETS = [
    'Under 5 years old', '5-9 years old', '10-14 years old', '15-19 years old',
    '20-24 years old', '25-29 years old', '30-34 years old', '35-39 years old',
    '40-44 years old', '45-49 years old', '50-54 years old', '55-59 years old',
    '60-64 years old', '65-69 years old', '70-74 years old', '75-79 years old',
    '80 years old and over',
]

SECTORS = [
    'Labor Force', 'Unemployed', 'Out-of-School Youth (OSY)',
    'Out-of-School Children (OSC)', 'Persons with Disabilities (PDWs)',
    'Overseas Filipino Workers (OFWs)', 'Other',
]

DETAIL_HEADERS = [
    'Resident ID', 'Full Name', 'Age', 'Sex', 'Civil Status',
    'Birth Date', 'Birth Place', 'Email', 'Contact Number', 'Current Address',
    'Household No', 'Relation to Head',
    'Educational Attainment', 'Occupation Type', 'Sector Classification',
    'Verification Status', 'Last Modified',
]


@dataclass
class ExportFile:
    filename: str
    mimetype: str
    content: bytes
    rows: int = 0


def _prepare(data: Any, notifier: Notifier) -> List[Mapping] | None:
    """Validate export input. Returns None when there is nothing to export."""
    if data is None:
        items = []
    elif isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Iterable):
        raise ExportValidationError('Invalid data format for export')
    else:
        items = list(data)
    if not items:
        notifier.info(NO_DATA_MESSAGE, 'Export')
        return None
    if not all(isinstance(item, Mapping) for item in items):
        raise ExportValidationError('Invalid data format for export')
    return items


def to_csv(rows: Iterable[Sequence[Any]]) -> str:
    """RFC 4180 CSV text: minimal quoting, doubled quotes, CRLF line endings."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator='\r\n')
    for row in rows:
        writer.writerow(['' if cell is None else cell for cell in row])
    return buffer.getvalue()


def _encode_csv(text: str) -> bytes:
    return (UTF8_BOM + text).encode('utf-8')


def format_timestamp(value) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return '' if value in (None, '') else str(value)
    return parsed.strftime('%Y-%m-%d %H:%M:%S')


def format_date(value) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return '' if value in (None, '') else str(value)
    return parsed.strftime('%m/%d/%Y')


def resident_row(resident: Mapping, now: datetime | None = None) -> List[str]:
    """One row of the basic resident export (shared by CSV and PDF)."""
    return [
        resident_code(resident),
        format_resident_name(resident),
        resolve_update_status(resident, now=now),
        resident.get('verification_status') or 'Pending',
        format_timestamp(resident.get('last_modified') or resident.get('updated_at')),
        'Yes' if resident.get('for_review') else 'No',
    ]


def export_residents_csv(data, notifier: Notifier | None = None, now: datetime | None = None) -> ExportFile | None:
    notifier = notifier or LoggingNotifier()
    try:
        items = _prepare(data, notifier)
        if items is None:
            return None
        rows = [RESIDENT_HEADERS] + [resident_row(r, now=now) for r in items]
        content = _encode_csv(to_csv(rows))
    except ExportError as exc:
        logger.error("CSV export error: %s", exc)
        notifier.error('Failed to export CSV.', 'Export Error')
        raise

    logger.info("Exported %d residents to CSV", len(items))
    return ExportFile('residents.csv', CSV_MIMETYPE, content, rows=len(items))


# --- demographic report -----------------------------------------------------

def _to_int(value) -> int | None:
    if value is None or value == '':
        return None
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def age_bracket(age) -> str:
    years = _to_int(age)
    if not years:
        return 'Unknown'
    if years >= 80:
        return AGE_BRACKETS[-1]
    return AGE_BRACKETS[max(years, 0) // 5]


def _lower(value) -> str:
    return str(value or '').strip().lower()


def _categories(resident: Mapping) -> List[str]:
    raw = resident.get('special_categories')
    if not isinstance(raw, list):
        return []
    return [_lower(c) for c in raw]


def sector_of(resident: Mapping) -> str:
    """Sector classification used by the demographic report."""
    age = _to_int(resident.get('age')) or 0
    occupation = _lower(resident.get('occupation_type'))
    education = _lower(resident.get('educational_attainment'))
    working_age = 18 <= age <= 65

    if working_age and occupation and occupation not in ('none', 'unemployed'):
        return 'Labor Force'
    if working_age:
        return 'Unemployed'
    if 15 <= age <= 24 and education in ('', 'none', 'elementary'):
        return 'Out-of-School Youth (OSY)'
    if 6 <= age <= 14:
        return 'Out-of-School Children (OSC)'

    categories = _categories(resident)
    if any('disability' in c or 'pwd' in c for c in categories):
        return 'Persons with Disabilities (PDWs)'
    if any('ofw' in c or 'overseas' in c for c in categories):
        return 'Overseas Filipino Workers (OFWs)'
    return 'Other'


def _sex_counts(items: List[Mapping], predicate) -> tuple[int, int]:
    male = sum(1 for r in items if predicate(r) and _lower(r.get('sex')) == 'male')
    female = sum(1 for r in items if predicate(r) and _lower(r.get('sex')) == 'female')
    return male, female


def demographic_summary(items: List[Mapping]) -> dict:
    return {
        'registered_voters': sum(
            1 for r in items if r.get('voter_status') and _lower(r.get('voter_status')) != 'none'
        ),
        'total_population': len(items),
        'total_households': len({r.get('household_no') for r in items if r.get('household_no')}),
        'total_families': sum(1 for r in items if r.get('head_of_family')),
    }


def demographic_rows(items: List[Mapping], generated_on: datetime) -> List[List[Any]]:
    summary = demographic_summary(items)
    rows: List[List[Any]] = [
        ['BARANGAY DEMOGRAPHIC INFORMATION REPORT'],
        ['Generated on:', generated_on.strftime('%m/%d/%Y')],
        ['Total Records:', len(items)],
        [],
        ['I. GENERAL DEMOGRAPHIC INFORMATION'],
        ['A. No. of Registered Voters:', summary['registered_voters']],
        ['B. No. of Population:', summary['total_population']],
        ['C. With RBIs?:', 'No'],
        ['D. No. of Households:', summary['total_households']],
        ['E. No. of Families:', summary['total_families']],
        [],
        ['F. POPULATION BY AGE BRACKET'],
        ['AGE', 'MALE', 'FEMALE', 'TOTAL'],
    ]

    for bracket in AGE_BRACKETS:
        male, female = _sex_counts(items, lambda r, b=bracket: age_bracket(r.get('age')) == b)
        rows.append([bracket, male, female, male + female])
    rows.append([])

    rows.append(['G. POPULATION BY SECTOR'])
    rows.append(['SECTOR', 'MALE', 'FEMALE', 'TOTAL'])
    for sector in SECTORS:
        male, female = _sex_counts(items, lambda r, s=sector: sector_of(r) == s)
        if male + female > 0:
            rows.append([sector, male, female, male + female])
    rows.append([])

    rows.append(['DETAILED RESIDENT RECORDS'])
    rows.append(DETAIL_HEADERS)
    for r in items:
        rows.append([
            resident_code(r),
            format_resident_name(r),
            r.get('age') or '',
            r.get('sex') or '',
            r.get('civil_status') or '',
            format_date(r.get('birth_date')),
            r.get('birth_place') or '',
            r.get('email') or '',
            r.get('contact_number') or r.get('mobile_number') or '',
            r.get('current_address') or '',
            r.get('household_no') or '',
            r.get('relation_to_head') or '',
            r.get('educational_attainment') or '',
            r.get('occupation_type') or '',
            sector_of(r),
            r.get('verification_status') or 'Pending',
            format_date(r.get('last_modified') or r.get('updated_at')),
        ])
    return rows


def export_demographic_csv(
    data,
    notifier: Notifier | None = None,
    now: datetime | None = None,
    filename: str = 'residents-demographic-report',
) -> ExportFile | None:
    """Spreadsheet-friendly demographic report (CSV that opens in Excel)."""
    notifier = notifier or LoggingNotifier()
    try:
        items = _prepare(data, notifier)
        if items is None:
            return None
        content = _encode_csv(to_csv(demographic_rows(items, now or utc_now())))
    except ExportError as exc:
        logger.error("Demographic export error: %s", exc)
        notifier.error('Failed to export demographic Excel file.', 'Export Error')
        raise

    notifier.success(
        f"Demographic Excel report completed successfully! {len(items)} records exported "
        f"with demographic analysis.",
        'Export Success',
    )
    return ExportFile(f'{filename}.csv', CSV_MIMETYPE, content, rows=len(items))


# --- PDF --------------------------------------------------------------------

def _render_pdf(items: List[Mapping], now: datetime | None) -> bytes:
    bio = io.BytesIO()
    doc = SimpleDocTemplate(
        bio,
        pagesize=landscape(A4),
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title='Residents Report',
    )
    styles = getSampleStyleSheet()
    body = ParagraphStyle('ResidentsBody', parent=styles['Normal'], fontName='Helvetica', fontSize=8, leading=10)
    header = ParagraphStyle('ResidentsHeader', parent=body, fontName='Helvetica-Bold')

    data = [[Paragraph(h, header) for h in RESIDENT_HEADERS]]
    for resident in items:
        data.append([Paragraph(xml_escape(str(cell)), body) for cell in resident_row(resident, now=now)])

    table = Table(
        data,
        repeatRows=1,
        colWidths=[35 * mm, 70 * mm, 38 * mm, 30 * mm, 45 * mm, 25 * mm],
    )
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f5f5f5')),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cccccc')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
    ]))

    doc.build([Paragraph('Residents Report', styles['Title']), Spacer(1, 4 * mm), table])
    return bio.getvalue()


def export_residents_pdf(data, notifier: Notifier | None = None, now: datetime | None = None) -> ExportFile | None:
    notifier = notifier or LoggingNotifier()
    try:
        items = _prepare(data, notifier)
        if items is None:
            return None
        content = _render_pdf(items, now)
    except ExportError as exc:
        logger.error("PDF export error: %s", exc)
        notifier.error('Failed to export PDF.', 'Export Error')
        raise
    except Exception as exc:
        logger.exception("PDF rendering failed")
        notifier.error('Failed to export PDF.', 'Export Error')
        raise ExportError('Failed to export PDF.') from exc

    logger.info("Exported %d residents to PDF", len(items))
    return ExportFile('residents.pdf', PDF_MIMETYPE, content, rows=len(items))


EXPORTERS = {
    'csv': export_residents_csv,
    'excel': export_demographic_csv,
    'pdf': export_residents_pdf,
}


# --- activity logs ----------------------------------------------------------

def activity_log_row(log: Mapping) -> List[str]:
    user = log.get('user') if isinstance(log.get('user'), Mapping) else {}
    model_type = log.get('model_type')
    return [
        format_timestamp(log.get('created_at')),
        user.get('name') or 'System',
        log.get('action') or '',
        f"{model_type}#{log.get('model_id')}" if model_type else 'N/A',
        log.get('description') or '',
        log.get('ip_address') or 'N/A',
    ]


def export_activity_logs_csv(logs, notifier: Notifier | None = None, now: datetime | None = None) -> ExportFile | None:
    notifier = notifier or LoggingNotifier()
    try:
        items = _prepare(logs, notifier)
        if items is None:
            return None
        rows = [ACTIVITY_LOG_HEADERS] + [activity_log_row(log) for log in items]
    except ExportError as exc:
        logger.error("Activity log export error: %s", exc)
        notifier.error('Failed to export activity logs.', 'Export Error')
        raise

    stamp = (now or utc_now()).strftime('%Y-%m-%d')
    return ExportFile(f'activity-logs-{stamp}.csv', CSV_MIMETYPE, to_csv(rows).encode('utf-8'), rows=len(items))
