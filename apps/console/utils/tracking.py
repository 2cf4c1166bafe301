"""
Benefit tracking view and receipt submission.

The records API owns the four-stage payout workflow; this module only reads
the stage flags it reports and validates a receipt submission before sending
it. After a successful submission the tracking object is always fetched again
rather than patched locally.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from apps.console.utils.errors import UpstreamError, ValidationError
from apps.console.utils.time import parse_timestamp


logger = logging.getLogger(__name__)

NON_MONETARY_TYPES = ('non-monetary', 'non-monetary assistance')

STAGE_APPLICATION = 1
STAGE_PAYOUT_SCHEDULED = 2
STAGE_RECEIPT = 3
STAGE_COMPLETED = 4

ALLOWED_PROOF_MIME_TYPES = ('image/jpeg', 'image/png', 'image/jpg', 'application/pdf')
MAX_PROOF_BYTES = 10 * 1024 * 1024

INVALID_RECEIPT_CODE = 'INVALID_RECEIPT'
INVALID_RECEIPT_MARKER = 'invalid receipt number'
INVALID_RECEIPT_MESSAGE = 'Invalid Receipt Number. Please check the receipt sent to your email.'
MISSING_RECEIPT_MESSAGE = 'Please enter your receipt number'
GENERIC_RECEIPT_ERROR = 'Failed to validate receipt number'


def _as_dict(value) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def is_non_monetary(program: Optional[dict], beneficiary: Optional[dict] = None) -> bool:
    """True when the program (or, failing that, the beneficiary) is non-monetary."""
    assistance = _as_dict(program).get('assistance_type') or _as_dict(beneficiary).get('assistance_type')
    return str(assistance or '').strip().lower() in NON_MONETARY_TYPES


@dataclass
class TrackingStage:
    stage: int
    title: str = ''
    description: str = ''
    completed: bool = False
    active: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def state(self) -> str:
        if self.completed:
            return 'completed'
        if self.active:
            return 'active'
        return 'upcoming'

    def to_dict(self) -> dict:
        return {
            'stage': self.stage,
            'title': self.title,
            'description': self.description,
            'completed': self.completed,
            'active': self.active,
            'state': self.state,
            'details': dict(self.details),
        }


@dataclass
class TrackingView:
    beneficiary: Dict[str, Any]
    program: Dict[str, Any]
    submission: Dict[str, Any]
    stages: List[TrackingStage]
    payout_date: Optional[datetime] = None
    current_stage: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict, tz: tzinfo | None = None) -> 'TrackingView':
        """Build a view from the API's tracking payload.

        Accepts either the bare tracking object or the full response body
        (``{'data': {...}}``). A payout date without an offset is read in
        ``tz``.
        """
        data = _as_dict(payload)
        if 'data' in data and isinstance(data['data'], dict):
            data = data['data']

        beneficiary = _as_dict(data.get('beneficiary'))
        program = _as_dict(data.get('program'))
        submission = _as_dict(data.get('submission'))
        tracking = _as_dict(data.get('tracking'))

        payout_raw = tracking.get('payout_date') or beneficiary.get('payout_date')
        payout_date = parse_timestamp(payout_raw, assume_tz=tz)

        stages = []
        for raw in tracking.get('stages') or []:
            raw = _as_dict(raw)
            try:
                number = int(raw.get('stage'))
            except (TypeError, ValueError):
                continue
            stage = TrackingStage(
                stage=number,
                title=raw.get('title') or '',
                description=raw.get('description') or '',
                completed=bool(raw.get('completed')),
                active=bool(raw.get('active')),
            )
            stage.details = _stage_details(stage, beneficiary, submission, payout_raw)
            stages.append(stage)
        stages.sort(key=lambda s: s.stage)

        current = tracking.get('current_stage')
        try:
            current = int(current) if current is not None else None
        except (TypeError, ValueError):
            current = None

        return cls(
            beneficiary=beneficiary,
            program=program,
            submission=submission,
            stages=stages,
            payout_date=payout_date,
            current_stage=current,
        )

    @property
    def non_monetary(self) -> bool:
        return is_non_monetary(self.program, self.beneficiary)

    @property
    def is_paid(self) -> bool:
        return bool(self.beneficiary.get('is_paid'))

    @property
    def receipt_validated(self) -> bool:
        return bool(self.beneficiary.get('receipt_number_validated'))

    def stage(self, number: int) -> Optional[TrackingStage]:
        for item in self.stages:
            if item.stage == number:
                return item
        return None

    def payout_due(self, now: datetime) -> bool:
        """Payout time has arrived while the workflow still sits at the payout stage."""
        return (
            self.payout_date is not None
            and self.current_stage == STAGE_PAYOUT_SCHEDULED
            and now >= self.payout_date
        )

    def to_dict(self) -> dict:
        return {
            'beneficiary': dict(self.beneficiary),
            'program': dict(self.program),
            'submission': dict(self.submission),
            'stages': [s.to_dict() for s in self.stages],
            'payout_date': self.payout_date.isoformat() if self.payout_date else None,
            'current_stage': self.current_stage,
            'non_monetary': self.non_monetary,
        }


def _stage_details(stage: TrackingStage, beneficiary: dict, submission: dict, payout_raw) -> Dict[str, Any]:
    if stage.stage == STAGE_APPLICATION and stage.completed:
        return {
            'submission_data': submission.get('submission_data'),
            'admin_notes': submission.get('admin_notes'),
        }
    if stage.stage == STAGE_PAYOUT_SCHEDULED:
        return {'payout_date': payout_raw}
    if stage.stage == STAGE_RECEIPT:
        return {
            'receipt_number': beneficiary.get('receipt_number'),
            'receipt_number_validated': bool(beneficiary.get('receipt_number_validated')),
            'is_paid': bool(beneficiary.get('is_paid')),
            'proof_comment': beneficiary.get('proof_comment'),
            'proof_of_payout_url': beneficiary.get('proof_of_payout_url'),
        }
    return {}


@dataclass
class ProofFile:
    filename: str
    mimetype: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_storage(cls, storage) -> Optional['ProofFile']:
        """Read an uploaded werkzeug FileStorage; None when nothing was uploaded."""
        if storage is None or not getattr(storage, 'filename', None):
            return None
        return cls(
            filename=storage.filename,
            mimetype=(storage.mimetype or '').lower(),
            data=storage.read(),
        )


@dataclass
class ReceiptSubmission:
    receipt_number: str = ''
    comment: str = ''
    proof_file: Optional[ProofFile] = None


def validate_proof_file(
    proof: Optional[ProofFile],
    allowed_types=ALLOWED_PROOF_MIME_TYPES,
    max_bytes: int = MAX_PROOF_BYTES,
) -> None:
    if proof is None:
        return
    if proof.mimetype not in allowed_types:
        raise ValidationError(
            'Proof of payout must be a JPEG, PNG or PDF file', field='proof_file'
        )
    if proof.size > max_bytes:
        raise ValidationError(
            f'Proof of payout must not exceed {max_bytes // (1024 * 1024)}MB', field='proof_file'
        )


def build_receipt_payload(
    view: TrackingView,
    submission: ReceiptSubmission,
    allowed_types=ALLOWED_PROOF_MIME_TYPES,
    max_bytes: int = MAX_PROOF_BYTES,
) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """Validate a submission and return ``(form_data, files)`` for the upload.

    Non-monetary programs never send a receipt number.
    """
    data: Dict[str, str] = {}
    if not view.non_monetary:
        receipt = (submission.receipt_number or '').strip()
        if not receipt:
            raise ValidationError(MISSING_RECEIPT_MESSAGE, field='receipt_number')
        data['receipt_number'] = receipt

    comment = (submission.comment or '').strip()
    if comment:
        data['comment'] = comment

    validate_proof_file(submission.proof_file, allowed_types, max_bytes)
    files: Dict[str, Any] = {}
    if submission.proof_file is not None:
        proof = submission.proof_file
        files['proof_file'] = (proof.filename, proof.data, proof.mimetype)
    return data, files


def is_invalid_receipt_error(error: UpstreamError) -> bool:
    if error.code == INVALID_RECEIPT_CODE:
        return True
    return INVALID_RECEIPT_MARKER in (error.message or '').lower()


def fetch_tracking(client, beneficiary_id, tz: tzinfo | None = None) -> TrackingView:
    return TrackingView.from_payload(client.track_benefit(beneficiary_id), tz=tz)


def submit_receipt(
    client,
    beneficiary_id,
    view: TrackingView,
    submission: ReceiptSubmission,
    allowed_types=ALLOWED_PROOF_MIME_TYPES,
    max_bytes: int = MAX_PROOF_BYTES,
    tz: tzinfo | None = None,
) -> TrackingView:
    """Send a receipt/proof submission and return the refreshed tracking view."""
    data, files = build_receipt_payload(view, submission, allowed_types, max_bytes)

    try:
        client.validate_receipt(beneficiary_id, data, files)
    except UpstreamError as exc:
        if is_invalid_receipt_error(exc):
            logger.info("Receipt rejected for beneficiary %s", beneficiary_id)
            raise ValidationError(INVALID_RECEIPT_MESSAGE, field='receipt_number') from exc
        if not exc.message:
            exc.message = GENERIC_RECEIPT_ERROR
        raise

    logger.info("Receipt submitted for beneficiary %s", beneficiary_id)
    return fetch_tracking(client, beneficiary_id, tz=tz)
