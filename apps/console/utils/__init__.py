"""Utility functions for the console."""

from .errors import (
    ConsoleError,
    RequestCancelled,
    ValidationError,
    UpstreamError,
    ExportError,
    ExportValidationError,
)

from .resident_status import (
    STATUS_ACTIVE,
    STATUS_OUTDATED,
    STATUS_NEEDS_VERIFICATION,
    classify,
    resolve_update_status,
    status_key,
    format_resident_name,
    resident_code,
    details_visible,
)

from .filtering import (
    filter_residents,
    paginate,
    Page,
    ResidentListState,
)

from .exporters import (
    EXPORTERS,
    ExportFile,
    export_residents_csv,
    export_demographic_csv,
    export_residents_pdf,
    export_activity_logs_csv,
)

from .notifier import Notifier, CollectingNotifier, LoggingNotifier

from .upstream import (
    CancelToken,
    LatestRequestGuard,
    RecordsClient,
    create_session,
)

from .tracking import (
    TrackingStage,
    TrackingView,
    ProofFile,
    ReceiptSubmission,
    submit_receipt,
)

from .residents import ResidentDirectory

from .scheduling import NotificationPoller, PayoutRefreshScheduler

__all__ = [
    'ConsoleError',
    'RequestCancelled',
    'ValidationError',
    'UpstreamError',
    'ExportError',
    'ExportValidationError',
    'STATUS_ACTIVE',
    'STATUS_OUTDATED',
    'STATUS_NEEDS_VERIFICATION',
    'classify',
    'resolve_update_status',
    'status_key',
    'format_resident_name',
    'resident_code',
    'details_visible',
    'filter_residents',
    'paginate',
    'Page',
    'ResidentListState',
    'EXPORTERS',
    'ExportFile',
    'export_residents_csv',
    'export_demographic_csv',
    'export_residents_pdf',
    'export_activity_logs_csv',
    'Notifier',
    'CollectingNotifier',
    'LoggingNotifier',
    'CancelToken',
    'LatestRequestGuard',
    'RecordsClient',
    'create_session',
    'TrackingStage',
    'TrackingView',
    'ProofFile',
    'ReceiptSubmission',
    'submit_receipt',
    'ResidentDirectory',
    'NotificationPoller',
    'PayoutRefreshScheduler',
]
