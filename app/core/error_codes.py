# app/core/error_codes.py

# request (400)
REQ_UNSUPPORTED_MEDIA_TYPE = "REQ_UNSUPPORTED_MEDIA_TYPE"
REQ_EMPTY_VIDEO_BYTES = "REQ_EMPTY_VIDEO_BYTES"
REQ_INVALID_ROI = "REQ_INVALID_ROI"
REQ_DEBUG_ERROR = "REQ_DEBUG_ERROR"
REQ_VALIDATION_FAILED = "REQ_VALIDATION_FAILED"

# analysis (422)
ANALYSIS_ROI_MISSING = "ANALYSIS_ROI_MISSING"
ANALYSIS_SOURCE_MISSING = "ANALYSIS_SOURCE_MISSING"
ANALYSIS_SESSION_COMPLETED = "ANALYSIS_SESSION_COMPLETED"
ANALYSIS_VIEWS_INCOMPLETE = "ANALYSIS_VIEWS_INCOMPLETE"
ANALYSIS_VIDEO_UNREADABLE = "ANALYSIS_VIDEO_UNREADABLE"

# cancellation (409)
ANALYSIS_CANCELLED = "ANALYSIS_CANCELLED"

# upstream (502)
UPSTREAM_ADVISORY_FAILED = "UPSTREAM_ADVISORY_FAILED"
UPSTREAM_ADVISORY_NOT_CONFIGURED = "UPSTREAM_ADVISORY_NOT_CONFIGURED"

INTERNAL_UNHANDLED = "INTERNAL_UNHANDLED"
