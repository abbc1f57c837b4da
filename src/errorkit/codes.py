"""Error codes shared by every service (domain ``00``)."""

from errorkit.registry import ErrorDomain, ErrorDomainConfig, ErrorSource, define_error_codes

COMMON_ERRORS = define_error_codes(
    ErrorDomainConfig(domain=ErrorDomain.COMMON),
    {
        # User errors
        "BAD_REQUEST": {
            "source": ErrorSource.USER,
            "seq": 1,
            "http_status": 400,
            "message": "Bad request",
        },
        "UNAUTHORIZED": {
            "source": ErrorSource.USER,
            "seq": 2,
            "http_status": 401,
            "message": "Unauthorized",
        },
        "FORBIDDEN": {
            "source": ErrorSource.USER,
            "seq": 3,
            "http_status": 403,
            "message": "Forbidden",
        },
        "NOT_FOUND": {
            "source": ErrorSource.USER,
            "seq": 4,
            "http_status": 404,
            "message": "Not found",
        },
        "VALIDATION_FAILED": {
            "source": ErrorSource.USER,
            "seq": 5,
            "http_status": 422,
            "message": "Validation failed",
        },
        # System errors
        "INTERNAL_SERVER_ERROR": {
            "source": ErrorSource.SYSTEM,
            "seq": 1,
            "http_status": 500,
            "message": "Internal server error",
        },
        "SERVICE_UNAVAILABLE": {
            "source": ErrorSource.SYSTEM,
            "seq": 2,
            "http_status": 503,
            "message": "Service unavailable",
        },
        # Third-party errors
        "THIRD_PARTY_ERROR": {
            "source": ErrorSource.THIRD_PARTY,
            "seq": 1,
            "http_status": 502,
            "message": "Third-party service error",
        },
        "THIRD_PARTY_TIMEOUT": {
            "source": ErrorSource.THIRD_PARTY,
            "seq": 2,
            "http_status": 504,
            "message": "Third-party service timeout",
        },
    },
)

# Closest COMMON_ERRORS entry for framework HTTP exceptions (404 from routing,
# 405, 422 from request validation, ...). Anything missing here resolves to
# INTERNAL_SERVER_ERROR with the original status kept.
HTTP_STATUS_TO_ERROR = {
    400: COMMON_ERRORS.BAD_REQUEST,
    401: COMMON_ERRORS.UNAUTHORIZED,
    403: COMMON_ERRORS.FORBIDDEN,
    404: COMMON_ERRORS.NOT_FOUND,
    422: COMMON_ERRORS.VALIDATION_FAILED,
    500: COMMON_ERRORS.INTERNAL_SERVER_ERROR,
    502: COMMON_ERRORS.THIRD_PARTY_ERROR,
    503: COMMON_ERRORS.SERVICE_UNAVAILABLE,
    504: COMMON_ERRORS.THIRD_PARTY_TIMEOUT,
}
