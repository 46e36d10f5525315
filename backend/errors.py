# errors.py — Opaque client-facing error codes
# CP-{DOMAIN}-{NUMBER}
# Domains: AUTH, VAL, RES, SYS
from typing import Optional

from fastapi import HTTPException

ERROR_CATALOGUE = {
    # Authentication & Authorisation
    "CP-AUTH-001": {"message": "Invalid email or password.", "http_status": 401},
    "CP-AUTH-002": {"message": "Not authenticated", "http_status": 401},
    "CP-AUTH-003": {"message": "Invalid or expired token", "http_status": 401},
    "CP-AUTH-004": {"message": "Insufficient role privileges", "http_status": 403},
    "CP-AUTH-005": {"message": "Invalid or expired token.", "http_status": 400},

    # Validation
    "CP-VAL-001": {"message": "Request validation failed", "http_status": 400},
    "CP-VAL-002": {
        "message": (
            "Password must be 8 characters to 72 bytes long and contain at least one "
            "uppercase letter, one lowercase letter, one number, and one special character."
        ),
        "http_status": 400,
    },

    # Resources
    "CP-RES-001": {"message": "Resource not found", "http_status": 404},
    "CP-RES-002": {"message": "Resource already exists", "http_status": 409},

    # System
    "CP-SYS-001": {"message": "Internal server error", "http_status": 500},
}


class APIError(HTTPException):
    """HTTPException tagged with a catalogue code; rendered by main.py"""

    def __init__(self, code: str, detail: Optional[str] = None, headers: Optional[dict] = None):
        entry = ERROR_CATALOGUE[code]
        super().__init__(
            status_code=entry["http_status"],
            detail=detail or entry["message"],
            headers=headers,
        )
        self.error_code = code
