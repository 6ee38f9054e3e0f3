"""
Logging filters for PHI scrubbing (HIPAA compliance).

Batch runs handle patient names, MR numbers and admission dates read from the
census spreadsheet. These filters redact those values from log records before
any handler writes them out.

Usage:
    # In settings LOGGING configuration (see certwatch.logging_config):
    LOGGING = {
        'filters': {
            'phi_scrubber': {
                '()': 'certwatch.logging_filters.PHIScrubberFilter',
            },
        },
        'handlers': {
            'console': {
                'filters': ['phi_scrubber'],
                # ... rest of config
            },
        },
    }
"""

import logging
import re
from typing import Any, Dict, Optional


# =============================================================================
# PHI Detection Patterns
# =============================================================================

# Medical Record Number patterns
MRN_PATTERNS = [
    re.compile(r'\b(?:MRN|MR[\s_]?(?:Number|No\.?|#))\s*:?\s*[\w\-]+', re.IGNORECASE),  # MR Number: 12345
    re.compile(r'\bMR-[\w\-]+'),  # MR-TEST-12345
    re.compile(r'\bmedical[\s_]record[\s_]number\s*:?\s*[\w\-]+', re.IGNORECASE),
]

# Date of Birth and admission date patterns (labelled dates only)
DATE_PATTERNS = [
    re.compile(r'\b(?:DOB|date[\s_]of[\s_]birth)\s*:?\s*\d{1,2}[/-]\d{1,2}[/-]\d{2,4}', re.IGNORECASE),
    re.compile(r'\b(?:admission|start[\s_]of[\s_]care|SOC)[\s_]?(?:date)?\s*:?\s*\d{1,2}[/-]\d{1,2}[/-]\d{2,4}', re.IGNORECASE),
]

# Phone Number patterns (US format)
PHONE_PATTERNS = [
    re.compile(r'\b\d{3}[-.]\d{3}[-.]\d{4}\b'),  # 555-123-4567
    re.compile(r'\(\d{3}\)\s*\d{3}[-.]?\d{4}'),  # (555) 123-4567
]

# Email Address pattern (recipient lists are staff addresses, still PII)
EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

# Patient Name patterns (context-based)
PATIENT_NAME_PATTERNS = [
    re.compile(r'\b(?:patient[\s_]name|patient)\s*[:=]\s*[A-Za-z][A-Za-z\s\'.-]*', re.IGNORECASE),
]

# Social Security Number
SSN_PATTERNS = [
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),
]

# LogRecord attributes that never carry spreadsheet values
_STANDARD_ATTRIBUTES = {
    'name', 'levelname', 'pathname', 'filename', 'module', 'funcName',
    'processName', 'threadName', 'taskName', 'stack_info', 'run_date',
    'report', 'service_name', 'task_name',
}


# =============================================================================
# PHI Scrubber Filter
# =============================================================================

class PHIScrubberFilter(logging.Filter):
    """
    Logging filter that redacts PHI from log messages.

    Scrubs the message, its string arguments and any string values added
    through ``extra`` / log context. Always lets the record through.

    Example:
        Input:  "Document failed for Patient: Jane Roe, MR Number: 88231"
        Output: "Document failed for [REDACTED_NAME], [REDACTED_MRN]"
    """

    def __init__(self, name: str = ''):
        super().__init__(name)

        self.patterns: Dict[str, tuple] = {
            'SSN': (SSN_PATTERNS, '[REDACTED_SSN]'),
            'MRN': (MRN_PATTERNS, '[REDACTED_MRN]'),
            'DATE': (DATE_PATTERNS, '[REDACTED_DATE]'),
            'PHONE': (PHONE_PATTERNS, '[REDACTED_PHONE]'),
            'EMAIL': ([EMAIL_PATTERN], '[REDACTED_EMAIL]'),
            'PATIENT_NAME': (PATIENT_NAME_PATTERNS, '[REDACTED_NAME]'),
        }

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.scrub_phi(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(
                self.scrub_phi(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRIBUTES or key == 'msg':
                continue
            if isinstance(value, str):
                setattr(record, key, self.scrub_phi(value))

        return True

    def scrub_phi(self, text: str) -> str:
        """Return ``text`` with every PHI match replaced by its label."""
        if not text:
            return text

        scrubbed_text = text
        for patterns, replacement in self.patterns.values():
            for pattern in patterns:
                scrubbed_text = pattern.sub(replacement, scrubbed_text)
        return scrubbed_text


class SelectivePHIScrubberFilter(PHIScrubberFilter):
    """
    Development scrubber: keeps email addresses visible so delivery problems
    can be debugged, still redacts identifiers and patient names.
    """

    def __init__(self, name: str = ''):
        super().__init__(name)
        del self.patterns['EMAIL']
        del self.patterns['PHONE']


# =============================================================================
# Helper Functions
# =============================================================================

def scrub_dict(data: Dict[str, Any], scrubber: Optional[PHIScrubberFilter] = None) -> Dict[str, Any]:
    """
    Scrub PHI from a nested dictionary (e.g. a Sentry event).

    Example:
        >>> scrub_dict({'message': 'MR Number: 88231'})
        {'message': '[REDACTED_MRN]'}
    """
    if scrubber is None:
        scrubber = PHIScrubberFilter()

    scrubbed = {}
    for key, value in data.items():
        if isinstance(value, str):
            scrubbed[key] = scrubber.scrub_phi(value)
        elif isinstance(value, dict):
            scrubbed[key] = scrub_dict(value, scrubber)
        elif isinstance(value, list):
            scrubbed[key] = [
                scrub_dict(item, scrubber) if isinstance(item, dict)
                else scrubber.scrub_phi(item) if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            scrubbed[key] = value
    return scrubbed
