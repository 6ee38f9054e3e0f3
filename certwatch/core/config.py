"""
Report profile configuration.

Each batch run receives a ReportConfig describing where its rows come from,
which column holds which field, who gets the email and which document
templates to use. Profiles live in the ``CERTWATCH_REPORTS`` Django setting
and are read from the environment with python-decouple (see settings/base.py).
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from certwatch.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RECOGNIZED_FIELDS = {
    "source",
    "sheet_name",
    "recipients",
    "columns",
    "document_templates",
    "template_dir",
    "output_dir",
    "doctor_name",
    "organization_name",
    "from_email",
    "send_individually",
}


def normalize_recipients(recipients: Any) -> List[str]:
    """
    Clean up a recipient list.

    Accepts a comma separated string or an iterable of addresses. Whitespace
    is stripped, invalid addresses are dropped with a warning, and duplicates
    are removed case-insensitively keeping the first spelling seen.

    Example:
        >>> normalize_recipients("Ksmith9087@yahoo.com, ksmith9087@yahoo.com")
        ['Ksmith9087@yahoo.com']
    """
    if not recipients:
        return []
    if isinstance(recipients, str):
        recipients = recipients.split(",")

    seen = set()
    cleaned = []
    for raw in recipients:
        address = str(raw).strip()
        if not address:
            continue
        try:
            validate_email(address)
        except ValidationError:
            logger.warning(f"Dropping invalid recipient address {address!r}")
            continue
        key = address.casefold()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(address)
    return cleaned


@dataclass(frozen=True)
class ReportConfig:
    """Immutable settings for one report / notification workflow."""

    name: str
    source: Optional[Path] = None
    sheet_name: Optional[str] = None
    recipients: Tuple[str, ...] = ()
    columns: Mapping[str, int] = field(default_factory=dict)
    document_templates: Mapping[str, str] = field(default_factory=dict)
    template_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    doctor_name: str = ""
    organization_name: str = ""
    from_email: Optional[str] = None
    send_individually: bool = False

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "ReportConfig":
        """
        Build a config from a plain mapping.

        Raises:
            ConfigurationError: on unknown fields or bad column indices
        """
        unknown = set(data) - RECOGNIZED_FIELDS
        if unknown:
            raise ConfigurationError(
                f"Report {name!r} has unknown settings: {', '.join(sorted(unknown))}"
            )

        columns = {}
        for column_name, index in (data.get("columns") or {}).items():
            if isinstance(index, bool) or not isinstance(index, int) or index < 0:
                raise ConfigurationError(
                    f"Report {name!r} column {column_name!r} must be a "
                    f"non-negative integer, got {index!r}"
                )
            columns[column_name] = index

        return cls(
            name=name,
            source=_optional_path(data.get("source")),
            sheet_name=data.get("sheet_name") or None,
            recipients=tuple(normalize_recipients(data.get("recipients"))),
            columns=columns,
            document_templates=dict(data.get("document_templates") or {}),
            template_dir=_optional_path(data.get("template_dir")),
            output_dir=_optional_path(data.get("output_dir")),
            doctor_name=data.get("doctor_name") or "",
            organization_name=data.get("organization_name") or "",
            from_email=data.get("from_email") or None,
            send_individually=bool(data.get("send_individually", False)),
        )

    @classmethod
    def from_settings(cls, name: str) -> "ReportConfig":
        """Load the named profile from ``settings.CERTWATCH_REPORTS``."""
        profiles = getattr(settings, "CERTWATCH_REPORTS", {})
        if name not in profiles:
            raise ConfigurationError(f"No report profile named {name!r} is configured")
        return cls.from_dict(name, profiles[name])

    def with_overrides(self, **overrides: Any) -> "ReportConfig":
        """Copy of this config with some fields replaced (used by CLI flags)."""
        values = {key: value for key, value in overrides.items() if value is not None}
        if "source" in values:
            values["source"] = _optional_path(values["source"])
        if "recipients" in values:
            values["recipients"] = tuple(normalize_recipients(values["recipients"]))
        return replace(self, **values)

    def require_columns(self, names: Iterable[str]) -> Dict[str, int]:
        """Return the column indices for ``names``, failing on any missing one."""
        missing = [column for column in names if column not in self.columns]
        if missing:
            raise ConfigurationError(
                f"Report {self.name!r} is missing column settings: {', '.join(missing)}"
            )
        return {column: self.columns[column] for column in names}

    @property
    def sender(self) -> str:
        return self.from_email or getattr(
            settings, "DEFAULT_FROM_EMAIL", "notifications@localhost"
        )


def _optional_path(value: Any) -> Optional[Path]:
    if value in (None, ""):
        return None
    return Path(value)
