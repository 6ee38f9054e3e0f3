from typing import Any, Dict, Optional, Tuple
import logging

from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE_DIR = "certwatch/email"


def render_email(template_name: str, context: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """
    Render the plain text and HTML bodies of an email.

    Looks up ``certwatch/email/<template_name>.txt`` (required) and
    ``certwatch/email/<template_name>.html`` (optional).

    Returns:
        (text_body, html_body); html_body is None when no HTML template exists
    """
    text_body = render_to_string(f"{EMAIL_TEMPLATE_DIR}/{template_name}.txt", context)
    try:
        html_body = render_to_string(f"{EMAIL_TEMPLATE_DIR}/{template_name}.html", context)
    except TemplateDoesNotExist:
        logger.debug(f"No HTML template for {template_name}, sending plain text only")
        html_body = None
    return text_body.strip() + "\n", html_body


def render_subject(template_name: str, context: Dict[str, Any]) -> str:
    """Render a one-line subject from ``certwatch/email/<template_name>_subject.txt``."""
    subject = render_to_string(f"{EMAIL_TEMPLATE_DIR}/{template_name}_subject.txt", context)
    return " ".join(subject.split())
