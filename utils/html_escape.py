"""
HTML Escaping Utilities for email templates

Prevents HTML injection when customer-controlled data (names, addresses,
notes, product names) is embedded in HTML emails.

- ALWAYS use safe_html() for customer-provided data
- NEVER escape static template text or pre-formatted HTML
"""

import html
from typing import Optional


def safe_html(text: Optional[str]) -> str:
    """
    Escapes HTML special characters in user-provided text.

    Examples:
        >>> safe_html("Ana</td><script>alert(1)</script>")
        "Ana&lt;/td&gt;&lt;script&gt;alert(1)&lt;/script&gt;"

        >>> safe_html(None)
        ""
    """
    if text is None:
        return ""
    return html.escape(str(text), quote=True)
