"""Static HTML pages served next to the redirect endpoint."""

from __future__ import annotations

from html import escape

SERVICE_NAME = "2list-redirect"

# Generic, user-safe text per reason code. Never includes internals.
ERROR_MESSAGES: dict[str, str] = {
    "missing_url": "The link is missing its target address.",
    "invalid_url": "The link target is not a valid web address.",
    "bad_protocol": "Only http and https links can be forwarded.",
    "domain_not_allowed": "This shop is not on the list of supported partners.",
    "internal_error": "Something went wrong while forwarding the link.",
}
_DEFAULT_MESSAGE = "The link could not be forwarded."


def error_message(reason: str) -> str:
    """Return the user-facing message for *reason*."""
    return ERROR_MESSAGES.get(reason, _DEFAULT_MESSAGE)


INFO_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>2-List Redirect Service</title>
  <style>
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
      background: #faf9f7;
      color: #222;
      display: flex;
      flex-direction: column;
      justify-content: center;
      align-items: center;
      height: 100vh;
      margin: 0;
      text-align: center;
    }
    h1 { font-size: 1.8rem; margin-bottom: 0.5rem; }
    p { max-width: 400px; font-size: 1rem; color: #555; }
    a { color: #a6795d; text-decoration: none; }
    a:hover { text-decoration: underline; }
  </style>
</head>
<body>
  <h1>2-List Redirect Service</h1>
  <p>This service forwards product links from the 2-List app to our partner shops.</p>
  <p>If you see this page directly, you probably opened the redirect URL without parameters.</p>
  <p><a href="https://2list.app">Learn more about 2-List</a></p>
</body>
</html>
"""


def render_error_page(reason: str, host: str, status: int) -> str:
    """Render the plain HTML error page for a rejected redirect.

    Args:
        reason: Machine-readable reason code.
        host:   Target host, if known (may be empty).
        status: HTTP status shown in the footer.

    Returns:
        Complete HTML document; all dynamic values are escaped.
    """
    host_row = f"\n    <li><strong>Host:</strong> {escape(host)}</li>" if host else ""
    return f"""<!doctype html>
<html lang="en"><meta charset="utf-8">
<title>{SERVICE_NAME} – Notice</title>
<meta name="viewport" content="width=device-width,initial-scale=1">
<body style="font:16px/1.5 system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial, sans-serif; padding:24px; max-width:720px; margin:0 auto;">
  <h1>Redirect not possible</h1>
  <p>{escape(error_message(reason))}</p>
  <ul>
    <li><strong>Reason:</strong> {escape(reason)}</li>{host_row}
  </ul>
  <hr>
  <small>{SERVICE_NAME} • Status: {status}</small>
</body></html>
"""
