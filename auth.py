"""
Authentication Error Detection
==============================

Recognizes Claude CLI login failures in a runner's exception so the pane can
tell the user to run ``claude login`` instead of only showing a traceback.
"""

import re

# Messages the Claude CLI prints when it has no usable credentials
_AUTH_ERROR_RE = re.compile(
    r"not\s+logged\s+in"
    r"|not\s+authenticated"
    r"|authentication\s+(failed|required|error)"
    r"|login\s+required"
    r"|please\s+(run\s+)?['\"`]?claude\s+login"
    r"|unauthorized"
    r"|invalid\s+(token|credential|api.?key)"
    r"|expired\s+(token|session|credential)"
    r"|could\s+not\s+authenticate",
    re.IGNORECASE,
)

AUTH_ERROR_HELP = """
  Claude CLI requires authentication.

  To fix this, run in any terminal:
    claude login

  Then start the agents again.
"""


def is_auth_error(text: str) -> bool:
    return bool(text) and _AUTH_ERROR_RE.search(text) is not None


def is_auth_failure(error: BaseException) -> bool:
    """True if ``error`` or anything it was raised from looks like a login problem.

    The SDK wraps CLI failures, so the message may only appear in a chained
    exception or in the captured CLI ``stderr``.
    """
    seen = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if is_auth_error(str(current)) or is_auth_error(getattr(current, "stderr", None) or ""):
            return True
        current = current.__cause__ or current.__context__
    return False
