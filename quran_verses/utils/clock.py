"""
Wall-clock helpers.

Timestamps shared through the state store are epoch milliseconds so the
widget process and the app process compare the same unit.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

import time
from typing import Callable

Clock = Callable[[], int]


def current_time_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)
