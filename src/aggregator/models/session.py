#!/usr/bin/env python3
"""
Authentication session model.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict


@dataclass
class Session:
    """
    Cookies obtained by logging in to one domain.

    Sessions do not expire on a clock. They stay valid until the session store
    invalidates them after a site rejects them.
    """
    domain: str
    cookies: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    valid: bool = True

    def __repr__(self):
        # Never log cookie values
        return f"Session(domain='{self.domain}', cookies={sorted(self.cookies)}, valid={self.valid})"
