"""
Context utilities for telemetry.

Provides functions to get the current session ID from the environment.
"""

import os
import uuid
from typing import Optional


SESSION_ID_ENV = 'DEVFLOW_SESSION_ID'


def get_current_session_id() -> Optional[str]:
    """
    Get the session ID assigned to this process.

    Returns:
        Session ID from environment, or None if not set
    """
    return os.environ.get(SESSION_ID_ENV) or None


def new_session_id() -> str:
    """Generate a fresh session ID."""
    return str(uuid.uuid4())
