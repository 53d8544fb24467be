"""Pydantic schemas for request/response validation."""

from .auth import *  # noqa: F403
from .booking import *  # noqa: F403
from .chat import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .payment import *  # noqa: F403
from .property import *  # noqa: F403
