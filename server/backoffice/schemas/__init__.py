"""Pydantic schemas for request/response validation."""

from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .loyalty import *  # noqa: F403
from .reconciliation import *  # noqa: F403
from .refund import *  # noqa: F403
