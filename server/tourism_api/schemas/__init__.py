"""Pydantic schemas for request/response validation."""

from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .discount import *  # noqa: F403
from .flight import *  # noqa: F403
from .health import *  # noqa: F403
from .property import *  # noqa: F403
from .review import *  # noqa: F403
from .service import *  # noqa: F403
from .user import *  # noqa: F403
