"""Request actor resolution.

The admin surface sits behind the operator's own gateway, which forwards the
authenticated user in ``X-User-Id`` / ``X-User-Name`` headers. Requests
without the headers act as a fixture development user.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header

logger = logging.getLogger(__name__)

FIXTURE_USER_ID = "admin-dev"
FIXTURE_USER_NAME = "Development Admin"


@dataclass(frozen=True)
class Actor:
    actor_id: str
    actor_name: str


def get_current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve who is making the request."""
    if not x_user_id:
        logger.debug("No X-User-Id header; using fixture user")
        return Actor(FIXTURE_USER_ID, FIXTURE_USER_NAME)
    return Actor(x_user_id, x_user_name or x_user_id)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
