"""API Dependencies — actor identity and service wiring for route handlers.

Invariants:
    - Identity comes ONLY from X-Actor-Id / X-Actor-Role set by the upstream
      authentication layer; missing or malformed → 401 ACTOR_REQUIRED
    - Services get a session factory, never a request-scoped session: each
      operation owns its transaction
"""

from uuid import UUID

from fastapi import Depends, Header

from academy.config import Settings, get_settings
from academy.core.domain_types import Actor, ActorRole, UserId
from academy.core.errors import ActorRequiredError
from academy.infrastructure.database import SessionFactory, get_session_factory
from academy.services.enrollment_workflow import EnrollmentWorkflow


async def get_actor(
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
) -> Actor:
    if not x_actor_id or not x_actor_role:
        raise ActorRequiredError()
    try:
        return Actor(id=UserId(UUID(x_actor_id)), role=ActorRole(x_actor_role))
    except ValueError:
        raise ActorRequiredError()


def get_enrollment_workflow(
    session_factory: SessionFactory = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> EnrollmentWorkflow:
    return EnrollmentWorkflow.from_settings(session_factory, settings)
