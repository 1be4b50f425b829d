"""Access Rules — explicit actor checks at the service boundary.

Invariants:
    - Identity always arrives as an Actor parameter, never from ambient state
    - Administrators may act on any enrollment; students only on their own
"""

from uuid import UUID

from academy.core.domain_types import Actor, ActorRole
from academy.core.errors import ErrorContext, ForbiddenActionError


def require_admin(actor: Actor, operation: str) -> None:
    if not actor.is_admin:
        raise ForbiddenActionError(
            operation, ErrorContext(actor_id=str(actor.id)),
        )


def require_self_or_admin(actor: Actor, student_id: UUID, operation: str) -> None:
    if actor.is_admin:
        return
    if actor.role == ActorRole.STUDENT and actor.id == student_id:
        return
    raise ForbiddenActionError(operation, ErrorContext(actor_id=str(actor.id)))
