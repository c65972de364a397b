from app.domain.auth.schemas import Actor, Role
from app.domain.events.models import Event
from app.domain.exceptions import Forbidden


def ensure_active(actor: Actor) -> None:
    if not actor.is_admin and not actor.is_active:
        raise Forbidden(
            "Your account must be active to perform this action",
            ctx={"user_id": actor.user_id, "status": actor.status.value}
        )


def ensure_owner_or_admin(owner_id: int, actor: Actor) -> None:
    if actor.is_admin:
        return
    if actor.user_id != owner_id:
        raise Forbidden("Access denied", ctx={"user_id": actor.user_id, "reason": "not_owner"})


def ensure_event_owner(event: Event, actor: Actor) -> None:
    if actor.is_admin:
        return
    if actor.role != Role.EVENT_ORGANIZER or actor.organizer_id is None:
        raise Forbidden("Not allowed", ctx={"event_id": event.id, "reason": "not_organizer"})
    if event.organizer_id != actor.organizer_id:
        raise Forbidden("Not allowed", ctx={"event_id": event.id, "reason": "organizer_mismatch"})
