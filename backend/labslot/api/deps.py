from collections.abc import Callable, Generator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from labslot.core.config import get_settings
from labslot.db.session import SessionLocal
from labslot.schemas.calendar_event import Actor, ActorRole
from labslot.services.notification_hub import NotificationHub
from labslot.services.state_machine import TransitionPolicy


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    # Identity is asserted by the upstream gateway; authentication happens there.
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    try:
        role = ActorRole((x_user_role or ActorRole.owner.value).strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid X-User-Role header") from exc
    return Actor(user_id=x_user_id.strip(), role=role)


def require_roles(*roles: ActorRole) -> Callable[[Actor], Actor]:
    allowed_roles = set(roles)

    def role_checker(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        if current_actor.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_actor

    return role_checker


def get_transition_policy() -> TransitionPolicy:
    settings = get_settings()
    return TransitionPolicy(validator_moves_require_review=settings.validator_moves_require_review)


def get_notification_hub(request: Request) -> NotificationHub:
    return request.app.state.notification_hub
