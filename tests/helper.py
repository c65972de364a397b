from app.domain.auth.schemas import Actor, Role, UserStatus


def db_with_scalars_first(mocker, value):
    res = mocker.Mock()
    res.scalars.return_value.first.return_value = value
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=res)
    return db, res


def db_session(mocker):
    db = mocker.Mock()
    db.flush = mocker.AsyncMock()
    db.refresh = mocker.AsyncMock()
    db.execute = mocker.AsyncMock()
    db.scalar = mocker.AsyncMock()
    db.scalars = mocker.AsyncMock()
    return db


def create_actor(role: Role = Role.ATTENDEE, *, user_id: int = 7, status: UserStatus = UserStatus.ACTIVE,
                 organizer_id: int | None = None) -> Actor:
    return Actor(user_id=user_id, role=role, status=status, organizer_id=organizer_id)


def create_admin(user_id: int = 1) -> Actor:
    return create_actor(Role.ADMIN, user_id=user_id)


def create_organizer(organizer_id: int = 10, user_id: int = 5) -> Actor:
    return create_actor(Role.EVENT_ORGANIZER, user_id=user_id, organizer_id=organizer_id)
