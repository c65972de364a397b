from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from typing import Annotated
from jose import JWTError, jwt
from pydantic import ValidationError
from app.core.config import SECRET_KEY, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE
from app.domain.auth.schemas import TokenPayload, Actor, Role
from app.domain.exceptions import Unauthorized, Forbidden
from app.core.ctx import ACTOR_ID_CTX, ACTOR_ROLE_CTX


# tokens are issued by the identity service; this API only verifies them
oauth2_bearer = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_token_payload(token: Annotated[str, Depends(oauth2_bearer)]) -> TokenPayload:
    try:
        raw_payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"verify_aud": True, "leeway": 5}
        )
        if raw_payload.get("typ") != "access":
            raise Unauthorized("Invalid token type", ctx={"reason": "invalid_type"})
        return TokenPayload.model_validate(raw_payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_token"})


def get_current_actor(*allowed_roles: Role):
    allowed = set(allowed_roles)

    async def _inner(payload: Annotated[TokenPayload, Depends(get_token_payload)]) -> Actor:
        try:
            user_id = int(payload.sub)
        except ValueError:
            raise Unauthorized("Invalid subject", ctx={"reason": "invalid_sub"})

        actor = Actor(
            user_id=user_id,
            role=payload.role,
            status=payload.status,
            organizer_id=payload.organizer_id
        )
        ACTOR_ID_CTX.set(actor.user_id)
        ACTOR_ROLE_CTX.set(actor.role.value)

        if allowed and actor.role not in allowed:
            raise Forbidden(
                "Permission denied",
                ctx={"required": [r.value for r in allowed_roles], "user_role": actor.role.value}
            )
        return actor
    return _inner


ANY_ACTOR = get_current_actor()
ADMIN_OR_ORGANIZER = get_current_actor(Role.ADMIN, Role.EVENT_ORGANIZER)
ADMIN_ONLY = get_current_actor(Role.ADMIN)
