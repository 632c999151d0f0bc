from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from tortoise.exceptions import DoesNotExist
import uuid

from models import User
from services import config
from services.billing import BillService
from services.tariffs import TariffProvider

# tokens are issued by the account service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login/access-token")


def create_access_token(user: User, expires: int | None = None) -> str:
    data = {
        "sub": str(user.id),
        "is_admin": user.is_admin,
        "exp": datetime.now(tz=timezone.utc) + timedelta(seconds=expires or config.ACCESS_TOKEN_EXPIRE_SECONDS),
    }
    return jwt.encode(data, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        user_id = uuid.UUID(payload.get("sub"))
    except (JWTError, ValueError, TypeError):
        raise cred_exc
    try:
        user = await User.get(id=user_id)
    except DoesNotExist:
        raise cred_exc
    return user

async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    if user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user

async def get_current_admin_user(user: User = Depends(get_current_active_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    return user


# -------- billing collaborators (built once in the lifespan) --------
def get_tariff_provider(request: Request) -> TariffProvider:
    return request.app.state.tariffs

def get_bill_service(request: Request) -> BillService:
    return request.app.state.billing
