"""Auth API — signup and signin.

- POST /signup → create a user account (role defaults to "user")
- POST /signin → email/password → bearer token
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.db.engine import get_db
from taskdesk.schemas.common import MessageResponse
from taskdesk.schemas.user import SigninRequest, SigninResponse, SignupRequest
from taskdesk.services.user_service import UserService

router = APIRouter()


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/signup", response_model=MessageResponse, status_code=201)
async def signup(body: SignupRequest, svc: UserService = Depends(_user_svc)):
    """Create a new user account. Email must be unique."""
    await svc.signup(
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return {"message": "Signed up"}


@router.post("/signin", response_model=SigninResponse)
async def signin(body: SigninRequest, svc: UserService = Depends(_user_svc)):
    """Check credentials and return a bearer token."""
    token = await svc.signin(email=body.email, password=body.password)
    return SigninResponse(message="Successful login", token=token)
