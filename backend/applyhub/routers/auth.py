from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from applyhub.database import get_db
from applyhub.dependencies import require_actor
from applyhub.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ThrottleResponse,
    UserResponse,
)
from applyhub.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
    user = auth_service.register(db, req.email, req.password, req.first_name, req.last_name, req.role)
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
    )


@router.post("/login", response_model=LoginResponse | ThrottleResponse)
async def login(req: LoginRequest, request: Request, db: Session = Depends(get_db)):
    client_host = request.client.host if request.client else "unknown"
    result = auth_service.login(db, req.email, req.password, throttle_key=f"login:{client_host}")
    if result is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if "error" in result:
        raise HTTPException(
            status_code=429,
            detail={"message": "Too many login attempts", "details": result},
        )
    return LoginResponse(**result)


@router.post("/logout", dependencies=[Depends(require_actor)])
async def logout(authorization: str = Header(...)):
    auth_service.logout(authorization[7:])
    return {"message": "Logged out"}
