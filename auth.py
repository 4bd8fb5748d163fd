import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from config import JWT_EXPIRES_DAYS, JWT_SECRET
from database import create_document, get_document, get_document_by_id, serialize_document, update_document
from schemas import Preferences, User

logger = logging.getLogger(__name__)

USERS = "user"

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(12)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_token(user_id: str) -> str:
    payload = {
        "user_id": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    data = serialize_document(user)
    data.pop("password", None)
    return data


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")

    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired.")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    user = get_document_by_id(USERS, payload.get("user_id"))
    if not user or not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Invalid token.")
    user["id"] = str(user["_id"])
    return user


# ----------------- Endpoints -----------------

class RegisterReq(BaseModel):
    username: str = Field(..., min_length=1, max_length=30)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginReq(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    avatar: Optional[str] = None
    preferences: Optional[Preferences] = None


@router.post("/register", status_code=201)
def register(req: RegisterReq):
    username = req.username.strip()
    email = req.email.lower()

    existing = get_document(USERS, {"$or": [{"email": email}, {"username": username}]})
    if existing:
        field = "Email" if existing.get("email") == email else "Username"
        raise HTTPException(status_code=400, detail=f"{field} is already registered")

    user = User(
        username=username,
        first_name=req.first_name.strip(),
        last_name=req.last_name.strip(),
        email=email,
        password=hash_password(req.password),
    )
    try:
        user_id = create_document(USERS, user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Username or email is already registered")

    logger.info("User registered: %s", username)
    created = get_document_by_id(USERS, user_id)
    return {"success": True, "message": "User registered successfully", "token": create_token(user_id), "user": public_user(created)}


@router.post("/login")
def login(req: LoginReq):
    if req.email:
        user = get_document(USERS, {"email": req.email.strip().lower()})
    elif req.username:
        user = get_document(USERS, {"username": req.username.strip()})
    else:
        raise HTTPException(status_code=400, detail="Email or username is required")

    if not user or not verify_password(req.password, user.get("password", "")):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    if not user.get("is_active", True):
        raise HTTPException(status_code=400, detail="Account is deactivated")

    user = update_document(USERS, {"_id": user["_id"]}, {"last_login": datetime.utcnow()})
    user_id = str(user["_id"])
    logger.info("User logged in: %s", user_id)
    return {"success": True, "message": "Login successful", "token": create_token(user_id), "user": public_user(user)}


@router.get("/profile")
def get_profile(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "user": public_user(user)}


@router.put("/profile")
def update_profile(req: ProfileUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    updates = req.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No profile fields to update")
    updated = update_document(USERS, {"_id": user["_id"]}, updates)
    return {"success": True, "message": "Profile updated successfully", "user": public_user(updated)}
