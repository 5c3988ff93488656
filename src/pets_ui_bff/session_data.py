# src/pets_ui_bff/session_data.py

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class SessionUser(BaseModel):
    """
    The slice of the upstream user record mirrored into the `user` cookie.
    Extra upstream fields (created_at, updated_at, ...) are kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    username: str
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class SessionData(BaseModel):
    """
    Represents the authenticated caller for one request.
    Built by the session guard from the `auth_token` and `user` cookies.
    """
    token: str
    user: SessionUser


class Pet(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    name: str
    species: str = ""
    breed: str = ""
    age: Union[int, float] = 0
    owner_id: Optional[Union[int, str]] = None
    owner_username: Optional[str] = None


class DashboardData(BaseModel):
    user: SessionUser
    pets: List[Pet] = []
    users: List[SessionUser] = []
    error: Optional[str] = None


# --- Action outcomes ---
# Every action returns exactly one of these; a redirect is a value, not an exception.

class ActionSuccess(BaseModel):
    success: Literal[True] = True
    message: str
    pet: Optional[Dict[str, Any]] = None
    id: Optional[Union[int, str]] = None


class ActionFailure(BaseModel):
    status: int
    error: Optional[str] = None
    api_error: Optional[str] = None
    errors: Dict[str, str] = {}
    form_data: Dict[str, Any] = {}

    @property
    def message(self) -> str:
        return self.error or self.api_error or "Request failed"


class Redirect(BaseModel):
    location: str
    status: int = 303
    clear_session: bool = False
    session: Optional[SessionData] = None


ActionOutcome = Union[ActionSuccess, ActionFailure, Redirect]
