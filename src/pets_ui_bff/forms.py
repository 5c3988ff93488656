# src/pets_ui_bff/forms.py

import re
import typing

from pydantic import BaseModel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6


def _field(form: typing.Mapping[str, typing.Any], name: str) -> str:
    value = form.get(name)
    if value is None:
        return ""
    return str(value)


class LoginForm(BaseModel):
    email: str
    password: str

    @classmethod
    def from_form(cls, form: typing.Mapping[str, typing.Any]) -> "LoginForm":
        return cls(email=_field(form, "email"), password=_field(form, "password"))

    def echo(self) -> dict:
        return {"email": self.email}


class RegisterForm(BaseModel):
    username: str
    email: str
    password: str
    role: str = "user"

    @classmethod
    def from_form(cls, form: typing.Mapping[str, typing.Any]) -> "RegisterForm":
        return cls(
            username=_field(form, "username"),
            email=_field(form, "email"),
            password=_field(form, "password"),
            role=_field(form, "role") or "user",
        )

    def echo(self) -> dict:
        return {"username": self.username, "email": self.email, "role": self.role}


class PetForm(BaseModel):
    name: str
    species: str
    breed: str
    age: typing.Union[int, float]

    @classmethod
    def from_form(cls, form: typing.Mapping[str, typing.Any]) -> "PetForm":
        """Raises ValueError when age is not a number."""
        return cls(
            name=_field(form, "name"),
            species=_field(form, "species"),
            breed=_field(form, "breed"),
            age=coerce_number(_field(form, "age")),
        )


def coerce_number(raw: str) -> typing.Union[int, float]:
    text = raw.strip()
    if not text:
        raise ValueError("Age is required")
    try:
        return int(text)
    except ValueError:
        pass
    value = float(text)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"Not a finite number: {raw!r}")
    return value


def validate_registration(form: RegisterForm) -> typing.Dict[str, str]:
    """
    Collects every problem with a registration form, keyed by field name.
    An empty dict means the form can be sent upstream.
    """
    errors: typing.Dict[str, str] = {}

    if not form.username.strip():
        errors["username"] = "Username is required"
    elif len(form.username) < USERNAME_MIN_LENGTH:
        errors["username"] = f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    elif len(form.username) > USERNAME_MAX_LENGTH:
        errors["username"] = f"Username must be at most {USERNAME_MAX_LENGTH} characters"

    if not form.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(form.email):
        errors["email"] = "Please enter a valid email address"

    if not form.password:
        errors["password"] = "Password is required"
    elif len(form.password) < PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"

    return errors
