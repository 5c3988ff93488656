# src/pets_ui_bff/actions.py
"""
Page load and form action logic.

Everything here takes the request's session and the upstream client as
explicit arguments and returns a value: DashboardData or an ActionOutcome.
Redirects are returned, never raised, so the `except` blocks below only ever
see genuine transport errors.
"""

import asyncio
import logging
import typing

import httpx
from fastapi import status
from pydantic import ValidationError

from .api_client import UpstreamApi, extract_error_message, read_json
from .auth_utils import DASHBOARD_PATH, LOGIN_PATH
from .forms import LoginForm, PetForm, RegisterForm, validate_registration
from .session_data import (
    ActionFailure,
    ActionOutcome,
    ActionSuccess,
    DashboardData,
    Pet,
    Redirect,
    SessionData,
    SessionUser,
)

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please try again."
LOAD_ERROR_MESSAGE = "Some data could not be loaded. Please refresh the page."

FormMapping = typing.Mapping[str, typing.Any]

# InvalidURL is not an HTTPError subclass
UPSTREAM_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


def _login_redirect(clear_session: bool = False) -> Redirect:
    return Redirect(location=LOGIN_PATH, clear_session=clear_session)


def _network_failure(action: str, exc: Exception) -> ActionFailure:
    logger.warning("BFF: %s failed, upstream unreachable: %s", action, exc)
    return ActionFailure(status=status.HTTP_500_INTERNAL_SERVER_ERROR, error=NETWORK_ERROR_MESSAGE)


def _form_network_failure(action: str, exc: Exception, form_data: dict) -> ActionFailure:
    """Login and register report every failure through api_error."""
    logger.warning("BFF: %s failed, upstream unreachable: %s", action, exc)
    return ActionFailure(
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        api_error=NETWORK_ERROR_MESSAGE,
        form_data=form_data,
    )


# --- Load path ---

def _parse_list(response: httpx.Response, model: typing.Type, label: str) -> list:
    if not response.is_success:
        logger.warning("BFF: GET %s returned %s, rendering without it", label, response.status_code)
        return []
    payload = read_json(response)
    if not isinstance(payload, list):
        logger.warning("BFF: GET %s returned a non-list body, rendering without it", label)
        return []
    items = []
    for raw in payload:
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning("BFF: skipping malformed %s item: %s", label, e)
    return items


async def load_dashboard(
        session: typing.Optional[SessionData],
        api: UpstreamApi,
) -> typing.Union[DashboardData, Redirect]:
    if session is None:
        return _login_redirect()

    fetches = [api.list_pets(session.token)]
    if session.user.is_admin:
        fetches.append(api.list_users(session.token))

    # return_exceptions keeps one failed fetch from cancelling the other
    results = await asyncio.gather(*fetches, return_exceptions=True)

    for result in results:
        if isinstance(result, httpx.Response) and result.status_code == status.HTTP_401_UNAUTHORIZED:
            logger.info("BFF: upstream rejected token for user %s, ending session", session.user.username)
            return _login_redirect(clear_session=True)

    error = None
    collections: typing.List[list] = []
    for label, model, result in zip(("/pets", "/users"), (Pet, SessionUser), results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("BFF: GET %s failed: %s", label, result)
            error = LOAD_ERROR_MESSAGE
            collections.append([])
        else:
            collections.append(_parse_list(result, model, label))

    pets = collections[0]
    users = collections[1] if len(collections) > 1 else []
    return DashboardData(user=session.user, pets=pets, users=users, error=error)


# --- Pet actions ---

async def add_pet(session: typing.Optional[SessionData], form: FormMapping, api: UpstreamApi) -> ActionOutcome:
    if session is None:
        return _login_redirect()

    try:
        pet_form = PetForm.from_form(form)
    except ValueError:
        return ActionFailure(status=status.HTTP_400_BAD_REQUEST, error="Age must be a number")

    try:
        response = await api.create_pet(session.token, pet_form.model_dump())
    except UPSTREAM_ERRORS as e:
        return _network_failure("add pet", e)

    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        return _login_redirect(clear_session=True)
    if not response.is_success:
        return ActionFailure(
            status=response.status_code,
            error=extract_error_message(response, "Failed to add pet"),
        )

    created = read_json(response)
    logger.info("BFF: user %s added pet %s", session.user.username, pet_form.name)
    return ActionSuccess(
        message="Pet added successfully!",
        pet=created if isinstance(created, dict) else None,
    )


async def update_pet(
        session: typing.Optional[SessionData],
        pet_id: typing.Union[int, str],
        form: FormMapping,
        api: UpstreamApi,
) -> ActionOutcome:
    if session is None:
        return _login_redirect()

    try:
        pet_form = PetForm.from_form(form)
    except ValueError:
        return ActionFailure(status=status.HTTP_400_BAD_REQUEST, error="Age must be a number")

    try:
        response = await api.update_pet(session.token, pet_id, pet_form.model_dump())
    except UPSTREAM_ERRORS as e:
        return _network_failure("update pet", e)

    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        return _login_redirect(clear_session=True)
    if not response.is_success:
        return ActionFailure(
            status=response.status_code,
            error=extract_error_message(response, "Failed to update pet"),
        )

    updated = read_json(response)
    return ActionSuccess(
        message="Pet updated successfully!",
        pet=updated if isinstance(updated, dict) else None,
        id=pet_id,
    )


async def delete_pet(session: typing.Optional[SessionData], pet_id: typing.Union[int, str], api: UpstreamApi) -> ActionOutcome:
    if session is None:
        return _login_redirect()

    try:
        response = await api.delete_pet(session.token, pet_id)
    except UPSTREAM_ERRORS as e:
        return _network_failure("delete pet", e)

    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        return _login_redirect(clear_session=True)
    if not response.is_success:
        return ActionFailure(
            status=response.status_code,
            error=extract_error_message(response, "Failed to delete pet"),
        )

    logger.info("BFF: user %s deleted pet %s", session.user.username, pet_id)
    return ActionSuccess(message="Pet deleted successfully!", id=pet_id)


# --- Session actions ---

def logout() -> Redirect:
    return _login_redirect(clear_session=True)


async def login(form: FormMapping, api: UpstreamApi) -> ActionOutcome:
    login_form = LoginForm.from_form(form)

    try:
        response = await api.login(login_form.model_dump())
    except UPSTREAM_ERRORS as e:
        return _form_network_failure("login", e, login_form.echo())

    data = read_json(response)
    if not response.is_success:
        return ActionFailure(
            status=response.status_code,
            api_error=extract_error_message(response, "Login failed"),
            form_data=login_form.echo(),
        )

    try:
        session = SessionData.model_validate(data)
    except ValidationError as e:
        logger.warning("BFF: login response missing token or user: %s", e)
        return ActionFailure(
            status=status.HTTP_502_BAD_GATEWAY,
            api_error="Login failed",
            form_data=login_form.echo(),
        )

    logger.info("BFF: user %s logged in", session.user.username)
    return Redirect(location=DASHBOARD_PATH, session=session)


async def register(form: FormMapping, api: UpstreamApi) -> ActionOutcome:
    register_form = RegisterForm.from_form(form)

    errors = validate_registration(register_form)
    if errors:
        return ActionFailure(
            status=status.HTTP_400_BAD_REQUEST,
            errors=errors,
            form_data=register_form.echo(),
        )

    try:
        response = await api.register(register_form.model_dump())
    except UPSTREAM_ERRORS as e:
        return _form_network_failure("register", e, register_form.echo())

    if not response.is_success:
        return ActionFailure(
            status=response.status_code,
            api_error=extract_error_message(response, "Registration failed"),
            form_data=register_form.echo(),
        )

    logger.info("BFF: registered user %s", register_form.username)
    return Redirect(location=LOGIN_PATH)
