"""FastAPI plumbing shared by every router: the caller's principal and DB sessions."""

from contextlib import contextmanager

from fastapi import Header, Request

from shared.errors import AuthorizationError
from shared.principal import Principal, Role


def get_services(request: Request):
    return request.app.state.services


def get_actor(
    x_user_id: int | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Principal:
    """Principal issued by the upstream auth layer via request headers."""
    if x_user_id is None or not x_user_role:
        raise AuthorizationError("Authentication required")
    try:
        role = Role(x_user_role.strip().capitalize())
    except ValueError as exc:
        raise AuthorizationError(f"Unknown role: {x_user_role}") from exc
    return Principal(user_id=x_user_id, role=role, email=x_user_email or None)


@contextmanager
def transaction(services):
    """Session bound to one write transaction; commits on success."""
    with services.database.session_factory() as session, session.begin():
        yield session


@contextmanager
def read_transaction(services):
    with services.database.read_session_factory() as session, session.begin():
        yield session
