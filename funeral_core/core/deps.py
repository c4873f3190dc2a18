"""FastAPI dependencies: database session, actor identity, remote ports."""

from functools import lru_cache
from typing import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from funeral_core.db.session import SessionLocal
from funeral_core.services.email_sender import EmailSender, get_default_email_sender
from funeral_core.services.go_backend import ContractPort, FinancialPort, GoBackendClient


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(x_actor_id: str | None = Header(default=None, alias="X-Actor-Id")) -> str:
    """
    Acting user id, supplied by the gateway in front of this service.

    Authentication itself happens upstream; this only requires the header.
    """
    actor = (x_actor_id or "").strip()
    if not actor:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id header")
    return actor


@lru_cache
def get_go_backend() -> GoBackendClient:
    return GoBackendClient()


def get_contract_port() -> ContractPort:
    return get_go_backend()


def get_financial_port() -> FinancialPort:
    return get_go_backend()


@lru_cache
def get_email_sender() -> EmailSender:
    return get_default_email_sender()
