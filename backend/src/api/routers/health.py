"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_encrypted_connection, get_plain_connection
from db.connection import EncryptedMongoConnection, MongoConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    vault: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    plain: MongoConnection = Depends(get_plain_connection),
    encrypted: EncryptedMongoConnection = Depends(get_encrypted_connection),
) -> HealthResponse:
    """
    Check application and database health.

    The vault reports its connection state without connecting; it is only
    initialized by the first vault request.
    """
    db_status = "healthy" if await plain.ping() else "unhealthy"
    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        vault=encrypted.state.value,
    )
