"""Error handling utilities for API endpoints."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import HTTPException, status

from core.log import get_logger
from core.scheduler.exceptions import UnknownSlotError
from core.settings_store import SettingsError

logger = get_logger(__name__)

T = TypeVar("T")


async def handle_async_api_operation(
    operation: Callable[[], Awaitable[T]],
    error_message: str = "Operation failed",
) -> T:
    """Run an async operation and translate failures into HTTP errors.

    Unknown slots map to 404, invalid input or settings to 400, and anything
    else to 500.
    """
    try:
        return await operation()
    except HTTPException:
        raise
    except UnknownSlotError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (SettingsError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"{error_message}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{error_message}: {str(e)}",
        )
