"""Contact form API endpoint.

This module binds the intake pipeline to ``POST /api/contact`` and maps its
outcomes onto the JSON bodies the marketing site expects.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from opsscale.api.models import ContactResponse, ErrorResponse
from opsscale.api.pipeline import IntakePipeline

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["contact"])

INVALID_INPUT = "Invalid input."
SERVER_ERROR = "Server error."


def get_pipeline(request: Request) -> IntakePipeline:
    """Dependency returning the pipeline built by the application factory."""
    return request.app.state.pipeline


def client_address(request: Request) -> str | None:
    """Originating address of a request.

    Uses the first X-Forwarded-For entry when a proxy set one, otherwise the
    socket peer address.

    Args:
        request: FastAPI request object

    Returns:
        Client address, or None if unknown
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


async def read_payload(request: Request) -> dict[str, Any]:
    """Read the JSON body as a key/value mapping.

    An empty body or a JSON value that is not an object yields an empty
    mapping, which then fails validation.

    Raises:
        ValueError: If the body is not valid JSON
    """
    body = await request.body()
    if not body.strip():
        return {}
    data = json.loads(body)
    return data if isinstance(data, dict) else {}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.post(
    "/contact",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {
            "description": "Submission accepted",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "saved": True,
                        "id": "66f1c2a9e4b0a1b2c3d4e5f6",
                        "mailed": True,
                    }
                }
            },
        },
        400: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Submit a contact form",
    description="""
    Submit a contact form with name, email and message.

    **Validation Rules:**
    - Name: non-empty after trimming whitespace
    - Email: basic `local@domain.tld` shape
    - Message: non-empty after trimming whitespace

    **Outcome:**
    - `saved` is false when no database is configured
    - `mailed` is false when mail is not configured or delivery failed
    """,
)
async def submit_contact_form(
    request: Request,
    pipeline: Annotated[IntakePipeline, Depends(get_pipeline)],
) -> ContactResponse | JSONResponse:
    """Submit a contact form.

    Args:
        request: FastAPI request object (for the body and client address)
        pipeline: Intake pipeline

    Returns:
        ContactResponse on success, JSONResponse error body otherwise
    """
    try:
        payload = await read_payload(request)
    except ValueError:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_INPUT)
    except Exception as e:
        # RecursionError on deeply nested bodies, or a dropped connection
        logger.error(
            "Could not read contact form body",
            extra={"error": str(e)},
            exc_info=True,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SERVER_ERROR)

    try:
        result = await pipeline.submit(payload, client_address=client_address(request))
    except Exception as e:
        logger.error(
            "Contact form submission failed",
            extra={"error": str(e)},
            exc_info=True,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SERVER_ERROR)

    if not result.accepted:
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_INPUT)

    return ContactResponse.from_result(result)
