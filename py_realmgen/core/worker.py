"""
Generation worker boundary.

A request goes in; a stream of progress messages and exactly one terminal
message (complete or error) come out through the `emit` callback. Every
message carries the request's generation id so callers can ignore results
from superseded runs.
"""

import uuid
import structlog
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .exceptions import GenerationError
from .generator import GenerationOptions, generate

logger = structlog.get_logger()


class GenerationRequest(BaseModel):
    """A single world generation request."""

    generation_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Token identifying this run in every emitted message",
    )
    seed: str = Field(min_length=1, description="World seed")
    width: int = Field(gt=0, description="Grid width in cells")
    height: int = Field(gt=0, description="Grid height in cells")


class ProgressMessage(BaseModel):
    type: Literal["progress"] = "progress"
    generation_id: str
    status: str


class CompleteMessage(BaseModel):
    type: Literal["complete"] = "complete"
    generation_id: str
    world: Dict[str, Any] = Field(description="World snapshot")


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    generation_id: str
    error: str
    error_type: str


Message = Union[ProgressMessage, CompleteMessage, ErrorMessage]
TerminalMessage = Union[CompleteMessage, ErrorMessage]


def run_generation(
    request: Union[GenerationRequest, Dict[str, Any]],
    emit: Callable[[Message], None],
    options: Optional[GenerationOptions] = None,
) -> TerminalMessage:
    """
    Run one generation and report through `emit`.

    Never raises for generation failures; the terminal message is both
    emitted and returned.
    """
    if not isinstance(request, GenerationRequest):
        try:
            request = GenerationRequest.model_validate(request)
        except ValidationError as e:
            generation_id = str(request.get("generation_id") or "") if isinstance(request, dict) else ""
            logger.error("Invalid generation request", error=str(e))
            message = ErrorMessage(
                generation_id=generation_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            emit(message)
            return message

    generation_id = request.generation_id
    logger.info(
        "Starting generation run",
        generation_id=generation_id,
        seed=request.seed,
        width=request.width,
        height=request.height,
    )

    def on_progress(status: str) -> None:
        emit(ProgressMessage(generation_id=generation_id, status=status))

    try:
        world = generate(request.seed, request.width, request.height, on_progress, options)
        message = CompleteMessage(generation_id=generation_id, world=world.to_snapshot())
        logger.info("Generation run completed", generation_id=generation_id)
    except GenerationError as e:
        logger.error("Generation failed", generation_id=generation_id, error=str(e))
        message = ErrorMessage(
            generation_id=generation_id,
            error=str(e),
            error_type=type(e).__name__,
        )
    except Exception as e:
        logger.exception("Unexpected generation failure", generation_id=generation_id)
        message = ErrorMessage(
            generation_id=generation_id,
            error=str(e),
            error_type=type(e).__name__,
        )

    emit(message)
    return message
