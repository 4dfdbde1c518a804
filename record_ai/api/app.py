"""HTTP adapter exposing the pipelines.

Routes are thin: they translate the request into a pipeline call and render
the ``PipelineOutcome`` through ``ResultEnvelope``. Every response body, success
or failure, has the ``{success, data, message}`` shape.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, File, Form, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from record_ai import __version__
from record_ai.common.config import AppConfig, load_app_config
from record_ai.common.envelope import ResultEnvelope
from record_ai.common.middleware import ObservabilityMiddleware
from record_ai.common.payload_guard import clamp_prompt
from record_ai.common.structured_logging import configure_logging, get_logger, mask_secret
from record_ai.orchestrator import PipelineOrchestrator, PipelineOutcome
from record_ai.providers.transcription import AudioPayload

logger = get_logger(__name__)

CALLER_HEADER = "X-Caller-Id"
LOGIN_REQUIRED_MESSAGE = "로그인이 필요합니다."
FAILURE_STATUS = 422


class CallerIdentityMissing(Exception):
    """No caller identity was forwarded by the upstream auth layer."""


class ReviewRequest(BaseModel):
    text: str | None = None


class ImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = None
    base_prompt: str | None = Field(default=None, alias="basePrompt")

    @property
    def effective_prompt(self) -> str | None:
        return self.base_prompt if self.base_prompt else self.prompt


def _render(
    outcome: PipelineOutcome[Any],
    *,
    success_message: str,
    failure_prefix: str,
    data: Any = None,
) -> JSONResponse:
    envelope = ResultEnvelope[Any].from_outcome(
        outcome, success_message=success_message, failure_prefix=failure_prefix
    )
    if outcome.ok and data is not None:
        envelope = ResultEnvelope[Any].ok(data, success_message)
    status_code = 200 if envelope.success else FAILURE_STATUS
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def require_caller(
    caller_id: Annotated[str | None, Header(alias=CALLER_HEADER)] = None,
) -> str:
    """Caller identity is validated upstream; here it only has to be present."""
    if caller_id is None or not caller_id.strip():
        raise CallerIdentityMissing()
    return caller_id.strip()


def create_app(
    config: AppConfig | None = None,
    *,
    orchestrator: PipelineOrchestrator | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the FastAPI app.

    ``config`` is loaded from the environment at startup when not given. An
    injected ``orchestrator`` is used as-is and not closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        cfg = config or load_app_config()
        if configure_logs:
            configure_logging(
                cfg.logging.level,
                json_logs=cfg.logging.json_logs,
                service_name=cfg.logging.service_name,
            )

        if cfg.openai.has_credential:
            logger.info("openai.credential_loaded", api_key=mask_secret(cfg.openai.api_key))
        else:
            logger.warning(
                "openai.credential_missing",
                hint="set OPENAI_API_KEY; provider calls will fail until it is configured",
            )

        owned = orchestrator is None
        app.state.orchestrator = orchestrator or PipelineOrchestrator.from_config(cfg)
        app.state.config = cfg
        logger.info("record_ai.startup_complete", version=__version__)
        try:
            yield
        finally:
            if owned:
                await app.state.orchestrator.close()
            logger.info("record_ai.shutdown_complete")

    app = FastAPI(title="record-ai", version=__version__, lifespan=lifespan)
    app.add_middleware(ObservabilityMiddleware)

    @app.exception_handler(CallerIdentityMissing)
    async def _caller_missing(_request: Request, _exc: CallerIdentityMissing) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=ResultEnvelope[Any].fail(LOGIN_REQUIRED_MESSAGE).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        location = ".".join(str(p) for p in errors[0]["loc"]) if errors else "request"
        return JSONResponse(
            status_code=FAILURE_STATUS,
            content=ResultEnvelope[Any].fail(f"invalid request: {location}").model_dump(),
        )

    @app.get("/health/live")
    async def health_live() -> dict[str, str]:
        return {"status": "alive", "service": "record-ai"}

    @app.post("/stt/transcribe")
    async def transcribe(
        file: Annotated[UploadFile, File()],
        caller_id: Annotated[str, Depends(require_caller)],
        orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)],
        language: Annotated[str | None, Form()] = None,
    ) -> JSONResponse:
        data = await file.read()
        logger.info(
            "stt.request_received",
            caller_id=caller_id,
            filename=file.filename,
            size_bytes=len(data),
        )
        outcome = await orchestrator.transcribe_audio(
            AudioPayload(data=data, filename=file.filename, language=language)
        )
        return _render(
            outcome,
            success_message="STT 변환이 완료되었습니다.",
            failure_prefix="STT 변환 실패",
        )

    @app.post("/review/organize")
    async def organize(
        body: ReviewRequest,
        orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)],
    ) -> JSONResponse:
        outcome = await orchestrator.organize_review(body.text)
        return _render(
            outcome,
            success_message="후기 정리가 완료되었습니다.",
            failure_prefix="후기 정리 실패",
        )

    @app.post("/review/summarize")
    async def summarize(
        body: ReviewRequest,
        orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)],
    ) -> JSONResponse:
        outcome = await orchestrator.summarize_review(body.text)
        return _render(
            outcome,
            success_message="후기 요약이 완료되었습니다.",
            failure_prefix="후기 요약 실패",
        )

    @app.post("/generate-image")
    async def generate_image(
        body: ImageRequest,
        orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)],
        illustrate: Annotated[bool, Query()] = False,
    ) -> JSONResponse:
        text = body.effective_prompt
        if illustrate:
            outcome = await orchestrator.illustrate_review(text)
            data = (
                {"prompt": outcome.artifact.prompt, "imageUrl": outcome.artifact.image_url}
                if outcome.ok
                else None
            )
        else:
            outcome = await orchestrator.generate_image(text or "")
            data = (
                {
                    "prompt": clamp_prompt(text or "", orchestrator.limits.image_prompt_max_chars),
                    "imageUrl": outcome.artifact,
                }
                if outcome.ok
                else None
            )
        return _render(
            outcome,
            success_message="이미지 생성이 완료되었습니다.",
            failure_prefix="이미지 생성 실패",
            data=data,
        )

    return app


app = create_app()
