import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from schemas.common import ErrorDetail, ErrorResponse
from services.errors import ConductError

logger = logging.getLogger(__name__)


def _latency_ms(request: Request) -> int:
    # TimingMiddleware 가 기록한 시작 시각 기준
    start = getattr(request.state, "started_at", None)
    return int((time.perf_counter() - start) * 1000) if start else 0


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message),
        latency_ms=_latency_ms(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def add_error_handlers(app: FastAPI):
    @app.exception_handler(ConductError)
    async def conduct_error_handler(request: Request, exc: ConductError):
        # NotFound 등은 호출자에게 그대로 전달 (자동 재시도 없음)
        logger.info(f"{request.method} {request.url.path} → {exc.code}: {exc.message}")
        return _error_response(request, exc.status_code, exc.code, exc.message)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        # 라우터 내부에서 조립한 필터 등 (요청 본문 검증은 FastAPI 기본 422)
        return _error_response(request, 422, "VALIDATION_ERROR", str(exc))

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"{request.method} {request.url.path} 저장소 오류: {exc}")
        return _error_response(request, 503, "STORE_UNAVAILABLE", "record store unavailable")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} 처리 중 예외")
        return _error_response(request, 500, "INTERNAL_ERROR", str(exc))
