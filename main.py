from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings
from database.db import init_db

# ✅ 로그 레벨은 설정값 사용
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# SQL 엔진 로그는 경고만
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import (
    achievements, counseling, dashboard, reports,
    students, users, violations,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 테이블이 없으면 생성 (운영은 마이그레이션 도구로 관리)
    init_db()
    yield


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# ✅ CORS 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록
app.include_router(dashboard.router,      prefix="/v1")
app.include_router(violations.router,     prefix="/v1")
app.include_router(achievements.router,   prefix="/v1")
app.include_router(counseling.router,     prefix="/v1")
app.include_router(students.router,       prefix="/v1")
app.include_router(users.router,          prefix="/v1")
app.include_router(reports.router,        prefix="/v1")


# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}


# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": "Student Conduct API - 학생 생활지도 기록/대시보드"}
