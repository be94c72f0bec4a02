"""
services/errors.py

생활지도 도메인 예외 모음.
서비스 계층에서 raise 하고, middlewares/error_handler.py 에서 HTTP 응답으로 변환한다.
"""


class ConductError(Exception):
    """도메인 예외 공통 부모"""
    code = "CONDUCT_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ConductError):
    """참조한 학생/교직원/상담 기록이 없음. 자동 재시도하지 않는다."""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateRecord(ConductError):
    code = "DUPLICATE"
    status_code = 409


class PolicyViolation(ConductError):
    """정책(벌점 기준표 등)에 맞지 않는 입력"""
    code = "POLICY_VIOLATION"
    status_code = 422


class PermissionDenied(ConductError):
    code = "FORBIDDEN"
    status_code = 403


class InvariantViolation(ConductError):
    """누적 벌점 캐시와 위반 기록 합계가 다름"""
    code = "INVARIANT_VIOLATION"
    status_code = 409

    def __init__(self, student_id: int, cached: int, ledger: int):
        super().__init__(
            f"student {student_id} cached points {cached} != ledger sum {ledger}"
        )
        self.student_id = student_id
        self.cached = cached
        self.ledger = ledger


class ConcurrentUpdateConflict(ConductError):
    """벌점 증가 UPDATE 가 대상 행을 찾지 못함 (재시도 후에도 실패 시 노출)"""
    code = "CONCURRENT_UPDATE"
    status_code = 409


class StoreUnavailable(ConductError):
    """저장소 조회/쓰기 실패. 대시보드는 부분 결과 없이 전체 실패로 처리"""
    code = "STORE_UNAVAILABLE"
    status_code = 503
