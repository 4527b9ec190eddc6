"""
애플리케이션 에러 정의

라우트 경계에서 JSON 응답으로 변환되는 에러 타입입니다.
각 에러는 고정된 code 와 HTTP 상태 코드를 가집니다.

ConflictError 는 예약된 타입입니다. 멱등 재시도는 에러가 아니라
alreadyApplied 플래그가 붙은 성공 응답으로 처리하므로 현재 raise 하는 곳은 없고,
라우트 경계에서는 다른 AppError 와 같이 409 응답으로 변환됩니다.
"""


class AppError(Exception):
    """
    애플리케이션 에러 기본 클래스

    Attributes:
        message (str): 사용자/운영자에게 보여줄 메시지
        code (str): 클라이언트가 분기할 수 있는 고정 코드
        status (int): HTTP 상태 코드
        details (dict or None): 추가 정보
    """
    code = 'APP_ERROR'
    status = 500

    def __init__(self, message, code=None, status=None, details=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status
        self.details = details


class ValidationError(AppError):
    """입력값 형식 오류 (쓰기 전에 거부)"""
    code = 'VALIDATION_ERROR'
    status = 400


class AuthError(AppError):
    """미인증(401) 또는 권한 없음(403)"""
    code = 'UNAUTHORIZED'
    status = 401

    @classmethod
    def forbidden(cls, message='관리자만 접근할 수 있습니다.'):
        return cls(message, code='FORBIDDEN', status=403)


class NotFoundError(AppError):
    """기수/트랙/레코드 없음"""
    code = 'NOT_FOUND'
    status = 404


class ConflictError(AppError):
    """충돌 (예약, 멱등 재시도는 에러가 아닌 성공으로 처리)"""
    code = 'CONFLICT'
    status = 409


class BackendError(AppError):
    """DB 쿼리 실패 (원본 메시지를 함께 전달)"""
    code = 'BACKEND_ERROR'
    status = 500
