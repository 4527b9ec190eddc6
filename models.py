"""
데이터베이스 모델

실제로는 raw SQL을 사용하지만, 조회한 행(dict)을
JSON 응답으로 바꿀 때 이 모델을 거칩니다.

스키마는 외부 DB 에서 관리합니다. 참고용 제약 조건:
    - certifications: UNIQUE (user_id, track_id, certification_date)
    - certifications: UNIQUE (idempotency_key)
    - periods: is_active = 1 인 행은 최대 1개 (애플리케이션에서 보장)
"""


def _iso(value):
    if value is None:
        return None
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


class User:
    """
    사용자 모델 (Discord 프로필)

    Attributes:
        id (str): 사용자 ID (UUID)
        discord_id (str): Discord 사용자 ID
        discord_username (str): Discord 사용자명
        discord_avatar_url (str): 아바타 URL
        discord_global_name (str): Discord 표시 이름
        email (str): 이메일
        is_active (bool): 활성 여부
        created_at (datetime): 가입 시각
    """
    def __init__(self, id, discord_id, discord_username, discord_avatar_url=None,
                 discord_global_name=None, email=None, is_active=True, created_at=None):
        self.id = id
        self.discord_id = discord_id
        self.discord_username = discord_username
        self.discord_avatar_url = discord_avatar_url
        self.discord_global_name = discord_global_name
        self.email = email
        self.is_active = is_active
        self.created_at = created_at

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            discord_id=row.get('discord_id'),
            discord_username=row.get('discord_username'),
            discord_avatar_url=row.get('discord_avatar_url'),
            discord_global_name=row.get('discord_global_name'),
            email=row.get('email'),
            is_active=bool(row.get('is_active', True)),
            created_at=row.get('created_at'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'discord_id': self.discord_id,
            'discord_username': self.discord_username,
            'discord_avatar_url': self.discord_avatar_url,
            'discord_global_name': self.discord_global_name,
            'email': self.email,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
        }


class Track:
    """
    트랙 모델

    Attributes:
        id (str): 트랙 ID (UUID)
        name (str): 표시 이름
        type (str): 'short-form' | 'long-form' | 'builder' | 'sales'
        description (str): 설명
        is_active (bool): 활성 여부
    """
    def __init__(self, id, name, type, description=None, is_active=True):
        self.id = id
        self.name = name
        self.type = type
        self.description = description
        self.is_active = is_active

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            name=row['name'],
            type=row['type'],
            description=row.get('description'),
            is_active=bool(row.get('is_active', True)),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'description': self.description,
            'is_active': self.is_active,
        }


class Period:
    """
    기수 모델

    Attributes:
        id (str): 기수 ID (UUID)
        term_number (int): 기수 번호 (1기, 2기 ...)
        start_date (date): 시작일 (포함)
        end_date (date): 종료일 (포함)
        description (str): 설명
        is_active (bool): 활성 기수 여부 (전체에서 최대 1개)
    """
    def __init__(self, id, term_number, start_date, end_date,
                 description=None, is_active=False):
        self.id = id
        self.term_number = term_number
        self.start_date = start_date
        self.end_date = end_date
        self.description = description
        self.is_active = is_active

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            term_number=row['term_number'],
            start_date=row['start_date'],
            end_date=row['end_date'],
            description=row.get('description'),
            is_active=bool(row.get('is_active')),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'term_number': self.term_number,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'description': self.description,
            'is_active': self.is_active,
        }


class UserTrack:
    """
    트랙 참여(등록) 모델

    Attributes:
        id (str): 등록 ID
        user_id (str): 사용자 ID
        track_id (str): 트랙 ID
        is_active (bool): 활성 여부 (리셋 시 일괄 비활성화)
        dropout_warnings (int): 탈락 경고 횟수
    """
    def __init__(self, id, user_id, track_id, is_active=True, dropout_warnings=0,
                 last_warning_at=None):
        self.id = id
        self.user_id = user_id
        self.track_id = track_id
        self.is_active = is_active
        self.dropout_warnings = dropout_warnings
        self.last_warning_at = last_warning_at

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            track_id=row['track_id'],
            is_active=bool(row.get('is_active', True)),
            dropout_warnings=row.get('dropout_warnings') or 0,
            last_warning_at=row.get('last_warning_at'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'track_id': self.track_id,
            'is_active': self.is_active,
            'dropout_warnings': self.dropout_warnings,
            'last_warning_at': _iso(self.last_warning_at),
        }


class Certification:
    """
    인증 모델

    Attributes:
        id (str): 인증 ID
        user_id (str): 제출자
        track_id (str): 트랙
        period_id (str): 기수
        user_track_id (str): 트랙 등록 ID
        certification_url (str): 인증 링크
        certification_date (date): 인증 대상 날짜
        notes (str): 메모
        status (str): 'pending' | 'submitted' | 'approved' | 'rejected'
        submitted_at (datetime): 서버 기준 제출 시간
        idempotency_key (str): 중복 제출 방지 키
    """
    FIELDS = (
        'id', 'user_id', 'track_id', 'period_id', 'user_track_id',
        'certification_url', 'certification_date', 'notes', 'status',
        'submitted_at', 'idempotency_key', 'created_at', 'updated_at',
    )

    def __init__(self, **fields):
        for name in self.FIELDS:
            setattr(self, name, fields.get(name))

    @classmethod
    def from_row(cls, row):
        return cls(**{name: row.get(name) for name in cls.FIELDS})

    def to_dict(self):
        return {name: _iso(getattr(self, name)) if name.endswith(('_at', '_date'))
                else getattr(self, name)
                for name in self.FIELDS}


class PageContent:
    """
    페이지 편집 콘텐츠 모델

    Attributes:
        id (str): 콘텐츠 ID
        page_path (str): 페이지 경로 (예: '/admin/tracking')
        content_key (str): 콘텐츠 키
        content_value (str): 값
    """
    def __init__(self, id, page_path, content_key, content_value,
                 updated_by=None, updated_at=None):
        self.id = id
        self.page_path = page_path
        self.content_key = content_key
        self.content_value = content_value
        self.updated_by = updated_by
        self.updated_at = updated_at

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            page_path=row['page_path'],
            content_key=row['content_key'],
            content_value=row.get('content_value'),
            updated_by=row.get('updated_by'),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'page_path': self.page_path,
            'content_key': self.content_key,
            'content_value': self.content_value,
            'updated_by': self.updated_by,
            'updated_at': _iso(self.updated_at),
        }
