"""인증 날짜 계산 / 상태 판정 테스트"""
import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.certification_dates import (
    CERTIFIED,
    MISSING,
    NOT_REQUIRED,
    PENDING,
    can_certify_for_date,
    classify,
    current_streak,
    default_certification_date,
    derive_status_map,
    is_drop_candidate,
    missing_count,
    month_window,
    next_certification_date,
    normalize_track_type,
    required_dates,
    required_dates_for_month,
    summarize,
    trailing_required_dates,
)
from utils.datetime_parser import SystemClock

TODAY = date(2025, 1, 15)
KST = ZoneInfo('Asia/Seoul')


def _row(day, status='submitted', url='https://example.com/post'):
    return {'certification_date': day, 'status': status, 'certification_url': url,
            'submitted_at': None, 'notes': None}


class TestRequiredDates:

    def test_short_form_skips_weekends(self):
        dates = required_dates('short-form', date(2025, 1, 1), date(2025, 1, 31))
        assert len(dates) == 23
        assert all(d.weekday() < 5 for d in dates)
        assert date(2025, 1, 4) not in dates  # 토요일

    def test_weekly_sunday_tracks(self):
        for track in ('long-form', 'builder', 'longform'):
            dates = required_dates(track, date(2025, 1, 1), date(2025, 1, 31))
            assert dates == [date(2025, 1, 5), date(2025, 1, 12), date(2025, 1, 19), date(2025, 1, 26)]

    def test_sales_is_tuesday(self):
        dates = required_dates('sales', date(2025, 1, 1), date(2025, 1, 31))
        assert [d.day for d in dates] == [7, 14, 21, 28]

    def test_inclusive_bounds_and_empty_range(self):
        assert required_dates('long-form', date(2025, 1, 5), date(2025, 1, 5)) == [date(2025, 1, 5)]
        assert required_dates('long-form', date(2025, 1, 6), date(2025, 1, 5)) == []

    def test_unknown_track_type(self):
        with pytest.raises(ValueError):
            required_dates('podcast', date(2025, 1, 1), date(2025, 1, 31))

    def test_aliases(self):
        assert normalize_track_type('shortform') == 'short-form'
        assert normalize_track_type('long-form') == 'long-form'


class TestMonthWindow:

    def test_full_month_without_period(self):
        assert month_window(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_intersects_period(self):
        window = month_window(2025, 1, date(2025, 1, 10), date(2025, 3, 1))
        assert window == (date(2025, 1, 10), date(2025, 1, 31))

    def test_no_overlap(self):
        assert month_window(2025, 1, date(2025, 2, 1), date(2025, 3, 1)) is None
        assert required_dates_for_month('short-form', 2025, 1, date(2025, 2, 1), date(2025, 3, 1)) == []

    def test_required_dates_clipped_to_period(self):
        dates = required_dates_for_month('long-form', 2025, 1, date(2025, 1, 10), date(2025, 1, 20))
        assert dates == [date(2025, 1, 12), date(2025, 1, 19)]


class TestTimezone:

    def test_aware_datetime_converted_to_kst(self):
        # 2025-01-14 15:30 UTC == 2025-01-15 00:30 KST
        instant = datetime(2025, 1, 14, 15, 30, tzinfo=timezone.utc)
        dates = required_dates('short-form', instant, date(2025, 1, 15), KST)
        assert dates == [date(2025, 1, 15)]

    def test_iso_string_with_z(self):
        status_map = derive_status_map(
            [date(2025, 1, 15)],
            [_row('2025-01-14T15:30:00Z')],
            TODAY, KST
        )
        assert status_map['2025-01-15']['status'] == CERTIFIED

    def test_same_result_for_equivalent_inputs(self):
        inputs = [
            date(2025, 1, 12),
            '2025-01-12',
            datetime(2025, 1, 12, 9, 0),
            datetime(2025, 1, 11, 16, 0, tzinfo=timezone.utc),
        ]
        maps = [derive_status_map([date(2025, 1, 12)], [_row(v)], TODAY, KST) for v in inputs]
        assert all(m == maps[0] for m in maps)


@pytest.mark.skipif(not hasattr(time, 'tzset'), reason='time.tzset() 은 POSIX 전용')
class TestProcessTimezone:
    """실행 환경의 로컬 시간대(TZ)가 바뀌어도 결과가 같아야 함"""

    ZONES = ('UTC', 'America/Los_Angeles', 'Pacific/Kiritimati')

    @pytest.fixture
    def process_tz(self, monkeypatch):
        def _set(name):
            monkeypatch.setenv('TZ', name)
            time.tzset()
        yield _set
        monkeypatch.undo()
        time.tzset()

    def test_status_map_independent_of_process_tz(self, process_tz):
        rows = [
            _row(datetime(2025, 1, 14, 15, 30, tzinfo=timezone.utc)),  # KST 1/15
            _row('2025-01-13'),
            _row(datetime(2025, 1, 10, 23, 0)),
        ]
        results = []
        for name in self.ZONES:
            process_tz(name)
            required = required_dates('short-form', date(2025, 1, 1), date(2025, 1, 31), KST)
            status_map = derive_status_map(required, rows, TODAY, KST)
            results.append((required, status_map, summarize(status_map, TODAY)))

        assert all(r == results[0] for r in results)
        assert results[0][1]['2025-01-15']['status'] == CERTIFIED
        assert results[0][1]['2025-01-14']['status'] == MISSING

    def test_system_clock_uses_fixed_timezone(self, process_tz):
        for name in self.ZONES:
            process_tz(name)
            clock = SystemClock(KST)
            assert clock.now().utcoffset() == timedelta(hours=9)
            assert clock.today() == datetime.now(timezone.utc).astimezone(KST).date()


class TestClassify:

    @pytest.mark.parametrize('row_status, expected', [
        ('submitted', CERTIFIED),
        ('approved', CERTIFIED),
        ('pending', PENDING),
        ('rejected', MISSING),
    ])
    def test_with_row(self, row_status, expected):
        assert classify(row_status, date(2025, 1, 20), TODAY) == expected

    def test_without_row(self):
        assert classify(None, date(2025, 1, 16), TODAY) == NOT_REQUIRED
        assert classify(None, TODAY, TODAY) == MISSING
        assert classify(None, date(2025, 1, 14), TODAY) == MISSING


class TestStatusMap:

    def test_weekly_january_example(self):
        required = required_dates('long-form', date(2025, 1, 1), date(2025, 1, 31))
        status_map = derive_status_map(required, [_row(date(2025, 1, 12))], TODAY)

        assert [v['status'] for v in status_map.values()] == [MISSING, CERTIFIED, NOT_REQUIRED, NOT_REQUIRED]
        assert status_map['2025-01-12']['url'] == 'https://example.com/post'
        assert summarize(status_map, TODAY) == {
            'totalCertified': 1, 'totalRequired': 2, 'completionRate': 50.0
        }

    def test_every_required_date_has_exactly_one_entry(self):
        required = required_dates('short-form', date(2025, 1, 1), date(2025, 1, 31))
        rows = [_row(date(2025, 1, 2)), _row(date(2025, 1, 4)), _row(date(2025, 2, 3))]
        status_map = derive_status_map(required, rows, TODAY)

        assert list(status_map) == [d.isoformat() for d in required]
        assert '2025-01-04' not in status_map  # 필요일이 아닌 기록은 무시

    def test_rate_bounds(self):
        assert summarize({}, TODAY)['completionRate'] == 0.0

        # 미래 날짜를 미리 인증해도 100 을 넘지 않음
        required = [date(2025, 1, 12), date(2025, 1, 19)]
        status_map = derive_status_map(required, [_row(d) for d in required], TODAY)
        summary = summarize(status_map, TODAY)
        assert summary['totalRequired'] == 1
        assert summary['completionRate'] == 100.0

    def test_rate_rounded_to_one_decimal(self):
        required = [date(2025, 1, 13), date(2025, 1, 14), date(2025, 1, 15)]
        status_map = derive_status_map(required, [_row(date(2025, 1, 13))], TODAY)
        assert summarize(status_map, TODAY)['completionRate'] == 33.3


class TestStreak:

    def test_today_not_yet_certified_keeps_streak(self):
        required = required_dates('short-form', date(2025, 1, 13), TODAY)
        rows = [_row(date(2025, 1, 13)), _row(date(2025, 1, 14))]
        assert current_streak(derive_status_map(required, rows, TODAY), TODAY) == 2

    def test_missing_day_breaks_streak(self):
        required = required_dates('short-form', date(2025, 1, 10), TODAY)
        rows = [_row(date(2025, 1, 10)), _row(date(2025, 1, 14)), _row(TODAY)]
        assert current_streak(derive_status_map(required, rows, TODAY), TODAY) == 2


class TestDropout:

    def test_daily_window_is_last_five_weekdays_before_today(self):
        dates = trailing_required_dates('short-form', TODAY)
        assert dates == [date(2025, 1, 8), date(2025, 1, 9), date(2025, 1, 10),
                         date(2025, 1, 13), date(2025, 1, 14)]

    def test_weekly_window_is_last_deadline(self):
        assert trailing_required_dates('long-form', TODAY) == [date(2025, 1, 12)]

    def test_deadline_day_not_in_window(self):
        # 일요일 당일은 아직 제출 가능
        sunday = date(2025, 1, 19)
        assert trailing_required_dates('long-form', sunday) == [date(2025, 1, 12)]
        assert trailing_required_dates('long-form', sunday + timedelta(days=1)) == [sunday]

    def test_window_respects_period_start(self):
        assert trailing_required_dates('short-form', TODAY, period_start=date(2025, 1, 14)) == [
            date(2025, 1, 14)
        ]
        assert trailing_required_dates('short-form', TODAY, period_start=TODAY) == []

    def test_candidate_thresholds(self):
        dates = trailing_required_dates('short-form', TODAY)
        status_map = derive_status_map(dates, [], TODAY)
        missed = missing_count(status_map, dates)
        assert missed == 5
        assert is_drop_candidate('short-form', missed)
        assert not is_drop_candidate('short-form', 4)
        assert is_drop_candidate('sales', 1)
        assert not is_drop_candidate('builder', 0)


class TestNextDate:

    def test_daily_is_today(self):
        assert next_certification_date('short-form', TODAY) == TODAY

    def test_weekly_first_certification(self):
        assert next_certification_date('long-form', TODAY) == date(2025, 1, 19)
        assert next_certification_date('sales', date(2025, 1, 14)) == date(2025, 1, 14)

    def test_weekly_after_last_certification(self):
        # 이번 주 일요일분을 미리 냈으면 다음 주 일요일
        assert next_certification_date('long-form', TODAY, date(2025, 1, 19)) == date(2025, 1, 26)
        # 오래전 인증이면 다가오는 일요일
        assert next_certification_date('long-form', TODAY, date(2024, 12, 1)) == date(2025, 1, 19)

    def test_can_certify(self):
        assert can_certify_for_date('short-form', TODAY, TODAY)
        assert not can_certify_for_date('short-form', date(2025, 1, 16), TODAY)
        assert can_certify_for_date('long-form', date(2025, 1, 19), TODAY)
        assert not can_certify_for_date('long-form', date(2025, 1, 18), TODAY)
        assert not can_certify_for_date('long-form', date(2025, 1, 26), TODAY)

    def test_default_date(self):
        assert default_certification_date('long-form', TODAY) == date(2025, 1, 19)
        assert default_certification_date('short-form', TODAY) == TODAY
