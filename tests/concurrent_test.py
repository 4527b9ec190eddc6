"""
동시 인증 제출 테스트 스크립트

실행 중인 서버에 같은 날짜 인증을 동시에 제출해
중복 행이 생기지 않는지 확인합니다.

테스트 케이스:
  TC1: 같은 idempotencyKey 로 동시 N회 제출 -> 1건 저장, 나머지 alreadyApplied
  TC2: 서로 다른 idempotencyKey 로 같은 날짜 동시 N회 제출 -> 1건 저장 (upsert)

3가지 검증: 저장 건수, 응답 시간, 에러 발생

실행 방법:
  python tests/concurrent_test.py --url http://localhost:5000 \
      --token <AUTH_SYNC_TOKEN> --track <trackId> --period <periodId> \
      --discord-id 1234567890 --date 2025-01-15
"""

import argparse
import json
import threading
import time
import uuid
from datetime import datetime

import requests


class ConcurrentTester:
    """동시성 테스트 실행 및 결과 리포트 생성"""

    def __init__(self, base_url, token, track_id, period_id, discord_id, cert_date):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.track_id = track_id
        self.period_id = period_id
        self.discord_id = discord_id
        self.cert_date = cert_date
        self.test_results = []
        self.session = requests.Session()
        self.user_id = None

    def login(self):
        """프로필 동기화로 세션 쿠키 획득"""
        response = self.session.post(
            f"{self.base_url}/auth/callback",
            headers={'Authorization': f"Bearer {self.token}"},
            json={'discordId': self.discord_id, 'discordUsername': 'concurrent-tester'},
            timeout=5
        )
        response.raise_for_status()
        self.user_id = response.json()['data']['userId']
        print(f"[SETUP] Logged in as {self.user_id}")

        response = self.session.post(f"{self.base_url}/api/tracks/{self.track_id}/enroll", timeout=5)
        response.raise_for_status()
        print(f"[SETUP] Enrolled in track {self.track_id}")

    def submit_concurrent(self, user_count, shared_key=None):
        """
        동시 제출 실행

        Args:
            user_count (int): 동시 요청 수
            shared_key (str, optional): 모든 요청에 같은 idempotencyKey 사용

        Returns:
            dict: {'responses', 'status_codes', 'response_times'}
        """
        responses = []
        status_codes = []
        response_times = []
        lock = threading.Lock()
        cookies = self.session.cookies.get_dict()

        def submit_single(index):
            key = shared_key or f"concurrent-{uuid.uuid4()}"
            start_time = time.time()

            try:
                response = requests.post(
                    f"{self.base_url}/api/certifications",
                    cookies=cookies,
                    json={
                        'trackId': self.track_id,
                        'periodId': self.period_id,
                        'certificationDate': self.cert_date,
                        'url': f"https://example.com/post/{index}",
                        'idempotencyKey': key,
                    },
                    timeout=5
                )
                elapsed = time.time() - start_time
                with lock:
                    responses.append(response.json())
                    status_codes.append(response.status_code)
                    response_times.append(elapsed)

            except requests.RequestException as e:
                elapsed = time.time() - start_time
                with lock:
                    responses.append({"error": str(e)})
                    status_codes.append(0)
                    response_times.append(elapsed)

        threads = [threading.Thread(target=submit_single, args=(i,)) for i in range(user_count)]

        # 동시 시작
        for thread in threads:
            thread.start()

        # 모든 쓰레드 종료 대기
        for thread in threads:
            thread.join()

        return {
            'responses': responses,
            'status_codes': status_codes,
            'response_times': response_times
        }

    def count_rows(self):
        """같은 날짜로 저장된 인증 개수"""
        response = self.session.get(
            f"{self.base_url}/api/certifications",
            params={'trackId': self.track_id, 'periodId': self.period_id},
            timeout=5
        )
        response.raise_for_status()
        rows = response.json()['data']
        return sum(1 for r in rows if r['certification_date'] == self.cert_date)

    def verify_results(self, result, row_count):
        """
        3가지 검증

        1. 저장 건수: 같은 날짜 행 = 1
        2. 응답 시간: 모든 응답 < 1초
        3. 에러 발생: 5xx / 연결 실패 = 0개
        """
        status_codes = result['status_codes']
        response_times = result['response_times']

        replayed = sum(1 for r in result['responses'] if r.get('alreadyApplied'))
        consistency_pass = row_count == 1

        avg_response_time = sum(response_times) / len(response_times)
        max_response_time = max(response_times)
        time_pass = max_response_time < 1.0

        error_count = sum(1 for code in status_codes if code == 0 or code >= 500)
        error_pass = error_count == 0

        return {
            'consistency': {'pass': consistency_pass, 'row_count': row_count, 'replayed': replayed},
            'response_time': {
                'pass': time_pass,
                'avg': round(avg_response_time, 3),
                'max': round(max_response_time, 3),
                'threshold': 1.0
            },
            'errors': {'pass': error_pass, 'error_count': error_count},
            'all_passed': consistency_pass and time_pass and error_pass
        }

    def run_test_case(self, case_id, concurrent_users, shared_key, iterations=5):
        print(f"\n{'='*60}")
        print(f"Test Case {case_id}: Users={concurrent_users}, SharedKey={bool(shared_key)}")
        print(f"{'='*60}")

        case_results = []
        for iteration in range(1, iterations + 1):
            key = f"{shared_key}-{iteration}-{uuid.uuid4()}" if shared_key else None
            result = self.submit_concurrent(concurrent_users, key)
            verification = self.verify_results(result, self.count_rows())

            case_results.append({
                'iteration': iteration,
                'status_codes': result['status_codes'],
                'response_times': result['response_times'],
                'verification': verification,
                'status': 'PASS' if verification['all_passed'] else 'FAIL'
            })
            print(f"  [{iteration}/{iterations}] rows={verification['consistency']['row_count']} "
                  f"replayed={verification['consistency']['replayed']} "
                  f"avg={verification['response_time']['avg']}s "
                  f"{'✅ PASS' if verification['all_passed'] else '❌ FAIL'}")

            if iteration < iterations:
                time.sleep(0.5)

        pass_count = sum(1 for r in case_results if r['status'] == 'PASS')
        return {
            'case_id': case_id,
            'concurrent_users': concurrent_users,
            'iterations': iterations,
            'results': case_results,
            'summary': {
                'pass_count': pass_count,
                'pass_rate': f"{pass_count}/{iterations}",
                'overall_status': '✅ SUCCESS' if pass_count == iterations else '❌ FAILED'
            }
        }

    def run_all_tests(self):
        self.login()
        for case_id, users, shared_key in [(1, 10, 'same-key'), (2, 10, None)]:
            self.test_results.append(self.run_test_case(case_id, users, shared_key))

    def generate_report(self):
        """JSON 리포트 생성 (test_report.json)"""
        total_tests = sum(r['iterations'] for r in self.test_results)
        passed_tests = sum(r['summary']['pass_count'] for r in self.test_results)

        report = {
            'test_date': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'base_url': self.base_url,
            'cases': self.test_results,
            'summary': {
                'total_tests': total_tests,
                'passed': passed_tests,
                'failed': total_tests - passed_tests,
            }
        }

        with open('test_report.json', 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        print(f"\nTEST REPORT GENERATED: test_report.json ({passed_tests}/{total_tests} passed)")


def main():
    parser = argparse.ArgumentParser(description='동시 인증 제출 테스트')
    parser.add_argument('--url', required=True, help='서버 URL (예: http://localhost:5000)')
    parser.add_argument('--token', required=True, help='AUTH_SYNC_TOKEN')
    parser.add_argument('--track', required=True, help='트랙 ID')
    parser.add_argument('--period', required=True, help='기수 ID')
    parser.add_argument('--discord-id', required=True, help='테스트 사용자 Discord ID')
    parser.add_argument('--date', required=True, help='인증 날짜 (YYYY-MM-DD)')
    args = parser.parse_args()

    tester = ConcurrentTester(args.url, args.token, args.track, args.period,
                              args.discord_id, args.date)
    try:
        tester.run_all_tests()
        tester.generate_report()
    except KeyboardInterrupt:
        print("\n\n테스트 중단됨")
    except requests.RequestException as e:
        print(f"\n\n테스트 에러: {str(e)}")


if __name__ == '__main__':
    main()
