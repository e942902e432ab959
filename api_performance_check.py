"""
API Performance Check Script
Times the read endpoints of a running StrideOS backend

This script:
1. Logs in with a username and password
2. Calls every GET endpoint below and measures response time
3. Follows up with detail endpoints for the first client, project and sprint found
4. Prints a report grouped by area and saves the raw results as JSON

Usage: python api_performance_check.py [--base-url http://127.0.0.1:8000/api/v1] [--username admin]
"""
import argparse
import getpass
import json
import sys
import time
from datetime import datetime
from typing import Dict, Optional

import requests

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api/v1"
TIMEOUT_SECONDS = 30

# (name, endpoint, params)
ENDPOINTS = [
    ("Auth - Current User", "/auth/me/", None),
    ("Users - List", "/users/", None),
    ("Users - Stats", "/users/stats/", None),
    ("Users - Team", "/users/team/", None),
    ("Organization - Settings", "/organization/", None),
    ("Clients - List", "/clients/", None),
    ("Clients - Internal", "/clients/internal/", None),
    ("Clients - Dashboard", "/clients/dashboard/", None),
    ("Clients - KPIs", "/clients/kpis/", None),
    ("Departments - List", "/departments/", None),
    ("Project Keys - List", "/project-keys/", None),
    ("Projects - List", "/projects/", None),
    ("Projects - Stats", "/projects/stats/", None),
    ("Projects - Templates", "/projects/templates/", None),
    ("Documents - List", "/documents/", None),
    ("Tasks - List", "/tasks/", None),
    ("Tasks - Backlog", "/tasks/", {"backlog": "true"}),
    ("Tasks - Stats", "/tasks/stats/", None),
    ("Tasks - Active Sprint", "/tasks/active-sprint/", None),
    ("My Work - Board", "/my-work/", None),
    ("Sprints - List", "/sprints/", None),
    ("Sprints - With Details", "/sprints/details/", None),
    ("Sprints - Stats", "/sprints/stats/", None),
    ("Sprints - By Department", "/sprints/by-department/", None),
    ("Notifications - List", "/notifications/", {"limit": 50}),
    ("Notifications - Unread Count", "/notifications/unread-count/", None),
    ("History - Audit Logs", "/audit-logs/", {"limit": 100}),
    ("Search - Global Search", "/search/", {"q": "a"}),
]


class APITester:
    """Runs timed GET requests against the API and collects the results"""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.results = []
        self.session = requests.Session()

    def authenticate(self, username: str, password: str) -> bool:
        print(f"🔐 Authenticating as {username}...")
        try:
            response = self.session.post(
                f"{self.base_url}/auth/login/",
                json={"username": username, "password": password},
                timeout=10
            )
        except requests.exceptions.RequestException as e:
            print(f"❌ Authentication error: {e}")
            return False

        if response.status_code != 200:
            print(f"❌ Authentication failed: {response.status_code}")
            print(f"Response: {response.text}")
            return False

        token = response.json().get('access')
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json'
        })
        print("✅ Authentication successful!")
        return True

    def test_endpoint(self, name: str, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """Call one endpoint and record status, timing and item count"""
        url = f"{self.base_url}{endpoint}"
        result = {
            'name': name,
            'endpoint': endpoint,
            'params': params or {},
            'timestamp': datetime.now().isoformat(),
        }
        try:
            start_time = time.time()
            response = self.session.get(url, params=params, timeout=TIMEOUT_SECONDS)
            result['response_time_ms'] = round((time.time() - start_time) * 1000, 2)
        except requests.exceptions.Timeout:
            result.update({'status_code': 0, 'response_time_ms': TIMEOUT_SECONDS * 1000,
                           'success': False, 'error': f'Request timeout ({TIMEOUT_SECONDS}s)'})
            self.results.append(result)
            return result
        except requests.exceptions.RequestException as e:
            result.update({'status_code': 0, 'response_time_ms': 0, 'success': False, 'error': str(e)})
            self.results.append(result)
            return result

        result['status_code'] = response.status_code
        result['success'] = response.status_code == 200
        try:
            data = response.json()
        except ValueError:
            data = None
            result['response_text'] = response.text[:200]
        if isinstance(data, list):
            result['item_count'] = len(data)
            result['first_id'] = data[0].get('id') if data and isinstance(data[0], dict) else None
        elif isinstance(data, dict):
            result['item_count'] = len(data)
        if not result['success']:
            result['error'] = response.text[:500]

        self.results.append(result)
        return result

    def print_result(self, result: Dict):
        status_icon = "✅" if result['success'] else "❌"
        print(f"{status_icon} {result['name']}")
        print(f"   Endpoint: {result['endpoint']}")
        print(f"   Status: {result['status_code']}  Response Time: {result['response_time_ms']}ms")
        if result.get('item_count') is not None:
            print(f"   Items: {result['item_count']}")
        if not result['success'] and result.get('error'):
            print(f"   Error: {result['error'][:200]}")
        print()

    def generate_report(self):
        total_tests = len(self.results)
        successful = [r for r in self.results if r['success']]
        failed = [r for r in self.results if not r['success']]
        avg_response_time = sum(r['response_time_ms'] for r in successful) / len(successful) if successful else 0

        print("\n" + "=" * 80)
        print("📊 API PERFORMANCE REPORT")
        print("=" * 80)
        print(f"Base URL: {self.base_url}")
        print(f"Run Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"\nTotal Calls: {total_tests}")
        print(f"Successful: {len(successful)} ✅")
        print(f"Failed: {len(failed)} ❌")
        print(f"\nAverage Response Time: {avg_response_time:.2f}ms")
        if successful:
            fastest = min(successful, key=lambda r: r['response_time_ms'])
            slowest = max(successful, key=lambda r: r['response_time_ms'])
            print(f"Fastest: {fastest['name']} ({fastest['response_time_ms']}ms)")
            print(f"Slowest: {slowest['name']} ({slowest['response_time_ms']}ms)")

        print("\n" + "-" * 80)
        print("📋 RESULTS BY AREA")
        print("-" * 80)
        areas = {}
        for result in self.results:
            area = result['name'].split(' - ')[0] if ' - ' in result['name'] else 'Other'
            areas.setdefault(area, []).append(result)
        for area, results in sorted(areas.items()):
            ok = [r for r in results if r['success']]
            avg_time = sum(r['response_time_ms'] for r in ok) / len(ok) if ok else 0
            print(f"\n{area}: {len(ok)}/{len(results)} successful, avg {avg_time:.2f}ms")
            for result in sorted(results, key=lambda r: r['response_time_ms'], reverse=True):
                status_icon = "✅" if result['success'] else "❌"
                print(f"  {status_icon} {result['endpoint']}: {result['response_time_ms']}ms")

        if failed:
            print("\n" + "-" * 80)
            print("❌ FAILED CALLS")
            print("-" * 80)
            for result in failed:
                print(f"\n{result['name']}")
                print(f"  Endpoint: {result['endpoint']}")
                print(f"  Error: {result.get('error', 'Unknown error')[:200]}")
        print("\n" + "=" * 80)

    def save_results(self, filename: str = "api_performance_results.json"):
        with open(filename, 'w') as f:
            json.dump({
                'run_date': datetime.now().isoformat(),
                'base_url': self.base_url,
                'total_calls': len(self.results),
                'successful_calls': sum(1 for r in self.results if r['success']),
                'results': self.results
            }, f, indent=2)
        print(f"\n💾 Results saved to {filename}")


def first_id(tester: APITester, name: str) -> Optional[int]:
    for result in tester.results:
        if result['name'] == name and result['success']:
            return result.get('first_id')
    return None


def main():
    parser = argparse.ArgumentParser(description='Time the StrideOS read endpoints')
    parser.add_argument('--base-url', default=DEFAULT_BASE_URL)
    parser.add_argument('--username')
    parser.add_argument('--password')
    parser.add_argument('--output', default='api_performance_results.json')
    args = parser.parse_args()

    username = args.username or input("Enter username: ")
    password = args.password or getpass.getpass("Enter password: ")

    tester = APITester(args.base_url)
    if not tester.authenticate(username, password):
        print("❌ Authentication failed. Cannot proceed.")
        sys.exit(1)

    print("\n🚀 Calling list endpoints...\n")
    for name, endpoint, params in ENDPOINTS:
        tester.print_result(tester.test_endpoint(name, endpoint, params))

    print("\n🔎 Calling detail endpoints...\n")
    client_id = first_id(tester, "Clients - List")
    if client_id:
        tester.print_result(tester.test_endpoint("Clients - Detail", f"/clients/{client_id}/"))
        tester.print_result(tester.test_endpoint("Clients - Stats", f"/clients/{client_id}/stats/"))
    project_id = first_id(tester, "Projects - List")
    if project_id:
        tester.print_result(tester.test_endpoint("Projects - Detail", f"/projects/{project_id}/"))
        tester.print_result(tester.test_endpoint("Projects - Team", f"/projects/{project_id}/team/"))
    department_id = first_id(tester, "Departments - List")
    if department_id:
        tester.print_result(tester.test_endpoint("Departments - Capacity", f"/departments/{department_id}/capacity/"))
        tester.print_result(tester.test_endpoint("Sprints - Department Backlog", f"/departments/{department_id}/backlog/"))
    sprint_id = first_id(tester, "Sprints - List")
    if sprint_id:
        tester.print_result(tester.test_endpoint("Sprints - Detail", f"/sprints/{sprint_id}/"))

    tester.generate_report()
    tester.save_results(args.output)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠️ Interrupted by user")
        sys.exit(0)
