#!/usr/bin/env python3
"""
Smoke test a running ArtForge API.

Mints a bearer token with JWT_SECRET (the same secret the identity provider
signs with) and walks the read endpoints, plus one generation when
--generate is passed. Generation spends real credits and provider quota.
"""

import argparse
import json
import os
import sys

import requests

from artforge.services.auth_service import create_token


class ArtforgeApiTester:
    def __init__(self, base_url, token):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.tests_run = 0
        self.tests_passed = 0

    def run_test(self, name, method, endpoint, expected_status, data=None, timeout=30):
        """Run a single API test"""
        url = f"{self.base_url}/{endpoint}"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self.tests_run += 1
        print(f"\n🔍 Testing {name}...")
        print(f"   URL: {url}")

        try:
            if method == "GET":
                response = requests.get(url, headers=headers, timeout=timeout)
            else:
                response = requests.post(url, json=data, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout:
            print("❌ Failed - Request timeout")
            return False, {}
        except requests.exceptions.RequestException as e:
            print(f"❌ Failed - Error: {e}")
            return False, {}

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != expected_status:
            print(f"❌ Failed - Expected {expected_status}, got {response.status_code}")
            print(f"   Error: {body or response.text}")
            return False, body

        self.tests_passed += 1
        print(f"✅ Passed - Status: {response.status_code}")
        print(f"   Response: {json.dumps(body, indent=2)[:200]}...")
        return True, body

    def test_root_endpoint(self):
        return self.run_test("Root API Endpoint", "GET", "", 200)[0]

    def test_get_me(self):
        return self.run_test("Get Current Account", "GET", "auth/me", 200)[0]

    def test_packages(self):
        success, body = self.run_test("Credit Packages", "GET", "credits/packages", 200)
        return success and isinstance(body, list) and len(body) > 0

    def test_costs(self):
        success, body = self.run_test("Generation Costs", "GET", "credits/costs", 200)
        return success and len(body) == 4

    def test_balance(self):
        return self.run_test("Credit Balance", "GET", "credits/balance", 200)[0]

    def test_history(self):
        return self.run_test("Credit History", "GET", "credits/history", 200)[0]

    def test_short_prompt_rejected(self):
        success, body = self.run_test("Short Prompt Rejected", "POST", "generate", 400, data={"prompt": "ab"})
        return success and body.get("detail", {}).get("code") == "INVALID_PROMPT"

    def test_unsigned_webhook_rejected(self):
        return self.run_test(
            "Unsigned Webhook Rejected", "POST", "credits/webhook/stripe", 400,
            data={"type": "checkout.session.completed"},
        )[0]

    def test_generate_image(self):
        print("   ⏳ This may take 10-30 seconds for AI generation...")
        success, body = self.run_test(
            "Generate Image", "POST", "generate", 200,
            data={"prompt": "A lighthouse on a cliff at sunset", "quality": "standard"},
            timeout=120,
        )
        if success:
            print(f"   Credits used: {body.get('credits_used')}")
        return success


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--base-url", default=os.getenv("ARTFORGE_BASE_URL", "http://localhost:8000/api"))
    parser.add_argument("--account-id", default=os.getenv("ARTFORGE_ACCOUNT_ID", "smoke-test-account"))
    parser.add_argument("--email", default=os.getenv("ARTFORGE_EMAIL", "smoke@example.com"))
    parser.add_argument("--generate", action="store_true", help="also run one paid image generation")
    args = parser.parse_args()

    secret = os.getenv("JWT_SECRET")
    if not secret:
        print("JWT_SECRET is required to mint a token")
        return 2

    print("🚀 Starting ArtForge API Tests")
    print("=" * 50)

    tester = ArtforgeApiTester(args.base_url, create_token(args.account_id, args.email, secret))
    tests = [
        ("Root Endpoint", tester.test_root_endpoint),
        ("Get Current Account", tester.test_get_me),
        ("Credit Packages", tester.test_packages),
        ("Generation Costs", tester.test_costs),
        ("Credit Balance", tester.test_balance),
        ("Credit History", tester.test_history),
        ("Short Prompt Rejected", tester.test_short_prompt_rejected),
        ("Unsigned Webhook Rejected", tester.test_unsigned_webhook_rejected),
    ]
    if args.generate:
        tests.append(("Generate Image", tester.test_generate_image))

    failed_tests = [name for name, test_func in tests if not test_func()]

    print("\n" + "=" * 50)
    print("📊 TEST RESULTS")
    print("=" * 50)
    print(f"Tests run: {tester.tests_run}")
    print(f"Tests passed: {tester.tests_passed}")
    print(f"Tests failed: {len(failed_tests)}")

    if failed_tests:
        print("\n❌ Failed tests:")
        for test in failed_tests:
            print(f"   - {test}")
    else:
        print("\n✅ All tests passed!")

    return 0 if not failed_tests else 1


if __name__ == "__main__":
    sys.exit(main())
