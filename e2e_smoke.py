#!/usr/bin/env python3
"""
Manual end-to-end check against a running Email Writer backend.
Covers: auth, LLM settings round trip, email generation, history.

Generation needs a reachable Ollama server at the default endpoint, or pass
--openai-key to switch the test user to OpenAI first.
"""

import argparse
import sys

import requests

BASE_URL = "http://localhost:8000"
EMAIL = "smoketest@example.com"
PASSWORD = "smokepass123"

GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"

failures = 0


def log_pass(msg):
    print(f"{GREEN}✓ {msg}{RESET}")


def log_fail(msg):
    global failures
    failures += 1
    print(f"{RED}✗ {msg}{RESET}")


def log_info(msg):
    print(f"{YELLOW}→ {msg}{RESET}")


def get_auth_token(base_url):
    """Register the smoke test user, or log in if it already exists."""
    resp = requests.post(f"{base_url}/api/auth/register", json={"email": EMAIL, "password": PASSWORD})
    if resp.status_code == 201:
        return resp.json()["access_token"]

    resp = requests.post(f"{base_url}/api/auth/login", data={"username": EMAIL, "password": PASSWORD})
    if resp.status_code == 200:
        return resp.json()["access_token"]

    print(f"Login failed: {resp.status_code} - {resp.text}")
    return None


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--openai-key", help="store this key and generate with OpenAI")
    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    print("\n" + "=" * 60)
    print("  Email Writer - End-to-End Smoke Test")
    print("=" * 60 + "\n")

    log_info("Checking health...")
    try:
        requests.get(f"{base_url}/health", timeout=5).raise_for_status()
    except requests.RequestException as e:
        log_fail(f"Backend not reachable at {base_url}: {e}")
        sys.exit(1)
    log_pass("Backend is up")

    token = get_auth_token(base_url)
    if not token:
        log_fail("Could not authenticate.")
        sys.exit(1)
    log_pass("Authenticated successfully")
    headers = {"Authorization": f"Bearer {token}"}

    print("\n--- Test 1: Read LLM settings ---")
    resp = requests.get(f"{base_url}/api/settings/llm", headers=headers)
    if resp.status_code == 200:
        log_pass(f"Preferred provider: {resp.json()['settings']['preferred_llm']}")
    else:
        log_fail(f"Get settings failed: {resp.status_code} - {resp.text}")

    print("\n--- Test 2: Update LLM settings ---")
    update = {"preferred_llm": "openai", "openai_api_key": args.openai_key} if args.openai_key else {"preferred_llm": "ollama"}
    resp = requests.post(f"{base_url}/api/settings/llm", json=update, headers=headers)
    if resp.status_code != 200:
        log_fail(f"Update settings failed: {resp.status_code} - {resp.text}")
    elif args.openai_key and args.openai_key in resp.text:
        log_fail("API key was echoed back by the settings endpoint")
    else:
        log_pass(f"Settings saved for {resp.json()['settings']['preferred_llm']}")

    print("\n--- Test 3: List providers ---")
    resp = requests.get(f"{base_url}/api/settings/llm/providers", headers=headers)
    if resp.status_code == 200:
        usable = [p["id"] for p in resp.json() if p["implemented"] and p["configured"]]
        log_pass(f"Usable providers: {', '.join(usable) or 'none'}")
    else:
        log_fail(f"List providers failed: {resp.status_code}")

    print("\n--- Test 4: Reject empty input ---")
    resp = requests.post(
        f"{base_url}/api/email/generate", json={"rawThoughts": " ", "tone": "formal"}, headers=headers
    )
    if resp.status_code == 400:
        log_pass("Empty raw thoughts rejected")
    else:
        log_fail(f"Expected 400, got {resp.status_code} - {resp.text}")

    print("\n--- Test 5: Generate email ---")
    resp = requests.post(
        f"{base_url}/api/email/generate",
        json={
            "rawThoughts": "tell the team the release moves to Thursday, thank them for the extra effort",
            "tone": "friendly",
        },
        headers=headers,
        timeout=120,
    )
    if resp.status_code == 200:
        body = resp.json()
        log_pass(f"Generated with {body['llmUsed']}")
        print(body["generatedEmail"])
    else:
        log_fail(f"Generate failed: {resp.status_code} - {resp.text}")

    print("\n--- Test 6: History ---")
    resp = requests.get(f"{base_url}/api/email/history", params={"limit": 5}, headers=headers)
    if resp.status_code == 200:
        page = resp.json()
        log_pass(f"{page['total']} attempt(s) recorded, latest: {page['items'][0]['llm_used'] if page['items'] else '-'}")
    else:
        log_fail(f"History failed: {resp.status_code}")

    print("\n" + "=" * 60)
    if failures:
        log_fail(f"{failures} check(s) failed")
        sys.exit(1)
    log_pass("All checks passed")


if __name__ == "__main__":
    main()
