"""Smoke check against a running server: create, list, fetch, then wait.

Run with:
    python3 scripts/smoke_api.py [base_url] [--wait SECONDS]

Defaults to http://localhost:8000. Exits non-zero on the first failed step.
"""

import sys
import time

import httpx

OUTLINE = "A simple introduction to TypeScript variables"


def _fail(step: str, response: httpx.Response) -> None:
    print(f"   {step} failed: {response.status_code} {response.text[:200]}")
    sys.exit(1)


def run(base_url: str, wait_seconds: float) -> None:
    with httpx.Client(base_url=base_url, timeout=30) as client:
        print("1. Creating lesson...")
        resp = client.post("/api/lessons", json={"outline": OUTLINE})
        if resp.status_code != 200:
            _fail("Create", resp)
        lesson_id = resp.json()["id"]
        print("   Lesson created with ID:", lesson_id)

        print("2. Listing lessons...")
        resp = client.get("/api/lessons")
        if resp.status_code != 200:
            _fail("List", resp)
        print("   Fetched", len(resp.json()), "lessons")

        print("3. Fetching the lesson...")
        resp = client.get(f"/api/lessons/{lesson_id}")
        if resp.status_code != 200:
            _fail("Get", resp)
        lesson = resp.json()
        print("   Fetched lesson:", lesson["title"], f"({lesson['status']})")

        if wait_seconds:
            print(f"4. Waiting up to {wait_seconds:.0f}s for generation...")
            deadline = time.monotonic() + wait_seconds
            while lesson["status"] == "pending" and time.monotonic() < deadline:
                time.sleep(5)
                lesson = client.get(f"/api/lessons/{lesson_id}").json()
            print("   Final status:", lesson["status"], f"content length={len(lesson.get('content', ''))}")

    print("All API checks passed!")


if __name__ == "__main__":
    args = sys.argv[1:]
    wait = 0.0
    if "--wait" in args:
        idx = args.index("--wait")
        wait = float(args[idx + 1])
        del args[idx:idx + 2]
    run(args[0] if args else "http://localhost:8000", wait)
