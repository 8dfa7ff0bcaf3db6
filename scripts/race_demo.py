#!/usr/bin/env python3
"""Concurrent position updates against one lesson.

RUN:  python scripts/race_demo.py MEMBER_ID LESSON_ID

Sends CONCURRENT_REQUESTS position reports for the same (member, lesson)
at once, each with a different later position, then prints what each
request answered.  Updates are read-compare-write without row locks, so
several requests can report "Lesson time saved!" and the stored position
is whichever write committed last, not necessarily the largest.

Prerequisites:
  - httpx installed: pip install -e ".[scripts]"
  - The API must be running: uvicorn lessontime.main:app --port 8000
  - The member_lesson row must exist and be unfinished
"""

from __future__ import annotations

import asyncio
import sys

import httpx

BASE_URL = "http://localhost:8000"
CONCURRENT_REQUESTS = 10


async def _report(
    client: httpx.AsyncClient, member_id: int, lesson_id: int, position: str
) -> tuple[str, int, str]:
    resp = await client.post(
        "/lesson/dwUpdateTime",
        json={"memberId": member_id, "lessonId": lesson_id, "currentTime": position},
    )
    if resp.headers.get("content-type", "").startswith("application/json"):
        body = resp.json()
        message = body.get("message") or body.get("detail", "")
    else:
        message = resp.text
    return position, resp.status_code, message


async def main(member_id: int, lesson_id: int) -> None:
    positions = [f"{50 + i:02d}:00" for i in range(CONCURRENT_REQUESTS)]

    print("Concurrent update demo")
    print("=" * 50)
    print(f"Target: {BASE_URL}  member={member_id} lesson={lesson_id}")
    print(f"Positions: {', '.join(positions)}")
    print()

    async with httpx.AsyncClient(base_url=BASE_URL, timeout=10) as client:
        results = await asyncio.gather(
            *(_report(client, member_id, lesson_id, p) for p in positions)
        )

    saved = 0
    for position, status_code, message in results:
        print(f"  {position}  {status_code}  {message}")
        if status_code == 200 and message == "Lesson time saved!":
            saved += 1

    print()
    print(f"{saved}/{CONCURRENT_REQUESTS} requests reported a saved position.")
    if saved > 1:
        print("More than one write went through: the stored CURRENT_TIME is")
        print("the last committed one, which may be smaller than the largest.")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(int(sys.argv[1]), int(sys.argv[2])))
