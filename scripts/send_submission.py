"""Post a sample submission-created event to a running webhook."""
import argparse
import asyncio
import json

import httpx

BASE_URL = "http://localhost:8000"
PATH = "/api/v1/submissions"


def build_event(args: argparse.Namespace) -> dict:
    data = {
        "name": args.name,
        "comment": args.comment,
        "article_slug": args.slug,
        "article_title": args.title,
    }
    if args.email:
        data["email"] = args.email
    if args.spam:
        data["bot-field"] = "spam"
    payload = {"form_name": args.form, "data": data}
    if args.submission_id:
        payload["id"] = args.submission_id
    return {"payload": payload}


async def send(base_url: str, event: dict) -> None:
    async with httpx.AsyncClient(base_url=base_url) as client:
        try:
            resp = await client.post(PATH, json=event)
        except httpx.HTTPError as e:
            print(f"ERROR: Cannot reach {base_url}: {e}")
            return

    print(f"Status: {resp.status_code}")
    print(f"Store calls: {resp.headers.get('X-Store-Calls', '?')}  "
          f"Time: {resp.headers.get('X-Response-Time-Ms', '?')}ms")
    try:
        print(json.dumps(resp.json(), indent=2, ensure_ascii=False))
    except ValueError:
        print(resp.text)


def main():
    parser = argparse.ArgumentParser(description="Send a sample comment submission")
    parser.add_argument("--base-url", default=BASE_URL, help="Webhook base URL")
    parser.add_argument("--form", default="comments-article", help="Form name")
    parser.add_argument("--name", default="Ana")
    parser.add_argument("--comment", default="Great post!")
    parser.add_argument("--slug", default="intro")
    parser.add_argument("--title", default="Intro")
    parser.add_argument("--email", default=None)
    parser.add_argument("--submission-id", default=None)
    parser.add_argument("--spam", action="store_true", help="Fill the honeypot field")
    args = parser.parse_args()

    asyncio.run(send(args.base_url, build_event(args)))


if __name__ == "__main__":
    main()
