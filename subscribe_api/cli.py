import argparse
import asyncio
import sys
from urllib.parse import urlsplit

import httpx

from subscribe_api.client import SubmitButton, SubscribeForm, SubscriptionFormController, TextInput
from subscribe_api.core.startup_checks import validate_production_settings


def _split_endpoint(raw_url: str) -> tuple[str, str]:
    parts = urlsplit((raw_url or "").strip())
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise SystemExit("Endpoint must be an absolute http(s) URL")
    return f"{parts.scheme}://{parts.netloc}", parts.path or "/api/subscribe"


async def subscribe(email: str, *, endpoint: str, website: str = "", timeout: float = 10.0) -> bool:
    base_url, path = _split_endpoint(endpoint)
    form = SubscribeForm(
        desktop_email=TextInput(email),
        honeypot=TextInput(website),
        buttons=[SubmitButton("SUBSCRIBE")],
    )
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout, headers={"Origin": base_url}) as client:
        controller = SubscriptionFormController(form, client, endpoint=path)
        outcome = await controller.submit()
        if controller.pending_reset is not None:
            controller.pending_reset.cancel()
    print(outcome.message)
    return outcome.ok


def check_config() -> None:
    try:
        validate_production_settings()
    except RuntimeError as exc:
        raise SystemExit(str(exc))
    print("Configuration OK")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Newsletter subscription utilities")
    sub = parser.add_subparsers(dest="command", required=True)

    subscribe_cmd = sub.add_parser("subscribe", help="Submit an email address to a subscribe endpoint")
    subscribe_cmd.add_argument("email")
    subscribe_cmd.add_argument("--endpoint", default="http://localhost:8000/api/subscribe")
    subscribe_cmd.add_argument("--timeout", type=float, default=10.0)

    sub.add_parser("check-config", help="Run the production configuration checks")

    args = parser.parse_args(argv)
    if args.command == "subscribe":
        ok = asyncio.run(subscribe(args.email, endpoint=args.endpoint, timeout=args.timeout))
        if not ok:
            sys.exit(1)
    elif args.command == "check-config":
        check_config()


if __name__ == "__main__":
    main()
