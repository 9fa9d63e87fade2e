import asyncio
import contextlib
import os
import sys

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

import httpx
from anyio import create_task_group

from oauth_handoff import HandoffHandlers


def fake_github(request: httpx.Request) -> httpx.Response:
    """Stands in for https://github.com/login/oauth/access_token."""
    return httpx.Response(200, json={"access_token": "gho_example", "token_type": "bearer", "scope": "repo,user"})


async def main() -> None:
    """
    Walks through both halves of the handoff without a real GitHub account:
    - `begin` builds the authorize URL the popup is redirected to
    - `complete` exchanges the code and renders the handoff document
    """
    print(">>> Starting OAuth handoff walkthrough")

    config = {
        "origin": "admin.example.com,https://cms.example.com:8443",
        "complete_url": "https://auth.example.com/complete",
        "admin_panel_url": "https://admin.example.com/",
        "oauth_client_id": "example-client-id",
        "oauth_client_secret": "example-client-secret",
    }

    async with HandoffHandlers(config, transport=httpx.MockTransport(fake_github)) as handlers:
        print(f">>> Allowed origins: {', '.join(handlers.origin_pattern.origins)}")
        print(f">>> Origin pattern: {handlers.origin_pattern.to_js_literal()}")

        request = await handlers.begin_request()
        print(f">>> Redirect the popup to: {request.uri}")

        # Two popups completing at once share the cached template partials.
        documents: dict[str, str] = {}

        async def complete(label: str, code: str | None) -> None:
            documents[label] = await handlers.complete(code)

        async with create_task_group() as tg:
            tg.start_soon(complete, "with code", "code-from-github")
            tg.start_soon(complete, "without code", None)

        for label, document in documents.items():
            status = "success" if 'var status = "success";' in document else "error"
            print(f">>> Handoff document {label}: {len(document)} bytes, status {status}")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
