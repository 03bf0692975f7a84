"""
Basic Usage Examples

Demonstrates buffered GET/POST requests, JSON bodies, status errors
and environment configuration.
"""

import asyncio
from dataclasses import replace

from http_request_core import (
    AsyncHTTPClient,
    HTTPError,
    LoggingConfig,
    MaxRedirectsError,
    RequestError,
    get,
    load_from_env,
)


async def one_shot_get():
    """Module level helper, one client per call."""
    print("\n=== One-shot GET ===")

    response = await get("https://httpbin.org/get", query={"page": 1}, json=True)

    print(f"Status: {response.status_code}")
    print(f"URL: {response.url}")
    print(f"Args: {response.body['args']}")


async def post_with_json():
    """POST request with JSON body."""
    print("\n=== POST with JSON ===")

    async with AsyncHTTPClient(headers={"X-Service": "examples"}) as client:
        response = await client.post(
            "https://httpbin.org/post",
            body={"title": "My Post", "userId": 1},
            json=True,
        )

    print(f"Status: {response.status_code}")
    print(f"Echoed: {response.body['json']}")


async def redirects():
    """Redirects are followed up to 10 hops."""
    print("\n=== Redirects ===")

    async with AsyncHTTPClient() as client:
        response = await client.get("https://httpbin.org/redirect/3")
        print(f"Requested: {response.request_url}")
        print(f"Final: {response.url}")
        print(f"Hops: {len(response.redirect_urls)}")

        try:
            await client.get("https://httpbin.org/redirect/11")
        except MaxRedirectsError as e:
            print(f"Stopped: {e}")


async def error_handling():
    """HTTPError keeps the response, RequestError keeps the code."""
    print("\n=== Error Handling ===")

    async with AsyncHTTPClient(retries=1) as client:
        try:
            await client.get("https://httpbin.org/status/404")
        except HTTPError as e:
            print(f"HTTP error: {e.status_code} {e.status_message}")

        try:
            await client.get("http://127.0.0.1:9/", timeout=200)
        except RequestError as e:
            print(f"Request error: {e.code} {e.message}")


async def env_config():
    """Client defaults from HTTP_REQUEST_* variables."""
    print("\n=== Environment Config ===")

    config = load_from_env(env_file=None, timeout_ms=5000)
    print(f"Retries: {config.retry.retries}")
    print(f"Timeout: {config.timeout_ms} ms")

    logging_config = LoggingConfig.create(level="INFO", format="text")
    async with AsyncHTTPClient(replace(config, logging=logging_config)) as client:
        await client.get("https://httpbin.org/get")


async def main():
    await one_shot_get()
    await post_with_json()
    await redirects()
    await error_handling()
    await env_config()


if __name__ == "__main__":
    asyncio.run(main())
