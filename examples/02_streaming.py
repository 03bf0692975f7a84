"""
Streaming Examples

Demonstrates stream mode: chunked download, duplex upload and
lifecycle events.
"""

import asyncio
import os
import tempfile

from http_request_core import AsyncHTTPClient, HTTPError, stream_get


async def download_to_file():
    """Write response chunks to a file as they arrive."""
    print("\n=== Chunked Download ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        output_path = os.path.join(tmpdir, "bytes.bin")
        total = 0

        async with stream_get("https://httpbin.org/stream-bytes/65536?chunk_size=4096") as stream:
            with open(output_path, "wb") as f:
                async for chunk in stream:
                    f.write(chunk)
                    total += len(chunk)

        print(f"Downloaded: {total} bytes")
        print(f"File size: {os.path.getsize(output_path)} bytes")


async def duplex_upload():
    """Write the request body piece by piece, then read the response."""
    print("\n=== Duplex Upload ===")

    async with AsyncHTTPClient() as client:
        async with client.stream_post("https://httpbin.org/post") as stream:
            stream.on("response", lambda response: print(f"Status: {response.status_code}"))

            for i in range(3):
                stream.write(f"line {i}\n".encode())
            stream.end()

            body = await stream.read()

    print(f"Echoed {len(body)} bytes")


async def lifecycle_events():
    """Redirect, response and error events."""
    print("\n=== Lifecycle Events ===")

    async with AsyncHTTPClient() as client:
        async with client.stream_get("https://httpbin.org/redirect/2") as stream:
            stream.on("redirect", lambda response, descriptor: print(f"Redirect -> {descriptor.href}"))
            stream.on("response", lambda response: print(f"Final URL: {response.url}"))
            await stream.read()

        async with client.stream_get("https://httpbin.org/status/503", retries=0) as stream:
            stream.on("error", lambda error: print(f"Error: {type(error).__name__}: {error}"))
            try:
                await stream.response()
            except HTTPError as e:
                print(f"response() raised {e.status_code}, body: {len(await stream.read())} bytes")


async def main():
    await download_to_file()
    await duplex_upload()
    await lifecycle_events()


if __name__ == "__main__":
    asyncio.run(main())
