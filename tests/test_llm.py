#!/usr/bin/env python3
"""
Tests for the Gemini backend client against a local aiohttp server
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from krishi.errors import BackendError, MalformedResponse
from krishi.llm import SAFETY_CATEGORIES, GeminiClient, build_payload, extract_answer

PATH = "/v1beta/models/gemini-pro:generateContent"


def answer_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


async def ask(handler, prompt="Farmer's question: aphids?", timeout=5.0):
    """Run one query against a throwaway server; returns (answer or error, requests)"""
    requests = []

    async def recording_handler(request):
        requests.append({"query": dict(request.query), "json": await request.json()})
        return await handler(request)

    app = web.Application()
    app.router.add_post(PATH, recording_handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        client = GeminiClient(api_key="test-key", endpoint=str(server.make_url(PATH)), timeout=timeout)
        async with client:
            try:
                result = await client.query(prompt)
            except BackendError as e:
                result = e
    finally:
        await server.close()
    return result, requests


class TestPayload:
    """Request and response shapes."""

    def test_build_payload_defaults(self):
        payload = build_payload("hello")
        assert payload["contents"] == [{"parts": [{"text": "hello"}]}]
        assert payload["generationConfig"] == {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 200,
        }
        assert [s["category"] for s in payload["safetySettings"]] == SAFETY_CATEGORIES
        assert {s["threshold"] for s in payload["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}

    def test_extract_answer_strips(self):
        assert extract_answer(answer_body("  Use neem oil.\n")) == "Use neem oil."

    @pytest.mark.parametrize("data", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        answer_body("   "),
        None,
    ])
    def test_extract_answer_malformed(self, data):
        with pytest.raises(MalformedResponse) as info:
            extract_answer(data)
        assert info.value.kind == BackendError.MALFORMED


class TestGeminiClient:
    """HTTP behaviour of GeminiClient."""

    def test_answer(self):
        async def handler(request):
            return web.json_response(answer_body("Water deeply twice a week."))

        result, requests = asyncio.run(ask(handler))
        assert result == "Water deeply twice a week."
        assert requests[0]["query"] == {"key": "test-key"}
        assert requests[0]["json"]["contents"][0]["parts"][0]["text"] == "Farmer's question: aphids?"

    def test_status_error(self):
        async def handler(request):
            return web.Response(status=500, text="internal")

        result, _ = asyncio.run(ask(handler))
        assert isinstance(result, BackendError)
        assert result.kind == BackendError.STATUS
        assert result.status == 500

    def test_missing_answer_is_malformed(self):
        async def handler(request):
            return web.json_response({"promptFeedback": {"blockReason": "SAFETY"}})

        result, _ = asyncio.run(ask(handler))
        assert isinstance(result, MalformedResponse)

    def test_non_json_is_malformed(self):
        async def handler(request):
            return web.Response(text="<html>oops</html>", content_type="text/html")

        result, _ = asyncio.run(ask(handler))
        assert isinstance(result, MalformedResponse)

    def test_timeout(self):
        async def handler(request):
            await asyncio.sleep(0.5)
            return web.json_response(answer_body("too late"))

        result, _ = asyncio.run(ask(handler, timeout=0.1))
        assert isinstance(result, BackendError)
        assert result.kind == BackendError.TIMEOUT

    def test_network_error(self):
        async def scenario():
            endpoint = f"http://127.0.0.1:{test_utils.unused_port()}{PATH}"
            async with GeminiClient(api_key="k", endpoint=endpoint, timeout=2.0) as client:
                with pytest.raises(BackendError) as info:
                    await client.query("hello")
            return info.value

        error = asyncio.run(scenario())
        assert error.kind == BackendError.NETWORK

    def test_from_config(self):
        client = GeminiClient.from_config({
            "api_key": None,
            "endpoint": "http://localhost/x",
            "model": "gemini-test",
            "timeout": 3.0,
            "temperature": 0.1,
            "top_k": 5,
            "top_p": 0.5,
            "max_output_tokens": 64,
        })
        assert client.endpoint == "http://localhost/x"
        assert client.timeout == 3.0
        assert client.generation["top_k"] == 5
