"""
Tests for the data API client, response sanitizing and the end-to-end
resolve_and_fetch / handle_prompt entry points (data API mocked with httpx.MockTransport).
"""
from __future__ import annotations
import json
import httpx
import pytest

from pipeline import config
from pipeline.data_client import build_headers, build_url, sanitize_headers, sanitize_response
from pipeline.errors import ConfigurationError
from pipeline.main import handle_prompt, insert_records, resolve_and_fetch, run_query
from pipeline.schema import FetchResult


# =============================================================================
# URL / HEADERS
# =============================================================================

class TestRequestBuilding:

    def test_url_without_query(self):
        assert build_url("https://x.supabase.co", "todos") == "https://x.supabase.co/rest/v1/todos"

    def test_url_with_query_is_not_encoded(self):
        url = build_url("https://x.supabase.co/", "todos", "select=*&title=ilike.*dog*")
        assert url == "https://x.supabase.co/rest/v1/todos?select=*&title=ilike.*dog*"

    def test_read_headers(self):
        headers = build_headers("k")
        assert headers == {
            "apikey": "k",
            "Authorization": "Bearer k",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def test_write_headers(self):
        assert build_headers("k", write=True)["Prefer"] == "return=representation"


class TestSanitize:

    RAW = [
        ("Content-Type", "application/json"),
        ("X-Request-Id", "abc"),
        ("x-ratelimit-remaining", "10"),
        ("Accept", "application/json"),
        ("Set-Cookie", "session=1"),
        ("Server", "cloudflare"),
        ("Date", "Mon, 01 Jan 2024 00:00:00 GMT"),
    ]

    def test_allow_list(self):
        kept = sanitize_headers(httpx.Headers(self.RAW))
        assert sorted(kept.keys()) == ["accept", "content-type", "x-ratelimit-remaining", "x-request-id"]

    def test_idempotent(self):
        once = sanitize_headers(httpx.Headers(self.RAW))
        twice = sanitize_headers(once)
        assert list(once.multi_items()) == list(twice.multi_items())

    @pytest.mark.asyncio
    async def test_response_hook(self):
        response = httpx.Response(200, headers=self.RAW, content=b'{"id":1}')
        await sanitize_response(response)
        assert "set-cookie" not in response.headers
        assert response.headers["x-request-id"] == "abc"
        assert response.text == '{"id":1}'

    @pytest.mark.asyncio
    async def test_client_applies_hook(self, make_handler, make_client):
        handler = make_handler(headers=dict(self.RAW))
        async with make_client(handler) as client:
            response = await client._client.get("https://example.supabase.co/rest/v1/todos")
        assert "server" not in response.headers
        assert "x-request-id" in response.headers


# =============================================================================
# FETCH / INSERT
# =============================================================================

class TestFetch:

    @pytest.mark.asyncio
    async def test_success_returns_raw_body(self, make_handler, make_client):
        handler = make_handler(body='{"id":1}')
        async with make_client(handler) as client:
            result = await client.fetch("todos", "select=*")
        assert result == FetchResult(data='{"id":1}', error=None)

    @pytest.mark.asyncio
    async def test_not_found(self, make_handler, make_client):
        handler = make_handler(status_code=404, body="not found")
        async with make_client(handler) as client:
            result = await client.fetch("todos", "select=*")
        assert result == FetchResult(data=None, error="HTTP 404 - not found")

    @pytest.mark.asyncio
    async def test_request_shape(self, handler, make_client):
        async with make_client(handler) as client:
            await client.fetch("todos", "select=*&title=ilike.*dog*")
        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == "https://example.supabase.co/rest/v1/todos?select=*&title=ilike.*dog*"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["authorization"] == "Bearer test-key"
        assert request.headers["accept"] == "application/json"
        assert "prefer" not in request.headers

    @pytest.mark.asyncio
    async def test_empty_query(self, handler, make_client):
        async with make_client(handler) as client:
            await client.fetch("users")
        assert str(handler.requests[0].url) == "https://example.supabase.co/rest/v1/users"

    @pytest.mark.asyncio
    async def test_transport_failure(self, make_handler, make_client):
        handler = make_handler(exc=httpx.ConnectError("connection refused"))
        async with make_client(handler) as client:
            result = await client.fetch("todos", "select=*")
        assert result.data is None
        assert result.error.startswith("HTTP request failed")

    @pytest.mark.asyncio
    async def test_timeout(self, make_handler, make_client):
        handler = make_handler(exc=httpx.ReadTimeout("timed out"))
        async with make_client(handler) as client:
            result = await client.fetch("todos")
        assert not result.ok

    @pytest.mark.asyncio
    async def test_invalid_utf8(self, make_handler, make_client):
        handler = make_handler(body=b"\xff\xfe\xfa")
        async with make_client(handler) as client:
            result = await client.fetch("todos")
        assert result == FetchResult(data=None, error="Invalid response encoding")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [
        "select=*&title=ilike.*a\x07b*",
        "select=*&title=ilike.*" + "x" * 70000 + "*",
    ])
    async def test_unsendable_url(self, handler, make_client, query):
        async with make_client(handler) as client:
            result = await client.fetch("todos", query)
        assert result.data is None
        assert result.error.startswith("HTTP request failed: InvalidURL")
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_unknown_table_not_sent(self, handler, make_client):
        async with make_client(handler) as client:
            result = await client.fetch("orders", "select=*")
        assert "Unknown table" in result.error
        assert handler.requests == []


class TestInsert:

    @pytest.mark.asyncio
    async def test_insert_rows(self, make_handler, make_client):
        handler = make_handler(status_code=201, body='[{"id":3,"title":"Read book"}]')
        async with make_client(handler) as client:
            result = await insert_records("todos", [{"title": "Read book"}], client=client)
        assert result.ok
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://example.supabase.co/rest/v1/todos"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == [{"title": "Read book"}]

    @pytest.mark.asyncio
    async def test_insert_json_string_sent_as_is(self, handler, make_client):
        async with make_client(handler) as client:
            await client.insert("posts", '{"title":"hi"}')
        assert handler.requests[0].content == b'{"title":"hi"}'

    @pytest.mark.asyncio
    async def test_insert_conflict(self, make_handler, make_client):
        handler = make_handler(status_code=409, body="duplicate key")
        async with make_client(handler) as client:
            result = await client.insert("todos", {"id": 1})
        assert result.error == "HTTP 409 - duplicate key"


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestConfig:

    @pytest.fixture(autouse=True)
    def no_env(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "REPO_ROOT", tmp_path)
        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "DATA_API_TIMEOUT_SECONDS"):
            monkeypatch.delenv(name, raising=False)
        return tmp_path

    def test_missing_url(self):
        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            config.load_data_api_settings()

    def test_missing_key(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        with pytest.raises(ConfigurationError, match="SUPABASE_ANON_KEY"):
            config.load_data_api_settings()

    def test_dotenv_fallback(self, no_env):
        (no_env / ".env").write_text('SUPABASE_URL="https://x.supabase.co/"\nSUPABASE_ANON_KEY=abc\n')
        settings = config.load_data_api_settings()
        assert settings.base_url == "https://x.supabase.co"
        assert settings.api_key == "abc"

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "abc")
        monkeypatch.setenv("DATA_API_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError):
            config.load_data_api_settings()

    @pytest.mark.asyncio
    async def test_resolve_and_fetch_reports_missing_config(self):
        result = await resolve_and_fetch("show all todos")
        assert result == FetchResult(data=None, error="SUPABASE_URL not set (env or .env).")


# =============================================================================
# END TO END
# =============================================================================

class TestResolveAndFetch:

    @pytest.mark.asyncio
    async def test_heuristic_path(self, handler, make_client):
        async with make_client(handler) as client:
            result = await resolve_and_fetch("show completed todos", client=client)
        assert result.ok
        assert json.loads(result.data)[0]["title"] == "Buy milk"
        assert handler.requests[0].url.query == b"select=*&is_done=eq.true"

    @pytest.mark.asyncio
    async def test_remote_path(self, handler, make_client, fake_llm):
        llm = fake_llm(json.dumps({"table": "users", "query": "select=id,name", "error": None}))
        async with make_client(handler) as client:
            await resolve_and_fetch("who are the users", llm=llm, client=client)
        assert handler.requests[0].url.path == "/rest/v1/users"

    @pytest.mark.asyncio
    async def test_parse_error_skips_http(self, handler, make_client):
        async with make_client(handler) as client:
            result = await resolve_and_fetch("hello there", client=client)
        assert result.data is None
        assert "Unable to parse" in result.error
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_control_character_in_quoted_term(self, handler, make_client):
        async with make_client(handler) as client:
            result = await resolve_and_fetch('show todos "a\tb"', client=client)
        assert result.ok
        assert handler.requests[0].url.query == b"select=*"

    @pytest.mark.asyncio
    async def test_control_character_in_remote_reply(self, handler, make_client, fake_llm):
        llm = fake_llm(json.dumps({"table": "todos", "query": "select=*&title=ilike.*a\x07b*", "error": None}))
        async with make_client(handler) as client:
            result = await resolve_and_fetch("show completed todos", llm=llm, client=client)
        assert result.ok
        assert handler.requests[0].url.query == b"select=*&is_done=eq.true"

    @pytest.mark.asyncio
    async def test_hash_in_quoted_term_does_not_truncate(self, handler, make_client):
        async with make_client(handler) as client:
            result = await resolve_and_fetch('show completed todos "milk #2"', client=client)
        assert result.ok
        url = handler.requests[0].url
        assert url.query == b"select=*&is_done=eq.true"
        assert url.fragment == ""

    @pytest.mark.asyncio
    async def test_oversized_input(self, handler, make_client):
        async with make_client(handler) as client:
            result = await resolve_and_fetch('show todos "' + "x" * 70000 + '"', client=client)
        assert isinstance(result, FetchResult)
        assert result.data is None
        assert result.error.startswith("HTTP request failed")
        assert handler.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["\x00", "show todos \x1b[2J", "\u200b" * 5000, "todos " + "\u00e9" * 20000])
    async def test_any_input_gives_structured_result(self, handler, make_client, text):
        async with make_client(handler) as client:
            result = await resolve_and_fetch(text, client=client)
        assert isinstance(result, FetchResult)
        assert (result.data is None) != (result.error is None)

    @pytest.mark.asyncio
    async def test_upstream_error(self, make_handler, make_client):
        handler = make_handler(status_code=500, body="boom")
        async with make_client(handler) as client:
            result = await resolve_and_fetch("get all todos", client=client)
        assert result.error == "HTTP 500 - boom"

    @pytest.mark.asyncio
    async def test_run_query_reports_parse(self, handler, make_client):
        async with make_client(handler) as client:
            response = await run_query("show top 5 todos", client=client)
        assert response["parse"] == {"table": "todos", "query": "select=*&limit=5", "error": None}
        assert response["error"] is None


class TestHandlePrompt:

    @pytest.mark.asyncio
    async def test_database_prompt(self, handler, make_client):
        async with make_client(handler) as client:
            reply = await handle_prompt("show all todos", client=client)
        assert reply.startswith("Database query executed successfully. Results:\n")

    @pytest.mark.asyncio
    async def test_database_prompt_failure(self, make_handler, make_client):
        handler = make_handler(status_code=401, body="bad key")
        async with make_client(handler) as client:
            reply = await handle_prompt("show all todos", client=client)
        assert reply == "Database query failed: HTTP 401 - bad key"

    @pytest.mark.asyncio
    async def test_general_prompt(self, fake_llm):
        chat = fake_llm("Paris.")
        assert await handle_prompt("capital of france?", chat_llm=chat) == "Paris."
        assert [m["role"] for m in chat.calls[0]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_general_prompt_timeout(self, fake_llm):
        reply = await handle_prompt("capital of france?", chat_llm=fake_llm(exc=TimeoutError("Request timed out")))
        assert "took too long" in reply

    @pytest.mark.asyncio
    async def test_general_prompt_without_key(self):
        reply = await handle_prompt("capital of france?")
        assert "not configured" in reply
