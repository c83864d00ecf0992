"""
Test 6: Transport (transport/)

Tests path patterns, layer dispatch, error flow, JSON body parsing and
the buffered response.
"""

import logging

import pytest

from nidus.faults import HttpError
from nidus.testing import TestClient, make_test_receive, make_test_scope
from nidus.transport import Request, Response, compile_path, json_body


# ============================================================================
# Path Patterns
# ============================================================================

class TestPathPatterns:

    def test_static_route(self):
        pattern = compile_path("/users")
        assert pattern.match("/users") == {}
        assert pattern.match("/users/") == {}
        assert pattern.match("/users/1") is None
        assert pattern.match("/usersx") is None

    def test_named_params(self):
        assert compile_path("/users/:id").match("/users/42") == {"id": "42"}
        assert compile_path("/users/{id}/posts/:post").match("/users/1/posts/9") == {"id": "1", "post": "9"}

    def test_wildcard(self):
        pattern = compile_path("/files/*")
        assert pattern.match("/files/a/b.txt") == {"*": "a/b.txt"}
        assert pattern.match("/files") == {}

    def test_root_route(self):
        assert compile_path("/").match("/") == {}
        assert compile_path("/").match("/x") is None

    def test_prefix_pattern(self):
        pattern = compile_path("/api", prefix=True)
        assert pattern.match("/api") == {}
        assert pattern.match("/api/users/1") == {}
        assert pattern.match("/apix") is None

    def test_root_prefix_matches_everything(self):
        assert compile_path("/", prefix=True).match("/anything/at/all") == {}


# ============================================================================
# Registration
# ============================================================================

class TestRegistration:

    def test_layers_in_registration_order(self, app):
        app.use(lambda req, res, next: next())
        app.get("/a", lambda req, res, next: res.send("a"))
        app.use_error(lambda err, req, res, next: next(err))

        assert [(layer.kind, layer.method, layer.path) for layer in app.layers] == [
            ("middleware", None, "/"),
            ("route", "GET", "/a"),
            ("error", None, "/"),
        ]

    def test_route_rejects_unknown_verb(self, app):
        with pytest.raises(ValueError):
            app.route("options", "/", lambda req, res, next: None)

    def test_rejects_non_callable(self, app):
        with pytest.raises(TypeError):
            app.get("/", "not callable")
        with pytest.raises(TypeError):
            app.use("/x", None)

    def test_registration_is_chainable(self, app):
        assert app.post("/a", lambda req, res, next: None) is app


# ============================================================================
# Dispatch
# ============================================================================

class TestDispatch:

    @pytest.mark.asyncio
    async def test_route_params(self, app, client):
        app.get("/users/:id", lambda req, res, next: res.json({"id": req.params["id"]}))

        resp = await client.get("/users/7")
        assert resp.status_code == 200
        assert resp.json() == {"id": "7"}
        assert resp.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        resp = await client.get("/missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found", "message": "Cannot GET /missing"}

    @pytest.mark.asyncio
    async def test_method_mismatch_is_not_found(self, app, client):
        app.post("/users", lambda req, res, next: res.send("created"))
        resp = await client.get("/users")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_middleware_runs_in_order(self, app, client, recorder):
        def first(req, res, next):
            recorder("first")
            next()

        async def second(req, res, next):
            recorder("second")
            next()

        def handler(req, res, next):
            recorder("route")
            res.send("ok")

        app.use(first)
        app.use("/api", second)
        app.get("/api/x", handler)

        resp = await client.get("/api/x")
        assert resp.text == "ok"
        assert recorder.calls == ["first", "second", "route"]

    @pytest.mark.asyncio
    async def test_middleware_after_route_does_not_run(self, app, client, recorder):
        app.get("/x", lambda req, res, next: res.send("x"))
        app.use(lambda req, res, next: recorder("late"))

        await client.get("/x")
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_scoped_middleware_skips_other_paths(self, app, client, recorder):
        def admin_only(req, res, next):
            recorder("admin")
            next()

        app.use("/admin", admin_only)
        app.get("/public", lambda req, res, next: res.send("public"))

        await client.get("/public")
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_next_skips_to_following_route(self, app, client):
        app.get("/x", lambda req, res, next: next())
        app.get("/x", lambda req, res, next: res.send("second"))

        resp = await client.get("/x")
        assert resp.text == "second"

    @pytest.mark.asyncio
    async def test_middleware_can_short_circuit(self, app, client, recorder):
        app.use(lambda req, res, next: res.status(401).json({"error": "nope"}))
        app.get("/x", lambda req, res, next: recorder("route"))

        resp = await client.get("/x")
        assert resp.status_code == 401
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_returning_without_response_falls_to_final(self, app, client):
        app.get("/x", lambda req, res, next: None)
        resp = await client.get("/x")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_head_uses_get_route_without_body(self, app, client):
        app.get("/x", lambda req, res, next: res.send("hello"))

        resp = await client.head("/x")
        assert resp.status_code == 200
        assert resp.body == b""
        assert resp.header("content-length") == "5"

    @pytest.mark.asyncio
    async def test_next_is_single_use(self, app, client, recorder, caplog):
        def twice(req, res, next):
            next()
            next()

        app.use(twice)
        app.get("/x", lambda req, res, next: recorder("route") or res.send("ok"))

        with caplog.at_level(logging.WARNING, logger="nidus.transport"):
            resp = await client.get("/x")

        assert resp.text == "ok"
        assert recorder.calls == ["route"]
        assert any("more than once" in record.getMessage() for record in caplog.records)


# ============================================================================
# Error Flow
# ============================================================================

class TestErrorFlow:

    @pytest.mark.asyncio
    async def test_raised_error_skips_to_error_layer(self, app, client, recorder):
        def boom(req, res, next):
            raise RuntimeError("boom")

        def error_handler(err, req, res, next):
            recorder(str(err))
            res.status(500).json({"handled": True})

        app.get("/x", boom)
        app.use(lambda req, res, next: recorder("skipped middleware"))
        app.use_error(error_handler)

        resp = await client.get("/x")
        assert resp.status_code == 500
        assert resp.json() == {"handled": True}
        assert recorder.calls == ["boom"]

    @pytest.mark.asyncio
    async def test_next_err_reaches_error_layer(self, app, client):
        app.use(lambda req, res, next: next(HttpError(403, "Forbidden zone")))
        app.use_error(lambda err, req, res, next: res.status(err.status).json({"error": err.message}))

        resp = await client.get("/anything")
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden zone"}

    @pytest.mark.asyncio
    async def test_error_layers_skipped_without_error(self, app, client, recorder):
        app.use_error(lambda err, req, res, next: recorder("error"))
        app.get("/x", lambda req, res, next: res.send("ok"))

        resp = await client.get("/x")
        assert resp.text == "ok"
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_error_handler_can_pass_on(self, app, client, recorder):
        async def first(err, req, res, next):
            recorder("first")
            next(err)

        app.get("/x", lambda req, res, next: next(ValueError("bad")))
        app.use_error(first)
        app.use_error(lambda err, req, res, next: res.status(422).json({"error": str(err)}))

        resp = await client.get("/x")
        assert resp.status_code == 422
        assert resp.json() == {"error": "bad"}
        assert recorder.calls == ["first"]

    @pytest.mark.asyncio
    async def test_unhandled_http_error_default_body(self, app, client):
        def missing(req, res, next):
            raise HttpError(404, "User not found")

        app.get("/users/:id", missing)
        resp = await client.get("/users/1")
        assert resp.status_code == 404
        assert resp.json() == {"error": "User not found", "code": "NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_unhandled_exception_hides_details(self, app, client):
        def boom(req, res, next):
            raise RuntimeError("database password is hunter2")

        app.get("/x", boom)
        resp = await client.get("/x")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}

    @pytest.mark.asyncio
    async def test_error_after_finish_keeps_response(self, app, client):
        def finish_then_fail(req, res, next):
            res.send("done")
            raise RuntimeError("late")

        app.get("/x", finish_then_fail)
        resp = await client.get("/x")
        assert resp.status_code == 200
        assert resp.text == "done"


# ============================================================================
# JSON Body
# ============================================================================

class TestJsonBody:

    @pytest.fixture
    def echo_app(self, app):
        app.use(json_body(limit=64))
        app.post("/echo", lambda req, res, next: res.json({"body": req.body}))
        app.get("/echo", lambda req, res, next: res.json({"body": req.body}))
        return app

    @pytest.mark.asyncio
    async def test_parses_json(self, echo_app):
        resp = await TestClient(echo_app).post("/echo", json={"name": "Ann"})
        assert resp.json() == {"body": {"name": "Ann"}}

    @pytest.mark.asyncio
    async def test_missing_body_is_empty_dict(self, echo_app):
        resp = await TestClient(echo_app).get("/echo")
        assert resp.json() == {"body": {}}

    @pytest.mark.asyncio
    async def test_non_json_content_type_ignored(self, echo_app):
        resp = await TestClient(echo_app).post(
            "/echo", body=b"name=Ann", headers={"content-type": "application/x-www-form-urlencoded"},
        )
        assert resp.json() == {"body": {}}

    @pytest.mark.asyncio
    async def test_invalid_json_is_400(self, echo_app):
        resp = await TestClient(echo_app).post(
            "/echo", body=b"{not json", headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON body", "code": "INVALID_JSON"}

    @pytest.mark.asyncio
    async def test_oversized_body_is_413(self, echo_app):
        resp = await TestClient(echo_app).post("/echo", json={"data": "x" * 200})
        assert resp.status_code == 413

    @pytest.mark.asyncio
    async def test_chunked_body(self):
        req = Request(
            make_test_scope(method="POST", path="/", headers=[("content-type", "application/json")]),
            make_test_receive(chunks=[b'{"a"', b": 1}"]),
        )
        res = Response()
        seen = []
        await json_body()(req, res, lambda err=None: seen.append(err))
        assert req.body == {"a": 1}
        assert req.raw_body == b'{"a": 1}'
        assert seen == [None]


# ============================================================================
# Request & Response
# ============================================================================

class TestRequest:

    def test_query_and_headers(self):
        scope = make_test_scope(
            method="GET",
            path="/search?q=nidus&tag=a&tag=b",
            headers=[("X-Token", "abc"), ("cookie", "session=s1; theme=dark")],
        )
        req = Request(scope, make_test_receive())
        assert req.path == "/search"
        assert req.query == {"q": "nidus", "tag": ["a", "b"]}
        assert req.header("x-token") == "abc"
        assert req.cookies == {"session": "s1", "theme": "dark"}
        assert req.body == {}
        assert req.params == {}


class TestResponse:

    def test_send_types(self):
        assert Response().send(b"raw").get_header("content-type") == "application/octet-stream"
        assert Response().send("<p>hi</p>").get_header("content-type") == "text/html; charset=utf-8"
        res = Response().send({"a": 1})
        assert res.body == b'{"a":1}'
        assert res.get_header("content-type").startswith("application/json")

    def test_last_write_wins_before_flush(self):
        res = Response().json({"first": True})
        res.status(201).json({"second": True})
        assert res.status_code == 201
        assert b"second" in res.body

    @pytest.mark.asyncio
    async def test_sent_response_is_frozen(self, caplog):
        messages = []

        async def send(message):
            messages.append(message)

        res = Response().status(201).send("created")
        await res.send_asgi(send)
        await res.send_asgi(send)
        assert len(messages) == 2

        with caplog.at_level(logging.WARNING, logger="nidus.transport"):
            res.status(500).send("changed")
        assert res.status_code == 201
        assert res.body == b"created"
        assert any("already sent" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_no_content_has_no_length(self):
        messages = []

        async def send(message):
            messages.append(message)

        await Response().status(204).end().send_asgi(send)
        headers = dict(messages[0]["headers"])
        assert b"content-length" not in headers
        assert messages[1]["body"] == b""


# ============================================================================
# Lifespan
# ============================================================================

def lifespan_channel(*types):
    messages = [{"type": message_type} for message_type in types]
    sent = []

    async def receive():
        return messages.pop(0)

    async def send(message):
        sent.append(message)

    return receive, send, sent


class TestLifespan:

    @pytest.mark.asyncio
    async def test_startup_and_shutdown_handlers(self, app, recorder):
        async def warm():
            recorder("startup")

        app.on_startup(warm)
        app.on_shutdown(lambda: recorder("shutdown"))

        receive, send, sent = lifespan_channel("lifespan.startup", "lifespan.shutdown")
        await app({"type": "lifespan"}, receive, send)

        assert recorder.calls == ["startup", "shutdown"]
        assert [message["type"] for message in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    @pytest.mark.asyncio
    async def test_failed_startup_reported(self, app):
        def broken():
            raise RuntimeError("no database")

        app.on_startup(broken)
        receive, send, sent = lifespan_channel("lifespan.startup")
        await app({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    @pytest.mark.asyncio
    async def test_failing_shutdown_handler_does_not_stop_others(self, app, recorder):
        def broken():
            raise RuntimeError("boom")

        app.on_shutdown(broken)
        app.on_shutdown(lambda: recorder("closed"))
        receive, send, sent = lifespan_channel("lifespan.startup", "lifespan.shutdown")
        await app({"type": "lifespan"}, receive, send)

        assert recorder.calls == ["closed"]
        assert sent[-1] == {"type": "lifespan.shutdown.complete"}
