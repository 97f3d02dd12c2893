"""
Postify Backend — Posts API Integration Tests
===============================================

What:  Exercises the /api/posts routes end to end over HTTP.
How:   HTTPX AsyncClient → create_app() → PostService → SQLite (aiosqlite).
       Each test gets a fresh database file from the conftest fixtures.
"""

import logging
import math
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.main import create_app


async def _create(client, headers, content="hello", **extra):
    response = await client.post("/api/posts", json={"content": content, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("bob")


class TestListPosts:

    @pytest.mark.asyncio
    async def test_empty_feed(self, test_client):
        response = await test_client.get("/api/posts")

        assert response.status_code == 200
        assert response.json() == {
            "posts": [],
            "currentPage": 1,
            "totalPages": 0,
            "totalPosts": 0,
        }

    @pytest.mark.asyncio
    async def test_pagination_counts(self, test_client, alice, auth_headers):
        headers = auth_headers(alice)
        for i in range(12):
            await _create(test_client, headers, content=f"post {i}")

        limit = 5
        seen = []
        for page in (1, 2, 3):
            response = await test_client.get(f"/api/posts?page={page}&limit={limit}")
            body = response.json()

            assert body["currentPage"] == page
            assert body["totalPosts"] == 12
            assert body["totalPages"] == math.ceil(12 / limit)
            assert len(body["posts"]) <= limit
            seen.extend(body["posts"])

        assert len(seen) == 12
        assert len({post["id"] for post in seen}) == 12

        created = [post["createdAt"] for post in seen]
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, test_client, alice, auth_headers):
        await _create(test_client, auth_headers(alice))

        body = (await test_client.get("/api/posts?page=9")).json()

        assert body["posts"] == []
        assert body["totalPosts"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["page=abc&limit=xyz", "page=0&limit=-3", "page=&limit="])
    async def test_invalid_params_fall_back_to_defaults(self, test_client, query):
        response = await test_client.get(f"/api/posts?{query}")

        assert response.status_code == 200
        assert response.json()["currentPage"] == 1


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_create_returns_resolved_post(self, test_client, alice, auth_headers):
        body = await _create(test_client, auth_headers(alice), content="  hello  ", image="https://img.example/a.png")

        assert body["content"] == "hello"
        assert body["image"] == "https://img.example/a.png"
        assert body["user"] == {"id": str(alice.id), "username": "alice"}
        assert body["likes"] == []
        assert body["comments"] == []
        assert "createdAt" in body and "updatedAt" in body

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"content": ""}, {"content": "   "}])
    async def test_blank_content_rejected_and_not_persisted(
        self, test_client, alice, auth_headers, payload
    ):
        response = await test_client.post("/api/posts", json=payload, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["message"] == "Post content is required"
        assert (await test_client.get("/api/posts")).json()["totalPosts"] == 0

    @pytest.mark.asyncio
    async def test_too_long_content_rejected(self, test_client, alice, auth_headers):
        response = await test_client.post(
            "/api/posts", json={"content": "x" * 5001}, headers=auth_headers(alice)
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("content:")

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.post("/api/posts", json={"content": "hello"})

        assert response.status_code == 401
        assert response.json()["message"] == "No token, authorization denied"
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_rejects_bad_token(self, test_client):
        response = await test_client.post(
            "/api/posts",
            json={"content": "hello"},
            headers={"Authorization": "Bearer nonsense"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Token is not valid"


class TestGetPost:

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client):
        response = await test_client.get("/api/posts/not-an-id")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, test_client):
        response = await test_client.get(f"/api/posts/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"


class TestUpdatePost:

    @pytest.mark.asyncio
    async def test_non_owner_forbidden_and_post_unchanged(
        self, test_client, alice, bob, auth_headers
    ):
        post = await _create(test_client, auth_headers(alice))

        response = await test_client.put(
            f"/api/posts/{post['id']}", json={"content": "hijacked"}, headers=auth_headers(bob)
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to edit this post"
        stored = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert stored["content"] == "hello"

    @pytest.mark.asyncio
    async def test_image_kept_when_omitted_and_cleared_when_empty(
        self, test_client, alice, auth_headers
    ):
        headers = auth_headers(alice)
        post = await _create(test_client, headers, image="https://img.example/a.png")
        url = f"/api/posts/{post['id']}"

        kept = await test_client.put(url, json={"content": "edited"}, headers=headers)
        assert kept.status_code == 200
        assert kept.json()["content"] == "edited"
        assert kept.json()["image"] == "https://img.example/a.png"

        cleared = await test_client.put(url, json={"content": "edited", "image": ""}, headers=headers)
        assert cleared.json()["image"] is None

    @pytest.mark.asyncio
    async def test_update_missing_post(self, test_client, alice, auth_headers):
        response = await test_client.put(
            f"/api/posts/{uuid.uuid4()}", json={"content": "x"}, headers=auth_headers(alice)
        )

        assert response.status_code == 404


class TestLikes:

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_state(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice))
        url = f"/api/posts/{post['id']}/like"

        liked = await test_client.post(url, headers=auth_headers(bob))
        assert liked.status_code == 200
        assert liked.json()["likes"] == [str(bob.id)]

        unliked = await test_client.post(url, headers=auth_headers(bob))
        assert unliked.json()["likes"] == []

    @pytest.mark.asyncio
    async def test_likes_keep_order_and_are_per_user(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice))
        url = f"/api/posts/{post['id']}/like"

        await test_client.post(url, headers=auth_headers(alice))
        body = (await test_client.post(url, headers=auth_headers(bob))).json()

        assert body["likes"] == [str(alice.id), str(bob.id)]

    @pytest.mark.asyncio
    async def test_like_missing_post(self, test_client, alice, auth_headers):
        response = await test_client.post(
            f"/api/posts/{uuid.uuid4()}/like", headers=auth_headers(alice)
        )

        assert response.status_code == 404


class TestComments:

    @pytest.mark.asyncio
    async def test_add_comment(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice))

        response = await test_client.post(
            f"/api/posts/{post['id']}/comments", json={"text": " nice "}, headers=auth_headers(bob)
        )

        assert response.status_code == 201
        comments = response.json()["comments"]
        assert len(comments) == 1
        assert comments[0]["text"] == "nice"
        assert comments[0]["user"] == {"id": str(bob.id), "username": "bob"}

    @pytest.mark.asyncio
    async def test_blank_comment_rejected(self, test_client, alice, auth_headers):
        post = await _create(test_client, auth_headers(alice))

        response = await test_client.post(
            f"/api/posts/{post['id']}/comments", json={"text": ""}, headers=auth_headers(alice)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Comment text is required"

    @pytest.mark.asyncio
    async def test_only_author_deletes_comment(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice))
        commented = await test_client.post(
            f"/api/posts/{post['id']}/comments", json={"text": "mine"}, headers=auth_headers(bob)
        )
        comment_id = commented.json()["comments"][0]["id"]
        url = f"/api/posts/{post['id']}/comments/{comment_id}"

        # The post owner is not the comment author
        forbidden = await test_client.delete(url, headers=auth_headers(alice))
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "Not authorized to delete this comment"

        still_there = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert [c["id"] for c in still_there["comments"]] == [comment_id]

        deleted = await test_client.delete(url, headers=auth_headers(bob))
        assert deleted.status_code == 200
        assert deleted.json()["comments"] == []

        reread = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert reread["comments"] == []

    @pytest.mark.asyncio
    async def test_delete_comment_on_missing_post(self, test_client, alice, auth_headers):
        response = await test_client.delete(
            f"/api/posts/{uuid.uuid4()}/comments/{uuid.uuid4()}", headers=auth_headers(alice)
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

    @pytest.mark.asyncio
    async def test_delete_missing_comment(self, test_client, alice, auth_headers):
        post = await _create(test_client, auth_headers(alice))

        response = await test_client.delete(
            f"/api/posts/{post['id']}/comments/{uuid.uuid4()}", headers=auth_headers(alice)
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Comment not found"


class TestPostLifecycle:

    @pytest.mark.asyncio
    async def test_create_edit_delete(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice), content="hello")
        url = f"/api/posts/{post['id']}"

        fetched = await test_client.get(url)
        assert fetched.status_code == 200
        assert fetched.json()["content"] == "hello"

        blank = await test_client.put(url, json={"content": ""}, headers=auth_headers(alice))
        assert blank.status_code == 400

        not_owner = await test_client.delete(url, headers=auth_headers(bob))
        assert not_owner.status_code == 403

        deleted = await test_client.delete(url, headers=auth_headers(alice))
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Post deleted successfully"}

        assert (await test_client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_removes_comments_and_likes(self, test_client, alice, bob, auth_headers):
        post = await _create(test_client, auth_headers(alice))
        url = f"/api/posts/{post['id']}"
        await test_client.post(f"{url}/like", headers=auth_headers(bob))
        await test_client.post(f"{url}/comments", json={"text": "hi"}, headers=auth_headers(bob))

        response = await test_client.delete(url, headers=auth_headers(alice))

        assert response.status_code == 200
        assert (await test_client.get("/api/posts")).json()["totalPosts"] == 0


class TestAmbient:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["message"] == "Server is running"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["x-request-id"] == "abc123"

    @pytest.mark.asyncio
    async def test_oversized_body_is_413(self, tmp_path, database, alice, auth_headers):
        config = Settings(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'postify_test.db'}",
            jwt_secret_key="test-secret-not-real",
            max_body_size=1024,
        )
        app = create_app(config, database=database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(
                "/api/posts", json={"content": "x" * 2000}, headers=auth_headers(alice)
            )

        assert response.status_code == 413
        assert response.json()["error"] == "payload_too_large"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("supplied", ["has spaces", "x" * 100, ""])
    async def test_unsafe_request_id_replaced(self, test_client, supplied):
        response = await test_client.get("/api/health", headers={"X-Request-ID": supplied})

        rid = response.headers["x-request-id"]
        assert rid != supplied
        assert len(rid) == 8

    @pytest.mark.asyncio
    async def test_access_log_uses_route_template_and_user(
        self, test_client, alice, auth_headers, caplog
    ):
        caplog.set_level(logging.INFO, logger="postify.access")
        post = await _create(test_client, auth_headers(alice))
        await test_client.put(
            f"/api/posts/{post['id']}", json={"content": "edited"}, headers=auth_headers(alice)
        )
        await test_client.get(f"/api/posts/{post['id']}")

        lines = [
            (record.route, record.user_id, record.status)
            for record in caplog.records
            if record.name == "postify.access"
        ]
        assert ("/api/posts", str(alice.id), 201) in lines
        assert ("/api/posts/{post_id}", str(alice.id), 200) in lines
        assert ("/api/posts/{post_id}", "-", 200) in lines
        assert all(post["id"] not in route for route, _, _ in lines)


class TestErrorBodies:

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_format(self, test_client):
        response = await test_client.get("/api/nothing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert response.json()["message"] == "Not Found"
        assert "request_id" in response.json()

    @pytest.mark.asyncio
    async def test_wrong_method_uses_error_format(self, test_client):
        response = await test_client.patch("/api/posts")

        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"
        assert response.json()["message"]

    @pytest.mark.asyncio
    async def test_trailing_slash_served_directly(self, test_client, alice, auth_headers):
        created = await test_client.post(
            "/api/posts/", json={"content": "slash"}, headers=auth_headers(alice)
        )
        assert created.status_code == 201

        listed = await test_client.get("/api/posts/")
        assert listed.status_code == 200
        assert listed.json()["totalPosts"] == 1

    @pytest.mark.asyncio
    async def test_malformed_json_body(self, test_client, alice, auth_headers):
        response = await test_client.post(
            "/api/posts",
            content=b'{"content": ',
            headers={**auth_headers(alice), "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Request body is not valid JSON"
