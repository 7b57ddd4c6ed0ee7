from core.moderation import ScreenResult


def _create(client, headers, **overrides):
    body = {"title": "T", "content": "C", "tags": ["rust"]}
    body.update(overrides)
    return client.post("/questions", json=body, headers=headers)


def test_register_login_post_and_read_back(client):
    r = client.post("/accounts/register", json={"email": "a@x.com", "password": "pw1"})
    assert r.status_code == 201
    assert r.json()["email"] == "a@x.com"
    assert "password" not in r.text

    r = client.post("/accounts/login", json={"email": "a@x.com", "password": "pw1"})
    assert r.status_code == 200
    creds = r.json()
    headers = {"Authorization": f"Bearer {creds['client_id']}:{creds['client_secret']}"}

    r = _create(client, headers)
    assert r.status_code == 201
    created = r.json()
    assert isinstance(created["id"], int)
    assert created["created_on"]

    r = client.get(f"/questions/{created['id']}")
    assert r.status_code == 200
    fetched = r.json()
    assert (fetched["title"], fetched["content"], fetched["tags"]) == ("T", "C", ["rust"])
    assert fetched["created_on"] == created["created_on"]


def test_duplicate_registration_is_conflict(client):
    body = {"email": "dup@x.com", "password": "pw1"}
    assert client.post("/accounts/register", json=body).status_code == 201

    r = client.post("/accounts/register", json=body)
    assert r.status_code == 409
    assert r.json()["error"] == "AlreadyExists"


def test_bad_login_is_unauthorized(client, auth_headers):
    r = client.post("/accounts/login", json={"email": "writer@test.io", "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["error"] == "InvalidCredentials"


def test_writes_require_a_valid_bearer_credential(client, store):
    for headers in (
        {},
        {"Authorization": "Basic abc"},
        {"Authorization": "Bearer no-colon"},
        {"Authorization": "Bearer unknown:secret"},
    ):
        r = _create(client, headers)
        assert r.status_code == 401
        assert r.json()["error"] == "Unauthorized"
    assert store.questions == {}


def test_unauthenticated_reads_are_allowed(client, auth_headers):
    _create(client, auth_headers)

    r = client.get("/questions")
    assert r.status_code == 200
    assert r.json()["count"] == 1


def test_malformed_body_is_bad_request(client, auth_headers):
    r = client.post("/questions", json={"title": "", "content": "C"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"

    r = client.post(
        "/questions",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert r.status_code == 400


def test_flagged_content_is_422_with_field(client, auth_headers, moderator, store):
    moderator.verdicts["C"] = ScreenResult.FLAGGED

    r = _create(client, auth_headers)

    assert r.status_code == 422
    assert r.json() == {
        "error": "ContentRejected",
        "message": "Field 'content' was rejected by content moderation.",
        "field": "content",
    }
    assert store.questions == {}


def test_unavailable_moderation_is_503_without_detail(client, auth_headers, moderator, store):
    moderator.default = ScreenResult.UNAVAILABLE

    r = _create(client, auth_headers, title="Special title")

    assert r.status_code == 503
    body = r.json()
    assert body["error"] == "ModerationUnavailable"
    assert "title" not in body["message"]
    assert body["request_id"] == r.headers["X-Request-ID"]
    assert store.questions == {}


def test_storage_failure_is_generic_500(client, auth_headers, store):
    store.fail_writes = True

    r = _create(client, auth_headers)

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "StorageError"
    assert "simulated" not in body["message"]


def test_update_question(client, auth_headers):
    question_id = _create(client, auth_headers).json()["id"]

    r = client.put(f"/questions/{question_id}", json={"content": "Edited", "tags": ["Go"]}, headers=auth_headers)
    assert r.status_code == 200
    assert (r.json()["title"], r.json()["content"], r.json()["tags"]) == ("T", "Edited", ["go"])

    assert client.put("/questions/999", json={"title": "x"}, headers=auth_headers).status_code == 404
    assert client.put(f"/questions/{question_id}", json={}, headers=auth_headers).status_code == 400
    assert client.put(f"/questions/{question_id}", json={"id": 5}, headers=auth_headers).status_code == 400
    assert client.put(f"/questions/{question_id}", json={"title": "x"}).status_code == 401


def test_delete_question_cascades_answers(client, auth_headers):
    question_id = _create(client, auth_headers).json()["id"]
    r = client.post(f"/questions/{question_id}/answers", json={"content": "A"}, headers=auth_headers)
    assert r.status_code == 201
    answer_id = r.json()["id"]

    r = client.delete(f"/questions/{question_id}", headers=auth_headers)
    assert r.status_code == 204
    assert r.content == b""

    assert client.get(f"/questions/{question_id}").status_code == 404
    assert client.get(f"/questions/{question_id}/answers").status_code == 404
    assert client.delete(f"/answers/{answer_id}", headers=auth_headers).status_code == 404
    assert client.delete(f"/questions/{question_id}", headers=auth_headers).status_code == 404


def test_answer_lifecycle(client, auth_headers):
    question_id = _create(client, auth_headers).json()["id"]

    assert client.post("/questions/999/answers", json={"content": "A"}, headers=auth_headers).status_code == 404

    answer = client.post(f"/questions/{question_id}/answers", json={"content": "A"}, headers=auth_headers).json()
    assert answer["question_id"] == question_id

    r = client.put(f"/answers/{answer['id']}", json={"content": "A2"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["content"] == "A2"

    r = client.get(f"/questions/{question_id}/answers")
    assert r.status_code == 200
    assert [a["content"] for a in r.json()["answers"]] == ["A2"]

    assert client.delete(f"/answers/{answer['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/questions/{question_id}/answers").json()["count"] == 0


def test_pagination_and_tag_filter(client, auth_headers):
    ids = [
        _create(client, auth_headers, title=f"Q{i}", tags=tags).json()["id"]
        for i, tags in enumerate([["rust"], ["python"], ["Rust", "web"]])
    ]

    first = client.get("/questions", params={"limit": 2}).json()
    second = client.get("/questions", params={"offset": 2, "limit": 2}).json()
    assert first["count"] == 2
    assert second["count"] == 1
    assert [q["id"] for q in first["questions"] + second["questions"]] == ids

    tagged = client.get("/questions", params={"tag": "RUST"}).json()
    assert [q["id"] for q in tagged["questions"]] == [ids[0], ids[2]]

    combined = client.get("/questions?tag=python,web").json()
    assert [q["id"] for q in combined["questions"]] == [ids[1], ids[2]]


def test_bad_pagination_params_are_400(client):
    assert client.get("/questions", params={"limit": 0}).status_code == 400
    assert client.get("/questions", params={"limit": 51}).status_code == 400
    assert client.get("/questions", params={"offset": -1}).status_code == 400
    assert client.get("/questions", params={"limit": "many"}).status_code == 400


def test_logout_invalidates_the_credential(client, auth_headers):
    r = client.post("/accounts/logout", headers=auth_headers)
    assert r.status_code == 204

    assert _create(client, auth_headers).status_code == 401
    assert client.post("/accounts/logout", headers=auth_headers).status_code == 401


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "abc-123"

    assert client.get("/").headers["X-Request-ID"]


def test_unknown_question_is_404(client):
    r = client.get("/questions/12345")
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"


def test_me_returns_the_signed_in_account(client, auth_headers):
    r = client.get("/accounts/me", headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "writer@test.io"
    assert "password" not in str(body)

    assert client.get("/accounts/me").status_code == 401


def test_deleting_the_account_ends_its_sessions(client, auth_headers, store):
    r = client.delete("/accounts/me", headers=auth_headers)
    assert r.status_code == 204
    assert "writer@test.io" not in store.accounts

    assert client.get("/accounts/me", headers=auth_headers).status_code == 401
    assert client.delete("/accounts/me", headers=auth_headers).status_code == 401

    r = client.post("/accounts/login", json={"email": "writer@test.io", "password": "pw-writer"})
    assert r.status_code == 401
