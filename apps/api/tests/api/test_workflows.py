"""
Session and school workflow scenarios through the HTTP surface.

These tests verify:
- Cookie sessions: login, /auth/me and logout
- User deactivation takes effect on the next request
- ISO evidence is scoped to the owning school and resubmission bumps the version
- Class structure, promotions, feedback, document stats, messaging and
  ISO analytics stay within the caller's school
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from school_erp.core.rate_limit import reset_memory_store

API = "/api/v1"
PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def upload_dir(tmp_path):
    with patch("school_erp.core.storage.settings.upload_dir", str(tmp_path)):
        yield tmp_path


def _set_cookie(response, name: str) -> str:
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header
    raise AssertionError(f"{name} cookie not set")


# ============================================
# Sessions
# ============================================


@pytest.mark.asyncio
async def test_login_sets_session_cookies(client, seeded):
    response = await client.post(
        f"{API}/auth/login", json={"email": "admin@a.test", "password": PASSWORD}
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "admin@a.test"

    token_cookie = _set_cookie(response, "auth-token").lower()
    assert "httponly" in token_cookie
    assert "max-age=604800" in token_cookie
    assert "path=/" in token_cookie

    flag_cookie = _set_cookie(response, "isAuthenticated")
    assert flag_cookie.startswith("isAuthenticated=true")
    assert "httponly" not in flag_cookie.lower()
    assert "max-age=604800" in flag_cookie.lower()


@pytest.mark.asyncio
async def test_cookie_session_until_logout(client, seeded):
    login = await client.post(
        f"{API}/auth/login", json={"email": "admin@a.test", "password": PASSWORD}
    )
    assert login.status_code == 200

    # No Authorization header: the cookie alone authenticates
    me = await client.get(f"{API}/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["user"]["id"] == str(seeded["admin_a"])
    assert me.json()["data"]["school"]["id"] == str(seeded["school_a"])

    logout = await client.post(f"{API}/auth/logout")
    assert logout.status_code == 200
    for name in ("auth-token", "isAuthenticated"):
        assert "max-age=0" in _set_cookie(logout, name).lower()

    after = await client.get(f"{API}/auth/me")
    assert after.status_code == 401
    assert after.json()["error"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_wrong_password_sets_no_cookie(client, seeded):
    response = await client.post(
        f"{API}/auth/login", json={"email": "admin@a.test", "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert not response.headers.get_list("set-cookie")


@pytest.mark.asyncio
async def test_user_deactivation_applies_to_existing_tokens(client, headers, seeded):
    url = f"{API}/resources/clubs"
    assert (await client.get(url, headers=headers["coordinator_a"])).status_code == 200

    toggle = await client.post(
        f"{API}/users/{seeded['coordinator_a']}/toggle-status", headers=headers["super"]
    )
    assert toggle.status_code == 200
    assert toggle.json()["data"]["is_active"] is False

    denied = await client.get(url, headers=headers["coordinator_a"])
    assert denied.status_code == 403
    assert denied.json()["error"] == "FORBIDDEN"

    # The rest of the school is unaffected
    assert (await client.get(url, headers=headers["admin_a"])).status_code == 200

    relogin = await client.post(
        f"{API}/auth/login", json={"email": "eca@a.test", "password": PASSWORD}
    )
    assert relogin.status_code == 403


# ============================================
# Validation and uniqueness
# ============================================


@pytest.mark.asyncio
async def test_null_for_required_column_is_validation_error(client, headers):
    created = await client.post(
        f"{API}/resources/clubs", json={"name": "Chess Club"}, headers=headers["super"]
    )
    url = f"{API}/resources/clubs/{created.json()['data']['id']}"

    response = await client.put(url, json={"name": None}, headers=headers["super"])

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert (await client.get(url, headers=headers["super"])).json()["data"]["name"] == "Chess Club"

    cleared = await client.put(url, json={"description": None}, headers=headers["super"])
    assert cleared.status_code == 200


@pytest.mark.asyncio
async def test_global_iso_clause_numbers_are_unique(client, headers, seeded):
    payload = {"number": "4.1", "title": "Context of the organization"}
    url = f"{API}/resources/iso-clauses"

    first = await client.post(url, json=payload, headers=headers["super"])
    assert first.status_code == 201

    duplicate = await client.post(url, json=payload, headers=headers["super"])
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "CONFLICT"

    # A school-specific clause may reuse the number
    own = await client.post(
        url, json={**payload, "tenant_id": str(seeded["school_a"])}, headers=headers["super"]
    )
    assert own.status_code == 201


# ============================================
# ISO evidence workflow
# ============================================


async def _upload_evidence(client, headers, name: str) -> dict:
    response = await client.post(
        f"{API}/resources/iso-clauses/evidence",
        files={"file": (name, b"%PDF-1.7 evidence", "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_iso_reject_resubmit_approve(client, headers, seeded, upload_dir):
    clause = await client.post(
        f"{API}/resources/iso-clauses",
        json={"number": "5.2", "title": "Policy"},
        headers=headers["super"],
    )
    base = f"{API}/resources/iso-clauses/{clause.json()['data']['id']}"

    # Evidence is required
    bare = await client.post(f"{base}/register", headers=headers["admin_a"])
    registration_id = bare.json()["data"]["id"]
    missing = await client.post(
        f"{base}/registrations/{registration_id}/submit", headers=headers["admin_a"]
    )
    assert missing.status_code == 400

    evidence = await _upload_evidence(client, headers["admin_a"], "policy.pdf")
    submitted = await client.post(
        f"{base}/registrations/{registration_id}/submit",
        json={"evidence": [evidence]},
        headers=headers["admin_a"],
    )
    assert submitted.json()["data"]["status"] == "submitted"
    assert submitted.json()["data"]["version"] == 1

    # Only the owning school and the platform can read the file
    file_url = evidence["file_url"]
    own = await client.get(file_url, headers=headers["admin_a"])
    assert own.status_code == 200
    assert own.content == b"%PDF-1.7 evidence"
    assert (await client.get(file_url, headers=headers["super"])).status_code == 200
    assert (await client.get(file_url, headers=headers["admin_b"])).status_code == 404
    assert (await client.get(file_url)).status_code == 401

    rejected = await client.put(
        f"{base}/registrations/{registration_id}",
        json={"status": "rejected", "comments": "Signature missing"},
        headers=headers["super"],
    )
    assert rejected.json()["data"]["status"] == "rejected"
    assert rejected.json()["data"]["reviewed_by"] == str(seeded["super"])

    revised = await _upload_evidence(client, headers["coordinator_a"], "policy-signed.pdf")
    resubmitted = await client.post(
        f"{base}/registrations/{registration_id}/submit",
        json={"evidence": [revised]},
        headers=headers["coordinator_a"],
    )
    data = resubmitted.json()["data"]
    assert data["status"] == "submitted"
    assert data["version"] == 2
    assert data["reviewed_by"] is None
    assert data["reviewed_at"] is None
    assert data["comments"] is None
    assert data["evidence"][0]["name"] == "policy-signed.pdf"

    approved = await client.put(
        f"{base}/registrations/{registration_id}",
        json={"status": "approved"},
        headers=headers["super"],
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "approved"
    assert approved.json()["data"]["version"] == 2

    progress = await client.get(f"{API}/dashboard/iso-analytics", headers=headers["admin_a"])
    assert progress.json()["data"]["approved_clauses"] == 1
    assert progress.json()["data"]["is_certified"] is True

    analytics = await client.get(f"{API}/dashboard/iso-analytics", headers=headers["super"])
    platform = analytics.json()["data"]
    assert platform["total_schools"] == 2
    assert platform["certified_schools"] == 1
    assert platform["certification_rate"] == 50


# ============================================
# Students
# ============================================


@pytest.mark.asyncio
async def test_promotion_graduates_final_class(client, headers, seeded):
    students = f"{API}/resources/students"
    saved = await client.put(
        f"{students}/class-structure",
        json={"class_name": "Grade 12", "sections": ["A"], "is_graduation_class": True},
        headers=headers["admin_a"],
    )
    assert saved.status_code == 200

    created = await client.post(
        students,
        json={"first_name": "Ada", "last_name": "Lovelace", "class_name": "Grade 12"},
        headers=headers["admin_a"],
    )
    student_id = created.json()["data"]["id"]

    by_class = await client.get(
        f"{students}/by-class", params={"class_name": "Grade 12"}, headers=headers["admin_a"]
    )
    assert [s["id"] for s in by_class.json()["data"]] == [student_id]

    # Another school cannot promote the student
    foreign = await client.post(
        f"{students}/promote",
        json={"student_ids": [student_id], "to_class": "Alumni", "academic_year": "2026"},
        headers=headers["admin_b"],
    )
    assert foreign.status_code == 404

    promoted = await client.post(
        f"{students}/promote",
        json={"student_ids": [student_id], "to_class": "Alumni", "academic_year": "2026"},
        headers=headers["admin_a"],
    )
    assert promoted.status_code == 200
    assert promoted.json()["data"] == {"promoted_count": 1, "graduated_count": 1}

    graduated = await client.get(f"{students}/graduated", headers=headers["admin_a"])
    assert [s["id"] for s in graduated.json()["data"]] == [student_id]
    assert graduated.json()["data"][0]["graduation_date"] is not None
    other = await client.get(f"{students}/graduated", headers=headers["admin_b"])
    assert other.json()["data"] == []

    history = await client.get(f"{students}/promotions", headers=headers["admin_a"])
    record = history.json()["data"][0]
    assert record["student_name"] == "Ada Lovelace"
    assert record["from_class"] == "Grade 12"
    assert record["is_graduation"] is True


@pytest.mark.asyncio
async def test_super_admin_class_structure_needs_school(client, headers, seeded):
    url = f"{API}/resources/students/class-structure"

    missing = await client.get(url, headers=headers["super"])
    assert missing.status_code == 400
    assert missing.json()["error"] == "VALIDATION_ERROR"

    scoped = await client.get(
        url, params={"school_id": str(seeded["school_a"])}, headers=headers["super"]
    )
    assert scoped.status_code == 200


# ============================================
# Training feedback and documents
# ============================================


@pytest.mark.asyncio
async def test_training_feedback_once_per_user(client, headers):
    training = await client.post(
        f"{API}/resources/trainings",
        json={
            "title": "First aid",
            "starts_at": (datetime.now(UTC) + timedelta(days=7)).isoformat(),
        },
        headers=headers["super"],
    )
    url = f"{API}/resources/trainings/{training.json()['data']['id']}/feedback"

    first = await client.post(
        url, json={"feedback": "Useful", "rating": 5}, headers=headers["admin_a"]
    )
    assert first.status_code == 201

    again = await client.post(
        url, json={"feedback": "Again", "rating": 1}, headers=headers["admin_a"]
    )
    assert again.status_code == 400
    assert again.json()["error"] == "CONFLICT"

    await client.post(url, json={"feedback": "Fine", "rating": 3}, headers=headers["admin_b"])

    own = await client.get(url, headers=headers["coordinator_a"])
    assert [f["rating"] for f in own.json()["data"]] == [5]
    everyone = await client.get(url, headers=headers["super"])
    assert len(everyone.json()["data"]) == 2


@pytest.mark.asyncio
async def test_document_stats_are_school_scoped(client, headers, upload_dir):
    uploaded = await client.post(
        f"{API}/resources/documents/upload",
        files={"file": ("policy.pdf", b"%PDF-1.7 policy", "application/pdf")},
        data={"category": "policies"},
        headers=headers["admin_a"],
    )
    assert uploaded.status_code == 201

    stats_url = f"{API}/resources/documents/stats"
    own = (await client.get(stats_url, headers=headers["admin_a"])).json()
    assert own["data"]["total"] == 1
    assert own["data"]["total_size"] == len(b"%PDF-1.7 policy")
    assert own["data"]["categories"][0]["category"] == "policies"
    assert own["data"]["recent"][0]["name"] == "policy.pdf"

    other = (await client.get(stats_url, headers=headers["admin_b"])).json()
    assert other["data"]["total"] == 0
    assert other["data"]["recent"] == []


# ============================================
# Messaging
# ============================================


@pytest.mark.asyncio
async def test_messaging_between_school_staff(client, headers, seeded):
    contacts = await client.get(f"{API}/messages/users", headers=headers["admin_a"])
    contact_ids = {c["id"] for c in contacts.json()["data"]}
    assert contact_ids == {str(seeded["super"]), str(seeded["coordinator_a"])}

    foreign = await client.post(
        f"{API}/messages/conversations",
        json={"participant_ids": [str(seeded["admin_b"])]},
        headers=headers["admin_a"],
    )
    assert foreign.status_code == 404

    created = await client.post(
        f"{API}/messages/conversations",
        json={"participant_ids": [str(seeded["coordinator_a"])], "title": "Sports day"},
        headers=headers["admin_a"],
    )
    assert created.status_code == 201
    conversation_id = created.json()["data"]["id"]
    base = f"{API}/messages/conversations/{conversation_id}"

    sent = await client.post(
        f"{base}/messages", json={"content": "Can you lead the relay?"}, headers=headers["admin_a"]
    )
    assert sent.status_code == 201

    inbox = await client.get(f"{API}/messages/conversations", headers=headers["coordinator_a"])
    assert inbox.json()["data"][0]["unread_count"] == 1
    assert inbox.json()["data"][0]["last_message"] == "Can you lead the relay?"

    messages = await client.get(f"{base}/messages", headers=headers["coordinator_a"])
    assert messages.json()["data"]["total"] == 1

    assert (await client.put(f"{base}/read", headers=headers["coordinator_a"])).status_code == 200
    inbox = await client.get(f"{API}/messages/conversations", headers=headers["coordinator_a"])
    assert inbox.json()["data"][0]["unread_count"] == 0

    # Non-participants cannot see or post to it
    assert (await client.get(base, headers=headers["admin_b"])).status_code == 404
    intrusion = await client.post(
        f"{base}/messages", json={"content": "Hello"}, headers=headers["super"]
    )
    assert intrusion.status_code == 404
